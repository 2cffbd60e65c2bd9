"""
Image proxy that re-fetches Instagram CDN images past hotlink protection.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit

import httpx

from .config import DEFAULT_IMAGE_CONTENT_TYPE, IMAGE_CACHE_CONTROL, ScraperConfig
from .errors import DomainNotAllowedError, InputError
from .utils.headers import HeaderGenerator

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5


@dataclass
class ProxiedImage:
    """Result of one proxied fetch."""
    status_code: int
    content: bytes = b""
    content_type: str = DEFAULT_IMAGE_CONTENT_TYPE
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class ImageProxy:
    """Fetches allow-listed CDN images with browser-like headers."""

    def __init__(
        self,
        config: Optional[ScraperConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or ScraperConfig()
        self.header_gen = HeaderGenerator(self.config.ua_profile)
        self._client = http_client

    async def __aenter__(self):
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.request_timeout),
                follow_redirects=False,
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    def is_allowed(self, url: str) -> bool:
        """True when the URL is http(s) and its host matches the allow-list."""
        try:
            parts = urlsplit(url)
        except ValueError:
            return False
        if parts.scheme not in ("http", "https"):
            return False
        host = (parts.hostname or "").lower()
        if not host:
            return False
        return any(domain in host for domain in self.config.allowed_image_domains)

    def validate(self, url: Optional[str]) -> str:
        """
        Check a proxy target.

        Raises:
            InputError: URL missing
            DomainNotAllowedError: Host not on the allow-list
        """
        if not url or not url.strip():
            raise InputError("Missing url parameter")
        url = url.strip()
        if not self.is_allowed(url):
            raise DomainNotAllowedError(url)
        return url

    async def fetch(self, url: Optional[str]) -> ProxiedImage:
        """
        Fetch an image and return its bytes with cache-friendly headers.

        Redirects are followed by hand so every hop is checked against the
        allow-list. Upstream non-2xx statuses are returned as-is with no body;
        transport errors propagate as ``httpx.HTTPError``.

        Raises:
            DomainNotAllowedError: The target or a redirect hop is not allowed
        """
        url = self.validate(url)
        client = await self._ensure_client()
        headers = self.header_gen.get_image_headers()

        logger.debug(f"Proxying image: {url}")

        for _ in range(MAX_REDIRECTS + 1):
            response = await client.get(url, headers=headers, follow_redirects=False)
            location = response.headers.get("location")
            if not (response.is_redirect and location):
                break
            url = str(response.url.join(location))
            if not self.is_allowed(url):
                logger.warning(f"Image redirect to disallowed host: {url}")
                raise DomainNotAllowedError(url)
            logger.debug(f"Following image redirect to {url}")
        else:
            raise httpx.TooManyRedirects(
                f"Exceeded {MAX_REDIRECTS} redirects", request=response.request
            )

        if not response.is_success:
            logger.warning(f"Image upstream returned {response.status_code} for {url}")
            return ProxiedImage(status_code=response.status_code)

        content_type = response.headers.get("content-type") or DEFAULT_IMAGE_CONTENT_TYPE
        return ProxiedImage(
            status_code=200,
            content=response.content,
            content_type=content_type,
            headers={
                "Cache-Control": IMAGE_CACHE_CONTROL,
                "Access-Control-Allow-Origin": "*",
            },
        )
