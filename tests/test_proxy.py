import asyncio

import httpx
import pytest

from advize_scraper.errors import DomainNotAllowedError, InputError
from advize_scraper.proxy import ImageProxy
from advize_scraper.utils.headers import HeaderGenerator

PNG_BYTES = b"\x89PNG\r\n\x1a\nredirected"


def _redirecting_upstream(request: httpx.Request) -> httpx.Response:
    if request.url.host == "l.instagram.com":
        return httpx.Response(302, headers={"Location": "http://169.254.169.254/latest/meta-data"})
    if request.url.path == "/moved.jpg":
        return httpx.Response(301, headers={"Location": "https://scontent-lhr8-1.cdninstagram.com/final.jpg"})
    if request.url.path == "/relative.jpg":
        return httpx.Response(307, headers={"Location": "/final.jpg"})
    if request.url.path == "/loop.jpg":
        return httpx.Response(302, headers={"Location": "/loop.jpg"})
    if request.url.path == "/final.jpg":
        return httpx.Response(200, content=PNG_BYTES, headers={"Content-Type": "image/png"})
    raise AssertionError(f"unexpected upstream request: {request.url}")


def _proxy(config) -> ImageProxy:
    return ImageProxy(
        config,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(_redirecting_upstream)),
    )


@pytest.mark.parametrize("url", [
    "https://scontent.cdninstagram.com/v/t51/x.jpg",
    "https://instagram.fbom1-1.fna.fbcdn.net/v/x.jpg",
    "https://www.instagram.com/static/x.png",
    "http://scontent-lhr8-1.xx.fbcdn.net/x.jpg",
])
def test_allowed_hosts(config, url):
    assert ImageProxy(config).is_allowed(url)


@pytest.mark.parametrize("url", [
    "https://evil.example.com/x.jpg",
    "https://evil.example.com/cdninstagram.com/x.jpg",
    "ftp://scontent.cdninstagram.com/x.jpg",
    "scontent.cdninstagram.com/x.jpg",
    "not a url",
])
def test_rejected_hosts(config, url):
    assert not ImageProxy(config).is_allowed(url)


def test_validate(config):
    proxy = ImageProxy(config)
    with pytest.raises(InputError):
        proxy.validate("")
    with pytest.raises(DomainNotAllowedError):
        proxy.validate("https://evil.example.com/x.jpg")
    assert proxy.validate(" https://scontent.cdninstagram.com/x.jpg ") == "https://scontent.cdninstagram.com/x.jpg"


def test_image_headers_spoof_browser():
    headers = HeaderGenerator("chrome_windows").get_image_headers()
    assert headers["Referer"] == "https://www.instagram.com/"
    assert headers["User-Agent"].startswith("Mozilla/5.0 (Windows NT 10.0")
    assert headers["Accept"].startswith("image/avif")
    assert "Sec-CH-UA" in headers


def test_firefox_profile_has_no_client_hints():
    headers = HeaderGenerator("firefox_windows").get_image_headers()
    assert "Sec-CH-UA" not in headers


def test_redirect_to_disallowed_host_is_rejected(config):
    proxy = _proxy(config)

    with pytest.raises(DomainNotAllowedError):
        asyncio.run(proxy.fetch("https://l.instagram.com/?u=x.jpg"))


def test_redirect_to_allowed_host_is_followed(config):
    proxy = _proxy(config)

    image = asyncio.run(proxy.fetch("https://scontent.cdninstagram.com/moved.jpg"))

    assert image.ok
    assert image.content == PNG_BYTES
    assert image.content_type == "image/png"


def test_relative_redirect_is_followed(config):
    proxy = _proxy(config)

    image = asyncio.run(proxy.fetch("https://scontent.cdninstagram.com/relative.jpg"))

    assert image.content == PNG_BYTES


def test_redirect_loop_stops(config):
    proxy = _proxy(config)

    with pytest.raises(httpx.TooManyRedirects):
        asyncio.run(proxy.fetch("https://scontent.cdninstagram.com/loop.jpg"))

