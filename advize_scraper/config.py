"""
Configuration settings for the Advize Instagram integration.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv


def _get_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or str(v).strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _get_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or str(v).strip() == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


@dataclass
class ScraperConfig:
    """Main configuration for the scraper and the image proxy."""

    # Scraping actor settings
    apify_token: Optional[str] = None
    actor_id: str = "apify/instagram-scraper"
    run_timeout: int = 120  # Seconds the actor run may take
    wait_slack: int = 30  # Extra seconds to wait for the run on top of run_timeout

    # Outbound HTTP settings (image proxy)
    request_timeout: float = 30.0
    ua_profile: Optional[str] = "chrome_windows"

    # Analytics settings
    recent_posts_limit: int = 12

    # Image proxy settings
    allowed_image_domains: tuple[str, ...] = field(
        default_factory=lambda: ALLOWED_IMAGE_DOMAINS
    )

    @property
    def wait_secs(self) -> int:
        """Total time to block on a single actor run."""
        return self.run_timeout + self.wait_slack

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "ScraperConfig":
        """Build a config from environment variables (and a .env file)."""
        if dotenv:
            load_dotenv()

        return cls(
            apify_token=os.getenv("APIFY_API_TOKEN", "").strip() or None,
            actor_id=os.getenv("APIFY_ACTOR_ID", "").strip() or cls.actor_id,
            run_timeout=_get_int("SCRAPE_RUN_TIMEOUT", cls.run_timeout),
            wait_slack=_get_int("SCRAPE_WAIT_SLACK", cls.wait_slack),
            request_timeout=_get_float("REQUEST_TIMEOUT", cls.request_timeout),
            ua_profile=os.getenv("UA_PROFILE", "").strip() or cls.ua_profile,
            recent_posts_limit=_get_int("RECENT_POSTS_LIMIT", cls.recent_posts_limit),
        )


# Instagram endpoints
INSTAGRAM_BASE_URL = "https://www.instagram.com"

# Image proxy allow-list, matched as substrings of the target host
ALLOWED_IMAGE_DOMAINS = (
    "cdninstagram.com",
    "instagram.com",
    "fbcdn.net",
    "scontent",
)

# Headers attached to every proxied image response
IMAGE_CACHE_CONTROL = "public, max-age=86400, stale-while-revalidate=3600"
DEFAULT_IMAGE_CONTENT_TYPE = "image/jpeg"

# Actor result modes
RESULTS_TYPE_DETAILS = "details"
RESULTS_TYPE_POSTS = "posts"
RESULTS_TYPES = (RESULTS_TYPE_DETAILS, RESULTS_TYPE_POSTS)

# Regex patterns for URL normalization
PATTERNS = {
    # Profile URL - first path segment after the domain
    "profile_url": r"^(?:https?://)?(?:(?:www|m)\.)?instagram\.com/([^/?#]+)",
    # Post URL - kind and shortcode
    "post_url": r"^(?:https?://)?(?:(?:www|m)\.)?instagram\.com/(?:[^/?#]+/)?(p|reel|tv)/([A-Za-z0-9_-]+)",
    # Bare handle, optionally prefixed with @
    "handle": r"^@?([A-Za-z0-9._]{1,30})$",
    "hashtag": r"#(\w+)",
    "mention": r"@([\w.]+)",
}

# First path segments that are Instagram routes, not usernames
RESERVED_PATHS = frozenset({
    "p",
    "reel",
    "reels",
    "tv",
    "stories",
    "explore",
    "accounts",
})
