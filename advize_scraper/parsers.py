"""
Parsers for normalizing Instagram URLs and scraping-actor dataset items.
"""

import re
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .models import ProfileData, PostData
from .config import PATTERNS, RESERVED_PATHS, INSTAGRAM_BASE_URL

logger = logging.getLogger(__name__)

_MISSING = object()


def extract_hashtags(caption: str) -> list[str]:
    """Extract hashtags (without '#') from a caption string."""
    return re.findall(PATTERNS["hashtag"], caption or "")


def extract_mentions(caption: str) -> list[str]:
    """Extract mentioned usernames (without '@') from a caption string."""
    return [m.rstrip(".") for m in re.findall(PATTERNS["mention"], caption or "") if m.rstrip(".")]


class UrlParser:
    """Extracts canonical handles and post URLs from user input."""

    @staticmethod
    def extract_username(raw: Optional[str]) -> Optional[str]:
        """
        Extract a canonical handle from a profile URL or bare handle.

        Accepts forms like ``https://www.instagram.com/name/?igsh=x``,
        ``instagram.com/name``, ``@name`` and ``name``.

        Returns:
            Lower-cased handle, or None when no valid handle is present
        """
        if not raw:
            return None
        value = raw.strip()
        if not value:
            return None

        match = re.search(PATTERNS["profile_url"], value, re.IGNORECASE)
        if match:
            candidate = match.group(1)
            if candidate.lower() in RESERVED_PATHS:
                return None
        elif "/" in value or ":" in value:
            # A URL, but not an Instagram one
            return None
        else:
            candidate = value

        handle = re.match(PATTERNS["handle"], candidate)
        if not handle:
            return None
        return handle.group(1).lower()

    @staticmethod
    def extract_post_url(raw: Optional[str]) -> Optional[str]:
        """
        Validate a post/reel URL and return its canonical form.

        Returns:
            ``https://www.instagram.com/<kind>/<shortcode>/`` or None
        """
        if not raw:
            return None
        match = re.search(PATTERNS["post_url"], raw.strip(), re.IGNORECASE)
        if not match:
            return None
        kind, shortcode = match.group(1).lower(), match.group(2)
        return f"{INSTAGRAM_BASE_URL}/{kind}/{shortcode}/"

    @staticmethod
    def profile_url(username: str) -> str:
        return f"{INSTAGRAM_BASE_URL}/{username}/"


def _owner_key(field: str) -> str:
    # followersCount -> ownerFollowersCount
    return "owner" + field[0].upper() + field[1:]


def lookup(item: dict, field: str, default: Any = None) -> Any:
    """
    Resolve a profile field from either upstream result shape.

    ``details`` items carry profile fields at the top level; ``posts`` items
    nest them under ``owner`` (or flatten them as ``ownerFollowersCount``).
    The top level wins when present, then ``owner.<field>``, then the flat
    ``owner<Field>`` variant, then ``default``.
    """
    value = item.get(field)
    if value is not None:
        return value

    owner = item.get("owner")
    if isinstance(owner, dict):
        value = owner.get(field)
        if value is not None:
            return value

    value = item.get(_owner_key(field))
    if value is not None:
        return value

    return default


def _first(item: dict, *fields: str, default: Any = None) -> Any:
    for name in fields:
        value = lookup(item, name, _MISSING)
        if value is not _MISSING and value != "":
            return value
    return default


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class ProfileParser:
    """Builds ProfileData from a scraping-actor dataset item."""

    @staticmethod
    def is_post_item(item: dict) -> bool:
        """True for ``posts`` result items, False for ``details`` items."""
        return bool(item.get("shortCode")) or "ownerUsername" in item

    @classmethod
    def _profile_id(cls, item: dict) -> str:
        owner = item.get("owner")
        if cls.is_post_item(item):
            # Top-level id of a post item is the post's own id
            if isinstance(owner, dict) and owner.get("id"):
                return str(owner["id"])
            return str(item.get("ownerId") or "")
        return str(item.get("id") or item.get("ownerId") or "")

    @classmethod
    def parse_item(cls, item: dict, username: str = "") -> ProfileData:
        """
        Parse a profile from a ``details`` item or the owner of a ``posts`` item.

        Missing fields fall back to empty values; this never raises on a
        sparse item.
        """
        latest_posts = item.get("latestPosts") or []

        posts_count = lookup(item, "postsCount")
        if posts_count is None:
            posts_count = len(latest_posts)

        handle = _first(item, "username", default=username) or username

        return ProfileData(
            id=cls._profile_id(item) or handle,
            username=handle,
            full_name=_first(item, "fullName", default=""),
            biography=lookup(item, "biography", ""),
            profile_pic_url=_first(item, "profilePicUrl", "profilePicUrlHD", default=""),
            followers_count=_as_int(lookup(item, "followersCount", 0)),
            following_count=_as_int(lookup(item, "followsCount", 0)),
            posts_count=_as_int(posts_count),
            is_verified=bool(_first(item, "verified", "isVerified", default=False)),
            is_business_account=bool(lookup(item, "isBusinessAccount", False)),
            external_url=lookup(item, "externalUrl"),
            business_category_name=lookup(item, "businessCategoryName"),
        )


class PostParser:
    """Builds PostData from a scraping-actor post item."""

    @staticmethod
    def normalize_type(raw_type: Optional[str]) -> str:
        if raw_type == "Video":
            return "Video"
        if raw_type == "Sidecar":
            return "Sidecar"
        return "Image"

    @staticmethod
    def normalize_timestamp(item: dict) -> str:
        """Return the post time as an ISO-8601 UTC string."""
        taken_at = item.get("takenAtTimestamp")
        if taken_at:
            try:
                return datetime.fromtimestamp(float(taken_at), tz=timezone.utc).isoformat()
            except (TypeError, ValueError, OverflowError):
                logger.debug(f"Ignoring bad takenAtTimestamp: {taken_at!r}")

        timestamp = item.get("timestamp")
        if isinstance(timestamp, str) and timestamp:
            try:
                parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
            except ValueError:
                logger.debug(f"Ignoring bad timestamp: {timestamp!r}")
            else:
                if parsed.tzinfo is None:
                    parsed = parsed.replace(tzinfo=timezone.utc)
                return parsed.astimezone(timezone.utc).isoformat()

        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _extract_media_urls(item: dict) -> list[str]:
        """Collect all media URLs from a post item, carousel children included."""
        urls = []

        def add(url: Optional[str]):
            if url and url not in urls:
                urls.append(url)

        add(item.get("displayUrl") or item.get("imageUrl"))
        for image in item.get("images") or []:
            add(image)
        add(item.get("videoUrl"))

        for child in item.get("childPosts") or []:
            if isinstance(child, dict):
                add(child.get("displayUrl"))
                add(child.get("videoUrl"))

        return urls

    @classmethod
    def parse_item(cls, item: dict, fallback_url: str = "") -> PostData:
        """Parse a post item from an actor dataset."""
        short_code = item.get("shortCode") or ""
        caption = item.get("caption") or ""

        url = item.get("url") or fallback_url
        if not url and short_code:
            url = f"{INSTAGRAM_BASE_URL}/p/{short_code}/"

        views = item.get("videoViewCount") or item.get("videoPlayCount")

        owner = item.get("owner") if isinstance(item.get("owner"), dict) else {}

        return PostData(
            id=str(item.get("id") or short_code),
            short_code=short_code,
            url=url,
            owner_username=item.get("ownerUsername") or owner.get("username") or "",
            type=cls.normalize_type(item.get("type")),
            caption=caption,
            timestamp=cls.normalize_timestamp(item),
            likes_count=_as_int(item.get("likesCount")),
            comments_count=_as_int(item.get("commentsCount")),
            video_views_count=_as_int(views) if views else None,
            display_url=item.get("displayUrl") or item.get("imageUrl") or "",
            media_urls=cls._extract_media_urls(item),
            hashtags=item.get("hashtags") or extract_hashtags(caption),
            mentions=item.get("mentions") or extract_mentions(caption),
            is_sponsored=bool(item.get("isSponsored")),
            location_name=item.get("locationName"),
        )

    @classmethod
    def parse_items(cls, items: list[dict], owner_username: str = "") -> list[PostData]:
        """Parse a list of post items, skipping ones that fail validation."""
        posts = []
        for item in items:
            try:
                post = cls.parse_item(item)
            except Exception as e:
                logger.warning(f"Failed to parse post item: {e}")
                continue
            if owner_username and not post.owner_username:
                post.owner_username = owner_username
            posts.append(post)
        return posts
