"""
Data models for scraped Instagram data using Pydantic for validation.

Models serialize with camelCase keys, the shape the platform UI reads.
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ProfileData(CamelModel):
    """Instagram profile/user data."""
    id: str = ""
    username: str
    full_name: str = ""
    biography: str = ""
    profile_pic_url: str = ""
    followers_count: int = 0
    following_count: int = 0
    posts_count: int = 0
    is_verified: bool = False
    is_business_account: bool = False
    external_url: Optional[str] = None
    business_category_name: Optional[str] = None
    engagement_rate: Optional[float] = None
    avg_likes_per_post: Optional[int] = None
    avg_comments_per_post: Optional[int] = None


PostType = Literal["Image", "Video", "Sidecar"]


class PostData(CamelModel):
    """Instagram post data."""
    id: str
    short_code: str = ""
    url: str = ""
    owner_username: str = ""
    type: PostType = "Image"
    caption: str = ""
    timestamp: str = Field(default_factory=utc_now_iso, description="ISO-8601 UTC")
    likes_count: int = 0
    comments_count: int = 0
    video_views_count: Optional[int] = None
    display_url: str = ""
    media_urls: list[str] = Field(default_factory=list)
    hashtags: list[str] = Field(default_factory=list)
    mentions: list[str] = Field(default_factory=list)
    is_sponsored: bool = False
    location_name: Optional[str] = None
    engagement_rate: Optional[float] = None

    @property
    def engagement(self) -> int:
        return self.likes_count + self.comments_count

    @property
    def taken_at(self) -> datetime:
        taken = datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        if taken.tzinfo is None:
            taken = taken.replace(tzinfo=timezone.utc)
        return taken.astimezone(timezone.utc)


class TagCount(CamelModel):
    tag: str
    count: int


class MentionCount(CamelModel):
    mention: str
    count: int


class DateEngagement(CamelModel):
    date: str
    engagement: int


class MediaMix(CamelModel):
    image_percent: int = 0
    video_percent: int = 0
    sidecar_percent: int = 0


class EngagementByType(CamelModel):
    image: int = 0
    video: int = 0
    sidecar: int = 0


class DayAnalysis(CamelModel):
    day: str
    avg_engagement: int
    post_count: int


class HourAnalysis(CamelModel):
    hour: int
    avg_engagement: int
    post_count: int


class ProfileStats(CamelModel):
    """Aggregate engagement statistics over recent posts."""
    total_engagement: int = 0
    avg_engagement_rate: float = 0.0
    avg_likes_per_post: int = 0
    avg_comments_per_post: int = 0
    total_views: int = 0
    posting_frequency: str = "Unknown"
    top_hashtags: list[TagCount] = Field(default_factory=list)
    engagement_trend: list[DateEngagement] = Field(default_factory=list)
    media_mix: MediaMix = Field(default_factory=MediaMix)
    avg_engagement_by_type: EngagementByType = Field(default_factory=EngagementByType)
    top_mentions: list[MentionCount] = Field(default_factory=list)
    day_of_week_analysis: list[DayAnalysis] = Field(default_factory=list)
    hour_analysis: list[HourAnalysis] = Field(default_factory=list)


class InstagramAnalytics(CamelModel):
    """Profile, recent posts and their statistics for one scrape."""
    profile: ProfileData
    recent_posts: list[PostData] = Field(default_factory=list)
    stats: ProfileStats = Field(default_factory=ProfileStats)
    last_updated: str = Field(default_factory=utc_now_iso)


class ScrapeRequest(CamelModel):
    """Input of one /api/instagram call; ``type`` defaults to ``profile``."""
    url: Optional[str] = None
    type: Optional[str] = None
    results_type: Optional[str] = None


class ScrapeResult(CamelModel):
    """Outcome of exactly one scrape request."""
    success: bool
    data: Optional[InstagramAnalytics] = None
    error: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, data: InstagramAnalytics) -> "ScrapeResult":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, reason: Optional[str] = None) -> "ScrapeResult":
        return cls(success=False, error=error, reason=reason)
