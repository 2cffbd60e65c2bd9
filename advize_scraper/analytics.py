"""
Engagement statistics computed over a profile's recent posts.
"""

from collections import Counter, defaultdict
from typing import Optional

from .models import (
    DateEngagement,
    DayAnalysis,
    EngagementByType,
    HourAnalysis,
    InstagramAnalytics,
    MediaMix,
    MentionCount,
    PostData,
    ProfileData,
    ProfileStats,
    TagCount,
)

DAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
TOP_N = 10


def _round(value: float) -> int:
    # Half-up, not banker's rounding
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def engagement_rate(engagement: float, followers: int) -> float:
    """Engagement as a percentage of followers, two decimals (0 without followers)."""
    if followers <= 0:
        return 0.0
    return round(engagement / followers * 100, 2)


def posting_frequency(posts: list[PostData]) -> str:
    """Classify how often the account posts, based on the span of recent posts."""
    if len(posts) < 2:
        return "Unknown"

    times = sorted(post.taken_at for post in posts)
    days = (times[-1] - times[0]).total_seconds() / 86400
    if days <= 0:
        return "Daily"

    per_week = len(posts) / days * 7
    if per_week >= 7:
        return "Daily"
    if per_week >= 3:
        return "Every 2-3 days"
    if per_week >= 1:
        return "Weekly"
    return "Less than weekly"


def _media_stats(posts: list[PostData]) -> tuple[MediaMix, EngagementByType]:
    counts = Counter(post.type for post in posts)
    engagement = Counter()
    for post in posts:
        engagement[post.type] += post.engagement

    total = len(posts) or 1
    mix = MediaMix(
        image_percent=_round(counts["Image"] / total * 100),
        video_percent=_round(counts["Video"] / total * 100),
        sidecar_percent=_round(counts["Sidecar"] / total * 100),
    )

    def avg(kind: str) -> int:
        return _round(engagement[kind] / counts[kind]) if counts[kind] else 0

    return mix, EngagementByType(image=avg("Image"), video=avg("Video"), sidecar=avg("Sidecar"))


def _time_analysis(posts: list[PostData]) -> tuple[list[DayAnalysis], list[HourAnalysis]]:
    """Average engagement per weekday and per hour (UTC), best first."""
    day_stats = [[0, 0] for _ in range(7)]
    hour_stats = [[0, 0] for _ in range(24)]

    for post in posts:
        taken = post.taken_at
        # datetime.weekday() is Monday=0; DAYS starts on Sunday
        day_index = (taken.weekday() + 1) % 7
        day_stats[day_index][0] += post.engagement
        day_stats[day_index][1] += 1
        hour_stats[taken.hour][0] += post.engagement
        hour_stats[taken.hour][1] += 1

    days = [
        DayAnalysis(day=DAYS[i], avg_engagement=_round(total / count) if count else 0, post_count=count)
        for i, (total, count) in enumerate(day_stats)
    ]
    hours = [
        HourAnalysis(hour=i, avg_engagement=_round(total / count) if count else 0, post_count=count)
        for i, (total, count) in enumerate(hour_stats)
    ]
    # sorted() is stable, ties keep calendar order
    days = sorted(days, key=lambda d: d.avg_engagement, reverse=True)
    hours = sorted(hours, key=lambda h: h.avg_engagement, reverse=True)
    return days, hours


def _engagement_trend(posts: list[PostData]) -> list[DateEngagement]:
    by_date: dict[str, int] = defaultdict(int)
    for post in posts:
        by_date[post.taken_at.date().isoformat()] += post.engagement
    return [DateEngagement(date=d, engagement=e) for d, e in sorted(by_date.items())]


def _top(values: list[list[str]]) -> list[tuple[str, int]]:
    counts = Counter()
    for group in values:
        counts.update(group)
    return counts.most_common(TOP_N)


def build_profile_analytics(
    profile: ProfileData,
    posts: list[PostData],
    limit: int = 12,
) -> InstagramAnalytics:
    """
    Compute statistics over a profile's most recent posts.

    Args:
        profile: Parsed profile; updated in place with average metrics
        posts: Recent posts, newest first
        limit: Number of posts taken into account

    Returns:
        InstagramAnalytics with profile, recent posts and stats
    """
    recent = posts[:limit]

    total_likes = sum(post.likes_count for post in recent)
    total_comments = sum(post.comments_count for post in recent)
    total_views = sum(post.video_views_count or 0 for post in recent)

    avg_likes = _round(total_likes / len(recent)) if recent else 0
    avg_comments = _round(total_comments / len(recent)) if recent else 0
    avg_rate = engagement_rate(avg_likes + avg_comments, profile.followers_count)

    media_mix, by_type = _media_stats(recent)
    days, hours = _time_analysis(recent)

    profile.engagement_rate = avg_rate
    profile.avg_likes_per_post = avg_likes
    profile.avg_comments_per_post = avg_comments

    stats = ProfileStats(
        total_engagement=total_likes + total_comments,
        avg_engagement_rate=avg_rate,
        avg_likes_per_post=avg_likes,
        avg_comments_per_post=avg_comments,
        total_views=total_views,
        posting_frequency=posting_frequency(recent),
        top_hashtags=[TagCount(tag=t, count=c) for t, c in _top([p.hashtags for p in recent])],
        engagement_trend=_engagement_trend(recent),
        media_mix=media_mix,
        avg_engagement_by_type=by_type,
        top_mentions=[MentionCount(mention=m, count=c) for m, c in _top([p.mentions for p in recent])],
        day_of_week_analysis=days,
        hour_analysis=hours,
    )

    return InstagramAnalytics(profile=profile, recent_posts=recent, stats=stats)


def build_post_analytics(post: PostData, owner: Optional[ProfileData] = None) -> InstagramAnalytics:
    """Statistics for a single scraped post and its owner."""
    if owner is None:
        owner = ProfileData(username=post.owner_username)

    if owner.followers_count:
        post.engagement_rate = engagement_rate(post.engagement, owner.followers_count)

    media_mix, by_type = _media_stats([post])

    stats = ProfileStats(
        total_engagement=post.engagement,
        avg_engagement_rate=post.engagement_rate or 0.0,
        avg_likes_per_post=post.likes_count,
        avg_comments_per_post=post.comments_count,
        total_views=post.video_views_count or 0,
        posting_frequency="N/A",
        top_hashtags=[TagCount(tag=tag, count=1) for tag in post.hashtags],
        media_mix=media_mix,
        avg_engagement_by_type=by_type,
        top_mentions=[MentionCount(mention=m, count=1) for m in post.mentions],
    )

    return InstagramAnalytics(profile=owner, recent_posts=[post], stats=stats)
