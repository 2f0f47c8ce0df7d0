"""テスト共通のヘルパー"""

from datetime import datetime, timezone

import pytest

from src.domain.entities import ChannelStats, SearchCandidate, VideoDetails, VideoItem

FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_candidate(
    video_id: str,
    title: str = "Calm ai melody",
    published_at: str = "2024-06-01T00:00:00Z",
    made_for_kids: bool = False,
    subscribers: int | None = None,
    tags: tuple[str, ...] = (),
    description: str = "",
    yt_rating: str | None = None,
    with_details: bool = True,
) -> SearchCandidate:
    details = (
        VideoDetails(
            video_id=video_id,
            duration="PT3M",
            view_count="100",
            tags=tags,
            category_id="10",
            made_for_kids=made_for_kids,
            yt_rating=yt_rating,
        )
        if with_details
        else None
    )
    channel = (
        ChannelStats(channel_id=f"ch-{video_id}", subscriber_count=subscribers)
        if subscribers is not None
        else None
    )
    return SearchCandidate(
        video_id=video_id,
        title=title,
        description=description,
        channel_id=f"ch-{video_id}",
        channel_title=f"Channel {video_id}",
        published_at=published_at,
        thumbnail_url=f"https://i.ytimg.com/vi/{video_id}/mqdefault.jpg",
        details=details,
        channel=channel,
    )


def make_video(
    video_id: str,
    title: str = "Calm ai melody",
    view_count: str | None = "0",
    published_at: str | None = "2024-06-01T00:00:00Z",
    category_id: str | None = None,
    made_for_kids: bool = False,
    description: str = "",
    tags: tuple[str, ...] = (),
) -> VideoItem:
    return VideoItem(
        video_id=video_id,
        title=title,
        channel_title="Channel",
        published_at=published_at,
        view_count=view_count,
        video_category_id=category_id,
        made_for_kids=made_for_kids,
        description=description,
        tags=tags,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW
