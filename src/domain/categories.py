"""カテゴリ分類（トップ画面の各行）"""

from dataclasses import dataclass
from typing import Sequence

from src.domain.entities import VideoItem
from src.domain.time_utils import parse_iso

TOP_MOST_VIEWS = "Top Most Views"
TOP_NEWEST = "Top 10 of Newest"
NEWEST_LIMIT = 10


@dataclass(frozen=True)
class CategoryRule:
    """トピック行の判定ルール"""

    title: str
    category_id: str | None
    keywords: tuple[str, ...]
    match_made_for_kids: bool = False

    def matches(self, video: VideoItem, haystack: str) -> bool:
        if self.category_id is not None and (video.video_category_id or "") == self.category_id:
            return True
        if self.match_made_for_kids and video.made_for_kids:
            return True
        return any(keyword in haystack for keyword in self.keywords)


TOPIC_RULES: tuple[CategoryRule, ...] = (
    CategoryRule("Music", "10", ("music", "song", "instrumental", "track", "lyrics")),
    CategoryRule(
        "Sports",
        "17",
        ("sport", "football", "soccer", "basketball", "cricket", "highlights", "match", "nba", "nfl"),
    ),
    CategoryRule(
        "Kids",
        None,
        ("kids", "kid", "children", "child", "nursery", "cartoon", "family", "baby"),
        match_made_for_kids=True,
    ),
    CategoryRule("News", "25", ("news", "breaking", "headline", "update", "report")),
    CategoryRule(
        "Entertainment",
        "24",
        ("entertainment", "funny", "comedy", "prank", "viral", "trending", "meme"),
    ),
    CategoryRule(
        "Educational",
        "27",
        ("tutorial", "how to", "lesson", "learn", "education", "science", "diy", "explained"),
    ),
)

CATEGORY_ROWS: tuple[str, ...] = (TOP_MOST_VIEWS, TOP_NEWEST) + tuple(rule.title for rule in TOPIC_RULES)


def _view_count(video: VideoItem) -> int:
    value = (video.view_count or "").strip()
    return int(value) if value.isdigit() else 0


def _published_ts(video: VideoItem) -> float:
    published = parse_iso(video.published_at)
    return published.timestamp() if published else float("-inf")


def _haystack(video: VideoItem) -> str:
    tags = " ".join(str(tag).lower() for tag in video.tags)
    return f"{video.title.lower()}\n{video.description.lower()}\n{tags}"


def compute_category_buckets(pool: Sequence[VideoItem]) -> dict[str, list[VideoItem]]:
    """
    プール全体から各行の動画リストを計算する

    プールが変わるたびに全体を再計算する前提。トピック行は排他的ではなく、
    1本の動画が複数の行に入ることがある。

    Args:
        pool: 重複排除済みの動画プール

    Returns:
        行タイトル → 動画リスト（CATEGORY_ROWS の順）
    """
    buckets: dict[str, list[VideoItem]] = {
        TOP_MOST_VIEWS: sorted(pool, key=_view_count, reverse=True),
        TOP_NEWEST: sorted(pool, key=_published_ts, reverse=True)[:NEWEST_LIMIT],
    }

    topic_seen: dict[str, set[str]] = {rule.title: set() for rule in TOPIC_RULES}
    for rule in TOPIC_RULES:
        buckets[rule.title] = []

    for video in pool:
        if not video.video_id:
            continue
        haystack = _haystack(video)
        for rule in TOPIC_RULES:
            seen = topic_seen[rule.title]
            if video.video_id in seen or not rule.matches(video, haystack):
                continue
            seen.add(video.video_id)
            buckets[rule.title].append(video)

    return buckets
