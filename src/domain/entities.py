"""ドメインエンティティ定義"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Literal

# 検索の取得経路（YouTube直接 / サーバープロキシ経由）
SearchMode = Literal["yt", "proxy"]

AGE_RESTRICTED_RATING = "ytAgeRestricted"

# 1回の検索で取得する件数の上限（直接取得 / プロキシ経由）
DIRECT_MAX_RESULTS = 30
PROXY_MAX_RESULTS = 50


@dataclass(frozen=True)
class DateWindow:
    """公開日時の検索ウィンドウ [published_after, published_before) を表す値オブジェクト"""

    published_after: datetime
    published_before: datetime

    def __post_init__(self) -> None:
        if self.published_after >= self.published_before:
            raise ValueError("published_after must be earlier than published_before")


@dataclass(frozen=True)
class VideoItem:
    """画面に表示する1本の動画"""

    video_id: str
    title: str = ""
    channel_title: str = ""
    thumbnail_url: str | None = None
    published_at: str | None = None
    duration: str | None = None  # ISO 8601 duration（PT3M20S など）
    view_count: str | None = None
    description: str = ""
    tags: tuple[str, ...] = ()
    video_category_id: str | None = None
    made_for_kids: bool = False

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"

    def to_dict(self) -> dict[str, Any]:
        """APIレスポンス形式（camelCase）に変換"""
        return {
            "videoId": self.video_id,
            "title": self.title,
            "channelTitle": self.channel_title,
            "thumbnailUrl": self.thumbnail_url,
            "publishedAt": self.published_at,
            "duration": self.duration,
            "viewCount": self.view_count,
            "description": self.description,
            "tags": list(self.tags),
            "videoCategoryId": self.video_category_id,
            "madeForKids": self.made_for_kids,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VideoItem":
        return cls(
            video_id=data["videoId"],
            title=data.get("title") or "",
            channel_title=data.get("channelTitle") or "",
            thumbnail_url=data.get("thumbnailUrl"),
            published_at=data.get("publishedAt"),
            duration=data.get("duration"),
            view_count=data.get("viewCount"),
            description=data.get("description") or "",
            tags=tuple(str(t) for t in data.get("tags") or ()),
            video_category_id=data.get("videoCategoryId"),
            made_for_kids=bool(data.get("madeForKids")),
        )


@dataclass(frozen=True)
class SearchOptions:
    """検索オプション（並び順・件数・期間・絞り込み）"""

    order: str | None = None  # date | viewCount | relevance | ...
    max_results: int | None = None
    published_after: str | None = None
    published_before: str | None = None
    video_category_id: str | None = None
    video_duration: str | None = None  # short | medium | long
    video_syndicated: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        """キャッシュキー用に、未指定の項目を除いた辞書を返す"""
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class VideoDetails:
    """videos.list から得られる詳細情報"""

    video_id: str
    duration: str | None = None
    view_count: str | None = None
    tags: tuple[str, ...] = ()
    category_id: str | None = None
    made_for_kids: bool = False
    yt_rating: str | None = None

    @property
    def is_age_restricted(self) -> bool:
        return self.yt_rating == AGE_RESTRICTED_RATING


@dataclass(frozen=True)
class ChannelStats:
    """channels.list から得られるチャンネル統計"""

    channel_id: str
    subscriber_count: int = 0


@dataclass(frozen=True)
class SearchCandidate:
    """
    search.list の1件に詳細・チャンネル統計を結合した候補

    詳細やチャンネル統計が取得できなかった場合は None のまま保持し、
    「キッズ向けではない・登録者0・年齢制限なし」として扱う
    """

    video_id: str
    title: str = ""
    description: str = ""
    channel_id: str | None = None
    channel_title: str = ""
    published_at: str | None = None
    thumbnail_url: str | None = None
    details: VideoDetails | None = None
    channel: ChannelStats | None = None

    @property
    def made_for_kids(self) -> bool:
        return self.details.made_for_kids if self.details else False

    @property
    def subscriber_count(self) -> int:
        return self.channel.subscriber_count if self.channel else 0

    @property
    def tags(self) -> tuple[str, ...]:
        return self.details.tags if self.details else ()

    def to_video_item(self) -> VideoItem:
        details = self.details
        return VideoItem(
            video_id=self.video_id,
            title=self.title,
            channel_title=self.channel_title,
            thumbnail_url=self.thumbnail_url,
            published_at=self.published_at,
            duration=details.duration if details else None,
            view_count=details.view_count if details else None,
            description=self.description,
            tags=self.tags,
            video_category_id=details.category_id if details else None,
            made_for_kids=self.made_for_kids,
        )


@dataclass
class UpstreamPage:
    """上流APIの1ページ分の結合済み結果"""

    candidates: list[SearchCandidate]
    next_page_token: str | None = None
    # 詳細・チャンネル取得の失敗（致命的ではない）
    enrichment_failures: list[Exception] = field(default_factory=list)


@dataclass
class SearchResponse:
    """search 操作の結果"""

    query: str
    items: list[VideoItem]
    next_page_token: str | None = None
    cached: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "q": self.query,
            "items": [item.to_dict() for item in self.items],
            "nextPageToken": self.next_page_token,
            "cached": self.cached,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResponse":
        return cls(
            query=data.get("q") or "",
            items=[VideoItem.from_dict(item) for item in data.get("items") or []],
            next_page_token=data.get("nextPageToken"),
            cached=bool(data.get("cached", False)),
        )
