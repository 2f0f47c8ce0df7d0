"""プロキシサーバー側の検索ユースケース"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable

from src.application.interfaces.youtube_searcher import YouTubeSearcher
from src.application.pipeline import process_page
from src.domain.entities import PROXY_MAX_RESULTS, SearchOptions, SearchResponse
from src.domain.exceptions import InvalidQueryError
from src.domain.time_utils import normalize_window_clamped, to_rfc3339, utc_now
from src.infrastructure.library_storage import RecentSearchLog
from src.infrastructure.logging_config import get_logger, trace_chain
from src.infrastructure.response_cache import ResponseCache

logger = get_logger(__name__)

ALLOWED_ORDERS = frozenset({"date", "rating", "relevance", "title", "videoCount", "viewCount"})
DEFAULT_PROXY_RESULTS = 24


def _param(params: Mapping[str, Any], name: str) -> str:
    return str(params.get(name) or "").strip()


class ProxySearchUseCase:
    """
    /api/search の処理本体

    クライアント側と異なり、期間指定の不整合は拒否せずに補正する
    （未来の publishedBefore は現在時刻に、逆転した期間は before の1秒前に）。
    """

    def __init__(
        self,
        searcher_factory: Callable[[str], YouTubeSearcher],
        cache: ResponseCache,
        default_api_key: str | None = None,
        max_allowed_age: int = 14,
        recent_searches: RecentSearchLog | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Args:
            searcher_factory: APIキーから上流クライアントを得る関数
            cache: レスポンスキャッシュ（既定TTL 3600秒）
            default_api_key: サーバーに設定されたAPIキー
            max_allowed_age: 視聴者の上限年齢
            recent_searches: 最近の検索の記録先（任意）
            clock: 現在時刻（テスト用）
        """
        self.searcher_factory = searcher_factory
        self.cache = cache
        self.default_api_key = (default_api_key or "").strip()
        self.max_allowed_age = max_allowed_age
        self.recent_searches = recent_searches
        self._clock = clock

    def normalize(self, params: Mapping[str, Any]) -> dict[str, str]:
        """リクエストパラメータを正規化（YouTube APIの検証エラーになる値を補正）"""
        q = _param(params, "q")
        if not q:
            raise InvalidQueryError("q is required")

        order = _param(params, "order")
        if order and order not in ALLOWED_ORDERS:
            order = "date"

        after, before = normalize_window_clamped(
            _param(params, "publishedAfter"),
            _param(params, "publishedBefore"),
            now=self._clock(),
        )

        raw_max = _param(params, "maxResults")
        max_results = int(raw_max) if raw_max.isdigit() else DEFAULT_PROXY_RESULTS

        return {
            "q": q,
            "pageToken": _param(params, "pageToken"),
            "videoCategoryId": _param(params, "videoCategoryId"),
            "videoDuration": _param(params, "videoDuration"),
            "videoSyndicated": _param(params, "videoSyndicated"),
            "order": order,
            "maxResults": str(max(1, min(PROXY_MAX_RESULTS, max_results))),
            "publishedAfter": to_rfc3339(after) if after else "",
            "publishedBefore": to_rfc3339(before) if before else "",
        }

    @staticmethod
    def cache_key(normalized: Mapping[str, str]) -> str:
        return "yt:" + ":".join(
            normalized[name]
            for name in (
                "q", "pageToken", "videoCategoryId", "videoDuration", "videoSyndicated",
                "order", "maxResults", "publishedAfter", "publishedBefore",
            )
        )

    def _resolve_api_key(self, client_key: str | None) -> str:
        api_key = self.default_api_key or (client_key or "").strip()
        if not api_key:
            raise InvalidQueryError("Missing YOUTUBE_API_KEY on server")
        return api_key

    @trace_chain(name="proxy_search")
    async def search(self, params: Mapping[str, Any], client_key: str | None = None) -> dict[str, Any]:
        """
        検索してレスポンス辞書を返す

        Args:
            params: クエリパラメータ（q, pageToken, order, maxResults, publishedAfter, ...）
            client_key: リクエストに添付されたAPIキー（サーバーに未設定の場合のみ使用）

        Returns:
            {"q", "items", "nextPageToken", "cached"}

        Raises:
            InvalidQueryError: q が空、またはAPIキーがない
            UpstreamQuotaError / UpstreamBadRequestError / UpstreamTransientError
        """
        normalized = self.normalize(params)
        api_key = self._resolve_api_key(client_key)

        key = self.cache_key(normalized)
        hit = self.cache.get(key)
        if hit is not None:
            payload, _ = hit
            logger.info(f"[Proxy] cache hit: q={normalized['q']!r}")
            return {**payload, "cached": True}

        options = SearchOptions(
            order=normalized["order"] or None,
            max_results=int(normalized["maxResults"]),
            published_after=normalized["publishedAfter"] or None,
            published_before=normalized["publishedBefore"] or None,
            video_category_id=normalized["videoCategoryId"] or None,
            video_duration=normalized["videoDuration"] or None,
            video_syndicated=True if normalized["videoSyndicated"] == "true" else None,
        )
        searcher = self.searcher_factory(api_key)
        page = await searcher.fetch_page(
            normalized["q"],
            page_token=normalized["pageToken"] or None,
            options=options,
            max_results_cap=PROXY_MAX_RESULTS,
        )
        items = process_page(page, options.order, self.max_allowed_age)
        payload = SearchResponse(
            query=normalized["q"],
            items=items,
            next_page_token=page.next_page_token,
        ).to_dict()
        self.cache.set(key, payload)
        logger.info(f"[Proxy] q={normalized['q']!r} → {len(items)}件")

        if self.recent_searches is not None:
            try:
                self.recent_searches.record(normalized["q"])
            except OSError as e:
                logger.warning(f"[Proxy] 検索履歴の保存に失敗: {e}")

        return payload
