"""検索の公開窓口（キャッシュ・同時実行の重複排除・表示済み除外）"""

import asyncio
import copy
import re
from dataclasses import replace
from datetime import datetime
from typing import Callable

from src.application.interfaces.search_backend import SearchBackend
from src.domain.dedup import SeenRegistry
from src.domain.entities import SearchOptions, SearchResponse
from src.domain.exceptions import InvalidQueryError
from src.domain.safety import is_title_blocked
from src.domain.time_utils import normalize_window_strict, to_rfc3339, utc_now
from src.infrastructure.logging_config import LogContext, get_logger, trace_chain
from src.infrastructure.response_cache import ResponseCache, stable_key

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


def sanitize_query(query: str | None) -> str:
    """前後の空白を除去し、連続する空白を1つにまとめる"""
    return _WHITESPACE.sub(" ", (query or "").strip())


def normalize_options(options: SearchOptions | None, now: datetime | None = None) -> SearchOptions:
    """
    検索オプションを正規化

    - 並び順の既定値は date
    - 期間が未指定なら直近1ヶ月
    - published_after >= published_before は InvalidQueryError
    """
    options = options or SearchOptions()
    window = normalize_window_strict(options.published_after, options.published_before, now=now)
    return replace(
        options,
        order=options.order or "date",
        published_after=to_rfc3339(window.published_after),
        published_before=to_rfc3339(window.published_before),
    )


class SearchService:
    """
    search(query, page_token, options) の実装

    1. メモリ / 永続キャッシュ（TTL付き）
    2. 同じキーの実行中リクエストがあれば相乗りする（上流への同時リクエストはキーごとに1つ）
    3. 取得結果からタイトルのブロック語と、同じクエリで表示済みの動画を除外
    """

    def __init__(
        self,
        backend: SearchBackend,
        cache: ResponseCache,
        seen: SeenRegistry | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.backend = backend
        self.cache = cache
        self.seen = seen or SeenRegistry()
        self._clock = clock
        self._in_flight: dict[str, asyncio.Task[SearchResponse]] = {}

    @property
    def mode(self) -> str:
        return self.backend.mode

    def make_key(self, query: str, page_token: str | None, options: SearchOptions) -> str:
        return stable_key({
            "q": query,
            "pageToken": page_token or "",
            "opts": options.to_dict(),
            "mode": self.backend.mode,
        })

    @trace_chain(name="search")
    async def search(
        self,
        query: str,
        page_token: str | None = None,
        options: SearchOptions | None = None,
    ) -> SearchResponse:
        """
        動画を検索

        Args:
            query: 検索クエリ
            page_token: 続きのページトークン
            options: 検索オプション

        Returns:
            SearchResponse（キャッシュヒット時は cached=True）

        Raises:
            InvalidQueryError: クエリが空、または期間指定が不正
            UpstreamQuotaError / UpstreamBadRequestError / UpstreamTransientError
        """
        q = sanitize_query(query)
        if not q:
            raise InvalidQueryError("Query is empty")
        normalized = normalize_options(options, now=self._clock())
        key = self.make_key(q, page_token, normalized)
        ctx = LogContext(q=q, page_token=page_token, mode=self.backend.mode)

        hit = self.cache.get(key)
        if hit is not None:
            payload, tier = hit
            result = SearchResponse.from_dict(payload)
            result.cached = True
            logger.info(f"[Search][cache:{tier}] hit {ctx} | items={len(result.items)}")
            return result

        in_flight = self._in_flight.get(key)
        if in_flight is not None:
            logger.info(f"[Search] 実行中のリクエストに相乗り {ctx}")
            return copy.deepcopy(await asyncio.shield(in_flight))

        task = asyncio.ensure_future(self._fetch_and_store(key, q, page_token, normalized, ctx))
        self._in_flight[key] = task
        return copy.deepcopy(await asyncio.shield(task))

    async def _fetch_and_store(
        self,
        key: str,
        query: str,
        page_token: str | None,
        options: SearchOptions,
        ctx: LogContext,
    ) -> SearchResponse:
        try:
            logger.info(f"[Search] fetch {ctx}")
            result = await self.backend.fetch(query, page_token=page_token, options=options)

            safe_items = [v for v in result.items if v.video_id and not is_title_blocked(v.title)]
            unique = self.seen.scope(query).take_unseen(safe_items)
            response = SearchResponse(
                query=query,
                items=unique,
                next_page_token=result.next_page_token,
            )
            logger.info(
                f"[Search] response {ctx} | items={len(unique)} "
                f"(表示済み除外 {len(safe_items) - len(unique)}件) | next={response.next_page_token}"
            )
            self.cache.set(key, response.to_dict())
            return response
        except Exception as e:
            logger.error(f"[Search] Error {ctx}: {e}")
            raise
        finally:
            self._in_flight.pop(key, None)
