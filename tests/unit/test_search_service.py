"""検索サービス（キャッシュ・相乗り・表示済み除外）のテスト"""

import asyncio

import pytest
from conftest import FIXED_NOW, make_video

from src.application.search_service import SearchService, normalize_options, sanitize_query
from src.domain.entities import SearchOptions, SearchResponse
from src.domain.exceptions import InvalidQueryError, UpstreamQuotaError
from src.infrastructure.response_cache import ResponseCache


class FakeBackend:
    """呼び出し回数を数える取得経路"""

    mode = "yt"

    def __init__(self, pages: list[list[str]] | None = None, error: Exception | None = None):
        self.pages = pages or [["v1", "v2"]]
        self.error = error
        self.calls: list[tuple[str, str | None, SearchOptions | None]] = []
        self.gate: asyncio.Event | None = None

    async def fetch(self, query, page_token=None, options=None) -> SearchResponse:
        self.calls.append((query, page_token, options))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        ids = self.pages[min(len(self.calls), len(self.pages)) - 1]
        return SearchResponse(
            query=query,
            items=[make_video(video_id) for video_id in ids],
            next_page_token="NEXT",
        )


def make_service(backend: FakeBackend) -> SearchService:
    return SearchService(backend=backend, cache=ResponseCache(ttl_sec=900), clock=lambda: FIXED_NOW)


class TestSanitizeQuery:
    def test_collapse_whitespace(self) -> None:
        assert sanitize_query("  ai   music\tvideo ") == "ai music video"
        assert sanitize_query(None) == ""


class TestNormalizeOptions:
    """検索オプションの正規化のテスト"""

    def test_defaults(self) -> None:
        """並び順は date、期間は直近1ヶ月"""
        options = normalize_options(None, now=FIXED_NOW)
        assert options.order == "date"
        assert options.published_after == "2024-05-15T12:00:00.000Z"
        assert options.published_before == "2024-06-15T12:00:00.000Z"

    def test_keeps_explicit_values(self) -> None:
        options = normalize_options(
            SearchOptions(order="viewCount", max_results=10, published_after="2024-06-01T00:00:00Z"),
            now=FIXED_NOW,
        )
        assert options.order == "viewCount"
        assert options.max_results == 10
        assert options.published_after == "2024-06-01T00:00:00.000Z"


class TestSearchService:
    """SearchService.search のテスト"""

    @pytest.mark.asyncio
    async def test_empty_query_rejected(self) -> None:
        """空のクエリは上流を呼ばずにエラー"""
        backend = FakeBackend()
        with pytest.raises(InvalidQueryError):
            await make_service(backend).search("   ")
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_inverted_window_rejected(self) -> None:
        """逆転した期間は上流を呼ばずにエラー"""
        backend = FakeBackend()
        options = SearchOptions(
            published_after="2024-06-10T00:00:00Z",
            published_before="2024-06-01T00:00:00Z",
        )
        with pytest.raises(InvalidQueryError):
            await make_service(backend).search("ai song", options=options)
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_cache_hit(self) -> None:
        """同じ条件の2回目はキャッシュから返す"""
        backend = FakeBackend()
        service = make_service(backend)

        first = await service.search("ai song")
        second = await service.search("  ai   song ")

        assert len(backend.calls) == 1
        assert first.cached is False
        assert second.cached is True
        assert [v.video_id for v in second.items] == ["v1", "v2"]

    @pytest.mark.asyncio
    async def test_backend_receives_normalized_options(self) -> None:
        backend = FakeBackend()
        await make_service(backend).search("ai song", page_token="TOKEN")

        query, page_token, options = backend.calls[0]
        assert query == "ai song"
        assert page_token == "TOKEN"
        assert options.order == "date"
        assert options.published_before == "2024-06-15T12:00:00.000Z"

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_fetch(self) -> None:
        """同時に同じキーで呼ばれても上流へは1回だけ"""
        backend = FakeBackend()
        backend.gate = asyncio.Event()
        service = make_service(backend)

        tasks = [asyncio.ensure_future(service.search("ai song")) for _ in range(3)]
        await asyncio.sleep(0)
        backend.gate.set()
        results = await asyncio.gather(*tasks)

        assert len(backend.calls) == 1
        assert all([v.video_id for v in r.items] == ["v1", "v2"] for r in results)
        # 呼び出し元ごとに別のオブジェクト
        assert results[0] is not results[1]
        assert results[0].items is not results[1].items

    @pytest.mark.asyncio
    async def test_seen_items_removed_per_query(self) -> None:
        """同じクエリで表示済みの動画は次のページから除く"""
        backend = FakeBackend(pages=[["v1", "v2"], ["v2", "v3"]])
        service = make_service(backend)

        first = await service.search("ai song")
        second = await service.search("ai song", page_token="NEXT")
        other = await service.search("ai music")

        assert [v.video_id for v in first.items] == ["v1", "v2"]
        assert [v.video_id for v in second.items] == ["v3"]
        # 別のクエリは独立
        assert [v.video_id for v in other.items] == ["v2", "v3"]

    @pytest.mark.asyncio
    async def test_title_pass(self) -> None:
        """タイトルにブロック語を含む動画は返さない"""

        class BlockedTitleBackend(FakeBackend):
            async def fetch(self, query, page_token=None, options=None) -> SearchResponse:
                return SearchResponse(
                    query=query,
                    items=[make_video("ok"), make_video("bad", title="NSFW clip")],
                )

        result = await make_service(BlockedTitleBackend()).search("ai song")
        assert [v.video_id for v in result.items] == ["ok"]

    @pytest.mark.asyncio
    async def test_errors_propagate_and_are_not_cached(self) -> None:
        """上流エラーは伝え、キャッシュしない"""
        backend = FakeBackend(error=UpstreamQuotaError("quota"))
        service = make_service(backend)

        with pytest.raises(UpstreamQuotaError):
            await service.search("ai song")
        backend.error = None
        result = await service.search("ai song")

        assert len(backend.calls) == 2
        assert result.cached is False

    @pytest.mark.asyncio
    async def test_cached_results_are_copies(self) -> None:
        """返した結果を変更してもキャッシュは変わらない"""
        service = make_service(FakeBackend())
        first = await service.search("ai song")
        first.items.clear()

        second = await service.search("ai song")
        assert [v.video_id for v in second.items] == ["v1", "v2"]
