"""共通パイプラインのテスト"""

from unittest.mock import AsyncMock

import pytest
from conftest import make_candidate

from src.application.pipeline import DirectSearchBackend, process_page
from src.domain.entities import DIRECT_MAX_RESULTS, SearchOptions, UpstreamPage
from src.domain.exceptions import PartialEnrichmentError, UpstreamTransientError


class TestProcessPage:
    """process_page のテスト"""

    def test_filters_ranks_and_builds_items(self) -> None:
        """安全フィルタ → 並び替え → VideoItem"""
        page = UpstreamPage(
            candidates=[
                make_candidate("plain", published_at="2024-06-01T00:00:00Z"),
                make_candidate("blocked", title="gore ai clip"),
                make_candidate("kids", made_for_kids=True, published_at="2024-01-01T00:00:00Z"),
                make_candidate("restricted", yt_rating="ytAgeRestricted"),
            ],
        )
        items = process_page(page, "date", max_allowed_age=14)
        assert [v.video_id for v in items] == ["kids", "plain"]
        assert items[0].made_for_kids is True

    def test_enrichment_failure_keeps_candidates(self) -> None:
        """詳細が取れなかった候補も情報なしとして残す"""
        page = UpstreamPage(
            candidates=[make_candidate("v1", with_details=False)],
            enrichment_failures=[PartialEnrichmentError("videos", UpstreamTransientError("boom"))],
        )
        items = process_page(page, "date", max_allowed_age=14)
        assert [v.video_id for v in items] == ["v1"]
        assert items[0].duration is None
        assert items[0].made_for_kids is False

    def test_drops_items_without_id(self) -> None:
        page = UpstreamPage(candidates=[make_candidate("")])
        assert process_page(page, "date", max_allowed_age=14) == []


class TestDirectSearchBackend:
    """DirectSearchBackend のテスト"""

    @pytest.mark.asyncio
    async def test_fetch_uses_direct_cap(self) -> None:
        """直接取得は上限30件で上流を呼ぶ"""
        searcher = AsyncMock()
        searcher.fetch_page.return_value = UpstreamPage(
            candidates=[make_candidate("v1")],
            next_page_token="NEXT",
        )
        backend = DirectSearchBackend(searcher, max_allowed_age=14)

        options = SearchOptions(order="date", max_results=99)
        result = await backend.fetch("ai song", page_token="TOKEN", options=options)

        searcher.fetch_page.assert_awaited_once_with(
            "ai song",
            page_token="TOKEN",
            options=options,
            max_results_cap=DIRECT_MAX_RESULTS,
        )
        assert backend.mode == "yt"
        assert result.query == "ai song"
        assert [v.video_id for v in result.items] == ["v1"]
        assert result.next_page_token == "NEXT"
        assert result.cached is False
