"""検索結果の共通パイプライン（安全フィルタ → 並び替え → 整形）

YouTube直接取得とプロキシサーバーの両方がこのモジュールを通る。
"""

from src.application.interfaces.youtube_searcher import YouTubeSearcher
from src.domain.entities import (
    DIRECT_MAX_RESULTS,
    SearchMode,
    SearchOptions,
    SearchResponse,
    UpstreamPage,
    VideoItem,
)
from src.domain.ranking import rank_candidates
from src.domain.safety import is_safe, is_title_blocked
from src.infrastructure.logging_config import get_logger

logger = get_logger(__name__)


def process_page(page: UpstreamPage, order: str | None, max_allowed_age: int) -> list[VideoItem]:
    """
    上流の1ページを表示用の動画リストに変換

    Args:
        page: 結合済みの候補
        order: 検索時の並び順（date のときのみ新しい順で同順位を解消）
        max_allowed_age: 視聴者の上限年齢

    Returns:
        フィルタ・並び替え済みの VideoItem リスト
    """
    for failure in page.enrichment_failures:
        logger.warning(f"[Pipeline] 情報不足のまま処理: {failure}")

    safe = [c for c in page.candidates if is_safe(c, max_allowed_age)]
    ranked = rank_candidates(safe, order)
    items = [
        item
        for item in (c.to_video_item() for c in ranked)
        if item.video_id and not is_title_blocked(item.title)
    ]

    logger.debug(
        f"[Pipeline] 候補{len(page.candidates)}件 → 安全{len(safe)}件 → 出力{len(items)}件"
    )
    return items


class DirectSearchBackend:
    """ブラウザ相当のクライアントから YouTube Data API を直接呼ぶ取得経路"""

    mode: SearchMode = "yt"

    def __init__(self, searcher: YouTubeSearcher, max_allowed_age: int = 14):
        self.searcher = searcher
        self.max_allowed_age = max_allowed_age

    async def fetch(
        self,
        query: str,
        page_token: str | None = None,
        options: SearchOptions | None = None,
    ) -> SearchResponse:
        options = options or SearchOptions()
        page = await self.searcher.fetch_page(
            query,
            page_token=page_token,
            options=options,
            max_results_cap=DIRECT_MAX_RESULTS,
        )
        items = process_page(page, options.order, self.max_allowed_age)
        return SearchResponse(query=query, items=items, next_page_token=page.next_page_token)
