"""YouTube検索インターフェース"""

from typing import Protocol

from src.domain.entities import SearchOptions, UpstreamPage


class YouTubeSearcher(Protocol):
    """上流API（search / videos / channels）から1ページを取得するインターフェース"""

    async def fetch_page(
        self,
        query: str,
        page_token: str | None = None,
        options: SearchOptions | None = None,
        max_results_cap: int = 30,
    ) -> UpstreamPage:
        """
        検索結果に詳細・チャンネル統計を結合して返す

        Args:
            query: 検索クエリ
            page_token: 続きのページトークン
            options: 検索オプション
            max_results_cap: 取得件数の上限

        Returns:
            UpstreamPage: 結合済みの候補と nextPageToken
        """
        ...
