"""検索バックエンド（取得経路）インターフェース"""

from typing import Protocol

from src.domain.entities import SearchMode, SearchOptions, SearchResponse


class SearchBackend(Protocol):
    """YouTube直接 / プロキシ経由の取得経路"""

    mode: SearchMode

    async def fetch(
        self,
        query: str,
        page_token: str | None = None,
        options: SearchOptions | None = None,
    ) -> SearchResponse:
        """
        フィルタ・並び替え済みの検索結果を取得

        Raises:
            UpstreamQuotaError / UpstreamBadRequestError / UpstreamTransientError
        """
        ...
