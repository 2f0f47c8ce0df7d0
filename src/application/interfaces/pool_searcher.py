"""動画プール構築用の検索インターフェース"""

from typing import Protocol

from src.domain.entities import SearchOptions, SearchResponse


class PoolSearcher(Protocol):
    """キャッシュ・重複除外込みの検索（SearchService が実装する）"""

    async def search(
        self,
        query: str,
        page_token: str | None = None,
        options: SearchOptions | None = None,
    ) -> SearchResponse:
        """
        表示済みの動画を除いた検索結果を返す

        Raises:
            AiMuzonError: 検索の失敗
        """
        ...
