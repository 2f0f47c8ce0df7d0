"""メインユースケース: AI音楽動画のプールを構築・拡張する"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from src.application.interfaces.pool_searcher import PoolSearcher
from src.domain.categories import compute_category_buckets
from src.domain.dedup import SeenSet
from src.domain.entities import DateWindow, SearchOptions, VideoItem
from src.domain.exceptions import AiMuzonError
from src.domain.time_utils import minus_months, month_window_from, to_rfc3339, utc_now
from src.infrastructure.logging_config import get_logger, trace_chain

logger = get_logger(__name__)

DEFAULT_KEYWORDS: tuple[str, ...] = (
    "ai music video",
    "ai song",
    "ai ethnic music",
    "ai music",
)


@dataclass
class DiscoverPoolConfig:
    """ユースケースの設定"""

    keywords: tuple[str, ...] = DEFAULT_KEYWORDS
    batch_size: int = 30
    month_cap: int = 12  # 連続して空だった場合に遡る最大月数
    initial_window_months: int = 6


class DiscoverPoolUseCase:
    """
    複数キーワード × 過去に遡る期間ウィンドウで動画プールを育てる

    - initial_load: 各キーワードについて直近N ヶ月を1回ずつ取得
    - load_more: キーワードをラウンドロビンで1つ選び、次に古い1ヶ月を取得
      （新しい動画が見つからなければ month_cap ヶ月まで遡る）

    プール全体で共有する表示済みID集合を持ち、同じ動画は二度返さない。
    """

    def __init__(
        self,
        searcher: PoolSearcher,
        config: DiscoverPoolConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.searcher = searcher
        self.config = config or DiscoverPoolConfig()
        self._clock = clock

        self._pool: list[VideoItem] = []
        self._buckets: dict[str, list[VideoItem]] = compute_category_buckets([])
        self._seen = SeenSet()
        self._months_back: dict[str, int] = {}
        self._keyword_cursor = 0
        self._oldest_published: datetime | None = None
        self._loading_more = False

        self.last_error: AiMuzonError | None = None

    @property
    def pool(self) -> list[VideoItem]:
        return list(self._pool)

    @property
    def category_buckets(self) -> dict[str, list[VideoItem]]:
        return {title: list(items) for title, items in self._buckets.items()}

    @property
    def months_back(self) -> dict[str, int]:
        return dict(self._months_back)

    @property
    def oldest_published(self) -> datetime | None:
        return self._oldest_published

    @property
    def is_loading_more(self) -> bool:
        return self._loading_more

    def _options_for(self, window: DateWindow) -> SearchOptions:
        return SearchOptions(
            order="date",
            max_results=self.config.batch_size,
            published_after=to_rfc3339(window.published_after),
            published_before=to_rfc3339(window.published_before),
        )

    def _extend_pool(self, items: list[VideoItem]) -> None:
        self._seen.add_all(items)
        self._pool.extend(items)
        self._buckets = compute_category_buckets(self._pool)

    @trace_chain(name="initial_load")
    async def initial_load(
        self,
        progress_callback: Callable[[float], None] | None = None,
        error_callback: Callable[[str, AiMuzonError], None] | None = None,
    ) -> list[VideoItem]:
        """
        初回読み込み

        キーワードごとの失敗は error_callback に通知して次のキーワードへ進む。
        進捗（0.0〜1.0）は成功・失敗にかかわらずキーワードごとに通知する。

        Args:
            progress_callback: 進捗コールバック (progress: float)
            error_callback: エラーコールバック (keyword: str, error: AiMuzonError)

        Returns:
            今回追加された動画
        """
        now = self._clock()
        window = DateWindow(
            published_after=minus_months(now, self.config.initial_window_months),
            published_before=now,
        )
        self._oldest_published = window.published_after
        options = self._options_for(window)

        keywords = self.config.keywords
        total = len(keywords)
        added: list[VideoItem] = []
        logger.info(f"[Pool] 初回読み込み開始: キーワード{total}件, 期間={options.published_after}〜")

        for i, keyword in enumerate(keywords):
            try:
                response = await self.searcher.search(keyword, None, options)
                fresh = self._seen.take_unseen(response.items)
                added.extend(fresh)
                self._months_back[keyword] = 1
                logger.info(f"  [{i+1}/{total}] {keyword!r}: {len(fresh)}件追加")
            except AiMuzonError as e:
                self.last_error = e
                logger.warning(f"  [{i+1}/{total}] {keyword!r}: 取得失敗 - {e}")
                if error_callback:
                    error_callback(keyword, e)
            finally:
                if progress_callback:
                    progress_callback(min(1.0, (i + 1) / total))

        self._pool.extend(added)
        self._buckets = compute_category_buckets(self._pool)
        logger.info(f"[Pool] 初回読み込み完了: プール{len(self._pool)}件")
        return added

    def next_keyword(self) -> str:
        """ラウンドロビンで次のキーワードを選ぶ"""
        keywords = self.config.keywords
        index = self._keyword_cursor % len(keywords)
        self._keyword_cursor = (index + 1) % len(keywords)
        return keywords[index]

    async def _fetch_next_month_window(self) -> list[VideoItem]:
        keyword = self.next_keyword()
        oldest = self._oldest_published or self._clock()
        counter = self._months_back.get(keyword, 1)

        for _ in range(self.config.month_cap):
            window = month_window_from(oldest, counter)
            response = await self.searcher.search(keyword, None, self._options_for(window))
            fresh = self._seen.unseen(response.items)
            if fresh:
                self._months_back[keyword] = counter + 1
                logger.info(
                    f"[Pool] {keyword!r} {counter}ヶ月前のウィンドウで{len(fresh)}件取得"
                )
                return fresh
            counter += 1
            self._months_back[keyword] = counter

        logger.info(f"[Pool] {keyword!r}: {self.config.month_cap}ヶ月遡っても新しい動画なし")
        return []

    @trace_chain(name="load_more")
    async def load_more(self) -> list[VideoItem]:
        """
        追加読み込み

        実行中に呼ばれた場合は何もせず空リストを返す（キューイングしない）。

        Returns:
            今回追加された動画

        Raises:
            AiMuzonError: 検索に失敗した場合（last_error にも記録）
        """
        if self._loading_more:
            logger.debug("[Pool] load_more 実行中のためスキップ")
            return []

        self._loading_more = True
        try:
            items = await self._fetch_next_month_window()
            if items:
                self._extend_pool(items)
            return items
        except AiMuzonError as e:
            self.last_error = e
            logger.error(f"[Pool] 追加読み込みに失敗: {e}")
            raise
        finally:
            self._loading_more = False
