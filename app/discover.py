"""AI音楽動画のディスカバリーCLI

python app/discover.py --more 2
python app/discover.py --query "ai ethnic music"
"""

import argparse
import asyncio
import sys
from pathlib import Path

# プロジェクトルートをパスに追加
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv(project_root / ".env")

from config.settings import Settings, get_settings
from src.application.interfaces.search_backend import SearchBackend
from src.application.pipeline import DirectSearchBackend
from src.application.search_service import SearchService
from src.application.usecases.discover_pool import DiscoverPoolConfig, DiscoverPoolUseCase
from src.domain.entities import VideoItem
from src.domain.exceptions import AiMuzonError
from src.infrastructure.logging_config import get_logger, setup_logging
from src.infrastructure.proxy_client import ProxySearchClient
from src.infrastructure.response_cache import ResponseCache
from src.infrastructure.youtube_data_api import YouTubeDataAPIClient

logger = get_logger(__name__)


def init_backend(settings: Settings) -> SearchBackend:
    """APIキーがあればYouTube直接、なければプロキシ経由"""
    if settings.has_direct_key:
        return DirectSearchBackend(
            searcher=YouTubeDataAPIClient(
                api_key=settings.YOUTUBE_API_KEY,
                timeout_sec=settings.UPSTREAM_TIMEOUT_SEC,
                max_attempts=settings.UPSTREAM_MAX_ATTEMPTS,
            ),
            max_allowed_age=settings.MAX_ALLOWED_AGE,
        )
    return ProxySearchClient(
        base_url=settings.PROXY_BASE_URL,
        timeout_sec=settings.UPSTREAM_TIMEOUT_SEC,
        max_attempts=settings.UPSTREAM_MAX_ATTEMPTS,
    )


def init_search_service(settings: Settings) -> SearchService:
    """DIで検索サービスを組み立て"""
    return SearchService(
        backend=init_backend(settings),
        cache=ResponseCache(
            ttl_sec=settings.CLIENT_CACHE_TTL_SEC,
            persistent_dir=settings.SESSION_CACHE_DIR,
        ),
    )


def init_usecase(settings: Settings, service: SearchService) -> DiscoverPoolUseCase:
    return DiscoverPoolUseCase(
        searcher=service,
        config=DiscoverPoolConfig(
            keywords=tuple(settings.DISCOVERY_KEYWORDS),
            batch_size=settings.BATCH_SIZE,
            month_cap=settings.MONTH_CAP,
            initial_window_months=settings.INITIAL_WINDOW_MONTHS,
        ),
    )


def render_row(title: str, items: list[VideoItem], limit: int) -> None:
    print(f"\n== {title} ({len(items)}) ==")
    for item in items[:limit]:
        published = (item.published_at or "")[:10]
        views = item.view_count or "-"
        print(f"  {published}  {views:>10}  {item.title[:60]}  [{item.channel_title}]")
        print(f"      {item.url}")


async def run_discover(usecase: DiscoverPoolUseCase, more: int, limit: int) -> int:
    def on_progress(progress: float) -> None:
        print(f"\r読み込み中... {progress:.0%}", end="", flush=True)

    def on_error(keyword: str, error: AiMuzonError) -> None:
        print(f"\n⚠️ {keyword!r} の取得に失敗: {error}", file=sys.stderr)

    await usecase.initial_load(progress_callback=on_progress, error_callback=on_error)
    print()

    for _ in range(more):
        try:
            added = await usecase.load_more()
        except AiMuzonError as e:
            print(f"⚠️ 追加読み込みに失敗: {e}", file=sys.stderr)
            break
        print(f"追加読み込み: {len(added)}件")

    for title, items in usecase.category_buckets.items():
        if items:
            render_row(title, items, limit)

    return 0 if usecase.pool or usecase.last_error is None else 1


async def run_query(service: SearchService, query: str, limit: int) -> int:
    try:
        response = await service.search(query)
    except AiMuzonError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    label = "キャッシュ" if response.cached else service.mode
    render_row(f"{response.query} ({label})", response.items, limit)
    if response.next_page_token:
        print(f"\nnextPageToken: {response.next_page_token}")
    return 0


async def main_async(args: argparse.Namespace, settings: Settings) -> int:
    service = init_search_service(settings)
    try:
        if args.query:
            return await run_query(service, args.query, args.limit)
        return await run_discover(init_usecase(settings, service), args.more, args.limit)
    finally:
        service.cache.close()
        if isinstance(service.backend, ProxySearchClient):
            await service.backend.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="AI音楽動画をカテゴリ別に一覧表示")
    parser.add_argument("--query", "-q", help="キーワード検索のみ実行する")
    parser.add_argument("--more", type=int, default=0, help="追加読み込みの回数")
    parser.add_argument("--limit", type=int, default=10, help="カテゴリごとの表示件数")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(level=settings.LOG_LEVEL)
    sys.exit(asyncio.run(main_async(args, settings)))


if __name__ == "__main__":
    main()
