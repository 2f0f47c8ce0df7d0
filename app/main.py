"""プロキシサーバー（FastAPI）エントリーポイント

uvicorn app.main:app --port 4000
"""

import os
import sys
import time
from collections import deque
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable

# プロジェクトルートをパスに追加
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# .envファイルを最初に読み込む（LangSmith等の環境変数を設定するため）
from dotenv import load_dotenv
load_dotenv(project_root / ".env")

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config.settings import Settings, get_settings
from src.application.interfaces.youtube_searcher import YouTubeSearcher
from src.application.usecases.proxy_search import ProxySearchUseCase
from src.domain.exceptions import (
    InvalidQueryError,
    UpstreamBadRequestError,
    UpstreamError,
    UpstreamQuotaError,
)
from src.infrastructure.library_storage import FavoritesStore, RecentSearchLog
from src.infrastructure.logging_config import get_logger, setup_logging
from src.infrastructure.response_cache import ResponseCache
from src.infrastructure.youtube_data_api import YouTubeDataAPIClient

logger = get_logger(__name__)

RATE_LIMIT_WINDOW_SECONDS = 60


class FavoriteRequest(BaseModel):
    videoId: str | None = None
    title: str | None = None
    channelTitle: str | None = None
    thumbnailUrl: str | None = None
    publishedAt: str | None = None


def get_client_ip(request: Request) -> str:
    forwarded = (request.headers.get("x-forwarded-for") or "").strip()
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimiter:
    """クライアントIPごとの直近1分間のリクエスト数制限"""

    def __init__(
        self,
        max_requests: int,
        window_sec: int = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_sec = window_sec
        self._clock = clock
        self._buckets: dict[str, deque[float]] = {}

    def _evict_idle(self, cutoff: float) -> None:
        """ウィンドウ内にリクエストのないIPのバケットを捨てる"""
        idle = [key for key, bucket in self._buckets.items() if not bucket or bucket[-1] < cutoff]
        for key in idle:
            del self._buckets[key]

    def __call__(self, request: Request) -> None:
        now_ts = self._clock()
        cutoff = now_ts - self.window_sec
        self._evict_idle(cutoff)

        key = get_client_ip(request)
        bucket = self._buckets.setdefault(key, deque())
        while bucket and bucket[0] < cutoff:
            bucket.popleft()

        if len(bucket) >= self.max_requests:
            logger.warning(f"[Server] rate limited: {key}")
            raise HTTPException(
                status_code=429,
                detail="Too many requests. Please wait a minute and try again.",
            )
        bucket.append(now_ts)


def make_searcher_factory(settings: Settings) -> Callable[[str], YouTubeSearcher]:
    """APIキーごとに上流クライアントを1つだけ作る"""

    @lru_cache(maxsize=16)
    def factory(api_key: str) -> YouTubeSearcher:
        return YouTubeDataAPIClient(
            api_key=api_key,
            timeout_sec=settings.UPSTREAM_TIMEOUT_SEC,
            max_attempts=settings.UPSTREAM_MAX_ATTEMPTS,
        )

    return factory


def _error_response(status_code: int, error: str, exc: Exception) -> JSONResponse:
    content: dict[str, Any] = {"error": error, "details": str(exc)}
    if isinstance(exc, UpstreamError) and exc.status is not None:
        content["status"] = exc.status
    return JSONResponse(status_code=status_code, content=content)


def create_app(
    settings: Settings | None = None,
    searcher_factory: Callable[[str], YouTubeSearcher] | None = None,
) -> FastAPI:
    """DIでアプリケーションを組み立て"""
    settings = settings or get_settings()
    data_dir = Path(settings.DATA_DIR)

    favorites = FavoritesStore(data_dir)
    recent_searches = RecentSearchLog(data_dir)
    usecase = ProxySearchUseCase(
        searcher_factory=searcher_factory or make_searcher_factory(settings),
        cache=ResponseCache(ttl_sec=settings.PROXY_CACHE_TTL_SEC),
        default_api_key=settings.YOUTUBE_API_KEY,
        max_allowed_age=settings.MAX_ALLOWED_AGE,
        recent_searches=recent_searches,
    )
    rate_limit = RateLimiter(settings.RATE_LIMIT_PER_MINUTE)

    app = FastAPI(title="AI Muzon proxy", dependencies=[Depends(rate_limit)])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in settings.CORS_ORIGIN.split(",")],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidQueryError)
    async def invalid_query_handler(_request: Request, exc: InvalidQueryError):
        return _error_response(400, "Invalid request", exc)

    @app.exception_handler(UpstreamQuotaError)
    async def quota_handler(_request: Request, exc: UpstreamQuotaError):
        return _error_response(403, "YouTube API quota exceeded or forbidden", exc)

    @app.exception_handler(UpstreamBadRequestError)
    async def bad_request_handler(_request: Request, exc: UpstreamBadRequestError):
        return _error_response(400, "Upstream YouTube API rejected the request", exc)

    @app.exception_handler(UpstreamError)
    async def upstream_handler(_request: Request, exc: UpstreamError):
        logger.error(f"[Server] upstream error: {exc}")
        return _error_response(502, "Upstream YouTube API error", exc)

    @app.get("/api/health")
    def health():
        return {"ok": True, "env": os.getenv("APP_ENV", "development")}

    @app.get("/api/recent-searches")
    def list_recent_searches():
        return recent_searches.latest(10)

    @app.get("/api/favorites")
    def list_favorites():
        return favorites.list()

    @app.post("/api/favorites")
    def save_favorite(body: FavoriteRequest):
        if not (body.videoId or "").strip():
            raise HTTPException(status_code=400, detail="videoId is required")
        favorites.upsert(body.model_dump())
        return {"ok": True}

    @app.delete("/api/favorites/{video_id}")
    def delete_favorite(video_id: str):
        favorites.delete(video_id)
        return {"ok": True}

    @app.get("/api/search")
    async def search(request: Request):
        params = dict(request.query_params)
        query_key = params.pop("key", None)
        client_key = request.headers.get("x-youtube-key") or query_key
        return await usecase.search(params, client_key=client_key)

    logger.info(
        f"[Server] ready: direct_key={'yes' if settings.has_direct_key else 'no'}, "
        f"cache_ttl={settings.PROXY_CACHE_TTL_SEC}s"
    )
    return app


setup_logging(level=get_settings().LOG_LEVEL)

app = create_app()
