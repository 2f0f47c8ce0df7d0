"""設定管理"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """アプリケーション設定"""

    # API Keys
    # 設定されていればYouTubeへ直接問い合わせ、なければプロキシ経由
    YOUTUBE_API_KEY: str | None = None
    PROXY_BASE_URL: str = "http://localhost:4000"

    # Safety
    # この年齢未満の視聴者向けにフィルタする（18未満なら年齢制限動画を除外）
    MAX_ALLOWED_AGE: int = 14

    # Cache
    CLIENT_CACHE_TTL_SEC: int = 15 * 60
    PROXY_CACHE_TTL_SEC: int = 3600
    # クライアント側の永続キャッシュ（diskcache）。None なら無効
    SESSION_CACHE_DIR: str | None = ".cache/search"

    # Upstream
    UPSTREAM_TIMEOUT_SEC: float = 10.0
    UPSTREAM_MAX_ATTEMPTS: int = 3

    # Discovery (sliding window)
    DISCOVERY_KEYWORDS: list[str] = [
        "ai music video",
        "ai song",
        "ai ethnic music",
        "ai music",
    ]
    BATCH_SIZE: int = 30
    MONTH_CAP: int = 12
    INITIAL_WINDOW_MONTHS: int = 6

    # Proxy server
    DATA_DIR: str = "data"
    CORS_ORIGIN: str = "*"
    RATE_LIMIT_PER_MINUTE: int = 120

    # Logging & Observability
    LOG_LEVEL: str = "INFO"
    LANGSMITH_TRACING: bool = False
    LANGSMITH_API_KEY: str | None = None
    LANGSMITH_PROJECT: str = "ai-muzon"

    @property
    def has_direct_key(self) -> bool:
        return bool((self.YOUTUBE_API_KEY or "").strip())

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


@lru_cache
def get_settings() -> Settings:
    """シングルトンで設定を取得"""
    return Settings()
