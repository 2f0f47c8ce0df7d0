# Infrastructure Layer
from src.infrastructure.library_storage import FavoritesStore, RecentSearchLog
from src.infrastructure.proxy_client import ProxySearchClient
from src.infrastructure.response_cache import ResponseCache
from src.infrastructure.youtube_data_api import YouTubeDataAPIClient

__all__ = [
    "YouTubeDataAPIClient",
    "ProxySearchClient",
    "ResponseCache",
    "FavoritesStore",
    "RecentSearchLog",
]
