# Application Interfaces (Protocols)
from src.application.interfaces.pool_searcher import PoolSearcher
from src.application.interfaces.search_backend import SearchBackend
from src.application.interfaces.youtube_searcher import YouTubeSearcher

__all__ = [
    "YouTubeSearcher",
    "SearchBackend",
    "PoolSearcher",
]
