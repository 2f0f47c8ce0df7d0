# Use Cases
from src.application.usecases.discover_pool import (
    DiscoverPoolConfig,
    DiscoverPoolUseCase,
)
from src.application.usecases.proxy_search import ProxySearchUseCase

__all__ = [
    "DiscoverPoolUseCase",
    "DiscoverPoolConfig",
    "ProxySearchUseCase",
]
