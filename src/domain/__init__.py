# Domain Layer
from src.domain.entities import (
    ChannelStats,
    DateWindow,
    SearchCandidate,
    SearchOptions,
    SearchResponse,
    UpstreamPage,
    VideoDetails,
    VideoItem,
)
from src.domain.exceptions import (
    AiMuzonError,
    InvalidQueryError,
    PartialEnrichmentError,
    UpstreamBadRequestError,
    UpstreamError,
    UpstreamQuotaError,
    UpstreamTransientError,
)

__all__ = [
    "DateWindow",
    "VideoItem",
    "SearchOptions",
    "VideoDetails",
    "ChannelStats",
    "SearchCandidate",
    "UpstreamPage",
    "SearchResponse",
    "AiMuzonError",
    "InvalidQueryError",
    "UpstreamError",
    "UpstreamQuotaError",
    "UpstreamBadRequestError",
    "UpstreamTransientError",
    "PartialEnrichmentError",
]
