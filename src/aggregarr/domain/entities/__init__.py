from .search import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    UNKNOWN_CATEGORY,
    AggregatedSearchResponse,
    ConfigError,
    ConfigIncomplete,
    ConfigMissing,
    IndexerProfile,
    ParsedFeed,
    ProtocolType,
    RawPayload,
    SearchBadRequest,
    SearchError,
    SearchQuery,
    SearchResult,
    TransportFailure,
)

__all__ = [
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "UNKNOWN_CATEGORY",
    "AggregatedSearchResponse",
    "ConfigError",
    "ConfigIncomplete",
    "ConfigMissing",
    "IndexerProfile",
    "ParsedFeed",
    "ProtocolType",
    "RawPayload",
    "SearchBadRequest",
    "SearchError",
    "SearchQuery",
    "SearchResult",
    "TransportFailure",
]
