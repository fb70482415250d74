from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

ProtocolType = Literal["newznab", "html", "json"]

DEFAULT_LIMIT = 50
MAX_LIMIT = 100
UNKNOWN_CATEGORY = "Unknown"


@dataclass(frozen=True)
class IndexerProfile:
    name: str  # Display id (e.g., "NZBFinder")
    base_url: str
    api_key: str | None = None
    enabled: bool = True
    timeout_seconds: int = 30
    protocol: ProtocolType = "newznab"  # Only newznab is implemented
    categories: frozenset[str] = frozenset()


@dataclass(frozen=True)
class SearchQuery:
    text: str
    category: str | None = None  # Newznab category code (2000=Movies, 5000=TV)
    limit: int = DEFAULT_LIMIT
    offset: int = 0


@dataclass(frozen=True)
class SearchResult:
    id: str  # GUID, falls back to link
    title: str
    size_bytes: int
    posted_at: datetime  # UTC; "now" when upstream date is absent/unparseable
    source_id: str  # Link handed to the download manager later
    indexer_name: str
    category: str = UNKNOWN_CATEGORY
    group: str | None = None


@dataclass(frozen=True)
class AggregatedSearchResponse:
    results: list[SearchResult]
    # Upstream-reported, pre-dedup count (upper bound, not len(results))
    total: int = 0
    indexers: list[str] = field(default_factory=list)
    failed_indexers: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RawPayload:
    indexer_name: str
    content: bytes
    status_code: int = 200


@dataclass(frozen=True)
class TransportFailure:
    indexer_name: str
    reason: str
    status_code: int | None = None
    timed_out: bool = False


@dataclass(frozen=True)
class ParsedFeed:
    results: list[SearchResult]
    total_hint: int = 0


class SearchError(Exception):
    """Base error for search domain/usecases."""


class SearchBadRequest(SearchError):
    """Caller input error (empty query text, limit/offset out of range)."""


class ConfigError(SearchError):
    """Indexer configuration is unusable; fixing it requires user action."""

    code = "CONFIG_ERROR"

    def __init__(self, message: str, *, redirect_to: str = "/config") -> None:
        super().__init__(message)
        self.message = message
        self.redirect_to = redirect_to


class ConfigMissing(ConfigError):
    code = "CONFIG_MISSING"


class ConfigIncomplete(ConfigError):
    code = "CONFIG_INCOMPLETE"
