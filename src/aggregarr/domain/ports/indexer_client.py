"""Port for querying a single upstream indexer."""

from __future__ import annotations

from typing import Protocol

from aggregarr.domain.entities.search import (
    IndexerProfile,
    RawPayload,
    SearchQuery,
    TransportFailure,
)


class IndexerClientPort(Protocol):
    """Async interface for one search request against one indexer profile.

    Implementations MUST NOT raise on transport problems (timeout,
    connection error, non-2xx status); they return a TransportFailure.
    """

    async def query(
        self,
        profile: IndexerProfile,
        query: SearchQuery,
        *,
        limit: int,
        offset: int,
    ) -> RawPayload | TransportFailure: ...
