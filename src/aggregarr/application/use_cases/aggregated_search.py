"""Aggregated search use case.

Query -> config gate -> parallel indexer search -> parse -> normalize
-> dedupe -> sort by recency -> page.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import structlog

from aggregarr.application.config_gate import check_indexer_config
from aggregarr.domain.entities import (
    MAX_LIMIT,
    AggregatedSearchResponse,
    IndexerProfile,
    ParsedFeed,
    SearchBadRequest,
    SearchQuery,
    SearchResult,
    TransportFailure,
)
from aggregarr.domain.ports import IndexerClientPort, IndexerConfigSourcePort

# Type aliases for injected pure functions.
_ParseFn = Callable[[bytes, str], ParsedFeed]
_NormalizeFn = Callable[[SearchResult], SearchResult]
_DedupeFn = Callable[[Iterable[SearchResult]], list[SearchResult]]

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class _IndexerOutcome:
    """What one indexer contributed to the aggregate."""

    name: str
    results: list[SearchResult] = field(default_factory=list)
    total_hint: int = 0
    failed: bool = False


def validate_query(q: SearchQuery) -> None:
    """Reject caller errors before any config read or network call."""
    if not q.text or not q.text.strip():
        raise SearchBadRequest("Missing query parameter 'q'")
    if not 1 <= q.limit <= MAX_LIMIT:
        raise SearchBadRequest(f"limit must be between 1 and {MAX_LIMIT}")
    if q.offset < 0:
        raise SearchBadRequest("offset must be >= 0")


def sort_by_recency(results: Iterable[SearchResult]) -> list[SearchResult]:
    """Newest first; ties broken by indexer name, then id."""
    return sorted(
        results,
        key=lambda r: (-r.posted_at.timestamp(), r.indexer_name, r.id),
    )


class AggregatedSearchUseCase:
    """Searches every enabled indexer and merges the answers into one page.

    Pagination:
        - One enabled indexer: limit/offset are forwarded upstream; the
          answer is already the requested window and is not re-sliced.
        - Several: each is asked for ``[0, offset + limit)``, capped at
          MAX_LIMIT items; the merged, deduplicated, sorted sequence is
          sliced to ``[offset, offset + limit)``. Pages therefore reach
          at most MAX_LIMIT items deep into any one indexer.

    ``total`` is the sum of the upstream ``newznab:response`` totals before
    deduplication; an indexer that reports none contributes 0. It is an
    upper bound, not ``len(results)``.
    """

    def __init__(
        self,
        *,
        config_source: IndexerConfigSourcePort,
        client: IndexerClientPort,
        parse_fn: _ParseFn,
        normalize_fn: _NormalizeFn,
        dedupe_fn: _DedupeFn,
        max_concurrent: int = 10,
        redirect_to: str = "/config",
    ) -> None:
        self._config_source = config_source
        self._client = client
        self._parse = parse_fn
        self._normalize = normalize_fn
        self._dedupe = dedupe_fn
        self._max_concurrent = max_concurrent
        self._redirect_to = redirect_to

    async def execute(self, q: SearchQuery) -> AggregatedSearchResponse:
        """Run one aggregated search.

        Raises:
            SearchBadRequest: Empty query text, limit or offset out of range.
            ConfigMissing: No indexer configuration could be loaded.
            ConfigIncomplete: A profile lacks name, base URL or API key.
        """
        validate_query(q)

        profiles = check_indexer_config(
            self._config_source.load(), redirect_to=self._redirect_to
        )
        if not profiles:
            log.info("search_no_enabled_indexers", query=q.text)
            return AggregatedSearchResponse(results=[], total=0)

        single = len(profiles) == 1
        if single:
            upstream_limit, upstream_offset = q.limit, q.offset
        else:
            upstream_limit, upstream_offset = min(q.offset + q.limit, MAX_LIMIT), 0

        t0 = time.perf_counter()
        outcomes = await self._search_indexers(
            profiles, q, limit=upstream_limit, offset=upstream_offset
        )

        merged: list[SearchResult] = []
        for outcome in outcomes:
            merged.extend(outcome.results)

        normalized = [self._normalize(r) for r in merged]
        ordered = sort_by_recency(self._dedupe(normalized))

        if single:
            page = ordered[: q.limit]
        else:
            page = ordered[q.offset : q.offset + q.limit]

        total = sum(o.total_hint for o in outcomes)
        failed = [o.name for o in outcomes if o.failed]

        log.info(
            "search_completed",
            query=q.text,
            category=q.category,
            indexers=len(profiles),
            failed_indexers=failed,
            raw_result_count=len(merged),
            deduped_count=len(ordered),
            page_count=len(page),
            total=total,
            duration_ms=round((time.perf_counter() - t0) * 1000.0, 2),
        )
        return AggregatedSearchResponse(
            results=page,
            total=total,
            indexers=[p.name for p in profiles],
            failed_indexers=failed,
        )

    async def _search_indexers(
        self,
        profiles: list[IndexerProfile],
        q: SearchQuery,
        *,
        limit: int,
        offset: int,
    ) -> list[_IndexerOutcome]:
        """Search all profiles in parallel with bounded concurrency.

        Results come back in profile order, whatever order the calls finish in.
        """
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _search_one(profile: IndexerProfile) -> _IndexerOutcome:
            async with semaphore:
                return await self._search_single_indexer(
                    profile, q, limit=limit, offset=offset
                )

        return list(await asyncio.gather(*(_search_one(p) for p in profiles)))

    async def _search_single_indexer(
        self,
        profile: IndexerProfile,
        q: SearchQuery,
        *,
        limit: int,
        offset: int,
    ) -> _IndexerOutcome:
        """Query and parse one indexer. Any failure yields zero results."""
        t0 = time.perf_counter()
        try:
            outcome = await self._client.query(profile, q, limit=limit, offset=offset)
            if isinstance(outcome, TransportFailure):
                return _IndexerOutcome(name=profile.name, failed=True)

            parsed = self._parse(outcome.content, profile.name)
        except Exception:
            log.warning("indexer_search_failed", indexer=profile.name, exc_info=True)
            return _IndexerOutcome(name=profile.name, failed=True)

        log.info(
            "indexer_search_completed",
            indexer=profile.name,
            result_count=len(parsed.results),
            total_hint=parsed.total_hint,
            duration_ms=round((time.perf_counter() - t0) * 1000.0, 2),
        )
        return _IndexerOutcome(
            name=profile.name,
            results=list(parsed.results),
            total_hint=parsed.total_hint,
        )
