"""Newznab indexer client (httpx)."""

from __future__ import annotations

import asyncio
from typing import Any
from urllib.parse import urlsplit

import httpx
import structlog

from aggregarr.domain.entities import (
    IndexerProfile,
    RawPayload,
    SearchQuery,
    TransportFailure,
)
from aggregarr.infrastructure.newznab.parser import detect_feed_error

log = structlog.get_logger(__name__)


def build_search_url(base_url: str) -> str:
    """Return the Newznab API endpoint for *base_url*.

    ``https://indexer.example`` and ``https://indexer.example/api`` both
    map to ``https://indexer.example/api``.
    """
    base = base_url.strip().rstrip("/")
    if urlsplit(base).path.endswith("/api"):
        return base
    return f"{base}/api"


def build_search_params(
    profile: IndexerProfile,
    query: SearchQuery,
    *,
    limit: int,
    offset: int,
) -> dict[str, Any]:
    """Encode one ``t=search`` request.

    The query category wins over the profile's configured categories.
    ``extended=1`` asks the indexer for all ``newznab:attr`` fields
    (size, group) instead of the short default set.
    """
    params: dict[str, Any] = {
        "t": "search",
        "q": query.text,
        "limit": limit,
        "offset": offset,
        "extended": 1,
    }
    if profile.api_key:
        params["apikey"] = profile.api_key

    if query.category:
        params["cat"] = query.category
    elif profile.categories:
        params["cat"] = ",".join(sorted(profile.categories))

    return params


class HttpxNewznabClient:
    """Issues one Newznab search against one indexer profile.

    Transport problems never propagate: timeouts, connection errors,
    non-2xx responses and Newznab ``<error>`` documents all come back as
    TransportFailure. No retries.
    """

    def __init__(self, *, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    async def query(
        self,
        profile: IndexerProfile,
        query: SearchQuery,
        *,
        limit: int,
        offset: int,
    ) -> RawPayload | TransportFailure:
        url = build_search_url(profile.base_url)
        params = build_search_params(profile, query, limit=limit, offset=offset)
        timeout = float(profile.timeout_seconds)

        try:
            # httpx timeouts are per operation; wait_for caps the whole exchange.
            resp = await asyncio.wait_for(
                self._http.get(url, params=params, timeout=timeout),
                timeout=timeout,
            )
        except (TimeoutError, httpx.TimeoutException):
            return self._failure(
                profile,
                reason=f"timed out after {profile.timeout_seconds}s",
                timed_out=True,
            )
        except httpx.RequestError as e:
            return self._failure(
                profile,
                reason=f"{type(e).__name__}: {e}" if str(e) else type(e).__name__,
            )

        if not resp.is_success:
            return self._failure(
                profile,
                reason=f"HTTP {resp.status_code}: {resp.reason_phrase}",
                status_code=resp.status_code,
            )

        feed_error = detect_feed_error(resp.content)
        if feed_error is not None:
            return self._failure(
                profile,
                reason=feed_error,
                status_code=resp.status_code,
            )

        log.debug(
            "indexer_response_received",
            indexer=profile.name,
            status_code=resp.status_code,
            bytes=len(resp.content),
        )
        return RawPayload(
            indexer_name=profile.name,
            content=resp.content,
            status_code=resp.status_code,
        )

    @staticmethod
    def _failure(
        profile: IndexerProfile,
        *,
        reason: str,
        status_code: int | None = None,
        timed_out: bool = False,
    ) -> TransportFailure:
        log.warning(
            "indexer_transport_failure",
            indexer=profile.name,
            reason=reason,
            status_code=status_code,
            timed_out=timed_out,
        )
        return TransportFailure(
            indexer_name=profile.name,
            reason=reason,
            status_code=status_code,
            timed_out=timed_out,
        )
