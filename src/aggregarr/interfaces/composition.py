"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from aggregarr.application.use_cases import (
    AggregatedSearchUseCase,
    ListIndexersUseCase,
)
from aggregarr.infrastructure.common import dedupe_results, normalize_result
from aggregarr.infrastructure.config import AppConfig, FileIndexerConfigSource
from aggregarr.infrastructure.newznab import HttpxNewznabClient, parse_newznab_feed
from aggregarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

_DRAIN_TIMEOUT_SECONDS = 10.0


def wire_use_cases(state: AppState, config: AppConfig) -> None:
    """Build ports and use cases on top of an existing state.http_client."""
    state.indexer_config_source = FileIndexerConfigSource(
        config.indexer_config_path,
        redirect_to=config.config_redirect_to,
    )
    state.indexer_client = HttpxNewznabClient(http_client=state.http_client)

    state.search_uc = AggregatedSearchUseCase(
        config_source=state.indexer_config_source,
        client=state.indexer_client,
        parse_fn=parse_newznab_feed,
        normalize_fn=normalize_result,
        dedupe_fn=dedupe_results,
        max_concurrent=config.search_max_concurrent_indexers,
        redirect_to=config.config_redirect_to,
    )
    state.indexers_uc = ListIndexersUseCase(config_source=state.indexer_config_source)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. HTTP Client (shared by every indexer call)
        2. Indexer config source + Newznab client
        3. Use cases
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) HTTP client; per-indexer timeouts are applied per request.
    state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=config.http_follow_redirects,
    )
    log.info("http_client_initialized", timeout=config.http_timeout_seconds)

    # 2) + 3) Ports and use cases
    wire_use_cases(state, config)
    log.info(
        "search_initialized",
        indexer_config_path=str(config.indexer_config_path),
        max_concurrent_indexers=config.search_max_concurrent_indexers,
    )

    state.graceful_shutdown.mark_ready()
    log.info("app_startup_complete")

    try:
        yield
    finally:
        await state.graceful_shutdown.wait_for_drain(timeout=_DRAIN_TIMEOUT_SECONDS)

        await state.http_client.aclose()
        log.info("http_client_closed")

        log.info("app_shutdown_complete")
