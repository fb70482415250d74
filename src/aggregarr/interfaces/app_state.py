"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from aggregarr.infrastructure.config import AppConfig
from aggregarr.infrastructure.graceful_shutdown import GracefulShutdown

if TYPE_CHECKING:
    from aggregarr.application.use_cases import (
        AggregatedSearchUseCase,
        ListIndexersUseCase,
    )
    from aggregarr.domain.ports import IndexerClientPort, IndexerConfigSourcePort


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    http_client: httpx.AsyncClient

    # Domain Ports
    indexer_config_source: IndexerConfigSourcePort
    indexer_client: IndexerClientPort

    # Use cases
    search_uc: AggregatedSearchUseCase
    indexers_uc: ListIndexersUseCase

    # Graceful shutdown (request tracking + drain)
    graceful_shutdown: GracefulShutdown
