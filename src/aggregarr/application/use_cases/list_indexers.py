"""Use case for listing the configured indexers."""

from __future__ import annotations

import structlog

from aggregarr.domain.ports import IndexerConfigSourcePort

log = structlog.get_logger(__name__)


class ListIndexersUseCase:
    """Describes each configured indexer without exposing its API key."""

    def __init__(self, *, config_source: IndexerConfigSourcePort) -> None:
        self._config_source = config_source

    def execute(self) -> list[dict]:
        settings = self._config_source.load()
        if settings is None:
            log.debug("indexer_listing_no_config")
            return []

        out: list[dict] = []
        for entry in settings:
            out.append(
                {
                    "name": entry.name,
                    "enabled": entry.enabled,
                    "protocol": entry.protocol,
                    "categories": sorted(entry.categories),
                    "timeoutSeconds": entry.timeout_seconds,
                    "configured": bool(
                        entry.name and entry.base_url and entry.api_key
                    ),
                }
            )
        return out
