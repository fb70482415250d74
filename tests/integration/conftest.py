"""Shared fixtures for integration tests.

These tests use real infrastructure components (HttpxNewznabClient,
parse_newznab_feed, FileIndexerConfigSource) with mocked HTTP via respx.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import respx
import yaml


@pytest.fixture()
def http_client() -> httpx.AsyncClient:
    """Real httpx.AsyncClient for use with respx mocking."""
    return httpx.AsyncClient()


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture()
def write_indexers(tmp_path: Path):
    """Write an indexer settings file and return its path."""

    def _write(entries: list[dict]) -> Path:
        path = tmp_path / "indexers.yaml"
        path.write_text(yaml.safe_dump({"indexers": entries}), encoding="utf-8")
        return path

    return _write
