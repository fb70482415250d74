"""End-to-end tests for the search API.

Tests the full request-response cycle through:
    HTTP Request -> FastAPI Router -> Use Case -> Presenter -> JSON Response

Only the indexers' HTTP endpoints are mocked (respx); config source, client,
parser, normalizer and deduplicator are the real ones.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import respx
import yaml
from fastapi import FastAPI
from fastapi.testclient import TestClient

from aggregarr.application.use_cases import (
    AggregatedSearchUseCase,
    ListIndexersUseCase,
)
from aggregarr.infrastructure.common import dedupe_results, normalize_result
from aggregarr.infrastructure.config import AppConfig, FileIndexerConfigSource
from aggregarr.infrastructure.newznab import HttpxNewznabClient, parse_newznab_feed
from aggregarr.interfaces.api.search.router import router
from aggregarr.interfaces.app import create_app

_PREFIX = "/api/v1"
_ALPHA = "https://alpha.example/api"
_BETA = "https://beta.example/api"


def _write_indexers(tmp_path: Path, entries: Any) -> Path:
    path = tmp_path / "indexers.yaml"
    path.write_text(yaml.safe_dump({"indexers": entries}), encoding="utf-8")
    return path


def _make_app(indexers_path: Path, *, environment: str = "dev") -> FastAPI:
    app = FastAPI()
    app.include_router(router, prefix=_PREFIX)

    config = MagicMock()
    config.environment = environment
    app.state.config = config

    source = FileIndexerConfigSource(indexers_path)
    app.state.search_uc = AggregatedSearchUseCase(
        config_source=source,
        client=HttpxNewznabClient(http_client=httpx.AsyncClient()),
        parse_fn=parse_newznab_feed,
        normalize_fn=normalize_result,
        dedupe_fn=dedupe_results,
    )
    app.state.indexers_uc = ListIndexersUseCase(config_source=source)
    return app


@pytest.fixture()
def two_indexers(tmp_path: Path) -> Path:
    return _write_indexers(
        tmp_path,
        [
            {"name": "Alpha", "base_url": "https://alpha.example", "api_key": "a"},
            {"name": "Beta", "base_url": "https://beta.example", "api_key": "b"},
        ],
    )


class TestSearchSuccess:
    @respx.mock
    def test_cdata_and_plain_duplicates_collapse(
        self, two_indexers: Path, feed_builder, item_builder
    ) -> None:
        respx.get(_ALPHA).mock(
            return_value=httpx.Response(
                200,
                content=feed_builder(
                    [
                        item_builder(
                            "Ubuntu 22.04 LTS",
                            guid="alpha-1",
                            link="https://alpha.example/nzb/1",
                            size=3_000_000_000,
                            cdata=True,
                            attrs={"group": "alt.binaries.linux"},
                        )
                    ],
                    total=1,
                ),
            )
        )
        respx.get(_BETA).mock(
            return_value=httpx.Response(
                200,
                content=feed_builder(
                    [
                        item_builder(
                            "Ubuntu 22.04 LTS",
                            guid="beta-1",
                            link="https://beta.example/nzb/1",
                            size=3_000_000_000,
                        )
                    ],
                    total=1,
                ),
            )
        )
        client = TestClient(_make_app(two_indexers))

        resp = client.get(f"{_PREFIX}/search", params={"q": "ubuntu"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert len(body["data"]) == 1
        item = body["data"][0]
        assert item == {
            "id": "alpha-1",
            "title": "Ubuntu 22.04 LTS",
            "sizeBytes": 3_000_000_000,
            "category": "Unknown",
            "group": "alt.binaries.linux",
            "postedAt": "2025-01-06T10:00:00Z",
            "sourceId": "https://alpha.example/nzb/1",
            "indexerName": "Alpha",
        }
        meta = body["meta"]
        assert meta["query"] == "ubuntu"
        assert meta["total"] == 2
        assert meta["totalResults"] == 1
        assert meta["limit"] == 50
        assert meta["offset"] == 0
        assert meta["indexers"] == ["Alpha", "Beta"]
        assert meta["failedIndexers"] == []
        assert meta["searchTime"] >= 0

    @respx.mock
    def test_failed_indexer_is_reported(
        self, two_indexers: Path, feed_builder, item_builder
    ) -> None:
        respx.get(_ALPHA).mock(
            return_value=httpx.Response(
                200,
                content=feed_builder(
                    [item_builder("Debian 12", link="https://alpha.example/nzb/2")]
                ),
            )
        )
        respx.get(_BETA).mock(side_effect=httpx.ConnectTimeout("timed out"))
        client = TestClient(_make_app(two_indexers))

        resp = client.get(f"{_PREFIX}/search", params={"q": "debian"})

        assert resp.status_code == 200
        body = resp.json()
        assert [d["title"] for d in body["data"]] == ["Debian 12"]
        assert body["meta"]["failedIndexers"] == ["Beta"]

    @respx.mock
    def test_category_and_paging_are_forwarded(
        self, tmp_path: Path, feed_builder
    ) -> None:
        path = _write_indexers(
            tmp_path,
            [{"name": "Alpha", "base_url": "https://alpha.example", "api_key": "a"}],
        )
        route = respx.get(_ALPHA).mock(
            return_value=httpx.Response(200, content=feed_builder([], total=0))
        )
        client = TestClient(_make_app(path))

        resp = client.get(
            f"{_PREFIX}/search",
            params={"q": "show", "cat": "5000", "limit": "20", "offset": "40"},
        )

        assert resp.status_code == 200
        sent = route.calls.last.request.url.params
        assert sent["cat"] == "5000"
        assert sent["limit"] == "20"
        assert sent["offset"] == "40"
        assert resp.json()["meta"]["category"] == "5000"


class TestSearchErrors:
    @pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "   "}])
    def test_missing_query(self, two_indexers: Path, params: dict) -> None:
        client = TestClient(_make_app(two_indexers))

        resp = client.get(f"{_PREFIX}/search", params=params)

        assert resp.status_code == 400
        assert resp.json() == {
            "success": False,
            "error": "Search query is required",
            "message": "Missing query parameter 'q'",
        }

    @pytest.mark.parametrize(
        ("params", "fragment"),
        [
            ({"limit": "abc"}, "limit must be an integer"),
            ({"limit": "0"}, "limit must be between"),
            ({"limit": "101"}, "limit must be between"),
            ({"offset": "-1"}, "offset must be >= 0"),
        ],
    )
    def test_bad_paging(self, two_indexers: Path, params: dict, fragment: str) -> None:
        client = TestClient(_make_app(two_indexers))

        resp = client.get(f"{_PREFIX}/search", params={"q": "x", **params})

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert fragment in body["message"]

    def test_missing_config(self, tmp_path: Path) -> None:
        client = TestClient(_make_app(tmp_path / "absent.yaml"))

        resp = client.get(f"{_PREFIX}/search", params={"q": "x"})

        assert resp.status_code == 400
        assert resp.json() == {
            "success": False,
            "error": "Configuration Error",
            "message": "Configuration not found. Please configure your settings first.",
            "code": "CONFIG_MISSING",
            "redirectTo": "/config",
        }

    def test_incomplete_config(self, tmp_path: Path) -> None:
        path = _write_indexers(
            tmp_path, [{"name": "Alpha", "base_url": "https://alpha.example"}]
        )
        client = TestClient(_make_app(path))

        resp = client.get(f"{_PREFIX}/search", params={"q": "x"})

        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "CONFIG_INCOMPLETE"
        assert body["redirectTo"] == "/config"

    def test_unexpected_error_is_500(self, two_indexers: Path) -> None:
        app = _make_app(two_indexers)
        app.state.search_uc = AsyncMock()
        app.state.search_uc.execute.side_effect = RuntimeError("disk on fire")
        client = TestClient(app)

        resp = client.get(f"{_PREFIX}/search", params={"q": "x"})

        assert resp.status_code == 500
        assert resp.json() == {
            "success": False,
            "error": "Search failed",
            "message": "disk on fire",
        }

    def test_unexpected_error_message_hidden_in_prod(self, two_indexers: Path) -> None:
        app = _make_app(two_indexers, environment="prod")
        app.state.search_uc = AsyncMock()
        app.state.search_uc.execute.side_effect = RuntimeError("disk on fire")
        client = TestClient(app)

        resp = client.get(f"{_PREFIX}/search", params={"q": "x"})

        assert resp.status_code == 500
        assert "disk on fire" not in resp.text


class TestIndexersEndpoint:
    def test_lists_configured_indexers(self, two_indexers: Path) -> None:
        client = TestClient(_make_app(two_indexers))

        resp = client.get(f"{_PREFIX}/indexers")

        assert resp.status_code == 200
        names = [i["name"] for i in resp.json()["indexers"]]
        assert names == ["Alpha", "Beta"]
        assert '"a"' not in resp.text

    def test_no_config_is_empty_list(self, tmp_path: Path) -> None:
        client = TestClient(_make_app(tmp_path / "absent.yaml"))

        resp = client.get(f"{_PREFIX}/indexers")

        assert resp.status_code == 200
        assert resp.json() == {"indexers": []}

    def test_invalid_entry_is_config_error(self, tmp_path: Path) -> None:
        path = _write_indexers(tmp_path, ["not-a-mapping"])
        client = TestClient(_make_app(path))

        resp = client.get(f"{_PREFIX}/indexers")

        assert resp.status_code == 400
        assert resp.json()["code"] == "CONFIG_INCOMPLETE"


class TestAppFactory:
    def test_probes_and_lifespan(self, tmp_path: Path) -> None:
        config = AppConfig(indexer_config_path=tmp_path / "absent.yaml")
        app = create_app(config)

        with TestClient(app) as client:
            assert client.get(f"{_PREFIX}/healthz").json() == {"status": "ok"}
            ready = client.get(f"{_PREFIX}/readyz")
            assert ready.status_code == 200
            assert ready.json() == {"status": "ready"}

            resp = client.get(f"{_PREFIX}/search", params={"q": "x"})
            assert resp.status_code == 400
            assert resp.json()["code"] == "CONFIG_MISSING"

        assert app.state.graceful_shutdown.is_ready is False

    def test_not_ready_before_startup(self, tmp_path: Path) -> None:
        app = create_app(AppConfig(indexer_config_path=tmp_path / "absent.yaml"))
        client = TestClient(app)

        resp = client.get(f"{_PREFIX}/readyz")

        assert resp.status_code == 503
