"""Shared test fixtures for Aggregarr test suite."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from aggregarr.domain.entities import (
    IndexerProfile,
    ParsedFeed,
    RawPayload,
    SearchQuery,
    SearchResult,
)

# ---------------------------------------------------------------------------
# Feed payloads
# ---------------------------------------------------------------------------

FEED_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:newznab="http://www.newznab.com/DTD/2010/feeds/attributes/">
<channel>
<title>{channel}</title>
{response}{items}
</channel>
</rss>
"""


def make_feed(
    items: Sequence[str],
    *,
    total: int | None = None,
    channel: str = "indexer",
) -> bytes:
    """Build a Newznab RSS document from pre-rendered ``<item>`` snippets."""
    response = (
        f'<newznab:response offset="0" total="{total}"/>\n' if total is not None else ""
    )
    return FEED_TEMPLATE.format(
        channel=channel, response=response, items="\n".join(items)
    ).encode("utf-8")


def make_item(
    title: str,
    *,
    guid: str | None = None,
    link: str | None = None,
    size: int | None = 1000,
    pub_date: str | None = "Mon, 06 Jan 2025 10:00:00 +0000",
    category: str | None = None,
    attrs: dict[str, str] | None = None,
    cdata: bool = False,
) -> str:
    parts = ["<item>"]
    if cdata:
        parts.append(f"<title><![CDATA[{title}]]></title>")
    else:
        parts.append(f"<title>{title}</title>")
    if guid is not None:
        parts.append(f"<guid>{guid}</guid>")
    if link is not None:
        parts.append(f"<link>{link}</link>")
    if pub_date is not None:
        parts.append(f"<pubDate>{pub_date}</pubDate>")
    if category is not None:
        parts.append(f"<category>{category}</category>")
    if size is not None:
        parts.append(
            f'<enclosure url="{link or guid or ""}" length="{size}" '
            'type="application/x-nzb"/>'
        )
    for name, value in (attrs or {}).items():
        parts.append(f'<newznab:attr name="{name}" value="{value}"/>')
    parts.append("</item>")
    return "".join(parts)


# ---------------------------------------------------------------------------
# Settings / profiles
# ---------------------------------------------------------------------------


@dataclass
class FakeIndexerSettings:
    """Plain stand-in for IndexerSettings (satisfies IndexerSettingsLike)."""

    name: str = "Alpha"
    base_url: str = "https://alpha.example"
    api_key: str | None = "key-alpha"
    enabled: bool = True
    timeout_seconds: int = 30
    protocol: str = "newznab"
    categories: list[str] = field(default_factory=list)


class FakeConfigSource:
    """In-memory IndexerConfigSourcePort that counts load() calls."""

    def __init__(self, settings: Sequence[Any] | None) -> None:
        self.settings = settings
        self.load_calls = 0

    def load(self) -> Sequence[Any] | None:
        self.load_calls += 1
        return self.settings


def make_result(
    title: str = "Ubuntu.22.04.LTS",
    *,
    id: str | None = None,
    size_bytes: int = 1000,
    posted_at: datetime | None = None,
    indexer_name: str = "Alpha",
    category: str = "Unknown",
    group: str | None = None,
) -> SearchResult:
    rid = id or f"{indexer_name}-{title}"
    return SearchResult(
        id=rid,
        title=title,
        size_bytes=size_bytes,
        posted_at=posted_at or datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc),
        source_id=f"https://{indexer_name.lower()}.example/nzb/{rid}",
        indexer_name=indexer_name,
        category=category,
        group=group,
    )


@pytest.fixture()
def indexer_settings() -> FakeIndexerSettings:
    return FakeIndexerSettings()


@pytest.fixture()
def indexer_profile() -> IndexerProfile:
    return IndexerProfile(
        name="Alpha",
        base_url="https://alpha.example",
        api_key="key-alpha",
        timeout_seconds=5,
    )


@pytest.fixture()
def search_query() -> SearchQuery:
    return SearchQuery(text="ubuntu")


@pytest.fixture()
def search_result() -> SearchResult:
    return make_result()


# ---------------------------------------------------------------------------
# Port mocks
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_indexer_client() -> AsyncMock:
    """Mock IndexerClientPort; every query answers with an empty feed."""
    client = AsyncMock()

    async def _query(
        profile: IndexerProfile, query: SearchQuery, *, limit: int, offset: int
    ) -> RawPayload:
        return RawPayload(indexer_name=profile.name, content=b"")

    client.query.side_effect = _query
    return client


@pytest.fixture()
def mock_parse_fn() -> MagicMock:
    return MagicMock(return_value=ParsedFeed(results=[], total_hint=0))


# ---------------------------------------------------------------------------
# Builder fixtures (test modules receive the helpers through these)
# ---------------------------------------------------------------------------


@pytest.fixture()
def feed_builder():
    return make_feed


@pytest.fixture()
def item_builder():
    return make_item


@pytest.fixture()
def result_factory():
    return make_result


@pytest.fixture()
def settings_factory():
    return FakeIndexerSettings


@pytest.fixture()
def config_source_factory():
    return FakeConfigSource
