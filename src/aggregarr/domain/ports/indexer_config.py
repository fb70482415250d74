"""Port for loading indexer settings from the configuration collaborator."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from typing import Protocol


class IndexerSettingsLike(Protocol):
    """Shape of one configured indexer before it passes the config gate.

    Fields may be empty; completeness is checked by the gate, not here.
    """

    name: str
    base_url: str
    api_key: str | None
    enabled: bool
    timeout_seconds: int
    protocol: str
    categories: Collection[str]


class IndexerConfigSourcePort(Protocol):
    """Loads the configured indexers. None = nothing could be loaded."""

    def load(self) -> Sequence[IndexerSettingsLike] | None: ...
