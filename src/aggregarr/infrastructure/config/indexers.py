"""File-backed indexer settings source."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from aggregarr.domain.entities import ConfigIncomplete

from .schema import IndexerSettings

log = structlog.get_logger(__name__)


def _extract_entries(document: Any) -> list[Any] | None:
    """Pull the raw indexer entries out of a parsed settings document.

    Accepted shapes:
    - ``{"indexers": [{...}, ...]}``
    - ``{"indexer": {...}}`` (legacy single-indexer file)
    - ``[{...}, ...]``
    """
    if isinstance(document, list):
        return document
    if not isinstance(document, Mapping):
        return None
    if "indexers" in document:
        entries = document["indexers"]
        if entries is None:
            return []
        return entries if isinstance(entries, list) else [entries]
    if "indexer" in document:
        entry = document["indexer"]
        return [] if entry is None else [entry]
    return None


class FileIndexerConfigSource:
    """Reads indexer profiles from a YAML (or JSON) file on every call.

    The file is re-read per search so edits made through the configuration
    UI apply without a restart. This class never writes the file.

    Returns None when the file is missing, unreadable or holds no indexer
    section. Raises ConfigIncomplete when entries are present but fail
    schema validation (e.g. a non-positive timeout).
    """

    def __init__(self, path: Path, *, redirect_to: str = "/config") -> None:
        self._path = path
        self._redirect_to = redirect_to

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[IndexerSettings] | None:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            log.info("indexer_config_not_found", path=str(self._path))
            return None
        except OSError as e:
            log.warning(
                "indexer_config_unreadable", path=str(self._path), error=str(e)
            )
            return None

        try:
            # JSON is a subset of YAML 1.2 for our purposes.
            document = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            log.warning(
                "indexer_config_invalid_yaml", path=str(self._path), error=str(e)
            )
            return None

        entries = _extract_entries(document)
        if entries is None:
            log.info("indexer_config_empty", path=str(self._path))
            return None

        settings: list[IndexerSettings] = []
        for position, entry in enumerate(entries):
            if not isinstance(entry, Mapping):
                raise ConfigIncomplete(
                    f"Indexer entry #{position + 1} is not a mapping.",
                    redirect_to=self._redirect_to,
                )
            try:
                settings.append(IndexerSettings.model_validate(dict(entry)))
            except ValidationError as e:
                name = entry.get("name") or f"#{position + 1}"
                raise ConfigIncomplete(
                    f"Indexer {name} has invalid settings: "
                    f"{e.errors()[0].get('msg', 'invalid value')}",
                    redirect_to=self._redirect_to,
                ) from e

        log.debug(
            "indexer_config_loaded", path=str(self._path), count=len(settings)
        )
        return settings
