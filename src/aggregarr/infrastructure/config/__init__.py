from __future__ import annotations

from .indexers import FileIndexerConfigSource
from .load import load_config
from .schema import AppConfig, EnvOverrides, IndexerSettings

__all__ = [
    "AppConfig",
    "EnvOverrides",
    "FileIndexerConfigSource",
    "IndexerSettings",
    "load_config",
]
