from .indexer_client import IndexerClientPort
from .indexer_config import IndexerConfigSourcePort, IndexerSettingsLike

__all__ = [
    "IndexerClientPort",
    "IndexerConfigSourcePort",
    "IndexerSettingsLike",
]
