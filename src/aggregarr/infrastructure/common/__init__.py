"""Common infrastructure utilities."""

from __future__ import annotations

from .converters import parse_feed_date, to_int
from .dedup import dedup_key, dedupe_results
from .normalizer import decode_entities, normalize_result

__all__ = [
    "to_int",
    "parse_feed_date",
    "dedup_key",
    "dedupe_results",
    "decode_entities",
    "normalize_result",
]
