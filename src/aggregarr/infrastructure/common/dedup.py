"""Near-duplicate removal across indexer responses."""

from __future__ import annotations

import re
from collections.abc import Iterable

from aggregarr.domain.entities import SearchResult

_NON_WORD_RE = re.compile(r"[^\w\s]")


def dedup_key(result: SearchResult) -> str:
    """Normalized title + exact byte size.

    ``Ubuntu.22.04-[GRP]`` and ``ubuntu 2204 GRP`` differ; ``Ubuntu.22.04``
    and ``[Ubuntu] 22.04`` do not, provided the sizes match.
    """
    title = _NON_WORD_RE.sub("", result.title.lower()).strip()
    return f"{title}-{result.size_bytes}"


def dedupe_results(results: Iterable[SearchResult]) -> list[SearchResult]:
    """Drop results whose dedup key was already seen. First occurrence wins."""
    seen: set[str] = set()
    out: list[SearchResult] = []
    for result in results:
        key = dedup_key(result)
        if key in seen:
            continue
        seen.add(key)
        out.append(result)
    return out
