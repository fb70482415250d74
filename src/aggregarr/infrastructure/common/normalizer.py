"""Free-text normalization for parsed search results."""

from __future__ import annotations

import re
from dataclasses import replace

from aggregarr.domain.entities import UNKNOWN_CATEGORY, SearchResult

_ENTITIES: dict[str, str] = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "#39": "'",
    "#039": "'",
    "apos": "'",
    "nbsp": "\u00a0",
}

_ENTITY_RE = re.compile(r"&(" + "|".join(re.escape(k) for k in _ENTITIES) + r");")


def decode_entities(text: str) -> str:
    """Decode the common HTML character references in *text*.

    Feed text reaches this function already XML-decoded by the parser, so
    this is the second layer: the HTML escaping indexers put inside their
    XML (``&amp;amp;`` on the wire, ``&amp;`` here). That layer is decoded
    in a single pass: ``&amp;lt;`` becomes ``&lt;``, not ``<``.
    Unrecognized entities (``&hellip;``) pass through unchanged.
    """
    if "&" not in text:
        return text
    return _ENTITY_RE.sub(lambda m: _ENTITIES[m.group(1)], text)


def normalize_result(result: SearchResult) -> SearchResult:
    """Return *result* with decoded, trimmed title/category and a sane size."""
    title = decode_entities(result.title).strip()
    category = decode_entities(result.category).strip() or UNKNOWN_CATEGORY
    size = result.size_bytes if result.size_bytes > 0 else 0
    group = result.group.strip() if result.group else None

    return replace(
        result,
        title=title,
        category=category,
        size_bytes=size,
        group=group or None,
    )
