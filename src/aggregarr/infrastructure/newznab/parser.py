"""Newznab RSS feed parser.

Parses the RSS 2.0 documents returned by Newznab ``t=search`` calls:
- RSS 2.0 specification (item/title/link/guid/pubDate/enclosure/category)
- Newznab extensions: ``<newznab:response total=".."/>`` and
  ``<newznab:attr name=".." value=".."/>`` per item

Indexers do not validate their own output, so parsing is permissive:
- A bare ``&`` or an HTML-only entity (``&nbsp;``) outside CDATA is escaped
  before parsing and reaches the normalizer as literal text.
- lxml runs in recover mode, so a broken item costs that item only; items
  after it are still read.
- An item cut off by a truncated body is closed by the recovery and kept
  only if it still has a title and a link or GUID.

Nothing in this module raises.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from datetime import datetime, timezone

import structlog
from lxml import etree

from aggregarr.domain.entities import (
    UNKNOWN_CATEGORY,
    ParsedFeed,
    SearchResult,
)
from aggregarr.infrastructure.common.converters import parse_feed_date, to_int

log = structlog.get_logger(__name__)

_CDATA_RE = re.compile(rb"(<!\[CDATA\[.*?\]\]>)", re.DOTALL)
# Anything but the five XML entities and numeric character references.
_STRAY_AMP_RE = re.compile(rb"&(?!(?:amp|lt|gt|quot|apos|#[0-9]+|#x[0-9A-Fa-f]+);)")
_XML_DECL_RE = re.compile(r"^<\?xml[^>]*\?>")


def _local(tag: str) -> str:
    """Strip the ``{namespace}`` prefix lxml puts on qualified tags."""
    return tag.rsplit("}", 1)[-1]


def _text(elem: etree._Element | None) -> str:
    if elem is None or elem.text is None:
        return ""
    return elem.text.strip()


def _escape_stray_ampersands(payload: bytes) -> bytes:
    parts = _CDATA_RE.split(payload)
    # re.split keeps the captured CDATA sections at the odd indexes.
    for i in range(0, len(parts), 2):
        parts[i] = _STRAY_AMP_RE.sub(b"&amp;", parts[i])
    return b"".join(parts)


def _prepare(payload: bytes | str) -> bytes:
    if isinstance(payload, str):
        # The declared encoding no longer applies once we re-encode.
        text = _XML_DECL_RE.sub("", payload.removeprefix("\ufeff").lstrip(), count=1)
        payload = text.encode("utf-8")
    return _escape_stray_ampersands(payload.removeprefix(b"\xef\xbb\xbf").lstrip())


def _new_parser(events: tuple[str, ...]) -> etree.XMLPullParser:
    return etree.XMLPullParser(
        events=events,
        recover=True,
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
    )


def _iter_events(
    payload: bytes | str, indexer_name: str
) -> Iterator[tuple[str, etree._Element]]:
    """Yield (event, element) pairs for everything lxml could recover."""
    parser = _new_parser(("start", "end"))
    error: str | None = None
    try:
        parser.feed(_prepare(payload))
        parser.close()
    except etree.LxmlError as e:
        # Nothing recoverable (empty or non-XML body); queued events stay readable.
        error = str(e)

    yield from parser.read_events()

    if error is None and len(parser.error_log):
        error = str(parser.error_log[0].message)
    if error is not None:
        log.warning(
            "feed_parse_recovered",
            indexer=indexer_name,
            error=error,
            error_count=len(parser.error_log),
        )


def _item_to_result(
    item: etree._Element,
    indexer_name: str,
    now: datetime,
) -> SearchResult | None:
    title = ""
    link = ""
    guid = ""
    pub_date = ""
    category = ""
    enclosure_length: int | None = None
    attrs: dict[str, str] = {}

    for child in item:
        if not isinstance(child.tag, str):
            continue
        name = _local(child.tag)
        if name == "title" and not title:
            title = _text(child)
        elif name == "link" and not link:
            link = _text(child)
        elif name == "guid" and not guid:
            guid = _text(child)
        elif name == "pubDate" and not pub_date:
            pub_date = _text(child)
        elif name == "category" and not category:
            category = _text(child)
        elif name == "enclosure" and enclosure_length is None:
            enclosure_length = to_int(child.get("length"))
        elif name == "attr":
            attr_name = child.get("name")
            if attr_name and attr_name not in attrs:
                attrs[attr_name] = child.get("value") or ""

    source_id = link or guid
    if not title or not source_id:
        log.debug(
            "feed_item_dropped",
            indexer=indexer_name,
            has_title=bool(title),
            has_link=bool(link),
            has_guid=bool(guid),
        )
        return None

    size = enclosure_length
    if not size:
        size = to_int(attrs.get("size"))

    return SearchResult(
        id=guid or link,
        title=title,
        size_bytes=max(size or 0, 0),
        posted_at=parse_feed_date(pub_date) or now,
        source_id=source_id,
        indexer_name=indexer_name,
        category=category or attrs.get("category") or UNKNOWN_CATEGORY,
        group=attrs.get("group") or None,
    )


def parse_newznab_feed(
    payload: bytes | str,
    indexer_name: str,
    *,
    now: datetime | None = None,
) -> ParsedFeed:
    """Parse a Newznab search response into results plus a total hint.

    Args:
        payload: Raw response body.
        indexer_name: Name stamped onto every result.
        now: Fallback ``posted_at`` for items without a usable pubDate.

    Returns:
        ParsedFeed. ``total_hint`` is the ``newznab:response@total``
        attribute, or 0 when absent. It is not related to ``len(results)``.
    """
    now = now or datetime.now(timezone.utc)
    results: list[SearchResult] = []
    total_hint = 0

    if not payload:
        return ParsedFeed(results=[], total_hint=0)

    for event, elem in _iter_events(payload, indexer_name):
        if not isinstance(elem.tag, str):
            continue
        name = _local(elem.tag)

        if event == "start":
            if name == "response":
                total_hint = max(to_int(elem.get("total")) or 0, 0)
            continue

        if name != "item":
            continue

        result = _item_to_result(elem, indexer_name, now)
        if result is not None:
            results.append(result)
        elem.clear()

    log.debug(
        "feed_parsed",
        indexer=indexer_name,
        result_count=len(results),
        total_hint=total_hint,
    )
    return ParsedFeed(results=results, total_hint=total_hint)


def detect_feed_error(payload: bytes | str) -> str | None:
    """Return a description if *payload* is a Newznab ``<error>`` document.

    Newznab reports API errors (bad key, request limit reached) with HTTP 200
    and a body like ``<error code="100" description="Incorrect user
    credentials"/>``.
    """
    if not payload:
        return None

    parser = _new_parser(("start",))
    try:
        parser.feed(_prepare(payload))
        parser.close()
    except etree.LxmlError:
        return None

    for _, elem in parser.read_events():
        if not isinstance(elem.tag, str) or _local(elem.tag) != "error":
            return None
        code = elem.get("code") or "?"
        description = elem.get("description") or "unknown error"
        return f"newznab error {code}: {description}"
    return None
