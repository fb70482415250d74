"""Type conversion utilities."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

_INT_RE = re.compile(r"^[+-]?\d+$")


def to_int(raw: str | int | None) -> int | None:
    """Convert string or int to int, return None if invalid.

    Handles various formats:
        - None → None
        - int → int (passthrough)
        - "123" → 123
        - "1,234" → 1234
        - "1 234" → 1234
        - "" → None
        - "12abc", "1.5" → None

    Args:
        raw: Input value (str, int, or None).

    Returns:
        Integer or None if conversion fails.
    """
    if raw is None:
        return None

    if isinstance(raw, bool):
        return None

    if isinstance(raw, int):
        return raw

    if isinstance(raw, str):
        txt = raw.strip().replace(",", "").replace(" ", "")
        if not _INT_RE.match(txt):
            return None
        return int(txt)

    return None


def parse_feed_date(raw: str | None) -> datetime | None:
    """Parse a feed timestamp into an aware UTC datetime.

    Accepts RFC 822 (``pubDate``, e.g. ``Mon, 06 Jan 2025 10:00:00 +0000``)
    and ISO 8601 (``2025-01-06T10:00:00Z``). Naive values are taken as UTC.
    Returns None when the value is absent or unparseable.
    """
    if not raw or not raw.strip():
        return None
    text = raw.strip()

    parsed: datetime | None
    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        parsed = None

    if parsed is None:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
