"""Date normalization between free-form text, canonical and display forms.

Canonical form is ``YYYY-MM-DD``; display form is ``DD/MM/YYYY``. Both
directions are total: text that cannot be interpreted is handed back
unchanged instead of raising.
"""

from __future__ import annotations

import re
from datetime import date, datetime

from dateutil import parser as date_parser

_CANONICAL_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DAY_FIRST_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")

# Two distinct defaults: a component dateutil had to borrow from the default
# shows up as a difference between the two parses.
_PROBE_DEFAULTS = (datetime(2001, 1, 1), datetime(2002, 2, 2))


def today_canonical() -> str:
    return date.today().isoformat()


def _parse_complete(text: str) -> date | None:
    parsed: list[datetime] = []
    for default in _PROBE_DEFAULTS:
        try:
            parsed.append(date_parser.parse(text, default=default, dayfirst=True))
        except (ValueError, OverflowError):
            return None
    first, second = parsed
    if first.date() != second.date():
        # Year, month or day was missing from the text.
        return None
    return first.date()


def to_canonical(value: str | date | None) -> str:
    """Normalize date text to ``YYYY-MM-DD``.

    - ``None``/empty input yields ``""``.
    - Already canonical text is returned as-is.
    - ``D/M/YYYY`` and ``D-M-YYYY`` are reordered and zero-padded.
    - Anything else goes through general calendar parsing (day-first); text
      that does not name a complete calendar date is returned unchanged.
    """

    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat() if not isinstance(value, datetime) else value.date().isoformat()
    text = str(value)
    stripped = text.strip()
    if not stripped:
        return ""
    if _CANONICAL_RE.match(stripped):
        return stripped

    m = _DAY_FIRST_RE.match(stripped)
    if m:
        d, mo, y = m.groups()
        try:
            return date(int(y), int(mo), int(d)).isoformat()
        except ValueError:
            # Not a real day-first date (e.g. month 15); try general parsing.
            pass

    parsed = _parse_complete(stripped)
    if parsed is None:
        return text
    return parsed.isoformat()


def to_display(value: str | None) -> str:
    """Format a canonical date as ``DD/MM/YYYY``; other input passes through."""

    if not value:
        return ""
    if not _CANONICAL_RE.match(value):
        return value
    y, m, d = value.split("-")
    return f"{d}/{m}/{y}"


__all__ = ["to_canonical", "to_display", "today_canonical"]
