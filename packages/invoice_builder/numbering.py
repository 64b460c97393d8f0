"""Invoice numbers of the form ``INV-YYYYMMDD-NNN``.

The counter lives in a :class:`~invoice_builder.storage.KeyValueStore` as
``{"date": "YYYYMMDD", "count": N}`` and restarts at 1 on a new day. Numbers
entered by hand for today push the counter forward so the next generated
number never collides with them.
"""

from __future__ import annotations

import re
import threading
from datetime import date

from .logging_setup import get_logger
from .storage import KeyValueStore

INVOICE_COUNTER_KEY = "invoice_counter"

_NUMBER_RE = re.compile(r"^INV-(\d{8})-(\d{3})$")
_LOCK = threading.Lock()

_logger = get_logger("invoice_builder.numbering")


def _day_key(today: date | None) -> str:
    return (today or date.today()).strftime("%Y%m%d")


def _stored_count(store: KeyValueStore, day: str) -> int:
    raw = store.get(INVOICE_COUNTER_KEY)
    if not isinstance(raw, dict) or raw.get("date") != day:
        return 0
    try:
        return int(raw.get("count") or 0)
    except (TypeError, ValueError):
        _logger.warning("numbering:bad_counter value=%r", raw.get("count"))
        return 0


def format_invoice_number(day: str, count: int) -> str:
    return f"INV-{day}-{count:03d}"


def next_invoice_number(store: KeyValueStore, today: date | None = None) -> str:
    """Reserve and return the next invoice number for ``today``."""

    day = _day_key(today)
    with _LOCK:
        count = _stored_count(store, day) + 1
        store.set(INVOICE_COUNTER_KEY, {"date": day, "count": count})
    return format_invoice_number(day, count)


def sync_invoice_counter(store: KeyValueStore, number: str, today: date | None = None) -> bool:
    """Advance the counter past a manually entered ``number``.

    Only numbers in the ``INV-YYYYMMDD-NNN`` form dated today count, and only
    when higher than the stored counter. Returns whether the counter moved.
    """

    m = _NUMBER_RE.match(number.strip())
    day = _day_key(today)
    if m is None or m.group(1) != day:
        return False
    entered = int(m.group(2))
    with _LOCK:
        if entered <= _stored_count(store, day):
            return False
        store.set(INVOICE_COUNTER_KEY, {"date": day, "count": entered})
    _logger.info("numbering:synced day=%s count=%d", day, entered)
    return True


__all__ = [
    "INVOICE_COUNTER_KEY",
    "format_invoice_number",
    "next_invoice_number",
    "sync_invoice_counter",
]
