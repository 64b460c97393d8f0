"""Raw record -> :class:`~invoice_builder.models.LineItem` normalization.

Every producer of candidate line items (CSV import, AI note analysis, PDF
extraction) hands its output to :func:`normalize_record`. Records are loosely
shaped mappings: keys may be any casing and any of several aliases, values may
be text or numbers, and any field may be missing.

The normalizer is total. No input raises; the worst case is a zero-amount item
carrying the category placeholder description.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import replace
from decimal import Decimal
from typing import Any

from .calculations import compute_amount, resolve_metrics, safe_divide, to_decimal_or_none
from .config import DEFAULT_CONFIG, EngineConfig
from .dates import to_canonical
from .logging_setup import get_logger
from .models import ZERO, ItemCategory, LineItem, RawRecord

_logger = get_logger("invoice_builder.normalizers")

_ONE = Decimal("1")

# ---------------------------------------------------------------------------
# Field aliases (priority order) and the expense vocabulary
# ---------------------------------------------------------------------------

AMOUNT_KEYS: tuple[str, ...] = ("amount", "total", "line total", "gross", "amt")
HOURS_KEYS: tuple[str, ...] = ("hours", "hrs", "quantity", "qty", "count", "quantity (hrs)")
RATE_KEYS: tuple[str, ...] = ("rate", "unit price", "cost", "price", "unit cost", "rate ($)")
DESCRIPTION_KEYS: tuple[str, ...] = (
    "description",
    "item",
    "activity",
    "details",
    "memo",
    "notes",
    "task",
)
DATE_KEYS: tuple[str, ...] = (
    "date",
    "transaction date",
    "service date",
    "work date",
    "invoice date",
)
CATEGORY_KEYS: tuple[str, ...] = ("type", "category")

EXPENSE_KEYWORDS: tuple[str, ...] = (
    "material",
    "mitre 10",
    "bunnings",
    "placemakers",
    "carters",
    "itm",
    "fuel",
    "parking",
    "expense",
    "reimburse",
    "cost",
    "hardware",
    "fasten",
    "screw",
    "nail",
    "timber",
    "concrete",
    "paint",
    "hire",
    "consumable",
    "store",
    "merchant",
)
_EXPENSE_RE = re.compile("|".join(re.escape(k) for k in EXPENSE_KEYWORDS), re.IGNORECASE)


# ---------------------------------------------------------------------------
# Helpers (field lookup, category inference)
# ---------------------------------------------------------------------------


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip() == ""


def resolve_field(record: RawRecord, aliases: Sequence[str]) -> Any | None:
    """Return the first non-empty value for any of ``aliases``.

    Pass 1 tries each alias as an exact key; pass 2 compares each alias
    case-insensitively against the record's keys. Alias order is priority
    order in both passes.
    """

    for alias in aliases:
        if alias in record and not _is_blank(record[alias]):
            return record[alias]
    keys = [k for k in record if isinstance(k, str)]
    for alias in aliases:
        folded = alias.casefold()
        for key in keys:
            if key.strip().casefold() == folded and not _is_blank(record[key]):
                return record[key]
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def has_expense_keyword(description: str) -> bool:
    return bool(_EXPENSE_RE.search(description or ""))


def classify_category(explicit: Any, description: str) -> ItemCategory:
    """Pick the category from an explicit label, else from description keywords."""

    if "expense" in _text(explicit).casefold():
        return ItemCategory.EXPENSE
    if has_expense_keyword(description):
        return ItemCategory.EXPENSE
    return ItemCategory.SERVICE


# ---------------------------------------------------------------------------
# Numeric resolution per category
# ---------------------------------------------------------------------------


def _resolve_expense(
    amount: Decimal | None, quantity: Decimal | None, rate: Decimal | None
) -> tuple[Decimal, Decimal, Decimal]:
    if amount is not None:
        if rate is not None:
            if quantity is None:
                quantity = safe_divide(amount, rate)
                if quantity == 0:
                    quantity = _ONE
            return quantity, rate, amount
        if quantity is None:
            quantity = _ONE
        return quantity, safe_divide(amount, quantity), amount
    if quantity is not None and rate is not None:
        return quantity, rate, quantity * rate
    return ZERO, ZERO, ZERO


def _resolve_service(
    amount: Decimal | None,
    hours: Decimal | None,
    rate: Decimal | None,
    config: EngineConfig,
    *,
    keep_reconciled: bool = False,
) -> tuple[Decimal, Decimal, Decimal]:
    if amount is not None and amount != 0:
        reconciled = (
            keep_reconciled
            and hours is not None
            and rate is not None
            and rate > 0
            and compute_amount(hours, rate) == amount
        )
        if reconciled:
            # Our own output: hours x rate already yields the amount.
            return hours, rate, amount
        metrics = resolve_metrics(amount, config=config)
        return metrics.hours, metrics.rate, metrics.amount
    h = hours if hours is not None else ZERO
    r = rate if rate is not None and rate > 0 else config.default_service_rate
    return h, r, compute_amount(h, r)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def normalize_record(
    record: RawRecord | LineItem | Any, *, config: EngineConfig = DEFAULT_CONFIG
) -> LineItem:
    """Turn one raw candidate record into a self-consistent :class:`LineItem`.

    Resolution rules
    ----------------
    - Category: an explicit ``type``/``category`` containing "expense" wins;
      otherwise any expense keyword in the description; otherwise service.
    - Expense: a given amount is kept. With a unit cost, quantity is the given
      one or ``amount / cost`` (1 when that is zero); without a unit cost,
      quantity defaults to 1 and cost is ``amount / quantity``. Without an
      amount, ``quantity * cost`` when both are present, else all zero.
    - Service: a non-zero amount is snapped with
      :func:`~invoice_builder.calculations.resolve_metrics`, discarding any
      given hours and rate. Otherwise given hours (default 0) and a positive
      rate (default the standard service rate).
    - Dates go through :func:`~invoice_builder.dates.to_canonical`; a missing
      description becomes the category placeholder.

    Passing a :class:`LineItem` re-normalizes it in place of its raw record and
    keeps its ``id``. A service item whose hours and rate already reproduce its
    amount is not snapped again, so already-normalized items come back
    unchanged.
    """

    item_id: str | None = None
    renormalizing = isinstance(record, LineItem)
    if renormalizing:
        item_id = record.id
        record = record.as_record()
    if not isinstance(record, Mapping):
        _logger.warning("normalize:skip_non_mapping type=%s", type(record).__name__)
        record = {}

    description = _text(resolve_field(record, DESCRIPTION_KEYS))
    category = classify_category(resolve_field(record, CATEGORY_KEYS), description)

    amount = to_decimal_or_none(resolve_field(record, AMOUNT_KEYS))
    hours = to_decimal_or_none(resolve_field(record, HOURS_KEYS))
    rate = to_decimal_or_none(resolve_field(record, RATE_KEYS))

    placeholder = (
        config.expense_placeholder
        if category is ItemCategory.EXPENSE
        else config.service_placeholder
    )
    try:
        if category is ItemCategory.EXPENSE:
            hours, rate, amount = _resolve_expense(amount, hours, rate)
        else:
            hours, rate, amount = _resolve_service(
                amount, hours, rate, config, keep_reconciled=renormalizing
            )
    except ArithmeticError as e:
        # Out-of-range figures (e.g. beyond Decimal precision) degrade to zero.
        _logger.warning("normalize:numeric_overflow error=%s", e.__class__.__name__)
        hours, rate, amount = ZERO, ZERO, ZERO

    raw_date = resolve_field(record, DATE_KEYS)
    item = LineItem(
        category=category,
        description=description or placeholder,
        hours=hours,
        rate=rate,
        amount=amount,
        date=to_canonical(_text(raw_date)) if raw_date is not None else "",
    )
    if item_id is not None:
        item = replace(item, id=item_id)
    return item


def normalize_records(
    records: Sequence[RawRecord] | Iterator[RawRecord], *, config: EngineConfig = DEFAULT_CONFIG
) -> list[LineItem]:
    """Normalize records in input order."""

    items = [normalize_record(r, config=config) for r in records]
    _logger.debug("normalize:done count=%d", len(items))
    return items


__all__ = [
    "AMOUNT_KEYS",
    "CATEGORY_KEYS",
    "DATE_KEYS",
    "DESCRIPTION_KEYS",
    "EXPENSE_KEYWORDS",
    "HOURS_KEYS",
    "RATE_KEYS",
    "classify_category",
    "has_expense_keyword",
    "normalize_record",
    "normalize_records",
    "resolve_field",
]
