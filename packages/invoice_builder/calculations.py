"""Billing arithmetic: line amounts, reverse metrics and invoice totals.

Rounding policy
---------------
Every rounding step in the engine uses :func:`round_half_up`, i.e.
``decimal.ROUND_HALF_UP`` to whole units (ties move away from zero:
``2.5 -> 3``, ``-2.5 -> -3``). Amounts are whole dollars after rounding; rates
and quantities keep whatever precision they were given.

Numeric coercion
----------------
:func:`to_decimal` is the single entry point for turning loosely typed input
(``""``, ``None``, ``"$1,234.50"``, floats) into ``Decimal``. It never returns
a non-finite value; anything it cannot read becomes the supplied default. Text and
plain numbers of ten to the power 16 or more are treated as unreadable too.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any

from .config import DEFAULT_CONFIG, EngineConfig
from .models import ZERO, ItemCategory, LineItem, Metrics, Totals

_ONE = Decimal("1")

# Largest order of magnitude accepted from text or plain numbers (below 1e16).
MAX_MAGNITUDE = 15
_MIN_PREC = 28


# ---------------------------------------------------------------------------
# Coercion and rounding
# ---------------------------------------------------------------------------


def parse_decimal(raw: str | None) -> Decimal:
    """Parse money-ish text such as ``"$1,234.56"``, ``"-($20)"`` or ``"45"``.

    Raises ``ValueError`` for missing, empty, non-numeric or non-finite text.
    """

    if raw is None:
        raise ValueError("value is required")
    s = raw.strip()
    if not s:
        raise ValueError("value is empty")
    negative = False

    # Strip leading sign, currency symbol and surrounding parentheses in any
    # order until stable.
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
            changed = True
        if s.startswith("$"):
            s = s[1:].lstrip()
            changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.replace(",", "").strip()
    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise ValueError(f"invalid number: {raw!r}") from exc
    if not d.is_finite():
        raise ValueError(f"non-finite number: {raw!r}")
    return -abs(d) if negative else d


def _within_range(d: Decimal) -> Decimal | None:
    if not d.is_finite() or (d != 0 and d.adjusted() > MAX_MAGNITUDE):
        return None
    return d


def to_decimal_or_none(value: Any) -> Decimal | None:
    """Coerce ``value`` to a finite ``Decimal``; ``None`` when it is unreadable.

    ``Decimal`` values are taken as they are; anything else must also stay
    within :data:`MAX_MAGNITUDE`.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return _within_range(Decimal(value))
    if isinstance(value, float):
        return _within_range(Decimal(str(value)))
    try:
        return _within_range(parse_decimal(str(value)))
    except ValueError:
        return None


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    d = to_decimal_or_none(value)
    return default if d is None else d


def round_half_up(value: Decimal) -> Decimal:
    """Round to a whole unit, ties away from zero.

    Precision grows with the value, so any finite input rounds without raising.
    """

    ctx = Context(prec=max(_MIN_PREC, value.adjusted() + 2))
    return value.quantize(_ONE, rounding=ROUND_HALF_UP, context=ctx)


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning zero instead of raising on a zero denominator."""

    if denominator == 0:
        return ZERO
    return numerator / denominator


# ---------------------------------------------------------------------------
# Line amounts
# ---------------------------------------------------------------------------


def compute_amount(hours: Any, rate: Any) -> Decimal:
    """Return ``round(hours * rate)``; missing or unreadable inputs count as zero."""

    return round_half_up(to_decimal(hours) * to_decimal(rate))


def resolve_metrics(
    target: Any,
    *,
    rates: Iterable[Decimal] | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Metrics:
    """Find whole hours and an allowed rate whose product best matches ``target``.

    For each rate (in order) the candidate is ``hours = round(target / rate)``
    clamped to at least 1. The candidate with the smallest absolute difference
    from ``target`` wins; on a tie the earlier rate is kept. A zero target
    short-circuits to ``(0, default_service_rate, 0)``.

    The returned ``amount`` is the snapped total and may differ from
    ``target``.
    """

    t = to_decimal(target)
    if t == 0:
        return Metrics(hours=ZERO, rate=config.default_service_rate, amount=ZERO)

    best: Metrics | None = None
    best_diff: Decimal | None = None
    for rate in config.allowed_rates if rates is None else rates:
        r = to_decimal(rate)
        if r <= 0:
            continue
        hours = round_half_up(t / r)
        if hours < 1:
            hours = _ONE
        snapped = compute_amount(hours, r)
        diff = abs(t - snapped)
        if best_diff is None or diff < best_diff:
            best = Metrics(hours=hours, rate=r, amount=snapped)
            best_diff = diff

    if best is None:
        raise ValueError("resolve_metrics requires at least one positive rate")
    return best


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------


def aggregate_totals(items: Iterable[LineItem], *, config: EngineConfig = DEFAULT_CONFIG) -> Totals:
    """Fold line items into invoice totals.

    GST and withholding tax are each a rounded percentage of the service
    subtotal. ``payable = gross + gst`` and ``net_retained = gross -
    withholding_tax``. The input is only read.
    """

    gross = ZERO
    service_subtotal = ZERO
    for item in items:
        amount = to_decimal(item.amount)
        gross += amount
        if item.category == ItemCategory.SERVICE:
            service_subtotal += amount

    gst = round_half_up(service_subtotal * config.gst_rate)
    withholding_tax = round_half_up(service_subtotal * config.tax_rate)
    return Totals(
        service_subtotal=service_subtotal,
        gross=gross,
        gst=gst,
        withholding_tax=withholding_tax,
        payable=gross + gst,
        net_retained=gross - withholding_tax,
    )


__all__ = [
    "aggregate_totals",
    "compute_amount",
    "parse_decimal",
    "resolve_metrics",
    "round_half_up",
    "safe_divide",
    "to_decimal",
    "to_decimal_or_none",
]
