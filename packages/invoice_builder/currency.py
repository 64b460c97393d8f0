"""Currency display for invoice amounts (NZD, en-NZ, whole dollars)."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from babel.numbers import format_currency as _babel_format_currency

from .calculations import round_half_up, to_decimal

CURRENCY_CODE = "NZD"
LOCALE = "en_NZ"
# Whole units only; babel derives the "-$1,234" negative pattern from it.
_PATTERN = "¤#,##0"


def format_currency(amount: Any) -> str:
    """Render ``amount`` as a whole-dollar currency string, e.g. ``$1,234``.

    The value is rounded with the engine's half-up rule before formatting so
    the displayed figure always matches the totals. Non-numeric input renders
    as zero.
    """

    value = round_half_up(to_decimal(amount))
    if value == 0:
        # Avoid "-$0" for negative zero.
        value = Decimal("0")
    return _babel_format_currency(
        value,
        CURRENCY_CODE,
        format=_PATTERN,
        locale=LOCALE,
        currency_digits=False,
    )


__all__ = ["CURRENCY_CODE", "LOCALE", "format_currency"]
