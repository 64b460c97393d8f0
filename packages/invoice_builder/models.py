"""Data models and type aliases for ``invoice_builder``.

Line items and totals are frozen dataclasses; every edit produces a new
instance (see :mod:`invoice_builder.editing`). Monetary and quantity fields are
``Decimal`` throughout so rounding is explicit and exact.

Raw records coming from collaborators (CSV rows, AI extraction output) are kept
opaque: any mapping of loosely named keys to text/number values. Only the
normalizer in :mod:`invoice_builder.normalizers` interprets them.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Raw records
# ---------------------------------------------------------------------------

type RawRecord = Mapping[str, Any]
"""A single loosely-shaped candidate record (CSV row or AI-extracted item).

Keys may use any casing and any of several aliases per logical field; values
may be strings, numbers or ``None``.
"""


ZERO = Decimal("0")


class ItemCategory(StrEnum):
    SERVICE = "service"
    EXPENSE = "expense"


def new_item_id() -> str:
    """Return a fresh opaque identifier for a line item."""

    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Line items and totals
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LineItem:
    """One billable entry.

    ``hours`` reads as hours for service items and as quantity for expense
    items; ``rate`` likewise reads as hourly rate or unit cost. ``amount`` is
    authoritative: a direct edit may leave it out of step with
    ``hours * rate`` until :func:`invoice_builder.editing.commit_amount`
    reconciles it.
    """

    category: ItemCategory
    description: str = ""
    hours: Decimal = ZERO
    rate: Decimal = ZERO
    amount: Decimal = ZERO
    date: str = ""
    id: str = field(default_factory=new_item_id, compare=False)

    @property
    def quantity(self) -> Decimal:
        return self.hours

    @property
    def is_service(self) -> bool:
        return self.category == ItemCategory.SERVICE

    def as_record(self) -> dict[str, Any]:
        """Return a plain mapping in the shape accepted by the normalizer."""

        return {
            "category": self.category.value,
            "description": self.description,
            "date": self.date,
            "hours": self.hours,
            "rate": self.rate,
            "amount": self.amount,
        }


@dataclass(frozen=True, slots=True)
class Totals:
    """Summary figures derived from a full item collection.

    ``gst`` and ``withholding_tax`` are computed on ``service_subtotal`` only;
    expenses contribute to ``gross`` but never to either tax.
    """

    service_subtotal: Decimal = ZERO
    gross: Decimal = ZERO
    gst: Decimal = ZERO
    withholding_tax: Decimal = ZERO
    payable: Decimal = ZERO
    net_retained: Decimal = ZERO


class Metrics(NamedTuple):
    """A snapped ``(hours, rate, amount)`` decomposition of a target amount."""

    hours: Decimal
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True, slots=True)
class InvoiceDetails:
    """Header fields of one invoice (the "bill to" side and numbering)."""

    number: str = ""
    date: str = ""
    bill_to_name: str = ""
    bill_to_email: str = ""
    job_ref: str = ""
    notes: str = ""


@dataclass(frozen=True, slots=True)
class SavedInvoice:
    """A persisted draft: details, items and the totals at save time."""

    id: str
    timestamp: float
    details: InvoiceDetails
    items: tuple[LineItem, ...]
    totals: Totals


type LineItems = Iterable[LineItem]


# ---------------------------------------------------------------------------
# AI extraction DTOs
# ---------------------------------------------------------------------------


class ExtractedItem(BaseModel):
    """One partial line item as returned by an AI collaborator.

    Lenient on purpose: every field may be missing or ``null`` and unknown
    keys are kept, because the result is fed straight into the normalizer,
    which owns all defaulting rules.
    """

    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    category: str | None = None
    description: str | None = None
    date: str | None = None
    hours: float | None = None
    rate: float | None = None
    amount: float | None = None

    @field_validator("hours", "rate", "amount", mode="before")
    @classmethod
    def _blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_record(self) -> dict[str, Any]:
        return {k: v for k, v in self.model_dump().items() if v is not None}


__all__ = [
    "ZERO",
    "ExtractedItem",
    "InvoiceDetails",
    "ItemCategory",
    "LineItem",
    "LineItems",
    "Metrics",
    "RawRecord",
    "SavedInvoice",
    "Totals",
    "new_item_id",
]
