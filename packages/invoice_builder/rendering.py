"""Presentation helpers: table rows, totals summary, split invoices, share text.

Nothing here computes billing figures; it formats what the calculator and the
aggregator produced. Dates are shown as ``DD/MM/YYYY`` and money through
:func:`~invoice_builder.currency.format_currency`.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import NamedTuple

from .calculations import aggregate_totals
from .config import DEFAULT_CONFIG, BusinessDetails, EngineConfig
from .currency import format_currency
from .dates import to_display
from .models import InvoiceDetails, ItemCategory, LineItem, Totals

SERVICE_SECTION_TITLE = "Labor / Services"
EXPENSE_SECTION_TITLE = "Materials / Expenses"
SERVICE_HEADERS: tuple[str, ...] = ("Date", "Description", "Hours", "Rate", "Amount")
EXPENSE_HEADERS: tuple[str, ...] = ("Date", "Description", "Qty", "Cost", "Amount")

_UNSAFE_FILENAME_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)


class DisplayRow(NamedTuple):
    date: str
    description: str
    quantity: str
    rate: str
    amount: str


def format_quantity(value: Decimal) -> str:
    """``Decimal("2.50")`` -> ``"2.5"``, ``Decimal("3.00")`` -> ``"3"``."""

    if value == 0:
        return "0"
    return format(value.normalize(), "f")


def display_row(item: LineItem) -> DisplayRow:
    return DisplayRow(
        date=to_display(item.date),
        description=item.description,
        quantity=format_quantity(item.hours),
        rate=format_currency(item.rate),
        amount=format_currency(item.amount),
    )


def display_rows(items: Iterable[LineItem]) -> list[DisplayRow]:
    return [display_row(i) for i in items]


def headers_for(category: ItemCategory) -> tuple[str, ...]:
    return SERVICE_HEADERS if category == ItemCategory.SERVICE else EXPENSE_HEADERS


def section_title(category: ItemCategory) -> str:
    return SERVICE_SECTION_TITLE if category == ItemCategory.SERVICE else EXPENSE_SECTION_TITLE


def summary_lines(totals: Totals) -> list[tuple[str, str]]:
    """Labelled totals in invoice order."""

    return [
        ("Gross (Before GST)", format_currency(totals.gross)),
        ("GST (15% on Labor)", format_currency(totals.gst)),
        ("Tax (20% on Labor)", format_currency(totals.withholding_tax)),
        ("Client to Pay", format_currency(totals.payable)),
        ("Net (You Keep)", format_currency(totals.net_retained)),
    ]


# ---- Split invoices ----------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SplitInvoice:
    """A single-item invoice derived from a multi-item one."""

    details: InvoiceDetails
    item: LineItem
    totals: Totals
    filename: str


def safe_description(description: str) -> str:
    """First 20 characters, non-alphanumerics replaced by ``_``, lowercased."""

    return _UNSAFE_FILENAME_RE.sub("_", description[:20]).lower()


def split_invoices(
    details: InvoiceDetails,
    items: Iterable[LineItem],
    *,
    config: EngineConfig = DEFAULT_CONFIG,
) -> list[SplitInvoice]:
    """One invoice per line item, numbered ``<number>-01``, ``<number>-02``, ...

    Each split invoice carries its own totals computed from its single item.
    """

    out: list[SplitInvoice] = []
    for pos, item in enumerate(items, start=1):
        number = f"{details.number}-{pos:02d}"
        out.append(
            SplitInvoice(
                details=dataclasses.replace(details, number=number),
                item=item,
                totals=aggregate_totals([item], config=config),
                filename=f"{number}_{safe_description(item.description)}.pdf",
            )
        )
    return out


def split_archive_name(details: InvoiceDetails) -> str:
    return f"{details.number}-individual-invoices.zip"


# ---- Sharing -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ShareMessage:
    title: str
    text: str
    email_subject: str
    email_body: str
    recipient: str


def share_message(
    details: InvoiceDetails,
    totals: Totals,
    business: BusinessDetails,
) -> ShareMessage:
    """Compose the share sheet text and the email fallback for an invoice."""

    title = f"Invoice {details.number} from {business.name}"
    payable = format_currency(totals.payable)
    body = (
        f"Hi {details.bill_to_name or 'there'},\n\n"
        f"Please find attached invoice {details.number} for {details.job_ref}.\n\n"
        f"Total Due: {payable}\n\n"
        f"Regards,\n{business.name}"
    )
    return ShareMessage(
        title=title,
        text=f"Please find attached invoice {details.number} for {details.job_ref}. Total: {payable}",
        email_subject=title,
        email_body=body,
        recipient=details.bill_to_email,
    )


__all__ = [
    "DisplayRow",
    "EXPENSE_HEADERS",
    "SERVICE_HEADERS",
    "ShareMessage",
    "SplitInvoice",
    "display_row",
    "display_rows",
    "format_quantity",
    "headers_for",
    "safe_description",
    "section_title",
    "share_message",
    "split_archive_name",
    "split_invoices",
    "summary_lines",
]
