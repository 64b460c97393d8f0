# ruff: noqa: I001
"""Persistence for invoice drafts and the invoice-number counter.

Everything is stored as JSON documents under string keys behind the small
:class:`KeyValueStore` protocol. Two backends ship:

- :class:`InMemoryStore` for tests and single-process tools.
- :class:`SqlKeyValueStore` on the shared ``db`` library table
  ``ib_kv_entries`` (see ``libs/db``).

:class:`DraftRepository` keeps all saved drafts in one document
(``saved_invoices``), keyed by invoice number.
"""

from __future__ import annotations

import copy
import dataclasses
import threading
import time
from collections.abc import Callable, Iterable
from decimal import Decimal
from typing import Any, Protocol

from sqlalchemy.engine import Engine

from db.client import session_factory, session_scope
from db.models.invoicing import IbKvEntry
from .calculations import aggregate_totals, to_decimal
from .config import DEFAULT_CONFIG, EngineConfig
from .dates import to_canonical
from .logging_setup import get_logger
from .models import InvoiceDetails, ItemCategory, LineItem, SavedInvoice, Totals, new_item_id

SAVED_INVOICES_KEY = "saved_invoices"

_logger = get_logger("invoice_builder.storage")


class DraftExistsError(Exception):
    """Saving would overwrite an existing draft and ``overwrite`` was not set."""

    def __init__(self, number: str) -> None:
        super().__init__(f"Invoice {number} already exists in saved drafts")
        self.number = number


# ---- Stores ------------------------------------------------------------------


class KeyValueStore(Protocol):
    """JSON document storage keyed by string."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryStore:
    """Process-local store. Values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SqlKeyValueStore:
    """Store backed by the ``ib_kv_entries`` table.

    The schema is created by the Alembic migration in ``libs/db``; tests call
    ``Base.metadata.create_all(engine)`` instead.
    """

    def __init__(self, engine: Engine) -> None:
        self._factory = session_factory(engine)

    def get(self, key: str) -> Any | None:
        with session_scope(factory=self._factory) as s:
            row = s.get(IbKvEntry, key)
            return None if row is None else row.value

    def set(self, key: str, value: Any) -> None:
        with session_scope(factory=self._factory) as s:
            row = s.get(IbKvEntry, key)
            if row is None:
                s.add(IbKvEntry(key=key, value=value))
            else:
                row.value = value

    def delete(self, key: str) -> None:
        with session_scope(factory=self._factory) as s:
            row = s.get(IbKvEntry, key)
            if row is not None:
                s.delete(row)


# ---- (De)serialization -------------------------------------------------------


def _dec(v: Decimal) -> str:
    return str(v)


def _item_to_json(item: LineItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "category": item.category.value,
        "description": item.description,
        "date": item.date,
        "hours": _dec(item.hours),
        "rate": _dec(item.rate),
        "amount": _dec(item.amount),
    }


def _item_from_json(raw: dict[str, Any]) -> LineItem:
    category = ItemCategory.EXPENSE if raw.get("category") == "expense" else ItemCategory.SERVICE
    return LineItem(
        category=category,
        description=str(raw.get("description") or ""),
        date=to_canonical(raw.get("date") or ""),
        hours=to_decimal(raw.get("hours")),
        rate=to_decimal(raw.get("rate")),
        amount=to_decimal(raw.get("amount")),
        id=str(raw.get("id") or new_item_id()),
    )


def _totals_to_json(t: Totals) -> dict[str, str]:
    return {
        "service_subtotal": _dec(t.service_subtotal),
        "gross": _dec(t.gross),
        "gst": _dec(t.gst),
        "withholding_tax": _dec(t.withholding_tax),
        "payable": _dec(t.payable),
        "net_retained": _dec(t.net_retained),
    }


def _totals_from_json(raw: dict[str, Any]) -> Totals:
    return Totals(**{k: to_decimal(raw.get(k)) for k in _totals_to_json(Totals())})


def _details_to_json(d: InvoiceDetails) -> dict[str, str]:
    return {
        "number": d.number,
        "date": d.date,
        "bill_to_name": d.bill_to_name,
        "bill_to_email": d.bill_to_email,
        "job_ref": d.job_ref,
        "notes": d.notes,
    }


def _details_from_json(raw: dict[str, Any]) -> InvoiceDetails:
    d = InvoiceDetails(**{k: str(raw.get(k) or "") for k in _details_to_json(InvoiceDetails())})
    # Older drafts may carry display-form dates.
    return dataclasses.replace(d, date=to_canonical(d.date))


def _saved_to_json(s: SavedInvoice) -> dict[str, Any]:
    return {
        "id": s.id,
        "timestamp": s.timestamp,
        "details": _details_to_json(s.details),
        "items": [_item_to_json(i) for i in s.items],
        "totals": _totals_to_json(s.totals),
    }


def _saved_from_json(raw: dict[str, Any]) -> SavedInvoice:
    return SavedInvoice(
        id=str(raw["id"]),
        timestamp=float(raw.get("timestamp") or 0),
        details=_details_from_json(raw.get("details") or {}),
        items=tuple(_item_from_json(i) for i in raw.get("items") or []),
        totals=_totals_from_json(raw.get("totals") or {}),
    )


# ---- Drafts ------------------------------------------------------------------


class DraftRepository:
    """Saved invoice drafts, one per invoice number."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        config: EngineConfig = DEFAULT_CONFIG,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._config = config
        self._clock = clock

    def _read_all(self) -> list[dict[str, Any]]:
        raw = self._store.get(SAVED_INVOICES_KEY)
        return list(raw) if isinstance(raw, list) else []

    def exists(self, number: str) -> bool:
        return any(r.get("id") == number for r in self._read_all())

    def save(
        self,
        details: InvoiceDetails,
        items: Iterable[LineItem],
        *,
        overwrite: bool = False,
    ) -> SavedInvoice:
        """Persist a draft under ``details.number``.

        Raises :class:`DraftExistsError` when a draft with that number exists
        and ``overwrite`` is false; ``ValueError`` when the number is blank.
        Totals are recomputed from ``items`` at save time.
        """

        number = details.number.strip()
        if not number:
            raise ValueError("invoice number is required to save a draft")
        items_t = tuple(items)
        saved = SavedInvoice(
            id=number,
            timestamp=self._clock(),
            details=details,
            items=items_t,
            totals=aggregate_totals(items_t, config=self._config),
        )
        records = self._read_all()
        idx = next((i for i, r in enumerate(records) if r.get("id") == number), None)
        if idx is not None:
            if not overwrite:
                raise DraftExistsError(number)
            records[idx] = _saved_to_json(saved)
        else:
            records.append(_saved_to_json(saved))
        self._store.set(SAVED_INVOICES_KEY, records)
        _logger.info(
            "drafts:saved number=%s num_items=%d overwrite=%s",
            number,
            len(items_t),
            idx is not None,
        )
        return saved

    def list(self) -> list[SavedInvoice]:
        """All drafts, newest first."""

        drafts = [_saved_from_json(r) for r in self._read_all()]
        drafts.sort(key=lambda s: s.timestamp, reverse=True)
        return drafts

    def load(self, number: str) -> SavedInvoice:
        """Return the draft saved under ``number`` with dates in canonical form.

        Raises ``KeyError`` when no such draft exists.
        """

        for r in self._read_all():
            if r.get("id") == number:
                return _saved_from_json(r)
        raise KeyError(number)

    def delete(self, number: str) -> bool:
        """Remove a draft; returns whether one was removed."""

        records = self._read_all()
        kept = [r for r in records if r.get("id") != number]
        if len(kept) == len(records):
            return False
        self._store.set(SAVED_INVOICES_KEY, kept)
        _logger.info("drafts:deleted number=%s", number)
        return True


__all__ = [
    "DraftExistsError",
    "DraftRepository",
    "InMemoryStore",
    "KeyValueStore",
    "SAVED_INVOICES_KEY",
    "SqlKeyValueStore",
]
