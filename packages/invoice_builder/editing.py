"""In-place item edits and the ordered line-item collection.

Editing follows a two-phase contract:

- Editing ``hours`` or ``rate`` recomputes ``amount`` immediately.
- Editing ``amount`` only back-derives ``rate`` from the current hours so the
  item stays internally consistent while the value is being typed. Snapping to
  the allowed rate table happens on :func:`commit_amount` (focus leaves the
  field, or an imported record is finalized).

Items are immutable; every function here returns a new :class:`LineItem`.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from dataclasses import replace
from decimal import Decimal
from typing import Any

from .calculations import aggregate_totals, compute_amount, resolve_metrics, safe_divide, to_decimal
from .config import DEFAULT_CONFIG, EngineConfig
from .dates import to_canonical
from .models import ZERO, ItemCategory, LineItem, Totals

_ONE = Decimal("1")

_HOURS_FIELDS = frozenset({"hours", "quantity"})


def new_item(
    category: ItemCategory | str = ItemCategory.SERVICE, *, config: EngineConfig = DEFAULT_CONFIG
) -> LineItem:
    """Create a blank item with the category's defaults."""

    cat = ItemCategory(category)
    if cat is ItemCategory.SERVICE:
        return LineItem(
            category=cat,
            description=config.service_placeholder,
            hours=ZERO,
            rate=config.default_service_rate,
            amount=ZERO,
        )
    return LineItem(
        category=cat,
        description=config.expense_placeholder,
        hours=_ONE,
        rate=ZERO,
        amount=ZERO,
    )


def switch_category(item: LineItem, category: ItemCategory | str) -> LineItem:
    """Move an item to ``category`` keeping its amount and reinterpreting the split.

    To expense: quantity 1 at a unit cost equal to the amount. To service: the
    current hours (1 when zero) and ``rate = amount / hours``.
    """

    target = ItemCategory(category)
    if target == item.category:
        return item
    if target is ItemCategory.EXPENSE:
        return replace(item, category=target, hours=_ONE, rate=item.amount)
    hours = item.hours or _ONE
    return replace(item, category=target, hours=hours, rate=safe_divide(item.amount, hours))


def edit_field(item: LineItem, field: str, value: Any) -> LineItem:
    """Apply one field edit as typed by the user.

    Numeric text that is empty or unreadable counts as zero. ``field`` accepts
    ``quantity`` as an alias of ``hours`` and ``type`` as an alias of
    ``category``. An unknown category value leaves the item unchanged.
    """

    if field in ("category", "type"):
        try:
            target = ItemCategory(value)
        except ValueError:
            return item
        return switch_category(item, target)
    if field == "description":
        return replace(item, description="" if value is None else str(value))
    if field == "date":
        return replace(item, date=to_canonical(value))

    val = to_decimal(value)
    if field == "amount":
        hours = item.hours or _ONE
        return replace(item, amount=val, hours=hours, rate=safe_divide(val, hours))
    if field in _HOURS_FIELDS:
        return replace(item, hours=val, amount=compute_amount(val, item.rate))
    if field == "rate":
        return replace(item, rate=val, amount=compute_amount(item.hours, val))
    raise ValueError(f"unknown line item field: {field!r}")


def commit_amount(item: LineItem, *, config: EngineConfig = DEFAULT_CONFIG) -> LineItem:
    """Finalize a direct amount edit.

    Service items are snapped to whole hours at an allowed rate (the amount
    may change); expense items are returned unchanged.
    """

    if item.category is not ItemCategory.SERVICE:
        return item
    metrics = resolve_metrics(item.amount, config=config)
    return replace(item, hours=metrics.hours, rate=metrics.rate, amount=metrics.amount)


class LineItemCollection:
    """Ordered, id-addressed list of line items.

    Service and expense items share one ordering; :attr:`services` and
    :attr:`expenses` are filtered views. Mutations take an internal lock so
    results arriving from background imports can be appended while edits are
    applied.
    """

    def __init__(
        self, items: Iterable[LineItem] = (), *, config: EngineConfig = DEFAULT_CONFIG
    ) -> None:
        self._items: list[LineItem] = list(items)
        self._config = config
        self._lock = threading.Lock()

    def __iter__(self) -> Iterator[LineItem]:
        with self._lock:
            snapshot = list(self._items)
        return iter(snapshot)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> list[LineItem]:
        return list(self)

    @property
    def services(self) -> list[LineItem]:
        return [i for i in self if i.category is ItemCategory.SERVICE]

    @property
    def expenses(self) -> list[LineItem]:
        return [i for i in self if i.category is ItemCategory.EXPENSE]

    def totals(self) -> Totals:
        return aggregate_totals(self, config=self._config)

    def get(self, item_id: str) -> LineItem:
        with self._lock:
            return self._items[self._index(item_id)]

    def add(self, category: ItemCategory | str = ItemCategory.SERVICE) -> LineItem:
        item = new_item(category, config=self._config)
        self.append(item)
        return item

    def append(self, item: LineItem) -> None:
        with self._lock:
            self._items.append(item)

    def extend(self, items: Iterable[LineItem]) -> None:
        new = list(items)
        with self._lock:
            self._items.extend(new)

    def edit(self, item_id: str, field: str, value: Any) -> LineItem:
        return self._replace(item_id, lambda item: edit_field(item, field, value))

    def commit(self, item_id: str) -> LineItem:
        return self._replace(item_id, lambda item: commit_amount(item, config=self._config))

    def delete(self, item_id: str) -> None:
        with self._lock:
            del self._items[self._index(item_id)]

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def _replace(self, item_id: str, fn) -> LineItem:
        with self._lock:
            idx = self._index(item_id)
            updated = fn(self._items[idx])
            self._items[idx] = updated
            return updated

    def _index(self, item_id: str) -> int:
        for idx, item in enumerate(self._items):
            if item.id == item_id:
                return idx
        raise KeyError(item_id)


__all__ = [
    "LineItemCollection",
    "commit_amount",
    "edit_field",
    "new_item",
    "switch_category",
]
