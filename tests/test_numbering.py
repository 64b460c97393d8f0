from datetime import date

import pytest
from db import Base
from db.client import make_engine

from invoice_builder.numbering import INVOICE_COUNTER_KEY, next_invoice_number, sync_invoice_counter
from invoice_builder.storage import InMemoryStore, SqlKeyValueStore

DAY = date(2024, 3, 15)


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    if request.param == "memory":
        return InMemoryStore()
    engine = make_engine("sqlite://")
    Base.metadata.create_all(engine)
    return SqlKeyValueStore(engine)


def test_numbers_increment_within_a_day(store):
    assert next_invoice_number(store, DAY) == "INV-20240315-001"
    assert next_invoice_number(store, DAY) == "INV-20240315-002"
    assert store.get(INVOICE_COUNTER_KEY) == {"date": "20240315", "count": 2}


def test_counter_resets_on_a_new_day(store):
    next_invoice_number(store, DAY)
    next_invoice_number(store, DAY)
    assert next_invoice_number(store, date(2024, 3, 16)) == "INV-20240316-001"


def test_sync_advances_past_manual_number(store):
    next_invoice_number(store, DAY)
    assert sync_invoice_counter(store, "INV-20240315-005", DAY) is True
    assert next_invoice_number(store, DAY) == "INV-20240315-006"


@pytest.mark.parametrize(
    "number",
    ["INV-20240315-001", "INV-20240314-009", "INV-2024-03-15-9", "custom-7", ""],
)
def test_sync_ignores_lower_other_day_or_malformed(store, number):
    next_invoice_number(store, DAY)
    next_invoice_number(store, DAY)
    assert sync_invoice_counter(store, number, DAY) is False
    assert next_invoice_number(store, DAY) == "INV-20240315-003"


def test_sync_on_empty_store(store):
    assert sync_invoice_counter(store, "INV-20240315-004", DAY) is True
    assert next_invoice_number(store, DAY) == "INV-20240315-005"


def test_garbled_counter_starts_over(store):
    store.set(INVOICE_COUNTER_KEY, {"date": "20240315", "count": "lots"})
    assert next_invoice_number(store, DAY) == "INV-20240315-001"
