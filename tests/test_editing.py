from decimal import Decimal

import pytest

from invoice_builder.editing import (
    LineItemCollection,
    commit_amount,
    edit_field,
    new_item,
    switch_category,
)
from invoice_builder.models import ItemCategory, LineItem


def _figures(item: LineItem):
    return item.hours, item.rate, item.amount


def test_new_item_defaults_per_category():
    service = new_item(ItemCategory.SERVICE)
    assert service.description == "Residential Build"
    assert _figures(service) == (0, 65, 0)

    expense = new_item("expense")
    assert expense.description == "Materials"
    assert _figures(expense) == (1, 0, 0)
    assert service.id != expense.id


def test_category_switch_round_trip():
    item = LineItem(
        category=ItemCategory.SERVICE,
        hours=Decimal("5"),
        rate=Decimal("20"),
        amount=Decimal("100"),
    )
    as_expense = switch_category(item, ItemCategory.EXPENSE)
    assert as_expense.category is ItemCategory.EXPENSE
    assert _figures(as_expense) == (1, 100, 100)

    back = switch_category(as_expense, "service")
    assert back.category is ItemCategory.SERVICE
    assert _figures(back) == (1, 100, 100)
    assert back.id == item.id


def test_switch_to_service_with_zero_hours_uses_one():
    item = LineItem(category=ItemCategory.EXPENSE, hours=Decimal("0"), amount=Decimal("80"))
    assert _figures(switch_category(item, ItemCategory.SERVICE)) == (1, 80, 80)


def test_switch_to_same_category_is_noop():
    item = new_item(ItemCategory.SERVICE)
    assert switch_category(item, ItemCategory.SERVICE) is item


def test_edit_hours_and_rate_recompute_amount():
    item = new_item(ItemCategory.SERVICE)
    item = edit_field(item, "hours", "2.5")
    assert item.amount == 163  # 162.5 rounds half up
    item = edit_field(item, "rate", "60")
    assert item.amount == 150
    item = edit_field(item, "quantity", "")
    assert _figures(item) == (0, 60, 0)


def test_edit_amount_back_derives_rate_without_snapping():
    item = edit_field(new_item(ItemCategory.SERVICE), "amount", "100")
    assert _figures(item) == (1, 100, 100)

    committed = commit_amount(item)
    assert _figures(committed) == (2, 60, 120)


def test_commit_amount_leaves_expenses_alone():
    item = edit_field(new_item(ItemCategory.EXPENSE), "amount", "37.5")
    assert commit_amount(item) is item
    assert _figures(item) == (1, Decimal("37.5"), Decimal("37.5"))


def test_edit_text_fields():
    item = new_item(ItemCategory.SERVICE)
    assert edit_field(item, "description", "Deck framing").description == "Deck framing"
    assert edit_field(item, "date", "5/3/2024").date == "2024-03-05"
    assert edit_field(item, "type", "expense").category is ItemCategory.EXPENSE


def test_edit_unknown_field_raises():
    with pytest.raises(ValueError):
        edit_field(new_item(), "colour", "red")


def test_edit_unknown_category_leaves_item_unchanged():
    item = new_item(ItemCategory.SERVICE)
    assert edit_field(item, "category", "foo") is item
    assert edit_field(item, "type", None) is item


def test_edit_oversized_numbers_count_as_zero():
    item = new_item(ItemCategory.SERVICE)
    assert _figures(edit_field(item, "hours", "1e30")) == (0, 65, 0)

    edited = edit_field(item, "amount", "1e30")
    assert _figures(edited) == (1, 0, 0)
    assert _figures(commit_amount(edited)) == (0, 65, 0)


# ---- Collection --------------------------------------------------------------


def test_collection_views_share_one_ordering():
    coll = LineItemCollection()
    s1 = coll.add(ItemCategory.SERVICE)
    e1 = coll.add(ItemCategory.EXPENSE)
    s2 = coll.add(ItemCategory.SERVICE)

    assert [i.id for i in coll] == [s1.id, e1.id, s2.id]
    assert [i.id for i in coll.services] == [s1.id, s2.id]
    assert [i.id for i in coll.expenses] == [e1.id]
    assert len(coll) == 3


def test_collection_edit_commit_and_totals():
    coll = LineItemCollection()
    service = coll.add(ItemCategory.SERVICE)
    expense = coll.add(ItemCategory.EXPENSE)

    coll.edit(service.id, "amount", "100")
    coll.commit(service.id)
    coll.edit(expense.id, "amount", "50")

    assert _figures(coll.get(service.id)) == (2, 60, 120)
    totals = coll.totals()
    assert totals.gross == 170
    assert totals.gst == 18
    assert totals.withholding_tax == 24
    assert totals.payable == 188
    assert totals.net_retained == 146


def test_collection_totals_survive_oversized_edits():
    coll = LineItemCollection()
    service = coll.add(ItemCategory.SERVICE)
    coll.edit(service.id, "amount", "1e30")
    coll.commit(service.id)
    coll.append(LineItem(category=ItemCategory.SERVICE, amount=Decimal("1e30")))

    totals = coll.totals()
    assert totals.gross == Decimal("1e30")
    assert totals.gst == Decimal("1.5e29")


def test_collection_extend_appends_and_delete_removes():
    existing = new_item()
    coll = LineItemCollection([existing])
    imported = [new_item("expense"), new_item("service")]
    coll.extend(imported)
    assert [i.id for i in coll] == [existing.id] + [i.id for i in imported]

    coll.delete(existing.id)
    assert existing.id not in {i.id for i in coll}
    with pytest.raises(KeyError):
        coll.get(existing.id)
    with pytest.raises(KeyError):
        coll.edit(existing.id, "hours", "1")

    coll.clear()
    assert coll.items == []
