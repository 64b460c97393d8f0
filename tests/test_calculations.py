from decimal import Decimal

import pytest

from invoice_builder.calculations import (
    aggregate_totals,
    compute_amount,
    parse_decimal,
    resolve_metrics,
    round_half_up,
    safe_divide,
    to_decimal,
)
from invoice_builder.config import EngineConfig
from invoice_builder.models import ItemCategory, LineItem, Totals


def _service(amount) -> LineItem:
    return LineItem(category=ItemCategory.SERVICE, amount=Decimal(amount))


def _expense(amount) -> LineItem:
    return LineItem(category=ItemCategory.EXPENSE, amount=Decimal(amount))


# ---- Coercion ----------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("45", Decimal("45")),
        ("$1,234.50", Decimal("1234.50")),
        ("($20)", Decimal("-20")),
        ("-$5", Decimal("-5")),
        ("  +7.25 ", Decimal("7.25")),
    ],
)
def test_parse_decimal_money_text(raw, expected):
    assert parse_decimal(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   ", "abc", "NaN", "Infinity"])
def test_parse_decimal_rejects_non_numbers(raw):
    with pytest.raises(ValueError):
        parse_decimal(raw)


@pytest.mark.parametrize("raw", [None, "", "n/a", True, float("nan"), object()])
def test_to_decimal_unreadable_is_zero(raw):
    assert to_decimal(raw) == 0


def test_to_decimal_float_uses_shortest_repr():
    assert to_decimal(0.1) == Decimal("0.1")


def test_to_decimal_rejects_oversized_input():
    assert to_decimal("9999999999999999") == Decimal("9999999999999999")
    assert to_decimal("1e16") == 0
    assert to_decimal(10**20) == 0
    assert to_decimal(1e30) == 0
    assert to_decimal(Decimal("1e30")) == Decimal("1e30")


def test_round_half_up_moves_ties_away_from_zero():
    assert round_half_up(Decimal("2.5")) == 3
    assert round_half_up(Decimal("-2.5")) == -3


def test_round_half_up_handles_wide_values():
    assert round_half_up(Decimal("1e30")) == Decimal("1e30")
    assert round_half_up(Decimal("123456789012345678901234567890.5")) == Decimal(
        "123456789012345678901234567891"
    )
    assert compute_amount("9e15", "9e15") == Decimal("8.1e31")
    assert round_half_up(Decimal("2.49")) == 2


def test_safe_divide_by_zero_is_zero():
    assert safe_divide(Decimal("10"), Decimal("0")) == 0
    assert safe_divide(Decimal("10"), Decimal("4")) == Decimal("2.5")


# ---- Line amounts ------------------------------------------------------------


def test_compute_amount_rounds_product():
    assert compute_amount(2, 65) == 130
    assert compute_amount(Decimal("2.5"), 1) == 3
    assert compute_amount("1.5", "3") == 5
    assert compute_amount("0.3", "5") == 2


def test_compute_amount_zero_or_missing_inputs():
    assert compute_amount(0, 65) == 0
    assert compute_amount(3, 0) == 0
    assert compute_amount(None, "abc") == 0
    assert compute_amount("", 65) == 0


# ---- Reverse resolver --------------------------------------------------------


def test_resolve_zero_target_short_circuits_to_default_rate():
    assert resolve_metrics(0) == (0, 65, 0)
    assert resolve_metrics("") == (0, 65, 0)


def test_resolve_exact_multiple():
    assert resolve_metrics(130) == (2, 65, 130)
    assert resolve_metrics(650) == (10, 65, 650)
    assert resolve_metrics(120) == (2, 60, 120)


def test_resolve_tie_goes_to_earlier_rate():
    # 2 x 60 = 120 and 2 x 65 = 130 are both 5 away from 125.
    assert resolve_metrics(125) == (2, 60, 120)
    # 13 x 60 = 780 and 12 x 65 = 780.
    assert resolve_metrics(781) == (13, 60, 780)


def test_resolve_clamps_hours_to_one():
    assert resolve_metrics(30) == (1, 60, 60)
    assert resolve_metrics(10) == (1, 60, 60)


def test_resolve_snapped_amount_may_differ_from_target():
    m = resolve_metrics(200)
    assert m == (3, 65, 195)
    assert m.amount == m.hours * m.rate


def test_resolve_honours_custom_rate_table():
    cfg = EngineConfig(allowed_rates=(Decimal("65"), Decimal("60")))
    assert resolve_metrics(125, config=cfg) == (2, 65, 130)
    assert resolve_metrics(300, rates=[Decimal("100")]) == (3, 100, 300)


def test_resolve_requires_a_positive_rate():
    with pytest.raises(ValueError):
        resolve_metrics(100, rates=[Decimal("0"), Decimal("-5")])


def test_resolver_output_is_a_fixed_point():
    for target in (1, 59, 125, 200, 781, 1000, 2345):
        m = resolve_metrics(target)
        assert resolve_metrics(m.amount) == m


# ---- Totals ------------------------------------------------------------------


def test_aggregate_totals_taxes_services_only():
    totals = aggregate_totals([_service(100), _expense(50)])
    assert totals.service_subtotal == 100
    assert totals.gross == 150
    assert totals.gst == 15
    assert totals.withholding_tax == 20
    assert totals.payable == 165
    assert totals.net_retained == 130


def test_aggregate_totals_empty_is_all_zero():
    assert aggregate_totals([]) == Totals()


def test_aggregate_totals_rounds_taxes_half_up():
    totals = aggregate_totals([_service(10), _service(20)])
    # 30 * 0.15 = 4.5 -> 5; 30 * 0.20 = 6
    assert totals.gst == 5
    assert totals.withholding_tax == 6


def test_aggregate_totals_ignores_order_and_leaves_input_untouched():
    items = [_service(195), _expense("37.50"), _service(60)]
    before = list(items)
    totals = aggregate_totals(items)
    assert totals.payable >= totals.gross >= totals.net_retained
    assert items == before


def test_aggregate_totals_uses_configured_rates():
    cfg = EngineConfig(gst_rate=Decimal("0.10"), tax_rate=Decimal("0"))
    totals = aggregate_totals([_service(100)], config=cfg)
    assert totals.gst == 10
    assert totals.net_retained == 100
