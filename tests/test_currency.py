from decimal import Decimal

import pytest

from invoice_builder.currency import format_currency


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (0, "$0"),
        (1234, "$1,234"),
        (1234567, "$1,234,567"),
        (Decimal("2.5"), "$3"),
        ("65", "$65"),
        (-50, "-$50"),
        (Decimal("-0.4"), "$0"),
        ("abc", "$0"),
        (None, "$0"),
    ],
)
def test_format_currency(amount, expected):
    assert format_currency(amount) == expected
