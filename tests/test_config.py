from decimal import Decimal

import pytest

from invoice_builder.config import DEFAULT_CONFIG, BusinessDetails, EngineConfig, load_business_details


def test_default_config_values():
    assert DEFAULT_CONFIG.gst_rate == Decimal("0.15")
    assert DEFAULT_CONFIG.tax_rate == Decimal("0.20")
    assert DEFAULT_CONFIG.allowed_rates == (Decimal("60"), Decimal("65"))
    assert DEFAULT_CONFIG.default_service_rate == 65


@pytest.mark.parametrize("rates", [(), (Decimal("60"), Decimal("0"))])
def test_config_rejects_bad_rate_tables(rates):
    with pytest.raises(ValueError):
        EngineConfig(allowed_rates=rates)


def test_load_business_details_from_env(monkeypatch):
    monkeypatch.setenv("INVOICE_FROM_NAME", "Acme Builders")
    monkeypatch.setenv("INVOICE_FROM_GST", "123-456-789")
    details = load_business_details()
    assert details.name == "Acme Builders"
    assert details.gst_number == "123-456-789"
    assert details.bank_account == ""


def test_load_business_details_defaults_empty():
    assert load_business_details() == BusinessDetails()
