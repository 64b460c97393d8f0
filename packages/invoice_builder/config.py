"""Engine constants and injected configuration values.

Two immutable values live here:

- :class:`EngineConfig`: tax rates, the allowed hourly-rate table for the
  reverse resolver, and the placeholder descriptions used for new/imported
  items. ``DEFAULT_CONFIG`` is what every public function uses unless a caller
  passes ``config=`` explicitly.
- :class:`BusinessDetails`: the issuer ("from") block printed on invoices.
  Loaded once from ``INVOICE_FROM_*`` environment variables by entrypoints;
  library code never reads the environment on its own.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Fixed billing rules shared by the calculator, resolver and aggregator.

    Attributes
    ----------
    gst_rate:
        GST applied to the service-only subtotal.
    tax_rate:
        Withholding tax applied to the service-only subtotal.
    allowed_rates:
        Hourly rates the reverse resolver may snap to, in tie-break order
        (earlier wins).
    default_service_rate:
        Rate used for new service items, zero-amount resolutions and imported
        service rows without a usable rate.
    """

    gst_rate: Decimal = Decimal("0.15")
    tax_rate: Decimal = Decimal("0.20")
    allowed_rates: tuple[Decimal, ...] = field(default=(Decimal("60"), Decimal("65")))
    default_service_rate: Decimal = Decimal("65")
    service_placeholder: str = "Residential Build"
    expense_placeholder: str = "Materials"

    def __post_init__(self) -> None:
        if not self.allowed_rates:
            raise ValueError("EngineConfig.allowed_rates must contain at least one rate")
        if any(r <= 0 for r in self.allowed_rates):
            raise ValueError("EngineConfig.allowed_rates must all be positive")


DEFAULT_CONFIG = EngineConfig()


@dataclass(frozen=True, slots=True)
class BusinessDetails:
    """Issuer details shown in the invoice header and share message."""

    name: str = ""
    gst_number: str = ""
    bank_account: str = ""
    email: str = ""
    address: str = ""
    phone: str = ""


_BUSINESS_ENV: dict[str, str] = {
    "name": "INVOICE_FROM_NAME",
    "gst_number": "INVOICE_FROM_GST",
    "bank_account": "INVOICE_FROM_BANK",
    "email": "INVOICE_FROM_EMAIL",
    "address": "INVOICE_FROM_ADDRESS",
    "phone": "INVOICE_FROM_PHONE",
}


def load_business_details() -> BusinessDetails:
    """Build :class:`BusinessDetails` from ``INVOICE_FROM_*`` environment variables.

    Missing variables become empty strings. Call after ``load_dotenv()`` so a
    local ``.env`` is honored.
    """

    values = {attr: (os.getenv(env) or "").strip() for attr, env in _BUSINESS_ENV.items()}
    return BusinessDetails(**values)


__all__ = ["DEFAULT_CONFIG", "BusinessDetails", "EngineConfig", "load_business_details"]
