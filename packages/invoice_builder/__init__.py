"""Public interface for the ``invoice_builder`` package.

This module exposes the billing engine, import entry points and public
models/types as the stable import surface. There is no runtime logic here,
only symbol re-exports.
"""

from .api import (
    ImportOutcome,
    import_csv_file,
    import_csv_text,
    import_pdf,
    import_pdfs,
    import_work_notes,
)
from .calculations import aggregate_totals, compute_amount, resolve_metrics
from .config import DEFAULT_CONFIG, BusinessDetails, EngineConfig, load_business_details
from .currency import format_currency
from .dates import to_canonical, to_display
from .editing import LineItemCollection, commit_amount, edit_field, new_item, switch_category
from .extraction import ExtractionError
from .models import (
    InvoiceDetails,
    ItemCategory,
    LineItem,
    Metrics,
    RawRecord,
    SavedInvoice,
    Totals,
)
from .normalizers import classify_category, normalize_record, normalize_records

__all__ = [
    # Engine
    "aggregate_totals",
    "classify_category",
    "compute_amount",
    "format_currency",
    "normalize_record",
    "normalize_records",
    "resolve_metrics",
    "to_canonical",
    "to_display",
    # Editing
    "LineItemCollection",
    "commit_amount",
    "edit_field",
    "new_item",
    "switch_category",
    # Import
    "ExtractionError",
    "ImportOutcome",
    "import_csv_file",
    "import_csv_text",
    "import_pdf",
    "import_pdfs",
    "import_work_notes",
    # Configuration
    "DEFAULT_CONFIG",
    "BusinessDetails",
    "EngineConfig",
    "load_business_details",
    # Models / types
    "InvoiceDetails",
    "ItemCategory",
    "LineItem",
    "Metrics",
    "RawRecord",
    "SavedInvoice",
    "Totals",
]
