"""Import orchestration for the ``invoice_builder`` package.

Every entry point here runs a producer (CSV parser, work-notes analysis, PDF
extraction), pushes each candidate record through
:func:`~invoice_builder.normalizers.normalize_records` and wraps the result in
an :class:`ImportOutcome`. Producer failures never escape: they come back as an
outcome with ``error`` set and no items, so a caller can report the failure
and carry on with its current collection untouched.
"""

from __future__ import annotations

import csv
import os
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Any

from .config import DEFAULT_CONFIG, EngineConfig
from .extraction import ExtractionError, analyze_work_notes, extract_items_from_pdf
from .ingest.csv_import import load_csv_records, read_csv_records
from .logging_setup import get_logger
from .models import LineItem
from .normalizers import normalize_records
from .pmap import p_map

_DEFAULT_MAX_WORKERS: int = 4
_MAX_WORKERS_ENV = "INVOICE_BUILDER_MAX_WORKERS"

_logger = get_logger("invoice_builder.api")


@dataclass(frozen=True, slots=True)
class ImportOutcome:
    """Normalized items from one import, or the reason the import failed."""

    items: tuple[LineItem, ...] = ()
    error: str | None = None
    source: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


def _max_workers() -> int:
    raw = (os.getenv(_MAX_WORKERS_ENV) or "").strip()
    if not raw:
        return _DEFAULT_MAX_WORKERS
    try:
        value = int(raw)
    except ValueError:
        _logger.warning("import:bad_max_workers value=%r", raw)
        return _DEFAULT_MAX_WORKERS
    return max(1, value)


def _run(
    source: str,
    produce: Callable[[], Iterable[Any]],
    *,
    config: EngineConfig,
) -> ImportOutcome:
    try:
        records = list(produce())
    except (ExtractionError, OSError, csv.Error, UnicodeDecodeError) as e:
        _logger.error("import:failed source=%s error=%s", source, e.__class__.__name__)
        return ImportOutcome(error=str(e) or e.__class__.__name__, source=source)
    items = tuple(normalize_records(records, config=config))
    _logger.info("import:done source=%s num_items=%d", source, len(items))
    return ImportOutcome(items=items, source=source)


# ---- Tabular import ----------------------------------------------------------


def import_csv_text(text: str, *, config: EngineConfig = DEFAULT_CONFIG) -> ImportOutcome:
    """Normalize every data row of CSV ``text`` into a line item."""

    return _run("csv", lambda: read_csv_records(text), config=config)


def import_csv_file(
    path: str | PathLike[str], *, config: EngineConfig = DEFAULT_CONFIG
) -> ImportOutcome:
    return _run(Path(path).name, lambda: load_csv_records(path), config=config)


# ---- AI-backed import --------------------------------------------------------


def import_work_notes(notes: str, *, config: EngineConfig = DEFAULT_CONFIG) -> ImportOutcome:
    """Turn free-form work notes into normalized line items."""

    return _run("notes", lambda: analyze_work_notes(notes), config=config)


def import_pdf(
    data: bytes,
    *,
    filename: str = "document.pdf",
    config: EngineConfig = DEFAULT_CONFIG,
    **extract_kwargs: Any,
) -> ImportOutcome:
    """Extract and normalize the line items of one PDF document.

    Extra keyword arguments (``max_attempts``, ``base_delay``, ``sleep``) are
    passed to :func:`~invoice_builder.extraction.extract_items_from_pdf`.
    """

    return _run(
        filename,
        lambda: extract_items_from_pdf(data, filename=filename, **extract_kwargs),
        config=config,
    )


def import_pdfs(
    paths: Sequence[str | PathLike[str]],
    *,
    config: EngineConfig = DEFAULT_CONFIG,
    concurrency: int | None = None,
    **extract_kwargs: Any,
) -> list[ImportOutcome]:
    """Import several PDF files concurrently; one outcome per path, in input order.

    Concurrency defaults to ``INVOICE_BUILDER_MAX_WORKERS`` (4 when unset). A
    file that cannot be read or extracted yields a failed outcome without
    affecting the others.
    """

    def _one(path: str | PathLike[str]) -> ImportOutcome:
        p = Path(path)
        try:
            data = p.read_bytes()
        except OSError as e:
            _logger.error("import:failed source=%s error=%s", p.name, e.__class__.__name__)
            return ImportOutcome(error=str(e), source=p.name)
        return import_pdf(data, filename=p.name, config=config, **extract_kwargs)

    if not paths:
        return []
    return p_map(list(paths), _one, concurrency=concurrency or _max_workers(), stop_on_error=True)


__all__ = [
    "ImportOutcome",
    "import_csv_file",
    "import_csv_text",
    "import_pdf",
    "import_pdfs",
    "import_work_notes",
]
