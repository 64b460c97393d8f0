"""Tabular import: CSV text/files to raw candidate records.

Rows come back as plain ``dict[str, str]`` keyed by the header exactly as
exported. Column naming is deliberately not validated here: the normalizer
resolves aliases (``Amount``/``Total``/``Line Total``, ``Qty``/``Hours``, ...)
case-insensitively, so any reasonable spreadsheet export works.
"""

from __future__ import annotations

import csv
from io import StringIO
from os import PathLike
from pathlib import Path


def read_csv_records(csv_text: str) -> list[dict[str, str]]:
    """Parse CSV text with a header row into one mapping per data row.

    Rows whose cells are all empty are skipped. Cells beyond the header width
    are dropped. Raises ``csv.Error`` when the text has no header row.
    """

    # Spreadsheet exports often start with a UTF-8 BOM.
    csv_text = csv_text.removeprefix("\ufeff")
    with StringIO(csv_text) as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames:
            raise csv.Error("CSV appears to have no header row")
        rows: list[dict[str, str]] = []
        for row in reader:
            # DictReader collects overflow cells under a None key.
            normalized = {k: (v if v is not None else "") for k, v in row.items() if k is not None}
            if all(not v.strip() for v in normalized.values()):
                continue
            rows.append(normalized)
        return rows


def load_csv_records(csv_path: str | PathLike[str]) -> list[dict[str, str]]:
    """Read a CSV file (UTF-8, BOM tolerated) and return its raw records."""

    p = Path(csv_path)
    with p.open(encoding="utf-8-sig", newline="") as f:
        return read_csv_records(f.read())


__all__ = ["load_csv_records", "read_csv_records"]
