import csv
import textwrap

import pytest

from invoice_builder.ingest.csv_import import load_csv_records, read_csv_records


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


def test_read_csv_records_one_mapping_per_row():
    rows = read_csv_records(
        _dedent(
            """
            Date,Description,Amount
            15/03/2024,Site consultation,130
            16/03/2024,"Bunnings screws, nails",45
            """
        )
    )
    assert rows == [
        {"Date": "15/03/2024", "Description": "Site consultation", "Amount": "130"},
        {"Date": "16/03/2024", "Description": "Bunnings screws, nails", "Amount": "45"},
    ]


def test_read_csv_records_skips_blank_rows_and_extra_cells():
    rows = read_csv_records("Description,Amount\n,\nPaint,20,extra\n\n")
    assert rows == [{"Description": "Paint", "Amount": "20"}]


def test_read_csv_records_short_rows_get_empty_strings():
    assert read_csv_records("Description,Amount\nPaint\n") == [{"Description": "Paint", "Amount": ""}]


def test_read_csv_records_strips_bom():
    rows = read_csv_records("\ufeffDescription,Amount\nPaint,20\n")
    assert list(rows[0]) == ["Description", "Amount"]


def test_read_csv_records_requires_header():
    with pytest.raises(csv.Error):
        read_csv_records("")


def test_load_csv_records_reads_utf8_sig(tmp_path):
    p = tmp_path / "export.csv"
    p.write_text("Description,Amount\nTimber,80\n", encoding="utf-8-sig")
    assert load_csv_records(p) == [{"Description": "Timber", "Amount": "80"}]
