# ruff: noqa: I001
"""CLI for the ``invoice_builder`` package.

Command handlers (``cmd_*``) return a process exit code and print ``Error: ...``
to stderr on failure; the Typer commands below are thin wrappers around them.
The root callback loads a local ``.env`` with ``python-dotenv`` and configures
logging before any command runs. Item tables and totals are rendered with
``rich``.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from datetime import date
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .api import ImportOutcome
from .calculations import aggregate_totals, parse_decimal, resolve_metrics
from .currency import format_currency
from .logging_setup import configure_logging
from .models import ItemCategory, LineItem
from .rendering import display_rows, headers_for, section_title, summary_lines

console = Console()


# ---- Rendering helpers -------------------------------------------------------


def _items_table(category: ItemCategory, items: Sequence[LineItem]) -> Table:
    table = Table(title=section_title(category), title_justify="left")
    for pos, header in enumerate(headers_for(category)):
        table.add_column(header, justify="right" if pos >= 2 else "left")
    for row in display_rows(items):
        table.add_row(*(Text(cell) for cell in row))
    return table


def _print_items(items: Sequence[LineItem]) -> None:
    for category in (ItemCategory.SERVICE, ItemCategory.EXPENSE):
        subset = [i for i in items if i.category == category]
        if subset:
            console.print(_items_table(category, subset))

    totals = Table(show_header=False, box=None)
    totals.add_column("label")
    totals.add_column("value", justify="right")
    for label, value in summary_lines(aggregate_totals(items)):
        totals.add_row(label, value)
    console.print(totals)


def _report(outcome: ImportOutcome) -> int:
    if not outcome.ok:
        print(f"Error: import failed: {outcome.error}", file=sys.stderr)
        return 1
    if not outcome.items:
        console.print("No line items found.")
        return 0
    _print_items(outcome.items)
    return 0


def _require_api_key() -> bool:
    if os.getenv("OPENAI_API_KEY"):
        return True
    print("Error: OPENAI_API_KEY is not set in the environment.", file=sys.stderr)
    return False


# ---- Command handlers --------------------------------------------------------


def cmd_import_csv(csv_path: str | os.PathLike[str]) -> int:
    """Normalize a CSV export into line items and print them with totals."""

    from .api import import_csv_file

    if not Path(csv_path).is_file():
        print(f"Error: File not found: {csv_path}", file=sys.stderr)
        return 1
    return _report(import_csv_file(csv_path))


def cmd_analyze_notes(notes: str) -> int:
    from .api import import_work_notes

    if not notes.strip():
        print("Error: no work notes given.", file=sys.stderr)
        return 1
    if not _require_api_key():
        return 1
    return _report(import_work_notes(notes))


def cmd_import_pdf(pdf_paths: Sequence[str | os.PathLike[str]]) -> int:
    """Extract line items from one or more PDFs; exit 1 when any file failed."""

    from .api import import_pdfs

    if not pdf_paths:
        print("Error: no PDF files given.", file=sys.stderr)
        return 1
    if not _require_api_key():
        return 1

    outcomes = import_pdfs(pdf_paths)
    items: list[LineItem] = []
    failed = 0
    for outcome in outcomes:
        if outcome.ok:
            console.print(f"{outcome.source}: {len(outcome.items)} item(s)")
            items.extend(outcome.items)
        else:
            failed += 1
            print(f"Error: {outcome.source}: {outcome.error}", file=sys.stderr)
    if items:
        _print_items(items)
    return 1 if failed else 0


def cmd_polish(text: str) -> int:
    from .extraction import polish_description

    if not _require_api_key():
        return 1
    console.print(polish_description(text), markup=False, highlight=False)
    return 0


def cmd_resolve(amount: str) -> int:
    """Print the snapped hours/rate/amount for a target labor amount."""

    try:
        target = parse_decimal(amount)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    m = resolve_metrics(target)
    console.print(
        f"hours={m.hours} rate={format_currency(m.rate)} amount={format_currency(m.amount)}",
        markup=False,
        highlight=False,
    )
    return 0


def cmd_next_number(
    *,
    database_url: str | None = None,
    sync: str | None = None,
    today: date | None = None,
) -> int:
    """Reserve the next invoice number (or sync the counter past ``sync``)."""

    from db import Base
    from db.client import make_engine

    from .numbering import next_invoice_number, sync_invoice_counter
    from .storage import SqlKeyValueStore

    url = database_url or os.getenv("DATABASE_URL")
    if not url:
        print("Error: DATABASE_URL is not set; pass --database-url.", file=sys.stderr)
        return 1
    try:
        engine = make_engine(url)
        Base.metadata.create_all(engine)
        store = SqlKeyValueStore(engine)
        if sync:
            moved = sync_invoice_counter(store, sync, today)
            console.print(f"counter {'advanced' if moved else 'unchanged'}", highlight=False)
        else:
            console.print(next_invoice_number(store, today), highlight=False)
    except Exception as e:
        print(f"Error: numbering failed: {e}", file=sys.stderr)
        return 1
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Build construction invoices: import CSV/PDF/work notes into line items, "
        "resolve labor amounts and number invoices. Loads a local .env first."
    ),
)


@app.callback()
def _root(
    log_level: Annotated[
        str | None, typer.Option(help="Log level (falls back to INVOICE_BUILDER_LOG_LEVEL).")
    ] = None,
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


@app.command("import-csv")
def import_csv_cmd(
    csv_path: Annotated[Path, typer.Argument(help="CSV export with a header row", dir_okay=False)],
) -> None:
    """Import a CSV export into line items."""

    raise typer.Exit(cmd_import_csv(csv_path))


@app.command("analyze-notes")
def analyze_notes_cmd(
    notes: Annotated[str | None, typer.Argument(help="Work notes text")] = None,
    notes_file: Annotated[
        Path | None, typer.Option("--file", help="Read work notes from a file", dir_okay=False)
    ] = None,
) -> None:
    """Break free-form work notes into line items (OpenAI)."""

    if notes_file is not None:
        try:
            notes = notes_file.read_text(encoding="utf-8")
        except OSError as e:
            print(f"Error: {e}", file=sys.stderr)
            raise typer.Exit(1) from e
    raise typer.Exit(cmd_analyze_notes(notes or ""))


@app.command("import-pdf")
def import_pdf_cmd(
    pdf_paths: Annotated[list[Path], typer.Argument(help="Invoice or timesheet PDFs")],
) -> None:
    """Extract line items from PDF documents (OpenAI)."""

    raise typer.Exit(cmd_import_pdf(pdf_paths))


@app.command("polish")
def polish_cmd(text: Annotated[str, typer.Argument(help="Description to rewrite")]) -> None:
    """Rewrite a line item description professionally (OpenAI)."""

    raise typer.Exit(cmd_polish(text))


@app.command("resolve")
def resolve_cmd(amount: Annotated[str, typer.Argument(help="Target labor amount, e.g. 1,250")]) -> None:
    """Snap a labor amount to whole hours at an allowed rate."""

    raise typer.Exit(cmd_resolve(amount))


@app.command("next-number")
def next_number_cmd(
    database_url: Annotated[
        str | None, typer.Option(help="Override DATABASE_URL (falls back to env var).")
    ] = None,
    sync: Annotated[
        str | None, typer.Option(help="Advance the counter past a manually entered number.")
    ] = None,
) -> None:
    """Reserve the next INV-YYYYMMDD-NNN invoice number."""

    raise typer.Exit(cmd_next_number(database_url=database_url, sync=sync))


if __name__ == "__main__":  # pragma: no cover
    app()
