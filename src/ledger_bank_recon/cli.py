"""
Command-line interface for the ledger to bank statement reconciliation tool.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .app import ReconApp, build_app
from .config import generate_default_config, load_config
from .ingestion.ingestor import BANK_COLUMNS, LEDGER_COLUMNS, IngestionResult, read_rows
from .models.api import Page
from .models.events import CompilerRequest, ReconciliationEvent
from .parsers.bank_parser import parse_bank_statement
from .parsers.ledger_parser import parse_transaction_record
from .reports.excel_generator import ExcelReportGenerator
from .storage.database import create_db_and_tables
from .utils.dates import as_utc
from .utils.exceptions import IngestionError, RowParseError
from .utils.logging_config import setup_logging

console = Console()

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%SZ"]
PREVIEW_ROWS = 20
REPORT_PAGE_SIZE = 1000

config_option = click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
verbose_option = click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")


@click.group()
@click.version_option(version=__version__)
def main():
    """Ledger to Bank Statement Reconciliation Tool."""
    pass


def _load_app(config: Optional[Path], verbose: bool) -> ReconApp:
    recon_config = load_config(config)
    setup_logging(recon_config.logging, verbose=verbose)
    return build_app(recon_config)


def _fail(e: Exception, verbose: bool) -> None:
    console.print(f"[red]Error: {escape(str(e))}[/red]")
    if verbose:
        console.print_exception()
    sys.exit(1)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


@main.command("init-db")
@config_option
@verbose_option
def init_db(config: Optional[Path], verbose: bool):
    """Create the reconciliation tables."""
    try:
        app = _load_app(config, verbose)
        create_db_and_tables(app.engine)
        console.print("[green]Database initialized[/green]")
    except Exception as e:
        _fail(e, verbose)


@main.command("new-task")
@config_option
@verbose_option
def new_task(config: Optional[Path], verbose: bool):
    """Allocate a task id and show where its files are uploaded."""
    try:
        app = _load_app(config, verbose)
        task = app.manager.new_task()
    except Exception as e:
        _fail(e, verbose)
        return

    table = Table(title="New Task")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Task ID", task.task_id)
    table.add_row("Transaction Object", task.transaction_object)
    table.add_row("Bank Statement Object", task.bank_statement_object)
    console.print(table)


@main.command("ingest-ledger")
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@config_option
@verbose_option
def ingest_ledger(ledger_file: Path, config: Optional[Path], verbose: bool):
    """
    Stream an internal ledger CSV into the transaction store.

    LEDGER_FILE: CSV with id, amount, type, timestamp[, description]
    """
    try:
        app = _load_app(config, verbose)
        with open(ledger_file, "rb") as stream:
            result = app.ingestor.ingest_ledger(stream)
    except Exception as e:
        _fail(e, verbose)
        return

    _display_ingestion(result, ledger_file)


@main.command("ingest-bank")
@click.argument("bank_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--bank-name", required=True, help="Bank the statement belongs to")
@config_option
@verbose_option
def ingest_bank(bank_file: Path, bank_name: str, config: Optional[Path], verbose: bool):
    """
    Stream a bank statement CSV into the bank statement store.

    BANK_FILE: CSV with id, amount, date[, reference]
    """
    try:
        app = _load_app(config, verbose)
        with open(bank_file, "rb") as stream:
            result = app.ingestor.ingest_bank(stream, bank_name)
    except Exception as e:
        _fail(e, verbose)
        return

    _display_ingestion(result, bank_file)


@main.command("compile")
@click.argument("task_id")
@click.option("--bank-name", required=True, help="Bank the statement belongs to")
@click.option(
    "--ledger-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Ledger CSV to upload for the task",
)
@click.option(
    "--bank-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Bank statement CSV to upload for the task",
)
@click.option("--start", type=click.DateTime(DATE_FORMATS), help="Window start (UTC)")
@click.option("--end", type=click.DateTime(DATE_FORMATS), help="Window end (UTC)")
@config_option
@verbose_option
def compile_task(
    task_id: str,
    bank_name: str,
    ledger_file: Optional[Path],
    bank_file: Optional[Path],
    start: Optional[datetime],
    end: Optional[datetime],
    config: Optional[Path],
    verbose: bool,
):
    """
    Upload a task's files and compile them.

    When both --start and --end are given the task is reconciled right after
    its files are ingested.

    TASK_ID: Task id from new-task
    """
    try:
        app = _load_app(config, verbose)

        if ledger_file:
            app.object_store.put(app.manager.transaction_object(task_id), ledger_file)
        if bank_file:
            app.object_store.put(app.manager.bank_statement_object(task_id), bank_file)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            step = progress.add_task("Compiling files...", total=None)
            app.manager.initiate_compilation(
                CompilerRequest(
                    task_id=task_id,
                    bank_name=bank_name,
                    start_date=as_utc(start) if start else None,
                    end_date=as_utc(end) if end else None,
                )
            )
            progress.update(step, completed=True)

        console.print(f"[green]Task {task_id} compiled[/green]")
        if start and end:
            _display_summary(app.listing.get_summary(task_id))
        else:
            console.print("[yellow]No window given - reconciliation not triggered[/yellow]")
    except Exception as e:
        _fail(e, verbose)


@main.command()
@click.argument("task_id")
@click.option("--start", type=click.DateTime(DATE_FORMATS), required=True, help="Window start (UTC)")
@click.option("--end", type=click.DateTime(DATE_FORMATS), required=True, help="Window end (UTC)")
@config_option
@verbose_option
def reconcile(
    task_id: str,
    start: datetime,
    end: datetime,
    config: Optional[Path],
    verbose: bool,
):
    """
    Reconcile stored ledger transactions against bank statement lines.

    TASK_ID: Id the summary is stored under
    """
    try:
        app = _load_app(config, verbose)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            step = progress.add_task("Running reconciliation...", total=None)
            app.reconciliation.reconcile(
                ReconciliationEvent(task_id=task_id, start_date=as_utc(start), end_date=as_utc(end))
            )
            progress.update(step, completed=True)

        _display_summary(app.listing.get_summary(task_id))
    except Exception as e:
        _fail(e, verbose)


@main.command()
@click.option("--limit", type=int, default=20, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
@config_option
@verbose_option
def summaries(limit: int, offset: int, config: Optional[Path], verbose: bool):
    """List reconciliation summaries, newest first."""
    try:
        app = _load_app(config, verbose)
        page = app.listing.list_summaries(limit, offset)
    except Exception as e:
        _fail(e, verbose)
        return

    table = Table(title="Reconciliation Summaries")
    columns = [
        "Task ID",
        "Matched",
        "Discrepancy",
        "Total",
        "Unmatched Internal",
        "Unmatched Bank",
        "Created",
    ]
    for column in columns:
        table.add_column(column)
    for summary in page.data:
        table.add_row(
            summary.task_id,
            str(summary.total_matched),
            f"{summary.total_discrepancy:,.2f}",
            str(summary.total_transaction),
            str(summary.total_unmatched_internal),
            str(summary.total_unmatched_bank),
            summary.created_at.strftime("%Y-%m-%d %H:%M:%S") if summary.created_at else "-",
        )
    console.print(table)
    _display_page_footer(page)


@main.command("unmatched-ledger")
@click.argument("task_id")
@click.option("--limit", type=int, default=20, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
@config_option
@verbose_option
def unmatched_ledger(task_id: str, limit: int, offset: int, config: Optional[Path], verbose: bool):
    """List a task's unmatched ledger transactions."""
    try:
        app = _load_app(config, verbose)
        page = app.listing.list_unmatched_transactions(task_id, limit, offset)
    except Exception as e:
        _fail(e, verbose)
        return

    table = Table(title=f"Unmatched Internal Transactions: {task_id}")
    table.add_column("ID")
    table.add_column("Time")
    table.add_column("Amount", justify="right")
    table.add_column("Type")
    table.add_column("Description")
    for txn in page.data:
        table.add_row(
            txn.id,
            txn.transaction_time.strftime("%Y-%m-%d %H:%M:%S"),
            f"{txn.amount:,.2f}",
            txn.type,
            txn.description[:40] + "..." if len(txn.description) > 40 else txn.description,
        )
    console.print(table)
    _display_page_footer(page)


@main.command("unmatched-bank")
@click.argument("task_id")
@click.option("--limit", type=int, default=20, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
@config_option
@verbose_option
def unmatched_bank(task_id: str, limit: int, offset: int, config: Optional[Path], verbose: bool):
    """List a task's unmatched bank statement lines."""
    try:
        app = _load_app(config, verbose)
        page = app.listing.list_unmatched_bank_statements(task_id, limit, offset)
    except Exception as e:
        _fail(e, verbose)
        return

    table = Table(title=f"Unmatched Bank Statements: {task_id}")
    table.add_column("ID")
    table.add_column("Date")
    table.add_column("Amount", justify="right")
    table.add_column("Reference")
    table.add_column("Bank")
    for line in page.data:
        table.add_row(
            line.id,
            line.date.isoformat(),
            f"{line.amount:,.2f}",
            line.reference or "-",
            line.bank_name or "-",
        )
    console.print(table)
    _display_page_footer(page)


@main.command()
@click.argument("task_id")
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@config_option
@verbose_option
def report(task_id: str, output: Optional[Path], config: Optional[Path], verbose: bool):
    """
    Write an Excel report for a reconciled task.

    TASK_ID: Task whose stored results are reported
    """
    try:
        app = _load_app(config, verbose)
        summary = app.listing.get_summary(task_id)
        transactions = _collect(
            lambda limit, offset: app.listing.list_unmatched_transactions(task_id, limit, offset)
        )
        statements = _collect(
            lambda limit, offset: app.listing.list_unmatched_bank_statements(task_id, limit, offset)
        )

        generator = ExcelReportGenerator(app.config)
        if output is None:
            output = Path(generator.default_filename(task_id))
        report_path = generator.generate_report(summary, transactions, statements, output)
    except Exception as e:
        _fail(e, verbose)
        return

    console.print(f"[green]Report generated: {report_path}[/green]")


@main.command()
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--kind",
    type=click.Choice(["ledger", "bank"]),
    required=True,
    help="Whether the file is a ledger export or a bank statement",
)
@click.option("--bank-name", default="", help="Bank name attached to bank statement lines")
def preview(csv_file: Path, kind: str, bank_name: str):
    """
    Parse a CSV file without storing it and display its records.

    CSV_FILE: Ledger or bank statement CSV
    """
    if kind == "ledger":
        parse_row, columns = parse_transaction_record, LEDGER_COLUMNS
    else:
        parse_row, columns = (lambda record: parse_bank_statement(record, bank_name)), BANK_COLUMNS

    records = []
    errors = []
    row_num = 0

    def _too_wide(fields: list[str]) -> None:
        nonlocal row_num
        row_num += 1
        errors.append((row_num, f"more than {columns} fields"))

    try:
        with open(csv_file, "rb") as f:
            for record in read_rows(f, columns, on_bad_row=_too_wide, stage="preview"):
                row_num += 1
                try:
                    records.append(parse_row(record))
                except RowParseError as e:
                    errors.append((row_num, str(e)))
    except (OSError, IngestionError) as e:
        console.print(f"[red]Error parsing file: {escape(str(e))}[/red]")
        sys.exit(1)

    table = Table(title=f"{kind.title()} Records: {csv_file.name}")
    table.add_column("ID")
    table.add_column("Amount", justify="right")
    if kind == "ledger":
        table.add_column("Time")
        table.add_column("Type")
        for txn in records[:PREVIEW_ROWS]:
            table.add_row(
                txn.id,
                f"{txn.amount:,.2f}",
                txn.transaction_time.strftime("%Y-%m-%d %H:%M:%S"),
                txn.type.value,
            )
    else:
        table.add_column("Date")
        table.add_column("Reference")
        for line in records[:PREVIEW_ROWS]:
            table.add_row(
                line.id, f"{line.amount:,.2f}", line.date.isoformat(), line.reference or "-"
            )

    console.print(table)

    if len(records) > PREVIEW_ROWS:
        console.print(f"\n... and {len(records) - PREVIEW_ROWS} more records")

    console.print(f"\nTotal records: {len(records)}")
    if errors:
        console.print(f"[yellow]Malformed rows: {len(errors)}[/yellow]")
        for row, message in errors[:PREVIEW_ROWS]:
            console.print(f"  row {row}: {escape(message)}")


def _collect(fetch: Callable[[int, int], Page]) -> list:
    """Read every page of a listing."""
    items: list = []
    offset = 0
    while True:
        page = fetch(REPORT_PAGE_SIZE, offset)
        items.extend(page.data)
        offset += REPORT_PAGE_SIZE
        if not page.data or offset >= page.total_count:
            return items


def _display_ingestion(result: IngestionResult, path: Path) -> None:
    table = Table(title=f"Ingested {result.source}: {path.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Rows Read", str(result.rows_read))
    table.add_row("Saved", str(result.saved))
    table.add_row("Skipped", str(result.skipped))
    table.add_row("Batches", str(result.batches))
    console.print(table)


def _display_summary(summary) -> None:
    """Display a stored reconciliation summary in console."""
    table = Table(title=f"Reconciliation Summary: {summary.task_id}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    window = f"{summary.start_date:%Y-%m-%d %H:%M:%S} to {summary.end_date:%Y-%m-%d %H:%M:%S}"
    table.add_row("Window", window)
    table.add_row("Total Records", str(summary.total_transaction))
    table.add_row("Matched", str(summary.total_matched))
    table.add_row("Unmatched Internal", str(summary.total_unmatched_internal))
    table.add_row("Unmatched Bank", str(summary.total_unmatched_bank))
    table.add_row("Discrepancy", f"{summary.total_discrepancy:,.2f}")

    console.print(table)


def _display_page_footer(page: Page) -> None:
    shown = len(page.data)
    console.print(f"\nShowing {shown} of {page.total_count} (offset {page.offset})")


if __name__ == "__main__":
    main()
