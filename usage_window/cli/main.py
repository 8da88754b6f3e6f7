"""
CLI interface for Usage Window.

Provides command-line access to the raw usage window computation.
"""

import logging
import sqlite3
import sys
from datetime import datetime

import typer
import yaml
from rich.console import Console
from rich.table import Table

from usage_window.config.loader import load_window_config
from usage_window.core.catalog import UnknownUsageError
from usage_window.core.optimizer import RawUsageOptimizer
from usage_window.storage.db import DEFAULT_DB_PATH
from usage_window.storage.repository import RawUsageRepository, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

DATE_FORMATS = ["%Y-%m-%d"]


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Usage Window CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Usage Window - Use --help to see available commands")


@app.command()
def init(
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="Path to SQLite database")
):
    """Initialize the usage ledger database."""
    try:
        initialize_schema(db)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except sqlite3.Error as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def window(
    account_id: str = typer.Argument(..., help="Account to compute the window for"),
    config_path: str = typer.Option(
        ...,
        "--config",
        "-c",
        help="Path to usage window YAML config"
    ),
    first_event: datetime = typer.Option(
        ...,
        "--first-event",
        "-f",
        formats=DATE_FORMATS,
        help="Earliest date an unbilled usage event can exist"
    ),
    target: datetime = typer.Option(
        ...,
        "--target",
        "-t",
        formats=DATE_FORMATS,
        help="Invoice target date"
    ),
    db: str = typer.Option(DEFAULT_DB_PATH, "--db", help="Path to SQLite database"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log optimizer decisions")
):
    """
    Compute the raw usage window for an account.

    Reads the account's invoiced usage items, narrows the raw usage window
    accordingly, and reports how many raw usage rows it covers.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    first_event_date = first_event.date()
    target_date = target.date()

    try:
        config = load_window_config(config_path)
        repository = RawUsageRepository(db)
        optimizer = RawUsageOptimizer(config.invoice, repository)

        existing_items = repository.get_usage_invoice_items(account_id)
        raw_usage = optimizer.get_consumable_in_arrear_usage(
            account_id, first_event_date, target_date, existing_items, config.catalog
        )
        # Recomputed for display only; the computation is pure
        start_date = optimizer.get_raw_usage_start_date(
            first_event_date, target_date, existing_items, config.catalog
        )
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            console.print("\n[bold yellow]No usage ledger found[/]")
            console.print("Run `usage-window init` to initialize the database\n")
            sys.exit(EXIT_CODE_FAIL)
        raise
    except UnknownUsageError as e:
        console.print(f"[red]Catalog mismatch:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    _display_window(account_id, first_event_date, start_date, target_date, len(existing_items), len(raw_usage))
    sys.exit(EXIT_CODE_PASS)


def _display_window(account_id, first_event_date, start_date, target_date, item_count, usage_count):
    """Display the computed window."""
    table = Table(title=f"Raw Usage Window: {account_id}")
    table.add_column("Field")
    table.add_column("Value", justify="right")
    table.add_row("First event start date", first_event_date.isoformat())
    table.add_row("Optimized start date", start_date.isoformat())
    table.add_row("Target date", target_date.isoformat())
    table.add_row("Invoiced usage items", str(item_count))
    table.add_row("Raw usage rows", str(usage_count))
    console.print(table)

    skipped_days = (start_date - first_event_date).days
    if skipped_days > 0:
        console.print(f"Skipped {skipped_days} days of raw usage")


if __name__ == "__main__":
    app()
