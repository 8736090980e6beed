"""Local Ledger inspection commands: ``history``, ``stats``, ``verify-chain``.

All three are read-only views over the ledger file; nothing is written.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from agritrace.cli.render import render_entries, render_stats
from agritrace.cli.runtime import settings_for
from agritrace.core.errors import AgriTraceError, LedgerIntegrityError
from agritrace.core.ledger_client import LedgerClient

console = Console()

_DATA_DIR_HELP = "Root directory for ledger, evidence and content (default: settings)."


def _open_ledger(data_dir: Path | None) -> LedgerClient:
    path = settings_for(data_dir).ledger_path
    if not path.exists():
        console.print(f"[bold red]Ledger not found:[/bold red] {path}")
        console.print("[dim]Run a workflow first with: agritrace demo[/dim]")
        raise typer.Exit(code=1)
    try:
        return LedgerClient.open(path)
    except AgriTraceError as exc:
        console.print(f"[bold red]Cannot load ledger:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc


def history_cmd(
    business_key: str = typer.Argument(..., help="Batch id (business key) to show."),
    data_dir: Path = typer.Option(None, "--data-dir", "-D", help=_DATA_DIR_HELP),
) -> None:
    """Show every Local Ledger entry for a batch, oldest first."""
    ledger = _open_ledger(data_dir)
    entries = ledger.history(business_key)
    if not entries:
        console.print(f"[dim]No entries for {business_key}.[/dim]")
        return
    render_entries(console, business_key, entries)


def stats_cmd(
    data_dir: Path = typer.Option(None, "--data-dir", "-D", help=_DATA_DIR_HELP),
) -> None:
    """Show Local Ledger counters."""
    render_stats(console, _open_ledger(data_dir).stats())


def verify_chain_cmd(
    business_key: str = typer.Argument(
        None, help="Batch id to verify (default: every business key)."
    ),
    data_dir: Path = typer.Option(None, "--data-dir", "-D", help=_DATA_DIR_HELP),
) -> None:
    """Recompute hashes and predecessor links; exit 1 on any break."""
    ledger = _open_ledger(data_dir)
    keys = [business_key] if business_key else ledger.business_keys()

    table = Table(title="Chain verification")
    table.add_column("Business key", style="cyan", no_wrap=True)
    table.add_column("Entries", justify="right")
    table.add_column("Status")

    failures = 0
    for key in keys:
        count = len(ledger.history(key))
        try:
            ledger.verify_chain(key)
        except LedgerIntegrityError as exc:
            failures += 1
            table.add_row(key, str(count), f"[red]BROKEN[/red] {exc}")
            continue
        status = "[green]VALID[/green]" if count else "[yellow]NO ENTRIES[/yellow]"
        table.add_row(key, str(count), status)

    console.print(table)
    if failures:
        raise typer.Exit(code=1)
