"""Lookup commands: ``trace-sku`` and ``lookup-mobile``.

``trace-sku`` works from the Local Ledger, so it answers across processes
even though the offline authoritative ledger lives only in memory.  The
aggregate hash is recomputed from the deterministic unit ids and checked
against the recorded one.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from agritrace.cli.runtime import settings_for
from agritrace.core.errors import AgriTraceError
from agritrace.core.hasher import aggregate_hash, to_hex
from agritrace.core.ledger_client import LedgerClient
from agritrace.core.verification_directory import VerificationDirectory
from agritrace.models.ledger import LedgerEntry
from agritrace.stages.packaging import unit_identifiers

console = Console()

_DATA_DIR_HELP = "Root directory for ledger, evidence and content (default: settings)."


def find_package_entry(ledger: LedgerClient, sku_id: str) -> LedgerEntry | None:
    """The ``package-created`` entry recorded for *sku_id*, if any."""
    for key in ledger.business_keys():
        for entry in ledger.history(key):
            if entry.category == "package-created" and entry.payload.get("sku_id") == sku_id:
                return entry
    return None


def trace_sku_cmd(
    sku_id: str = typer.Argument(..., help="SKU id, e.g. SKU-BATCH-1-0001."),
    data_dir: Path = typer.Option(None, "--data-dir", "-D", help=_DATA_DIR_HELP),
) -> None:
    """Trace a retail SKU back to its batch and producer."""
    settings = settings_for(data_dir)
    try:
        ledger = LedgerClient.open(settings.ledger_path)
    except AgriTraceError as exc:
        console.print(f"[bold red]Cannot load ledger:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    entry = find_package_entry(ledger, sku_id)
    if entry is None:
        console.print(f"[bold red]SKU not found:[/bold red] {sku_id}")
        raise typer.Exit(code=1)

    units = unit_identifiers(sku_id, int(entry.payload.get("units_count", 0)))
    recomputed = to_hex(aggregate_hash(units))
    recorded = entry.payload.get("aggregate_hash", "")

    table = Table(title=f"Trace for {sku_id}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", overflow="fold")
    table.add_row("Batch", entry.business_key)
    table.add_row("Parent product", str(entry.payload.get("parent_batch", "")))
    table.add_row("Producer identity", entry.associated_identity or "-")
    table.add_row("Units", ", ".join(units))
    table.add_row("Aggregate hash", recorded)
    table.add_row(
        "Aggregate check",
        "[green]MATCH[/green]" if recomputed == recorded else "[red]MISMATCH[/red]",
    )
    table.add_row("Evidence", settings.gateway_url(str(entry.payload.get("content_id", ""))))
    table.add_row("Transaction", str(entry.payload.get("transaction_id", "")))
    table.add_row("Packaged (UTC)", entry.created_at.isoformat())
    console.print(table)

    if recomputed != recorded:
        raise typer.Exit(code=1)


def lookup_mobile_cmd(
    mobile: str = typer.Argument(..., help="Mobile number, e.g. +919876543210."),
    data_dir: Path = typer.Option(None, "--data-dir", "-D", help=_DATA_DIR_HELP),
) -> None:
    """Show the producer registered to a mobile number."""
    directory = VerificationDirectory(settings_for(data_dir).directory_path)
    record = directory.lookup_by_mobile(mobile)
    if record is None:
        console.print(f"[yellow]No producer registered for {mobile}.[/yellow]")
        raise typer.Exit(code=1)

    table = Table(title=f"Producer for {mobile}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", overflow="fold")
    for field, value in record.model_dump().items():
        table.add_row(field, str(value) if value not in ("", None) else "-")
    console.print(table)
