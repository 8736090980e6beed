"""Rich renderers shared by the CLI commands."""

from __future__ import annotations

import json

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from agritrace.models.ledger import LedgerEntry, LedgerStats
from agritrace.models.stages import DISPLAY_NAMES, STAGE_ORDER
from agritrace.models.workflow import WorkflowResult


def _short(value: str | None, width: int = 18) -> str:
    if not value:
        return "-"
    return value if len(value) <= width else value[:width] + "..."


def render_result(console: Console, result: WorkflowResult) -> None:
    table = Table(title=f"Workflow {result.batch_id}")
    table.add_column("Stage", style="cyan")
    table.add_column("Transactions", justify="right")
    table.add_column("First tx")
    table.add_column("Latest content id")

    for stage in STAGE_ORDER:
        if stage not in result.transactions and stage not in result.content_ids:
            continue
        txs = result.transactions.get(stage, [])
        table.add_row(
            DISPLAY_NAMES[stage],
            str(len(txs)),
            _short(txs[0] if txs else None),
            _short(result.content_id(stage), 30),
        )
    console.print(table)

    summary = result.summary
    lines = [
        f"Stages: {summary.stages_succeeded}/{summary.total_stages}",
        f"Transactions: {summary.total_transactions}",
        f"Uploads: {summary.total_uploads}",
        f"Duration: {summary.duration_seconds:.2f}s",
        f"SKUs: {', '.join(result.final_skus) or '-'}",
    ]
    if result.score_commitment is not None:
        commitment = result.score_commitment
        lines.append(
            f"Score: {commitment.overall_score:.1f} ({commitment.state.value},"
            f" commit={_short(commitment.commit_hash)})"
        )
    lines.append("")
    lines.append(summary.trace_path)
    console.print(Panel("\n".join(lines), title="Summary", border_style="green"))


def render_entries(console: Console, business_key: str, entries: list[LedgerEntry]) -> None:
    table = Table(title=f"History of {business_key}")
    table.add_column("v", justify="right", style="bold")
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Created (UTC)")
    table.add_column("Entry hash")
    table.add_column("Payload", overflow="fold")
    for entry in entries:
        table.add_row(
            str(entry.version),
            entry.category,
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            _short(entry.entry_hash),
            json.dumps(entry.payload, sort_keys=True),
        )
    console.print(table)


def render_stats(console: Console, stats: LedgerStats) -> None:
    table = Table(title="Local Ledger", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Path", stats.ledger_path)
    table.add_row("Entries", str(stats.entry_count))
    table.add_row("Business keys", str(stats.distinct_key_count))
    table.add_row("Identities", str(stats.distinct_identity_count))
    table.add_row(
        "Last entry",
        stats.last_entry_time.isoformat() if stats.last_entry_time else "-",
    )
    console.print(table)
