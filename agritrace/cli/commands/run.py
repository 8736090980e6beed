"""``agritrace run REQUEST_FILE`` - execute a workflow from a JSON request.

The request file holds a ``WorkflowRequest`` (farmer, purchase, warehouse,
logistics, processing, packaging and optional scoring).  The run uses the
local file-backed collaborators and an in-process authoritative ledger.
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from agritrace.cli.render import render_result
from agritrace.cli.runtime import build_orchestrator
from agritrace.core.errors import AgriTraceError, WorkflowAbortedError
from agritrace.models.workflow import WorkflowRequest

console = Console()


def run_cmd(
    request_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="JSON file containing the workflow request.",
    ),
    data_dir: Path = typer.Option(
        None,
        "--data-dir",
        "-D",
        help="Root directory for ledger, evidence and content (default: settings).",
    ),
    reveal_delay: float = typer.Option(
        None,
        "--reveal-delay",
        help="Seconds between score commit and reveal (default: settings).",
    ),
    no_reveal: bool = typer.Option(
        False,
        "--no-reveal",
        help="Commit the score but leave the reveal for later.",
    ),
) -> None:
    """Execute one end-to-end supply-chain workflow."""
    try:
        request = WorkflowRequest.model_validate_json(request_file.read_text(encoding="utf-8"))
    except PydanticValidationError as exc:
        console.print(f"[bold red]Invalid request file:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    try:
        orchestrator = build_orchestrator(data_dir, reveal_delay=reveal_delay)
        result = orchestrator.execute(request, auto_reveal=False if no_reveal else None)
    except WorkflowAbortedError as exc:
        console.print(f"[bold red]Workflow aborted at {exc.stage}:[/bold red] {exc.reason}")
        console.print(
            f"[dim]Last completed stage: {exc.last_completed_stage or 'none'}; "
            f"{exc.transactions_so_far} transactions and {exc.uploads_so_far} uploads "
            "already committed.[/dim]"
        )
        raise typer.Exit(code=1) from exc
    except AgriTraceError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    render_result(console, result)
