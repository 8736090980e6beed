"""Main Typer application - imports and registers all CLI commands.

Entry point: ``agritrace`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from agritrace.cli.commands.demo import demo_cmd
from agritrace.cli.commands.ledger import history_cmd, stats_cmd, verify_chain_cmd
from agritrace.cli.commands.lookup import lookup_mobile_cmd, trace_sku_cmd
from agritrace.cli.commands.run import run_cmd
from agritrace.cli.runtime import configure_logging
from agritrace.config import config

app = typer.Typer(
    name="agritrace",
    help="AgriTrace: hash-chained supply-chain traceability from farm to retail SKU.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (default: AGRITRACE_LOG_LEVEL)."
    ),
) -> None:
    configure_logging(log_level or config.log_level)


# Register subcommands
app.command(name="run", help="Execute a workflow from a JSON request file.")(run_cmd)
app.command(name="demo", help="Run a complete demo workflow with sample data.")(demo_cmd)
app.command(name="history", help="Show the Local Ledger history of a batch.")(history_cmd)
app.command(name="stats", help="Show Local Ledger counters.")(stats_cmd)
app.command(name="verify-chain", help="Verify Local Ledger hash chains.")(verify_chain_cmd)
app.command(name="trace-sku", help="Trace a retail SKU back to its batch.")(trace_sku_cmd)
app.command(name="lookup-mobile", help="Look up a producer by mobile number.")(lookup_mobile_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
