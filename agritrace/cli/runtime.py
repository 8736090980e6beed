"""Shared wiring for CLI commands: settings, orchestrator, logging."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from agritrace.config import ProdConfig, config
from agritrace.core.orchestrator import SupplyChainOrchestrator

_LOG_FORMAT = "%(name)s | %(message)s"


def configure_logging(level: str, console: Console | None = None) -> None:
    """Install a RichHandler on the root logger once.

    Leaves an already-configured root logger alone (e.g. under pytest).
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(getattr(logging, level.upper(), logging.INFO))
        return
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=_LOG_FORMAT,
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
    )


def settings_for(data_dir: Path | None) -> ProdConfig:
    """The module settings, or the same settings rooted under *data_dir*."""
    if data_dir is None:
        return config
    return config.model_copy(
        update={
            "ledger_path": data_dir / "ledger.json",
            "evidence_path": data_dir / "evidence",
            "content_store_path": data_dir / "content",
            "directory_path": data_dir / "verification_directory.json",
        }
    )


def build_orchestrator(
    data_dir: Path | None, *, reveal_delay: float | None = None
) -> SupplyChainOrchestrator:
    settings = settings_for(data_dir)
    if reveal_delay is not None:
        settings = settings.model_copy(update={"reveal_delay_seconds": reveal_delay})
    return SupplyChainOrchestrator.from_config(settings)
