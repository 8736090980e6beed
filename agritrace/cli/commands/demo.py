"""``agritrace demo`` - run a complete workflow with sample data.

Registers a sample producer in the verification directory, then drives
one batch through every stage (scoring included) against the local
collaborators and prints the outcome.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from agritrace.cli.render import render_result
from agritrace.cli.runtime import build_orchestrator
from agritrace.core.errors import AgriTraceError
from agritrace.core.hasher import hash_string, to_hex
from agritrace.models.directory import IdentityRecord
from agritrace.models.workflow import (
    Checkpoint,
    FarmerData,
    LogisticsData,
    OutputProduct,
    PackagingData,
    ProcessingData,
    PurchaseData,
    ScoringData,
    WarehouseData,
    WorkflowRequest,
)

console = Console()

DEMO_MOBILE = "+919876543210"


def sample_request(batch_id: str, mobile: str = DEMO_MOBILE) -> WorkflowRequest:
    """A complete request for one batch of basmati rice."""
    identity = to_hex(hash_string(mobile))
    return WorkflowRequest(
        farmer=FarmerData(
            identity=identity,
            crop_id="CROP-BASMATI-2024",
            name="Ramesh Kumar",
            location="Karnal, Haryana",
            land_area="4.5 acres",
            crops=["basmati rice", "wheat"],
            contact="ramesh@example.org",
            mobile=mobile,
        ),
        purchase=PurchaseData(
            batch_id=batch_id,
            quantity_kg=1200.0,
            quality_grade="A",
            moisture_content="12%",
            price_per_kg=38.5,
            purchase_date=datetime.now(timezone.utc).date().isoformat(),
            transport_method="tractor",
            travel_distance_km=18.0,
        ),
        warehouse=WarehouseData(
            warehouse_id="WH-KNL-01",
            temperature_celsius=18.5,
            humidity_percent=55.0,
            storage_duration_days=14,
        ),
        logistics=LogisticsData(
            shipment_id=f"SHP-{batch_id}",
            origin="Karnal",
            destination="Panipat",
            checkpoints=[
                Checkpoint(location="Karnal warehouse gate", latitude=29.6857, longitude=76.9905),
                Checkpoint(location="NH44 Gharaunda", latitude=29.5367, longitude=76.9711),
                Checkpoint(location="Panipat mill", latitude=29.3909, longitude=76.9635),
            ],
        ),
        processing=ProcessingData(
            process_type="milling",
            yield_percentage=68.0,
            output_products=[
                OutputProduct(product_id=f"{batch_id}-MILLED", product_type="milled rice", quantity_kg=816.0),
                OutputProduct(product_id=f"{batch_id}-BRAN", product_type="rice bran", quantity_kg=96.0),
            ],
        ),
        packaging=PackagingData(
            sku_prefix=f"SKU-{batch_id}",
            package_type="5kg pouch",
            units_per_package=4,
            total_packages=3,
            expiry_months=12,
        ),
        scoring=ScoringData(
            quality_score=92.0,
            freshness_score=88.0,
            purity_score=95.0,
            model_version="grain-vision-v2",
        ),
    )


def demo_cmd(
    data_dir: Path = typer.Option(
        Path(".agritrace/demo"),
        "--data-dir",
        "-D",
        help="Root directory for the demo ledger, evidence and content.",
    ),
    reveal_delay: float = typer.Option(
        2.0,
        "--reveal-delay",
        help="Seconds between score commit and reveal.",
    ),
    batch_id: str = typer.Option(
        None,
        "--batch",
        help="Batch id to use (default: a fresh random one).",
    ),
) -> None:
    """Run a complete demo workflow with sample data."""
    batch_id = batch_id or f"BATCH-{uuid.uuid4().hex[:8].upper()}"
    request = sample_request(batch_id)

    console.print()
    console.print(
        Panel(
            "[bold]AgriTrace Demo Workflow[/bold]\n\n"
            f"Batch [cyan]{batch_id}[/cyan] goes through Registration, Purchase, Storage,\n"
            "Transport, Processing, Packaging and Scoring (commit-reveal).",
            border_style="cyan",
            padding=(1, 2),
        )
    )

    try:
        orchestrator = build_orchestrator(data_dir, reveal_delay=reveal_delay)
        if orchestrator.directory is not None:
            orchestrator.directory.add_identity(
                IdentityRecord(
                    mobile=DEMO_MOBILE,
                    identity=request.farmer.identity,
                    name=request.farmer.name,
                    location=request.farmer.location,
                    state_code="HR",
                    district_code="KNL",
                    land_acres=4.5,
                    crop="basmati rice",
                    verified=True,
                    registration_date=datetime.now(timezone.utc).date().isoformat(),
                )
            )
        result = orchestrator.execute(request)
        chain_ok = orchestrator.ledger.verify_chain(batch_id)
    except AgriTraceError as exc:
        console.print(f"[bold red]Demo failed:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc

    render_result(console, result)
    status = "[bold green]VALID[/bold green]" if chain_ok else "[bold red]BROKEN[/bold red]"
    console.print(f"Local Ledger chain for {batch_id}: {status}")
