"""Shared test fixtures for AgriTrace."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from agritrace.core.content_store import EvidenceCollections, FileContentStore
from agritrace.core.hasher import hash_string, to_hex
from agritrace.core.ledger_client import LedgerClient
from agritrace.core.local_ledger import LocalLedger
from agritrace.core.orchestrator import SupplyChainOrchestrator
from agritrace.core.recording_ledger import RecordingLedger
from agritrace.core.verification_directory import VerificationDirectory
from agritrace.models.config import WorkflowConfig
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

FARMER_MOBILE = "+919812345678"
FARMER_IDENTITY = to_hex(hash_string(FARMER_MOBILE))


class FakeClock:
    """Deterministic UTC clock whose ``sleep`` advances time instead of blocking."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)
        self.sleeps: list[float] = []

    def __call__(self) -> datetime:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += timedelta(seconds=seconds)

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def ledger_path(tmp_path: Path) -> Path:
    return tmp_path / "ledger.json"


@pytest.fixture
def local_ledger(ledger_path: Path) -> LocalLedger:
    """Provide a fresh LocalLedger backed by a temp JSON file."""
    return LocalLedger(ledger_path)


@pytest.fixture
def ledger_client(local_ledger: LocalLedger) -> LedgerClient:
    return LedgerClient(local_ledger)


@pytest.fixture
def content_store(tmp_path: Path) -> FileContentStore:
    return FileContentStore(tmp_path / "content")


@pytest.fixture
def evidence(tmp_path: Path, content_store: FileContentStore) -> EvidenceCollections:
    return EvidenceCollections(tmp_path / "evidence", content_store)


@pytest.fixture
def directory(tmp_path: Path) -> VerificationDirectory:
    """A directory with one verified producer registered."""
    directory = VerificationDirectory(tmp_path / "directory.json")
    directory.add_identity(
        IdentityRecord(
            mobile=FARMER_MOBILE,
            identity=FARMER_IDENTITY,
            name="Test Farmer",
            location="Karnal",
            verified=True,
        )
    )
    return directory


@pytest.fixture
def authority() -> RecordingLedger:
    return RecordingLedger()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_orchestrator(
    ledger_client: LedgerClient,
    content_store: FileContentStore,
    evidence: EvidenceCollections,
    directory: VerificationDirectory,
    clock: FakeClock,
) -> Callable[..., SupplyChainOrchestrator]:
    """Factory fixture: orchestrator over the temp collaborators."""

    def _factory(
        authority: RecordingLedger | None = None,
        config: WorkflowConfig | None = None,
        **overrides: Any,
    ) -> SupplyChainOrchestrator:
        kwargs: dict[str, Any] = {
            "ledger": ledger_client,
            "authority": authority or RecordingLedger(),
            "content_store": content_store,
            "evidence": evidence,
            "directory": directory,
            "config": config or WorkflowConfig(),
            "sleep": clock.sleep,
            "clock": clock,
        }
        kwargs.update(overrides)
        return SupplyChainOrchestrator(**kwargs)

    return _factory


@pytest.fixture
def orchestrator(
    make_orchestrator: Callable[..., SupplyChainOrchestrator], authority: RecordingLedger
) -> SupplyChainOrchestrator:
    return make_orchestrator(authority=authority)


# ---------------------------------------------------------------------------
# Request factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_request() -> Callable[..., WorkflowRequest]:
    """Factory fixture: build a WorkflowRequest with sensible defaults."""

    def _factory(
        batch_id: str = "BATCH-001",
        *,
        mobile: str | None = None,
        identity: str = FARMER_IDENTITY,
        checkpoints: int = 3,
        total_packages: int = 2,
        units_per_package: int = 3,
        outputs: list[str] | None = None,
        scoring: bool = True,
    ) -> WorkflowRequest:
        output_ids = [f"{batch_id}-MILLED"] if outputs is None else outputs
        return WorkflowRequest(
            farmer=FarmerData(
                identity=identity,
                crop_id="CROP-RICE-01",
                name="Test Farmer",
                location="Karnal",
                land_area="3 acres",
                crops=["rice"],
                contact="farmer@example.org",
                mobile=mobile,
            ),
            purchase=PurchaseData(
                batch_id=batch_id,
                quantity_kg=100.0,
                quality_grade="A",
                moisture_content="12%",
                price_per_kg=40.0,
                purchase_date="2024-06-01",
                transport_method="tractor",
                travel_distance_km=10.0,
            ),
            warehouse=WarehouseData(
                warehouse_id="WH-01",
                temperature_celsius=18.0,
                humidity_percent=50.0,
                storage_duration_days=7,
            ),
            logistics=LogisticsData(
                shipment_id=f"SHP-{batch_id}",
                origin="Karnal",
                destination="Panipat",
                checkpoints=[
                    Checkpoint(location=f"Checkpoint {n}", latitude=29.0 + n / 10, longitude=77.0)
                    for n in range(1, checkpoints + 1)
                ],
            ),
            processing=ProcessingData(
                process_type="milling",
                yield_percentage=70.0,
                output_products=[
                    OutputProduct(product_id=pid, product_type="milled rice", quantity_kg=70.0)
                    for pid in output_ids
                ],
            ),
            packaging=PackagingData(
                sku_prefix=f"SKU-{batch_id}",
                package_type="1kg pouch",
                units_per_package=units_per_package,
                total_packages=total_packages,
                expiry_months=6,
            ),
            scoring=ScoringData(
                quality_score=90.0,
                freshness_score=85.0,
                purity_score=95.0,
                model_version="test-model",
            )
            if scoring
            else None,
        )

    return _factory
