"""Workflow request, result and verification models.

Inputs are frozen and validated on construction.  ``WorkflowResult`` is
the one mutable model: stages fill it in as they go, so an aborted run
can still report how far it got.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agritrace.models.stages import ScoreState, WorkflowStage

# ---------------------------------------------------------------------------
# Stage inputs
# ---------------------------------------------------------------------------


class FarmerData(BaseModel):
    """Producer being registered.  ``identity`` is a 32-byte hex digest."""

    model_config = ConfigDict(frozen=True)

    identity: str
    crop_id: str
    name: str
    location: str = ""
    land_area: str = ""
    crops: list[str] = Field(default_factory=list)
    contact: str = ""
    mobile: str | None = None  # checked against the verification directory when set


class PurchaseData(BaseModel):
    model_config = ConfigDict(frozen=True)

    batch_id: str
    quantity_kg: float = Field(gt=0)
    quality_grade: str = ""
    moisture_content: str = ""
    price_per_kg: float = Field(default=0.0, ge=0)
    purchase_date: str = ""
    transport_method: str = ""
    travel_distance_km: float = Field(default=0.0, ge=0)


class WarehouseData(BaseModel):
    model_config = ConfigDict(frozen=True)

    warehouse_id: str
    temperature_celsius: float
    humidity_percent: float
    storage_duration_days: int = Field(default=0, ge=0)


class Checkpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: str
    latitude: float
    longitude: float
    timestamp: str = ""


class LogisticsData(BaseModel):
    """A shipment; the last checkpoint is the delivery event."""

    model_config = ConfigDict(frozen=True)

    shipment_id: str
    origin: str = ""
    destination: str = ""
    checkpoints: list[Checkpoint] = Field(min_length=1)


class OutputProduct(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    product_type: str = ""
    quantity_kg: float = Field(default=0.0, ge=0)


class ProcessingData(BaseModel):
    model_config = ConfigDict(frozen=True)

    process_type: str
    yield_percentage: float = Field(default=100.0, ge=0, le=100)
    output_products: list[OutputProduct] = Field(default_factory=list)


class PackagingData(BaseModel):
    model_config = ConfigDict(frozen=True)

    sku_prefix: str
    package_type: str = ""
    units_per_package: int = Field(ge=1)
    total_packages: int = Field(ge=1)
    expiry_months: int = Field(default=12, ge=0)


class ScoringData(BaseModel):
    model_config = ConfigDict(frozen=True)

    quality_score: float = Field(ge=0, le=100)
    freshness_score: float = Field(ge=0, le=100)
    purity_score: float = Field(ge=0, le=100)
    model_version: str = "v1"

    @property
    def overall_score(self) -> float:
        return (self.quality_score + self.freshness_score + self.purity_score) / 3.0


class WorkflowRequest(BaseModel):
    """Everything one end-to-end run needs.  ``scoring`` is optional."""

    model_config = ConfigDict(frozen=True)

    farmer: FarmerData
    purchase: PurchaseData
    warehouse: WarehouseData
    logistics: LogisticsData
    processing: ProcessingData
    packaging: PackagingData
    scoring: ScoringData | None = None


# ---------------------------------------------------------------------------
# Commit-reveal
# ---------------------------------------------------------------------------


class ScoreCommitment(BaseModel):
    """A committed score awaiting (or past) its reveal.

    Holds the secret opening (``reveal_hash`` and ``nonce``) so that the
    holder can reveal later; only ``commit_hash`` is published at commit
    time.
    """

    model_config = ConfigDict(frozen=True)

    batch_id: str
    batch_hash: str
    associated_identity: str | None = None
    reveal_hash: str
    nonce: str
    commit_hash: str
    content_id: str
    overall_score: float
    commit_transaction: str
    reveal_transaction: str | None = None
    state: ScoreState = ScoreState.COMMITTED
    committed_at: datetime
    reveal_not_before: datetime
    revealed_at: datetime | None = None

    @property
    def is_revealed(self) -> bool:
        return self.state is ScoreState.REVEALED


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class WorkflowSummary(BaseModel):
    total_stages: int = 0
    stages_attempted: int = 0
    stages_succeeded: int = 0
    total_transactions: int = 0
    total_uploads: int = 0
    duration_seconds: float = 0.0
    trace_path: str = ""


class WorkflowResult(BaseModel):
    """Outcome of one run, keyed by stage.

    ``transactions`` and ``content_ids`` hold one entry per submission and
    per upload, in order; single-shot stages simply have one element.
    """

    batch_id: str
    transactions: dict[WorkflowStage, list[str]] = Field(default_factory=dict)
    content_ids: dict[WorkflowStage, list[str]] = Field(default_factory=dict)
    local_entry_hashes: list[str] = Field(default_factory=list)
    package_aggregate_hashes: list[str] = Field(default_factory=list)
    final_skus: list[str] = Field(default_factory=list)
    completed_stages: list[WorkflowStage] = Field(default_factory=list)
    score_commitment: ScoreCommitment | None = None
    summary: WorkflowSummary = Field(default_factory=WorkflowSummary)

    def record_transaction(self, stage: WorkflowStage, transaction_id: str) -> None:
        self.transactions.setdefault(stage, []).append(transaction_id)
        self.summary.total_transactions += 1

    def record_upload(self, stage: WorkflowStage, content_id: str) -> None:
        self.content_ids.setdefault(stage, []).append(content_id)
        self.summary.total_uploads += 1

    @property
    def last_completed_stage(self) -> WorkflowStage | None:
        return self.completed_stages[-1] if self.completed_stages else None

    def transaction(self, stage: WorkflowStage) -> str | None:
        """First transaction id recorded for *stage*, if any."""
        txs = self.transactions.get(stage)
        return txs[0] if txs else None

    def content_id(self, stage: WorkflowStage) -> str | None:
        """Latest content id recorded for *stage*, if any."""
        cids = self.content_ids.get(stage)
        return cids[-1] if cids else None


# ---------------------------------------------------------------------------
# Verification results
# ---------------------------------------------------------------------------


class SkuTraceability(BaseModel):
    model_config = ConfigDict(frozen=True)

    sku_id: str
    sku_hash: str
    parent_batch_hash: str
    aggregate_hash: str
    packaged_at: int
    verified: bool
    trace_summary: str


class EntityVerification(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: str
    exists: bool
    crop_id_hash: str
    registered_at: int


class IncidentReport(BaseModel):
    """Receipt for a reported incident (e.g. suspected fraud on a SKU)."""

    model_config = ConfigDict(frozen=True)

    sku_id: str
    evidence_hash: str
    content_id: str
    transaction_id: str
    local_entry_hash: str | None = None
    reported_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    evidence: dict[str, Any] = Field(default_factory=dict)
