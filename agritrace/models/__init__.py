"""AgriTrace data models - all Pydantic v2, frozen except the run result."""

from agritrace.models.config import WorkflowConfig
from agritrace.models.directory import DirectoryDocument, DirectoryMetadata, IdentityRecord
from agritrace.models.ledger import LedgerEntry, LedgerSnapshot, LedgerStats
from agritrace.models.stages import (
    DISPLAY_NAMES,
    STAGE_DEFINITIONS,
    STAGE_ORDER,
    ScoreState,
    StageDefinition,
    WorkflowStage,
)
from agritrace.models.workflow import (
    Checkpoint,
    EntityVerification,
    FarmerData,
    IncidentReport,
    LogisticsData,
    OutputProduct,
    PackagingData,
    ProcessingData,
    PurchaseData,
    ScoreCommitment,
    ScoringData,
    SkuTraceability,
    WarehouseData,
    WorkflowRequest,
    WorkflowResult,
    WorkflowSummary,
)

__all__ = [
    # config
    "WorkflowConfig",
    # directory
    "IdentityRecord",
    "DirectoryMetadata",
    "DirectoryDocument",
    # ledger
    "LedgerEntry",
    "LedgerStats",
    "LedgerSnapshot",
    # stages
    "WorkflowStage",
    "ScoreState",
    "StageDefinition",
    "STAGE_DEFINITIONS",
    "STAGE_ORDER",
    "DISPLAY_NAMES",
    # workflow inputs
    "FarmerData",
    "PurchaseData",
    "WarehouseData",
    "Checkpoint",
    "LogisticsData",
    "OutputProduct",
    "ProcessingData",
    "PackagingData",
    "ScoringData",
    "WorkflowRequest",
    # workflow results
    "ScoreCommitment",
    "WorkflowSummary",
    "WorkflowResult",
    "SkuTraceability",
    "EntityVerification",
    "IncidentReport",
]
