"""Pipeline stage models: the fixed, linear supply-chain sequence."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class WorkflowStage(str, Enum):
    """Stages in pipeline order.  There is no branching and no re-entry."""

    REGISTRATION = "registration"
    PURCHASE = "purchase"
    STORAGE = "storage"
    TRANSPORT = "transport"
    PROCESSING = "processing"
    PACKAGING = "packaging"
    SCORING = "scoring"


class ScoreState(str, Enum):
    """Commit-reveal lifecycle of a score."""

    COMMITTED = "committed"
    REVEALED = "revealed"


class StageDefinition(BaseModel):
    """Static description of one stage."""

    model_config = ConfigDict(frozen=True)

    stage: WorkflowStage
    display_name: str
    ordinal: int
    optional: bool = False  # runs only when the stage applies to the request


_DEFINITIONS = [
    StageDefinition(stage=WorkflowStage.REGISTRATION, display_name="Registration", ordinal=1),
    StageDefinition(stage=WorkflowStage.PURCHASE, display_name="Purchase", ordinal=2),
    StageDefinition(stage=WorkflowStage.STORAGE, display_name="Storage", ordinal=3),
    StageDefinition(stage=WorkflowStage.TRANSPORT, display_name="Transport", ordinal=4),
    StageDefinition(stage=WorkflowStage.PROCESSING, display_name="Processing", ordinal=5),
    StageDefinition(stage=WorkflowStage.PACKAGING, display_name="Packaging", ordinal=6),
    StageDefinition(
        stage=WorkflowStage.SCORING,
        display_name="Scoring",
        ordinal=7,
        optional=True,
    ),
]

STAGE_DEFINITIONS: list[StageDefinition] = sorted(_DEFINITIONS, key=lambda d: d.ordinal)

STAGE_ORDER: list[WorkflowStage] = [d.stage for d in STAGE_DEFINITIONS]

DISPLAY_NAMES: dict[WorkflowStage, str] = {d.stage: d.display_name for d in STAGE_DEFINITIONS}
