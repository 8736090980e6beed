"""Supply-chain pipeline stages: registry mapping stage to stage class.

Usage::

    from agritrace.stages import STAGE_REGISTRY, get_stage

    stage = get_stage(WorkflowStage.PACKAGING)
    outcome = stage.run_stage(run_context)
"""

from __future__ import annotations

from agritrace.models.stages import STAGE_ORDER, WorkflowStage
from agritrace.stages.base import BaseStage
from agritrace.stages.packaging import PackagingStage
from agritrace.stages.processing import ProcessingStage
from agritrace.stages.purchase import PurchaseStage
from agritrace.stages.registration import RegistrationStage
from agritrace.stages.scoring import ScoringStage
from agritrace.stages.storage import StorageStage
from agritrace.stages.transport import TransportStage

# ---------------------------------------------------------------------------
# Stage registry: stage -> stage class
# ---------------------------------------------------------------------------

STAGE_REGISTRY: dict[WorkflowStage, type[BaseStage]] = {
    WorkflowStage.REGISTRATION: RegistrationStage,
    WorkflowStage.PURCHASE: PurchaseStage,
    WorkflowStage.STORAGE: StorageStage,
    WorkflowStage.TRANSPORT: TransportStage,
    WorkflowStage.PROCESSING: ProcessingStage,
    WorkflowStage.PACKAGING: PackagingStage,
    WorkflowStage.SCORING: ScoringStage,
}


def get_stage(stage: WorkflowStage | str) -> BaseStage:
    """Instantiate and return the stage class registered for *stage*.

    Raises ``KeyError`` if the stage is not registered.
    """
    try:
        cls = STAGE_REGISTRY[WorkflowStage(stage)]
    except (KeyError, ValueError):
        raise KeyError(
            f"Unknown stage {stage!r}. "
            f"Registered stages: {[s.value for s in STAGE_ORDER]}"
        ) from None
    return cls()


__all__ = [
    "BaseStage",
    "STAGE_REGISTRY",
    "STAGE_ORDER",
    "get_stage",
    "RegistrationStage",
    "PurchaseStage",
    "StorageStage",
    "TransportStage",
    "ProcessingStage",
    "PackagingStage",
    "ScoringStage",
]
