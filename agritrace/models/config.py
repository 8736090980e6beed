"""Orchestrator-level configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Per-km transport rates used to cost a purchase; unknown methods cost 0.
DEFAULT_TRANSPORT_RATES: dict[str, float] = {
    "tractor": 8.0,
    "bullock": 5.0,
    "pickup": 11.0,
    "truck": 15.0,
}


class WorkflowConfig(BaseModel):
    """Options for one ``SupplyChainOrchestrator``.

    ``reveal_delay_seconds`` is a policy placeholder standing in for a
    time-lock between committing and revealing a score.
    """

    model_config = ConfigDict(frozen=True)

    reveal_delay_seconds: float = Field(default=2.0, ge=0.0)
    auto_reveal: bool = True
    update_directory_ref: bool = True
    transport_rates: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_TRANSPORT_RATES)
    )
    expiry_days_per_month: int = 30

    def transport_rate(self, method: str) -> float:
        return self.transport_rates.get(method.lower(), 0.0)
