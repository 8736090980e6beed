"""Stage 2: Purchase - record the aggregator buying the batch.

Costs the purchase (product plus transport), writes ``fpo_purchase.json``
into the batch's evidence folder and submits ``record-purchase``.
"""

from __future__ import annotations

from typing import Any

from agritrace.core.collaborators import LedgerOperation
from agritrace.core.content_store import validate_path_component
from agritrace.core.hasher import hash_string, to_hex
from agritrace.models.config import WorkflowConfig
from agritrace.models.stages import WorkflowStage
from agritrace.models.workflow import PurchaseData
from agritrace.stages.base import BaseStage

PURCHASE_FILENAME = "fpo_purchase.json"


def purchase_costs(purchase: PurchaseData, config: WorkflowConfig) -> dict[str, float]:
    """Product, transport and total cost of *purchase*."""
    rate = config.transport_rate(purchase.transport_method)
    product_cost = purchase.quantity_kg * purchase.price_per_kg
    transport_cost = purchase.travel_distance_km * rate
    return {
        "transport_rate_per_km": rate,
        "product_cost": product_cost,
        "transport_cost": transport_cost,
        "total_cost": product_cost + transport_cost,
    }


class PurchaseStage(BaseStage):
    @property
    def stage(self) -> WorkflowStage:
        return WorkflowStage.PURCHASE

    def validate(self, run_context: dict[str, Any]) -> None:
        validate_path_component(run_context["request"].purchase.batch_id, "batch_id")

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        request = run_context["request"]
        purchase = request.purchase
        identity = run_context["identity"]
        costs = purchase_costs(purchase, run_context["config"])

        metadata = {
            "transaction_type": "fpo_purchase",
            "timestamp": self.timestamp(run_context),
            "batch_info": {
                "batch_id": purchase.batch_id,
                "quantity_kg": purchase.quantity_kg,
                "quality_grade": purchase.quality_grade,
                "moisture_content": purchase.moisture_content,
                "purchase_date": purchase.purchase_date,
            },
            "farmer_info": {
                "identity": identity,
                "land_area": request.farmer.land_area,
                "crops": list(request.farmer.crops),
            },
            "logistics": {
                "transport_method": purchase.transport_method,
                "travel_distance_km": purchase.travel_distance_km,
                "transport_rate_per_km": costs["transport_rate_per_km"],
                "transport_cost": costs["transport_cost"],
            },
            "pricing": {
                "price_per_kg": purchase.price_per_kg,
                "product_cost": costs["product_cost"],
                "transport_cost": costs["transport_cost"],
                "total_cost": costs["total_cost"],
            },
        }
        content_id = self.upload_evidence(
            run_context, purchase.batch_id, PURCHASE_FILENAME, metadata
        )

        batch_hash = to_hex(hash_string(purchase.batch_id))
        receipt = self.submit(
            run_context,
            LedgerOperation.RECORD_PURCHASE,
            {"batch_hash": batch_hash, "identity": identity, "content_id": content_id},
        )
        entry = self.append_local(
            run_context,
            "purchase-recorded",
            {
                "batch_hash": batch_hash,
                "quantity_kg": purchase.quantity_kg,
                "total_cost": costs["total_cost"],
                "content_id": content_id,
                "transaction_id": receipt.transaction_id,
            },
        )
        return {
            "transaction_id": receipt.transaction_id,
            "content_id": content_id,
            "batch_hash": batch_hash,
            "entry_hash": entry.entry_hash,
            **costs,
        }
