"""Stage 4: Transport - one submission per GPS checkpoint.

Checkpoints are submitted in input order; the last one is the delivery
event.  A failure part-way leaves the earlier checkpoints committed.
"""

from __future__ import annotations

from typing import Any

from agritrace.core.collaborators import LedgerOperation
from agritrace.core.hasher import hash_string, to_hex
from agritrace.core.local_ledger import validate_key
from agritrace.models.stages import WorkflowStage
from agritrace.stages.base import BaseStage


class TransportStage(BaseStage):
    @property
    def stage(self) -> WorkflowStage:
        return WorkflowStage.TRANSPORT

    def validate(self, run_context: dict[str, Any]) -> None:
        logistics = run_context["request"].logistics
        validate_key(logistics.shipment_id, "shipment_id")
        for checkpoint in logistics.checkpoints:
            validate_key(checkpoint.location, "checkpoint location")

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        logistics = run_context["request"].logistics
        total = len(logistics.checkpoints)
        shipment_hash = to_hex(hash_string(logistics.shipment_id))
        transactions: list[str] = []

        for idx, checkpoint in enumerate(logistics.checkpoints):
            number = idx + 1
            is_delivered = number == total
            gps = {
                "shipment_id": logistics.shipment_id,
                "origin": logistics.origin,
                "destination": logistics.destination,
                "checkpoint": number,
                "total_checkpoints": total,
                "location": checkpoint.location,
                "coordinates": {
                    "latitude": checkpoint.latitude,
                    "longitude": checkpoint.longitude,
                },
                "timestamp": checkpoint.timestamp or self.timestamp(run_context),
                "is_delivered": is_delivered,
            }
            content_id = self.upload_blob(
                run_context, gps, f"shipment_{logistics.shipment_id}_{number:03d}.json"
            )

            location_hash = to_hex(hash_string(checkpoint.location))
            receipt = self.submit(
                run_context,
                LedgerOperation.RECORD_CHECKPOINT,
                {
                    "shipment_hash": shipment_hash,
                    "location_hash": location_hash,
                    "is_delivered": is_delivered,
                    "content_id": content_id,
                },
            )
            self.append_local(
                run_context,
                "checkpoint-recorded",
                {
                    "shipment_id": logistics.shipment_id,
                    "checkpoint": number,
                    "location_hash": location_hash,
                    "is_delivered": is_delivered,
                    "content_id": content_id,
                    "transaction_id": receipt.transaction_id,
                },
            )
            transactions.append(receipt.transaction_id)

        return {"transactions": transactions, "shipment_hash": shipment_hash}
