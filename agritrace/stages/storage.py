"""Stage 3: Storage - warehouse sensor reading for the stored batch."""

from __future__ import annotations

from typing import Any

from agritrace.core.collaborators import LedgerOperation
from agritrace.core.hasher import content_hash, hash_string, to_hex
from agritrace.core.local_ledger import validate_key
from agritrace.models.stages import WorkflowStage
from agritrace.stages.base import BaseStage


class StorageStage(BaseStage):
    """Upload the reading and submit ``update-state`` for the warehouse.

    The state hash is the content hash of the uploaded reading, so the
    reading fetched back from the content store can be checked against it.
    """

    @property
    def stage(self) -> WorkflowStage:
        return WorkflowStage.STORAGE

    def validate(self, run_context: dict[str, Any]) -> None:
        validate_key(run_context["request"].warehouse.warehouse_id, "warehouse_id")

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        warehouse = run_context["request"].warehouse

        reading = {
            "warehouse_id": warehouse.warehouse_id,
            "batch_id": run_context["batch_id"],
            "temperature_celsius": warehouse.temperature_celsius,
            "humidity_percent": warehouse.humidity_percent,
            "storage_duration_days": warehouse.storage_duration_days,
            "timestamp": self.timestamp(run_context),
            "sensor_status": "operational",
        }
        content_id = self.upload_blob(
            run_context, reading, f"warehouse_{warehouse.warehouse_id}.json"
        )

        warehouse_hash = to_hex(hash_string(warehouse.warehouse_id))
        state_hash = content_hash(reading)
        receipt = self.submit(
            run_context,
            LedgerOperation.UPDATE_STATE,
            {"entity_hash": warehouse_hash, "state_hash": state_hash, "content_id": content_id},
        )
        entry = self.append_local(
            run_context,
            "storage-recorded",
            {
                "warehouse_id": warehouse.warehouse_id,
                "warehouse_hash": warehouse_hash,
                "state_hash": state_hash,
                "content_id": content_id,
                "transaction_id": receipt.transaction_id,
            },
        )
        return {
            "transaction_id": receipt.transaction_id,
            "content_id": content_id,
            "state_hash": state_hash,
            "entry_hash": entry.entry_hash,
        }
