"""Stage 5: Processing - transform the raw batch into output products."""

from __future__ import annotations

from typing import Any

from agritrace.core.collaborators import LedgerOperation
from agritrace.core.content_store import validate_path_component
from agritrace.core.hasher import content_hash, hash_string, to_hex
from agritrace.models.stages import WorkflowStage
from agritrace.stages.base import BaseStage

PROCESSING_FILENAME = "processing.json"


class ProcessingStage(BaseStage):
    """Record the transform and expose the output ids to Packaging.

    The output product ids are left in ``run_context["output_batches"]``;
    Packaging files its evidence under the first one.
    """

    @property
    def stage(self) -> WorkflowStage:
        return WorkflowStage.PROCESSING

    def validate(self, run_context: dict[str, Any]) -> None:
        for product in run_context["request"].processing.output_products:
            validate_path_component(product.product_id, "product_id")

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        processing = run_context["request"].processing
        batch_id = run_context["batch_id"]

        metadata = {
            "input_batch_id": batch_id,
            "process_type": processing.process_type,
            "yield_percentage": processing.yield_percentage,
            "outputs": [p.model_dump(mode="json") for p in processing.output_products],
            "processing_timestamp": self.timestamp(run_context),
        }
        content_id = self.upload_evidence(run_context, batch_id, PROCESSING_FILENAME, metadata)

        input_hash = to_hex(hash_string(batch_id))
        output_hashes = [
            to_hex(hash_string(p.product_id)) for p in processing.output_products
        ]
        transform_hash = content_hash(metadata)
        receipt = self.submit(
            run_context,
            LedgerOperation.RECORD_TRANSFORM,
            {
                "input_hash": input_hash,
                "transform_hash": transform_hash,
                "output_hashes": output_hashes,
                "content_id": content_id,
            },
        )
        entry = self.append_local(
            run_context,
            "batch-processed",
            {
                "process_type": processing.process_type,
                "transform_hash": transform_hash,
                "output_ids": [p.product_id for p in processing.output_products],
                "content_id": content_id,
                "transaction_id": receipt.transaction_id,
            },
        )

        output_ids = [p.product_id for p in processing.output_products]
        run_context["output_batches"] = output_ids
        return {
            "transaction_id": receipt.transaction_id,
            "content_id": content_id,
            "transform_hash": transform_hash,
            "output_ids": output_ids,
            "entry_hash": entry.entry_hash,
        }
