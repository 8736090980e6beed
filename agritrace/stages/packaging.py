"""Stage 6: Packaging - retail SKUs with a per-package aggregate hash.

For package ``n`` the SKU is ``{prefix}-{n:04d}`` and its units are
``{sku}-U001 .. {sku}-U{units:03d}``.  Each package gets one evidence file
in the parent batch's folder and one ``create-package`` submission,
in package-number order.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from agritrace.core.collaborators import LedgerOperation
from agritrace.core.content_store import validate_path_component
from agritrace.core.hasher import aggregate_hash, hash_string, to_hex
from agritrace.models.stages import WorkflowStage
from agritrace.stages.base import BaseStage


def sku_identifier(prefix: str, package_number: int) -> str:
    return f"{prefix}-{package_number:04d}"


def unit_identifiers(sku_id: str, units: int) -> list[str]:
    """Deterministic retail-unit ids for one package, in generation order."""
    return [f"{sku_id}-U{unit:03d}" for unit in range(1, units + 1)]


def packaging_filename(sku_id: str) -> str:
    return f"packaging_{sku_id}.json"


class PackagingStage(BaseStage):
    @property
    def stage(self) -> WorkflowStage:
        return WorkflowStage.PACKAGING

    def validate(self, run_context: dict[str, Any]) -> None:
        packaging = run_context["request"].packaging
        last_sku = sku_identifier(packaging.sku_prefix, packaging.total_packages)
        validate_path_component(packaging.sku_prefix, "sku_prefix")
        validate_path_component(packaging_filename(last_sku), "packaging filename")

    @staticmethod
    def parent_batch(run_context: dict[str, Any]) -> str:
        """First processing output, or the input batch when there is none."""
        outputs = run_context.get("output_batches") or []
        return outputs[0] if outputs else run_context["batch_id"]

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        packaging = run_context["request"].packaging
        result = run_context["result"]
        config = run_context["config"]
        parent = self.parent_batch(run_context)
        parent_hash = to_hex(hash_string(parent))
        expiry = run_context["clock"]() + timedelta(
            days=packaging.expiry_months * config.expiry_days_per_month
        )

        transactions: list[str] = []
        for package_number in range(1, packaging.total_packages + 1):
            sku_id = sku_identifier(packaging.sku_prefix, package_number)
            units = unit_identifiers(sku_id, packaging.units_per_package)

            metadata = {
                "sku_id": sku_id,
                "parent_batch": parent,
                "package_type": packaging.package_type,
                "units_count": packaging.units_per_package,
                "unit_ids": units,
                "expiry_date": expiry.isoformat(),
                "packaging_timestamp": self.timestamp(run_context),
            }
            content_id = self.upload_evidence(
                run_context, parent, packaging_filename(sku_id), metadata
            )

            sku_hash = to_hex(hash_string(sku_id))
            aggregate = to_hex(aggregate_hash(units))
            receipt = self.submit(
                run_context,
                LedgerOperation.CREATE_PACKAGE,
                {
                    "sku_hash": sku_hash,
                    "parent_batch_hash": parent_hash,
                    "aggregate_hash": aggregate,
                    "content_id": content_id,
                },
            )
            self.append_local(
                run_context,
                "package-created",
                {
                    "sku_id": sku_id,
                    "parent_batch": parent,
                    "units_count": len(units),
                    "aggregate_hash": aggregate,
                    "content_id": content_id,
                    "transaction_id": receipt.transaction_id,
                },
            )
            result.package_aggregate_hashes.append(aggregate)
            result.final_skus.append(sku_id)
            transactions.append(receipt.transaction_id)

        return {"transactions": transactions, "parent_batch": parent, "skus": list(result.final_skus)}
