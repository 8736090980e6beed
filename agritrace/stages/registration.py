"""Stage 1: Registration - register the producer and its crop.

Uploads the producer's metadata as one blob, submits ``register-entity``
with the identity digest and the crop-id hash, and records
``farmer-registered`` in the Local Ledger.  On success the verification
directory is pointed at the new metadata.
"""

from __future__ import annotations

import logging
from typing import Any

from agritrace.core.collaborators import LedgerOperation
from agritrace.core.errors import NotFoundError, PersistenceError, ValidationError
from agritrace.core.hasher import hash_string, to_hex
from agritrace.core.local_ledger import validate_key
from agritrace.core.verification_directory import normalise_identity, validate_mobile
from agritrace.models.stages import WorkflowStage
from agritrace.stages.base import BaseStage

logger = logging.getLogger(__name__)


class RegistrationStage(BaseStage):
    """Register the producer identity on the authoritative ledger."""

    @property
    def stage(self) -> WorkflowStage:
        return WorkflowStage.REGISTRATION

    def validate(self, run_context: dict[str, Any]) -> None:
        farmer = run_context["request"].farmer
        normalise_identity(farmer.identity)
        validate_key(farmer.crop_id, "crop_id")

        if farmer.mobile is None:
            return
        validate_mobile(farmer.mobile)
        directory = run_context.get("directory")
        if directory is None:
            raise ValidationError(
                f"Mobile {farmer.mobile} supplied but no verification directory is configured"
            )
        if not directory.is_mobile_verified(farmer.mobile):
            raise ValidationError(
                f"Mobile number {farmer.mobile} is not verified. Please register first."
            )
        if not directory.verify_pair(farmer.mobile, farmer.identity):
            raise ValidationError(
                f"Mobile number {farmer.mobile} is not registered to identity {farmer.identity}"
            )

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        farmer = run_context["request"].farmer
        identity = run_context["identity"]

        metadata = {
            "name": farmer.name,
            "location": farmer.location,
            "land_area": farmer.land_area,
            "crops": list(farmer.crops),
            "contact": farmer.contact,
            "registration_timestamp": self.timestamp(run_context),
        }
        content_id = self.upload_blob(run_context, metadata, f"farmer_{identity[2:18]}.json")

        crop_id_hash = to_hex(hash_string(farmer.crop_id))
        receipt = self.submit(
            run_context,
            LedgerOperation.REGISTER_ENTITY,
            {"identity": identity, "crop_id_hash": crop_id_hash, "content_id": content_id},
        )
        entry = self.append_local(
            run_context,
            "farmer-registered",
            {
                "identity": identity,
                "crop_id_hash": crop_id_hash,
                "content_id": content_id,
                "transaction_id": receipt.transaction_id,
            },
        )

        if run_context["config"].update_directory_ref:
            self._update_directory(run_context, farmer.mobile or identity, content_id)

        return {
            "transaction_id": receipt.transaction_id,
            "content_id": content_id,
            "crop_id_hash": crop_id_hash,
            "entry_hash": entry.entry_hash,
        }

    def _update_directory(self, run_context: dict[str, Any], key: str, content_id: str) -> None:
        directory = run_context.get("directory")
        if directory is None:
            return
        try:
            directory.update_content_ref(key, content_id)
        except NotFoundError:
            logger.warning("Identity %s not in verification directory; content ref not updated", key)
        except PersistenceError as exc:
            logger.error("Failed to update verification directory for %s: %s", key, exc)
