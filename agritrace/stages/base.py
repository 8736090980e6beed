"""Abstract base stage with an enforced lifecycle.

Every concrete stage inherits from BaseStage and implements ``execute()``
(and usually ``validate()``).  The ``run_stage()`` wrapper is **not
overridable**; it enforces the lifecycle ordering:

    validate -> execute -> record completion

Collaborator and persistence failures raised inside ``execute()`` abort
the run as ``WorkflowAbortedError`` carrying the stage, the business key,
the last completed stage and the partial transaction/upload counts.
Nothing already committed is rolled back.

The ``run_context`` dict carries the run-wide state:

``request``, ``result``
    The ``WorkflowRequest`` and the ``WorkflowResult`` being filled in.
``ledger``, ``authority``, ``content_store``, ``evidence``, ``directory``
    The Ledger Client, the authoritative ledger, the content store, the
    per-key evidence collections and (optionally) the verification
    directory.
``config``, ``sleep``, ``clock``
    ``WorkflowConfig`` plus the injectable delay and time sources.
``batch_id``, ``identity``
    Business key every Local Ledger entry of the run is filed under, and
    the normalised producer identity associated with those entries.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, final

from agritrace.core.collaborators import LedgerOperation, TransactionReceipt
from agritrace.core.errors import CollaboratorError, PersistenceError, WorkflowAbortedError
from agritrace.core.hasher import canonical_json_bytes
from agritrace.models.ledger import LedgerEntry
from agritrace.models.stages import DISPLAY_NAMES, WorkflowStage
from agritrace.models.workflow import WorkflowRequest, WorkflowResult

logger = logging.getLogger(__name__)


class BaseStage(abc.ABC):
    """Abstract base for all pipeline stages.

    Subclasses **must** implement:
        * ``stage`` - the ``WorkflowStage`` this class drives.
        * ``execute(run_context)`` - evidence, hashes, submissions.

    Subclasses **may** override:
        * ``validate(run_context)`` - local checks; must not call out.
        * ``applies_to(request)`` - for optional stages.

    Subclasses **must not** override ``run_stage()``.
    """

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @property
    @abc.abstractmethod
    def stage(self) -> WorkflowStage:
        ...

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self.stage]

    def applies_to(self, request: WorkflowRequest) -> bool:
        return True

    def validate(self, run_context: dict[str, Any]) -> None:
        """Raise ``ValidationError`` if the stage input is malformed."""

    @abc.abstractmethod
    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        """Execute the stage's core logic.

        Returns
        -------
        dict:
            Stage outcome (transaction ids, content ids, derived hashes).
        """
        ...

    # ------------------------------------------------------------------
    # Lifecycle - NOT overridable
    # ------------------------------------------------------------------

    @final
    def run_stage(self, run_context: dict[str, Any]) -> dict[str, Any]:
        """Validate, execute and record one stage.  **Do not override.**"""
        result: WorkflowResult = run_context["result"]
        batch_id: str = run_context["batch_id"]

        self.validate(run_context)
        result.summary.stages_attempted += 1
        logger.info("%s [%s] starting for %s", self.display_name, self.stage.value, batch_id)

        try:
            outcome = self.execute(run_context)
        except (CollaboratorError, PersistenceError) as exc:
            last = result.last_completed_stage
            logger.error(
                "%s [%s] failed for %s after %d transactions: %s",
                self.display_name,
                self.stage.value,
                batch_id,
                result.summary.total_transactions,
                exc,
            )
            raise WorkflowAbortedError(
                self.display_name,
                batch_id,
                last_completed_stage=DISPLAY_NAMES[last] if last else None,
                transactions_so_far=result.summary.total_transactions,
                uploads_so_far=result.summary.total_uploads,
                reason=str(exc),
            ) from exc

        result.completed_stages.append(self.stage)
        result.summary.stages_succeeded += 1
        logger.info(
            "%s [%s] completed: %d transactions, %d uploads so far",
            self.display_name,
            self.stage.value,
            result.summary.total_transactions,
            result.summary.total_uploads,
        )
        return outcome

    # ------------------------------------------------------------------
    # Side-effect helpers; each records into the WorkflowResult
    # ------------------------------------------------------------------

    @final
    def upload_blob(self, run_context: dict[str, Any], document: dict[str, Any], name: str) -> str:
        """Store *document* as a single blob; return its content id."""
        content_id = run_context["content_store"].put(canonical_json_bytes(document), name)
        run_context["result"].record_upload(self.stage, content_id)
        return content_id

    @final
    def upload_evidence(
        self, run_context: dict[str, Any], key: str, filename: str, document: dict[str, Any]
    ) -> str:
        """Add *document* to *key*'s evidence folder; return the folder's new id."""
        content_id = run_context["evidence"].write(key, filename, document)
        run_context["result"].record_upload(self.stage, content_id)
        return content_id

    @final
    def submit(
        self,
        run_context: dict[str, Any],
        operation: LedgerOperation,
        arguments: dict[str, Any],
    ) -> TransactionReceipt:
        receipt = run_context["authority"].submit(operation, arguments)
        run_context["result"].record_transaction(self.stage, receipt.transaction_id)
        return receipt

    @final
    def append_local(
        self, run_context: dict[str, Any], category: str, payload: dict[str, Any]
    ) -> LedgerEntry:
        entry = run_context["ledger"].append(
            run_context["batch_id"], category, run_context.get("identity"), payload
        )
        run_context["result"].local_entry_hashes.append(entry.entry_hash)
        return entry

    @staticmethod
    def timestamp(run_context: dict[str, Any]) -> str:
        return run_context["clock"]().isoformat()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} stage={self.stage.value!r}>"
