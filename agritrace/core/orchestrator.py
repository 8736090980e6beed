"""Workflow orchestrator - drives one batch through the supply chain.

Wires together the Ledger Client, the authoritative ledger, the content
store, the per-key evidence collections and the verification directory,
and runs the stage classes in their fixed order:

    Registration -> Purchase -> Storage -> Transport -> Processing
        -> Packaging -> [Scoring]

Every run is an independent, sequential unit of work; many runs may be in
flight on different threads sharing one orchestrator.  All input is
validated before the first external call.  A collaborator failure aborts
the run with ``WorkflowAbortedError``; stages that already committed stay
committed (at-least-attempted-once, no compensation).
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from agritrace.config import ProdConfig
from agritrace.core.collaborators import (
    AuthoritativeLedger,
    ContentStore,
    LedgerOperation,
    LedgerQuery,
)
from agritrace.core.content_store import EvidenceCollections, FileContentStore, validate_path_component
from agritrace.core.hasher import canonical_json_bytes, content_hash, hash_string, to_hex
from agritrace.core.ledger_client import LedgerClient
from agritrace.core.local_ledger import validate_key
from agritrace.core.recording_ledger import RecordingLedger
from agritrace.core.verification_directory import VerificationDirectory, normalise_identity
from agritrace.models.config import WorkflowConfig
from agritrace.models.ledger import LedgerEntry
from agritrace.models.stages import STAGE_DEFINITIONS
from agritrace.models.workflow import (
    EntityVerification,
    IncidentReport,
    ScoreCommitment,
    ScoringData,
    SkuTraceability,
    WorkflowRequest,
    WorkflowResult,
)
from agritrace.stages import BaseStage, get_stage
from agritrace.stages.scoring import ScoringStage

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def trace_path(request: WorkflowRequest, result: WorkflowResult) -> str:
    """One-line provenance summary of a completed run."""
    path = (
        f"Farmer({request.farmer.identity}) -> Purchase({request.purchase.batch_id})"
        f" -> Warehouse({request.warehouse.warehouse_id})"
        f" -> Transport({request.logistics.shipment_id})"
        f" -> Processing({request.purchase.batch_id})"
        f" -> Packaging({len(result.final_skus)} SKUs)"
    )
    if result.score_commitment is not None:
        path += f" -> Scoring({result.score_commitment.state.value})"
    return path


class SupplyChainOrchestrator:
    """Central workflow orchestrator.

    Parameters
    ----------
    ledger:
        Ledger Client shared by every run.
    authority:
        The authoritative ledger receiving submissions.
    content_store:
        Content-addressed store for single-blob evidence.
    evidence:
        Per-key evidence collections (re-uploaded whole on every write).
    directory:
        Optional verification directory for mobile pre-flight checks and
        content-reference updates.
    config:
        Workflow options.  Defaults to ``WorkflowConfig()``.
    sleep, clock:
        Injectable delay and UTC time sources.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        authority: AuthoritativeLedger,
        content_store: ContentStore,
        evidence: EvidenceCollections,
        directory: VerificationDirectory | None = None,
        *,
        config: WorkflowConfig | None = None,
        sleep: Callable[[float], Any] = time.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.ledger = ledger
        self.authority = authority
        self.content_store = content_store
        self.evidence = evidence
        self.directory = directory
        self.config = config or WorkflowConfig()
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        prod_config: ProdConfig | None = None,
        *,
        authority: AuthoritativeLedger | None = None,
        **kwargs: Any,
    ) -> SupplyChainOrchestrator:
        """Build an orchestrator over the file-backed local collaborators."""
        prod = prod_config or ProdConfig()
        store = FileContentStore(prod.content_store_path)
        return cls(
            LedgerClient.open(prod.ledger_path),
            authority or RecordingLedger(),
            store,
            EvidenceCollections(prod.evidence_path, store),
            VerificationDirectory(prod.directory_path),
            config=prod.workflow_config(),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def _context(
        self,
        *,
        batch_id: str,
        identity: str | None,
        result: WorkflowResult,
        request: WorkflowRequest | None = None,
        config: WorkflowConfig | None = None,
    ) -> dict[str, Any]:
        return {
            "request": request,
            "result": result,
            "ledger": self.ledger,
            "authority": self.authority,
            "content_store": self.content_store,
            "evidence": self.evidence,
            "directory": self.directory,
            "config": config or self.config,
            "sleep": self._sleep,
            "clock": self._clock,
            "batch_id": batch_id,
            "identity": identity,
        }

    def plan(self, request: WorkflowRequest) -> list[BaseStage]:
        """The stages *request* will run, in order.

        Mandatory stages always run; optional ones only when they apply.
        """
        planned: list[BaseStage] = []
        for definition in STAGE_DEFINITIONS:
            stage = get_stage(definition.stage)
            if not definition.optional or stage.applies_to(request):
                planned.append(stage)
        return planned

    def execute(
        self, request: WorkflowRequest, *, auto_reveal: bool | None = None
    ) -> WorkflowResult:
        """Run *request* through every applicable stage.

        Raises ``ValidationError`` before any external call if the input
        is malformed, and ``WorkflowAbortedError`` if a stage fails.
        """
        started = time.monotonic()
        batch_id = request.purchase.batch_id
        identity = normalise_identity(request.farmer.identity)
        config = self.config
        if auto_reveal is not None:
            config = config.model_copy(update={"auto_reveal": auto_reveal})

        result = WorkflowResult(batch_id=batch_id)
        run_context = self._context(
            batch_id=batch_id, identity=identity, result=result, request=request, config=config
        )

        stages = self.plan(request)
        for stage in stages:
            stage.validate(run_context)
        result.summary.total_stages = len(stages)

        logger.info("Starting workflow for batch %s (%d stages)", batch_id, len(stages))
        for number, stage in enumerate(stages, start=1):
            logger.info("Stage %d/%d: %s", number, len(stages), stage.display_name)
            stage.run_stage(run_context)

        result.summary.duration_seconds = time.monotonic() - started
        result.summary.trace_path = trace_path(request, result)
        logger.info(
            "Workflow for %s completed in %.2fs: %d stages, %d transactions, %d uploads",
            batch_id,
            result.summary.duration_seconds,
            result.summary.stages_succeeded,
            result.summary.total_transactions,
            result.summary.total_uploads,
        )
        return result

    # ------------------------------------------------------------------
    # Commit-reveal outside a run
    # ------------------------------------------------------------------

    def commit_score(
        self,
        batch_id: str,
        scoring: ScoringData,
        *,
        associated_identity: str | None = None,
    ) -> ScoreCommitment:
        """Commit a score for *batch_id*; reveal later with ``reveal_score``."""
        validate_path_component(batch_id, "batch_id")
        identity = normalise_identity(associated_identity) if associated_identity else None
        run_context = self._context(
            batch_id=batch_id, identity=identity, result=WorkflowResult(batch_id=batch_id)
        )
        return ScoringStage().commit(run_context, scoring)

    def reveal_score(self, commitment: ScoreCommitment) -> ScoreCommitment:
        """Reveal a pending commitment once ``reveal_not_before`` has passed."""
        run_context = self._context(
            batch_id=commitment.batch_id,
            identity=commitment.associated_identity,
            result=WorkflowResult(batch_id=commitment.batch_id),
        )
        return ScoringStage().reveal(run_context, commitment)

    # ------------------------------------------------------------------
    # Incidents
    # ------------------------------------------------------------------

    def report_incident(
        self,
        sku_id: str,
        evidence: dict[str, Any],
        *,
        batch_id: str | None = None,
    ) -> IncidentReport:
        """Report an incident (e.g. suspected fraud) against a SKU.

        The evidence is stored as one blob and ``report-incident`` is
        submitted.  An ``incident-reported`` entry is filed under
        *batch_id* when given, otherwise under the SKU id.
        """
        validate_key(sku_id, "sku_id")
        business_key = validate_key(batch_id, "batch_id") if batch_id else sku_id

        blob = canonical_json_bytes(evidence)
        content_id = self.content_store.put(blob, f"incident_{sku_id}.json")
        evidence_hash = content_hash(evidence)
        sku_hash = to_hex(hash_string(sku_id))
        receipt = self.authority.submit(
            LedgerOperation.REPORT_INCIDENT,
            {"sku_hash": sku_hash, "evidence_hash": evidence_hash, "content_id": content_id},
        )
        entry = self.ledger.append(
            business_key,
            "incident-reported",
            None,
            {
                "sku_id": sku_id,
                "evidence_hash": evidence_hash,
                "content_id": content_id,
                "transaction_id": receipt.transaction_id,
            },
        )
        logger.warning("Incident reported for SKU %s (evidence=%s)", sku_id, evidence_hash[:18])
        return IncidentReport(
            sku_id=sku_id,
            evidence_hash=evidence_hash,
            content_id=content_id,
            transaction_id=receipt.transaction_id,
            local_entry_hash=entry.entry_hash,
            evidence=json.loads(blob),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def verify_package_origin(self, sku_id: str) -> SkuTraceability:
        sku_hash = to_hex(hash_string(sku_id))
        origin = self.authority.query(LedgerQuery.VERIFY_PACKAGE_ORIGIN, {"sku_hash": sku_hash})
        packaged_at = int(origin.get("packaged_at", 0))
        parent = origin.get("parent_batch_hash", "")
        return SkuTraceability(
            sku_id=sku_id,
            sku_hash=sku_hash,
            parent_batch_hash=parent,
            aggregate_hash=origin.get("aggregate_hash", ""),
            packaged_at=packaged_at,
            verified=packaged_at > 0,
            trace_summary=f"SKU {sku_id} -> Batch {parent} -> Packaged at timestamp {packaged_at}",
        )

    def verify_entity(self, identity: str) -> EntityVerification:
        key = normalise_identity(identity)
        found = self.authority.query(LedgerQuery.VERIFY_ENTITY, {"identity": key})
        return EntityVerification(
            identity=key,
            exists=bool(found.get("exists", False)),
            crop_id_hash=found.get("crop_id_hash", ""),
            registered_at=int(found.get("registered_at", 0)),
        )

    def get_state(self, entity_id: str) -> dict[str, Any]:
        """Latest recorded state for a warehouse (empty if none)."""
        entity_hash = to_hex(hash_string(entity_id))
        return self.authority.query(LedgerQuery.GET_STATE, {"entity_hash": entity_hash})

    def get_score(self, batch_id: str) -> dict[str, Any]:
        batch_hash = to_hex(hash_string(batch_id))
        return self.authority.query(LedgerQuery.GET_SCORE, {"batch_hash": batch_hash})

    def batch_history(self, batch_id: str) -> list[LedgerEntry]:
        return self.ledger.history(batch_id)
