"""Stage 7 (optional): Scoring - quality score published by commit-reveal.

``commit()`` writes the score into the batch's evidence folder, derives
``reveal = hash(score JSON)``, draws a fresh nonce and submits only
``commit(reveal, nonce)``.  The returned ``ScoreCommitment`` is in state
COMMITTED and holds the opening.  ``reveal()`` submits the reveal hash,
the nonce and the evidence content id, moving the commitment to REVEALED.

When run inside a workflow, the stage waits for the configured delay
(through the injectable ``sleep``) and reveals inline unless
``auto_reveal`` is off; the pending commitment is then left on the
result for the caller to reveal later.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from agritrace.core.collaborators import LedgerOperation
from agritrace.core.errors import ValidationError
from agritrace.core.hasher import (
    canonical_json_bytes,
    commit,
    generate_nonce,
    hash_bytes,
    hash_string,
    to_hex,
)
from agritrace.models.stages import ScoreState, WorkflowStage
from agritrace.models.workflow import ScoreCommitment, ScoringData, WorkflowRequest
from agritrace.stages.base import BaseStage

logger = logging.getLogger(__name__)

SCORE_FILENAME = "ai_score.json"


def score_document(batch_id: str, scoring: ScoringData, evaluated_at: datetime) -> dict[str, Any]:
    return {
        "batch_id": batch_id,
        "quality_score": scoring.quality_score,
        "freshness_score": scoring.freshness_score,
        "purity_score": scoring.purity_score,
        "overall_score": scoring.overall_score,
        "model_version": scoring.model_version,
        "evaluation_timestamp": evaluated_at.isoformat(),
    }


class ScoringStage(BaseStage):
    @property
    def stage(self) -> WorkflowStage:
        return WorkflowStage.SCORING

    def applies_to(self, request: WorkflowRequest) -> bool:
        return request.scoring is not None

    def execute(self, run_context: dict[str, Any]) -> dict[str, Any]:
        result = run_context["result"]
        config = run_context["config"]

        commitment = self.commit(run_context, run_context["request"].scoring)
        result.score_commitment = commitment

        if config.auto_reveal:
            remaining = (commitment.reveal_not_before - run_context["clock"]()).total_seconds()
            if remaining > 0:
                logger.info("Waiting %.1fs before revealing score for %s", remaining, commitment.batch_id)
                run_context["sleep"](remaining)
            commitment = self.reveal(run_context, commitment, enforce_delay=False)
            result.score_commitment = commitment

        return {
            "commit_transaction": commitment.commit_transaction,
            "reveal_transaction": commitment.reveal_transaction,
            "content_id": commitment.content_id,
            "state": commitment.state.value,
        }

    # ------------------------------------------------------------------
    # Commit / reveal
    # ------------------------------------------------------------------

    def commit(self, run_context: dict[str, Any], scoring: ScoringData) -> ScoreCommitment:
        batch_id = run_context["batch_id"]
        now = run_context["clock"]()

        document = score_document(batch_id, scoring, now)
        content_id = self.upload_evidence(run_context, batch_id, SCORE_FILENAME, document)

        reveal_hash = hash_bytes(canonical_json_bytes(document))
        nonce = generate_nonce()
        commit_hash = to_hex(commit(reveal_hash, nonce))
        batch_hash = to_hex(hash_string(batch_id))

        receipt = self.submit(
            run_context,
            LedgerOperation.COMMIT_SCORE,
            {"batch_hash": batch_hash, "commit_hash": commit_hash},
        )
        self.append_local(
            run_context,
            "score-committed",
            {
                "batch_hash": batch_hash,
                "commit_hash": commit_hash,
                "transaction_id": receipt.transaction_id,
            },
        )
        logger.info("Committed score for %s (commit=%s)", batch_id, commit_hash[:18])

        return ScoreCommitment(
            batch_id=batch_id,
            batch_hash=batch_hash,
            associated_identity=run_context.get("identity"),
            reveal_hash=to_hex(reveal_hash),
            nonce=to_hex(nonce),
            commit_hash=commit_hash,
            content_id=content_id,
            overall_score=scoring.overall_score,
            commit_transaction=receipt.transaction_id,
            committed_at=now,
            reveal_not_before=now + timedelta(seconds=run_context["config"].reveal_delay_seconds),
        )

    def reveal(
        self,
        run_context: dict[str, Any],
        commitment: ScoreCommitment,
        *,
        enforce_delay: bool = True,
    ) -> ScoreCommitment:
        """Open *commitment* on the authoritative ledger.

        Raises ``ValidationError`` if it is already revealed or, with
        *enforce_delay*, if ``reveal_not_before`` has not been reached.
        """
        if commitment.is_revealed:
            raise ValidationError(f"Score for {commitment.batch_id} is already revealed")
        now = run_context["clock"]()
        if enforce_delay and now < commitment.reveal_not_before:
            raise ValidationError(
                f"Score for {commitment.batch_id} cannot be revealed before "
                f"{commitment.reveal_not_before.isoformat()}"
            )

        receipt = self.submit(
            run_context,
            LedgerOperation.REVEAL_SCORE,
            {
                "batch_hash": commitment.batch_hash,
                "reveal_hash": commitment.reveal_hash,
                "nonce": commitment.nonce,
                "content_id": commitment.content_id,
            },
        )
        self.append_local(
            run_context,
            "score-revealed",
            {
                "batch_hash": commitment.batch_hash,
                "reveal_hash": commitment.reveal_hash,
                "nonce": commitment.nonce,
                "overall_score": commitment.overall_score,
                "content_id": commitment.content_id,
                "transaction_id": receipt.transaction_id,
            },
        )
        logger.info("Revealed score for %s", commitment.batch_id)

        return commitment.model_copy(
            update={
                "state": ScoreState.REVEALED,
                "reveal_transaction": receipt.transaction_id,
                "revealed_at": now,
            }
        )
