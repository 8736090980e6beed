"""In-process authoritative ledger that records submissions.

``RecordingLedger`` satisfies the ``AuthoritativeLedger`` Protocol without
a network.  It assigns deterministic transaction ids, keeps every
submission in order, and answers the read-only queries by looking up what
was submitted.  It does not enforce the contract's roles or stage rules;
the only check it performs is that a revealed score opens the earlier
commitment.

Used by the CLI's offline mode and by the test suite.
"""

from __future__ import annotations

import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agritrace.core.collaborators import LedgerOperation, LedgerQuery, TransactionReceipt
from agritrace.core.errors import CollaboratorError, ValidationError
from agritrace.core.hasher import commit, content_hash, parse_digest, to_hex

logger = logging.getLogger(__name__)


class Submission(BaseModel):
    """One accepted submission, in arrival order."""

    model_config = ConfigDict(frozen=True)

    sequence: int
    transaction_id: str
    operation: LedgerOperation
    arguments: dict[str, Any] = Field(default_factory=dict)
    submitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class RecordingLedger:
    """Authoritative ledger double.

    Parameters
    ----------
    fail_on:
        Operations that should be rejected with ``CollaboratorError``.
        Lets callers rehearse partial-failure handling.
    """

    def __init__(self, fail_on: set[LedgerOperation] | None = None) -> None:
        self._fail_on = set(fail_on or ())
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._submissions: list[Submission] = []
        self._entities: dict[str, dict[str, Any]] = {}
        self._packages: dict[str, dict[str, Any]] = {}
        self._states: dict[str, dict[str, Any]] = {}
        self._scores: dict[str, dict[str, Any]] = {}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def submit(
        self, operation: LedgerOperation, arguments: dict[str, Any]
    ) -> TransactionReceipt:
        operation = LedgerOperation(operation)
        if operation in self._fail_on:
            raise CollaboratorError(
                f"Authoritative ledger rejected {operation.value}",
                collaborator="ledger",
                operation=operation.value,
            )
        with self._lock:
            sequence = next(self._sequence)
            transaction_id = content_hash(
                {"sequence": sequence, "operation": operation.value, "arguments": arguments}
            )
            submission = Submission(
                sequence=sequence,
                transaction_id=transaction_id,
                operation=operation,
                arguments=dict(arguments),
            )
            self._index(submission)
            self._submissions.append(submission)

        logger.info("Submitted %s (tx=%s)", operation.value, transaction_id[:18])
        return TransactionReceipt(
            transaction_id=transaction_id,
            operation=operation,
            submitted_at=submission.submitted_at,
        )

    def _index(self, submission: Submission) -> None:
        args = submission.arguments
        ts = int(submission.submitted_at.timestamp())
        op = submission.operation
        if op is LedgerOperation.REGISTER_ENTITY:
            self._entities[args["identity"]] = {
                "crop_id_hash": args.get("crop_id_hash", ""),
                "registered_at": ts,
            }
        elif op is LedgerOperation.UPDATE_STATE:
            self._states[args["entity_hash"]] = {
                "state_hash": args.get("state_hash", ""),
                "content_id": args.get("content_id", ""),
                "updated_at": ts,
            }
        elif op is LedgerOperation.CREATE_PACKAGE:
            self._packages[args["sku_hash"]] = {
                "parent_batch_hash": args.get("parent_batch_hash", ""),
                "aggregate_hash": args.get("aggregate_hash", ""),
                "packaged_at": ts,
            }
        elif op is LedgerOperation.COMMIT_SCORE:
            self._scores[args["batch_hash"]] = {
                "commit_hash": args["commit_hash"],
                "committed_at": ts,
                "revealed": False,
            }
        elif op is LedgerOperation.REVEAL_SCORE:
            self._check_reveal(args)
            self._scores[args["batch_hash"]].update(
                revealed=True,
                reveal_hash=args["reveal_hash"],
                content_id=args.get("content_id", ""),
                revealed_at=ts,
            )

    def _check_reveal(self, args: dict[str, Any]) -> None:
        record = self._scores.get(args["batch_hash"])
        if record is None:
            raise CollaboratorError(
                "reveal-score without a prior commitment",
                collaborator="ledger",
                operation=LedgerOperation.REVEAL_SCORE.value,
            )
        try:
            opened = commit(
                parse_digest(args["reveal_hash"], field="reveal_hash"),
                parse_digest(args["nonce"], field="nonce"),
            )
        except ValidationError as exc:
            raise CollaboratorError(
                str(exc), collaborator="ledger", operation=LedgerOperation.REVEAL_SCORE.value
            ) from exc
        if to_hex(opened) != record["commit_hash"]:
            raise CollaboratorError(
                "revealed score does not open the commitment",
                collaborator="ledger",
                operation=LedgerOperation.REVEAL_SCORE.value,
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def query(self, query: LedgerQuery, arguments: dict[str, Any]) -> dict[str, Any]:
        query = LedgerQuery(query)
        with self._lock:
            if query is LedgerQuery.VERIFY_ENTITY:
                record = self._entities.get(arguments["identity"])
                return {
                    "exists": record is not None,
                    "crop_id_hash": record["crop_id_hash"] if record else "",
                    "registered_at": record["registered_at"] if record else 0,
                }
            if query is LedgerQuery.VERIFY_PACKAGE_ORIGIN:
                record = self._packages.get(arguments["sku_hash"])
                return dict(record) if record else {
                    "parent_batch_hash": "",
                    "aggregate_hash": "",
                    "packaged_at": 0,
                }
            if query is LedgerQuery.GET_STATE:
                return dict(self._states.get(arguments["entity_hash"], {}))
            return dict(self._scores.get(arguments["batch_hash"], {}))

    def submissions(self, operation: LedgerOperation | None = None) -> list[Submission]:
        with self._lock:
            return [
                s for s in self._submissions if operation is None or s.operation is operation
            ]
