"""Interfaces of the external collaborators the orchestrator drives.

Defines the ``AuthoritativeLedger`` and ``ContentStore`` Protocols plus the
operation names and receipt type they exchange.  Implementations report
every failure as ``CollaboratorError``; retry and backoff, if any, belong
inside the implementation, never in the orchestrator.

Reference implementations shipped with the package:
1. ``agritrace.core.recording_ledger.RecordingLedger``: in-process ledger
   double that records submissions and answers read queries.
2. ``agritrace.core.content_store.FileContentStore``: filesystem
   content-addressed store with named collections.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class LedgerOperation(str, Enum):
    """State-changing operations accepted by the authoritative ledger."""

    REGISTER_ENTITY = "register-entity"
    RECORD_PURCHASE = "record-purchase"
    UPDATE_STATE = "update-state"
    RECORD_CHECKPOINT = "record-checkpoint"
    RECORD_TRANSFORM = "record-transform"
    CREATE_PACKAGE = "create-package"
    REPORT_INCIDENT = "report-incident"
    COMMIT_SCORE = "commit-score"
    REVEAL_SCORE = "reveal-score"


class LedgerQuery(str, Enum):
    """Read-only queries against the authoritative ledger."""

    VERIFY_ENTITY = "verify-entity"
    VERIFY_PACKAGE_ORIGIN = "verify-package-origin"
    GET_STATE = "get-state"
    GET_SCORE = "get-score"


class TransactionReceipt(BaseModel):
    """Acknowledgement of one accepted submission."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    operation: LedgerOperation
    submitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


@runtime_checkable
class AuthoritativeLedger(Protocol):
    """Protocol for the authoritative (distributed) ledger.

    ``submit`` blocks until a receipt is available or the submission
    fails.  Arguments are plain JSON values; digests are ``0x`` hex.
    """

    def submit(
        self, operation: LedgerOperation, arguments: dict[str, Any]
    ) -> TransactionReceipt:
        ...

    def query(self, query: LedgerQuery, arguments: dict[str, Any]) -> dict[str, Any]:
        ...


@runtime_checkable
class ContentStore(Protocol):
    """Protocol for the content-addressed evidence store."""

    def put(self, data: bytes, name: str) -> str:
        """Store one blob and return its content identifier."""
        ...

    def put_collection(self, key: str, files: dict[str, bytes]) -> str:
        """Upload the full named collection and return one identifier for it."""
        ...

    def fetch(self, content_id: str) -> bytes:
        ...
