"""Error taxonomy shared by the ledger, the collaborators and the orchestrator.

- ``ValidationError``: malformed input, raised before anything is mutated
  or any external call is made.
- ``PersistenceError``: the Local Ledger (or the directory) could not be
  written durably; in-memory state has been rolled back.
- ``CollaboratorError``: the authoritative ledger or the content store
  failed.  Already-committed stages are not rolled back.
- ``NotFoundError``: reserved for callers that want an error instead of an
  absent result.  Read operations in this package return ``None`` or ``[]``.
"""

from __future__ import annotations


class AgriTraceError(RuntimeError):
    """Base class for every error raised by agritrace."""


class ValidationError(AgriTraceError, ValueError):
    """Raised when an input is malformed (business key, identity, digest)."""


class PersistenceError(AgriTraceError):
    """Raised when durable storage cannot be written."""


class CollaboratorError(AgriTraceError):
    """Raised when an external collaborator call fails.

    Parameters
    ----------
    collaborator:
        Short name of the failing collaborator (``"ledger"``, ``"content"``).
    operation:
        The operation that was attempted.
    """

    def __init__(self, message: str, *, collaborator: str = "", operation: str = "") -> None:
        super().__init__(message)
        self.collaborator = collaborator
        self.operation = operation


class NotFoundError(AgriTraceError, LookupError):
    """Raised when a caller explicitly requires a key that does not exist."""


class LedgerIntegrityError(AgriTraceError):
    """Raised when a hash chain or a ledger index is inconsistent."""


class WorkflowAbortedError(AgriTraceError):
    """Raised when a workflow run stops at a failing stage.

    Carries enough context for the caller to reconcile: the failing stage,
    the business key, the last stage that completed, and how many
    transactions and uploads had already landed.
    """

    def __init__(
        self,
        stage: str,
        business_key: str,
        *,
        last_completed_stage: str | None,
        transactions_so_far: int,
        uploads_so_far: int,
        reason: str = "",
    ) -> None:
        self.stage = stage
        self.business_key = business_key
        self.last_completed_stage = last_completed_stage
        self.transactions_so_far = transactions_so_far
        self.uploads_so_far = uploads_so_far
        self.reason = reason
        super().__init__(
            f"Workflow for {business_key!r} aborted at stage {stage}"
            f" (last completed: {last_completed_stage or 'none'},"
            f" {transactions_so_far} transactions, {uploads_so_far} uploads"
            f" already performed): {reason}"
        )
