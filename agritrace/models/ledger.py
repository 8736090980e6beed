"""Local Ledger entry model: append-only, version-chained per business key.

- Append-only (no update, no delete)
- Hash-linked per business key (``predecessor_hash`` -> previous ``entry_hash``)
- Versioned (1 for the first entry under a key, +1 for each later one)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LedgerEntry(BaseModel):
    """A single immutable event recorded under a business key."""

    model_config = ConfigDict(frozen=True)

    entry_id: str
    predecessor_hash: str | None = None  # entry_hash of version - 1, None at version 1
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    category: str  # e.g. "purchase-recorded"
    business_key: str  # e.g. a batch id; shared by every version
    associated_identity: str | None = None  # indexed, never used for access control
    payload: dict[str, Any] = Field(default_factory=dict)
    version: int = 1
    entry_hash: str = ""  # computed at append time, seals this entry


class LedgerStats(BaseModel):
    """Summary counters for the whole ledger."""

    model_config = ConfigDict(frozen=True)

    entry_count: int
    distinct_key_count: int
    distinct_identity_count: int
    last_entry_time: datetime | None = None
    ledger_path: str = ""


class LedgerSnapshot(BaseModel):
    """Durable representation: full entry sequence plus the key index."""

    entries: list[LedgerEntry] = Field(default_factory=list)
    key_index: dict[str, list[str]] = Field(default_factory=dict)
