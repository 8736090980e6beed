"""Concurrency façade over the Local Ledger.

All mutating calls go through one writer lane: ``append`` holds the write
side of the lock for the whole read-latest / seal / persist / acknowledge
sequence, so two appends for the same key always chain one after the
other.  Reads share the read side and never overlap a write.  There is no
multi-entry atomicity beyond a single append.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from agritrace.core.local_ledger import LocalLedger
from agritrace.core.rwlock import ReadWriteLock
from agritrace.models.ledger import LedgerEntry, LedgerStats


class LedgerClient:
    """Thread-safe access to a ``LocalLedger``.

    Parameters
    ----------
    ledger:
        The ledger to wrap.  Callers must not touch it directly afterwards.
    """

    def __init__(self, ledger: LocalLedger) -> None:
        self._ledger = ledger
        self._lock = ReadWriteLock()

    @classmethod
    def open(cls, path: Path) -> LedgerClient:
        """Load (or initialise) the ledger at *path* and wrap it."""
        return cls(LocalLedger(path))

    def append(
        self,
        business_key: str,
        category: str,
        associated_identity: str | None,
        payload: dict[str, Any],
    ) -> LedgerEntry:
        with self._lock.write_locked():
            return self._ledger.append(business_key, category, associated_identity, payload)

    def history(self, business_key: str) -> list[LedgerEntry]:
        with self._lock.read_locked():
            return self._ledger.history(business_key)

    def latest(self, business_key: str) -> LedgerEntry | None:
        with self._lock.read_locked():
            return self._ledger.latest(business_key)

    def by_hash(self, entry_hash: str) -> LedgerEntry | None:
        with self._lock.read_locked():
            return self._ledger.by_hash(entry_hash)

    def exists_for_identity(self, associated_identity: str) -> bool:
        with self._lock.read_locked():
            return self._ledger.exists_for_identity(associated_identity)

    def business_keys(self) -> list[str]:
        with self._lock.read_locked():
            return self._ledger.business_keys()

    def stats(self) -> LedgerStats:
        with self._lock.read_locked():
            return self._ledger.stats()

    def verify_chain(self, business_key: str) -> bool:
        with self._lock.read_locked():
            return self._ledger.verify_chain(business_key)
