"""Append-only, version-chained Local Ledger persisted as one JSON document.

The Local Ledger is the per-batch source of truth kept next to the
authoritative ledger.  Every business key owns a singly linked chain of
entries; the canonical state is the ordered entry sequence and the two
lookup indices are derived from it.

Design:
- Append-only: only ``append()`` writes; there is no update or delete.
- Version-chained: entry *v* carries the ``entry_hash`` of entry *v-1*
  for the same key as its ``predecessor_hash``.
- Reads and appends hand out deep copies; stored entries are never
  shared with callers.
- Write-through: every append rewrites the full snapshot (temp file,
  fsync, atomic rename) before it is acknowledged.  A failed write rolls
  the in-memory append back.

This class is not thread-safe on its own; share it through
``LedgerClient``.
"""

from __future__ import annotations

import itertools
import json
import logging
import os
import time
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from agritrace.core.errors import LedgerIntegrityError, PersistenceError, ValidationError
from agritrace.core.hasher import canonical_json_bytes, compute_entry_hash
from agritrace.models.ledger import LedgerEntry, LedgerSnapshot, LedgerStats

logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 128


def validate_key(value: Any, field: str) -> str:
    """Reject empty, oversized or control-character keys."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be a non-empty string")
    if len(value) > MAX_KEY_LENGTH:
        raise ValidationError(f"{field} exceeds {MAX_KEY_LENGTH} characters")
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in value):
        raise ValidationError(f"{field} contains control characters")
    return value


class LocalLedger:
    """In-process, file-persisted ledger of immutable entries.

    Parameters
    ----------
    path:
        Path to the JSON ledger file.  Loaded if present, created on the
        first append otherwise.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._entries: list[LedgerEntry] = []
        self._key_index: dict[str, list[str]] = {}
        self._hash_index: dict[str, LedgerEntry] = {}
        self._identity_counts: dict[str, int] = {}
        self._entry_ids: set[str] = set()
        self._sequence = itertools.count(1)
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Load / persist
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Load the snapshot from disk and rebuild every index.

        Raises ``PersistenceError`` if the file cannot be read or parsed and
        ``LedgerIntegrityError`` if the stored key index disagrees with the
        entry sequence.
        """
        self._entries = []
        self._key_index = {}
        self._hash_index = {}
        self._identity_counts = {}
        self._entry_ids = set()

        if not self._path.exists():
            logger.info("No ledger at %s; starting empty", self._path)
            return

        try:
            snapshot = LedgerSnapshot.model_validate_json(
                self._path.read_text(encoding="utf-8")
            )
        except (OSError, PydanticValidationError) as exc:
            raise PersistenceError(f"Cannot load ledger {self._path}: {exc}") from exc

        for entry in snapshot.entries:
            if entry.entry_hash in self._hash_index:
                raise LedgerIntegrityError(
                    f"Duplicate entry_hash {entry.entry_hash!r} in {self._path}"
                )
            self._apply(entry)

        if snapshot.key_index != self._key_index:
            raise LedgerIntegrityError(
                f"Stored key index in {self._path} does not match its entry sequence"
            )
        logger.info("Loaded ledger with %d entries from %s", len(self._entries), self._path)

    def _persist(self) -> None:
        """Rewrite the full snapshot atomically."""
        snapshot = {
            "entries": [entry.model_dump(mode="json") for entry in self._entries],
            "key_index": self._key_index,
        }
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            content = json.dumps(snapshot, indent=2)
            with tmp_path.open("w", encoding="utf-8") as fh:
                fh.write(content)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self._path)
        except (OSError, TypeError, ValueError) as exc:
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Cannot write ledger {self._path}: {exc}") from exc
        logger.debug("Saved ledger with %d entries to %s", len(self._entries), self._path)

    # ------------------------------------------------------------------
    # Core: append-only write
    # ------------------------------------------------------------------

    def append(
        self,
        business_key: str,
        category: str,
        associated_identity: str | None,
        payload: dict[str, Any],
    ) -> LedgerEntry:
        """Seal and durably append a new entry for *business_key*.

        The version and predecessor come from the current latest entry for
        the key.  Returns the sealed entry once it is on disk.
        """
        validate_key(business_key, "business_key")
        validate_key(category, "category")
        if associated_identity is not None:
            validate_key(associated_identity, "associated_identity")
        if not isinstance(payload, dict):
            raise ValidationError("payload must be a JSON object")
        try:
            # Normalise through JSON so the stored payload re-hashes identically after reload
            normalised = json.loads(canonical_json_bytes(payload))
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"payload is not JSON-serialisable: {exc}") from exc

        previous = self.latest(business_key)
        unsealed = LedgerEntry(
            entry_id=self._next_entry_id(),
            predecessor_hash=previous.entry_hash if previous else None,
            category=category,
            business_key=business_key,
            associated_identity=associated_identity,
            payload=normalised,
            version=previous.version + 1 if previous else 1,
        )
        entry_hash = compute_entry_hash(unsealed.model_dump(mode="json"))
        sealed = unsealed.model_copy(update={"entry_hash": entry_hash})

        self._apply(sealed)
        try:
            self._persist()
        except PersistenceError:
            self._unapply(sealed)
            logger.error(
                "Append for %s rolled back: ledger could not be persisted", business_key
            )
            raise

        logger.info(
            "Appended %s v%d for %s (hash=%s, total=%d)",
            category,
            sealed.version,
            business_key,
            entry_hash[:18],
            len(self._entries),
        )
        return sealed.model_copy(deep=True)

    def _next_entry_id(self) -> str:
        while True:
            entry_id = f"ENT_{time.time_ns()}_{next(self._sequence):06d}"
            if entry_id not in self._entry_ids:
                return entry_id

    def _apply(self, entry: LedgerEntry) -> None:
        self._entries.append(entry)
        self._entry_ids.add(entry.entry_id)
        self._key_index.setdefault(entry.business_key, []).append(entry.entry_hash)
        self._hash_index[entry.entry_hash] = entry
        if entry.associated_identity is not None:
            identity = entry.associated_identity
            self._identity_counts[identity] = self._identity_counts.get(identity, 0) + 1

    def _unapply(self, entry: LedgerEntry) -> None:
        self._entries.pop()
        self._entry_ids.discard(entry.entry_id)
        hashes = self._key_index[entry.business_key]
        hashes.pop()
        if not hashes:
            del self._key_index[entry.business_key]
        del self._hash_index[entry.entry_hash]
        if entry.associated_identity is not None:
            identity = entry.associated_identity
            self._identity_counts[identity] -= 1
            if not self._identity_counts[identity]:
                del self._identity_counts[identity]

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def history(self, business_key: str) -> list[LedgerEntry]:
        """All entries for *business_key* in increasing version order."""
        return [
            self._hash_index[h].model_copy(deep=True)
            for h in self._key_index.get(business_key, [])
        ]

    def latest(self, business_key: str) -> LedgerEntry | None:
        """The highest-version entry for *business_key*, or None."""
        hashes = self._key_index.get(business_key)
        return self._hash_index[hashes[-1]].model_copy(deep=True) if hashes else None

    def by_hash(self, entry_hash: str) -> LedgerEntry | None:
        entry = self._hash_index.get(entry_hash)
        return entry.model_copy(deep=True) if entry else None

    def exists_for_identity(self, associated_identity: str) -> bool:
        return associated_identity in self._identity_counts

    def business_keys(self) -> list[str]:
        return list(self._key_index)

    def stats(self) -> LedgerStats:
        return LedgerStats(
            entry_count=len(self._entries),
            distinct_key_count=len(self._key_index),
            distinct_identity_count=len(self._identity_counts),
            last_entry_time=self._entries[-1].created_at if self._entries else None,
            ledger_path=str(self._path),
        )

    # ------------------------------------------------------------------
    # Chain verification
    # ------------------------------------------------------------------

    def verify_chain(self, business_key: str) -> bool:
        """Verify versions, predecessor links and hashes for one key.

        Returns True if the chain is valid, raises LedgerIntegrityError otherwise.
        """
        predecessor: str | None = None
        for expected_version, entry in enumerate(self.history(business_key), start=1):
            if entry.version != expected_version:
                raise LedgerIntegrityError(
                    f"Version gap at entry {entry.entry_id}: "
                    f"expected v{expected_version}, got v{entry.version}"
                )
            if entry.predecessor_hash != predecessor:
                raise LedgerIntegrityError(
                    f"Chain broken at entry {entry.entry_id}: "
                    f"expected predecessor={predecessor!r}, got {entry.predecessor_hash!r}"
                )
            expected_hash = compute_entry_hash(entry.model_dump(mode="json"))
            if entry.entry_hash != expected_hash:
                raise LedgerIntegrityError(
                    f"Tampered entry {entry.entry_id}: "
                    f"expected hash={expected_hash!r}, got {entry.entry_hash!r}"
                )
            predecessor = entry.entry_hash
        return True
