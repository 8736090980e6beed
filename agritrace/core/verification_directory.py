"""Mobile -> identity verification directory, persisted as a JSON file.

Shared across concurrent workflow runs.  Lookups take the read side of a
reader/writer lock; every mutation holds the write side across
load-mutate-persist, and a failed persist restores the previous record.
"""

from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from agritrace.core.errors import NotFoundError, PersistenceError, ValidationError
from agritrace.core.hasher import parse_digest, to_hex
from agritrace.core.rwlock import ReadWriteLock
from agritrace.models.directory import DirectoryDocument, DirectoryMetadata, IdentityRecord

logger = logging.getLogger(__name__)

_MOBILE_RE = re.compile(r"^\+?[0-9]{6,15}$")


def validate_mobile(mobile: str) -> str:
    if not isinstance(mobile, str) or not _MOBILE_RE.match(mobile):
        raise ValidationError(f"Invalid mobile number: {mobile!r}")
    return mobile


def normalise_identity(identity: str) -> str:
    """Canonical ``0x`` lowercase form of an identity digest."""
    return to_hex(parse_digest(identity, field="identity"))


class VerificationDirectory:
    """In-memory directory backed by a JSON file.

    Parameters
    ----------
    path:
        JSON file to load from and persist to.  A missing or unreadable
        file yields an empty directory (logged as a warning).
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = ReadWriteLock()
        self._mobile_to_identity: dict[str, str] = {}
        self._records: dict[str, IdentityRecord] = {}
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            logger.warning("Verification directory %s not found; starting empty", self._path)
            return
        try:
            document = DirectoryDocument.model_validate_json(
                self._path.read_text(encoding="utf-8")
            )
        except (OSError, PydanticValidationError) as exc:
            logger.warning(
                "Failed to load verification directory %s: %s. Using empty directory.",
                self._path,
                exc,
            )
            return
        for record in document.identities:
            try:
                identity = normalise_identity(record.identity)
            except ValidationError as exc:
                logger.warning("Skipping malformed identity for %s: %s", record.mobile, exc)
                continue
            self._index(record.model_copy(update={"identity": identity}))
        logger.info("Verification directory loaded with %d identities", len(self._records))

    def _index(self, record: IdentityRecord) -> None:
        self._mobile_to_identity[record.mobile] = record.identity
        self._records[record.identity] = record

    def _persist(self) -> None:
        records = list(self._records.values())
        document = DirectoryDocument(
            identities=records,
            metadata=DirectoryMetadata(
                last_updated=datetime.now(timezone.utc).strftime("%Y-%m-%d"),
                total_identities=len(records),
            ),
        )
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(document.model_dump(mode="json"), indent=2), encoding="utf-8"
            )
            os.replace(tmp_path, self._path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Cannot write directory {self._path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def lookup_by_mobile(self, mobile: str) -> IdentityRecord | None:
        with self._lock.read_locked():
            identity = self._mobile_to_identity.get(mobile)
            return self._records.get(identity) if identity else None

    def lookup_by_identity(self, identity: str) -> IdentityRecord | None:
        key = normalise_identity(identity)
        with self._lock.read_locked():
            return self._records.get(key)

    def is_mobile_verified(self, mobile: str) -> bool:
        record = self.lookup_by_mobile(mobile)
        return record is not None and record.verified

    def verify_pair(self, mobile: str, identity: str) -> bool:
        """True iff *mobile* is registered to *identity*."""
        key = normalise_identity(identity)
        with self._lock.read_locked():
            return self._mobile_to_identity.get(mobile) == key

    def total(self) -> int:
        with self._lock.read_locked():
            return len(self._records)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def save(self) -> None:
        """Persist the current directory to its file."""
        with self._lock.write_locked():
            self._persist()

    def add_identity(self, record: IdentityRecord) -> IdentityRecord:
        """Register (or replace) *record* and persist the directory.

        Replacing an identity's record with a new mobile retires the old
        mobile.  Raises ``ValidationError`` if the mobile already belongs to
        a different identity.
        """
        validate_mobile(record.mobile)
        record = record.model_copy(update={"identity": normalise_identity(record.identity)})
        with self._lock.write_locked():
            owner = self._mobile_to_identity.get(record.mobile)
            if owner is not None and owner != record.identity:
                raise ValidationError(
                    f"Mobile number {record.mobile} is already registered to identity {owner}"
                )
            saved_mobiles = dict(self._mobile_to_identity)
            saved_records = dict(self._records)
            previous = self._records.get(record.identity)
            if previous is not None and previous.mobile != record.mobile:
                self._mobile_to_identity.pop(previous.mobile, None)
            self._index(record)
            try:
                self._persist()
            except PersistenceError:
                self._mobile_to_identity = saved_mobiles
                self._records = saved_records
                raise
        logger.info("Registered identity %s for mobile %s", record.identity[:18], record.mobile)
        return record

    def update_content_ref(self, identity_or_mobile: str, content_id: str) -> IdentityRecord:
        """Point a producer's record at *content_id* and persist.

        *identity_or_mobile* is tried as a mobile number first, then as an
        identity digest.  Raises ``NotFoundError`` if neither matches.
        """
        with self._lock.write_locked():
            identity = self._mobile_to_identity.get(identity_or_mobile)
            if identity is None:
                try:
                    identity = normalise_identity(identity_or_mobile)
                except ValidationError:
                    identity = None
            current = self._records.get(identity) if identity else None
            if current is None:
                raise NotFoundError(f"No identity registered for {identity_or_mobile!r}")

            self._records[current.identity] = current.model_copy(update={"content_ref": content_id})
            try:
                self._persist()
            except PersistenceError:
                self._records[current.identity] = current
                raise
            updated = self._records[current.identity]

        logger.info("Updated content ref for %s to %s", updated.identity[:18], content_id)
        return updated
