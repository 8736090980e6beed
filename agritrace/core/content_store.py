"""Content-addressed evidence storage and per-key evidence collections.

Storage layout: {base_path}/{sha256[0:2]}/{sha256[2:4]}/{sha256}.dat
Collection pointers: {base_path}/collections/{key}.json
No delete method: blobs are immutable once stored.

``EvidenceCollections`` keeps a working folder per business key.  Each
write adds one file and re-uploads the whole folder, so there is always a
single content identifier per key covering all evidence gathered so far.
Re-sending earlier files on every write is the accepted cost of that.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any

from agritrace.core.collaborators import ContentStore
from agritrace.core.errors import CollaboratorError, ValidationError
from agritrace.core.hasher import canonical_json_bytes, hash_bytes
from agritrace.core.local_ledger import validate_key

logger = logging.getLogger(__name__)

CONTENT_ID_PREFIX = "sha256:"


def validate_path_component(value: str, field: str) -> str:
    """A key or file name that can be used as a single path component."""
    validate_key(value, field)
    if "/" in value or "\\" in value or value in (".", "..") or value.startswith("."):
        raise ValidationError(f"{field} {value!r} is not a valid path component")
    return value


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write *data* to a hidden temp file beside *path*, then rename it over *path*."""
    tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        with tmp_path.open("wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


class FileContentStore:
    """SHA-256 keyed, immutable blob store with named collections.

    Storing the same content twice is a no-op.  A collection is stored as
    a manifest blob mapping file names to blob identifiers; its identifier
    changes whenever any member changes.

    Parameters
    ----------
    base_path:
        Root directory for blob storage.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)
        self._collections_dir = self._base / "collections"
        self._collections_dir.mkdir(exist_ok=True)

    @staticmethod
    def _extract_digest(content_id: str) -> str:
        return content_id.removeprefix(CONTENT_ID_PREFIX)

    def _blob_path(self, digest: str) -> Path:
        return self._base / digest[:2] / digest[2:4] / f"{digest}.dat"

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def put(self, data: bytes, name: str = "") -> str:
        """Store *data* and return its content identifier."""
        digest = hash_bytes(data).hex()
        path = self._blob_path(digest)
        try:
            if not path.exists():
                path.parent.mkdir(parents=True, exist_ok=True)
                atomic_write_bytes(path, data)
        except OSError as exc:
            raise CollaboratorError(
                f"Content store write failed for {name or digest[:16]}: {exc}",
                collaborator="content",
                operation="put",
            ) from exc
        logger.debug("Stored %s (%d bytes) as %s", name or "blob", len(data), digest[:16])
        return f"{CONTENT_ID_PREFIX}{digest}"

    def put_collection(self, key: str, files: dict[str, bytes]) -> str:
        """Store every member plus a manifest; return the manifest's identifier."""
        validate_path_component(key, "collection key")
        manifest = {
            "key": key,
            "files": {name: self.put(data, name) for name, data in sorted(files.items())},
        }
        content_id = self.put(canonical_json_bytes(manifest), f"{key}/manifest")
        pointer = self._collections_dir / f"{key}.json"
        try:
            atomic_write_bytes(pointer, json.dumps({"content_id": content_id}).encode("utf-8"))
        except OSError as exc:
            raise CollaboratorError(
                f"Content store could not update collection {key!r}: {exc}",
                collaborator="content",
                operation="put_collection",
            ) from exc
        logger.info("Collection %s now %s (%d files)", key, content_id[:23], len(files))
        return content_id

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def fetch(self, content_id: str) -> bytes:
        """Return the stored bytes for *content_id*."""
        path = self._blob_path(self._extract_digest(content_id))
        try:
            return path.read_bytes()
        except OSError as exc:
            raise CollaboratorError(
                f"Content not found: {content_id}",
                collaborator="content",
                operation="fetch",
            ) from exc

    def fetch_collection(self, content_id: str) -> dict[str, bytes]:
        """Resolve a collection manifest into its member files."""
        manifest = json.loads(self.fetch(content_id))
        return {name: self.fetch(member) for name, member in manifest["files"].items()}

    def latest_collection(self, key: str) -> str | None:
        """The current identifier for collection *key*, or None."""
        pointer = self._collections_dir / f"{validate_path_component(key, 'collection key')}.json"
        if not pointer.exists():
            return None
        return json.loads(pointer.read_text(encoding="utf-8"))["content_id"]

    def exists(self, content_id: str) -> bool:
        return self._blob_path(self._extract_digest(content_id)).exists()

    def verify(self, content_id: str) -> bool:
        """Re-hash stored data and compare against the identifier."""
        digest = self._extract_digest(content_id)
        path = self._blob_path(digest)
        if not path.exists():
            return False
        return hash_bytes(path.read_bytes()).hex() == digest


class EvidenceCollections:
    """Per-key evidence folders that are re-uploaded as a whole on each write.

    Parameters
    ----------
    root:
        Working directory holding one sub-folder per business key.
    store:
        The content store receiving ``put_collection`` uploads.
    """

    def __init__(self, root: Path, store: ContentStore) -> None:
        self._root = Path(root)
        self._store = store

    def folder(self, key: str) -> Path:
        return self._root / validate_path_component(key, "business_key")

    def write(self, key: str, filename: str, document: dict[str, Any]) -> str:
        """Add *document* as *filename* under *key* and re-upload the folder.

        Returns the content identifier that now represents the whole folder.
        """
        folder = self.folder(key)
        validate_path_component(filename, "filename")
        try:
            folder.mkdir(parents=True, exist_ok=True)
            atomic_write_bytes(folder / filename, json.dumps(document, indent=2).encode("utf-8"))
            files = {
                path.name: path.read_bytes()
                for path in sorted(folder.iterdir())
                if path.is_file() and not path.name.startswith(".")
            }
        except OSError as exc:
            raise CollaboratorError(
                f"Cannot write evidence {filename} for {key!r}: {exc}",
                collaborator="content",
                operation="write_collection",
            ) from exc
        return self._store.put_collection(key, files)

    def files(self, key: str) -> list[str]:
        folder = self.folder(key)
        if not folder.exists():
            return []
        return sorted(
            p.name for p in folder.iterdir() if p.is_file() and not p.name.startswith(".")
        )
