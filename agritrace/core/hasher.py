"""Canonical hashing helpers: digests, commitments and content hashes.

Every digest is a 32-byte SHA-256 value.  On the wire and in ledger
payloads digests are written as ``0x``-prefixed lowercase hex.
"""

from __future__ import annotations

import hashlib
import json
import secrets
from collections.abc import Iterable
from typing import Any

from agritrace.core.errors import ValidationError

DIGEST_SIZE = 32


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes: sorted keys, compact, ASCII, UTF-8."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def hash_bytes(data: bytes) -> bytes:
    """Return the 32-byte digest of *data*."""
    return hashlib.sha256(data).digest()


def hash_string(text: str) -> bytes:
    """Return the digest of the UTF-8 encoding of *text*."""
    return hash_bytes(text.encode("utf-8"))


def to_hex(digest: bytes) -> str:
    """Format a digest as ``0x<hex>``."""
    return "0x" + digest.hex()


def parse_digest(text: str, *, field: str = "digest") -> bytes:
    """Parse a ``0x``-prefixed (or bare) 64-char hex string into 32 bytes.

    Raises ``ValidationError`` naming *field* when the input is malformed.
    """
    if not isinstance(text, str):
        raise ValidationError(f"Invalid {field}: expected a hex string, got {type(text).__name__}")
    raw = text[2:] if text[:2].lower() == "0x" else text
    if len(raw) != DIGEST_SIZE * 2:
        raise ValidationError(
            f"Invalid {field}: expected {DIGEST_SIZE * 2} hex characters, got {len(raw)}"
        )
    try:
        return bytes.fromhex(raw)
    except ValueError as exc:
        raise ValidationError(f"Invalid {field}: {exc}") from exc


def commit(reveal: bytes, nonce: bytes) -> bytes:
    """Commitment over a revealed digest: ``hash(reveal || nonce)``.

    Binding as long as the hash is collision resistant; hiding only while
    ``reveal || nonce`` cannot be guessed, so *nonce* must be random.
    """
    for name, value in (("reveal", reveal), ("nonce", nonce)):
        if len(value) != DIGEST_SIZE:
            raise ValidationError(
                f"Invalid {name}: expected {DIGEST_SIZE} bytes, got {len(value)}"
            )
    return hash_bytes(reveal + nonce)


def generate_nonce() -> bytes:
    """Fresh 32-byte random nonce for a commitment."""
    return secrets.token_bytes(DIGEST_SIZE)


def aggregate_hash(identifiers: Iterable[str]) -> bytes:
    """Merkle-style aggregate over an ordered list of identifiers.

    Each identifier is hashed, the leaf digests are concatenated in the
    given order, and the concatenation is hashed once more.  This is a
    batch fingerprint, not a tree with inclusion proofs.
    """
    leaves = b"".join(hash_string(identifier) for identifier in identifiers)
    return hash_bytes(leaves)


def content_hash(obj: Any) -> str:
    """``0x``-hex digest of the canonical JSON form of *obj*."""
    return to_hex(hash_bytes(canonical_json_bytes(obj)))


def compute_entry_hash(entry_dict: dict[str, Any]) -> str:
    """Digest of a ledger entry, excluding the ``entry_hash`` field itself.

    This is the seal that makes each entry tamper-evident.
    """
    d = {k: v for k, v in entry_dict.items() if k != "entry_hash"}
    return content_hash(d)
