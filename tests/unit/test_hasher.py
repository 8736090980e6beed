"""Tests for the integrity primitives: digests, commitments, aggregates."""

from __future__ import annotations

import hashlib

import pytest

from agritrace.core.errors import ValidationError
from agritrace.core.hasher import (
    DIGEST_SIZE,
    aggregate_hash,
    canonical_json_bytes,
    commit,
    compute_entry_hash,
    content_hash,
    generate_nonce,
    hash_bytes,
    hash_string,
    parse_digest,
    to_hex,
)


class TestDigests:
    def test_hash_bytes_is_32_byte_sha256(self):
        digest = hash_bytes(b"rice")
        assert len(digest) == DIGEST_SIZE
        assert digest == hashlib.sha256(b"rice").digest()

    def test_hash_string_hashes_utf8(self):
        assert hash_string("dal") == hashlib.sha256("dal".encode("utf-8")).digest()

    def test_to_hex_and_parse_round_trip(self):
        digest = hash_string("batch-1")
        text = to_hex(digest)
        assert text.startswith("0x") and len(text) == 66
        assert parse_digest(text) == digest

    def test_parse_accepts_bare_hex(self):
        digest = hash_string("x")
        assert parse_digest(digest.hex()) == digest

    @pytest.mark.parametrize("bad", ["", "0x", "0x1234", "zz" * 32, "0x" + "g" * 64])
    def test_parse_rejects_malformed(self, bad):
        with pytest.raises(ValidationError):
            parse_digest(bad)

    def test_parse_rejects_non_string(self):
        with pytest.raises(ValidationError, match="identity"):
            parse_digest(1234, field="identity")  # type: ignore[arg-type]


class TestCanonicalJson:
    def test_key_order_does_not_matter(self):
        assert canonical_json_bytes({"b": 1, "a": 2}) == canonical_json_bytes({"a": 2, "b": 1})

    def test_compact_and_ascii(self):
        assert canonical_json_bytes({"a": "é", "b": [1, 2]}) == b'{"a":"\\u00e9","b":[1,2]}'

    def test_content_hash_is_hex_digest_of_canonical_form(self):
        obj = {"qty": 100}
        assert content_hash(obj) == "0x" + hashlib.sha256(b'{"qty":100}').hexdigest()


class TestCommit:
    def test_scenario_score_92_with_nonce_one(self):
        reveal = hash_bytes(b"score:92")
        nonce = bytes(31) + b"\x01"
        expected = hashlib.sha256(reveal + nonce).digest()
        assert commit(reveal, nonce) == expected

    def test_single_bit_flip_in_nonce_changes_commit(self):
        reveal = hash_bytes(b"score:92")
        nonce = bytes(31) + b"\x01"
        base = commit(reveal, nonce)
        for byte_index in (0, 15, 31):
            for bit in range(8):
                flipped = bytearray(nonce)
                flipped[byte_index] ^= 1 << bit
                assert commit(reveal, bytes(flipped)) != base

    def test_deterministic(self):
        reveal, nonce = hash_bytes(b"a"), hash_bytes(b"n")
        assert commit(reveal, nonce) == commit(reveal, nonce)

    def test_distinct_reveals_give_distinct_commits(self):
        nonce = generate_nonce()
        assert commit(hash_bytes(b"score:91"), nonce) != commit(hash_bytes(b"score:92"), nonce)

    def test_reveal_comes_first(self):
        a, b = hash_bytes(b"a"), hash_bytes(b"b")
        assert commit(a, b) != commit(b, a)

    @pytest.mark.parametrize("reveal_len,nonce_len", [(31, 32), (32, 33), (0, 32)])
    def test_rejects_wrong_lengths(self, reveal_len, nonce_len):
        with pytest.raises(ValidationError):
            commit(b"\x00" * reveal_len, b"\x00" * nonce_len)

    def test_nonces_are_fresh(self):
        nonces = {generate_nonce() for _ in range(20)}
        assert len(nonces) == 20
        assert all(len(n) == DIGEST_SIZE for n in nonces)


class TestAggregateHash:
    def test_matches_manual_construction(self):
        ids = ["SKU-0001-U001", "SKU-0001-U002"]
        leaves = b"".join(hashlib.sha256(i.encode()).digest() for i in ids)
        assert aggregate_hash(ids) == hashlib.sha256(leaves).digest()

    def test_order_matters(self):
        assert aggregate_hash(["a", "b"]) != aggregate_hash(["b", "a"])

    def test_empty_is_hash_of_nothing(self):
        assert aggregate_hash([]) == hashlib.sha256(b"").digest()


class TestEntryHash:
    def test_excludes_entry_hash_field(self):
        base = {"entry_id": "ENT_1", "payload": {"q": 1}}
        assert compute_entry_hash({**base, "entry_hash": "0xabc"}) == compute_entry_hash(base)

    def test_any_field_change_changes_hash(self):
        base = {"entry_id": "ENT_1", "payload": {"q": 1}, "version": 1}
        assert compute_entry_hash(base) != compute_entry_hash({**base, "version": 2})
