"""Adversarial tests: ledger tampering and chain integrity.

These tests verify that the Local Ledger detects:
1. Edited payloads (hash recomputation mismatch)
2. Overwritten entry hashes (index mismatch at load, broken links)
3. Deleted and reordered entries (version gaps)
4. Retroactive rewrites (diverging from a retained head hash)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from agritrace.core.errors import LedgerIntegrityError
from agritrace.core.hasher import compute_entry_hash
from agritrace.core.local_ledger import LocalLedger

BUSINESS_KEY = "BATCH-ADV-001"


def _read(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


def _write(path: Path, snapshot: dict[str, Any]) -> None:
    path.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")


class TestLedgerTamperDetection:
    """Direct file manipulation to simulate an attacker with disk access."""

    @pytest.fixture
    def seeded(self, ledger_path: Path) -> LocalLedger:
        """Seed a ledger with 5 entries for one batch."""
        ledger = LocalLedger(ledger_path)
        for i in range(5):
            ledger.append(BUSINESS_KEY, "checkpoint-recorded", None, {"checkpoint": i + 1})
        return ledger

    def test_untouched_file_verifies(self, seeded: LocalLedger, ledger_path: Path):
        assert LocalLedger(ledger_path).verify_chain(BUSINESS_KEY)

    def test_corrupted_payload_detected(self, seeded: LocalLedger, ledger_path: Path):
        snapshot = _read(ledger_path)
        snapshot["entries"][2]["payload"]["checkpoint"] = 99
        _write(ledger_path, snapshot)

        reloaded = LocalLedger(ledger_path)
        with pytest.raises(LedgerIntegrityError, match="Tampered"):
            reloaded.verify_chain(BUSINESS_KEY)

    def test_corrupted_category_detected(self, seeded: LocalLedger, ledger_path: Path):
        snapshot = _read(ledger_path)
        snapshot["entries"][0]["category"] = "batch-processed"
        _write(ledger_path, snapshot)

        with pytest.raises(LedgerIntegrityError, match="Tampered"):
            LocalLedger(ledger_path).verify_chain(BUSINESS_KEY)

    def test_overwritten_entry_hash_fails_load(self, seeded: LocalLedger, ledger_path: Path):
        snapshot = _read(ledger_path)
        snapshot["entries"][2]["entry_hash"] = "0x" + "ee" * 32
        _write(ledger_path, snapshot)

        with pytest.raises(LedgerIntegrityError, match="key index"):
            LocalLedger(ledger_path)

    def test_overwritten_hash_with_consistent_index(self, seeded: LocalLedger, ledger_path: Path):
        """Patching the index too still breaks the link from the next entry."""
        snapshot = _read(ledger_path)
        forged = "0x" + "ee" * 32
        snapshot["entries"][2]["entry_hash"] = forged
        snapshot["key_index"][BUSINESS_KEY][2] = forged
        _write(ledger_path, snapshot)

        with pytest.raises(LedgerIntegrityError, match="(Chain broken|Tampered)"):
            LocalLedger(ledger_path).verify_chain(BUSINESS_KEY)

    def test_deleted_entry_detected(self, seeded: LocalLedger, ledger_path: Path):
        snapshot = _read(ledger_path)
        del snapshot["entries"][2]
        del snapshot["key_index"][BUSINESS_KEY][2]
        _write(ledger_path, snapshot)

        with pytest.raises(LedgerIntegrityError, match="Version gap"):
            LocalLedger(ledger_path).verify_chain(BUSINESS_KEY)

    def test_reordered_entries_detected(self, seeded: LocalLedger, ledger_path: Path):
        snapshot = _read(ledger_path)
        entries = snapshot["entries"]
        entries[1], entries[2] = entries[2], entries[1]
        index = snapshot["key_index"][BUSINESS_KEY]
        index[1], index[2] = index[2], index[1]
        _write(ledger_path, snapshot)

        with pytest.raises(LedgerIntegrityError, match="Version gap"):
            LocalLedger(ledger_path).verify_chain(BUSINESS_KEY)

    def test_duplicated_entry_fails_load(self, seeded: LocalLedger, ledger_path: Path):
        snapshot = _read(ledger_path)
        snapshot["entries"].append(snapshot["entries"][-1])
        _write(ledger_path, snapshot)

        with pytest.raises(LedgerIntegrityError, match="Duplicate"):
            LocalLedger(ledger_path)

    def test_tamper_in_one_key_leaves_others_valid(self, seeded: LocalLedger, ledger_path: Path):
        seeded.append("BATCH-OTHER", "purchase-recorded", None, {"qty": 1})
        snapshot = _read(ledger_path)
        snapshot["entries"][0]["payload"]["checkpoint"] = 42
        _write(ledger_path, snapshot)

        reloaded = LocalLedger(ledger_path)
        assert reloaded.verify_chain("BATCH-OTHER")
        with pytest.raises(LedgerIntegrityError):
            reloaded.verify_chain(BUSINESS_KEY)


class TestRetroactiveRewrite:
    """An attacker who recomputes the whole chain passes local verification
    but cannot reproduce a head hash retained elsewhere."""

    def test_full_rewrite_diverges_from_retained_head(self, ledger_path: Path):
        ledger = LocalLedger(ledger_path)
        for i in range(3):
            ledger.append(BUSINESS_KEY, "checkpoint-recorded", None, {"checkpoint": i + 1})
        retained_head = ledger.latest(BUSINESS_KEY).entry_hash

        snapshot = _read(ledger_path)
        predecessor = None
        rewritten: list[str] = []
        for entry in snapshot["entries"]:
            entry["payload"]["checkpoint"] += 100
            entry["predecessor_hash"] = predecessor
            entry["entry_hash"] = compute_entry_hash(entry)
            predecessor = entry["entry_hash"]
            rewritten.append(predecessor)
        snapshot["key_index"][BUSINESS_KEY] = rewritten
        _write(ledger_path, snapshot)

        forged = LocalLedger(ledger_path)
        assert forged.verify_chain(BUSINESS_KEY)
        assert forged.latest(BUSINESS_KEY).entry_hash != retained_head
        assert forged.by_hash(retained_head) is None
