"""Tests for the mobile -> identity verification directory."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from agritrace.core.errors import NotFoundError, PersistenceError, ValidationError
from agritrace.core.hasher import hash_string, to_hex
from agritrace.core.verification_directory import VerificationDirectory, validate_mobile
from agritrace.models.directory import IdentityRecord

from conftest import FARMER_IDENTITY, FARMER_MOBILE


class TestLookups:
    def test_lookup_by_mobile_and_identity(self, directory: VerificationDirectory):
        by_mobile = directory.lookup_by_mobile(FARMER_MOBILE)
        assert by_mobile is not None and by_mobile.identity == FARMER_IDENTITY
        assert directory.lookup_by_identity(FARMER_IDENTITY) == by_mobile

    def test_identity_lookup_is_case_and_prefix_insensitive(self, directory: VerificationDirectory):
        bare_upper = FARMER_IDENTITY[2:].upper()
        assert directory.lookup_by_identity(bare_upper) is not None

    def test_unknown_is_absent(self, directory: VerificationDirectory):
        assert directory.lookup_by_mobile("+910000000000") is None
        assert directory.lookup_by_identity(to_hex(hash_string("nobody"))) is None

    def test_verified_and_pair(self, directory: VerificationDirectory):
        assert directory.is_mobile_verified(FARMER_MOBILE)
        assert directory.verify_pair(FARMER_MOBILE, FARMER_IDENTITY)
        assert not directory.verify_pair(FARMER_MOBILE, to_hex(hash_string("someone else")))
        assert not directory.is_mobile_verified("+910000000000")

    def test_unverified_record(self, directory: VerificationDirectory):
        directory.add_identity(
            IdentityRecord(mobile="+919000000001", identity=to_hex(hash_string("u")), name="U")
        )
        assert not directory.is_mobile_verified("+919000000001")

    @pytest.mark.parametrize("mobile", ["", "abc", "12", "+91 98123"])
    def test_validate_mobile_rejects(self, mobile):
        with pytest.raises(ValidationError):
            validate_mobile(mobile)


class TestPersistence:
    def test_add_persists_and_reloads(self, directory: VerificationDirectory, tmp_path: Path):
        reloaded = VerificationDirectory(tmp_path / "directory.json")
        assert reloaded.total() == 1
        assert reloaded.lookup_by_mobile(FARMER_MOBILE).name == "Test Farmer"
        data = json.loads((tmp_path / "directory.json").read_text())
        assert data["metadata"]["total_identities"] == 1

    def test_missing_file_is_empty(self, tmp_path: Path):
        assert VerificationDirectory(tmp_path / "absent.json").total() == 0

    def test_malformed_file_is_empty(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text("[[[")
        assert VerificationDirectory(path).total() == 0

    def test_malformed_identity_skipped(self, tmp_path: Path):
        path = tmp_path / "dir.json"
        path.write_text(
            json.dumps(
                {
                    "identities": [
                        {"mobile": "+911111111111", "identity": "not-a-digest", "name": "Bad"},
                        {"mobile": "+912222222222", "identity": to_hex(hash_string("g")), "name": "Good"},
                    ]
                }
            )
        )
        directory = VerificationDirectory(path)
        assert directory.total() == 1
        assert directory.lookup_by_mobile("+911111111111") is None

    def test_update_content_ref_by_mobile_and_identity(
        self, directory: VerificationDirectory, tmp_path: Path
    ):
        updated = directory.update_content_ref(FARMER_MOBILE, "sha256:abc")
        assert updated.content_ref == "sha256:abc"
        directory.update_content_ref(FARMER_IDENTITY, "sha256:def")
        reloaded = VerificationDirectory(tmp_path / "directory.json")
        assert reloaded.lookup_by_mobile(FARMER_MOBILE).content_ref == "sha256:def"

    def test_update_unknown_raises_not_found(self, directory: VerificationDirectory):
        with pytest.raises(NotFoundError):
            directory.update_content_ref("+910000000000", "sha256:x")
        with pytest.raises(NotFoundError):
            directory.update_content_ref(to_hex(hash_string("nobody")), "sha256:x")

    def test_failed_persist_rolls_back_update(self, directory: VerificationDirectory):
        with patch.object(Path, "write_text", side_effect=OSError("read-only")):
            with pytest.raises(PersistenceError):
                directory.update_content_ref(FARMER_MOBILE, "sha256:new")
        assert directory.lookup_by_mobile(FARMER_MOBILE).content_ref == ""

    def test_failed_persist_rolls_back_add(self, directory: VerificationDirectory):
        record = IdentityRecord(mobile="+919000000002", identity=to_hex(hash_string("n")), name="N")
        with patch.object(Path, "write_text", side_effect=OSError("read-only")):
            with pytest.raises(PersistenceError):
                directory.add_identity(record)
        assert directory.lookup_by_mobile("+919000000002") is None
        assert directory.total() == 1


class TestReassignment:
    def test_new_mobile_retires_old_one(self, tmp_path: Path):
        path = tmp_path / "dir.json"
        directory = VerificationDirectory(path)
        identity = to_hex(hash_string("producer"))
        directory.add_identity(IdentityRecord(mobile="+911111111111", identity=identity, name="P"))
        directory.add_identity(IdentityRecord(mobile="+912222222222", identity=identity, name="P"))

        reloaded = VerificationDirectory(path)
        for view in (directory, reloaded):
            assert not view.verify_pair("+911111111111", identity)
            assert view.lookup_by_mobile("+911111111111") is None
            assert view.verify_pair("+912222222222", identity)
            assert view.total() == 1

    def test_mobile_owned_by_another_identity_rejected(self, directory: VerificationDirectory):
        other = to_hex(hash_string("other producer"))
        with pytest.raises(ValidationError, match="already registered"):
            directory.add_identity(IdentityRecord(mobile=FARMER_MOBILE, identity=other, name="O"))
        assert directory.verify_pair(FARMER_MOBILE, FARMER_IDENTITY)
        assert directory.lookup_by_identity(other) is None

    def test_failed_persist_restores_old_mobile(self, directory: VerificationDirectory):
        moved = IdentityRecord(mobile="+919000000003", identity=FARMER_IDENTITY, name="Moved")
        with patch.object(Path, "write_text", side_effect=OSError("read-only")):
            with pytest.raises(PersistenceError):
                directory.add_identity(moved)
        assert directory.verify_pair(FARMER_MOBILE, FARMER_IDENTITY)
        assert directory.lookup_by_mobile("+919000000003") is None
        assert directory.lookup_by_identity(FARMER_IDENTITY).name == "Test Farmer"

    def test_persist_leaves_no_temp_file(self, directory: VerificationDirectory, tmp_path: Path):
        directory.update_content_ref(FARMER_MOBILE, "sha256:abc")
        assert not (tmp_path / "directory.json.tmp").exists()
