"""Tests for all Pydantic data models: validation, immutability, defaults."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from agritrace.models.directory import DirectoryDocument, IdentityRecord
from agritrace.models.ledger import LedgerEntry, LedgerSnapshot
from agritrace.models.stages import (
    DISPLAY_NAMES,
    STAGE_DEFINITIONS,
    STAGE_ORDER,
    ScoreState,
    WorkflowStage,
)
from agritrace.models.workflow import (
    Checkpoint,
    LogisticsData,
    PackagingData,
    PurchaseData,
    ScoreCommitment,
    ScoringData,
    WorkflowResult,
)


class TestStageModels:
    def test_stage_values(self):
        assert WorkflowStage.REGISTRATION == "registration"
        assert WorkflowStage.SCORING == "scoring"
        assert ScoreState.COMMITTED == "committed"

    def test_order_matches_ordinals(self):
        assert [d.ordinal for d in STAGE_DEFINITIONS] == list(range(1, 8))
        assert STAGE_ORDER[0] is WorkflowStage.REGISTRATION
        assert STAGE_ORDER[-1] is WorkflowStage.SCORING

    def test_only_scoring_is_optional(self):
        assert [d.stage for d in STAGE_DEFINITIONS if d.optional] == [WorkflowStage.SCORING]

    def test_definitions_sorted_by_ordinal(self):
        ordinals = [d.ordinal for d in STAGE_DEFINITIONS]
        assert ordinals == sorted(ordinals)
        assert STAGE_ORDER == [d.stage for d in STAGE_DEFINITIONS]

    def test_display_names(self):
        assert DISPLAY_NAMES[WorkflowStage.TRANSPORT] == "Transport"
        assert len(DISPLAY_NAMES) == 7


class TestInputModels:
    def test_purchase_requires_positive_quantity(self):
        with pytest.raises(PydanticValidationError):
            PurchaseData(batch_id="B", quantity_kg=0)

    def test_logistics_requires_a_checkpoint(self):
        with pytest.raises(PydanticValidationError):
            LogisticsData(shipment_id="S", checkpoints=[])

    def test_packaging_bounds(self):
        with pytest.raises(PydanticValidationError):
            PackagingData(sku_prefix="SKU", units_per_package=0, total_packages=1)
        with pytest.raises(PydanticValidationError):
            PackagingData(sku_prefix="SKU", units_per_package=1, total_packages=0)
        assert PackagingData(sku_prefix="SKU", units_per_package=1, total_packages=1).expiry_months == 12

    def test_score_bounds_and_overall(self):
        with pytest.raises(PydanticValidationError):
            ScoringData(quality_score=101, freshness_score=0, purity_score=0)
        scoring = ScoringData(quality_score=90, freshness_score=80, purity_score=70)
        assert scoring.overall_score == pytest.approx(80.0)

    def test_inputs_are_frozen(self):
        checkpoint = Checkpoint(location="X", latitude=1.0, longitude=2.0)
        with pytest.raises(PydanticValidationError):
            checkpoint.location = "Y"


class TestResultModels:
    def test_result_records_per_stage(self):
        result = WorkflowResult(batch_id="B")
        result.record_transaction(WorkflowStage.TRANSPORT, "tx1")
        result.record_transaction(WorkflowStage.TRANSPORT, "tx2")
        result.record_upload(WorkflowStage.TRANSPORT, "c1")
        result.record_upload(WorkflowStage.TRANSPORT, "c2")

        assert result.transaction(WorkflowStage.TRANSPORT) == "tx1"
        assert result.content_id(WorkflowStage.TRANSPORT) == "c2"
        assert result.transaction(WorkflowStage.STORAGE) is None
        assert result.summary.total_transactions == 2
        assert result.summary.total_uploads == 2

    def test_last_completed_stage(self):
        result = WorkflowResult(batch_id="B")
        assert result.last_completed_stage is None
        result.completed_stages.append(WorkflowStage.REGISTRATION)
        assert result.last_completed_stage is WorkflowStage.REGISTRATION

    def test_commitment_state(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        commitment = ScoreCommitment(
            batch_id="B",
            batch_hash="0x" + "00" * 32,
            reveal_hash="0x" + "11" * 32,
            nonce="0x" + "22" * 32,
            commit_hash="0x" + "33" * 32,
            content_id="sha256:" + "44" * 32,
            overall_score=80.0,
            commit_transaction="0x" + "55" * 32,
            committed_at=now,
            reveal_not_before=now,
        )
        assert commitment.state is ScoreState.COMMITTED
        assert not commitment.is_revealed
        revealed = commitment.model_copy(update={"state": ScoreState.REVEALED})
        assert revealed.is_revealed
        assert not commitment.is_revealed


class TestLedgerModels:
    def test_entry_is_frozen(self):
        entry = LedgerEntry(entry_id="e", category="c", business_key="k")
        with pytest.raises(PydanticValidationError):
            entry.version = 2

    def test_entry_defaults(self):
        entry = LedgerEntry(entry_id="e", category="c", business_key="k")
        assert entry.version == 1
        assert entry.predecessor_hash is None
        assert entry.created_at.tzinfo is not None

    def test_snapshot_round_trip(self):
        entry = LedgerEntry(entry_id="e", category="c", business_key="k", payload={"n": 1})
        snapshot = LedgerSnapshot(entries=[entry], key_index={"k": ["e"]})
        restored = LedgerSnapshot.model_validate_json(snapshot.model_dump_json())
        assert restored.entries[0] == entry


class TestDirectoryModels:
    def test_record_defaults(self):
        record = IdentityRecord(mobile="+911", identity="0x00", name="N")
        assert record.verified is False
        assert record.content_ref == ""

    def test_document_defaults(self):
        document = DirectoryDocument()
        assert document.identities == []
        assert document.metadata.total_identities == 0
