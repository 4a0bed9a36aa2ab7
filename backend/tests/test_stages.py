from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from mohs.core.errors import InvalidArgument, NotFoundError, TransactionFailure
from mohs.db import models
from mohs.services.stages import StageTracker

TENANT = "clinic-a"


@pytest.fixture
def case(make_case):
    return make_case()


@pytest.fixture
def stage(stage_tracker, case):
    return stage_tracker.add_stage(TENANT, case.id, {"stage_number": 1, "excision_width_mm": 12})


def _case_status(db, case_id):
    db.expire_all()
    return db.query(models.MohsCase).filter(models.MohsCase.id == case_id).one().status


class TestAddStage:
    def test_first_stage_starts_case(self, stage_tracker, case, db):
        stage = stage_tracker.add_stage(TENANT, case.id, {"stage_number": 1})
        assert stage.margin_status == "pending"
        assert stage.stain_type == "H&E"
        assert stage.excision_time is not None
        row = db.query(models.MohsCase).filter(models.MohsCase.id == case.id).one()
        assert row.status == "in_progress"
        assert row.total_stages == 1
        assert row.start_time is not None

    def test_pre_op_case_also_advances(self, stage_tracker, case_manager, case, db):
        case_manager.update_case_status(TENANT, case.id, "pre_op")
        stage_tracker.add_stage(TENANT, case.id, {"stage_number": 1})
        assert _case_status(db, case.id) == "in_progress"

    def test_later_stage_keeps_status(self, stage_tracker, case, stage, db):
        first_start = db.query(models.MohsCase).filter(models.MohsCase.id == case.id).one().start_time
        stage_tracker.add_stage(TENANT, case.id, {"stage_number": 2})
        row = db.query(models.MohsCase).filter(models.MohsCase.id == case.id).one()
        assert row.status == "in_progress"
        assert row.total_stages == 2
        assert row.start_time == first_start

    def test_stage_on_unstarted_closure_case_stamps_start(self, stage_tracker, case_manager, case, db):
        case_manager.update_case_status(TENANT, case.id, "closure")
        stage_tracker.add_stage(TENANT, case.id, {"stage_number": 1})
        db.expire_all()
        row = db.query(models.MohsCase).filter(models.MohsCase.id == case.id).one()
        assert row.status == "closure"
        assert row.start_time is not None

    @pytest.mark.parametrize("number", [2, 3])
    def test_stage_numbers_must_be_sequential(self, stage_tracker, case, number):
        with pytest.raises(InvalidArgument) as exc_info:
            stage_tracker.add_stage(TENANT, case.id, {"stage_number": number})
        assert exc_info.value.details == {"expected": 1, "received": number}

    def test_zero_stage_number_rejected(self, stage_tracker, case):
        with pytest.raises(InvalidArgument):
            stage_tracker.add_stage(TENANT, case.id, {"stage_number": 0})

    def test_terminal_case_rejected(self, stage_tracker, case_manager, case):
        case_manager.update_case_status(TENANT, case.id, "cancelled")
        with pytest.raises(InvalidArgument):
            stage_tracker.add_stage(TENANT, case.id, {"stage_number": 1})

    def test_other_tenant_case_not_found(self, stage_tracker, case):
        with pytest.raises(NotFoundError):
            stage_tracker.add_stage("clinic-b", case.id, {"stage_number": 1})


class TestRecordMargins:
    def test_negative_stage_moves_case_to_closure(self, stage_tracker, case, stage, db):
        result = stage_tracker.record_margins(
            TENANT,
            stage.id,
            [
                {"block_label": "A", "margin_status": "negative"},
                {"block_label": "B", "margin_status": "negative", "deep_margin_status": "negative"},
            ],
        )
        assert result.stage_margin_status == "negative"
        assert result.case_status == "closure"
        assert [block.block_label for block in result.blocks] == ["A", "B"]

        row = db.query(models.MohsStage).filter(models.MohsStage.id == stage.id).one()
        assert row.block_count == 2
        assert row.frozen_section_time is not None
        assert row.reading_time is not None

    @pytest.mark.parametrize(
        "margins,expected",
        [
            ([{"block_label": "A", "margin_status": "positive"}], "positive"),
            ([{"block_label": "A", "margin_status": "negative", "deep_margin_status": "close"}], "partial"),
            ([{"block_label": "A", "margin_status": "indeterminate"}], "pending"),
        ],
    )
    def test_non_negative_results_keep_case_status(self, stage_tracker, case, stage, db, margins, expected):
        result = stage_tracker.record_margins(TENANT, stage.id, margins)
        assert result.stage_margin_status == expected
        assert result.case_status == "in_progress"
        assert _case_status(db, case.id) == "in_progress"

    def test_indeterminate_deep_margin_still_clears(self, stage_tracker, case, stage, db):
        result = stage_tracker.record_margins(
            TENANT, stage.id, [{"block_label": "A", "margin_status": "negative", "deep_margin_status": "indeterminate"}]
        )
        assert result.stage_margin_status == "negative"
        assert result.case_status == "closure"
        assert _case_status(db, case.id) == "closure"

    def test_store_failure_rolls_back_every_block(self, stage_tracker, case, stage, db):
        real_upsert = StageTracker._upsert_block
        calls = []

        def failing_upsert(tracker, scope, stage_row, margin):
            calls.append(margin.block_label)
            if len(calls) == 2:
                raise SQLAlchemyError("connection reset")
            return real_upsert(tracker, scope, stage_row, margin)

        with patch.object(StageTracker, "_upsert_block", failing_upsert):
            with pytest.raises(TransactionFailure) as exc_info:
                stage_tracker.record_margins(
                    TENANT,
                    stage.id,
                    [
                        {"block_label": "A", "margin_status": "negative"},
                        {"block_label": "B", "margin_status": "negative"},
                    ],
                )
        assert isinstance(exc_info.value.__cause__, SQLAlchemyError)
        assert calls == ["A", "B"]

        db.expire_all()
        assert db.query(models.MohsStageBlock).count() == 0
        row = db.query(models.MohsStage).filter(models.MohsStage.id == stage.id).one()
        assert row.margin_status == "pending"
        assert row.block_count == 0
        assert row.frozen_section_time is None
        assert _case_status(db, case.id) == "in_progress"

    def test_resubmitted_label_updates_in_place(self, stage_tracker, stage, db):
        stage_tracker.record_margins(TENANT, stage.id, [{"block_label": "A", "margin_status": "positive"}])
        result = stage_tracker.record_margins(
            TENANT,
            stage.id,
            [
                {"block_label": "A", "margin_status": "negative", "notes": "re-read"},
                {"block_label": "B", "margin_status": "negative"},
            ],
        )
        assert len(result.blocks) == 2
        assert result.blocks[0].notes == "re-read"
        assert result.stage_margin_status == "negative"
        assert db.query(models.MohsStageBlock).filter(models.MohsStageBlock.stage_id == stage.id).count() == 2

    def test_aggregate_covers_blocks_from_earlier_calls(self, stage_tracker, stage):
        stage_tracker.record_margins(TENANT, stage.id, [{"block_label": "A", "margin_status": "positive"}])
        result = stage_tracker.record_margins(TENANT, stage.id, [{"block_label": "B", "margin_status": "negative"}])
        assert result.stage_margin_status == "positive"
        assert len(result.blocks) == 2

    def test_identical_resubmission_is_idempotent(self, stage_tracker, stage, negative_block):
        first = stage_tracker.record_margins(TENANT, stage.id, [negative_block])
        second = stage_tracker.record_margins(TENANT, stage.id, [negative_block])
        assert [block.id for block in first.blocks] == [block.id for block in second.blocks]
        assert second.blocks[0].position == negative_block["position"]

    def test_frozen_section_time_set_once(self, stage_tracker, stage, db, negative_block):
        stage_tracker.record_margins(TENANT, stage.id, [negative_block])
        first = db.query(models.MohsStage).filter(models.MohsStage.id == stage.id).one().frozen_section_time
        stage_tracker.record_margins(TENANT, stage.id, [negative_block])
        db.expire_all()
        assert db.query(models.MohsStage).filter(models.MohsStage.id == stage.id).one().frozen_section_time == first

    def test_malformed_block_rejects_whole_batch(self, stage_tracker, stage, db):
        with pytest.raises(InvalidArgument):
            stage_tracker.record_margins(
                TENANT,
                stage.id,
                [
                    {"block_label": "A", "margin_status": "negative"},
                    {"block_label": "B", "margin_status": "clear"},
                ],
            )
        assert db.query(models.MohsStageBlock).count() == 0

    def test_empty_batch_rejected(self, stage_tracker, stage):
        with pytest.raises(InvalidArgument):
            stage_tracker.record_margins(TENANT, stage.id, [])

    def test_unknown_stage(self, stage_tracker):
        with pytest.raises(NotFoundError):
            stage_tracker.record_margins(TENANT, 999, [{"block_label": "A", "margin_status": "negative"}])

    def test_other_tenant_stage_not_found(self, stage_tracker, stage, negative_block):
        with pytest.raises(NotFoundError):
            stage_tracker.record_margins("clinic-b", stage.id, [negative_block])

    def test_closure_status_is_not_advanced_again(self, stage_tracker, case_manager, case, stage, negative_block):
        case_manager.update_case_status(TENANT, case.id, "post_op")
        result = stage_tracker.record_margins(TENANT, stage.id, [negative_block])
        assert result.case_status == "post_op"
