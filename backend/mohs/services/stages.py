from __future__ import annotations

from typing import Any, Sequence

from loguru import logger
from sqlalchemy.orm import Session

from mohs.core.errors import InvalidArgument, NotFoundError
from mohs.db import models
from mohs.db.models import utcnow
from mohs.db.tenant import TenantScope
from mohs.schemas.enums import CaseStatus, StageMarginStatus
from mohs.schemas.stage import BlockMargin, BlockRead, MarginsRecorded, StageCreate, StageRead
from mohs.services.cases import load_case
from mohs.services.validation import coerce_input
from mohs.services.workflow import STAGE_START_STATUSES, TERMINAL_STATUSES, aggregate_margin_status

_BLOCK_FIELDS = (
    "position",
    "position_degrees",
    "margin_status",
    "deep_margin_status",
    "depth_mm",
    "tumor_type_found",
    "tumor_percentage",
    "notes",
)


class StageTracker:
    """
    Stage and block margin state. Every multi-row write runs in one transaction
    with the case row locked, so status advancement is re-checked under lock
    and concurrent calls converge instead of double-advancing.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _scope(self, tenant_id: str) -> TenantScope:
        return TenantScope(self.db, tenant_id)

    def _load_stage(self, scope: TenantScope, stage_id: int, *, for_update: bool = False) -> models.MohsStage:
        query = scope.query(models.MohsStage).filter(models.MohsStage.id == stage_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        stage = query.first()
        if not stage:
            raise NotFoundError("Mohs stage", stage_id)
        return stage

    def add_stage(self, tenant_id: str, case_id: int, stage_data: StageCreate | dict[str, Any]) -> StageRead:
        data = coerce_input(StageCreate, stage_data)
        scope = self._scope(tenant_id)
        case = load_case(scope, case_id)
        if CaseStatus(case.status) in TERMINAL_STATUSES:
            raise InvalidArgument(f"Cannot add a stage to a {case.status} case", details={"status": case.status})

        with scope.transaction("add_stage"):
            case = load_case(scope, case_id, for_update=True)
            existing = scope.query(models.MohsStage).filter(models.MohsStage.case_id == case.id).count()
            if data.stage_number != existing + 1:
                raise InvalidArgument(
                    f"Stage number must be {existing + 1}",
                    details={"expected": existing + 1, "received": data.stage_number},
                )

            now = utcnow()
            stage = scope.add(
                models.MohsStage(
                    case_id=case.id,
                    margin_status=StageMarginStatus.PENDING.value,
                    block_count=0,
                    **{
                        **data.model_dump(),
                        "excision_time": data.excision_time or now,
                        "stain_type": data.stain_type or "H&E",
                    },
                )
            )
            self.db.flush()

            case.total_stages = existing + 1
            if CaseStatus(case.status) in STAGE_START_STATUSES:
                case.status = CaseStatus.IN_PROGRESS.value
            if case.start_time is None:
                case.start_time = now
            case.updated_at = now

        logger.info("Mohs stage added case_id={} stage_number={}", case_id, data.stage_number)
        return StageRead.model_validate(stage)

    def _upsert_block(self, scope: TenantScope, stage: models.MohsStage, margin: BlockMargin) -> models.MohsStageBlock:
        block = (
            scope.query(models.MohsStageBlock)
            .filter(
                models.MohsStageBlock.stage_id == stage.id,
                models.MohsStageBlock.block_label == margin.block_label,
            )
            .first()
        )
        values = margin.model_dump(include=set(_BLOCK_FIELDS))
        if block is None:
            block = scope.add(models.MohsStageBlock(stage_id=stage.id, block_label=margin.block_label, **values))
        else:
            for field, value in values.items():
                setattr(block, field, value)
            block.updated_at = utcnow()
        self.db.flush()
        return block

    def record_margins(
        self, tenant_id: str, stage_id: int, blocks: Sequence[BlockMargin | dict[str, Any]]
    ) -> MarginsRecorded:
        if not blocks:
            raise InvalidArgument("At least one block is required")
        # every block is validated before the transaction opens
        margins = [coerce_input(BlockMargin, block) for block in blocks]
        scope = self._scope(tenant_id)
        stage = self._load_stage(scope, stage_id)
        load_case(scope, stage.case_id)

        with scope.transaction("record_margins"):
            stage = self._load_stage(scope, stage_id, for_update=True)
            for margin in margins:
                self._upsert_block(scope, stage, margin)

            stage_blocks = (
                scope.query(models.MohsStageBlock)
                .filter(models.MohsStageBlock.stage_id == stage.id)
                .order_by(models.MohsStageBlock.block_label.asc())
                .all()
            )
            aggregate = aggregate_margin_status(stage_blocks)
            now = utcnow()
            stage.margin_status = aggregate.value
            stage.block_count = len(stage_blocks)
            if stage.frozen_section_time is None:
                stage.frozen_section_time = now
            stage.reading_time = now
            stage.updated_at = now
            self.db.flush()

            case = load_case(scope, stage.case_id, for_update=True)
            if aggregate == StageMarginStatus.NEGATIVE and case.status == CaseStatus.IN_PROGRESS.value:
                case.status = CaseStatus.CLOSURE.value
                case.updated_at = now

        logger.info(
            "Margins recorded stage_id={} block_count={} stage_status={} case_status={}",
            stage_id,
            len(stage_blocks),
            aggregate.value,
            case.status,
        )
        return MarginsRecorded(
            stage_id=stage.id,
            blocks=[BlockRead.model_validate(block) for block in stage_blocks],
            stage_margin_status=aggregate.value,
            case_status=case.status,
        )
