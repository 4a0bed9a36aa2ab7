from __future__ import annotations

from collections import defaultdict
from typing import Sequence

from mohs.db import models
from mohs.db.tenant import TenantScope
from mohs.schemas.case import CaseRead, CaseSnapshot, PartyRead, PatientRead
from mohs.schemas.closure import ClosureRead
from mohs.schemas.map import MapRead
from mohs.schemas.stage import BlockRead, StageSnapshot


def assemble_snapshot(
    case: models.MohsCase,
    stages: Sequence[models.MohsStage],
    blocks: Sequence[models.MohsStageBlock],
    closures: Sequence[models.MohsClosure],
    maps: Sequence[models.MohsMap],
    patient: models.Patient | None = None,
    surgeon: models.Provider | None = None,
    assistant: models.Provider | None = None,
) -> CaseSnapshot:
    blocks_by_stage: dict[int, list[BlockRead]] = defaultdict(list)
    for block in sorted(blocks, key=lambda item: item.block_label):
        blocks_by_stage[block.stage_id].append(BlockRead.model_validate(block))

    stage_views = tuple(
        StageSnapshot.model_validate(stage).model_copy(update={"blocks": tuple(blocks_by_stage.get(stage.id, []))})
        for stage in sorted(stages, key=lambda item: item.stage_number)
    )
    return CaseSnapshot(
        case=CaseRead.model_validate(case),
        patient=PatientRead.model_validate(patient) if patient else None,
        surgeon=PartyRead.model_validate(surgeon) if surgeon else None,
        assistant=PartyRead.model_validate(assistant) if assistant else None,
        stages=stage_views,
        closures=tuple(ClosureRead.model_validate(closure) for closure in closures),
        maps=tuple(MapRead.model_validate(item) for item in maps),
    )


def load_snapshot(scope: TenantScope, case: models.MohsCase) -> CaseSnapshot:
    stages = (
        scope.query(models.MohsStage)
        .filter(models.MohsStage.case_id == case.id)
        .order_by(models.MohsStage.stage_number.asc())
        .all()
    )
    stage_ids = [stage.id for stage in stages]
    blocks = []
    if stage_ids:
        blocks = (
            scope.query(models.MohsStageBlock)
            .filter(models.MohsStageBlock.stage_id.in_(stage_ids))
            .order_by(models.MohsStageBlock.stage_id.asc(), models.MohsStageBlock.block_label.asc())
            .all()
        )
    closures = (
        scope.query(models.MohsClosure)
        .filter(models.MohsClosure.case_id == case.id)
        .order_by(models.MohsClosure.created_at.asc(), models.MohsClosure.id.asc())
        .all()
    )
    maps = (
        scope.query(models.MohsMap)
        .filter(models.MohsMap.case_id == case.id)
        .order_by(models.MohsMap.created_at.asc(), models.MohsMap.id.asc())
        .all()
    )
    patient = scope.query(models.Patient).filter(models.Patient.id == case.patient_id).first()
    surgeon = scope.query(models.Provider).filter(models.Provider.id == case.surgeon_id).first()
    assistant = None
    if case.assistant_id:
        assistant = scope.query(models.Provider).filter(models.Provider.id == case.assistant_id).first()
    return assemble_snapshot(case, stages, blocks, closures, maps, patient, surgeon, assistant)
