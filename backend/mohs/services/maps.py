from __future__ import annotations

from typing import Any

from loguru import logger
from sqlalchemy.orm import Session

from mohs.core.errors import NotFoundError
from mohs.db import models
from mohs.db.tenant import TenantScope
from mohs.schemas.map import MapCreate, MapRead
from mohs.services.cases import load_case
from mohs.services.validation import coerce_input


def _next_version(scope: TenantScope, case_id: int, stage_id: int | None, map_type: str) -> int:
    query = scope.query(models.MohsMap).filter(
        models.MohsMap.case_id == case_id,
        models.MohsMap.map_type == map_type,
    )
    if stage_id is None:
        query = query.filter(models.MohsMap.stage_id.is_(None))
    else:
        query = query.filter(models.MohsMap.stage_id == stage_id)
    return query.count() + 1


def save_map(
    db: Session, tenant_id: str, case_id: int, payload: MapCreate | dict[str, Any], actor: str | None = None
) -> MapRead:
    """Append a new version of a case or stage map. Earlier versions are kept."""
    data = coerce_input(MapCreate, payload)
    scope = TenantScope(db, tenant_id)
    load_case(scope, case_id)
    if data.stage_id is not None:
        stage = (
            scope.query(models.MohsStage)
            .filter(models.MohsStage.id == data.stage_id, models.MohsStage.case_id == case_id)
            .first()
        )
        if not stage:
            raise NotFoundError("Mohs stage", data.stage_id)

    with scope.transaction("save_map"):
        case = load_case(scope, case_id, for_update=True)
        version = _next_version(scope, case.id, data.stage_id, data.map_type)
        mohs_map = scope.add(
            models.MohsMap(
                case_id=case.id,
                version=version,
                created_by=actor,
                **data.model_dump(),
            )
        )
        db.flush()

    logger.info(
        "Mohs map saved case_id={} stage_id={} map_type={} version={}",
        case_id,
        data.stage_id,
        data.map_type,
        version,
    )
    return MapRead.model_validate(mohs_map)
