from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from mohs.api.deps import RequestContext, get_context, get_db
from mohs.schemas.stage import MarginsRecorded, MarginsRequest, StageCreate, StageRead
from mohs.services.stages import StageTracker

router = APIRouter(prefix="/mohs", tags=["stages"])


@router.post("/cases/{case_id}/stages", response_model=StageRead, status_code=status.HTTP_201_CREATED)
def add_stage(
    case_id: int,
    payload: StageCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return StageTracker(db).add_stage(ctx.tenant_id, case_id, payload)


@router.put("/stages/{stage_id}/margins", response_model=MarginsRecorded)
def record_margins(
    stage_id: int,
    payload: MarginsRequest,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return StageTracker(db).record_margins(ctx.tenant_id, stage_id, payload.margins)
