from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mohs.api.deps import RequestContext, get_context, get_db
from mohs.core.config import get_settings
from mohs.core.errors import InvalidArgument
from mohs.db.reference import list_cpt_reference
from mohs.schemas.report import CptCalculation, CptCalculationRequest, CptReferenceRead
from mohs.schemas.stats import MohsStats
from mohs.services.cpt import calculate_codes, is_complex_location
from mohs.services.stats import StatsAggregator

router = APIRouter(prefix="/mohs", tags=["billing"])


@router.get("/stats", response_model=MohsStats)
def get_stats(
    surgeon_id: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    date_range = None
    if start_date or end_date:
        if not (start_date and end_date):
            raise InvalidArgument("start_date and end_date must be given together")
        date_range = {"start_date": start_date, "end_date": end_date}
    return StatsAggregator(db).get_stats(ctx.tenant_id, surgeon_id=surgeon_id, date_range=date_range)


@router.post("/cpt/calculate", response_model=CptCalculation)
def calculate_cpt(payload: CptCalculationRequest):
    codes = calculate_codes(
        payload.tumor_location,
        payload.stage_count,
        payload.total_block_count,
        blocks_per_stage=get_settings().mohs_blocks_per_stage,
    )
    return CptCalculation(
        tumor_location=payload.tumor_location,
        stage_count=payload.stage_count,
        total_block_count=payload.total_block_count,
        is_complex_location=is_complex_location(payload.tumor_location),
        codes=codes,
    )


@router.get("/cpt/reference", response_model=list[CptReferenceRead])
def cpt_reference(category: str | None = None, db: Session = Depends(get_db)):
    return list_cpt_reference(db, category)
