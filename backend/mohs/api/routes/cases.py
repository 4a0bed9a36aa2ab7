from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from mohs.api.deps import RequestContext, get_context, get_db
from mohs.core.errors import NotFoundError
from mohs.schemas.case import (
    CaseCreate,
    CaseListResponse,
    CaseRead,
    CaseSnapshot,
    CaseStatusUpdate,
    CaseUpdate,
)
from mohs.schemas.closure import ClosureCreate
from mohs.schemas.map import MapCreate, MapRead
from mohs.schemas.report import CaseReport
from mohs.services.cases import CaseManager
from mohs.services.maps import save_map
from mohs.services.report import build_case_report

router = APIRouter(prefix="/mohs/cases", tags=["cases"])


@router.post("", response_model=CaseRead, status_code=status.HTTP_201_CREATED)
def create_case(
    payload: CaseCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return CaseManager(db).create_case(ctx.tenant_id, payload, ctx.user_id)


@router.get("", response_model=CaseListResponse)
def list_cases(
    surgeon_id: str | None = None,
    patient_id: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    start_date: date | None = None,
    end_date: date | None = None,
    tumor_type: str | None = None,
    limit: int | None = None,
    offset: int = 0,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    filters = {
        "surgeon_id": surgeon_id,
        "patient_id": patient_id,
        "status": status_filter,
        "start_date": start_date,
        "end_date": end_date,
        "tumor_type": tumor_type,
    }
    criteria = {key: value for key, value in filters.items() if value is not None}
    return CaseManager(db).list_cases(ctx.tenant_id, criteria, limit=limit, offset=offset)


@router.get("/{case_id}", response_model=CaseSnapshot)
def get_case(case_id: int, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    snapshot = CaseManager(db).get_case(ctx.tenant_id, case_id)
    if snapshot is None:
        raise NotFoundError("Mohs case", case_id)
    return snapshot


@router.patch("/{case_id}", response_model=CaseRead)
def update_case(
    case_id: int,
    payload: CaseUpdate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return CaseManager(db).update_case_details(ctx.tenant_id, case_id, payload, ctx.user_id)


@router.delete("/{case_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_case(case_id: int, ctx: RequestContext = Depends(get_context), db: Session = Depends(get_db)):
    CaseManager(db).delete_case(ctx.tenant_id, case_id, ctx.user_id)


@router.put("/{case_id}/status", response_model=CaseRead)
def update_status(
    case_id: int,
    payload: CaseStatusUpdate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return CaseManager(db).update_case_status(ctx.tenant_id, case_id, payload.status, ctx.user_id)


@router.post("/{case_id}/closure", response_model=CaseRead)
def close_case(
    case_id: int,
    payload: ClosureCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return CaseManager(db).close_case(ctx.tenant_id, case_id, payload, ctx.user_id)


@router.post("/{case_id}/maps", response_model=MapRead, status_code=status.HTTP_201_CREATED)
def create_map(
    case_id: int,
    payload: MapCreate,
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    return save_map(db, ctx.tenant_id, case_id, payload, ctx.user_id)


@router.get("/{case_id}/report", response_model=CaseReport)
def get_report(
    case_id: int,
    output_format: str = Query(default="json", alias="format", pattern="^(json|text)$"),
    ctx: RequestContext = Depends(get_context),
    db: Session = Depends(get_db),
):
    report = build_case_report(db, ctx.tenant_id, case_id)
    if output_format == "text":
        return PlainTextResponse(report.report)
    return report
