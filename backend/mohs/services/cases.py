from __future__ import annotations

from datetime import date
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session

from mohs.core.config import get_settings
from mohs.core.errors import InvalidArgument, NotFoundError
from mohs.db import models
from mohs.db.models import utcnow
from mohs.db.tenant import TenantScope
from mohs.schemas.case import CaseCreate, CaseFilters, CaseListResponse, CaseRead, CaseSnapshot, CaseUpdate
from mohs.schemas.closure import ClosureCreate
from mohs.schemas.enums import CaseStatus
from mohs.services.snapshot import load_snapshot
from mohs.services.validation import coerce_input
from mohs.services.workflow import TERMINAL_STATUSES, check_transition, parse_status


def load_case(scope: TenantScope, case_id: int, *, for_update: bool = False) -> models.MohsCase:
    query = scope.query(models.MohsCase).filter(
        models.MohsCase.id == case_id,
        models.MohsCase.deleted_at.is_(None),
    )
    if for_update:
        query = query.with_for_update().populate_existing()
    case = query.first()
    if not case:
        raise NotFoundError("Mohs case", case_id)
    return case


class CaseManager:
    """Owns the case record: creation, status changes, closure, listing."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.settings = get_settings()

    def _scope(self, tenant_id: str) -> TenantScope:
        return TenantScope(self.db, tenant_id)

    def _next_case_number(self, scope: TenantScope, case_date: date) -> str:
        year_count = (
            scope.query(models.MohsCase)
            .filter(
                models.MohsCase.case_date >= date(case_date.year, 1, 1),
                models.MohsCase.case_date <= date(case_date.year, 12, 31),
            )
            .count()
        )
        return f"{self.settings.case_number_prefix}-{case_date.year}-{year_count + 1:04d}"

    def create_case(self, tenant_id: str, payload: CaseCreate | dict[str, Any], actor: str | None = None) -> CaseRead:
        data = coerce_input(CaseCreate, payload)
        scope = self._scope(tenant_id)
        case_date = data.case_date or date.today()

        with scope.transaction("create_case"):
            case = scope.add(
                models.MohsCase(
                    case_number=self._next_case_number(scope, case_date),
                    case_date=case_date,
                    status=CaseStatus.SCHEDULED.value,
                    total_stages=0,
                    created_by=actor,
                    updated_by=actor,
                    **data.model_dump(exclude={"case_date"}),
                )
            )
            self.db.flush()

        logger.info(
            "Mohs case created case_id={} patient_id={} surgeon_id={} tumor_type={}",
            case.id,
            data.patient_id,
            data.surgeon_id,
            data.tumor_type,
        )
        return CaseRead.model_validate(case)

    def get_case(self, tenant_id: str, case_id: int) -> CaseSnapshot | None:
        scope = self._scope(tenant_id)
        case = (
            scope.query(models.MohsCase)
            .filter(models.MohsCase.id == case_id, models.MohsCase.deleted_at.is_(None))
            .first()
        )
        if not case:
            return None
        return load_snapshot(scope, case)

    def update_case_status(
        self, tenant_id: str, case_id: int, new_status: str | CaseStatus, actor: str | None = None
    ) -> CaseRead:
        target = parse_status(new_status)
        scope = self._scope(tenant_id)
        load_case(scope, case_id)

        with scope.transaction("update_case_status"):
            case = load_case(scope, case_id, for_update=True)
            previous = case.status
            if self.settings.enforce_status_transitions:
                check_transition(previous, target)
            now = utcnow()
            case.status = target.value
            if target == CaseStatus.IN_PROGRESS and case.start_time is None:
                case.start_time = now
            if target == CaseStatus.COMPLETED and previous != CaseStatus.COMPLETED.value:
                case.end_time = now
            case.updated_by = actor
            case.updated_at = now

        logger.info("Mohs case status updated case_id={} {} -> {}", case_id, previous, target.value)
        return CaseRead.model_validate(case)

    def _mirror_closure(self, case: models.MohsCase, closure: models.MohsClosure, actor: str | None) -> None:
        now = utcnow()
        case.status = CaseStatus.POST_OP.value
        case.closure_type = closure.closure_type
        case.closure_subtype = closure.closure_subtype
        case.closure_performed_by = closure.closure_by
        case.repair_cpt_codes = list(closure.repair_cpt_codes or [])
        case.end_time = now
        case.updated_by = actor
        case.updated_at = now
        self.db.flush()

    def close_case(
        self, tenant_id: str, case_id: int, closure_data: ClosureCreate | dict[str, Any], actor: str | None = None
    ) -> CaseRead:
        data = coerce_input(ClosureCreate, closure_data)
        scope = self._scope(tenant_id)
        case = load_case(scope, case_id)
        if self.settings.enforce_status_transitions and CaseStatus(case.status) in TERMINAL_STATUSES:
            raise InvalidArgument(
                f"Cannot document closure on a {case.status} case", details={"status": case.status}
            )

        with scope.transaction("close_case"):
            case = load_case(scope, case_id, for_update=True)
            closure = scope.add(
                models.MohsClosure(
                    case_id=case.id,
                    closure_time=utcnow(),
                    **{**data.model_dump(), "closure_by": data.closure_by or actor},
                )
            )
            self.db.flush()
            self._mirror_closure(case, closure, actor)

        logger.info("Mohs case closed case_id={} closure_type={}", case_id, data.closure_type)
        return CaseRead.model_validate(case)

    def list_cases(
        self,
        tenant_id: str,
        filters: CaseFilters | dict[str, Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> CaseListResponse:
        criteria = coerce_input(CaseFilters, filters or {})
        limit = self.settings.default_page_size if limit is None else limit
        if not 1 <= limit <= self.settings.max_page_size:
            raise InvalidArgument(f"limit must be between 1 and {self.settings.max_page_size}")
        if offset < 0:
            raise InvalidArgument("offset must not be negative")

        scope = self._scope(tenant_id)
        query = scope.query(models.MohsCase).filter(models.MohsCase.deleted_at.is_(None))
        if criteria.surgeon_id:
            query = query.filter(models.MohsCase.surgeon_id == criteria.surgeon_id)
        if criteria.patient_id:
            query = query.filter(models.MohsCase.patient_id == criteria.patient_id)
        if criteria.status:
            query = query.filter(models.MohsCase.status == criteria.status)
        if criteria.start_date:
            query = query.filter(models.MohsCase.case_date >= criteria.start_date)
        if criteria.end_date:
            query = query.filter(models.MohsCase.case_date <= criteria.end_date)
        if criteria.tumor_type:
            query = query.filter(models.MohsCase.tumor_type == criteria.tumor_type)

        total = query.count()
        rows = (
            query.order_by(
                models.MohsCase.case_date.desc(),
                models.MohsCase.created_at.desc(),
                models.MohsCase.id.desc(),
            )
            .limit(limit)
            .offset(offset)
            .all()
        )
        return CaseListResponse(
            cases=[CaseRead.model_validate(row) for row in rows],
            total=total,
            limit=limit,
            offset=offset,
        )

    def update_case_details(
        self, tenant_id: str, case_id: int, fields: CaseUpdate | dict[str, Any], actor: str | None = None
    ) -> CaseRead:
        data = coerce_input(CaseUpdate, fields)
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise InvalidArgument("No fields to update")
        cleared = [field for field in ("tumor_location", "tumor_type") if field in changes and changes[field] is None]
        if cleared:
            raise InvalidArgument("Required fields cannot be cleared", details={"fields": cleared})
        scope = self._scope(tenant_id)
        load_case(scope, case_id)

        with scope.transaction("update_case_details"):
            case = load_case(scope, case_id, for_update=True)
            for field, value in changes.items():
                setattr(case, field, value)
            case.updated_by = actor
            case.updated_at = utcnow()

        logger.info("Mohs case updated case_id={} fields={}", case_id, sorted(changes))
        return CaseRead.model_validate(case)

    def delete_case(self, tenant_id: str, case_id: int, actor: str | None = None) -> None:
        scope = self._scope(tenant_id)
        load_case(scope, case_id)

        with scope.transaction("delete_case"):
            case = load_case(scope, case_id, for_update=True)
            now = utcnow()
            case.deleted_at = now
            case.updated_by = actor
            case.updated_at = now

        logger.info("Mohs case deleted case_id={} by={}", case_id, actor)
