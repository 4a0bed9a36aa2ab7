from __future__ import annotations

from collections import Counter
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from mohs.db import models
from mohs.db.tenant import TenantScope
from mohs.schemas.enums import CaseStatus, StageMarginStatus
from mohs.schemas.stats import DateRange, MohsStats
from mohs.services.validation import coerce_input
from mohs.services.workflow import REPORTABLE_STATUSES


def _rate(part: int, whole: int) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100, 2)


def _mean(values: list[float]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


def _distribution(values: Iterable[Any]) -> dict[str, int]:
    return dict(Counter(str(value) for value in values if value is not None))


class StatsAggregator:
    """Read-only practice analytics. Every figure is 0 when nothing qualifies."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _filtered_cases(
        self, scope: TenantScope, surgeon_id: str | None, date_range: DateRange | None
    ) -> Query[models.MohsCase]:
        query = scope.query(models.MohsCase).filter(models.MohsCase.deleted_at.is_(None))
        if surgeon_id:
            query = query.filter(models.MohsCase.surgeon_id == surgeon_id)
        if date_range:
            query = query.filter(
                models.MohsCase.case_date >= date_range.start_date,
                models.MohsCase.case_date <= date_range.end_date,
            )
        return query

    def _stage_outcomes(self, scope: TenantScope, case_ids: list[int]) -> tuple[int, int]:
        """Count cases cleared on the first stage, and cases whose last stage is negative."""
        if not case_ids:
            return 0, 0
        negative = StageMarginStatus.NEGATIVE.value
        first_stage_clear = (
            scope.query(models.MohsStage)
            .filter(
                models.MohsStage.case_id.in_(case_ids),
                models.MohsStage.stage_number == 1,
                models.MohsStage.margin_status == negative,
            )
            .count()
        )
        last_stage = (
            scope.query_columns(
                models.MohsStage,
                models.MohsStage.case_id,
                func.max(models.MohsStage.stage_number).label("last_stage"),
            )
            .filter(models.MohsStage.case_id.in_(case_ids))
            .group_by(models.MohsStage.case_id)
            .subquery()
        )
        cleared = (
            scope.query(models.MohsStage)
            .join(
                last_stage,
                (models.MohsStage.case_id == last_stage.c.case_id)
                & (models.MohsStage.stage_number == last_stage.c.last_stage),
            )
            .filter(models.MohsStage.margin_status == negative)
            .count()
        )
        return first_stage_clear, cleared

    def get_stats(
        self,
        tenant_id: str,
        surgeon_id: str | None = None,
        date_range: DateRange | dict[str, Any] | None = None,
    ) -> MohsStats:
        scope = TenantScope(self.db, tenant_id)
        window = coerce_input(DateRange, date_range) if date_range is not None else None
        cases = self._filtered_cases(scope, surgeon_id, window).all()

        qualifying = [case for case in cases if CaseStatus(case.status) in REPORTABLE_STATUSES]
        total = len(qualifying)
        first_stage_clear, cleared = self._stage_outcomes(scope, [case.id for case in qualifying])
        turnarounds = [
            (case.end_time - case.start_time).total_seconds() / 60
            for case in qualifying
            if case.start_time and case.end_time
        ]

        return MohsStats(
            total_cases=total,
            avg_stages_per_case=_mean([case.total_stages or 0 for case in qualifying]),
            clearance_rate_first_stage=_rate(first_stage_clear, total),
            clearance_rate_overall=_rate(cleared, total),
            avg_turnaround_minutes=_mean(turnarounds),
            cases_by_tumor_type=_distribution(case.tumor_type for case in cases),
            cases_by_location=_distribution(case.tumor_location for case in cases),
            closure_type_distribution=_distribution(case.closure_type for case in cases),
        )
