from datetime import date

from pydantic import BaseModel, model_validator


class DateRange(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self


class MohsStats(BaseModel):
    total_cases: int = 0
    avg_stages_per_case: float = 0.0
    clearance_rate_first_stage: float = 0.0
    clearance_rate_overall: float = 0.0
    avg_turnaround_minutes: float = 0.0
    cases_by_tumor_type: dict[str, int] = {}
    cases_by_location: dict[str, int] = {}
    closure_type_distribution: dict[str, int] = {}
