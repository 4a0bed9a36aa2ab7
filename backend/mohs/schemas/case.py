from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from mohs.schemas.closure import ClosureRead
from mohs.schemas.common import BaseSchema, InputSchema, Timestamped, CodeList
from mohs.schemas.enums import CaseStatus, Laterality
from mohs.schemas.map import MapRead
from mohs.schemas.stage import StageSnapshot


class TumorData(InputSchema):
    tumor_location: str = Field(min_length=1, max_length=255)
    tumor_location_code: str | None = Field(default=None, max_length=20)
    tumor_laterality: Laterality | None = None
    tumor_type: str = Field(min_length=1, max_length=100)
    tumor_subtype: str | None = None
    tumor_histology: str | None = None
    clinical_description: str | None = None
    pre_op_size_mm: float | None = Field(default=None, ge=0)
    pre_op_width_mm: float | None = Field(default=None, ge=0)
    pre_op_length_mm: float | None = Field(default=None, ge=0)
    prior_biopsy_id: str | None = None
    prior_pathology_diagnosis: str | None = None
    prior_pathology_date: date | None = None


class CaseCreate(TumorData):
    patient_id: str = Field(min_length=1)
    surgeon_id: str = Field(min_length=1)
    assistant_id: str | None = None
    encounter_id: str | None = None
    case_date: date | None = None


class CaseUpdate(InputSchema):
    tumor_location: str | None = Field(default=None, min_length=1, max_length=255)
    tumor_location_code: str | None = None
    tumor_laterality: Laterality | None = None
    tumor_type: str | None = Field(default=None, min_length=1, max_length=100)
    tumor_subtype: str | None = None
    tumor_histology: str | None = None
    clinical_description: str | None = None
    pre_op_size_mm: float | None = Field(default=None, ge=0)
    pre_op_width_mm: float | None = Field(default=None, ge=0)
    pre_op_length_mm: float | None = Field(default=None, ge=0)
    pre_op_depth_mm: float | None = Field(default=None, ge=0)
    final_defect_size_mm: float | None = Field(default=None, ge=0)
    final_defect_width_mm: float | None = Field(default=None, ge=0)
    final_defect_length_mm: float | None = Field(default=None, ge=0)
    final_defect_depth_mm: float | None = Field(default=None, ge=0)
    anesthesia_type: str | None = None
    anesthesia_agent: str | None = None
    anesthesia_volume_ml: float | None = Field(default=None, ge=0)
    pre_op_notes: str | None = None
    post_op_notes: str | None = None
    operative_notes: str | None = None
    complications: str | None = None
    consent_obtained: bool | None = None
    assistant_id: str | None = None
    mohs_cpt_codes: list[str] | None = None


class CaseStatusUpdate(InputSchema):
    status: CaseStatus


class CaseFilters(InputSchema):
    surgeon_id: str | None = None
    patient_id: str | None = None
    status: CaseStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    tumor_type: str | None = None


class CaseRead(Timestamped):
    id: int
    tenant_id: str
    case_number: str
    patient_id: str
    surgeon_id: str
    assistant_id: str | None = None
    encounter_id: str | None = None
    case_date: date
    tumor_location: str
    tumor_location_code: str | None = None
    tumor_laterality: str | None = None
    tumor_type: str
    tumor_subtype: str | None = None
    tumor_histology: str | None = None
    clinical_description: str | None = None
    pre_op_size_mm: float | None = None
    pre_op_width_mm: float | None = None
    pre_op_length_mm: float | None = None
    pre_op_depth_mm: float | None = None
    final_defect_size_mm: float | None = None
    final_defect_width_mm: float | None = None
    final_defect_length_mm: float | None = None
    final_defect_depth_mm: float | None = None
    prior_biopsy_id: str | None = None
    prior_pathology_diagnosis: str | None = None
    prior_pathology_date: date | None = None
    anesthesia_type: str | None = None
    anesthesia_agent: str | None = None
    anesthesia_volume_ml: float | None = None
    pre_op_notes: str | None = None
    post_op_notes: str | None = None
    operative_notes: str | None = None
    complications: str | None = None
    consent_obtained: bool = False
    status: str
    total_stages: int = 0
    start_time: datetime | None = None
    end_time: datetime | None = None
    closure_type: str | None = None
    closure_subtype: str | None = None
    closure_performed_by: str | None = None
    mohs_cpt_codes: CodeList
    repair_cpt_codes: CodeList
    created_by: str | None = None
    updated_by: str | None = None
    updated_at: datetime


class PartyRead(BaseSchema):
    id: str
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class PatientRead(PartyRead):
    mrn: str | None = None
    dob: date | None = None


class CaseSnapshot(BaseModel):
    """Immutable projection of one case with its ordered child collections."""

    model_config = ConfigDict(frozen=True)

    case: CaseRead
    patient: PatientRead | None = None
    surgeon: PartyRead | None = None
    assistant: PartyRead | None = None
    stages: tuple[StageSnapshot, ...] = ()
    closures: tuple[ClosureRead, ...] = ()
    maps: tuple[MapRead, ...] = ()

    @property
    def latest_closure(self) -> ClosureRead | None:
        return self.closures[-1] if self.closures else None

    @property
    def total_block_count(self) -> int:
        return sum(stage.block_count for stage in self.stages)


class CaseListResponse(BaseModel):
    cases: list[CaseRead]
    total: int
    limit: int
    offset: int
