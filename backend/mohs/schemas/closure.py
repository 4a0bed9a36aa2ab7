from datetime import datetime
from typing import Any

from pydantic import Field

from mohs.schemas.common import InputSchema, Timestamped, CodeList, JsonObject
from mohs.schemas.enums import ClosureType


class ClosureCreate(InputSchema):
    closure_type: ClosureType
    closure_subtype: str | None = None
    closure_by: str | None = None
    repair_length_cm: float | None = Field(default=None, ge=0)
    repair_width_cm: float | None = Field(default=None, ge=0)
    repair_area_sq_cm: float | None = Field(default=None, ge=0)
    repair_cpt_codes: list[str] = Field(default_factory=list)
    flap_graft_details: dict[str, Any] = Field(default_factory=dict)
    suture_layers: int | None = Field(default=None, ge=0)
    deep_sutures: str | None = None
    superficial_sutures: str | None = None
    suture_removal_days: int | None = Field(default=None, ge=0)
    dressing_type: str | None = None
    pressure_dressing: bool = False
    closure_notes: str | None = None
    technique_notes: str | None = None


class ClosureRead(Timestamped):
    id: int
    case_id: int
    closure_type: str
    closure_subtype: str | None = None
    closure_by: str | None = None
    closure_time: datetime | None = None
    repair_length_cm: float | None = None
    repair_width_cm: float | None = None
    repair_area_sq_cm: float | None = None
    repair_cpt_codes: CodeList
    flap_graft_details: JsonObject
    suture_layers: int | None = None
    deep_sutures: str | None = None
    superficial_sutures: str | None = None
    suture_removal_days: int | None = None
    dressing_type: str | None = None
    pressure_dressing: bool = False
    closure_notes: str | None = None
    technique_notes: str | None = None
