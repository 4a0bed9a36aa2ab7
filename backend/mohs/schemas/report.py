from pydantic import BaseModel, Field

from mohs.schemas.common import BaseSchema, InputSchema


class CaseReport(BaseModel):
    case_id: int
    report: str
    cpt_codes: list[str]


class CptCalculationRequest(InputSchema):
    tumor_location: str = Field(min_length=1)
    stage_count: int = Field(ge=0)
    total_block_count: int = 0


class CptCalculation(BaseModel):
    tumor_location: str
    stage_count: int
    total_block_count: int
    is_complex_location: bool
    codes: list[str]


class CptReferenceRead(BaseSchema):
    code: str
    description: str
    category: str
    body_area: str | None = None
    stage_type: str | None = None
    notes: str | None = None
