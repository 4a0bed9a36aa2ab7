from datetime import datetime

from pydantic import Field

from mohs.schemas.common import BaseSchema, InputSchema, Timestamped
from mohs.schemas.enums import BlockMarginStatus


class StageCreate(InputSchema):
    stage_number: int = Field(ge=1)
    excision_time: datetime | None = None
    excision_width_mm: float | None = Field(default=None, ge=0)
    excision_length_mm: float | None = Field(default=None, ge=0)
    excision_depth_mm: float | None = Field(default=None, ge=0)
    tissue_processor: str | None = None
    histology_tech: str | None = None
    stain_type: str | None = None
    notes: str | None = None


class BlockMargin(InputSchema):
    block_label: str = Field(min_length=1, max_length=10)
    position: str | None = Field(default=None, max_length=50)
    position_degrees: int | None = Field(default=None, ge=0, le=360)
    margin_status: BlockMarginStatus
    deep_margin_status: BlockMarginStatus | None = None
    depth_mm: float | None = Field(default=None, ge=0)
    tumor_type_found: str | None = None
    tumor_percentage: float | None = Field(default=None, ge=0, le=100)
    notes: str | None = None


class MarginsRequest(InputSchema):
    margins: list[BlockMargin]


class BlockRead(Timestamped):
    id: int
    stage_id: int
    block_label: str
    position: str | None = None
    position_degrees: int | None = None
    margin_status: str
    deep_margin_status: str | None = None
    depth_mm: float | None = None
    tumor_type_found: str | None = None
    tumor_percentage: float | None = None
    notes: str | None = None
    updated_at: datetime


class StageRead(Timestamped):
    id: int
    case_id: int
    stage_number: int
    excision_time: datetime | None = None
    frozen_section_time: datetime | None = None
    reading_time: datetime | None = None
    margin_status: str
    margin_status_details: str | None = None
    tissue_processor: str | None = None
    histology_tech: str | None = None
    stain_type: str | None = None
    excision_width_mm: float | None = None
    excision_length_mm: float | None = None
    excision_depth_mm: float | None = None
    notes: str | None = None
    pathologist_notes: str | None = None
    block_count: int = 0


class StageSnapshot(StageRead):
    blocks: tuple[BlockRead, ...] = ()


class MarginsRecorded(BaseSchema):
    stage_id: int
    blocks: list[BlockRead]
    stage_margin_status: str
    case_status: str
