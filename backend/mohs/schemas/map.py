from typing import Any

from pydantic import Field

from mohs.schemas.common import InputSchema, Timestamped, JsonList
from mohs.schemas.enums import MapType


class MapCreate(InputSchema):
    stage_id: int | None = None
    map_type: MapType = Field(default=MapType.TUMOR, validate_default=True)
    map_svg: str
    annotations: list[dict[str, Any]] = Field(default_factory=list)
    orientation_12_oclock: str | None = Field(default=None, max_length=50)


class MapRead(Timestamped):
    id: int
    case_id: int
    stage_id: int | None = None
    map_type: str
    map_svg: str | None = None
    annotations: JsonList
    orientation_12_oclock: str | None = None
    version: int
    created_by: str | None = None
