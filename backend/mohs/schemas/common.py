from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _none_as_empty_list(value: Any) -> Any:
    return [] if value is None else value


def _none_as_empty_dict(value: Any) -> Any:
    return {} if value is None else value


# JSON columns may hold NULL on rows written before defaults existed
CodeList = Annotated[list[str], BeforeValidator(_none_as_empty_list), Field(default_factory=list)]
JsonList = Annotated[list[dict[str, Any]], BeforeValidator(_none_as_empty_list), Field(default_factory=list)]
JsonObject = Annotated[dict[str, Any], BeforeValidator(_none_as_empty_dict), Field(default_factory=dict)]


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class Timestamped(BaseSchema):
    created_at: datetime


class InputSchema(BaseModel):
    model_config = ConfigDict(use_enum_values=True, extra="forbid", str_strip_whitespace=True)
