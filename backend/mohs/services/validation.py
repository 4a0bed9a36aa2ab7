from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from mohs.core.errors import InvalidArgument

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def coerce_input(schema: type[SchemaT], payload: SchemaT | dict[str, Any]) -> SchemaT:
    if isinstance(payload, schema):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise InvalidArgument(
            f"Invalid {schema.__name__}",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc
