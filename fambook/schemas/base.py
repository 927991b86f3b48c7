from typing import Any, Type, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from fambook.errors import ValidationError, format_validation_errors

T = TypeVar("T", bound=BaseModel)


class CamelModel(BaseModel):
    """Request bodies use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def parse_payload(schema: Type[T], payload: Any) -> T:
    """
    Validates a raw body after authorization has run, so a caller
    without access is refused before their input is looked at.
    """
    try:
        return schema.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError("Invalid input", errors=format_validation_errors(exc.errors()))
