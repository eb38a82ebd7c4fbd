"""
Shared pydantic base for models that cross the engine boundary.

Wire format is camelCase (``traineeId``, ``courseStatus``) because datasets
arrive from spreadsheet/JSON collaborators and results go to a JavaScript
dashboard. Python code constructs and reads models with snake_case names;
``model_dump(by_alias=True)`` produces the wire shape.
"""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Course and trainee identifiers come from spreadsheet exports: usually
# integers, sometimes opaque strings (e.g. member codes).
EntityId = Union[int, str]


class WireModel(BaseModel):
    """Frozen model with camelCase aliases; accepts either naming on input."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """Return the JSON-ready camelCase representation."""
        return self.model_dump(mode="json", by_alias=True)


def coerce_entity_id(value: object) -> EntityId:
    """Normalise a raw identifier: purely numeric text becomes ``int``."""
    if isinstance(value, bool):
        raise ValueError("Boolean is not a valid identifier.")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    text = str(value).strip()
    if not text:
        raise ValueError("Identifier is empty.")
    if text.isdigit():
        return int(text)
    return text
