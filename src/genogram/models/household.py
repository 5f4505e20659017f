"""Household polygons drawn around people who live together."""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .base import GenogramModel, new_id, sequence_or_empty

DEFAULT_HOUSEHOLD_COLOR = "#6366f1"


class Point(BaseModel):
    """A canvas coordinate. Accepts ``{"x", "y"}`` or an ``(x, y)`` pair."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, data: Any) -> Any:
        if isinstance(data, Sequence) and not isinstance(data, str) and len(data) == 2:
            return {"x": data[0], "y": data[1]}
        return data


class Household(GenogramModel):
    """A closed polygon on the canvas.

    ``members`` is derived from person positions and is refreshed by the
    store whenever people move or any household changes shape.
    """

    id: str = Field(default_factory=new_id)
    name: str = ""
    color: str = DEFAULT_HOUSEHOLD_COLOR
    notes: str = ""
    points: tuple[Point, ...] = ()
    members: tuple[str, ...] = ()

    @field_validator("points", "members", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        return sequence_or_empty(value)

    @field_validator("name", "notes", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def is_closed(self) -> bool:
        return len(self.points) >= 3
