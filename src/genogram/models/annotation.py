"""Free-floating canvas annotations and tag definitions."""
from __future__ import annotations

from pydantic import Field

from .base import GenogramModel, new_id


class TextBox(GenogramModel):
    """A positioned rich-text note, independent of the relational graph."""

    id: str = Field(default_factory=new_id)
    x: float = 0.0
    y: float = 0.0
    width: float = 200.0
    height: float = 100.0
    html: str = ""


class TagDefinition(GenogramModel):
    """A named, colored label that can be attached to people."""

    id: str = Field(default_factory=new_id)
    name: str
    color: str = "#6366f1"
    description: str = ""
