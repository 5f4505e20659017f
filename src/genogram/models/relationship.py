"""Relationship edges.

The relationship table holds two shapes of edge. A partnership edge joins two
people. A child edge hangs from a partnership edge and points at the child,
so its ``from`` is a relationship id, not a person id. On the wire both are
plain ``{id, type, from, to}`` records told apart by ``type == "child"``.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import Discriminator, Field, Tag, TypeAdapter, field_validator, model_validator

from .base import DiscoveryMetadata, GenogramModel, coerce_enum, fold_discovery_fields, new_id
from .enums import (
    INACTIVE_RELATIONSHIP_TYPES,
    ConnectionStatus,
    PlacementStatus,
    RelationshipType,
)

CHILD_EDGE_TYPE = RelationshipType.CHILD.value


class _Edge(GenogramModel):
    id: str = Field(default_factory=new_id)
    connection_status: ConnectionStatus = ConnectionStatus.CONFIRMED
    discovery: DiscoveryMetadata = Field(
        default_factory=DiscoveryMetadata, alias="discoveryMetadata"
    )
    color: str | None = None
    line_style: str = "default"
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def _fold_discovery(cls, data: Any) -> Any:
        return fold_discovery_fields(data)

    @field_validator("connection_status", mode="before")
    @classmethod
    def _connection_status(cls, value: Any) -> ConnectionStatus:
        return coerce_enum(ConnectionStatus, value, ConnectionStatus.CONFIRMED)

    @field_validator("is_active", mode="before")
    @classmethod
    def _is_active(cls, value: Any) -> Any:
        return True if value is None else value


class PartnershipEdge(_Edge):
    """An edge between two people (marriage, sibling, conflict, ...)."""

    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    type: str = RelationshipType.MARRIAGE.value
    placement_status: PlacementStatus | None = None  # Legacy; see Placement
    placement_notes: str = ""
    start_date: str = ""
    end_date: str = ""
    notes: str = ""
    abbr: str = ""
    bubble_position: float = 0.5

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, value: Any) -> Any:
        if isinstance(value, RelationshipType):
            value = value.value
        if value == CHILD_EDGE_TYPE:
            raise ValueError("child edges must be built as ChildEdge")
        return value or RelationshipType.MARRIAGE.value

    @field_validator("placement_status", mode="before")
    @classmethod
    def _placement_status(cls, value: Any) -> PlacementStatus | None:
        if value is None or value == "":
            return None
        return coerce_enum(PlacementStatus, value, PlacementStatus.NOT_APPLICABLE)

    @field_validator("start_date", "end_date", "notes", "abbr", "placement_notes", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def kind(self) -> RelationshipType:
        return RelationshipType.parse(self.type)

    @property
    def endpoints(self) -> tuple[str, str]:
        return (self.from_id, self.to_id)

    def involves(self, person_id: str) -> bool:
        return person_id in (self.from_id, self.to_id)

    def partner_of(self, person_id: str) -> str | None:
        """The other endpoint, or None if ``person_id`` is not on this edge."""
        if self.from_id == person_id:
            return self.to_id
        if self.to_id == person_id:
            return self.from_id
        return None


class ChildEdge(_Edge):
    """Parentage: from a partnership edge to the child person."""

    parent_edge_id: str = Field(alias="from")
    child_id: str = Field(alias="to")
    type: Literal["child"] = "child"


Relationship = Annotated[
    Union[
        Annotated[ChildEdge, Tag("child")],
        Annotated[PartnershipEdge, Tag("partnership")],
    ],
    Discriminator(
        lambda v: "child"
        if (v.get("type") if isinstance(v, Mapping) else getattr(v, "type", None)) == CHILD_EDGE_TYPE
        else "partnership"
    ),
]

_relationship_adapter: TypeAdapter[PartnershipEdge | ChildEdge] = TypeAdapter(Relationship)


def parse_relationship(data: Mapping[str, Any] | PartnershipEdge | ChildEdge) -> PartnershipEdge | ChildEdge:
    """Build the right edge variant from a wire record."""
    if isinstance(data, (PartnershipEdge, ChildEdge)):
        return data
    return _relationship_adapter.validate_python(data)


def is_active_for(relationship_type: str) -> bool:
    """Whether a partnership of this type is still ongoing."""
    return RelationshipType.parse(relationship_type) not in INACTIVE_RELATIONSHIP_TYPES
