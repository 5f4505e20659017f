"""Interaction states for linking nodes on the canvas.

``Idle`` and ``Connecting`` model the two-click "connect" gesture. The child
link outcomes describe what happens when an existing person is attached as
the child of someone: either it links straight away, or the caller has to
pick how the other parent should be represented.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..models import PartnershipEdge


class SourceKind(str, Enum):
    """What the first click of a connection landed on."""

    PERSON = "person"
    RELATIONSHIP = "relationship"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Connecting:
    source_id: str
    source_kind: SourceKind = SourceKind.PERSON
    relation_type: str = "marriage"


ConnectionState = Idle | Connecting

IDLE = Idle()


class CoParentOption(str, Enum):
    """Ways to resolve a child link when the parent's partner is unclear."""

    UNKNOWN = "unknown"  # Add an "Unknown" co-parent
    NEW_PARTNER = "newPartner"  # Add a new partner with a marriage edge
    SINGLE_ADOPTION = "singleAdoption"  # Self-referencing adoption edge
    SELECT_PARTNER = "selectPartner"  # Use an existing partnership


@dataclass(frozen=True)
class ChildLinked:
    """The child was attached to ``partnership_id`` by ``child_edge_id``."""

    partnership_id: str
    child_edge_id: str


@dataclass(frozen=True)
class CoParentNeeded:
    """The parent has no partnership yet."""

    parent_id: str
    child_id: str
    options: tuple[CoParentOption, ...] = (
        CoParentOption.UNKNOWN,
        CoParentOption.NEW_PARTNER,
        CoParentOption.SINGLE_ADOPTION,
    )


@dataclass(frozen=True)
class PartnerSelectionNeeded:
    """The parent has several partnerships; one must be chosen."""

    parent_id: str
    child_id: str
    candidates: tuple[PartnershipEdge, ...]


ChildLinkOutcome = ChildLinked | CoParentNeeded | PartnerSelectionNeeded
