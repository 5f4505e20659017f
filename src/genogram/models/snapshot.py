"""Immutable whole-graph snapshots.

Entity tables are insertion-ordered ``id -> entity`` dicts. A new snapshot
copies only the tables a command touches and reuses every unchanged entity
object, so consecutive snapshots share almost all of their memory. Tables are
read-only views; commands build new dicts instead of editing them.
"""
from __future__ import annotations

import dataclasses
import types
from collections import deque
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from .annotation import TagDefinition, TextBox
from .household import Household
from .person import Person
from .placement import Placement
from .relationship import ChildEdge, PartnershipEdge

Edge = PartnershipEdge | ChildEdge

_TABLES = (
    "people",
    "relationships",
    "households",
    "placements",
    "text_boxes",
    "tag_definitions",
    "metadata",
)


@dataclass(frozen=True)
class HistoryEntry:
    """The part of the graph that undo/redo restores."""

    people: Mapping[str, Person]
    relationships: Mapping[str, Edge]
    households: Mapping[str, Household]
    text_boxes: Mapping[str, TextBox]


@dataclass(frozen=True)
class GraphSnapshot:
    people: Mapping[str, Person] = field(default_factory=dict)
    relationships: Mapping[str, Edge] = field(default_factory=dict)
    households: Mapping[str, Household] = field(default_factory=dict)
    placements: Mapping[str, Placement] = field(default_factory=dict)
    text_boxes: Mapping[str, TextBox] = field(default_factory=dict)
    tag_definitions: Mapping[str, TagDefinition] = field(default_factory=dict)
    custom_attributes: tuple[Mapping[str, Any], ...] = ()
    filter_templates: tuple[Mapping[str, Any], ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in _TABLES:
            table = getattr(self, name)
            if not isinstance(table, types.MappingProxyType):
                object.__setattr__(self, name, types.MappingProxyType(dict(table)))

    def replace(self, **changes: Any) -> GraphSnapshot:
        return dataclasses.replace(self, **changes)

    def history_view(self) -> HistoryEntry:
        return HistoryEntry(
            people=self.people,
            relationships=self.relationships,
            households=self.households,
            text_boxes=self.text_boxes,
        )

    def restore(self, entry: HistoryEntry) -> GraphSnapshot:
        """Swap in a history entry, keeping placements, tags and metadata."""
        return self.replace(
            people=entry.people,
            relationships=entry.relationships,
            households=entry.households,
            text_boxes=entry.text_boxes,
        )

    # --- relationship traversal -------------------------------------------

    def partnerships(self) -> Iterator[PartnershipEdge]:
        for rel in self.relationships.values():
            if isinstance(rel, PartnershipEdge):
                yield rel

    def child_edges(self) -> Iterator[ChildEdge]:
        for rel in self.relationships.values():
            if isinstance(rel, ChildEdge):
                yield rel

    def partnerships_of(self, person_id: str) -> list[PartnershipEdge]:
        return [rel for rel in self.partnerships() if rel.involves(person_id)]

    def children_of(self, partnership_id: str) -> list[ChildEdge]:
        """Child edges hanging from a partnership, in table order."""
        return [rel for rel in self.child_edges() if rel.parent_edge_id == partnership_id]

    def parent_edges_of(self, child_id: str) -> list[ChildEdge]:
        return [rel for rel in self.child_edges() if rel.child_id == child_id]

    def parent_partnership(self, edge: ChildEdge) -> PartnershipEdge | None:
        parent = self.relationships.get(edge.parent_edge_id)
        return parent if isinstance(parent, PartnershipEdge) else None

    def placements_for_child(self, child_id: str) -> list[Placement]:
        return [p for p in self.placements.values() if p.child_id == child_id]

    def households_of(self, person_id: str) -> list[str]:
        """Ids of households whose current membership includes the person."""
        return [h.id for h in self.households.values() if person_id in h.members]

    def connected_people(self, start_ids: Iterable[str]) -> list[str]:
        """People reachable from ``start_ids`` through any relationship.

        A child edge joins the child to both parents of its partnership, so
        whole family branches come back together. Ids are returned in the
        order they were reached.
        """
        neighbours: dict[str, set[str]] = {}

        def link(a: str, b: str) -> None:
            if a != b:
                neighbours.setdefault(a, set()).add(b)
                neighbours.setdefault(b, set()).add(a)

        for rel in self.partnerships():
            link(rel.from_id, rel.to_id)
        for edge in self.child_edges():
            parent = self.parent_partnership(edge)
            if parent is not None:
                link(parent.from_id, edge.child_id)
                link(parent.to_id, edge.child_id)

        seen: dict[str, None] = {}
        queue = deque(pid for pid in start_ids if pid in self.people)
        while queue:
            person_id = queue.popleft()
            if person_id in seen:
                continue
            seen[person_id] = None
            queue.extend(sorted(neighbours.get(person_id, ()) - seen.keys()))
        return [pid for pid in seen if pid in self.people]
