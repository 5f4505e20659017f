"""Command handler for the genogram graph.

``GenogramStore`` owns one authoritative ``GraphSnapshot``. Each command
builds a new snapshot and swaps it in as a whole, so a command either applies
completely or leaves the store untouched. Update and delete commands against
unknown ids return the current snapshot unchanged; commands that would break
a structural rule raise ``ValidationRefusal`` before anything changes.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any, TypeVar

from ..config import CONFIG, EngineConfig
from ..exceptions import ValidationRefusal
from ..geometry import compute_membership, nearest_edge_index, with_members
from ..logging import get_logger
from ..models import (
    PARENT_RELATIONSHIP_TYPES,
    ChildEdge,
    ConnectionStatus,
    Edge,
    GenogramModel,
    GraphSnapshot,
    Household,
    PartnershipEdge,
    Person,
    Placement,
    PlacementStatus,
    Point,
    RelationshipType,
    TagDefinition,
    TextBox,
    is_active_for,
    parse_relationship,
)
from . import layout
from .connection import (
    IDLE,
    ChildLinked,
    ChildLinkOutcome,
    CoParentNeeded,
    CoParentOption,
    Connecting,
    ConnectionState,
    PartnerSelectionNeeded,
    SourceKind,
)
from .history import History

logger = get_logger(__name__)

M = TypeVar("M", bound=GenogramModel)

# Rotating palette for new relationship lines
RELATIONSHIP_COLORS = ("#ec4899", "#3b82f6", "#10b981", "#f59e0b", "#8b5cf6")
DEFAULT_CHILD_EDGE_COLOR = "#3b82f6"
UNKNOWN_PARENT_COLOR = "#9ca3af"
ADOPTION_COLOR = "#06b6d4"

MIN_HOUSEHOLD_POINTS = 3
NEW_PARTNER_OFFSET_X = 120.0

_OPPOSITE_GENDER = {"male": "female", "female": "male"}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _build(model: type[M], value: M | Mapping[str, Any] | None, fields: Mapping[str, Any]) -> M:
    if isinstance(value, model):
        return value.apply_updates(fields) if fields else value
    data = dict(value or {})
    data.update(fields)
    return model.model_validate(data)


def _with(table: Mapping[str, M], *entities: M) -> dict[str, M]:
    updated = dict(table)
    for entity in entities:
        updated[entity.id] = entity
    return updated


def _without(table: Mapping[str, M], ids: Iterable[str]) -> dict[str, M]:
    drop = set(ids)
    return {key: value for key, value in table.items() if key not in drop}


def _strip_id(updates: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in updates.items() if k != "id"}


class GenogramStore:
    """The mutable front door to an immutable graph.

    Several stores can live side by side; nothing here is global. Besides the
    snapshot the store tracks interaction state that never enters history:
    the connection gesture, a pending child-link decision and the household
    being drawn.
    """

    def __init__(self, snapshot: GraphSnapshot | None = None, config: EngineConfig = CONFIG) -> None:
        self.config = config
        self.snapshot = snapshot if snapshot is not None else GraphSnapshot()
        self.connection: ConnectionState = IDLE
        self.pending_child_link: CoParentNeeded | PartnerSelectionNeeded | None = None
        self.drawing_points: tuple[Point, ...] | None = None
        self.history = History(config.history_limit)

    # --- internals ----------------------------------------------------------

    def _commit(self, snapshot: GraphSnapshot) -> GraphSnapshot:
        self.snapshot = snapshot
        return snapshot

    def _refresh_households(self, snapshot: GraphSnapshot) -> GraphSnapshot:
        households = with_members(
            snapshot.households.values(),
            snapshot.people.values(),
            self.config.household_buffer,
        )
        return snapshot.replace(households={h.id: h for h in households})

    def _next_color(self, snapshot: GraphSnapshot | None = None) -> str:
        snapshot = snapshot or self.snapshot
        return RELATIONSHIP_COLORS[len(snapshot.relationships) % len(RELATIONSHIP_COLORS)]

    def _refuse(self, message: str, entity_id: str | None = None) -> ValidationRefusal:
        logger.info("command_refused", message=message, entity_id=entity_id)
        return ValidationRefusal(message, entity_id)

    # --- people -------------------------------------------------------------

    def add_person(self, person: Person | Mapping[str, Any] | None = None, **fields: Any) -> GraphSnapshot:
        person = _build(Person, person, fields)
        if person.id in self.snapshot.people:
            raise self._refuse("A person with this id already exists", person.id)
        snapshot = self.snapshot.replace(people=_with(self.snapshot.people, person))
        return self._commit(self._refresh_households(snapshot))

    def update_person(self, person_id: str, updates: Mapping[str, Any]) -> GraphSnapshot:
        current = self.snapshot.people.get(person_id)
        if current is None:
            return self.snapshot
        updates = _strip_id(updates)
        snapshot = self.snapshot.replace(people=_with(self.snapshot.people, current.merge(updates)))
        if {"x", "y"} & set(updates):
            snapshot = self._refresh_households(snapshot)
        return self._commit(snapshot)

    def move_person(self, person_id: str, x: float, y: float) -> GraphSnapshot:
        return self.update_person(person_id, {"x": x, "y": y})

    def delete_person(self, person_id: str) -> GraphSnapshot:
        """Remove a person and everything that points at them.

        Relationships with the person as an endpoint go, then child edges
        hanging from those relationships, then placements naming the person.
        If the person was a child, the remaining siblings of each parent
        partnership are re-spaced around the parents.
        """
        snapshot = self.snapshot
        if person_id not in snapshot.people:
            return snapshot

        removed = {
            rel.id
            for rel in snapshot.relationships.values()
            if (isinstance(rel, PartnershipEdge) and rel.involves(person_id))
            or (isinstance(rel, ChildEdge) and rel.child_id == person_id)
        }
        cascaded = {rel.id for rel in snapshot.child_edges() if rel.parent_edge_id in removed}

        people = _without(snapshot.people, [person_id])
        for edge in snapshot.parent_edges_of(person_id):
            people = self._respace_after_removal(snapshot, people, edge.parent_edge_id, person_id)

        placements = {
            pid: p
            for pid, p in snapshot.placements.items()
            if person_id not in (p.child_id, p.caregiver_id)
        }
        if cascaded:
            logger.debug("relationship_cascade", removed=sorted(removed), child_edges=sorted(cascaded))
        logger.debug(
            "person_deleted",
            person_id=person_id,
            relationships=len(removed | cascaded),
            placements=len(snapshot.placements) - len(placements),
        )
        snapshot = snapshot.replace(
            people=people,
            relationships=_without(snapshot.relationships, removed | cascaded),
            placements=placements,
        )
        return self._commit(self._refresh_households(snapshot))

    def _respace_after_removal(
        self,
        snapshot: GraphSnapshot,
        people: dict[str, Person],
        partnership_id: str,
        removed_child: str,
    ) -> dict[str, Person]:
        partnership = snapshot.relationships.get(partnership_id)
        if not isinstance(partnership, PartnershipEdge):
            return people
        centre = layout.parents_centre(
            [snapshot.people.get(partnership.from_id), snapshot.people.get(partnership.to_id)]
        )
        if centre is None:
            return people
        siblings = [e.child_id for e in snapshot.children_of(partnership_id) if e.child_id != removed_child]
        if not siblings:
            return people
        people, _ = layout.respace(people, siblings, centre, self.config.sibling_spacing)
        logger.debug("siblings_respaced", partnership_id=partnership_id, siblings=siblings)
        return people

    # --- relationships ------------------------------------------------------

    def add_relationship(self, relationship: Edge | Mapping[str, Any] | None = None, **fields: Any) -> GraphSnapshot:
        if isinstance(relationship, (PartnershipEdge, ChildEdge)):
            edge = relationship.apply_updates(fields) if fields else relationship
        else:
            edge = parse_relationship({**dict(relationship or {}), **fields})
        if edge.id in self.snapshot.relationships:
            raise self._refuse("A relationship with this id already exists", edge.id)
        self._check_endpoints(edge)
        return self._commit(self.snapshot.replace(relationships=_with(self.snapshot.relationships, edge)))

    def _check_endpoints(self, edge: Edge) -> None:
        if isinstance(edge, ChildEdge):
            if not isinstance(self.snapshot.relationships.get(edge.parent_edge_id), PartnershipEdge):
                raise self._refuse("A child must hang from an existing partnership", edge.parent_edge_id)
            if edge.child_id not in self.snapshot.people:
                raise self._refuse("The child must be an existing person", edge.child_id)
            return
        for person_id in (edge.from_id, edge.to_id):
            if person_id not in self.snapshot.people:
                raise self._refuse("A partnership must join existing people", person_id)

    def update_relationship(self, relationship_id: str, updates: Mapping[str, Any]) -> GraphSnapshot:
        """Apply a partial update to one edge.

        Child edges hanging from the edge are left exactly as they were, even
        when ``type`` changes. A type change also recomputes ``is_active``
        unless the update sets it explicitly.
        """
        current = self.snapshot.relationships.get(relationship_id)
        if current is None:
            return self.snapshot
        updates = {type(current).field_name(k): v for k, v in _strip_id(updates).items()}

        if "type" in updates:
            new_type = RelationshipType.parse(updates["type"])
            if isinstance(current, ChildEdge) and new_type is not RelationshipType.CHILD:
                raise self._refuse("A child link cannot be turned into a partnership", relationship_id)
            if isinstance(current, PartnershipEdge):
                if new_type is RelationshipType.CHILD:
                    raise self._refuse("A partnership cannot be turned into a child link", relationship_id)
                updates.setdefault("is_active", is_active_for(updates["type"]))

        updated = current.apply_updates(updates)
        self._check_endpoints(updated)
        children = self.snapshot.children_of(relationship_id)
        if children:
            logger.debug(
                "child_edges_preserved",
                relationship_id=relationship_id,
                child_edges=[c.id for c in children],
            )
        return self._commit(self.snapshot.replace(relationships=_with(self.snapshot.relationships, updated)))

    def delete_relationship(self, relationship_id: str) -> GraphSnapshot:
        if relationship_id not in self.snapshot.relationships:
            return self.snapshot
        cascaded = [c.id for c in self.snapshot.children_of(relationship_id)]
        if cascaded:
            logger.debug("relationship_cascade", removed=[relationship_id], child_edges=cascaded)
        relationships = _without(self.snapshot.relationships, [relationship_id, *cascaded])
        return self._commit(self.snapshot.replace(relationships=relationships))

    def create_relationship(
        self,
        from_id: str,
        to_id: str,
        relationship_type: str = RelationshipType.MARRIAGE.value,
        **options: Any,
    ) -> Edge:
        """Create an edge between two nodes and leave connection mode.

        ``relationship_type="child"`` treats ``from_id`` as a partnership id.
        """
        self.connection = IDLE
        if RelationshipType.parse(relationship_type) is RelationshipType.CHILD:
            return self.create_child_edge(from_id, to_id)
        edge = PartnershipEdge.model_validate(
            {
                "color": self._next_color(),
                "isActive": is_active_for(relationship_type),
                **options,
                "from": from_id,
                "to": to_id,
                "type": relationship_type,
            }
        )
        self.add_relationship(edge)
        return edge

    def create_child_edge(self, partnership_id: str, child_id: str) -> ChildEdge:
        partnership = self.snapshot.relationships.get(partnership_id)
        if not isinstance(partnership, PartnershipEdge):
            raise self._refuse("A child must hang from an existing partnership", partnership_id)
        if child_id not in self.snapshot.people:
            raise self._refuse("The child must be an existing person", child_id)
        edge = ChildEdge.model_validate(
            {
                "from": partnership_id,
                "to": child_id,
                "color": partnership.color or DEFAULT_CHILD_EDGE_COLOR,
            }
        )
        self.add_relationship(edge)
        return edge

    def change_relationship_type(self, relationship_id: str, new_type: str) -> GraphSnapshot:
        return self.update_relationship(
            relationship_id, {"type": new_type, "is_active": is_active_for(new_type)}
        )

    def create_potential_connection(
        self,
        from_id: str,
        to_id: str,
        relationship_type: str,
        source: str | None = None,
        notes: str = "",
        now: datetime | None = None,
    ) -> Edge:
        """Record a family-finding lead as a potential relationship."""
        return self.create_relationship(
            from_id,
            to_id,
            relationship_type,
            connectionStatus=ConnectionStatus.POTENTIAL,
            discoveryMetadata={
                "source": source,
                "date": (now or _utcnow()).isoformat(),
                "notes": notes,
            },
        )

    def promote_connection_to_confirmed(self, relationship_id: str, now: datetime | None = None) -> GraphSnapshot:
        current = self.snapshot.relationships.get(relationship_id)
        if current is None:
            return self.snapshot
        stamp = f"Confirmed on {(now or _utcnow()).date().isoformat()}"
        notes = f"{current.discovery.notes}\n\n{stamp}" if current.discovery.notes else stamp
        return self.update_relationship(
            relationship_id,
            {"connection_status": ConnectionStatus.CONFIRMED, "discovery": {"notes": notes}},
        )

    # --- children -----------------------------------------------------------

    def add_child(self, partnership_id: str, **fields: Any) -> Person | None:
        """Add a new child below a partnership and re-space the whole row.

        Existing children keep their left-to-right order; the new child goes
        on the right. Positions snap to the grid when snapping is on.
        """
        snapshot = self.snapshot
        partnership = snapshot.relationships.get(partnership_id)
        if not isinstance(partnership, PartnershipEdge):
            return None
        parents = [p for p in (snapshot.people.get(partnership.from_id), snapshot.people.get(partnership.to_id)) if p]
        if not parents:
            return None

        centre = layout.parents_centre(parents)
        base_y = max(p.y for p in parents) + self.config.child_offset_y
        siblings = [e.child_id for e in snapshot.children_of(partnership_id)]
        people, free = layout.respace(
            snapshot.people,
            siblings,
            centre,
            self.config.sibling_spacing,
            self.config.snap,
            extra_slots=1,
        )
        child = Person.model_validate(
            {"name": "New Child", "gender": "unknown", **fields, "x": free[0], "y": self.config.snap(base_y)}
        )
        edge = ChildEdge.model_validate(
            {
                "from": partnership_id,
                "to": child.id,
                "color": partnership.color or DEFAULT_CHILD_EDGE_COLOR,
            }
        )
        logger.debug("siblings_respaced", partnership_id=partnership_id, siblings=siblings)
        snapshot = snapshot.replace(
            people=_with(people, child),
            relationships=_with(snapshot.relationships, edge),
        )
        self.connection = IDLE
        self._commit(self._refresh_households(snapshot))
        return child

    def create_child_with_unknown_parent(self, parent_id: str) -> Person | None:
        """New child of ``parent_id`` and a placeholder "Unknown" co-parent."""
        parent = self.snapshot.people.get(parent_id)
        if parent is None:
            return None
        co_parent, partnership = self._unknown_co_parent(parent)
        child = Person(
            name="New Child",
            gender="unknown",
            x=self.config.snap(parent.x),
            y=self.config.snap(parent.y + self.config.child_offset_y),
        )
        edge = ChildEdge.model_validate({"from": partnership.id, "to": child.id, "color": partnership.color})
        snapshot = self.snapshot.replace(
            people=_with(self.snapshot.people, co_parent, child),
            relationships=_with(self.snapshot.relationships, partnership, edge),
        )
        self._commit(self._refresh_households(snapshot))
        return child

    def create_single_parent_adoption(self, parent_id: str) -> Person | None:
        """New adopted child of ``parent_id`` with no second parent."""
        parent = self.snapshot.people.get(parent_id)
        if parent is None:
            return None
        adoption = self._adoption_edge(parent)
        child = Person.model_validate(
            {
                "name": "Adopted Child",
                "gender": "unknown",
                "x": self.config.snap(parent.x),
                "y": self.config.snap(parent.y + self.config.child_offset_y),
                "specialStatus": "adopted",
            }
        )
        edge = ChildEdge.model_validate(
            {"from": adoption.id, "to": child.id, "color": adoption.color, "lineStyle": "dashed"}
        )
        snapshot = self.snapshot.replace(
            people=_with(self.snapshot.people, child),
            relationships=_with(self.snapshot.relationships, adoption, edge),
        )
        self._commit(self._refresh_households(snapshot))
        return child

    def _unknown_co_parent(self, parent: Person) -> tuple[Person, PartnershipEdge]:
        co_parent = Person(
            name="Unknown",
            gender="unknown",
            x=self.config.snap(parent.x + self.config.partner_offset_x),
            y=self.config.snap(parent.y),
        )
        partnership = PartnershipEdge.model_validate(
            {
                "from": parent.id,
                "to": co_parent.id,
                "type": RelationshipType.PARTNER.value,
                "color": UNKNOWN_PARENT_COLOR,
                "lineStyle": "dashed",
                "isActive": False,
                "notes": "Unknown co-parent",
            }
        )
        return co_parent, partnership

    def _adoption_edge(self, parent: Person) -> PartnershipEdge:
        return PartnershipEdge.model_validate(
            {
                "from": parent.id,
                "to": parent.id,
                "type": RelationshipType.ADOPTION.value,
                "color": ADOPTION_COLOR,
                "lineStyle": "dotted",
                "notes": "Single parent adoption",
                "abbr": "A",
            }
        )

    # --- child-link disambiguation -------------------------------------------

    def parent_partnerships(self, parent_id: str) -> list[PartnershipEdge]:
        """Partnerships of ``parent_id`` that a child can hang from."""
        return [
            rel
            for rel in self.snapshot.partnerships_of(parent_id)
            if rel.kind in PARENT_RELATIONSHIP_TYPES
        ]

    def connect_existing_person_as_child(self, parent_id: str, child_id: str) -> ChildLinkOutcome | None:
        """Attach an existing person as the child of ``parent_id``.

        With no partnership the caller must choose how to represent the
        other parent; with exactly one the child links to it; with several
        the caller must pick one (candidates are ordered by partner name).
        """
        self.connection = IDLE
        people = self.snapshot.people
        if parent_id not in people or child_id not in people:
            return None

        partnerships = self.parent_partnerships(parent_id)
        if not partnerships:
            self.pending_child_link = CoParentNeeded(parent_id=parent_id, child_id=child_id)
            return self.pending_child_link
        if len(partnerships) == 1:
            self.pending_child_link = None
            edge = self.create_child_edge(partnerships[0].id, child_id)
            return ChildLinked(partnership_id=partnerships[0].id, child_edge_id=edge.id)

        def partner_name(rel: PartnershipEdge) -> str:
            partner = people.get(rel.partner_of(parent_id) or "")
            return partner.name.casefold() if partner else ""

        self.pending_child_link = PartnerSelectionNeeded(
            parent_id=parent_id,
            child_id=child_id,
            candidates=tuple(sorted(partnerships, key=partner_name)),
        )
        return self.pending_child_link

    def resolve_child_link(
        self,
        option: CoParentOption | str,
        parent_id: str | None = None,
        child_id: str | None = None,
        relationship_id: str | None = None,
    ) -> ChildLinked | None:
        """Apply the chosen way of linking a child to its parent.

        Parent and child default to those of the pending decision. Missing
        people end the decision without changing the graph.
        """
        option = CoParentOption(option)
        pending = self.pending_child_link
        parent_id = parent_id or (pending.parent_id if pending else None)
        child_id = child_id or (pending.child_id if pending else None)
        self.pending_child_link = None
        self.connection = IDLE

        parent = self.snapshot.people.get(parent_id or "")
        if parent is None or child_id not in self.snapshot.people:
            return None

        if option is CoParentOption.SELECT_PARTNER:
            if relationship_id is None:
                raise self._refuse("Choose a partnership for the child", parent.id)
            edge = self.create_child_edge(relationship_id, child_id)
            return ChildLinked(partnership_id=relationship_id, child_edge_id=edge.id)

        new_people: list[Person] = []
        if option is CoParentOption.UNKNOWN:
            co_parent, partnership = self._unknown_co_parent(parent)
            new_people.append(co_parent)
            child_edge = {"color": partnership.color}
        elif option is CoParentOption.NEW_PARTNER:
            partner = Person(
                name=f"Person {len(self.snapshot.people) + 1}",
                gender=_OPPOSITE_GENDER.get(parent.gender, "female"),
                x=self.config.snap(parent.x + NEW_PARTNER_OFFSET_X),
                y=self.config.snap(parent.y),
            )
            partnership = PartnershipEdge.model_validate(
                {
                    "from": parent.id,
                    "to": partner.id,
                    "type": RelationshipType.MARRIAGE.value,
                    "color": self._next_color(),
                }
            )
            new_people.append(partner)
            child_edge = {"color": partnership.color}
        else:
            partnership = self._adoption_edge(parent)
            child_edge = {"color": partnership.color, "lineStyle": "dashed"}

        edge = ChildEdge.model_validate({**child_edge, "from": partnership.id, "to": child_id})
        snapshot = self.snapshot.replace(
            people=_with(self.snapshot.people, *new_people),
            relationships=_with(self.snapshot.relationships, partnership, edge),
        )
        self._commit(self._refresh_households(snapshot) if new_people else snapshot)
        return ChildLinked(partnership_id=partnership.id, child_edge_id=edge.id)

    def cancel_child_link(self) -> None:
        self.pending_child_link = None

    # --- connection mode ----------------------------------------------------

    def start_connection(
        self,
        source_id: str,
        source_kind: SourceKind | str = SourceKind.PERSON,
        relation_type: str = RelationshipType.MARRIAGE.value,
    ) -> ConnectionState:
        source_kind = SourceKind(source_kind)
        if source_kind is SourceKind.RELATIONSHIP:
            relation_type = RelationshipType.CHILD.value
        self.connection = Connecting(source_id, source_kind, relation_type)
        return self.connection

    def complete_connection(self, target_id: str | None) -> Edge | ChildLinkOutcome | None:
        """Finish the gesture on ``target_id``; always returns to idle.

        Clicking the source again, or anything that is not a node, cancels.
        A person-to-person gesture of type "child" goes through child-link
        disambiguation with the source as the parent.
        """
        state = self.connection
        self.connection = IDLE
        if not isinstance(state, Connecting):
            return None
        if not target_id or target_id == state.source_id or target_id not in self.snapshot.people:
            return None

        if state.source_kind is SourceKind.RELATIONSHIP:
            if not isinstance(self.snapshot.relationships.get(state.source_id), PartnershipEdge):
                return None
            return self.create_child_edge(state.source_id, target_id)

        if state.source_id not in self.snapshot.people:
            return None
        if RelationshipType.parse(state.relation_type) is RelationshipType.CHILD:
            return self.connect_existing_person_as_child(state.source_id, target_id)
        return self.create_relationship(state.source_id, target_id, state.relation_type)

    def cancel_connection(self) -> ConnectionState:
        self.connection = IDLE
        return self.connection

    # --- households ---------------------------------------------------------

    def add_household(self, household: Household | Mapping[str, Any] | None = None, **fields: Any) -> GraphSnapshot:
        household = _build(Household, household, fields)
        if household.id in self.snapshot.households:
            raise self._refuse("A household with this id already exists", household.id)
        snapshot = self.snapshot.replace(households=_with(self.snapshot.households, household))
        return self._commit(self._refresh_households(snapshot))

    def update_household(self, household_id: str, updates: Mapping[str, Any]) -> GraphSnapshot:
        current = self.snapshot.households.get(household_id)
        if current is None:
            return self.snapshot
        updated = current.apply_updates(_strip_id(updates))
        shrunk = len(updated.points) < len(current.points)
        if shrunk and len(updated.points) < MIN_HOUSEHOLD_POINTS:
            raise self._refuse("A household must have at least 3 points", household_id)
        snapshot = self.snapshot.replace(households=_with(self.snapshot.households, updated))
        return self._commit(self._refresh_households(snapshot))

    def delete_household(self, household_id: str) -> GraphSnapshot:
        if household_id not in self.snapshot.households:
            return self.snapshot
        return self._commit(
            self.snapshot.replace(households=_without(self.snapshot.households, [household_id]))
        )

    def _set_points(self, household: Household, points: Iterable[Point]) -> GraphSnapshot:
        return self.update_household(household.id, {"points": tuple(points)})

    def add_household_point(self, household_id: str, point: Point | tuple[float, float], index: int | None = None) -> GraphSnapshot:
        """Insert a vertex after ``index``, or append when ``index`` is None."""
        household = self.snapshot.households.get(household_id)
        if household is None:
            return self.snapshot
        points = list(household.points)
        point = Point.model_validate(point)
        if index is None or not 0 <= index < len(points):
            points.append(point)
        else:
            points.insert(index + 1, point)
        return self._set_points(household, points)

    def add_household_point_near(self, household_id: str, point: Point | tuple[float, float]) -> GraphSnapshot:
        """Insert a vertex on the polygon edge closest to ``point``."""
        household = self.snapshot.households.get(household_id)
        if household is None:
            return self.snapshot
        point = Point.model_validate(point)
        if not household.points:
            return self.add_household_point(household_id, point)
        return self.add_household_point(household_id, point, nearest_edge_index(household.points, point))

    def move_household_point(self, household_id: str, index: int, point: Point | tuple[float, float]) -> GraphSnapshot:
        household = self.snapshot.households.get(household_id)
        if household is None or not 0 <= index < len(household.points):
            return self.snapshot
        points = list(household.points)
        points[index] = Point.model_validate(point)
        return self._set_points(household, points)

    def delete_household_point(self, household_id: str, index: int) -> GraphSnapshot:
        household = self.snapshot.households.get(household_id)
        if household is None:
            return self.snapshot
        if len(household.points) <= MIN_HOUSEHOLD_POINTS:
            raise self._refuse("A household must have at least 3 points", household_id)
        if not 0 <= index < len(household.points):
            return self.snapshot
        points = [p for i, p in enumerate(household.points) if i != index]
        return self._set_points(household, points)

    @property
    def is_drawing_household(self) -> bool:
        return self.drawing_points is not None

    def start_drawing_household(self) -> None:
        self.drawing_points = ()

    def add_drawing_point(self, point: Point | tuple[float, float]) -> None:
        if self.drawing_points is None:
            return
        self.drawing_points = (*self.drawing_points, Point.model_validate(point))

    def finish_household(self) -> Household | None:
        """Turn the drawn outline into a household named "Household N".

        With fewer than 3 points nothing happens and drawing continues.
        """
        points = self.drawing_points
        if points is None or len(points) < MIN_HOUSEHOLD_POINTS:
            return None
        household = Household(name=f"Household {self._next_household_number()}", points=points)
        self.drawing_points = None
        self.add_household(household)
        return self.snapshot.households[household.id]

    def cancel_drawing_household(self) -> None:
        self.drawing_points = None

    def _next_household_number(self) -> int:
        taken = set()
        for household in self.snapshot.households.values():
            label = household.name or (household.model_extra or {}).get("label") or ""
            prefix, _, number = label.partition(" ")
            if prefix == "Household" and number.isdigit():
                taken.add(int(number))
        number = 1
        while number in taken:
            number += 1
        return number

    def compute_household_membership(self) -> dict[str, tuple[str, ...]]:
        return compute_membership(
            self.snapshot.households.values(),
            self.snapshot.people.values(),
            self.config.household_buffer,
        )

    # --- placements ---------------------------------------------------------

    def add_placement(self, placement: Placement | Mapping[str, Any] | None = None, **fields: Any) -> GraphSnapshot:
        placement = _build(Placement, placement, fields)
        if placement.id in self.snapshot.placements:
            raise self._refuse("A placement with this id already exists", placement.id)
        for person_id in (placement.child_id, placement.caregiver_id):
            if person_id not in self.snapshot.people:
                raise self._refuse("A placement must name an existing child and caregiver", person_id)
        return self._commit(self.snapshot.replace(placements=_with(self.snapshot.placements, placement)))

    def update_placement(
        self,
        placement_id: str,
        updates: Mapping[str, Any],
        now: datetime | None = None,
    ) -> GraphSnapshot:
        """Merge ``updates`` into a placement, stamping status changes."""
        current = self.snapshot.placements.get(placement_id)
        if current is None:
            return self.snapshot
        updated = current.apply_updates(_strip_id(updates))
        if updated.placement_status != current.placement_status and not any(
            Placement.field_name(k) == "status_changed_at" for k in updates
        ):
            updated = updated.model_copy(update={"status_changed_at": (now or _utcnow()).isoformat()})
        return self._commit(self.snapshot.replace(placements=_with(self.snapshot.placements, updated)))

    def delete_placement(self, placement_id: str) -> GraphSnapshot:
        if placement_id not in self.snapshot.placements:
            return self.snapshot
        return self._commit(
            self.snapshot.replace(placements=_without(self.snapshot.placements, [placement_id]))
        )

    def create_placement(
        self,
        child_id: str,
        caregiver_id: str,
        placement_status: PlacementStatus | str = PlacementStatus.POTENTIAL_TEMPORARY,
        placement_type: str = "foster_care",
        household_id: str | None = None,
        assessment_data: Mapping[str, Any] | None = None,
        discovery_source: str | None = None,
        discovery_notes: str = "",
        discovery_date: str | None = None,
        now: datetime | None = None,
    ) -> Placement:
        """Record a child-to-caregiver placement consideration."""
        placement = Placement(
            child_id=child_id,
            caregiver_id=caregiver_id,
            placement_status=placement_status,
            placement_type=placement_type,
            household_id=household_id,
            assessment_data=dict(assessment_data or {}),
            discovery={
                "source": discovery_source,
                "date": discovery_date or (now or _utcnow()).isoformat(),
                "notes": discovery_notes,
            },
        )
        self.add_placement(placement)
        return placement

    # --- text boxes ---------------------------------------------------------

    def add_text_box(self, text_box: TextBox | Mapping[str, Any] | None = None, **fields: Any) -> GraphSnapshot:
        text_box = _build(TextBox, text_box, fields)
        return self._commit(self.snapshot.replace(text_boxes=_with(self.snapshot.text_boxes, text_box)))

    def update_text_box(self, text_box_id: str, updates: Mapping[str, Any]) -> GraphSnapshot:
        current = self.snapshot.text_boxes.get(text_box_id)
        if current is None:
            return self.snapshot
        updated = current.apply_updates(_strip_id(updates))
        return self._commit(self.snapshot.replace(text_boxes=_with(self.snapshot.text_boxes, updated)))

    def delete_text_box(self, text_box_id: str) -> GraphSnapshot:
        if text_box_id not in self.snapshot.text_boxes:
            return self.snapshot
        return self._commit(
            self.snapshot.replace(text_boxes=_without(self.snapshot.text_boxes, [text_box_id]))
        )

    # --- tags and custom attributes -----------------------------------------

    def add_tag_definition(self, tag: TagDefinition | Mapping[str, Any] | None = None, **fields: Any) -> GraphSnapshot:
        tag = _build(TagDefinition, tag, fields)
        return self._commit(self.snapshot.replace(tag_definitions=_with(self.snapshot.tag_definitions, tag)))

    def update_tag_definition(self, tag_id: str, updates: Mapping[str, Any]) -> GraphSnapshot:
        current = self.snapshot.tag_definitions.get(tag_id)
        if current is None:
            return self.snapshot
        updated = current.apply_updates(_strip_id(updates))
        return self._commit(self.snapshot.replace(tag_definitions=_with(self.snapshot.tag_definitions, updated)))

    def delete_tag_definition(self, tag_id: str) -> GraphSnapshot:
        """Drop a tag definition and strip the tag from every person."""
        if tag_id not in self.snapshot.tag_definitions:
            return self.snapshot
        people = {
            pid: (p.model_copy(update={"tags": p.tags - {tag_id}}) if tag_id in p.tags else p)
            for pid, p in self.snapshot.people.items()
        }
        return self._commit(
            self.snapshot.replace(
                tag_definitions=_without(self.snapshot.tag_definitions, [tag_id]),
                people=people,
            )
        )

    def bulk_add_tag(self, person_ids: Iterable[str], tag_id: str) -> GraphSnapshot:
        targets = set(person_ids)
        people = {
            pid: (p.model_copy(update={"tags": p.tags | {tag_id}}) if pid in targets and tag_id not in p.tags else p)
            for pid, p in self.snapshot.people.items()
        }
        return self._commit(self.snapshot.replace(people=people))

    def bulk_remove_tag(self, person_ids: Iterable[str], tag_id: str) -> GraphSnapshot:
        targets = set(person_ids)
        people = {
            pid: (p.model_copy(update={"tags": p.tags - {tag_id}}) if pid in targets and tag_id in p.tags else p)
            for pid, p in self.snapshot.people.items()
        }
        return self._commit(self.snapshot.replace(people=people))

    def add_tag_to_person(self, person_id: str, tag_id: str) -> GraphSnapshot:
        return self.bulk_add_tag([person_id], tag_id)

    def remove_tag_from_person(self, person_id: str, tag_id: str) -> GraphSnapshot:
        return self.bulk_remove_tag([person_id], tag_id)

    def set_custom_attributes(self, attributes: Iterable[Mapping[str, Any]]) -> GraphSnapshot:
        return self._commit(
            self.snapshot.replace(custom_attributes=tuple(dict(a) for a in attributes))
        )

    def find_connected_people(self, person_ids: Iterable[str]) -> list[str]:
        return self.snapshot.connected_people(person_ids)

    # --- history ------------------------------------------------------------

    def save_snapshot(self) -> None:
        self.history.save(self.snapshot.history_view())

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def undo(self) -> GraphSnapshot:
        entry = self.history.undo()
        if entry is None:
            return self.snapshot
        return self._commit(self.snapshot.restore(entry))

    def redo(self) -> GraphSnapshot:
        entry = self.history.redo()
        if entry is None:
            return self.snapshot
        return self._commit(self.snapshot.restore(entry))

    # --- documents ----------------------------------------------------------

    def _reset(self, snapshot: GraphSnapshot) -> GraphSnapshot:
        self.connection = IDLE
        self.pending_child_link = None
        self.drawing_points = None
        self.history.reset(snapshot.history_view())
        return self._commit(snapshot)

    def load(self, document: Mapping[str, Any]) -> GraphSnapshot:
        """Replace the graph with a loaded document; history restarts."""
        from ..export.json_export import load_document

        return self._reset(load_document(document, buffer=self.config.household_buffer))

    def export(self, file_name: str | None = None, now: datetime | None = None) -> dict[str, Any]:
        from ..export.json_export import export_document

        return export_document(self.snapshot, file_name=file_name, now=now)

    def new_genogram(self) -> GraphSnapshot:
        return self._reset(GraphSnapshot())
