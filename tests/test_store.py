"""Tests for the genogram command store."""
from __future__ import annotations

from datetime import UTC, datetime

import pytest

from genogram.config import EngineConfig
from genogram.exceptions import ValidationRefusal
from genogram.graph import IDLE, GenogramStore
from genogram.graph.store import RELATIONSHIP_COLORS
from genogram.models import (
    ChildEdge,
    ConnectionStatus,
    PartnershipEdge,
    PlacementStatus,
    Point,
)

FLAT = EngineConfig(snap_to_grid=False)
SQUARE = [(0, 0), (100, 0), (100, 100), (0, 100)]


@pytest.fixture()
def store():
    """Mum and Dad with three children spaced under their marriage."""
    store = GenogramStore(config=FLAT)
    store.add_person(id="mum", name="Maria", gender="female", x=0, y=0)
    store.add_person(id="dad", name="David", gender="male", x=200, y=0)
    store.add_relationship(id="m", **{"from": "mum", "to": "dad", "type": "marriage"})
    for index, child_id in enumerate(("c1", "c2", "c3")):
        store.add_person(id=child_id, name=child_id.upper(), x=index * 100, y=150)
        store.add_relationship(id=f"{child_id}e", type="child", **{"from": "m", "to": child_id})
    return store


class TestPeople:
    """Tests for person commands."""

    def test_add_person_from_mapping(self):
        store = GenogramStore()
        store.add_person({"id": "p1", "name": "Ava", "caseData": {"caseGoal": "reunification"}})

        assert store.snapshot.people["p1"].case_data.case_goal == "reunification"

    def test_duplicate_id_refused(self, store):
        before = store.snapshot

        with pytest.raises(ValidationRefusal):
            store.add_person(id="mum")

        assert store.snapshot is before

    def test_update_person_merges_nested(self, store):
        store.update_person("c1", {"caseData": {"caseworker": "Kim"}, "name": "Cleo"})
        store.update_person("c1", {"caseData": {"caseGoal": "adoption"}})

        person = store.snapshot.people["c1"]
        assert person.name == "Cleo"
        assert person.case_data.caseworker == "Kim"
        assert person.case_data.case_goal == "adoption"

    def test_update_person_cannot_change_id(self, store):
        store.update_person("c1", {"id": "other"})
        assert store.snapshot.people["c1"].id == "c1"

    def test_unknown_ids_are_no_ops(self, store):
        before = store.snapshot

        assert store.update_person("ghost", {"name": "x"}) is before
        assert store.delete_person("ghost") is before
        assert store.delete_relationship("ghost") is before
        assert store.update_household("ghost", {"name": "x"}) is before
        assert store.update_placement("ghost", {"notes": "x"}) is before

    def test_unchanged_entities_are_shared(self, store):
        before = store.snapshot

        store.update_person("c1", {"name": "Cleo"})

        assert store.snapshot.people["c2"] is before.people["c2"]
        assert store.snapshot.relationships is before.relationships


class TestDeletePerson:
    """Tests for cascading person deletion."""

    def test_deleting_child_respaces_siblings(self, store):
        store.delete_person("c2")

        people = store.snapshot.people
        assert people["c1"].x == 50
        assert people["c3"].x == 150
        assert "c2e" not in store.snapshot.relationships

    def test_deleting_parent_cascades_to_child_edges(self, store):
        store.delete_person("mum")

        assert store.snapshot.relationships == {}
        assert set(store.snapshot.people) == {"dad", "c1", "c2", "c3"}

    def test_deleting_person_drops_their_placements(self, store):
        store.add_person(id="gran", name="Gran")
        store.create_placement("c1", "gran")
        store.create_placement("c2", "dad")

        store.delete_person("gran")

        assert [p.caregiver_id for p in store.snapshot.placements.values()] == ["dad"]

    def test_no_dangling_references_after_delete(self, store):
        store.delete_person("dad")
        snapshot = store.snapshot

        for rel in snapshot.relationships.values():
            if isinstance(rel, PartnershipEdge):
                assert rel.from_id in snapshot.people and rel.to_id in snapshot.people
            else:
                assert rel.parent_edge_id in snapshot.relationships


class TestRelationships:
    """Tests for relationship commands."""

    def test_child_edge_needs_partnership(self, store):
        before = store.snapshot

        with pytest.raises(ValidationRefusal) as excinfo:
            store.add_relationship(type="child", **{"from": "nowhere", "to": "c1"})

        assert excinfo.value.message == "A child must hang from an existing partnership"
        assert store.snapshot is before

    def test_child_edge_cannot_hang_from_child_edge(self, store):
        with pytest.raises(ValidationRefusal):
            store.create_child_edge("c1e", "c2")

    def test_type_change_keeps_children(self, store):
        children = store.snapshot.children_of("m")

        store.change_relationship_type("m", "divorce")

        marriage = store.snapshot.relationships["m"]
        assert marriage.type == "divorce"
        assert not marriage.is_active
        assert store.snapshot.children_of("m") == children
        assert all(a is b for a, b in zip(store.snapshot.children_of("m"), children))

    def test_update_type_recomputes_is_active(self, store):
        store.update_relationship("m", {"type": "separation"})
        assert not store.snapshot.relationships["m"].is_active

        store.update_relationship("m", {"type": "marriage", "isActive": False})
        assert not store.snapshot.relationships["m"].is_active

    def test_variant_change_refused(self, store):
        with pytest.raises(ValidationRefusal):
            store.update_relationship("c1e", {"type": "marriage"})
        with pytest.raises(ValidationRefusal):
            store.update_relationship("m", {"type": "child"})

    def test_child_edge_cannot_be_moved_off_a_partnership(self, store):
        before = store.snapshot

        for parent_id in ("c2e", "ghost"):
            with pytest.raises(ValidationRefusal) as excinfo:
                store.update_relationship("c1e", {"from": parent_id})
            assert excinfo.value.message == "A child must hang from an existing partnership"

        assert store.snapshot is before
        assert store.snapshot.relationships["c1e"].parent_edge_id == "m"

    def test_child_edge_can_move_to_another_partnership(self, store):
        store.add_person(id="step", name="Sam")
        store.add_relationship(id="m2", **{"from": "mum", "to": "step", "type": "partner"})

        store.update_relationship("c1e", {"from": "m2"})

        assert [e.child_id for e in store.snapshot.children_of("m2")] == ["c1"]

    def test_partnership_needs_existing_people(self, store):
        before = store.snapshot

        with pytest.raises(ValidationRefusal) as excinfo:
            store.update_relationship("m", {"to": "ghost"})
        assert excinfo.value.message == "A partnership must join existing people"
        assert excinfo.value.entity_id == "ghost"

        with pytest.raises(ValidationRefusal):
            store.add_relationship(id="x", **{"from": "mum", "to": "ghost", "type": "marriage"})
        with pytest.raises(ValidationRefusal):
            store.add_relationship(id="y", type="child", **{"from": "m", "to": "ghost"})

        assert store.snapshot is before

    def test_delete_relationship_cascades(self, store):
        store.add_person(id="gran", name="Gloria")
        store.add_person(id="gramps", name="George")
        store.add_relationship(id="g", **{"from": "gran", "to": "gramps", "type": "marriage"})
        store.add_relationship(id="mume", type="child", **{"from": "g", "to": "mum"})

        store.delete_relationship("m")

        assert list(store.snapshot.relationships) == ["g", "mume"]
        assert len(store.snapshot.people) == 7

    def test_create_relationship_uses_palette(self):
        store = GenogramStore()
        store.add_person(id="a")
        store.add_person(id="b")
        store.add_person(id="c")

        first = store.create_relationship("a", "b", "marriage")
        second = store.create_relationship("b", "c", "divorce")

        assert first.color == RELATIONSHIP_COLORS[0]
        assert second.color == RELATIONSHIP_COLORS[1]
        assert not second.is_active

    def test_create_relationship_child_routes_to_child_edge(self, store):
        store.add_person(id="c4")

        edge = store.create_relationship("m", "c4", "child")

        assert isinstance(edge, ChildEdge)
        assert edge.parent_edge_id == "m"

    def test_potential_connection_and_promotion(self, store):
        store.add_person(id="aunt", name="Rosa")
        found = datetime(2024, 2, 1, tzinfo=UTC)

        edge = store.create_potential_connection(
            "aunt", "mum", "sibling", source="Maternal grandmother", notes="Lives nearby", now=found
        )

        assert edge.connection_status is ConnectionStatus.POTENTIAL
        assert edge.discovery.source == "Maternal grandmother"
        assert edge.discovery.date == found.isoformat()

        store.promote_connection_to_confirmed(edge.id, now=datetime(2024, 3, 1, tzinfo=UTC))

        promoted = store.snapshot.relationships[edge.id]
        assert promoted.connection_status is ConnectionStatus.CONFIRMED
        assert promoted.discovery.notes == "Lives nearby\n\nConfirmed on 2024-03-01"
        assert promoted.discovery.source == "Maternal grandmother"


class TestChildren:
    """Tests for adding children and layout repair."""

    def test_add_child_respaces_row(self, store):
        child = store.add_child("m", name="Dana")

        people = store.snapshot.people
        assert [people[c].x for c in ("c1", "c2", "c3")] == [-50, 50, 150]
        assert child.x == 250
        assert child.y == 150
        assert store.snapshot.children_of("m")[-1].child_id == child.id

    def test_add_child_snaps_to_grid(self, store):
        store.config = EngineConfig(snap_to_grid=True, grid_size=20)

        child = store.add_child("m")

        assert child.x % 20 == 0
        assert child.y == 160
        assert all(store.snapshot.people[c].x % 20 == 0 for c in ("c1", "c2", "c3"))

    def test_add_child_unknown_partnership(self, store):
        assert store.add_child("nope") is None
        assert store.add_child("c1e") is None

    def test_child_with_unknown_parent(self, store):
        store.add_person(id="solo", name="Sam", x=400, y=0)

        child = store.create_child_with_unknown_parent("solo")

        [partnership] = store.snapshot.partnerships_of("solo")
        unknown = store.snapshot.people[partnership.partner_of("solo")]
        assert unknown.name == "Unknown"
        assert not partnership.is_active
        assert partnership.line_style == "dashed"
        assert store.snapshot.parent_edges_of(child.id)[0].parent_edge_id == partnership.id

    def test_single_parent_adoption(self, store):
        store.add_person(id="solo", name="Sam", x=400, y=0)

        child = store.create_single_parent_adoption("solo")

        [adoption] = store.snapshot.partnerships_of("solo")
        assert adoption.from_id == adoption.to_id == "solo"
        assert adoption.kind.value == "adoption"
        assert child.model_extra["specialStatus"] == "adopted"
        assert store.snapshot.parent_edges_of(child.id)[0].line_style == "dashed"


class TestHouseholds:
    """Tests for household commands and membership."""

    def test_membership_follows_people(self, store):
        store.add_household(id="h", name="Home", points=SQUARE)
        store.add_person(id="guest", x=50, y=50)

        assert "guest" in store.snapshot.households["h"].members

        store.move_person("guest", 500, 500)

        assert "guest" not in store.snapshot.households["h"].members

    def test_reshaping_household_refreshes_members(self, store):
        store.add_person(id="guest", x=300, y=300)
        store.add_household(id="h", points=SQUARE)

        store.move_household_point("h", 2, (400, 400))

        assert "guest" in store.snapshot.households["h"].members

    def test_point_insert_after_index(self, store):
        store.add_household(id="h", points=SQUARE)

        store.add_household_point("h", (50, -5), index=0)

        assert store.snapshot.households["h"].points[1] == Point(x=50, y=-5)

    def test_point_insert_near_edge(self, store):
        store.add_household(id="h", points=SQUARE)

        store.add_household_point_near("h", (-5, 50))

        assert store.snapshot.households["h"].points[-1] == Point(x=-5, y=50)

    def test_cannot_go_below_three_points(self, store):
        store.add_household(id="h", points=SQUARE)
        store.delete_household_point("h", 0)
        before = store.snapshot

        with pytest.raises(ValidationRefusal) as excinfo:
            store.delete_household_point("h", 0)

        assert excinfo.value.message == "A household must have at least 3 points"
        assert store.snapshot is before

    def test_update_cannot_shrink_below_three_points(self, store):
        store.add_household(id="h", points=SQUARE)
        before = store.snapshot

        with pytest.raises(ValidationRefusal) as excinfo:
            store.update_household("h", {"points": [(0, 0), (1, 1)]})

        assert excinfo.value.message == "A household must have at least 3 points"
        assert store.snapshot is before

    def test_drawing_needs_three_points(self):
        store = GenogramStore()
        store.start_drawing_household()
        store.add_drawing_point((0, 0))
        store.add_drawing_point((10, 0))

        assert store.finish_household() is None
        assert store.is_drawing_household

        store.add_drawing_point((10, 10))
        household = store.finish_household()

        assert household.name == "Household 1"
        assert not store.is_drawing_household

    def test_drawn_household_takes_lowest_free_number(self):
        store = GenogramStore()
        store.add_household(name="Household 1", points=SQUARE)
        store.add_household({"label": "Household 2", "points": SQUARE})
        store.add_household(name="Household 4", points=SQUARE)
        store.start_drawing_household()
        for point in SQUARE:
            store.add_drawing_point(point)

        assert store.finish_household().name == "Household 3"

    def test_cancel_drawing(self):
        store = GenogramStore()
        store.start_drawing_household()
        store.add_drawing_point((0, 0))

        store.cancel_drawing_household()

        assert not store.is_drawing_household
        assert store.snapshot.households == {}


class TestPlacements:
    def test_placement_needs_existing_people(self, store):
        with pytest.raises(ValidationRefusal):
            store.create_placement("c1", "ghost")

    def test_status_change_is_stamped(self, store):
        placement = store.create_placement("c1", "dad")
        when = datetime(2024, 3, 1, tzinfo=UTC)

        store.update_placement(placement.id, {"placementStatus": "current_temporary"}, now=when)

        updated = store.snapshot.placements[placement.id]
        assert updated.placement_status is PlacementStatus.CURRENT_TEMPORARY
        assert updated.status_changed_at == when.isoformat()

    def test_other_updates_do_not_stamp(self, store):
        placement = store.create_placement("c1", "dad")

        store.update_placement(placement.id, {"notes": "Call back"})

        assert store.snapshot.placements[placement.id].status_changed_at is None

    def test_delete_placement(self, store):
        placement = store.create_placement("c1", "dad")
        store.delete_placement(placement.id)
        assert store.snapshot.placements == {}


class TestTags:
    def test_bulk_tagging_and_definition_delete(self, store):
        store.add_tag_definition(id="kin", name="Kin")
        store.bulk_add_tag(["mum", "dad"], "kin")
        store.remove_tag_from_person("dad", "kin")

        assert store.snapshot.people["mum"].tags == {"kin"}
        assert store.snapshot.people["dad"].tags == frozenset()

        store.delete_tag_definition("kin")

        assert store.snapshot.people["mum"].tags == frozenset()
        assert store.snapshot.tag_definitions == {}

    def test_text_boxes(self):
        store = GenogramStore()
        store.add_text_box(id="t", html="<p>Hi</p>")
        store.update_text_box("t", {"x": 40})

        assert store.snapshot.text_boxes["t"].x == 40
        assert store.snapshot.text_boxes["t"].html == "<p>Hi</p>"

        store.delete_text_box("t")
        assert store.snapshot.text_boxes == {}


class TestHistory:
    """Tests for undo/redo through the store."""

    def test_live_tables_cannot_change_saved_history(self, store):
        store.save_snapshot()

        with pytest.raises(TypeError):
            del store.snapshot.people["c1"]

        store.add_person(id="new")
        store.save_snapshot()
        store.undo()

        assert "c1" in store.snapshot.people
        assert "new" not in store.snapshot.people

    def test_undo_redo_round_trip(self, store):
        store.save_snapshot()
        original = store.snapshot.people
        store.add_person(id="new")
        store.save_snapshot()

        store.undo()
        assert store.snapshot.people is original

        store.redo()
        assert "new" in store.snapshot.people

    def test_undo_leaves_placements(self, store):
        store.save_snapshot()
        store.add_person(id="gran")
        store.create_placement("c1", "gran")
        store.save_snapshot()

        store.undo()

        assert "gran" not in store.snapshot.people
        assert len(store.snapshot.placements) == 1

    def test_undo_without_history(self):
        store = GenogramStore()
        before = store.snapshot

        assert store.undo() is before
        assert not store.can_undo


class TestDocuments:
    def test_export_and_load(self, store):
        document = store.export(file_name="family.json", now=datetime(2024, 1, 1, tzinfo=UTC))

        fresh = GenogramStore(config=FLAT)
        fresh.load(document)

        assert document["fileName"] == "family"
        assert set(fresh.snapshot.people) == set(store.snapshot.people)
        assert fresh.snapshot.children_of("m") == store.snapshot.children_of("m")
        assert not fresh.can_undo

    def test_new_genogram_clears_everything(self, store):
        store.start_connection("mum")
        store.new_genogram()

        assert store.snapshot.people == {}
        assert store.connection is IDLE
        assert not store.can_undo

    def test_find_connected_people(self, store):
        store.add_person(id="loner")

        connected = store.find_connected_people(["c1"])

        assert set(connected) == {"c1", "mum", "dad", "c2", "c3"}
        assert connected[0] == "c1"
