"""Tests for caseload-wide analytics."""
from __future__ import annotations

from datetime import UTC, datetime

import pytest

from genogram.analytics import (
    Flag,
    FlagDetail,
    Severity,
    compute_caseload_analytics,
    find_child_candidates,
    looks_like_child,
)
from genogram.analytics.caseload import flag_trends
from genogram.models import GraphSnapshot, Person, Placement

NOW = datetime(2024, 3, 13, 12, 0, tzinfo=UTC)


@pytest.fixture()
def caseload():
    """Four children, one caregiver and an organization; nobody is flagged."""
    people = [
        Person(id="ben", name="ben", age="10", lastContactAt="2024-03-10"),
        Person(id="ava", name="Ava", careStatus="needs_placement"),
        Person(id="dan", name="Dan", birthDate="2010-05-01"),
        Person(id="cleo", name="Cleo", role="Youth", careStatus="in_care"),
        Person(id="gran", name="Gran", age=70),
        Person(id="school", name="School", type="organization", careStatus="at_risk"),
    ]
    placement = Placement(id="pl", child_id="cleo", caregiver_id="gran", placementStatus="current_temporary")
    return GraphSnapshot(people={p.id: p for p in people}, placements={"pl": placement})


class TestChildCandidates:
    @pytest.mark.parametrize(
        ("fields", "expected"),
        [
            ({"careStatus": "at_risk"}, True),
            ({"role": "Teen mentor"}, True),
            ({"age": 21}, True),
            ({"age": "22"}, False),
            ({"age": "unknown"}, False),
            ({"birthDate": "2003-12-31"}, True),
            ({"birthDate": "2002-01-01"}, False),
            ({}, False),
            ({"type": "service", "careStatus": "in_care"}, False),
        ],
    )
    def test_looks_like_child(self, fields, expected):
        assert looks_like_child(Person.model_validate(fields), NOW) is expected

    def test_candidates_sorted_by_name(self, caseload):
        names = [p.name for p in find_child_candidates(caseload.people.values(), NOW)]
        assert names == ["Ava", "ben", "Cleo", "Dan"]


class TestCaseload:
    """Tests for the caseload rollup."""

    def test_counts(self, caseload):
        result = compute_caseload_analytics(caseload, NOW)

        assert result.total_children == 4
        assert result.with_recent_contact == 1
        assert result.without_recent_contact == 3
        assert result.needs_placement_count == 2
        assert result.with_placement_options == 1
        assert result.without_placement_options == 1
        assert result.average_network_health == 2
        assert result.average_contacts_last_30 == 0

    def test_priority_order(self, caseload):
        result = compute_caseload_analytics(caseload, NOW)

        assert [(c.summary.id, c.priority_score) for c in result.priority_children] == [
            ("ava", 14),
            ("cleo", 12),
            ("dan", 9),
            ("ben", 7),
        ]

    def test_flag_trends(self, caseload):
        result = compute_caseload_analytics(caseload, NOW)

        assert [(t.id, t.count, t.severity_score) for t in result.flag_trends] == [
            ("no-members", 3, 9),
            ("no-active-members", 1, 3),
            ("inactive-members", 1, 2),
        ]
        assert len(result.flag_details) == 5

    def test_summaries_carry_placements(self, caseload):
        summaries = {s.id: s for s in compute_caseload_analytics(caseload, NOW).child_summaries}

        cleo = summaries["cleo"]
        assert cleo.active_placement.id == "pl"
        assert cleo.has_any_placement_option
        assert not cleo.has_permanent_placement
        assert summaries["ava"].needs_placement
        assert not summaries["ava"].has_any_placement_option

    def test_unnamed_child(self):
        snapshot = GraphSnapshot(people={"x": Person(id="x", careStatus="at_risk")})

        [summary] = compute_caseload_analytics(snapshot, NOW).child_summaries

        assert summary.name == "Unnamed Child"

    def test_empty_caseload(self):
        snapshot = GraphSnapshot(people={"g": Person(id="g", name="Gran", age=70)})

        result = compute_caseload_analytics(snapshot, NOW)

        assert result.total_children == 0
        assert result.average_network_health == 0
        assert result.priority_children == ()
        assert result.flag_trends == ()

    def test_priority_list_is_capped(self):
        people = {f"c{i}": Person(id=f"c{i}", name=f"Child {i}", careStatus="in_care") for i in range(8)}

        result = compute_caseload_analytics(GraphSnapshot(people=people), NOW)

        assert len(result.priority_children) == 6

    def test_to_dict(self, caseload):
        data = compute_caseload_analytics(caseload, NOW).to_dict()

        assert data["totalChildren"] == 4
        assert data["priorityChildren"][0]["priorityScore"] == 14
        assert data["aggregatedFlagSummary"][0]["id"] == "no-members"
        assert data["childSummaries"][2]["activePlacement"]["id"] == "pl"


class TestFlagTrends:
    def test_ties_broken_by_count(self):
        low = Flag("low-role-diversity", Severity.LOW, "Limited role diversity", "")
        medium = Flag("stale-placement-leads", Severity.MEDIUM, "Follow up on placement leads", "")
        details = [
            FlagDetail(low, "a", "A"),
            FlagDetail(low, "b", "B"),
            FlagDetail(medium, "c", "C"),
        ]

        trends = flag_trends(details)

        assert [(t.id, t.severity_score, t.count) for t in trends] == [
            ("low-role-diversity", 2, 2),
            ("stale-placement-leads", 2, 1),
        ]
