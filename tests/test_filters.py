"""Tests for canvas filters, summaries and saved templates."""
from __future__ import annotations

from datetime import UTC, datetime

import pytest

from genogram.filters import (
    NO_FILTERS,
    AgeRange,
    FilterConfig,
    SearchHistory,
    TemplateLibrary,
    apply_filters,
    compare_filter_summaries,
    summarize_filters,
)
from genogram.models import Person

NOW = datetime(2024, 3, 13, 12, 0, tzinfo=UTC)


class TestSummarizeFilters:
    """Tests for the one-line filter summary."""

    def test_no_filters(self):
        assert summarize_filters(None) == NO_FILTERS
        assert summarize_filters({}) == NO_FILTERS
        assert summarize_filters(FilterConfig()) == NO_FILTERS

    def test_parts_in_fixed_order(self):
        summary = summarize_filters(
            {
                "activity": "active_30",
                "showDeceased": False,
                "ageRange": {"min": 5, "max": ""},
                "careStatus": "needs_placement",
                "networkMember": "yes",
                "nodeType": "organization",
            }
        )

        assert summary == (
            "Type: Organization • Network: Members only • Child Welfare: Needs Placement"
            " • Age: 5-∞ • Hide deceased • Activity: Active (last 30 days)"
        )

    def test_multi_select_wins_over_single(self):
        summary = summarize_filters(
            {"careStatus": "in_care", "careStatuses": ["at_risk", "in_care"], "networkMembers": ["a", "b"]}
        )

        assert summary == "Network: 2 selected • Child Welfare: At Risk, In Care"

    def test_tags_placements_and_connection(self):
        summary = summarize_filters(
            {"tags": ["t1", "t2"], "hasOpenPlacements": True, "connectionStatus": "ruled-out", "gender": "female"}
        )

        assert summary == "Gender: Female • Tags: 2 • Open placements • Connection: Ruled Out"

    def test_unknown_activity_key_is_titled(self):
        assert summarize_filters({"activity": "very_busy"}) == "Activity: Very Busy"

    def test_first_of_legacy_age_ranges(self):
        assert summarize_filters({"ageRanges": [{"min": 1, "max": 5}, {"min": 9}]}) == "Age: 1-5"


class TestAgeRange:
    @pytest.mark.parametrize(
        ("bounds", "label"),
        [
            ({"min": "", "max": 12}, "0-12"),
            ({"min": 3, "max": ""}, "3-∞"),
            ({"min": "", "max": ""}, None),
            ({"min": 0}, None),
            ({"min": 2, "max": 4}, "2-4"),
        ],
    )
    def test_label(self, bounds, label):
        assert AgeRange.model_validate(bounds).label() == label


class TestCompareFilterSummaries:
    def test_additions_and_removals(self):
        diff = compare_filter_summaries({"gender": "female"}, {"gender": "male", "showDeceased": False})

        assert diff.additions == ("Gender: Male", "Hide deceased")
        assert diff.removals == ("Gender: Female",)
        assert diff.current_summary == "Gender: Female"

    def test_from_nothing(self):
        diff = compare_filter_summaries(None, {"tags": ["x"]})

        assert diff.additions == ("Tags: 1",)
        assert diff.removals == ()
        assert diff.current_summary == NO_FILTERS


class TestMatching:
    """Tests for deciding who stays visible."""

    @pytest.fixture()
    def people(self):
        return [
            Person(id="kid", age=8, careStatus="in_care", gender="female"),
            Person(id="adult", age=30, careStatus="in_care", gender="male"),
            Person(id="active", age=45, networkMember=True, lastContactAt="2024-03-01"),
            Person(id="lapsed", age=50, networkMember=True, lastContactAt="2023-01-01"),
            Person(id="gone", age=90, isDeceased=True),
            Person(id="org", type="organization"),
        ]

    def test_care_status_skips_adults(self, people):
        assert apply_filters(people, FilterConfig(care_status="in_care"), NOW) == ["kid"]

    def test_not_applicable_care_status_keeps_adults(self, people):
        ids = apply_filters(people, FilterConfig(care_status="not_applicable"), NOW)
        assert ids == ["active", "lapsed", "gone", "org"]

    def test_activity_only_for_network_members(self, people):
        assert apply_filters(people, FilterConfig(activity="active_30"), NOW) == ["active"]
        assert apply_filters(people, FilterConfig(activity="inactive_90"), NOW) == ["lapsed"]

    def test_hide_deceased(self, people):
        assert "gone" not in apply_filters(people, FilterConfig(show_deceased=False), NOW)

    def test_age_range_drops_unknown_ages(self, people):
        ids = apply_filters(people, FilterConfig(age_range={"min": 20, "max": 60}), NOW)
        assert ids == ["adult", "active", "lapsed"]

    def test_node_type_and_gender(self, people):
        assert apply_filters(people, FilterConfig(node_type="organization"), NOW) == ["org"]
        assert apply_filters(people, FilterConfig(gender="female"), NOW) == ["kid"]

    def test_network_member_choice(self, people):
        assert apply_filters(people, FilterConfig(network_member="yes"), NOW) == ["active", "lapsed"]

    def test_active_count(self):
        filters = FilterConfig(gender="female", show_deceased=False, age_range={"min": 3})
        assert filters.active_count() == 3
        assert FilterConfig().active_count() == 0


class TestTemplateLibrary:
    def test_template_lifecycle(self):
        library = TemplateLibrary()

        template = library.add("Kin in care", {"careStatus": "in_care"}, "Children currently in care")

        assert template.summary == "Child Welfare: In Care"
        assert len(library) == 1

        library.increment_usage(template.id)
        library.increment_usage(template.id)
        library.update(template.id, {"name": "In care", "id": "other"})

        saved = library.get(template.id)
        assert saved.usage_count == 2
        assert saved.name == "In care"

        library.delete(template.id)
        assert list(library) == []

    def test_loads_saved_templates(self):
        library = TemplateLibrary([{"id": "t1", "name": "Girls", "filters": {"gender": "female"}, "usageCount": 4}])

        assert library.get("t1").usage_count == 4
        assert library.get("t1").filters.gender == "female"

    def test_missing_template(self):
        assert TemplateLibrary().increment_usage("nope") is None


class TestSearchHistory:
    def test_newest_first_without_duplicates(self):
        history = SearchHistory()
        history.add({"gender": "female"}, now=NOW)
        history.add({"gender": "male"}, now=NOW)
        history.add({"gender": "female"}, now=NOW)

        assert [item.filters.gender for item in history] == ["female", "male"]

    def test_capped(self):
        history = SearchHistory(limit=2)
        for gender in ("a", "b", "c"):
            history.add({"gender": gender})

        assert [item.filters.gender for item in history] == ["c", "b"]

    def test_clear(self):
        history = SearchHistory()
        history.add({})
        history.clear()

        assert len(history) == 0
