"""Canvas filters: matching, human-readable summaries and saved templates."""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from .contacts import ActivityFilter, days_since_last_contact, matches_activity_filter
from .models import CareStatus, GenogramModel, Person, new_id

ALL = "all"
NO_FILTERS = "No filters"
SEPARATOR = " • "
SEARCH_HISTORY_LIMIT = 10

# Care-status filters other than "not applicable" skip anyone older than this
CARE_STATUS_MAX_AGE = 26


def _to_title(value: str) -> str:
    return re.sub(r"\b\w", lambda m: m.group().upper(), re.sub(r"[_-]+", " ", value))


def _int_age(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


class AgeRange(GenogramModel):
    min: int | float | str | None = ""
    max: int | float | str | None = ""

    @property
    def lower(self) -> int | None:
        return _int_age(self.min)

    @property
    def upper(self) -> int | None:
        return _int_age(self.max)

    @property
    def is_set(self) -> bool:
        return self.lower is not None or self.upper is not None

    def label(self) -> str | None:
        low = "0" if self.min in ("", None) else str(self.min)
        high = "∞" if self.max in ("", None) else str(self.max)
        if low == "0" and high == "∞":
            return None
        return f"{low}-{high}"


class FilterConfig(GenogramModel):
    """One set of canvas filter choices. ``"all"`` means not filtered."""

    node_type: str = ALL
    network_member: str = ALL  # all / yes / no
    network_members: tuple[str, ...] = ()
    care_status: str = ALL
    care_statuses: tuple[str, ...] = ()
    foster_care_status: str = ALL
    foster_care_statuses: tuple[str, ...] = ()
    connection_status: str = ALL
    age_range: AgeRange = Field(default_factory=AgeRange)
    gender: str = ALL
    show_deceased: bool = True
    tags: tuple[str, ...] = ()
    has_open_placements: bool = False
    activity: str = ActivityFilter.ALL.value

    @model_validator(mode="before")
    @classmethod
    def _first_age_range(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and not data.get("ageRange") and data.get("ageRanges"):
            data = {**data, "ageRange": data["ageRanges"][0]}
        return data

    @field_validator("node_type", "network_member", "care_status", "foster_care_status",
                     "connection_status", "gender", "activity", mode="before")
    @classmethod
    def _choice(cls, value: Any) -> Any:
        if hasattr(value, "value"):
            value = value.value
        return value or ALL

    @field_validator("age_range", mode="before")
    @classmethod
    def _age_range(cls, value: Any) -> Any:
        return value or {}

    def active_count(self) -> int:
        """How many filter controls are away from their defaults."""
        defaults = FilterConfig()
        return sum(
            1
            for name in ("node_type", "care_status", "foster_care_status", "connection_status",
                         "network_member", "gender", "activity")
            if getattr(self, name) != getattr(defaults, name)
        ) + (not self.show_deceased) + self.age_range.is_set

    def matches(self, person: Person, now: datetime) -> bool:
        """Whether ``person`` stays visible under these filters."""
        if self.node_type != ALL and person.node_type.value != self.node_type:
            return False

        age = _int_age(person.age)
        if self.care_status != ALL:
            if age is not None and age > CARE_STATUS_MAX_AGE and self.care_status != CareStatus.NOT_APPLICABLE.value:
                return False
            if person.care_status.value != self.care_status:
                return False

        if self.foster_care_status != ALL and person.foster_care_status.value != self.foster_care_status:
            return False
        if self.network_member == "yes" and not person.network_member:
            return False
        if self.network_member == "no" and person.network_member:
            return False

        if self.activity != ActivityFilter.ALL.value:
            if not person.network_member:
                return False
            if not matches_activity_filter(days_since_last_contact(person, now), self.activity):
                return False

        if not self.show_deceased and person.is_deceased:
            return False
        if self.gender != ALL and person.gender != self.gender:
            return False

        if self.age_range.is_set:
            if age is None:
                return False
            low, high = self.age_range.lower, self.age_range.upper
            if low is not None and age < low:
                return False
            if high is not None and age > high:
                return False
        return True


def apply_filters(people: Iterable[Person], filters: FilterConfig, now: datetime | None = None) -> list[str]:
    """Ids of the people that pass ``filters``, in table order."""
    now = now or datetime.now(UTC)
    return [p.id for p in people if filters.matches(p, now)]


def _activity_label(key: str) -> str:
    try:
        return ActivityFilter(key).label
    except ValueError:
        return _to_title(key)


def _summary_parts(filters: FilterConfig) -> list[str]:
    parts = []
    if filters.node_type != ALL:
        parts.append(f"Type: {_to_title(filters.node_type)}")

    if filters.network_members:
        parts.append(f"Network: {len(filters.network_members)} selected")
    elif filters.network_member == "yes":
        parts.append("Network: Members only")
    elif filters.network_member == "no":
        parts.append("Network: Non-members")

    if filters.care_statuses:
        parts.append(f"Child Welfare: {', '.join(map(_to_title, filters.care_statuses))}")
    elif filters.care_status != ALL:
        parts.append(f"Child Welfare: {_to_title(filters.care_status)}")

    if filters.foster_care_statuses:
        parts.append(f"Foster Status: {', '.join(map(_to_title, filters.foster_care_statuses))}")
    elif filters.foster_care_status != ALL:
        parts.append(f"Foster Status: {_to_title(filters.foster_care_status)}")

    age = filters.age_range.label()
    if age:
        parts.append(f"Age: {age}")

    if filters.gender != ALL:
        parts.append(f"Gender: {_to_title(filters.gender)}")
    if not filters.show_deceased:
        parts.append("Hide deceased")
    if filters.tags:
        parts.append(f"Tags: {len(filters.tags)}")
    if filters.has_open_placements:
        parts.append("Open placements")
    if filters.connection_status != ALL:
        parts.append(f"Connection: {_to_title(filters.connection_status)}")
    if filters.activity != ActivityFilter.ALL.value:
        parts.append(f"Activity: {_activity_label(filters.activity)}")
    return parts


def _coerce(filters: FilterConfig | Mapping[str, Any] | None) -> FilterConfig:
    if isinstance(filters, FilterConfig):
        return filters
    return FilterConfig.model_validate(filters if isinstance(filters, Mapping) else {})


def summarize_filters(filters: FilterConfig | Mapping[str, Any] | None) -> str:
    """One-line description of the active filters, e.g. ``"Gender: Female • Tags: 2"``."""
    parts = _summary_parts(_coerce(filters))
    return SEPARATOR.join(parts) if parts else NO_FILTERS


@dataclass(frozen=True)
class FilterDiff:
    additions: tuple[str, ...]
    removals: tuple[str, ...]
    current_summary: str
    next_summary: str


def compare_filter_summaries(
    current: FilterConfig | Mapping[str, Any] | None,
    next_filters: FilterConfig | Mapping[str, Any] | None,
) -> FilterDiff:
    """Summary parts that switching from ``current`` to ``next_filters`` adds and drops."""
    current_summary = summarize_filters(current)
    next_summary = summarize_filters(next_filters)

    def parts(summary: str) -> list[str]:
        return [] if summary == NO_FILTERS else summary.split(SEPARATOR)

    before, after = parts(current_summary), parts(next_summary)
    return FilterDiff(
        additions=tuple(p for p in after if p not in before),
        removals=tuple(p for p in before if p not in after),
        current_summary=current_summary,
        next_summary=next_summary,
    )


class FilterTemplate(GenogramModel):
    """A named, reusable filter configuration."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    filters: FilterConfig = Field(default_factory=FilterConfig)
    created_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    usage_count: int = 0

    @property
    def summary(self) -> str:
        return summarize_filters(self.filters)


class TemplateLibrary:
    """Saved filter templates, in creation order."""

    def __init__(self, templates: Iterable[FilterTemplate | Mapping[str, Any]] = ()) -> None:
        self._templates: dict[str, FilterTemplate] = {}
        for template in templates:
            template = FilterTemplate.model_validate(template)
            self._templates[template.id] = template

    def __iter__(self):
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)

    def get(self, template_id: str) -> FilterTemplate | None:
        return self._templates.get(template_id)

    def add(self, name: str, filters: FilterConfig | Mapping[str, Any], description: str = "") -> FilterTemplate:
        template = FilterTemplate(name=name, description=description or "", filters=_coerce(filters))
        self._templates[template.id] = template
        return template

    def update(self, template_id: str, updates: Mapping[str, Any]) -> FilterTemplate | None:
        current = self._templates.get(template_id)
        if current is None:
            return None
        updated = current.apply_updates({k: v for k, v in updates.items() if k != "id"})
        self._templates[template_id] = updated
        return updated

    def delete(self, template_id: str) -> None:
        self._templates.pop(template_id, None)

    def increment_usage(self, template_id: str) -> FilterTemplate | None:
        current = self._templates.get(template_id)
        if current is None:
            return None
        return self.update(template_id, {"usage_count": current.usage_count + 1})


@dataclass(frozen=True)
class SearchHistoryItem:
    id: str
    filters: FilterConfig
    timestamp: datetime


class SearchHistory:
    """Most recent applied filter sets, newest first, without duplicates."""

    def __init__(self, limit: int = SEARCH_HISTORY_LIMIT) -> None:
        self.limit = limit
        self._items: list[SearchHistoryItem] = []

    def __iter__(self):
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, filters: FilterConfig | Mapping[str, Any], now: datetime | None = None) -> SearchHistoryItem:
        config = _coerce(filters)
        item = SearchHistoryItem(id=new_id(), filters=config, timestamp=now or datetime.now(UTC))
        self._items = [item, *(i for i in self._items if i.filters != config)][: self.limit]
        return item

    def clear(self) -> None:
        self._items = []
