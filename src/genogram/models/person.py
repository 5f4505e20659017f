"""Person node and its nested case-planning sub-objects."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import Field, field_serializer, field_validator, model_validator

from .base import (
    DiscoveryMetadata,
    GenogramModel,
    coerce_enum,
    fold_discovery_fields,
    mapping_or_empty,
    new_id,
    sequence_or_empty,
)
from .enums import CareStatus, FosterCareStatus, NodeType


class ContactInfo(GenogramModel):
    """Phone numbers, emails and postal addresses for a person."""

    phones: tuple[Any, ...] = ()
    emails: tuple[Any, ...] = ()
    addresses: tuple[Any, ...] = ()

    @field_validator("phones", "emails", "addresses", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        return sequence_or_empty(value)


class CaseData(GenogramModel):
    """Case management details for a child in the system."""

    removal_date: str | None = None
    case_goal: str | None = None
    permanency_timeline: str | None = None
    caseworker: str = ""
    case_number: str = ""

    @field_validator("removal_date", "case_goal", "permanency_timeline", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        return value or None


class FosterCareData(GenogramModel):
    """Licensing and capacity details for a potential caregiver."""

    license_number: str = ""
    license_expiration: str | None = None
    license_type: str | None = None
    max_children: int | None = None
    current_children: int = 0
    age_range_min: int | None = None
    age_range_max: int | None = None
    special_needs: bool = False
    notes: str = ""

    @field_validator(
        "license_expiration",
        "license_type",
        "max_children",
        "age_range_min",
        "age_range_max",
        mode="before",
    )
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        return None if value == "" else value

    @field_validator("current_children", mode="before")
    @classmethod
    def _blank_is_zero(cls, value: Any) -> Any:
        return value or 0


class CaseLogEntry(GenogramModel):
    """One case-log entry. Contact kinds carry one or more date fields."""

    type: str = ""
    timestamp: Any = None
    completed_at: Any = None
    at: Any = None
    date: Any = None
    note: str = ""


# Nested sub-objects a person always carries
_PERSON_MAPPINGS = (
    "contactInfo",
    "caseData",
    "fosterCareData",
    "typeData",
    "discoveryMetadata",
    "engagement",
    "contactSummary",
)


class Person(GenogramModel):
    """A node on the genogram canvas.

    Nested sub-objects (``contact_info``, ``case_data``, ``foster_care_data``,
    ``type_data``, ``discovery``) are always populated, so callers never
    check them for ``None``.
    """

    id: str = Field(default_factory=new_id)
    name: str = ""
    node_type: NodeType = Field(default=NodeType.PERSON, alias="type")

    # Canvas position
    x: float = 0.0
    y: float = 0.0

    # Demographics
    gender: str = ""
    age: int | float | str | None = None
    birth_date: str | None = None
    death_date: str | None = None
    is_deceased: bool = False
    role: str = ""
    type_data: dict[str, Any] = Field(default_factory=dict)
    notes: str = ""

    # Case planning
    network_member: bool = False
    tags: frozenset[str] = frozenset()
    care_status: CareStatus = CareStatus.NOT_APPLICABLE
    foster_care_status: FosterCareStatus = FosterCareStatus.NOT_APPLICABLE
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    case_data: CaseData = Field(default_factory=CaseData)
    foster_care_data: FosterCareData = Field(default_factory=FosterCareData)

    # Contact activity
    case_log: tuple[CaseLogEntry, ...] = ()
    contact_events: tuple[dict[str, Any], ...] = ()
    last_contact_at: Any = None
    last_contact_date: Any = None
    last_contacted_at: Any = None
    engagement: dict[str, Any] = Field(default_factory=dict)
    contact_summary: dict[str, Any] = Field(default_factory=dict)

    # Family finding
    discovery: DiscoveryMetadata = Field(
        default_factory=DiscoveryMetadata, alias="discoveryMetadata"
    )
    created_at: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        data = fold_discovery_fields(data)
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        for key in _PERSON_MAPPINGS:
            snake = cls.field_name(key)
            for candidate in (key, snake):
                if candidate in data:
                    data[candidate] = mapping_or_empty(data[candidate])
        for key in ("caseLog", "case_log", "contactEvents", "contact_events", "tags"):
            if key in data:
                data[key] = sequence_or_empty(data[key])
        if "contactEvents" in data or "contact_events" in data:
            key = "contactEvents" if "contactEvents" in data else "contact_events"
            data[key] = tuple(e for e in data[key] if isinstance(e, Mapping))
        if "caseLog" in data or "case_log" in data:
            key = "caseLog" if "caseLog" in data else "case_log"
            data[key] = tuple(e for e in data[key] if isinstance(e, (Mapping, CaseLogEntry)))
        return data

    @field_validator("node_type", mode="before")
    @classmethod
    def _node_type(cls, value: Any) -> NodeType:
        return coerce_enum(NodeType, value, NodeType.OTHER if value else NodeType.PERSON)

    @field_validator("care_status", mode="before")
    @classmethod
    def _care_status(cls, value: Any) -> CareStatus:
        return coerce_enum(CareStatus, value, CareStatus.NOT_APPLICABLE)

    @field_validator("foster_care_status", mode="before")
    @classmethod
    def _foster_care_status(cls, value: Any) -> FosterCareStatus:
        return coerce_enum(FosterCareStatus, value, FosterCareStatus.NOT_APPLICABLE)

    @field_validator("name", "gender", "role", "notes", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("x", "y", mode="before")
    @classmethod
    def _coordinate(cls, value: Any) -> Any:
        return 0.0 if value is None or value == "" else value

    @field_serializer("tags")
    def _serialize_tags(self, tags: frozenset[str]) -> list[str]:
        return sorted(tags)

    def merge(self, updates: Mapping[str, Any]) -> Person:
        """Apply a partial update with nested sub-objects shallow-merged."""
        return self.apply_updates(updates)

    @property
    def is_person(self) -> bool:
        return self.node_type == NodeType.PERSON

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)
