"""Result types for child and caseload analytics."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from ..models import CareStatus, Person, Placement, PlacementStatus


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        return {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}[self]


@dataclass(frozen=True)
class Flag:
    """A casework concern raised for one child."""

    id: str
    severity: Severity
    message: str
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "message": self.message,
            "description": self.description,
        }


@dataclass(frozen=True)
class MemberStat:
    """Contact activity of one network member."""

    person: Person
    timestamps: tuple[datetime, ...]
    days_since_contact: int | None
    days_to_first_contact: int | None
    is_active: bool

    @property
    def last_contact(self) -> datetime | None:
        return self.timestamps[-1] if self.timestamps else None

    @property
    def first_contact(self) -> datetime | None:
        return self.timestamps[0] if self.timestamps else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "personId": self.person.id,
            "name": self.person.name,
            "timestamps": [ts.isoformat() for ts in self.timestamps],
            "lastTimestamp": _iso(self.last_contact),
            "firstTimestamp": _iso(self.first_contact),
            "daysSince": self.days_since_contact,
            "daysToFirstContact": self.days_to_first_contact,
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class RoleShare:
    key: str
    label: str
    count: int
    percentage: int

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "label": self.label, "count": self.count, "percentage": self.percentage}


@dataclass(frozen=True)
class WeekBucket:
    """Contacts logged in ``[week_start, week_end)``."""

    key: str
    label: str
    count: int
    week_start: datetime
    week_end: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "count": self.count,
            "weekStart": self.week_start.isoformat(),
            "weekEnd": self.week_end.isoformat(),
        }


@dataclass(frozen=True)
class ChildAnalytics:
    child: Person
    total_members: int
    active_members_count: int
    inactive_members_count: int
    active_percentage: int
    total_contacts_last_30_days: int
    avg_days_to_first_contact: int | None
    role_distribution: tuple[RoleShare, ...]
    contact_activity_by_week: tuple[WeekBucket, ...]
    network_health_score: int
    network_health_description: str
    flags: tuple[Flag, ...]
    member_stats: tuple[MemberStat, ...]
    child_days_since_contact: int | None
    generated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "child": self.child.to_document(),
            "totalMembers": self.total_members,
            "activeMembersCount": self.active_members_count,
            "inactiveMembersCount": self.inactive_members_count,
            "activePercentage": self.active_percentage,
            "totalContactsLast30Days": self.total_contacts_last_30_days,
            "avgDaysToFirstContact": self.avg_days_to_first_contact,
            "roleDistribution": [r.to_dict() for r in self.role_distribution],
            "contactActivityByWeek": [w.to_dict() for w in self.contact_activity_by_week],
            "networkHealthScore": self.network_health_score,
            "networkHealthDescription": self.network_health_description,
            "flags": [f.to_dict() for f in self.flags],
            "memberStats": [m.to_dict() for m in self.member_stats],
            "childDaysSinceContact": self.child_days_since_contact,
            "generatedAt": self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class ChildSummary:
    """One row of the caseload overview."""

    id: str
    name: str
    care_status: CareStatus
    case_goal: str | None
    network_health_score: int
    network_health_description: str
    child_days_since_contact: int | None
    total_members: int
    active_members: int
    total_contacts_last_30: int
    avg_days_to_first_contact: int | None
    flags: tuple[Flag, ...]
    placements: tuple[Placement, ...] = ()

    @property
    def potential_placements(self) -> tuple[Placement, ...]:
        return tuple(p for p in self.placements if p.is_potential)

    @property
    def active_placement(self) -> Placement | None:
        return next((p for p in self.placements if p.is_current), None)

    @property
    def has_any_placement_option(self) -> bool:
        return bool(self.potential_placements) or self.active_placement is not None

    @property
    def has_permanent_placement(self) -> bool:
        return any(p.placement_status is PlacementStatus.CURRENT_PERMANENT for p in self.placements)

    @property
    def needs_placement(self) -> bool:
        return self.care_status.requires_placement

    def to_dict(self) -> dict[str, Any]:
        active = self.active_placement
        return {
            "id": self.id,
            "name": self.name,
            "careStatus": self.care_status.value,
            "caseGoal": self.case_goal,
            "networkHealthScore": self.network_health_score,
            "networkHealthDescription": self.network_health_description,
            "childDaysSinceContact": self.child_days_since_contact,
            "totalMembers": self.total_members,
            "activeMembers": self.active_members,
            "totalContactsLast30": self.total_contacts_last_30,
            "avgDaysToFirstContact": self.avg_days_to_first_contact,
            "flags": [f.to_dict() for f in self.flags],
            "placements": [p.to_document() for p in self.placements],
            "potentialPlacements": [p.to_document() for p in self.potential_placements],
            "activePlacement": active.to_document() if active else None,
            "hasAnyPlacementOption": self.has_any_placement_option,
            "hasPermanentPlacement": self.has_permanent_placement,
            "needsPlacement": self.needs_placement,
        }


@dataclass(frozen=True)
class PriorityChild:
    summary: ChildSummary
    priority_score: int

    def to_dict(self) -> dict[str, Any]:
        return {**self.summary.to_dict(), "priorityScore": self.priority_score}


@dataclass(frozen=True)
class FlagDetail:
    """A flag raised for a particular child in the caseload."""

    flag: Flag
    child_id: str
    child_name: str

    def to_dict(self) -> dict[str, Any]:
        return {**self.flag.to_dict(), "childId": self.child_id, "childName": self.child_name}


@dataclass(frozen=True)
class FlagTrend:
    """How many children share a flag, weighted by severity."""

    id: str
    message: str
    severity: Severity
    description: str
    count: int
    severity_score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "severity": self.severity.value,
            "description": self.description,
            "count": self.count,
            "severityScore": self.severity_score,
        }


@dataclass(frozen=True)
class CaseloadAnalytics:
    total_children: int
    with_recent_contact: int
    without_recent_contact: int
    average_network_health: int
    average_contacts_last_30: int
    needs_placement_count: int
    with_placement_options: int
    without_placement_options: int
    generated_at: datetime
    priority_children: tuple[PriorityChild, ...] = ()
    flag_details: tuple[FlagDetail, ...] = ()
    flag_trends: tuple[FlagTrend, ...] = ()
    child_summaries: tuple[ChildSummary, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalChildren": self.total_children,
            "withRecentContact": self.with_recent_contact,
            "withoutRecentContact": self.without_recent_contact,
            "averageNetworkHealth": self.average_network_health,
            "averageContactsLast30": self.average_contacts_last_30,
            "needsPlacementCount": self.needs_placement_count,
            "withPlacementOptions": self.with_placement_options,
            "withoutPlacementOptions": self.without_placement_options,
            "priorityChildren": [c.to_dict() for c in self.priority_children],
            "flagDetails": [f.to_dict() for f in self.flag_details],
            "aggregatedFlagSummary": [t.to_dict() for t in self.flag_trends],
            "childSummaries": [s.to_dict() for s in self.child_summaries],
            "generatedAt": self.generated_at.isoformat(),
        }
