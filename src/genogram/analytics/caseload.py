"""Caseload-wide rollup of per-child analytics."""
from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime

from ..contacts import parse_contact_date
from ..logging import get_logger
from ..models import CareStatus, GraphSnapshot, Person
from .child import ACTIVE_WINDOW_DAYS, compute_child_analytics, round_half_up
from .models import (
    CaseloadAnalytics,
    ChildSummary,
    FlagDetail,
    FlagTrend,
    PriorityChild,
    Severity,
)

logger = get_logger(__name__)

CHILD_MAX_AGE = 21
PRIORITY_LIMIT = 6
OVERDUE_CONTACT_DAYS = 45
LOW_HEALTH_SCORE = 50
UNNAMED_CHILD = "Unnamed Child"

_CHILD_ROLE = re.compile(r"child|youth|teen", re.IGNORECASE)


def _numeric_age(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value)
        except ValueError:
            return None
    return None


def looks_like_child(person: Person, now: datetime) -> bool:
    """Whether a person is probably a child on the caseload.

    Any of: a care status, a child/youth/teen role, an age of 21 or under,
    or a birth date no more than 21 calendar years before ``now``.
    """
    if not person.is_person:
        return False
    if person.care_status is not CareStatus.NOT_APPLICABLE:
        return True
    if _CHILD_ROLE.search(person.role):
        return True
    age = _numeric_age(person.age)
    if age is not None and age <= CHILD_MAX_AGE:
        return True
    born = parse_contact_date(person.birth_date)
    return born is not None and now.year - born.year <= CHILD_MAX_AGE


def find_child_candidates(people: Iterable[Person], now: datetime) -> list[Person]:
    """Likely children, ordered by name without regard to case."""
    return sorted(
        (p for p in people if looks_like_child(p, now)),
        key=lambda p: p.name.casefold(),
    )


def priority_score(summary: ChildSummary) -> int:
    severities = {flag.severity for flag in summary.flags}
    score = 0
    if Severity.HIGH in severities:
        score += 6
    if Severity.MEDIUM in severities:
        score += 3
    days = summary.child_days_since_contact
    if days is None or days > OVERDUE_CONTACT_DAYS:
        score += 2
    if summary.needs_placement and not summary.has_any_placement_option:
        score += 5
    if summary.network_health_score < LOW_HEALTH_SCORE:
        score += 1
    return score


def flag_trends(details: Iterable[FlagDetail]) -> tuple[FlagTrend, ...]:
    """Group flags by id; heaviest total severity first, then most children."""
    trends: dict[str, FlagTrend] = {}
    for detail in details:
        flag = detail.flag
        current = trends.get(flag.id)
        if current is None:
            trends[flag.id] = FlagTrend(
                id=flag.id,
                message=flag.message,
                severity=flag.severity,
                description=flag.description,
                count=1,
                severity_score=flag.severity.weight,
            )
        else:
            trends[flag.id] = FlagTrend(
                id=current.id,
                message=current.message,
                severity=current.severity,
                description=current.description,
                count=current.count + 1,
                severity_score=current.severity_score + flag.severity.weight,
            )
    return tuple(sorted(trends.values(), key=lambda t: (-t.severity_score, -t.count)))


def compute_caseload_analytics(snapshot: GraphSnapshot, now: datetime) -> CaseloadAnalytics:
    """Roll child analytics up across every likely child in the graph."""
    now = parse_contact_date(now) or now
    summaries: list[ChildSummary] = []
    details: list[FlagDetail] = []

    for child in find_child_candidates(snapshot.people.values(), now):
        analytics = compute_child_analytics(snapshot, child.id, now)
        if analytics is None:
            continue
        summary = ChildSummary(
            id=child.id,
            name=child.name or UNNAMED_CHILD,
            care_status=child.care_status,
            case_goal=child.case_data.case_goal or None,
            network_health_score=analytics.network_health_score,
            network_health_description=analytics.network_health_description,
            child_days_since_contact=analytics.child_days_since_contact,
            total_members=analytics.total_members,
            active_members=analytics.active_members_count,
            total_contacts_last_30=analytics.total_contacts_last_30_days,
            avg_days_to_first_contact=analytics.avg_days_to_first_contact,
            flags=analytics.flags,
            placements=tuple(snapshot.placements_for_child(child.id)),
        )
        summaries.append(summary)
        details.extend(FlagDetail(flag, child.id, summary.name) for flag in analytics.flags)

    total = len(summaries)

    def recent(summary: ChildSummary) -> bool:
        days = summary.child_days_since_contact
        return days is not None and days <= ACTIVE_WINDOW_DAYS

    def average(values: list[int]) -> int:
        return round_half_up(sum(values) / total) if total else 0

    scored = [PriorityChild(s, priority_score(s)) for s in summaries]
    priority = sorted((c for c in scored if c.priority_score > 0), key=lambda c: -c.priority_score)

    result = CaseloadAnalytics(
        total_children=total,
        with_recent_contact=sum(1 for s in summaries if recent(s)),
        without_recent_contact=sum(1 for s in summaries if not recent(s)),
        average_network_health=average([s.network_health_score for s in summaries]),
        average_contacts_last_30=average([s.total_contacts_last_30 for s in summaries]),
        needs_placement_count=sum(1 for s in summaries if s.needs_placement),
        with_placement_options=sum(1 for s in summaries if s.has_any_placement_option),
        without_placement_options=sum(
            1 for s in summaries if s.needs_placement and not s.has_any_placement_option
        ),
        generated_at=now,
        priority_children=tuple(priority[:PRIORITY_LIMIT]),
        flag_details=tuple(details),
        flag_trends=flag_trends(details),
        child_summaries=tuple(summaries),
    )
    logger.debug(
        "caseload_analytics",
        children=total,
        priority=[c.summary.id for c in result.priority_children],
    )
    return result
