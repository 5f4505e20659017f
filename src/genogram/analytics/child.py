"""Support-network analytics for one child.

Everything here is a pure function of ``(snapshot, child_id, now)``: the
same inputs always give equal results, and nothing is cached between calls.
"""
from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from ..contacts import (
    DAY,
    collect_contact_timestamps,
    count_contacts_within,
    days_between,
    days_since_last_contact,
    parse_contact_date,
)
from ..logging import get_logger
from ..models import (
    CONFLICT_RELATIONSHIP_TYPES,
    ChildEdge,
    GraphSnapshot,
    Person,
    Placement,
)
from .models import ChildAnalytics, Flag, MemberStat, RoleShare, Severity, WeekBucket

logger = get_logger(__name__)

ACTIVE_WINDOW_DAYS = 30
STALE_LEAD_DAYS = 14
WEEKS_TO_TRACK = 13
UNASSIGNED_ROLE = "Unassigned"

# (minimum score, description), checked in order
_HEALTH_BANDS = (
    (80, "Strong, active network"),
    (60, "Healthy network engagement"),
    (40, "Developing connections"),
    (1, "Network needs attention"),
)
NO_NETWORK = "No active network"


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def derive_role(person: Person) -> str:
    """The person's role for diversity counts, ``"Unassigned"`` if blank."""
    if person.role.strip():
        return person.role.strip()
    nested = person.type_data.get("role")
    if isinstance(nested, str) and nested.strip():
        return nested.strip()
    return UNASSIGNED_ROLE


def discovery_time(entity: Person | Placement) -> datetime | None:
    return parse_contact_date(entity.discovery.date or entity.created_at)


def resolve_network(snapshot: GraphSnapshot, child_id: str) -> list[Person]:
    """People in the child's support network.

    Direct relationship partners, both parents of each partnership the child
    hangs from, and caregivers named in the child's placements. Only person
    nodes count, and flagged network members win over everyone else when
    there are any. An empty network falls back to every flagged network
    member in the graph.
    """
    ids: dict[str, None] = {}
    for rel in snapshot.relationships.values():
        if isinstance(rel, ChildEdge):
            if rel.child_id == child_id:
                parents = snapshot.parent_partnership(rel)
                if parents is not None:
                    ids.update(dict.fromkeys(parents.endpoints))
            continue
        partner = rel.partner_of(child_id)
        if partner is not None:
            ids[partner] = None
    for placement in snapshot.placements_for_child(child_id):
        if placement.caregiver_id:
            ids[placement.caregiver_id] = None
    ids.pop(child_id, None)

    members = [snapshot.people[pid] for pid in ids if pid in snapshot.people]
    members = [p for p in members if p.is_person]
    flagged = [p for p in members if p.network_member]
    if flagged:
        members = flagged
    if not members:
        members = [
            p for p in snapshot.people.values() if p.is_person and p.network_member and p.id != child_id
        ]
    return members


def member_stat(person: Person, now: datetime) -> MemberStat:
    timestamps = tuple(collect_contact_timestamps(person))
    days_since = max(0, days_between(now, timestamps[-1])) if timestamps else None

    first = timestamps[0] if timestamps else None
    discovered = discovery_time(person)
    if first is not None and discovered is not None:
        baseline = min(first, discovered)
    else:
        baseline = first or discovered
    days_to_first = (
        max(0, days_between(first, baseline)) if first is not None and baseline is not None else None
    )
    return MemberStat(
        person=person,
        timestamps=timestamps,
        days_since_contact=days_since,
        days_to_first_contact=days_to_first,
        is_active=days_since is not None and days_since <= ACTIVE_WINDOW_DAYS,
    )


def role_distribution(members: Sequence[Person]) -> tuple[RoleShare, ...]:
    """Role counts, largest first; ties keep first-seen order."""
    counts = Counter(derive_role(p) for p in members)
    total = len(members)
    shares = [
        RoleShare(
            key=role,
            label=role,
            count=count,
            percentage=round_half_up(count / total * 100) if total else 0,
        )
        for role, count in counts.items()
    ]
    return tuple(sorted(shares, key=lambda s: -s.count))


def conflict_edge_count(snapshot: GraphSnapshot, child_id: str) -> int:
    """Conflict-type edges touching the child.

    A child edge counts when the partnership it hangs from is a conflict
    type.
    """
    count = 0
    for rel in snapshot.relationships.values():
        if isinstance(rel, ChildEdge):
            if rel.child_id != child_id:
                continue
            rel = snapshot.parent_partnership(rel)
            if rel is None:
                continue
        elif not rel.involves(child_id):
            continue
        if rel.kind in CONFLICT_RELATIONSHIP_TYPES:
            count += 1
    return count


def network_health_score(active: int, unique_roles: int, conflicts: int) -> int:
    score = min(active, 10) + min(unique_roles, 5) - min(conflicts, 3)
    return max(0, min(100, round_half_up(score / 12 * 100)))


def describe_network_health(score: int) -> str:
    for minimum, description in _HEALTH_BANDS:
        if score >= minimum:
            return description
    return NO_NETWORK


def start_of_week(moment: datetime) -> datetime:
    """Midnight UTC on the Sunday on or before ``moment``."""
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=(midnight.weekday() + 1) % 7)


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def activity_by_week(stats: Iterable[MemberStat], now: datetime) -> tuple[WeekBucket, ...]:
    """Contact counts for the 13 Sunday-aligned weeks ending with this one."""
    timestamps = [ts for stat in stats for ts in stat.timestamps]
    first_week = start_of_week(now - (WEEKS_TO_TRACK - 1) * 7 * DAY)
    buckets = []
    for week in range(WEEKS_TO_TRACK):
        start = first_week + week * 7 * DAY
        end = start + 7 * DAY
        buckets.append(
            WeekBucket(
                key=f"{_epoch_ms(start)}-{_epoch_ms(end)}",
                label=f"{start:%b} {start.day}",
                count=sum(1 for ts in timestamps if start <= ts < end),
                week_start=start,
                week_end=end,
            )
        )
    return tuple(buckets)


def build_flags(
    snapshot: GraphSnapshot,
    child: Person,
    stats: Sequence[MemberStat],
    roles: Sequence[RoleShare],
    now: datetime,
) -> tuple[Flag, ...]:
    total = len(stats)
    if total == 0:
        return (
            Flag(
                "no-members",
                Severity.HIGH,
                "No network members identified",
                "Add family or support connections to begin tracking engagement.",
            ),
        )

    flags = []
    active = sum(1 for s in stats if s.is_active)
    inactive = total - active
    if active == 0:
        flags.append(
            Flag(
                "no-active-members",
                Severity.HIGH,
                "No recent contact activity",
                "Reconnect with the child's supports. No contacts logged within the past 30 days.",
            )
        )
    if inactive > 0:
        flags.append(
            Flag(
                "inactive-members",
                Severity.MEDIUM if inactive >= total / 2 else Severity.LOW,
                f"{inactive} inactive network member{'' if inactive == 1 else 's'}",
                "Schedule outreach to re-engage network members who have been inactive for 90+ days.",
            )
        )
    if len(roles) <= 2 and total >= 5:
        flags.append(
            Flag(
                "low-role-diversity",
                Severity.LOW,
                "Limited role diversity",
                "Add varied roles (kin, mentors, community supports) to strengthen the child's network.",
            )
        )

    placements = snapshot.placements_for_child(child.id)
    if child.care_status.requires_placement and not any(p.is_option for p in placements):
        flags.append(
            Flag(
                "no-placement-options",
                Severity.HIGH,
                "No placement options identified",
                "Identify caregivers or family resources to meet placement requirements.",
            )
        )

    stale_after = STALE_LEAD_DAYS * DAY
    for placement in placements:
        if not placement.is_potential or placement.status_changed_at:
            continue
        discovered = discovery_time(placement)
        if discovered is not None and now - discovered > stale_after:
            flags.append(
                Flag(
                    "stale-placement-leads",
                    Severity.MEDIUM,
                    "Follow up on placement leads",
                    "Placement options identified more than two weeks ago need follow-up activity.",
                )
            )
            break
    return tuple(flags)


def compute_child_analytics(
    snapshot: GraphSnapshot,
    child_id: str,
    now: datetime,
) -> ChildAnalytics | None:
    """Network activity, health and casework flags for one child.

    Returns None when ``child_id`` is not in the graph.
    """
    now = parse_contact_date(now) or now
    child = snapshot.people.get(child_id)
    if child is None:
        return None

    members = resolve_network(snapshot, child_id)
    stats = tuple(member_stat(p, now) for p in members)
    total = len(stats)
    active = sum(1 for s in stats if s.is_active)
    first_contact_days = [s.days_to_first_contact for s in stats if s.days_to_first_contact is not None]
    roles = role_distribution(members)
    score = network_health_score(active, len(roles), conflict_edge_count(snapshot, child_id))

    analytics = ChildAnalytics(
        child=child,
        total_members=total,
        active_members_count=active,
        inactive_members_count=total - active,
        active_percentage=round_half_up(active / total * 100) if total else 0,
        total_contacts_last_30_days=sum(
            count_contacts_within(s.timestamps, ACTIVE_WINDOW_DAYS, now) for s in stats
        ),
        avg_days_to_first_contact=(
            round_half_up(sum(first_contact_days) / len(first_contact_days)) if first_contact_days else None
        ),
        role_distribution=roles,
        contact_activity_by_week=activity_by_week(stats, now),
        network_health_score=score,
        network_health_description=describe_network_health(score),
        flags=build_flags(snapshot, child, stats, roles, now),
        member_stats=stats,
        child_days_since_contact=days_since_last_contact(child, now),
        generated_at=now,
    )
    logger.debug(
        "child_analytics",
        child_id=child_id,
        members=total,
        active=active,
        health=score,
        flags=[f.id for f in analytics.flags],
    )
    return analytics
