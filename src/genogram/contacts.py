"""Contact-timestamp extraction.

Contact history lives in several places on a person record depending on
which version of the case tooling wrote it: direct "last contact" fields,
nested engagement summaries, typed case-log entries and raw contact events.
Everything here folds those into one sorted list of aware UTC datetimes.
"""
from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime, timedelta
from enum import Enum
from typing import Any

from .models import ContactKind, Person

DAY = timedelta(days=1)

# Direct fields on the person record
_DIRECT_FIELDS = ("last_contact_at", "last_contact_date", "last_contacted_at")

# (nested dict attribute, key) pairs
_NESTED_FIELDS = (
    ("engagement", "lastContactAt"),
    ("engagement", "lastContactDate"),
    ("contact_summary", "lastContactAt"),
    ("contact_summary", "lastContactDate"),
)

# Extra formats seen in hand-entered legacy data
_FALLBACK_FORMATS = ("%m/%d/%Y", "%Y/%m/%d", "%B %d, %Y", "%b %d, %Y")


def parse_contact_date(value: Any) -> datetime | None:
    """Normalize a raw date value to an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), dates, epoch
    milliseconds and ISO strings. Date-only strings mean midnight UTC.
    Anything unparseable, and falsy values, give ``None``.
    """
    if not value or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return parse_contact_date(datetime.fromisoformat(text))
        except ValueError:
            pass
        for fmt in _FALLBACK_FORMATS:
            try:
                return datetime.strptime(text, fmt).replace(tzinfo=UTC)
            except ValueError:
                continue
    return None


def _entry_values(entry: Any, keys: Iterable[str]) -> list[Any]:
    if isinstance(entry, Mapping):
        return [entry.get(key) for key in keys]
    return [getattr(entry, key, None) for key in keys]


def collect_contact_timestamps(person: Person | None) -> list[datetime]:
    """All distinct contact timestamps for a person, oldest first."""
    if person is None:
        return []

    found: set[datetime] = set()

    def add(value: Any) -> None:
        parsed = parse_contact_date(value)
        if parsed is not None:
            found.add(parsed)

    for field in _DIRECT_FIELDS:
        add(getattr(person, field, None))

    for scope, key in _NESTED_FIELDS:
        nested = getattr(person, scope, None) or {}
        add(nested.get(key))

    for entry in person.case_log:
        if ContactKind.recognise(entry.type) is None:
            continue
        for value in _entry_values(entry, ("timestamp", "completed_at", "at", "date")):
            add(value)

    for event in person.contact_events:
        add(event.get("at") or event.get("timestamp") or event.get("date"))

    return sorted(found)


def latest_contact(person: Person | None) -> datetime | None:
    timestamps = collect_contact_timestamps(person)
    return timestamps[-1] if timestamps else None


def days_between(later: datetime, earlier: datetime) -> int:
    """Whole days from ``earlier`` to ``later``, floored."""
    return math.floor((later - earlier) / DAY)


def days_since_last_contact(person: Person | None, now: datetime) -> int | None:
    """Whole days since the latest contact; future contacts count as today."""
    latest = latest_contact(person)
    if latest is None:
        return None
    if latest > now:
        return 0
    return days_between(now, latest)


def count_contacts_within(timestamps: Iterable[datetime], days: float, now: datetime) -> int:
    """Timestamps no later than ``now`` and at most ``days`` old."""
    if not math.isfinite(days):
        return 0
    window = timedelta(days=days)
    return sum(1 for ts in timestamps if ts <= now and now - ts <= window)


class ActivityFilter(str, Enum):
    """Canvas filter buckets keyed on days since last contact."""

    ALL = "all"
    ACTIVE_30 = "active_30"
    ACTIVE_60 = "active_60"
    ACTIVE_90 = "active_90"
    INACTIVE_90 = "inactive_90"

    @property
    def label(self) -> str:
        return _ACTIVITY_LABELS[self]


_ACTIVITY_LABELS = {
    ActivityFilter.ALL: "All Network Members",
    ActivityFilter.ACTIVE_30: "Active (last 30 days)",
    ActivityFilter.ACTIVE_60: "Moderate (30-60 days)",
    ActivityFilter.ACTIVE_90: "Low Activity (60-90 days)",
    ActivityFilter.INACTIVE_90: "Inactive (90+ days)",
}

# (exclusive lower, inclusive upper) bounds on days since contact
_ACTIVITY_BANDS = {
    ActivityFilter.ACTIVE_30: (-math.inf, 30),
    ActivityFilter.ACTIVE_60: (30, 60),
    ActivityFilter.ACTIVE_90: (60, 90),
    ActivityFilter.INACTIVE_90: (90, math.inf),
}


def matches_activity_filter(days_since: int | None, key: ActivityFilter | str | None) -> bool:
    """Whether a person with ``days_since`` falls in the activity bucket.

    Unknown keys pass everyone. No recorded contact counts as infinitely
    long ago, so it only lands in the inactive bucket.
    """
    try:
        bucket = ActivityFilter(key) if key else ActivityFilter.ALL
    except ValueError:
        return True
    if bucket is ActivityFilter.ALL:
        return True
    effective = math.inf if days_since is None else days_since
    low, high = _ACTIVITY_BANDS[bucket]
    return low < effective <= high
