"""Layout repair for the children of one partnership."""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping

from ..models import Person


def _identity(value: float) -> float:
    return value


def parents_centre(parents: Iterable[Person | None]) -> float | None:
    """Horizontal midpoint of the known parents, or None if there are none."""
    xs = [p.x for p in parents if p is not None]
    if not xs:
        return None
    return sum(xs) / len(xs)


def row_positions(
    centre: float,
    count: int,
    spacing: float,
    snap: Callable[[float], float] = _identity,
) -> list[float]:
    """``count`` evenly spaced x positions centred on ``centre``."""
    start = snap(centre - (count - 1) * spacing / 2)
    return [snap(start + index * spacing) for index in range(count)]


def respace(
    people: Mapping[str, Person],
    sibling_ids: Iterable[str],
    centre: float,
    spacing: float,
    snap: Callable[[float], float] = _identity,
    extra_slots: int = 0,
) -> tuple[dict[str, Person], list[float]]:
    """Lay siblings out left to right in their current x order.

    Returns the updated people table and any x positions left over for
    ``extra_slots`` new children appended on the right.
    """
    siblings = sorted(
        (people[sid] for sid in dict.fromkeys(sibling_ids) if sid in people),
        key=lambda p: p.x,
    )
    xs = row_positions(centre, len(siblings) + extra_slots, spacing, snap)
    updated = dict(people)
    for sibling, x in zip(siblings, xs):
        if sibling.x != x:
            updated[sibling.id] = sibling.model_copy(update={"x": x})
    return updated, xs[len(siblings):]
