"""Point-in-polygon containment for household membership."""
from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from .models import Household, Person, Point

DEFAULT_BUFFER = 15.0


def expand_polygon(polygon: Sequence[Point], buffer: float) -> list[Point]:
    """Push each vertex ``buffer`` units away from the vertex centroid.

    A vertex sitting exactly on the centroid is left where it is.
    """
    if len(polygon) < 3 or not buffer:
        return list(polygon)

    cx = sum(p.x for p in polygon) / len(polygon)
    cy = sum(p.y for p in polygon) / len(polygon)

    expanded = []
    for point in polygon:
        dx = point.x - cx
        dy = point.y - cy
        distance = math.hypot(dx, dy)
        if distance == 0:
            expanded.append(point)
            continue
        ratio = (distance + buffer) / distance
        expanded.append(Point(x=cx + dx * ratio, y=cy + dy * ratio))
    return expanded


def is_inside(point: Point, polygon: Sequence[Point], buffer: float = DEFAULT_BUFFER) -> bool:
    """Ray-casting test against the polygon grown by ``buffer``."""
    if len(polygon) < 3:
        return False

    shape = expand_polygon(polygon, buffer) if buffer > 0 else list(polygon)
    x, y = point.x, point.y
    inside = False
    j = len(shape) - 1
    for i in range(len(shape)):
        xi, yi = shape[i].x, shape[i].y
        xj, yj = shape[j].x, shape[j].y
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def compute_membership(
    households: Iterable[Household],
    people: Iterable[Person],
    buffer: float = DEFAULT_BUFFER,
) -> dict[str, tuple[str, ...]]:
    """Map each household id to the ids of people standing inside it.

    Open households (fewer than 3 points) have no members. People keep their
    table order within each household.
    """
    people = list(people)
    membership: dict[str, tuple[str, ...]] = {}
    for household in households:
        if not household.is_closed:
            membership[household.id] = ()
            continue
        membership[household.id] = tuple(
            person.id
            for person in people
            if is_inside(Point(x=person.x, y=person.y), household.points, buffer)
        )
    return membership


def with_members(
    households: Iterable[Household],
    people: Iterable[Person],
    buffer: float = DEFAULT_BUFFER,
) -> list[Household]:
    """Households with ``members`` refreshed; unchanged ones are reused."""
    households = list(households)
    membership = compute_membership(households, people, buffer)
    refreshed = []
    for household in households:
        members = membership.get(household.id, ())
        if members == household.members:
            refreshed.append(household)
        else:
            refreshed.append(household.model_copy(update={"members": members}))
    return refreshed


def distance_to_segment(p: Point, v: Point, w: Point) -> float:
    """Shortest distance from ``p`` to the segment ``v``-``w``."""
    length_sq = (w.x - v.x) ** 2 + (w.y - v.y) ** 2
    if length_sq == 0:
        return math.hypot(p.x - v.x, p.y - v.y)
    t = ((p.x - v.x) * (w.x - v.x) + (p.y - v.y) * (w.y - v.y)) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(p.x - (v.x + t * (w.x - v.x)), p.y - (v.y + t * (w.y - v.y)))


def nearest_edge_index(polygon: Sequence[Point], point: Point) -> int:
    """Index of the vertex that starts the polygon edge closest to ``point``."""
    best_index = len(polygon) - 1
    best_distance = math.inf
    for i in range(len(polygon)):
        a = polygon[i]
        b = polygon[(i + 1) % len(polygon)]
        distance = distance_to_segment(point, a, b)
        if distance < best_distance:
            best_distance = distance
            best_index = i
    return best_index
