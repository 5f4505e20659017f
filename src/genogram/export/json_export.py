"""JSON interchange document for whole genograms.

The document is the same shape the canvas saves:

    {people, relationships, households, placements, textBoxes,
     tagDefinitions, customAttributes, filterTemplates, metadata,
     fileName, version, savedAt}

Loading accepts partially populated legacy documents. Missing sections are
empty, every entity is re-normalized through its model, and household
membership is recomputed from person positions.
"""
from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError

from ..exceptions import DocumentError
from ..geometry import DEFAULT_BUFFER, with_members
from ..logging import get_logger
from ..models import (
    ChildEdge,
    GraphSnapshot,
    Household,
    PartnershipEdge,
    Person,
    Placement,
    TagDefinition,
    TextBox,
    parse_relationship,
)

logger = get_logger(__name__)

DOCUMENT_VERSION = "2.0"
DEFAULT_FILE_NAME = "Untitled Genogram"

T = TypeVar("T")


def _strip_extension(file_name: str) -> str:
    return Path(file_name).stem if Path(file_name).suffix else file_name


def export_document(
    snapshot: GraphSnapshot,
    file_name: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Serialize a snapshot to the interchange document."""
    return {
        "people": [p.to_document() for p in snapshot.people.values()],
        "relationships": [r.to_document() for r in snapshot.relationships.values()],
        "households": [h.to_document() for h in snapshot.households.values()],
        "placements": [p.to_document() for p in snapshot.placements.values()],
        "textBoxes": [t.to_document() for t in snapshot.text_boxes.values()],
        "tagDefinitions": [t.to_document() for t in snapshot.tag_definitions.values()],
        "customAttributes": [dict(a) for a in snapshot.custom_attributes],
        "filterTemplates": [dict(t) for t in snapshot.filter_templates],
        "metadata": dict(snapshot.metadata),
        "fileName": _strip_extension(file_name or DEFAULT_FILE_NAME),
        "version": DOCUMENT_VERSION,
        "savedAt": (now or datetime.now(UTC)).isoformat(),
    }


def _records(data: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    section = data.get(key)
    if not isinstance(section, list):
        return []
    records = [r for r in section if isinstance(r, Mapping)]
    if len(records) != len(section):
        logger.warning("document_records_skipped", section=key, skipped=len(section) - len(records))
    return records


def _table(records: Iterable[Mapping[str, Any]], build: Callable[[Mapping[str, Any]], T], section: str) -> dict[str, T]:
    table: dict[str, T] = {}
    for index, record in enumerate(records):
        try:
            entity = build(record)
        except ValidationError as e:
            raise DocumentError(f"Invalid {section} record at index {index}: {e}") from e
        table[entity.id] = entity
    return table


def load_document(data: Any, buffer: float = DEFAULT_BUFFER) -> GraphSnapshot:
    """Build a snapshot from a parsed interchange document.

    Raises:
        DocumentError: If ``data`` is not an object or a record is malformed
    """
    if not isinstance(data, Mapping):
        raise DocumentError("A genogram document must be a JSON object")

    people = _table(_records(data, "people"), Person.model_validate, "people")
    relationships = _table(_records(data, "relationships"), parse_relationship, "relationships")

    # Child edges need a partnership to hang from
    dangling = [
        rel.id
        for rel in relationships.values()
        if isinstance(rel, ChildEdge)
        and not isinstance(relationships.get(rel.parent_edge_id), PartnershipEdge)
    ]
    if dangling:
        logger.warning("document_child_edges_dropped", child_edges=dangling)
        relationships = {k: v for k, v in relationships.items() if k not in set(dangling)}

    households = _table(_records(data, "households"), Household.model_validate, "households")
    households = {h.id: h for h in with_members(households.values(), people.values(), buffer)}

    metadata = data.get("metadata")
    snapshot = GraphSnapshot(
        people=people,
        relationships=relationships,
        households=households,
        placements=_table(_records(data, "placements"), Placement.model_validate, "placements"),
        text_boxes=_table(_records(data, "textBoxes"), TextBox.model_validate, "textBoxes"),
        tag_definitions=_table(_records(data, "tagDefinitions"), TagDefinition.model_validate, "tagDefinitions"),
        custom_attributes=tuple(dict(a) for a in _records(data, "customAttributes")),
        filter_templates=tuple(dict(t) for t in _records(data, "filterTemplates")),
        metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
    )
    logger.info(
        "document_loaded",
        people=len(snapshot.people),
        relationships=len(snapshot.relationships),
        households=len(snapshot.households),
        placements=len(snapshot.placements),
    )
    return snapshot


def read_document(path: Path | str, buffer: float = DEFAULT_BUFFER) -> GraphSnapshot:
    """Load a genogram from a JSON file.

    Raises:
        DocumentError: If the file is not valid JSON or not a genogram document
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DocumentError(f"{path} is not valid JSON: {e}") from e
    return load_document(data, buffer=buffer)


def write_document(
    snapshot: GraphSnapshot,
    path: Path | str,
    pretty: bool = True,
    now: datetime | None = None,
) -> Path:
    """Write a snapshot to a JSON file named after ``path``.

    Returns:
        Path to the written file
    """
    path = Path(path)
    document = export_document(snapshot, file_name=path.name, now=now)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if pretty:
            json.dump(document, f, indent=2, ensure_ascii=False)
        else:
            json.dump(document, f, ensure_ascii=False)
    logger.info("document_written", path=str(path), people=len(snapshot.people))
    return path
