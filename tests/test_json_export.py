"""Tests for the JSON interchange document."""
from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from genogram.exceptions import DocumentError
from genogram.export import DOCUMENT_VERSION, export_document, load_document, read_document, write_document
from genogram.models import ChildEdge, GraphSnapshot, PartnershipEdge

SAVED = datetime(2024, 3, 1, 9, 30, tzinfo=UTC)

DOCUMENT = {
    "people": [
        {"id": "mum", "name": "Maria", "x": 50, "y": 50, "tags": ["kin"]},
        {"id": "kid", "name": "Kai", "x": 400, "y": 400, "careStatus": "in_care", "shoeSize": 4},
    ],
    "relationships": [
        {"id": "m", "from": "mum", "to": "mum", "type": "adoption"},
        {"id": "c", "from": "m", "to": "kid", "type": "child"},
    ],
    "households": [{"id": "h", "name": "Home", "points": [[0, 0], [100, 0], [100, 100], [0, 100]]}],
    "placements": [{"id": "p", "childId": "kid", "caregiverId": "mum", "placementStatus": "current_permanent"}],
    "textBoxes": [{"id": "t", "html": "<b>Note</b>"}],
    "tagDefinitions": [{"id": "kin", "name": "Kin", "color": "#10b981"}],
    "customAttributes": [{"key": "school", "label": "School"}],
    "filterTemplates": [{"id": "ft", "name": "Kids", "filters": {"careStatus": "in_care"}}],
    "metadata": {"caseName": "Rivera"},
}


class TestLoadDocument:
    """Tests for tolerant document loading."""

    def test_full_document(self):
        snapshot = load_document(DOCUMENT)

        assert list(snapshot.people) == ["mum", "kid"]
        assert isinstance(snapshot.relationships["m"], PartnershipEdge)
        assert isinstance(snapshot.relationships["c"], ChildEdge)
        assert snapshot.households["h"].members == ("mum",)
        assert snapshot.placements["p"].is_current
        assert snapshot.text_boxes["t"].html == "<b>Note</b>"
        assert snapshot.tag_definitions["kin"].color == "#10b981"
        assert snapshot.custom_attributes == ({"key": "school", "label": "School"},)
        assert snapshot.metadata == {"caseName": "Rivera"}

    def test_missing_sections_are_empty(self):
        snapshot = load_document({"people": [{"id": "a"}]})

        assert snapshot.relationships == {}
        assert snapshot.households == {}
        assert snapshot.filter_templates == ()

    def test_non_object_records_are_skipped(self):
        snapshot = load_document({"people": [{"id": "a"}, "junk", 7], "households": "nope"})

        assert list(snapshot.people) == ["a"]
        assert snapshot.households == {}

    def test_dangling_child_edges_are_dropped(self):
        snapshot = load_document(
            {
                "people": [{"id": "kid"}],
                "relationships": [{"id": "c", "from": "gone", "to": "kid", "type": "child"}],
            }
        )

        assert snapshot.relationships == {}

    @pytest.mark.parametrize("data", [None, [], "text", 3])
    def test_non_object_document(self, data):
        with pytest.raises(DocumentError):
            load_document(data)

    def test_malformed_record(self):
        with pytest.raises(DocumentError, match="relationships record at index 0"):
            load_document({"relationships": [{"id": "r", "to": "b"}]})


class TestExportDocument:
    def test_fields(self):
        snapshot = load_document(DOCUMENT)

        document = export_document(snapshot, file_name="rivera.json", now=SAVED)

        assert document["version"] == DOCUMENT_VERSION
        assert document["fileName"] == "rivera"
        assert document["savedAt"] == SAVED.isoformat()
        assert document["people"][1]["shoeSize"] == 4
        assert document["people"][0]["tags"] == ["kin"]
        assert document["relationships"][1] == {
            **document["relationships"][1],
            "from": "m",
            "to": "kid",
            "type": "child",
        }
        assert document["filterTemplates"] == DOCUMENT["filterTemplates"]
        assert document["placements"][0]["childId"] == "kid"

    def test_default_file_name(self):
        assert export_document(GraphSnapshot(), now=SAVED)["fileName"] == "Untitled Genogram"

    def test_reload_is_stable(self):
        first = export_document(load_document(DOCUMENT), now=SAVED)
        second = export_document(load_document(first), now=SAVED)

        assert first == second


class TestFiles:
    def test_write_and_read(self, tmp_path: Path):
        snapshot = load_document(DOCUMENT)

        path = write_document(snapshot, tmp_path / "cases" / "rivera.json", now=SAVED)

        assert json.loads(path.read_text(encoding="utf-8"))["fileName"] == "rivera"
        loaded = read_document(path)
        assert loaded.people == snapshot.people
        assert loaded.relationships == snapshot.relationships

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(DocumentError):
            read_document(path)
