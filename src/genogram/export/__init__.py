"""Interchange document for genograms."""
from __future__ import annotations

from genogram.export.json_export import (
    DOCUMENT_VERSION,
    export_document,
    load_document,
    read_document,
    write_document,
)

__all__ = [
    "DOCUMENT_VERSION",
    "export_document",
    "load_document",
    "read_document",
    "write_document",
]
