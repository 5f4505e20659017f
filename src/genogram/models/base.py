"""Shared pydantic base for genogram entities.

Every entity is validated once when it enters the graph (add, update, load),
which is where defaults for nested sub-objects are filled in.
"""
from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from uuid_utils import uuid7 as _uuid7

E = TypeVar("E", bound=Enum)


def new_id() -> str:
    """Generate a time-ordered entity id."""
    return str(_uuid7())


def coerce_enum(enum_cls: type[E], value: Any, default: E) -> E:
    """Map a raw legacy value onto ``enum_cls``, falling back to ``default``."""
    if isinstance(value, enum_cls):
        return value
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError:
        return default


class GenogramModel(BaseModel):
    """Frozen entity model with camelCase wire names.

    Unknown keys from older documents are kept (``extra="allow"``) so a
    load/export round trip never drops data the engine does not model.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @classmethod
    def field_name(cls, key: str) -> str:
        """Resolve a wire alias or attribute name to the attribute name."""
        if key in cls.model_fields:
            return key
        for name, info in cls.model_fields.items():
            if info.alias == key:
                return name
        return key

    def apply_updates(self, updates: Mapping[str, Any]) -> Self:
        """Return a copy with ``updates`` merged in.

        Top-level values replace. Nested sub-objects and dict fields are
        shallow-merged; an explicit ``None`` resets them to their defaults.
        """
        data = self.model_dump()
        for key, value in updates.items():
            name = self.field_name(key)
            current = getattr(self, name, None)
            if isinstance(current, GenogramModel):
                if value is None:
                    data[name] = {}
                elif isinstance(value, Mapping):
                    nested = {type(current).field_name(k): v for k, v in value.items()}
                    data[name] = {**data[name], **nested}
                else:
                    data[name] = value
            elif isinstance(current, dict):
                if value is None:
                    data[name] = {}
                elif isinstance(value, Mapping):
                    data[name] = {**current, **value}
                else:
                    data[name] = value
            else:
                data[name] = value
        return type(self).model_validate(data)

    def to_document(self) -> dict[str, Any]:
        """Serialize with wire names for the interchange document."""
        return self.model_dump(by_alias=True, mode="json")


class DiscoveryMetadata(GenogramModel):
    """How and when a non-confirmed connection was found."""

    source: str | None = Field(default=None, alias="discoverySource")
    date: str | None = Field(default=None, alias="discoveryDate")
    notes: str = Field(default="", alias="discoveryNotes")


_FLAT_DISCOVERY_KEYS = {
    "discoverySource": "source",
    "discovery_source": "source",
    "discoveryDate": "date",
    "discovery_date": "date",
    "discoveryNotes": "notes",
    "discovery_notes": "notes",
}


def fold_discovery_fields(data: Any) -> Any:
    """Move legacy top-level discovery keys into ``discoveryMetadata``."""
    if not isinstance(data, Mapping):
        return data
    flat = {k: v for k, v in data.items() if k in _FLAT_DISCOVERY_KEYS}
    if not flat:
        return data
    folded = {k: v for k, v in data.items() if k not in _FLAT_DISCOVERY_KEYS}
    existing = folded.get("discoveryMetadata", folded.get("discovery"))
    merged: dict[str, Any] = {}
    for key, value in flat.items():
        if value is not None and value != "":
            merged[_FLAT_DISCOVERY_KEYS[key]] = value
    if isinstance(existing, Mapping):
        merged = {**merged, **{DiscoveryMetadata.field_name(k): v for k, v in existing.items() if v}}
    elif isinstance(existing, DiscoveryMetadata):
        merged = {**merged, **existing.model_dump(exclude_defaults=True)}
    folded.pop("discovery", None)
    folded["discoveryMetadata"] = merged
    return folded


def mapping_or_empty(value: Any) -> Any:
    """Replace ``None`` or non-mapping junk with an empty mapping."""
    if isinstance(value, (Mapping, BaseModel)):
        return value
    return {}


def sequence_or_empty(value: Any) -> Any:
    if isinstance(value, (list, tuple, set, frozenset)):
        return value
    return ()
