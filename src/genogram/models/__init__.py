"""Data models for the genogram graph."""
from .annotation import TagDefinition, TextBox
from .base import DiscoveryMetadata, GenogramModel, new_id
from .enums import (
    CONFLICT_RELATIONSHIP_TYPES,
    INACTIVE_RELATIONSHIP_TYPES,
    PARENT_RELATIONSHIP_TYPES,
    CareStatus,
    ConnectionStatus,
    ContactKind,
    FosterCareStatus,
    NodeType,
    PlacementStatus,
    RelationshipType,
)
from .household import Household, Point
from .person import CaseData, CaseLogEntry, ContactInfo, FosterCareData, Person
from .placement import Placement
from .relationship import ChildEdge, PartnershipEdge, Relationship, is_active_for, parse_relationship
from .snapshot import Edge, GraphSnapshot, HistoryEntry

__all__ = [
    "CONFLICT_RELATIONSHIP_TYPES",
    "INACTIVE_RELATIONSHIP_TYPES",
    "PARENT_RELATIONSHIP_TYPES",
    "CareStatus",
    "CaseData",
    "CaseLogEntry",
    "ChildEdge",
    "ConnectionStatus",
    "ContactInfo",
    "ContactKind",
    "DiscoveryMetadata",
    "Edge",
    "FosterCareData",
    "FosterCareStatus",
    "GenogramModel",
    "GraphSnapshot",
    "HistoryEntry",
    "Household",
    "NodeType",
    "PartnershipEdge",
    "Person",
    "Placement",
    "PlacementStatus",
    "Point",
    "Relationship",
    "RelationshipType",
    "TagDefinition",
    "TextBox",
    "is_active_for",
    "new_id",
    "parse_relationship",
]
