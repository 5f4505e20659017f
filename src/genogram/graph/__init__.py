"""Graph store, undo history and connection interaction states."""
from .connection import (
    IDLE,
    ChildLinked,
    ChildLinkOutcome,
    CoParentNeeded,
    CoParentOption,
    Connecting,
    ConnectionState,
    Idle,
    PartnerSelectionNeeded,
    SourceKind,
)
from .history import History
from .store import GenogramStore

__all__ = [
    "IDLE",
    "ChildLinkOutcome",
    "ChildLinked",
    "CoParentNeeded",
    "CoParentOption",
    "Connecting",
    "ConnectionState",
    "GenogramStore",
    "History",
    "Idle",
    "PartnerSelectionNeeded",
    "SourceKind",
]
