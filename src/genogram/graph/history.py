"""Bounded undo/redo over graph snapshots."""
from __future__ import annotations

from ..config import CONFIG
from ..models import HistoryEntry


class History:
    """Index-addressed snapshot list with a cursor.

    Saving after an undo discards the redo branch. When the list grows past
    ``limit`` the oldest entry is dropped.
    """

    def __init__(self, limit: int = CONFIG.history_limit) -> None:
        self.limit = max(1, limit)
        self._entries: list[HistoryEntry] = []
        self._index = -1

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def index(self) -> int:
        return self._index

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def save(self, entry: HistoryEntry) -> None:
        del self._entries[self._index + 1 :]
        self._entries.append(entry)
        if len(self._entries) > self.limit:
            self._entries.pop(0)
        self._index = len(self._entries) - 1

    def undo(self) -> HistoryEntry | None:
        if not self.can_undo:
            return None
        self._index -= 1
        return self._entries[self._index]

    def redo(self) -> HistoryEntry | None:
        if not self.can_redo:
            return None
        self._index += 1
        return self._entries[self._index]

    def reset(self, entry: HistoryEntry | None = None) -> None:
        """Start over, optionally seeded with a single entry."""
        self._entries = [] if entry is None else [entry]
        self._index = len(self._entries) - 1
