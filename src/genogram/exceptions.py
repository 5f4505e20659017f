from __future__ import annotations

from dataclasses import dataclass


class GenogramError(Exception):
    """Base class for engine errors."""


@dataclass
class ValidationRefusal(GenogramError):
    """Raised when a command would break a structural invariant.

    The store state is unchanged when this is raised. ``message`` is written
    for the person at the keyboard and can be shown as-is.
    """

    message: str
    entity_id: str | None = None

    def __str__(self) -> str:  # pragma: no cover - human readable
        if self.entity_id:
            return f"{self.message} ({self.entity_id})"
        return self.message


class DocumentError(GenogramError):
    """Raised when an interchange document cannot be read."""
