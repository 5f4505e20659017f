"""Engine configuration read from the environment."""
from __future__ import annotations

import math
import os
from dataclasses import dataclass


def _f(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _i(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _b(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class EngineConfig:
    # Undo/redo
    history_limit: int = _i("GENOGRAM_HISTORY_LIMIT", 50)

    # Layout repair for children of one partnership
    sibling_spacing: float = _f("GENOGRAM_SIBLING_SPACING", 100.0)
    child_offset_y: float = _f("GENOGRAM_CHILD_OFFSET_Y", 150.0)
    partner_offset_x: float = _f("GENOGRAM_PARTNER_OFFSET_X", 150.0)

    # Grid snapping for newly placed nodes
    grid_size: int = _i("GENOGRAM_GRID_SIZE", 20)
    snap_to_grid: bool = _b("GENOGRAM_SNAP_TO_GRID", True)

    # Outward tolerance when testing household membership
    household_buffer: float = _f("GENOGRAM_HOUSEHOLD_BUFFER", 15.0)

    def snap(self, value: float) -> float:
        if not self.snap_to_grid or self.grid_size <= 0:
            return value
        return float(math.floor(value / self.grid_size + 0.5) * self.grid_size)


CONFIG = EngineConfig()
