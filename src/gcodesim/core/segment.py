"""Motion segment and bounding-box data structures."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .state import Position, ToolChange


class MoveKind(Enum):
    """Type of CNC motion."""
    RAPID = "rapid"   # G0, no cutting
    CUT = "cut"       # G1/G2/G3 at the programmed feed


@dataclass(frozen=True)
class Segment:
    """One straight move between two points.

    ``start`` and ``end`` are immutable, so a finished segment cannot be
    changed through the interpreter position or a neighbouring segment.
    """
    kind: MoveKind
    start: Position
    end: Position
    feed_rate: float = 0.0               # mm/min (or in/min, unconverted)
    tool: Optional[int] = 1
    tool_change: ToolChange = ToolChange.NONE
    line_num: int = 0

    @property
    def is_cut(self) -> bool:
        return self.kind is MoveKind.CUT

    @property
    def is_rapid(self) -> bool:
        return self.kind is MoveKind.RAPID

    @property
    def delta(self) -> tuple[float, float, float]:
        return (
            self.end.x - self.start.x,
            self.end.y - self.start.y,
            self.end.z - self.start.z,
        )

    @property
    def length(self) -> float:
        dx, dy, dz = self.delta
        return math.sqrt(dx * dx + dy * dy + dz * dz)


class Bounds:
    """Running axis-aligned bounding box over emitted points.

    Points with a non-finite coordinate are rejected and leave the box
    untouched.
    """

    def __init__(self) -> None:
        self.min_x = self.min_y = self.min_z = math.inf
        self.max_x = self.max_y = self.max_z = -math.inf

    @property
    def is_empty(self) -> bool:
        return self.min_x > self.max_x

    def update(self, point: Position) -> bool:
        """Fold *point* into the box.  Returns False if it was rejected."""
        if not point.is_finite:
            return False
        self.min_x = min(self.min_x, point.x)
        self.max_x = max(self.max_x, point.x)
        self.min_y = min(self.min_y, point.y)
        self.max_y = max(self.max_y, point.y)
        self.min_z = min(self.min_z, point.z)
        self.max_z = max(self.max_z, point.z)
        return True

    def as_tuple(
        self,
    ) -> Optional[tuple[float, float, float, float, float, float]]:
        """(minx, maxx, miny, maxy, minz, maxz), or None when empty."""
        if self.is_empty:
            return None
        return (
            self.min_x, self.max_x,
            self.min_y, self.max_y,
            self.min_z, self.max_z,
        )

    @property
    def extents(self) -> tuple[float, float, float]:
        if self.is_empty:
            return (0.0, 0.0, 0.0)
        return (
            self.max_x - self.min_x,
            self.max_y - self.min_y,
            self.max_z - self.min_z,
        )

    def __repr__(self) -> str:
        return f"Bounds({self.as_tuple()!r})"
