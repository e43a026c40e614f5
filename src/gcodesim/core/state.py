"""Modal interpreter state carried from one G-code line to the next."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from enum import Enum

from .units import Units


class Plane(Enum):
    """Active arc plane (G17/G18/G19)."""
    XY = "XY"    # G17
    ZX = "ZX"    # G18
    YZ = "YZ"    # G19


class PositioningMode(Enum):
    ABSOLUTE = "absolute"    # G90
    RELATIVE = "relative"    # G91


class ToolChange(Enum):
    """Pending tool-change marker carried by the next emitted segment."""
    NONE = "none"
    MANUAL = "manual"        # M0 with a "tool" comment
    AUTOMATIC = "automatic"  # M6


@dataclass(frozen=True)
class Position:
    """Machine position in program coordinates.

    Immutable, so segments can share the points they were built from.
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @property
    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x, self.y, self.z))

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def get(self, axis: str) -> float:
        return getattr(self, axis.lower())

    def moved(self, **axes: float) -> Position:
        """Copy with the named axes (either case) replaced."""
        return dataclasses.replace(
            self, **{axis.lower(): value for axis, value in axes.items()}
        )


@dataclass
class ModalState:
    """Everything that persists across lines until a word changes it.

    Units are tracked so callers can label output, but coordinates are
    never converted.
    """

    position: Position = field(default_factory=Position)
    units: Units = Units.MM
    positioning: PositioningMode = PositioningMode.ABSOLUTE
    plane: Plane = Plane.XY
    feed_rate: float = 0.0
    tool: int = 1                      # tool 0 means "no tool"
    pending_tool_change: ToolChange = ToolChange.NONE

    @property
    def absolute(self) -> bool:
        return self.positioning is PositioningMode.ABSOLUTE

    def take_tool_change(self) -> ToolChange:
        """Return the pending marker and clear it."""
        marker = self.pending_tool_change
        self.pending_tool_change = ToolChange.NONE
        return marker

    def reset(self) -> None:
        """Restore power-on defaults in place."""
        fresh = ModalState()
        self.position = fresh.position
        self.units = fresh.units
        self.positioning = fresh.positioning
        self.plane = fresh.plane
        self.feed_rate = fresh.feed_rate
        self.tool = fresh.tool
        self.pending_tool_change = fresh.pending_tool_change
