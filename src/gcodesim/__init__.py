"""G-code interpretation and kinematic run-time estimation."""

from .config.machine_profiles import MachineLimits, MachineProfile, get_profile
from .core.estimator import (
    TimeEstimate,
    calculate_junction_velocity,
    calculate_move_time,
    estimate_time,
    format_duration,
)
from .core.playback import PlaybackIndex, SeekPosition
from .core.segment import Bounds, MoveKind, Segment
from .core.state import ModalState, Plane, PositioningMode, Position, ToolChange
from .core.tool_directory import ToolDirectory, ToolEntry
from .gcode.parser import GCodeParser, ParseResult, parse_gcode

__all__ = [
    "Bounds",
    "GCodeParser",
    "MachineLimits",
    "MachineProfile",
    "ModalState",
    "MoveKind",
    "ParseResult",
    "Plane",
    "PlaybackIndex",
    "Position",
    "PositioningMode",
    "SeekPosition",
    "Segment",
    "TimeEstimate",
    "ToolChange",
    "ToolDirectory",
    "ToolEntry",
    "calculate_junction_velocity",
    "calculate_move_time",
    "estimate_time",
    "format_duration",
    "get_profile",
    "parse_gcode",
]
