"""Kinematic run-time estimate for a segment list.

Each segment is timed with a trapezoidal velocity profile: accelerate from
the entry velocity, cruise at the target velocity, decelerate to the exit
velocity.  When the move is too short to reach the target the profile
becomes triangular with a lower peak.  Entry and exit velocities come from
the corner angle shared with the neighbouring segment, so a run of nearly
collinear chords (a tessellated arc, say) is not timed as a string of full
stops.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..config.machine_profiles import MachineLimits
from .segment import Segment
from .state import ToolChange

logger = logging.getLogger(__name__)

# Axis displacement below this does not constrain rate or acceleration, mm
AXIS_EPSILON = 1e-3
# Squared gap above which two segments are not considered joined, mm^2
JOIN_TOLERANCE_SQ = 1e-6
# Corners straighter than this keep full speed
COLLINEAR_COS = 0.999


@dataclass
class TimeEstimate:
    """Result of :func:`estimate_time`."""

    total_seconds: float = 0.0
    tool_seconds: dict[int, float] = field(default_factory=dict)
    segment_seconds: list[float] = field(default_factory=list)

    def tool_time(self, tool: int) -> float:
        return self.tool_seconds.get(tool, 0.0)

    def formatted(self) -> str:
        return format_duration(self.total_seconds)

    def formatted_tool_time(self, tool: int) -> str:
        return format_duration(self.tool_time(tool))


def _axis_limited(
    delta: tuple[float, float, float], values: tuple[float, float, float]
) -> list[tuple[float, float]]:
    """(|displacement|, limit) for every axis that actually moves."""
    return [(abs(d), v) for d, v in zip(delta, values) if abs(d) > AXIS_EPSILON]


def rapid_feed_rate(segment: Segment, limits: MachineLimits) -> float:
    """Compound G0 rate in mm/min.

    The move takes as long as its slowest axis needs at that axis's
    ceiling; the compound rate is the path length over that time.
    """
    distance = segment.length
    moving = _axis_limited(segment.delta, limits.max_rates)
    if not moving:
        return limits.rapid_speed
    rate = math.inf
    for disp, ceiling in moving:
        axis_time = disp / (ceiling / 60.0)
        rate = min(rate, (distance / axis_time) * 60.0)
    return rate


def effective_acceleration(segment: Segment, limits: MachineLimits) -> float:
    """Lowest acceleration among the axes the segment moves, mm/s^2."""
    moving = _axis_limited(segment.delta, limits.accels)
    if not moving:
        return limits.accel_x
    return min(accel for _, accel in moving)


def calculate_junction_velocity(
    a: Optional[Segment],
    b: Optional[Segment],
    feed_a: float,
    feed_b: float,
) -> float:
    """Speed (mm/s) the machine can carry from *a* into *b*.

    Zero unless both segments exist, share tool and kind, and *b* starts
    where *a* ends.  Straight-through corners keep ``min(feed)/60``;
    sharper corners scale it by ``(1 + cos θ) / 2``, reaching zero on a
    full reversal.
    """
    if a is None or b is None:
        return 0.0
    if a.tool != b.tool or a.kind is not b.kind:
        return 0.0

    gx = a.end.x - b.start.x
    gy = a.end.y - b.start.y
    gz = a.end.z - b.start.z
    if gx * gx + gy * gy + gz * gz >= JOIN_TOLERANCE_SQ:
        return 0.0

    ax, ay, az = a.delta
    bx, by, bz = b.delta
    len_a = math.sqrt(ax * ax + ay * ay + az * az)
    len_b = math.sqrt(bx * bx + by * by + bz * bz)
    if len_a == 0 or len_b == 0:
        return 0.0

    cos_angle = (ax * bx + ay * by + az * bz) / (len_a * len_b)
    target = min(feed_a, feed_b) / 60.0
    if cos_angle > COLLINEAR_COS:
        return target
    return target * (1.0 + cos_angle) / 2.0


def calculate_move_time(
    segment: Segment,
    target_velocity: float,
    entry_velocity: float = 0.0,
    exit_velocity: float = 0.0,
    limits: Optional[MachineLimits] = None,
) -> float:
    """Seconds to traverse *segment* (velocities in mm/s).

    Raises
    ------
    ValueError:
        If *target_velocity* is not positive for a move of nonzero length.
    """
    distance = segment.length
    if distance == 0:
        return 0.0
    if target_velocity <= 0:
        raise ValueError(f"target velocity must be positive, got {target_velocity}")

    limits = limits or MachineLimits()
    accel = effective_acceleration(segment, limits)

    entry = min(entry_velocity, target_velocity)
    exit_ = min(exit_velocity, target_velocity)
    target_sq = target_velocity * target_velocity

    accel_distance = (target_sq - entry * entry) / (2.0 * accel)
    decel_distance = (target_sq - exit_ * exit_) / (2.0 * accel)

    if accel_distance + decel_distance >= distance:
        # Triangular profile: never reaches the target velocity
        peak_sq = (entry * entry + exit_ * exit_) / 2.0 + accel * distance
        peak = math.sqrt(max(0.0, peak_sq))
        return (peak - entry) / accel + (peak - exit_) / accel

    cruise_distance = distance - accel_distance - decel_distance
    return (
        (target_velocity - entry) / accel
        + cruise_distance / target_velocity
        + (target_velocity - exit_) / accel
    )


def _tool_change_overhead(segment: Segment, limits: MachineLimits) -> float:
    if segment.tool_change is ToolChange.MANUAL:
        return limits.manual_tool_change
    if segment.tool_change is ToolChange.AUTOMATIC:
        return limits.auto_tool_change
    return 0.0


def estimate_time(
    segments: Sequence[Segment],
    limits: Optional[MachineLimits] = None,
) -> TimeEstimate:
    """Estimate total, per-tool and per-segment run time.

    Only cut segments count towards the per-tool totals.  Cuts with no
    feed rate contribute just their tool-change overhead.
    """
    limits = limits or MachineLimits()
    logger.debug(
        "Estimating %d segments: accel=%s max_rate=%s",
        len(segments), limits.accels, limits.max_rates,
    )

    estimate = TimeEstimate()
    count = len(segments)
    for i, seg in enumerate(segments):
        prev = segments[i - 1] if i > 0 else None
        nxt = segments[i + 1] if i + 1 < count else None

        seconds = _tool_change_overhead(seg, limits)

        if seg.is_cut:
            if seg.feed_rate > 0:
                feed = seg.feed_rate
                prev_feed = prev.feed_rate if prev is not None and prev.is_cut else 0.0
                next_feed = nxt.feed_rate if nxt is not None and nxt.is_cut else 0.0
                entry = calculate_junction_velocity(prev, seg, prev_feed, feed)
                exit_ = calculate_junction_velocity(seg, nxt, feed, next_feed)
                seconds += calculate_move_time(seg, feed / 60.0, entry, exit_, limits)
        elif seg.length > 0:
            rate = rapid_feed_rate(seg, limits)
            entry = exit_ = 0.0
            if prev is not None and prev.is_rapid:
                entry = calculate_junction_velocity(prev, seg, rate, rate)
            if nxt is not None and nxt.is_rapid:
                exit_ = calculate_junction_velocity(seg, nxt, rate, rate)
            seconds += calculate_move_time(seg, rate / 60.0, entry, exit_, limits)

        estimate.total_seconds += seconds
        estimate.segment_seconds.append(seconds)
        if seg.is_cut:
            tool = seg.tool if seg.tool is not None else 1
            estimate.tool_seconds[tool] = estimate.tool_seconds.get(tool, 0.0) + seconds

    return estimate


def format_duration(seconds: float) -> str:
    """``"1h 2m 3s"``, ``"2m 3s"`` or ``"3s"``.

    Exactly zero, and anything non-finite, is ``"-"``.
    """
    if seconds == 0 or not math.isfinite(seconds):
        return "-"
    total = int(math.floor(seconds))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"
