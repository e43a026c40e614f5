"""Map elapsed travel or time onto a segment index for playback seeking.

The lookup table is the running sum of *cut* segment lengths.  Rapids add
nothing to it, so during distance-based playback they appear instantly.
Programs with no cut distance fall back to the time estimate, and
programs with neither advance at a fixed nominal rate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .estimator import TimeEstimate
from .segment import Segment

# Distance-based playback speed at 1x, mm of cut per second
VISUAL_SPEED = 100.0
# Fixed-rate fallback at 1x, segments per second
FALLBACK_SEGMENTS_PER_SECOND = 100.0

MIN_SPEED = 0.1
MAX_SPEED = 10.0


@dataclass(frozen=True)
class SeekPosition:
    """Where playback is: segment index plus progress through it."""

    index: int
    progress: float   # 0..1 within segment ``index``
    finished: bool = False


def cumulative_cut_distance(segments: Sequence[Segment]) -> np.ndarray:
    """Entry i is the total cut length of segments 0..i."""
    if not segments:
        return np.zeros(0, dtype=np.float64)
    starts = np.array([s.start.as_tuple() for s in segments], dtype=np.float64)
    ends = np.array([s.end.as_tuple() for s in segments], dtype=np.float64)
    lengths = np.linalg.norm(ends - starts, axis=1)
    is_cut = np.array([s.is_cut for s in segments], dtype=bool)
    return np.cumsum(np.where(is_cut, lengths, 0.0))


def clamp_speed(speed: float) -> float:
    return max(MIN_SPEED, min(MAX_SPEED, speed))


def slider_to_speed(value: float) -> float:
    """Map a -10..10 slider to 0.1x..10x (0 is 1x)."""
    if value == 0:
        return 1.0
    if value > 0:
        return 1.0 + (value / 10.0) * 9.0
    return 1.0 + (value / 10.0) * 0.9


class PlaybackIndex:
    """Prebuilt lookup from playback distance/time to segment position.

    Built once per segment list; every query afterwards is read-only.
    """

    def __init__(
        self,
        segments: Sequence[Segment],
        estimate: Optional[TimeEstimate] = None,
    ):
        self._segments = list(segments)
        self._is_cut = np.array([s.is_cut for s in self._segments], dtype=bool)
        self.cumulative = cumulative_cut_distance(self._segments)
        self.cumulative.setflags(write=False)
        self._line_nums = np.array([s.line_num for s in self._segments], dtype=np.int64)
        self.total_distance = float(self.cumulative[-1]) if len(self.cumulative) else 0.0
        self.total_time = estimate.total_seconds if estimate is not None else 0.0

    @property
    def segment_count(self) -> int:
        return len(self._segments)

    def _end(self) -> SeekPosition:
        return SeekPosition(max(0, self.segment_count - 1), 1.0, finished=True)

    def locate(self, distance: float) -> SeekPosition:
        """Segment reached after *distance* mm of cutting."""
        n = self.segment_count
        if n == 0:
            return SeekPosition(0, 1.0, finished=True)
        if self.total_distance > 0 and distance >= self.total_distance:
            return self._end()

        index = int(np.searchsorted(self.cumulative, distance, side="left"))
        if index >= n:
            return self._end()

        seg_end = float(self.cumulative[index])
        seg_start = float(self.cumulative[index - 1]) if index > 0 else 0.0
        span = seg_end - seg_start
        if self._is_cut[index] and span > 0:
            progress = min(1.0, max(0.0, (distance - seg_start) / span))
        else:
            progress = 1.0
        return SeekPosition(index, progress)

    def locate_time(self, elapsed: float) -> SeekPosition:
        """Uniform-in-time fallback for programs with no cut distance."""
        n = self.segment_count
        if n == 0 or self.total_time <= 0:
            return SeekPosition(0, 1.0, finished=n == 0)
        index = int(np.floor((elapsed / self.total_time) * n))
        if index >= n:
            return self._end()
        return SeekPosition(max(0, index), 1.0)

    def locate_fixed_rate(self, elapsed: float, speed: float = 1.0) -> SeekPosition:
        """Advance at a nominal number of segments per second."""
        n = self.segment_count
        if n == 0:
            return SeekPosition(0, 1.0, finished=True)
        index = int(np.floor(elapsed * FALLBACK_SEGMENTS_PER_SECOND * speed))
        if index >= n:
            return self._end()
        return SeekPosition(max(0, index), 1.0)

    def seek(self, elapsed: float, speed: float = 1.0) -> SeekPosition:
        """Position after *elapsed* seconds of playback at *speed*."""
        if self.total_distance > 0:
            return self.locate(elapsed * VISUAL_SPEED * speed)
        if self.total_time > 0:
            return self.locate_time(elapsed * speed)
        return self.locate_fixed_rate(elapsed, speed)

    def index_for_line(self, line_num: int) -> Optional[int]:
        """First segment emitted by source line *line_num* or a later one.

        Returns None when no segment comes from that line or after it.
        """
        index = int(np.searchsorted(self._line_nums, line_num, side="left"))
        if index >= self.segment_count:
            return None
        return index

    def clamp_index(self, index: int) -> int:
        """Bound a playback index to 0..segment_count (inclusive: all drawn)."""
        return max(0, min(index, self.segment_count))

    def step(self, index: int, delta: int = 1) -> int:
        return self.clamp_index(index + delta)

    def progress_percent(self, index: int) -> float:
        if self.segment_count == 0:
            return 0.0
        return 100.0 * index / self.segment_count
