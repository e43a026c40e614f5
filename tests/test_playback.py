"""Tests for playback seeking."""

import numpy as np
import pytest

from gcodesim.core.estimator import TimeEstimate
from gcodesim.core.playback import (
    MAX_SPEED,
    MIN_SPEED,
    PlaybackIndex,
    SeekPosition,
    clamp_speed,
    cumulative_cut_distance,
    slider_to_speed,
)
from gcodesim.core.segment import MoveKind, Segment
from gcodesim.core.state import Position
from gcodesim.gcode.parser import parse_gcode


def _seg(kind, start, end):
    return Segment(kind, Position(*start), Position(*end), 600.0)


@pytest.fixture
def segments():
    return [
        _seg(MoveKind.RAPID, (0, 0, 0), (0, 0, 5)),
        _seg(MoveKind.CUT, (0, 0, 5), (10, 0, 5)),
        _seg(MoveKind.CUT, (10, 0, 5), (10, 10, 5)),
    ]


@pytest.fixture
def rapids_only():
    return [
        _seg(MoveKind.RAPID, (0, 0, 0), (0, 0, 5)),
        _seg(MoveKind.RAPID, (0, 0, 5), (10, 0, 5)),
    ]


class TestCumulativeDistance:
    def test_rapids_add_nothing(self, segments):
        table = cumulative_cut_distance(segments)
        assert list(table) == [0.0, 10.0, 20.0]

    def test_non_decreasing(self, segments):
        table = cumulative_cut_distance(segments * 3)
        assert np.all(np.diff(table) >= 0)

    def test_empty(self):
        assert len(cumulative_cut_distance([])) == 0


class TestLocate:
    def test_start(self, segments):
        index = PlaybackIndex(segments)
        assert index.locate(0) == SeekPosition(0, 1.0)

    def test_middle_of_segment(self, segments):
        index = PlaybackIndex(segments)
        pos = index.locate(5.0)
        assert pos.index == 1
        assert pos.progress == pytest.approx(0.5)
        assert not pos.finished

    def test_end(self, segments):
        index = PlaybackIndex(segments)
        assert index.locate(20.0) == SeekPosition(2, 1.0, finished=True)
        assert index.locate(1e9).finished

    def test_empty(self):
        index = PlaybackIndex([])
        assert index.locate(3.0) == SeekPosition(0, 1.0, finished=True)
        assert index.seek(1.0).finished

    def test_table_is_read_only(self, segments):
        index = PlaybackIndex(segments)
        with pytest.raises(ValueError):
            index.cumulative[0] = 1.0


class TestLocateCutFirst:
    def test_start_of_leading_cut_has_zero_progress(self):
        index = PlaybackIndex([
            _seg(MoveKind.CUT, (0, 0, 0), (10, 0, 0)),
            _seg(MoveKind.CUT, (10, 0, 0), (10, 10, 0)),
        ])
        assert index.locate(0) == SeekPosition(0, 0.0)
        assert index.locate(20.0) == SeekPosition(1, 1.0, finished=True)


class TestLineLookup:
    @pytest.fixture
    def index(self):
        result = parse_gcode(
            "G0 Z5\n(comment)\nG1 X10 F600\nG2 X20 Y0 I5 J0\nG1 Y5"
        )
        return PlaybackIndex(result.segments)

    def test_line_with_motion(self, index):
        assert index.index_for_line(1) == 0
        assert index.index_for_line(3) == 1
        assert index.index_for_line(4) == 2

    def test_line_without_motion_maps_to_next_segment(self, index):
        assert index.index_for_line(2) == 1
        assert index.index_for_line(0) == 0

    def test_past_last_motion(self, index):
        assert index.index_for_line(5) == index.segment_count - 1
        assert index.index_for_line(6) is None

    def test_clamp_and_step(self, index):
        n = index.segment_count
        assert index.clamp_index(-3) == 0
        assert index.clamp_index(n + 5) == n
        assert index.step(0, -1) == 0
        assert index.step(3) == 4
        assert index.step(n) == n
        assert index.step(n, -1) == n - 1


class TestSeek:
    def test_distance_based(self, segments):
        index = PlaybackIndex(segments)
        # 100 mm/s at 1x: 0.15 s is 15 mm of cut
        pos = index.seek(0.15)
        assert pos.index == 2
        assert pos.progress == pytest.approx(0.5)

    def test_speed_multiplier(self, segments):
        index = PlaybackIndex(segments)
        assert index.seek(0.0625, speed=2.0) == index.seek(0.125)

    def test_time_fallback(self, rapids_only):
        index = PlaybackIndex(rapids_only, TimeEstimate(total_seconds=10.0))
        assert index.total_distance == 0.0
        assert index.seek(0.0) == SeekPosition(0, 1.0)
        assert index.seek(6.0).index == 1
        assert index.seek(10.0).finished

    def test_fixed_rate_fallback(self, rapids_only):
        index = PlaybackIndex(rapids_only)
        assert index.seek(0.005).index == 0
        assert index.seek(0.015).index == 1
        assert index.seek(1.0).finished

    def test_progress_percent(self, segments):
        index = PlaybackIndex(segments)
        assert index.progress_percent(0) == 0.0
        assert index.progress_percent(3) == pytest.approx(100.0)
        assert PlaybackIndex([]).progress_percent(0) == 0.0


class TestSpeed:
    @pytest.mark.parametrize("value, expected", [
        (0, 1.0), (10, 10.0), (-10, 0.1), (5, 5.5), (-5, 0.55),
    ])
    def test_slider(self, value, expected):
        assert slider_to_speed(value) == pytest.approx(expected)

    def test_clamp(self):
        assert clamp_speed(0.0) == MIN_SPEED
        assert clamp_speed(50.0) == MAX_SPEED
        assert clamp_speed(2.0) == 2.0
