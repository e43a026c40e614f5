"""Tests for the modal G-code interpreter."""

import dataclasses
import math

import pytest

from gcodesim.core.segment import MoveKind
from gcodesim.core.state import Plane, Position, ToolChange
from gcodesim.core.units import Units
from gcodesim.gcode.parser import (
    MAX_ARC_SEGMENTS,
    MIN_ARC_SEGMENTS,
    GCodeParser,
    parse_gcode,
    tessellate_arc,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ends(result):
    return [seg.end.as_tuple() for seg in result.segments]


@pytest.fixture
def parser():
    return GCodeParser()


# ---------------------------------------------------------------------------
# Linear motion and modal state
# ---------------------------------------------------------------------------


class TestLinearMoves:
    def test_blank_and_comment_lines_emit_nothing(self, parser):
        assert parser.parse_line("") == 0
        assert parser.parse_line("   ") == 0
        assert parser.parse_line("(just a note)") == 0
        assert parser.parse_line("; another") == 0
        assert parser.parse_line("%") == 0
        assert parser.segments == []

    def test_two_feed_moves(self):
        result = parse_gcode("F600\nG1 X10\nG1 Y5")
        assert len(result.segments) == 2
        first, second = result.segments
        assert first.start.as_tuple() == (0.0, 0.0, 0.0)
        assert first.end.as_tuple() == (10.0, 0.0, 0.0)
        assert second.start.as_tuple() == (10.0, 0.0, 0.0)
        assert second.end.as_tuple() == (10.0, 5.0, 0.0)
        assert all(s.kind is MoveKind.CUT for s in result.segments)
        assert all(s.feed_rate == 600.0 for s in result.segments)

    def test_rapid_kind(self):
        result = parse_gcode("G0 Z5")
        assert result.segments[0].kind is MoveKind.RAPID

    def test_zero_displacement_emits_nothing(self):
        result = parse_gcode("G1 X0 Y0 Z0 F100")
        assert result.segments == []

    def test_modal_motion_without_g_word_emits_nothing(self):
        result = parse_gcode("G1 X1 F100\nX2")
        assert _ends(result) == [(1.0, 0.0, 0.0)]

    def test_words_apply_left_to_right(self):
        # F after the motion word only affects the next move
        result = parse_gcode("G1 X10 F500\nG1 X20")
        assert [s.feed_rate for s in result.segments] == [0.0, 500.0]

    def test_feed_before_motion_word(self):
        result = parse_gcode("F500 G1 X10")
        assert result.segments[0].feed_rate == 500.0

    def test_distance_mode_after_motion_word(self):
        result = parse_gcode("G1 X5 F100 G91\nG1 X5")
        assert _ends(result) == [(5.0, 0.0, 0.0), (10.0, 0.0, 0.0)]

    def test_relative_positioning(self):
        result = parse_gcode("G91\nG1 X5 F100\nG1 X5 Y-2")
        assert _ends(result) == [(5.0, 0.0, 0.0), (10.0, -2.0, 0.0)]

    def test_back_to_absolute(self):
        result = parse_gcode("G91\nG1 X5 F100\nG90\nG1 X1")
        assert _ends(result)[-1] == (1.0, 0.0, 0.0)

    def test_units_are_tracked_not_converted(self):
        result = parse_gcode("G20\nG1 X1 F10")
        assert result.units is Units.INCH
        assert result.segments[0].end.x == 1.0

    def test_inline_comments_ignored(self):
        result = parse_gcode("G1 X3 (move Y9) F100 ; Z7")
        assert _ends(result) == [(3.0, 0.0, 0.0)]

    def test_line_numbers_recorded(self):
        result = parse_gcode("G21\n\nG0 X1\nG1 X2 F100")
        assert [s.line_num for s in result.segments] == [3, 4]
        assert result.line_count == 4

    def test_segment_points_are_immutable(self, parser):
        parser.parse_line("G1 X1 F100")
        seg = parser.segments[0]
        with pytest.raises(dataclasses.FrozenInstanceError):
            seg.end.x = 99.0
        assert parser.state.position == Position(1.0, 0.0, 0.0)


# ---------------------------------------------------------------------------
# Arcs
# ---------------------------------------------------------------------------


class TestArcs:
    def test_half_circle_points_on_circle(self):
        result = parse_gcode("G2 X0 Y10 I0 J5 F100")
        segs = result.segments
        assert MIN_ARC_SEGMENTS <= len(segs) <= MAX_ARC_SEGMENTS
        assert len(segs) == 28
        for seg in segs:
            assert math.hypot(seg.end.x, seg.end.y - 5.0) == pytest.approx(5.0, abs=1e-9)
        assert segs[-1].end.x == pytest.approx(0.0, abs=1e-9)
        assert segs[-1].end.y == pytest.approx(10.0, abs=1e-9)

    def test_clockwise_half_circle_goes_through_negative_x(self):
        # Clockwise from (0,0) around (0,5) passes through (-5,5)
        result = parse_gcode("G2 X0 Y10 I0 J5 F100")
        assert min(s.end.x for s in result.segments) == pytest.approx(-5.0, abs=0.1)

    def test_counter_clockwise_goes_through_positive_x(self):
        result = parse_gcode("G3 X0 Y10 I0 J5 F100")
        assert max(s.end.x for s in result.segments) == pytest.approx(5.0, abs=0.1)

    def test_arc_segments_are_chained_cuts(self):
        result = parse_gcode("G3 X10 Y0 I5 J0 F100")
        segs = result.segments
        assert all(s.kind is MoveKind.CUT for s in segs)
        for a, b in zip(segs, segs[1:]):
            assert a.end == b.start

    def test_position_lands_on_programmed_end(self, parser):
        parser.parse_line("G2 X0 Y10 I0 J5 F100")
        assert parser.state.position == Position(0.0, 10.0, 0.0)

    def test_helical_z_interpolates(self):
        result = parse_gcode("G2 X0 Y10 Z-2 I0 J5 F100")
        zs = [s.end.z for s in result.segments]
        assert zs == sorted(zs, reverse=True)
        assert zs[-1] == pytest.approx(-2.0)

    def test_zx_plane(self):
        result = parse_gcode("G18\nG2 X10 Z0 I5 K0 F100")
        assert result.segments
        for seg in result.segments:
            assert seg.end.y == 0.0
            assert math.hypot(seg.end.x - 5.0, seg.end.z) == pytest.approx(5.0, abs=1e-9)

    def test_yz_plane(self):
        result = parse_gcode("G19\nG3 Y10 Z0 J5 K0 F100")
        assert result.segments
        for seg in result.segments:
            assert seg.end.x == 0.0
            assert math.hypot(seg.end.y - 5.0, seg.end.z) == pytest.approx(5.0, abs=1e-9)

    def test_missing_offsets_recorded(self):
        result = parse_gcode("G2 X10 Y0 F100")
        assert result.segments == []
        assert len(result.issues) == 1
        issue = next(iter(result.issues))
        assert issue.line_num == 1
        assert "I/J/K" in issue.message

    def test_zero_radius_skipped(self):
        result = parse_gcode("G2 X0 Y0 I0 J0 F100")
        assert result.segments == []
        assert result.issues.has_warnings

    def test_large_arc_capped(self):
        result = parse_gcode("G2 X0 Y0 I500 J0 F100")
        assert len(result.segments) == MAX_ARC_SEGMENTS


class TestTessellateArc:
    def test_full_circle_when_start_equals_end(self):
        points = tessellate_arc(
            Position(), Position(), {"I": 1.0, "J": 0.0}, Plane.XY, clockwise=False
        )
        assert len(points) >= MIN_ARC_SEGMENTS
        assert points[-1].x == pytest.approx(0.0, abs=1e-9)
        assert points[-1].y == pytest.approx(0.0, abs=1e-9)

    def test_does_not_mutate_inputs(self):
        start = Position(0.0, 0.0, 0.0)
        end = Position(10.0, 0.0, 0.0)
        tessellate_arc(start, end, {"I": 5.0}, Plane.XY, clockwise=True)
        assert start == Position(0.0, 0.0, 0.0)
        assert end == Position(10.0, 0.0, 0.0)

    def test_zero_radius_raises(self):
        with pytest.raises(ValueError, match="zero radius"):
            tessellate_arc(Position(), Position(1, 1, 0), {}, Plane.XY, True)

    def test_non_finite_raises(self):
        with pytest.raises(ValueError, match="non-finite"):
            tessellate_arc(
                Position(), Position(math.inf, 0, 0), {"I": 1.0}, Plane.XY, True
            )


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


class TestToolTracking:
    def test_default_tool_is_one(self):
        result = parse_gcode("G1 X1 F100")
        assert result.segments[0].tool == 1

    def test_m0_with_tool_comment_is_manual_change(self):
        result = parse_gcode("G1 X1 F100\nM0 ; Change tool\nG1 X2\nG1 X3")
        tools = [s.tool for s in result.segments]
        changes = [s.tool_change for s in result.segments]
        assert tools == [1, 2, 2]
        assert changes == [ToolChange.NONE, ToolChange.MANUAL, ToolChange.NONE]

    def test_m0_without_tool_comment_is_plain_pause(self):
        result = parse_gcode("M0 ; pause\nG1 X1 F100")
        assert result.segments[0].tool == 1
        assert result.segments[0].tool_change is ToolChange.NONE

    def test_m6_marker_consumed_once(self):
        result = parse_gcode("T3 M6\nG0 Z5\nG1 X1 F100")
        assert [s.tool for s in result.segments] == [3, 3]
        assert result.segments[0].tool_change is ToolChange.AUTOMATIC
        assert result.segments[1].tool_change is ToolChange.NONE

    def test_tool_words_after_motion_apply_to_next_move(self):
        result = parse_gcode("G1 X1 F100 M6 T2\nG1 X2")
        assert [s.tool for s in result.segments] == [1, 2]
        assert [s.tool_change for s in result.segments] == [
            ToolChange.NONE, ToolChange.AUTOMATIC,
        ]

    def test_required_tools_block(self):
        text = "\n".join([
            "(Required tools:)",
            "(6mm Endmill #00FF00)",
            "(V-bit)",
            "()",
            "T2 M6",
            "G1 X1 F100",
        ])
        result = parse_gcode(text)
        assert not result.tools.is_inline
        entries = result.tool_entries()
        assert len(entries) == 1
        assert entries[0].number == 2
        assert entries[0].display_name == "V-bit"
        assert result.tools.name_for(1) == "6mm Endmill"
        assert result.tools.color_for(1) == "#00FF00"

    def test_code_line_closes_required_tools_block(self):
        text = "(Required tools:)\n(Flat)\nG21\n(Tool list done)"
        result = parse_gcode(text)
        assert len(result.tools) == 1

    def test_inline_tags_resolve_through_slots(self):
        text = "\n".join([
            "(Tool 1: Flat #FF0000)",
            "(Tool 2: Ball)",
            "(Tool 1: Flat)",
            "T1 M6",
            "G1 X1 F100",
            "T2 M6",
            "G1 X2",
            "T1 M6",
            "G1 X3",
        ])
        result = parse_gcode(text)
        assert result.tools.is_inline
        assert [s.tool for s in result.segments] == [1, 2, 3]
        names = [e.display_name for e in result.tool_entries()]
        assert names == ["Flat", "Ball", "Flat (2)"]
        assert result.tool_entries()[0].color == "#FF0000"


# ---------------------------------------------------------------------------
# Bounds, issues and whole-program behaviour
# ---------------------------------------------------------------------------


class TestBoundsAndIssues:
    def test_bounds_cover_end_points(self):
        result = parse_gcode("G0 X-5 Y2 Z3\nG1 X10 Y-1 Z-2 F100")
        assert result.bounds.as_tuple() == (-5.0, 10.0, -1.0, 2.0, -2.0, 3.0)

    def test_empty_program_has_no_bounds(self):
        result = parse_gcode("(nothing)\n")
        assert result.bounds.is_empty
        assert result.bounds.as_tuple() is None

    def test_non_finite_move_skipped(self, parser):
        result = parser.parse_text("G0 X" + "9" * 400 + "\nG0 X1")
        assert len(result.segments) == 1
        assert result.segments[0].start == Position()
        assert result.bounds.as_tuple() == (1.0, 1.0, 0.0, 0.0, 0.0, 0.0)
        assert [i.line_num for i in result.issues] == [1]
        assert "non-finite" in next(iter(result.issues)).message

    def test_relative_overflow_skipped(self):
        big = "1" + "0" * 308
        result = parse_gcode(f"G91\nG0 X{big}\nG0 X{big}\nG0 Y1")
        assert _ends(result) == [(1e308, 0.0, 0.0), (1e308, 1.0, 0.0)]
        assert len(result.issues) == 1

    def test_clean_program_has_no_issues(self):
        result = parse_gcode("G1 X1 F100")
        assert result.issues.is_ok


class TestParserLifecycle:
    def test_reset_gives_identical_results(self, parser):
        text = "(Tool 1: Flat)\nT1 M6\nG2 X0 Y10 I0 J5 F100\nG0 Z5"
        first = parser.parse_text(text)
        second = parser.parse_text(text)
        assert first.segments == second.segments
        assert len(second.tools) == len(first.tools)

    def test_reused_parser_matches_fresh_parser(self, parser):
        parser.parse_text("(Tool 1: Flat)\nG20 G91 G18\nT1 M6\nG1 X5 F100\nM0 ; tool")
        second = "G1 X1 Y1 F200\nT2\nG0 Z3"
        reused = parser.parse_text(second)
        fresh = GCodeParser().parse_text(second)
        assert reused.segments == fresh.segments
        assert reused.units is fresh.units is Units.MM
        assert not reused.tools.is_inline
        assert parser.state.plane is Plane.XY

    def test_progress_callback(self, parser):
        calls = []
        lines = ["G1 X%d F100" % (i + 1) for i in range(2500)]
        parser.parse_lines(lines, on_progress=calls.append, progress_every=1000)
        assert calls == [1000, 2000, 2500]

    def test_parse_file_strips_bom(self, parser, tmp_path):
        path = tmp_path / "prog.nc"
        path.write_text("\ufeffG1 X1 F100\n", encoding="utf-8")
        result = parser.parse_file(path)
        assert _ends(result) == [(1.0, 0.0, 0.0)]

    def test_parse_file_missing(self, parser, tmp_path):
        with pytest.raises(FileNotFoundError):
            parser.parse_file(tmp_path / "missing.nc")
