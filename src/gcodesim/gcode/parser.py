"""G-code interpreter: text lines -> motion segments.

The parser walks a program line by line, keeping the modal state
(position, units, distance mode, plane, feed, tool) and turning every
G0/G1 into one segment and every G2/G3 into a tessellated polyline.
Problems never abort a parse; they are logged and collected in
``ParseResult.issues``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..config.defaults import DEFAULT_TOOL_PALETTE
from ..core.segment import Bounds, MoveKind, Segment
from ..core.state import ModalState, Plane, PositioningMode, Position, ToolChange
from ..core.tool_directory import ToolDirectory, ToolEntry, tools_used
from ..core.units import Units
from .issues import ParseIssues
from .tokenizer import (
    comment_body,
    extract_words,
    is_comment_line,
    is_required_tools_header,
    match_inline_tool,
    strip_comments,
    trailing_comment,
)

logger = logging.getLogger(__name__)

# Arc tessellation limits
MIN_ARC_SEGMENTS = 8
MAX_ARC_SEGMENTS = 64

UNITS_CODES = (20, 21)
AXIS_WORDS = ("X", "Y", "Z")
OFFSET_WORDS = ("I", "J", "K")

# (first in-plane axis, second in-plane axis, out-of-plane axis,
#  offset word for the first axis, offset word for the second axis)
_PLANE_AXES: dict[Plane, tuple[str, str, str, str, str]] = {
    Plane.XY: ("x", "y", "z", "I", "J"),
    Plane.ZX: ("z", "x", "y", "K", "I"),
    Plane.YZ: ("y", "z", "x", "J", "K"),
}

_MODAL_G_CODES = {
    17: ("plane", Plane.XY),
    18: ("plane", Plane.ZX),
    19: ("plane", Plane.YZ),
    90: ("positioning", PositioningMode.ABSOLUTE),
    91: ("positioning", PositioningMode.RELATIVE),
}


def _code(value: float) -> Optional[int]:
    """Integer code number of a G/M/T word, or None if unusable."""
    if not math.isfinite(value):
        return None
    return math.floor(value)


def tessellate_arc(
    start: Position,
    end: Position,
    offset: dict[str, float],
    plane: Plane,
    clockwise: bool,
) -> list[Position]:
    """Approximate a circular arc by straight chords.

    *offset* maps ``"I"``, ``"J"``, ``"K"`` to the center offset from
    *start*.  Returns the chord end points in order; the first chord
    starts at *start*.  The last point lies on the circle and may differ
    slightly from *end* when the program's end point is not exactly on it.

    Raises
    ------
    ValueError:
        If the arc has zero radius or a non-finite coordinate.
    """
    u, v, w, off_u, off_v = _PLANE_AXES[plane]

    su, sv = start.get(u), start.get(v)
    eu, ev = end.get(u), end.get(v)
    cu = su + offset.get(off_u, 0.0)
    cv = sv + offset.get(off_v, 0.0)

    if not all(math.isfinite(c) for c in (*start.as_tuple(), *end.as_tuple(), cu, cv)):
        raise ValueError("arc has a non-finite coordinate")

    radius = math.hypot(su - cu, sv - cv)
    if not math.isfinite(radius):
        raise ValueError("arc has a non-finite coordinate")
    if radius == 0:
        raise ValueError("arc has zero radius")

    start_angle = math.atan2(sv - cv, su - cu)
    end_angle = math.atan2(ev - cv, eu - cu)

    # Force the sweep sign to match the requested direction
    sweep = end_angle - start_angle
    if clockwise:
        if sweep >= 0:
            sweep -= 2 * math.pi
    elif sweep <= 0:
        sweep += 2 * math.pi

    # Bigger and longer arcs get more chords
    count = math.floor(math.sqrt(radius) * abs(sweep) * 4)
    count = max(MIN_ARC_SEGMENTS, min(MAX_ARC_SEGMENTS, count))

    w0 = start.get(w)
    w1 = end.get(w)
    points: list[Position] = []
    for i in range(1, count + 1):
        t = i / count
        angle = start_angle + sweep * t
        points.append(start.moved(**{
            u: cu + radius * math.cos(angle),
            v: cv + radius * math.sin(angle),
            w: w0 + (w1 - w0) * t,
        }))
    return points


@dataclass
class ParseResult:
    """Everything one parse produced."""

    segments: list[Segment]
    bounds: Bounds
    tools: ToolDirectory
    issues: ParseIssues
    units: Units = Units.MM
    line_count: int = 0

    def tool_entries(self) -> list[ToolEntry]:
        """Directory entries for the tools the cut segments use."""
        return self.tools.entries_for(tools_used(self.segments))


class GCodeParser:
    """Streaming modal interpreter for the supported G-code subset.

    Supported words: G0 G1 G2 G3 G17 G18 G19 G20 G21 G90 G91, M0 (with a
    "tool" comment) and M6, T, F, and X Y Z I J K.  Anything else is
    ignored.

    A parser can be reused; every ``parse_*`` call starts from
    :meth:`reset`.
    """

    def __init__(self, palette: Iterable[str] = DEFAULT_TOOL_PALETTE):
        self._palette = tuple(palette)
        self.state = ModalState()
        self.reset()

    def reset(self) -> None:
        """Forget everything from a previous program."""
        self.state.reset()
        self.tools = ToolDirectory(self._palette)
        self.segments: list[Segment] = []
        self.bounds = Bounds()
        self.issues = ParseIssues()
        self._in_tool_list = False
        self._line_count = 0

    # ------------------------------------------------------------------
    # Whole programs
    # ------------------------------------------------------------------

    def parse_lines(
        self,
        lines: Iterable[str],
        on_progress: Optional[Callable[[int], None]] = None,
        progress_every: int = 1000,
    ) -> ParseResult:
        """Parse *lines* from a fresh state.

        *on_progress* is called with the number of lines processed every
        *progress_every* lines and once more when the program is done.
        """
        self.reset()
        line_num = 0
        for line_num, line in enumerate(lines, start=1):
            self.parse_line(line, line_num)
            if on_progress is not None and line_num % progress_every == 0:
                on_progress(line_num)
        if on_progress is not None:
            on_progress(line_num)
        logger.debug(
            "Parsed %d lines into %d segments (%d issues)",
            line_num, len(self.segments), len(self.issues),
        )
        return self.result()

    def parse_text(self, text: str, **kwargs) -> ParseResult:
        return self.parse_lines(text.splitlines(), **kwargs)

    def parse_file(self, path: Path, **kwargs) -> ParseResult:
        """Parse a program file.

        Raises FileNotFoundError if *path* does not exist.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"G-code file not found: {path}")
        return self.parse_text(path.read_text(encoding="utf-8-sig"), **kwargs)

    def result(self) -> ParseResult:
        return ParseResult(
            segments=list(self.segments),
            bounds=self.bounds,
            tools=self.tools,
            issues=self.issues,
            units=self.state.units,
            line_count=self._line_count,
        )

    # ------------------------------------------------------------------
    # Single lines
    # ------------------------------------------------------------------

    def parse_line(self, line: str, line_num: int = 0) -> int:
        """Interpret one line.  Returns the number of segments emitted."""
        self._line_count += 1
        line = line.replace("\ufeff", "").strip()
        if not line:
            self._in_tool_list = False
            return 0

        if is_comment_line(line):
            self._handle_comment(comment_body(line))
            return 0

        self._in_tool_list = False
        if line.startswith("%"):
            return 0

        comment = trailing_comment(line).lower()
        words = extract_words(strip_comments(line))
        if not words:
            return 0

        state = self.state
        # Manual tool change convention: M0 plus a comment mentioning "tool"
        if "tool" in comment and any(
            letter == "M" and _code(value) == 0 for letter, value in words
        ):
            state.tool += 1
            state.pending_tool_change = ToolChange.MANUAL

        # Words take effect strictly left to right, so in "G1 X10 F500"
        # the move still runs at the previous feed
        before = len(self.segments)
        for letter, value in words:
            if letter == "F":
                state.feed_rate = value
                continue
            code = _code(value)
            if code is None:
                continue
            if letter == "G":
                self._dispatch_g(code, words, line_num)
            elif letter == "M":
                if code == 6:
                    state.pending_tool_change = ToolChange.AUTOMATIC
            elif letter == "T":
                state.tool = self.tools.resolve_tool(code)
        return len(self.segments) - before

    def _dispatch_g(
        self, code: int, words: list[tuple[str, float]], line_num: int
    ) -> None:
        if code == 0:
            self.linear_move(words, MoveKind.RAPID, line_num)
        elif code == 1:
            self.linear_move(words, MoveKind.CUT, line_num)
        elif code in (2, 3):
            self.arc_move(words, code == 2, line_num)
        elif code in UNITS_CODES:
            self.state.units = Units.from_gcode(code)
        elif code in _MODAL_G_CODES:
            attr, mode = _MODAL_G_CODES[code]
            setattr(self.state, attr, mode)

    def _handle_comment(self, comment: str) -> None:
        if is_required_tools_header(comment):
            self._in_tool_list = True
            return

        if self._in_tool_list:
            if not comment:
                self._in_tool_list = False
            elif "required" not in comment.lower():
                self.tools.add_listed_tool(comment)
            return

        tag = match_inline_tool(comment)
        if tag is not None:
            self.tools.add_inline_tool(*tag)

    # ------------------------------------------------------------------
    # Motion
    # ------------------------------------------------------------------

    def _target(self, words: list[tuple[str, float]]) -> Position:
        current = self.state.position
        axes: dict[str, float] = {}
        for letter, value in words:
            if letter in AXIS_WORDS:
                if self.state.absolute:
                    axes[letter] = value
                else:
                    axes[letter] = current.get(letter) + value
        return current.moved(**axes)

    def _emit(
        self, kind: MoveKind, start: Position, end: Position, line_num: int
    ) -> None:
        state = self.state
        self.segments.append(Segment(
            kind=kind,
            start=start,
            end=end,
            feed_rate=state.feed_rate,
            tool=state.tool,
            tool_change=state.take_tool_change(),
            line_num=line_num,
        ))
        self.bounds.update(end)

    def linear_move(
        self, words: list[tuple[str, float]], kind: MoveKind, line_num: int
    ) -> bool:
        """G0/G1.  Returns False when the move goes nowhere or is skipped."""
        target = self._target(words)
        if not target.is_finite:
            logger.warning(
                "Skipping move at line %d: non-finite coordinate %s",
                line_num, target.as_tuple(),
            )
            self.issues.warn(line_num, f"non-finite coordinate {target.as_tuple()} ignored")
            return False
        if target == self.state.position:
            return False
        self._emit(kind, self.state.position, target, line_num)
        self.state.position = target
        return True

    def arc_move(
        self, words: list[tuple[str, float]], clockwise: bool, line_num: int
    ) -> bool:
        """G2/G3.  Returns False when the arc was skipped."""
        offset = {letter: value for letter, value in words if letter in OFFSET_WORDS}
        if not offset:
            logger.warning("Arc command at line %d missing I/J/K parameters", line_num)
            self.issues.warn(line_num, "arc missing I/J/K parameters")
            return False

        target = self._target(words)
        try:
            points = tessellate_arc(
                self.state.position, target, offset, self.state.plane, clockwise
            )
        except ValueError as exc:
            logger.warning("Skipping arc at line %d: %s", line_num, exc)
            self.issues.warn(line_num, str(exc))
            return False

        prev = self.state.position
        for pt in points:
            self._emit(MoveKind.CUT, prev, pt, line_num)
            prev = pt
        # Land exactly on the programmed end point, not the last chord
        self.state.position = target
        return True


def parse_gcode(text: str, **kwargs) -> ParseResult:
    """Parse program *text* with a fresh :class:`GCodeParser`."""
    return GCodeParser().parse_text(text, **kwargs)
