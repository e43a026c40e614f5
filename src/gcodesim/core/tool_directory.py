"""Tool names and colors collected from program comments.

Two comment conventions are understood, and a program uses one or the
other:

* **Sequential** -- a ``(Required tools:)`` header followed by one comment
  per tool.  Tool number N lives in slot N-1.
* **Inline** -- ``(Tool N: name)`` tags.  The first tag seen inserts a
  synthetic "No Tool" in slot 0 and flips the whole directory to inline
  numbering, where tool number N lives in slot N.  ``T`` words are then
  resolved through the slots registered for each N.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from ..config.defaults import DEFAULT_TOOL_PALETTE

HEX_COLOR_PAT = re.compile(r"#([0-9A-Fa-f]{6})\b")
NO_TOOL_NAME = "No Tool"


@dataclass(frozen=True)
class ToolEntry:
    """A tool as shown to the user."""
    number: int
    display_name: str
    color: Optional[str] = None


def split_color(text: str) -> tuple[str, Optional[str]]:
    """Return (*text* without its ``#RRGGBB`` token, ``"#RRGGBB"`` or None)."""
    match = HEX_COLOR_PAT.search(text)
    if match is None:
        return text.strip(), None
    cleaned = HEX_COLOR_PAT.sub("", text, count=1).strip()
    return cleaned, "#" + match.group(1)


class ToolDirectory:
    """Incrementally built lookup of tool display names and colors."""

    def __init__(self, palette: Iterable[str] = DEFAULT_TOOL_PALETTE):
        self._palette = tuple(palette)
        self._names: list[str] = []
        self._colors: list[Optional[str]] = []
        self._inline = False
        self._inline_slots: dict[int, list[int]] = {}
        self._inline_cursor: dict[int, int] = {}

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_listed_tool(self, description: str) -> None:
        """Append a tool from a required-tools block."""
        name, color = split_color(description)
        self._names.append(name)
        self._colors.append(color)

    def add_inline_tool(self, number: int, description: str) -> int:
        """Register a ``Tool N: name`` tag and return its slot index."""
        if not self._inline:
            self._inline = True
            self._names.insert(0, NO_TOOL_NAME)
            self._colors.insert(0, None)
        name, color = split_color(description)
        slots = self._inline_slots.setdefault(number, [])
        if slots:
            name = f"{name} ({len(slots) + 1})"
        slot = len(self._names)
        self._names.append(name)
        self._colors.append(color)
        slots.append(slot)
        return slot

    def resolve_tool(self, number: int) -> int:
        """Map a ``T`` word to the tool number segments should carry.

        In inline numbering each ``T N`` consumes the next slot registered
        for N; once they are used up the last one is reused.  Unregistered
        numbers, and every number in sequential numbering, pass through.
        """
        if not self._inline:
            return number
        slots = self._inline_slots.get(number)
        if not slots:
            return number
        cursor = self._inline_cursor.get(number, 0)
        self._inline_cursor[number] = cursor + 1
        return slots[min(cursor, len(slots) - 1)]

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def is_inline(self) -> bool:
        return self._inline

    def __len__(self) -> int:
        return len(self._names)

    def _slot(self, number: int) -> int:
        return number if self._inline else number - 1

    def name_for(self, number: int) -> str:
        slot = self._slot(number)
        if 0 <= slot < len(self._names) and self._names[slot]:
            return self._names[slot]
        return f"Tool {number}"

    def color_for(self, number: int) -> str:
        slot = self._slot(number)
        if 0 <= slot < len(self._colors) and self._colors[slot]:
            return self._colors[slot]
        return self._palette[number % len(self._palette)]

    def entry(self, number: int) -> ToolEntry:
        return ToolEntry(number, self.name_for(number), self.color_for(number))

    def entries_for(self, numbers: Iterable[int]) -> list[ToolEntry]:
        """ToolEntry records for *numbers*, sorted by tool number."""
        return [self.entry(n) for n in sorted(set(numbers))]


def tools_used(segments) -> set[int]:
    """Tool numbers referenced by cut segments (unset tools count as 1)."""
    return {seg.tool if seg.tool is not None else 1
            for seg in segments if seg.is_cut}
