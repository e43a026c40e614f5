"""Word extraction and comment handling for single G-code lines."""

from __future__ import annotations

import re
from typing import Optional

PAREN_COMMENT_PAT = re.compile(r"\(.*?\)")
TRAILING_COMMENT_PAT = re.compile(r"[;(](.*)$")
WORD_PAT = re.compile(r"([A-Za-z])([-+]?(?:\d+(?:\.\d*)?|\.\d+))")

REQUIRED_TOOLS_PAT = re.compile(r"required tools?:", re.IGNORECASE)
INLINE_TOOL_PAT = re.compile(r"^tool\s*(\d+)\s*:\s*(.*)$", re.IGNORECASE)


def is_comment_line(line: str) -> bool:
    """True for lines that are commentary only (``;`` or ``(`` first)."""
    s = line.lstrip()
    return s.startswith(";") or s.startswith("(")


def comment_body(line: str) -> str:
    """Text of a comment line without its ``;``/``(`` and closing ``)``."""
    s = line.strip()
    if s[:1] in (";", "("):
        s = s[1:]
    if s.endswith(")"):
        s = s[:-1]
    return s.strip()


def trailing_comment(line: str) -> str:
    """Everything after the first comment opener on a code line."""
    match = TRAILING_COMMENT_PAT.search(line)
    return match.group(1) if match else ""


def strip_comments(line: str) -> str:
    """Remove ``(...)`` and ``; ...`` comments from a code line."""
    if "(" in line:
        line = PAREN_COMMENT_PAT.sub("", line)
    if ";" in line:
        line = line.split(";", 1)[0]
    return line.strip()


def extract_words(code: str) -> list[tuple[str, float]]:
    """Letter/value pairs in left-to-right order, letters upper-cased."""
    return [(letter.upper(), float(value))
            for letter, value in WORD_PAT.findall(code)]


def is_required_tools_header(comment: str) -> bool:
    return REQUIRED_TOOLS_PAT.search(comment) is not None


def match_inline_tool(comment: str) -> Optional[tuple[int, str]]:
    """Parse ``Tool N: name`` into (N, name), or None."""
    match = INLINE_TOOL_PAT.match(comment)
    if match is None:
        return None
    return int(match.group(1)), match.group(2).strip()
