"""Recoverable problems found while interpreting a program.

Nothing the parser encounters aborts a parse; each problem is logged and
recorded here so callers can show it next to the affected line.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ParseIssue:
    """A single problem tied to a source line."""

    severity: str  # currently always "warning"
    line_num: int
    message: str

    def __str__(self) -> str:
        return f"line {self.line_num}: {self.message}"


@dataclass
class ParseIssues:
    """All issues collected during one parse."""

    issues: list[ParseIssue] = field(default_factory=list)

    def warn(self, line_num: int, message: str) -> ParseIssue:
        issue = ParseIssue("warning", line_num, message)
        self.issues.append(issue)
        return issue

    @property
    def has_warnings(self) -> bool:
        return any(i.severity == "warning" for i in self.issues)

    @property
    def is_ok(self) -> bool:
        return len(self.issues) == 0

    def __iter__(self):
        return iter(self.issues)

    def __len__(self) -> int:
        return len(self.issues)
