"""Lint result data model.

This module defines the Severity enum, LintIssue and LintReport data classes.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class Severity(Enum):
    """檢查結果嚴重程度枚舉."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    def __str__(self) -> str:
        """Return string representation of severity."""
        return self.value

    @classmethod
    def from_string(cls, severity: str) -> "Severity":
        """Create severity from string."""
        for item in cls:
            if item.value == severity.lower():
                return item
        raise ValueError(f"無效的嚴重程度: {severity}")


@dataclass
class LintIssue:
    """單一檢查問題."""

    path: Path
    rule: str
    severity: Severity
    message: str
    line: Optional[int] = None

    def format(self) -> str:
        """Render as ``path:line: SEVERITY RULE message``."""
        location = f"{self.path}:{self.line}" if self.line else f"{self.path}"
        return f"{location}: {self.severity.value.upper()} {self.rule} {self.message}"

    def to_dict(self) -> dict:
        """Convert issue to dictionary."""
        return {
            "path": str(self.path),
            "line": self.line,
            "rule": self.rule,
            "severity": self.severity.value,
            "message": self.message,
        }


@dataclass
class LintReport:
    """Lint results for a set of article files."""

    issues: list[LintIssue] = field(default_factory=list)
    files_checked: int = 0
    started_at: datetime = field(default_factory=datetime.now)

    def add(self, issue: LintIssue) -> None:
        self.issues.append(issue)

    def extend(self, issues: list[LintIssue]) -> None:
        self.issues.extend(issues)

    def count(self, severity: Severity) -> int:
        return sum(1 for issue in self.issues if issue.severity is severity)

    @property
    def errors(self) -> int:
        return self.count(Severity.ERROR)

    @property
    def warnings(self) -> int:
        return self.count(Severity.WARNING)

    @property
    def has_errors(self) -> bool:
        return self.errors > 0

    def failed(self, strict: bool = False) -> bool:
        """Whether the run should fail; strict mode also fails on warnings."""
        if strict:
            return self.errors > 0 or self.warnings > 0
        return self.has_errors

    def by_path(self) -> dict[str, list[LintIssue]]:
        """Group issues per file, keeping line order."""
        grouped: dict[str, list[LintIssue]] = {}
        for issue in sorted(self.issues, key=lambda i: (str(i.path), i.line or 0, i.rule)):
            grouped.setdefault(str(issue.path), []).append(issue)
        return grouped

    def rules_triggered(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for issue in self.issues:
            counts[issue.rule] = counts.get(issue.rule, 0) + 1
        return dict(sorted(counts.items()))

    def to_dict(self) -> dict:
        """Convert report to dictionary."""
        return {
            "timestamp": self.started_at.isoformat(),
            "files_checked": self.files_checked,
            "errors": self.errors,
            "warnings": self.warnings,
            "issues": [issue.to_dict() for issue in self.issues],
        }
