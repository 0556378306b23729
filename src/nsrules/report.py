"""
Check Report

Plain data produced by a run: rule violations, per-file warnings and summary
counts. Per-file reports merge associatively; sorted() gives the deterministic
presentation order (file path, then line, then column) no matter how the
files were scheduled. The report does not decide exit codes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Iterable

from nsrules.parser.namespace import NamespaceDecl, Reference


@dataclass(frozen=True)
class Violation:
    """A reference from a restricted namespace that no applicable rule allows."""
    namespace: NamespaceDecl
    reference: Reference

    @property
    def file_path(self) -> str:
        return self.namespace.file_path

    @property
    def message(self) -> str:
        return f"'{self.namespace.identifier}' is not allowed to reference '{self.reference.target}'"

    def sort_key(self) -> tuple:
        span = self.reference.span
        return (self.file_path, span.line, span.start_col, self.reference.target)

    def to_dict(self) -> dict[str, Any]:
        span = self.reference.span
        return {
            "type": "violation",
            "path": self.file_path,
            "line": span.line,
            "column": span.start_col,
            "end_column": span.end_col,
            "namespace": self.namespace.identifier,
            "target": self.reference.target,
            "clause": self.reference.clause.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class FileWarning:
    """A non-fatal per-file condition. line/column are 0 when there is no position."""
    file_path: str
    reason: str
    line: int = 0
    column: int = 0

    def sort_key(self) -> tuple:
        return (self.file_path, self.line, self.column, self.reason)

    @property
    def location(self) -> str:
        if self.line:
            return f"{self.file_path}:{self.line}:{self.column}"
        return self.file_path

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "warning",
            "path": self.file_path,
            "line": self.line,
            "column": self.column,
            "reason": self.reason,
        }


@dataclass
class Report:
    files_checked: int = 0
    namespaces_matched: int = 0
    violations: list[Violation] = field(default_factory=list)
    warnings: list[FileWarning] = field(default_factory=list)
    files_skipped: int = 0

    @property
    def passed(self) -> bool:
        return not self.violations

    def file_skipped(self, warning: FileWarning) -> None:
        self.warnings.append(warning)
        self.files_skipped += 1

    def warn(self, warning: FileWarning) -> None:
        self.warnings.append(warning)

    def merge(self, other: Report) -> Report:
        """Combine two reports into a new one. Neither input is modified."""
        return Report(
            files_checked=self.files_checked + other.files_checked,
            namespaces_matched=self.namespaces_matched + other.namespaces_matched,
            violations=self.violations + other.violations,
            warnings=self.warnings + other.warnings,
            files_skipped=self.files_skipped + other.files_skipped,
        )

    def sorted(self) -> Report:
        return Report(
            files_checked=self.files_checked,
            namespaces_matched=self.namespaces_matched,
            violations=sorted(self.violations, key=Violation.sort_key),
            warnings=sorted(self.warnings, key=FileWarning.sort_key),
            files_skipped=self.files_skipped,
        )

    @classmethod
    def combine(cls, reports: Iterable[Report]) -> Report:
        """Merge any number of reports and sort the result."""
        return reduce(cls.merge, reports, cls()).sorted()

    def summary(self) -> dict[str, int]:
        return {
            "files_checked": self.files_checked,
            "namespaces_matched": self.namespaces_matched,
            "violations": len(self.violations),
            "warnings": len(self.warnings),
            "files_skipped": self.files_skipped,
        }
