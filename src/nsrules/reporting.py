from __future__ import annotations

import json

from nsrules.parser.lexer import Span
from nsrules.report import FileWarning, Report, Violation

VIOLATION_CODE = "namespace-rule-violation"
VIOLATION_LABEL = "this reference is not allowed"


def pluralise(count: int, word: str) -> str:
    return word if count == 1 else f"{word}s"


def _underline(line_text: str, span: Span) -> str:
    # Keep tabs in the padding so the carets line up under the source text
    padding = "".join("\t" if ch == "\t" else " " for ch in line_text[:span.start_col - 1])
    if span.end_line == span.line:
        width = span.width
    else:
        width = max(1, len(line_text) - span.start_col + 1)
    return padding + "^" * width


def render_violation(violation: Violation, context_lines: int = 0) -> str:
    """
    Annotated excerpt for one violation:

        error[namespace-rule-violation]: 'a.b' is not allowed to reference 'c.d'
          --> src/a/b.clj:3:14
           |
         3 |   (:require [c.d :as d]))
           |              ^^^ this reference is not allowed
           |
    """
    ns = violation.namespace
    span = violation.reference.span
    lines = ns.source.lines if ns.source is not None else []

    first = max(1, span.line - context_lines)
    last = min(len(lines), span.end_line + context_lines)
    width = len(str(max(last, span.line)))
    gutter = " " * width

    out = [
        f"error[{VIOLATION_CODE}]: {violation.message}",
        f"{gutter}--> {ns.file_path}:{span.line}:{span.start_col}",
    ]
    if span.line > len(lines):
        return "\n".join(out)

    out.append(f"{gutter} |")
    for line_no in range(first, last + 1):
        text = lines[line_no - 1]
        out.append(f"{line_no:>{width}} | {text}" if text else f"{line_no:>{width}} |")
        if line_no == span.line:
            out.append(f"{gutter} | {_underline(text, span)} {VIOLATION_LABEL}")
    out.append(f"{gutter} |")
    out.append(f"{gutter} = namespace '{ns.identifier}' is restricted by ns-rules")
    return "\n".join(out)


def render_warning(warning: FileWarning) -> str:
    return f"  {warning.location}: {warning.reason}"


def render_warnings(report: Report) -> str:
    if not report.warnings:
        return ""
    out = ["Warnings:"]
    out.extend(render_warning(w) for w in report.warnings)
    return "\n".join(out)


def render_summary(report: Report) -> str:
    """Banner and counts, always in the same order."""
    violations = len(report.violations)
    warnings = len(report.warnings)
    if report.passed:
        banner = "All checks passed"
    else:
        banner = f"Found {violations} rule {pluralise(violations, 'violation')}"

    return "\n".join([
        banner,
        f"{report.files_checked:3} {pluralise(report.files_checked, 'file')} checked",
        f"{report.namespaces_matched:3} {pluralise(report.namespaces_matched, 'namespace')} matched a rule",
        f"{violations:3} {pluralise(violations, 'violation')}",
        f"{warnings:3} {pluralise(warnings, 'warning')}",
        f"{report.files_skipped:3} {pluralise(report.files_skipped, 'file')} skipped",
    ])


def render_report(report: Report, context_lines: int = 0) -> str:
    """Warnings, then each violation, then the summary."""
    blocks = []
    warnings = render_warnings(report)
    if warnings:
        blocks.append(warnings)
    blocks.extend(render_violation(v, context_lines) for v in report.violations)
    blocks.append(render_summary(report))
    return "\n\n".join(blocks) + "\n"


def to_jsonl(report: Report) -> str:
    """One JSON object per violation and warning, then a summary object."""
    records = [v.to_dict() for v in report.violations]
    records.extend(w.to_dict() for w in report.warnings)
    records.append({"type": "summary", "passed": report.passed, **report.summary()})
    return "\n".join(json.dumps(r, ensure_ascii=False) for r in records)
