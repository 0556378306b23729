"""
Check Runner

Runs the per-file pipeline (tokenize -> extract ns -> evaluate) over a set of
sources and merges the per-file reports.

Per-file work only depends on the file text and the compiled policy, so files
are checked on a thread pool with no shared state; the merged report is sorted
afterwards, which makes the result independent of scheduling and worker count.
A file that cannot be tokenized, has no ns form, or cannot be read becomes a
warning and is skipped; it never affects other files.
"""

from __future__ import annotations

import concurrent.futures
import logging
from functools import partial
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from nsrules.config import Config
from nsrules.parser.lexer import LexError, tokenize
from nsrules.parser.namespace import NamespaceError, extract_namespace
from nsrules.report import FileWarning, Report
from nsrules.rules.policy import CompiledPolicy, compile_policy, evaluate
from nsrules.scanner import SourceFile, find_source_files, load_source

logger = logging.getLogger(__name__)

SourceInput = Union[SourceFile, Tuple[str, str]]


def _as_source(item: SourceInput) -> SourceFile:
    if isinstance(item, SourceFile):
        return item
    path, text = item
    return SourceFile.from_text(path, text)


def check_source(source: SourceFile, policy: CompiledPolicy) -> Report:
    """Check one file. Always counts as one checked file."""
    report = Report(files_checked=1)
    file_path = source.display_path

    try:
        tokens = tokenize(source.text, file_path)
        decl, references = extract_namespace(tokens, file_path, source)
    except LexError as e:
        logger.debug(f"{file_path}: {e}")
        report.file_skipped(FileWarning(
            file_path, f"could not be read as Clojure source: {e.message}", e.line, e.column
        ))
        return report
    except NamespaceError as e:
        logger.debug(f"{file_path}: {e.reason}")
        report.file_skipped(FileWarning(file_path, e.reason, e.line, e.column))
        return report

    applicable, violations = evaluate(decl, references, policy)
    if applicable:
        report.namespaces_matched = 1
    report.violations.extend(violations)
    logger.debug(
        f"{file_path}: {decl.identifier} "
        f"({len(references)} references, {len(violations)} violations)"
    )
    return report


def check_sources(
    sources: Iterable[SourceInput],
    policy: CompiledPolicy,
    jobs: Optional[int] = None,
) -> Report:
    """
    Check many files and merge the results.

    Args:
        sources: SourceFile objects or (path, text) pairs
        policy: compiled policy, shared read-only by every worker
        jobs: worker threads; None lets the executor decide, 1 runs inline
    """
    sources = [_as_source(s) for s in sources]
    check = partial(check_source, policy=policy)

    if jobs == 1 or len(sources) <= 1:
        reports = [check(s) for s in sources]
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as executor:
            reports = list(executor.map(check, sources))

    return Report.combine(reports)


def _read_sources(paths: Iterable[Path]) -> tuple[list[SourceFile], Report]:
    sources: list[SourceFile] = []
    failures = Report()
    for path in paths:
        try:
            sources.append(load_source(path))
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"failed to read file {path}: {e}")
            failures.files_checked += 1
            failures.file_skipped(FileWarning(path.as_posix(), f"failed to read file: {e}"))
    return sources, failures


def run(config: Config, jobs: Optional[int] = None) -> Report:
    """
    Full run: compile the policy, discover and read sources, check them.

    Raises:
        RuleConfigError: before any file is touched, if the rules are invalid
    """
    policy = compile_policy(config.rules)

    scan = find_source_files(config.source_dirs)
    discovery = Report()
    for path, reason in scan.skipped:
        discovery.file_skipped(FileWarning(path.as_posix(), reason))

    config_path = config.path.as_posix() if config.path is not None else "<config>"
    for pattern in policy.ineffective:
        discovery.warn(FileWarning(config_path, f"the rule for '{pattern}' has no effect"))

    sources, read_failures = _read_sources(scan.files)
    logger.info(f"checking {len(sources)} files against {len(policy.rules)} rules")
    checked = check_sources(sources, policy, jobs=jobs)

    return Report.combine([checked, read_failures, discovery])
