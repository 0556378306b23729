"""
nsrules - namespace layering rules for Clojure

Checks the references declared in each file's ns form against a policy of
allowed namespace patterns and reports every reference that breaks a rule.

Usage:
    from nsrules import compile_policy, check_sources

    policy = compile_policy([
        ("shipping.entity.*", {"restrict-to": ["shipping.entity.*"]}),
    ])
    report = check_sources([("src/shipping/entity/port.clj", text)], policy)
"""

__version__ = "0.1.0"

from nsrules.report import FileWarning, Report, Violation
from nsrules.rules import CompiledPolicy, RuleConfigError, compile_pattern, compile_policy, evaluate, matches
from nsrules.runner import check_source, check_sources, run

__all__ = [
    "__version__",
    "FileWarning",
    "Report",
    "Violation",
    "CompiledPolicy",
    "RuleConfigError",
    "compile_pattern",
    "compile_policy",
    "evaluate",
    "matches",
    "check_source",
    "check_sources",
    "run",
]
