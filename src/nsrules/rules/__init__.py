"""Namespace patterns and the policy engine."""

from nsrules.rules.patterns import Pattern, RuleConfigError, compile_pattern, matches
from nsrules.rules.policy import CompiledPolicy, Rule, compile_policy, evaluate

__all__ = [
    "Pattern",
    "RuleConfigError",
    "compile_pattern",
    "matches",
    "CompiledPolicy",
    "Rule",
    "compile_policy",
    "evaluate",
]
