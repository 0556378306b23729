"""
Namespace Policy Engine

Compiles the configured rules once, before any file is read, and evaluates the
references of each namespace against them.

A namespace is restricted when at least one rule pattern matches it. Its
allowed set is the union of the restrict-to patterns of every matching rule,
so rule order never changes the outcome. A namespace may always reference
itself. Namespaces no rule matches are unrestricted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from nsrules.parser.namespace import NamespaceDecl, Reference
from nsrules.report import Violation
from nsrules.rules.patterns import Pattern, RuleConfigError, compile_pattern

logger = logging.getLogger(__name__)

RESTRICT_TO = "restrict-to"
KNOWN_RULE_KEYS = frozenset({RESTRICT_TO})


@dataclass(frozen=True)
class Rule:
    pattern: Pattern
    allowed: frozenset[Pattern]

    def matches(self, identifier: str) -> bool:
        return self.pattern.matches(identifier)

    def allows(self, identifier: str) -> bool:
        return any(p.matches(identifier) for p in self.allowed)


@dataclass(frozen=True)
class CompiledPolicy:
    rules: tuple[Rule, ...] = ()
    # Patterns whose rule restricts nothing and was dropped
    ineffective: tuple[str, ...] = ()

    def applicable_rules(self, identifier: str) -> list[Rule]:
        return [rule for rule in self.rules if rule.matches(identifier)]


def _compile_rule(pattern_text: Any, body: Any) -> Rule | None:
    if not isinstance(pattern_text, str):
        raise RuleConfigError(
            f"namespace patterns must be strings, got {pattern_text!r}"
        )
    try:
        pattern = compile_pattern(pattern_text)
    except RuleConfigError as exc:
        raise RuleConfigError(exc.detail, pattern_text) from exc

    if body is None:
        body = {}
    if not isinstance(body, Mapping):
        raise RuleConfigError("the rule body must be a map", pattern_text)

    unknown = sorted(str(key) for key in body if key not in KNOWN_RULE_KEYS)
    if unknown:
        logger.warning("the rule for '%s' has unknown keys: %s", pattern_text, ", ".join(unknown))

    allowed_texts = body.get(RESTRICT_TO)
    if allowed_texts is None:
        return None
    if isinstance(allowed_texts, (str, bytes)) or not isinstance(allowed_texts, Iterable):
        raise RuleConfigError(f"'{RESTRICT_TO}' must be a list of namespace patterns", pattern_text)

    allowed = set()
    for allowed_text in allowed_texts:
        if not isinstance(allowed_text, str):
            raise RuleConfigError(f"'{RESTRICT_TO}' must be a list of namespace patterns", pattern_text)
        try:
            allowed.add(compile_pattern(allowed_text))
        except RuleConfigError as exc:
            raise RuleConfigError(
                f"the allowed namespace '{allowed_text}' is invalid, {exc.detail}", pattern_text
            ) from exc

    if not allowed:
        return None
    return Rule(pattern, frozenset(allowed))


def compile_policy(rule_specs: Iterable[tuple[str, Mapping[str, Any]]]) -> CompiledPolicy:
    """
    Build the immutable rule set from (pattern, {"restrict-to": [...]}) pairs.

    Rules without restrict-to entries have no effect; they are dropped and
    listed in CompiledPolicy.ineffective.

    Raises:
        RuleConfigError: a pattern, rule body or restrict-to entry is invalid
    """
    rules: list[Rule] = []
    ineffective: list[str] = []
    for position, spec in enumerate(rule_specs):
        try:
            pattern_text, body = spec
        except (TypeError, ValueError) as exc:
            raise RuleConfigError(f"rule {position} must be a (pattern, rule) pair") from exc

        rule = _compile_rule(pattern_text, body)
        if rule is None:
            logger.warning("the rule for '%s' has no effect", pattern_text)
            ineffective.append(pattern_text)
            continue
        rules.append(rule)

    logger.debug("compiled %d rules (%d ineffective)", len(rules), len(ineffective))
    return CompiledPolicy(tuple(rules), tuple(ineffective))


def evaluate(
    decl: NamespaceDecl,
    references: Iterable[Reference],
    policy: CompiledPolicy,
) -> tuple[bool, list[Violation]]:
    """
    Check one namespace's references.

    Returns (applicable, violations). applicable is False when no rule
    matches the namespace, in which case there are never violations.
    """
    applicable = policy.applicable_rules(decl.identifier)
    if not applicable:
        return False, []

    allow_set: set[Pattern] = set()
    for rule in applicable:
        allow_set.update(rule.allowed)

    violations = []
    for reference in references:
        if reference.target == decl.identifier:
            continue
        if any(p.matches(reference.target) for p in allow_set):
            continue
        violations.append(Violation(decl, reference))
    return True, violations
