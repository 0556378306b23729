"""
Namespace Patterns

Dotted-glob patterns that select namespaces:

    shipping.entity.port     exactly that namespace
    shipping.entity.*        any namespace strictly below shipping.entity
    shipping.dom*.ship       * inside a segment matches one or more characters
                             within that one segment

A trailing .* never matches the bare prefix: shipping.entity.* does not match
shipping.entity. Matching is segment-wise and case-sensitive.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

SEGMENT_SEPARATOR = "."
WILDCARD = "*"

# Characters allowed in EDN symbols, without the segment separator
_SEGMENT_RE = re.compile(r"[A-Za-z0-9*+!\-_?$%&=<>]+")


class RuleConfigError(ValueError):
    """A namespace pattern or rule cannot be compiled. Fatal to the whole run."""
    def __init__(self, detail: str, pattern: str | None = None):
        self.detail = detail
        self.pattern = pattern
        if pattern is not None:
            super().__init__(f"the rule '{pattern}' is invalid, {detail}")
        else:
            super().__init__(detail)


@dataclass(frozen=True)
class Pattern:
    """A compiled namespace pattern: literal prefix segments plus a trailing-wildcard flag."""
    text: str
    segments: tuple[str, ...]
    wildcard: bool = False

    def matches(self, identifier: str) -> bool:
        return matches(identifier, self)

    def __str__(self) -> str:
        return self.text


def _validate(text: str) -> None:
    if not isinstance(text, str):
        raise RuleConfigError(f"namespace patterns must be strings, got {type(text).__name__}")
    if text == "":
        raise RuleConfigError("namespace patterns cannot be empty")
    if any(ch.isspace() for ch in text):
        raise RuleConfigError("namespace patterns cannot contain spaces")
    if text.startswith(SEGMENT_SEPARATOR) or text.endswith(SEGMENT_SEPARATOR):
        raise RuleConfigError("namespace patterns cannot start with or end with '.'")
    for segment in text.split(SEGMENT_SEPARATOR):
        if segment == "":
            raise RuleConfigError("namespace patterns cannot contain empty segments")
        if not _SEGMENT_RE.fullmatch(segment):
            raise RuleConfigError(f"namespace pattern segment '{segment}' contains invalid characters")


def compile_pattern(text: str) -> Pattern:
    """Compile a dotted-glob string. Raises RuleConfigError when it is malformed."""
    _validate(text)
    segments = text.split(SEGMENT_SEPARATOR)
    if segments[-1] == WILDCARD:
        return Pattern(text, tuple(segments[:-1]), wildcard=True)
    return Pattern(text, tuple(segments))


@lru_cache(maxsize=None)
def _segment_regex(pattern_segment: str) -> re.Pattern:
    parts = (".+" if ch == WILDCARD else re.escape(ch) for ch in pattern_segment)
    return re.compile("".join(parts))


def _segment_matches(segment: str, pattern_segment: str) -> bool:
    if WILDCARD not in pattern_segment:
        return segment == pattern_segment
    return _segment_regex(pattern_segment).fullmatch(segment) is not None


def matches(identifier: str, pattern: Pattern) -> bool:
    """True if the namespace identifier is selected by pattern."""
    segments = identifier.split(SEGMENT_SEPARATOR)
    prefix = pattern.segments
    if pattern.wildcard:
        if len(segments) <= len(prefix):
            return False
    elif len(segments) != len(prefix):
        return False
    return all(_segment_matches(s, p) for s, p in zip(segments, prefix))
