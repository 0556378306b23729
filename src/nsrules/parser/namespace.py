"""
Namespace Declaration Extractor

Finds the ns form of a Clojure source file and extracts the declared
namespace name plus the namespaces it references through :require, :use,
:import and their macro variants. Each reference keeps the exact span of the
identifier token so diagnostics can point at it.

Only the ns form is inspected. Calls to require/use in the code body,
dynamically built symbols and runtime loading are not seen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional, Sequence

from nsrules.parser.lexer import Prefix, Span, Token, tokenize
from nsrules.parser.reader import Form, FormKind, read_forms
from nsrules.scanner import SourceFile


NS_SYMBOLS = frozenset({"ns", "clojure.core/ns"})
MISSING_NAMESPACE = "missing module declaration"


class ClauseKind(Enum):
    """Reference clauses recognized inside an ns form, keyed by their keyword."""
    REQUIRE = ":require"
    REQUIRE_MACROS = ":require-macros"
    USE = ":use"
    USE_MACROS = ":use-macros"
    IMPORT = ":import"


@dataclass(frozen=True)
class NamespaceDecl:
    """The declared namespace of one file."""
    identifier: str
    file_path: str
    decl_span: Span
    source: Optional[SourceFile] = field(default=None, compare=False, repr=False)

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self.identifier.split("."))


@dataclass(frozen=True)
class Reference:
    """A namespace referenced from an ns form. span covers only the identifier token."""
    target: str
    span: Span
    clause: ClauseKind = field(default=ClauseKind.REQUIRE, compare=False)


class NamespaceError(Exception):
    """The file has no usable ns form."""
    def __init__(self, reason: str, file_path: str = "<unknown>", span: Optional[Span] = None):
        self.reason = reason
        self.file_path = file_path
        self.span = span
        super().__init__(f"{file_path}: {reason}")

    @property
    def line(self) -> int:
        return self.span.line if self.span else 0

    @property
    def column(self) -> int:
        return self.span.start_col if self.span else 0


class MissingNamespaceError(NamespaceError):
    """No ns form at all."""
    def __init__(self, file_path: str = "<unknown>"):
        super().__init__(MISSING_NAMESPACE, file_path)


# =============================================================================
# CLAUSE ENTRY EXTRACTION
# =============================================================================

# (target identifier, token the reference points at)
RawRef = tuple[str, Token]


def _expand_conditionals(forms: Iterable[Form]) -> Iterator[Form]:
    """Yield forms, replacing reader conditionals with the values of every branch."""
    for form in forms:
        splicing = form.has_prefix(Prefix.READER_CONDITIONAL_SPLICING)
        if form.kind is FormKind.LIST and (splicing or form.has_prefix(Prefix.READER_CONDITIONAL)):
            # #?(:clj a :cljs b) -> feature/value pairs
            branches = form.children[1::2]
            if splicing:
                for branch in branches:
                    yield from _expand_conditionals(branch.children)
            else:
                yield from _expand_conditionals(branches)
        else:
            yield form


def _join(prefix: Optional[str], name: str) -> str:
    return f"{prefix}.{name}" if prefix else name


def _is_libspec_vector(items: Sequence[Form]) -> bool:
    # [lib] or [lib :as x ...]; anything else with a non-keyword second item is a prefix list
    return len(items) == 1 or items[1].is_keyword


def _libspec_refs(entry: Form, prefix: Optional[str] = None) -> Iterator[RawRef]:
    if entry.is_symbol:
        yield _join(prefix, entry.text), entry.token
    elif entry.kind is FormKind.VECTOR:
        items = list(_expand_conditionals(entry.children))
        if not items:
            return
        if prefix is not None or _is_libspec_vector(items):
            # String libs (["react" :as react]) name JS modules, not namespaces
            if items[0].is_symbol:
                yield _join(prefix, items[0].text), items[0].token
        else:
            yield from _prefix_list_refs(items)
    elif entry.kind is FormKind.LIST and prefix is None:
        yield from _prefix_list_refs(list(_expand_conditionals(entry.children)))
    # Flags (:reload, :verbose) and anything else are not references


def _prefix_list_refs(items: Sequence[Form]) -> Iterator[RawRef]:
    """(clojure set [string :as str]) -> clojure.set, clojure.string"""
    if not items or not items[0].is_symbol:
        return
    prefix = items[0].text
    for item in items[1:]:
        yield from _libspec_refs(item, prefix)


def _require_refs(entries: Iterable[Form]) -> Iterator[RawRef]:
    for entry in _expand_conditionals(entries):
        yield from _libspec_refs(entry)


def _import_refs(entries: Iterable[Form]) -> Iterator[RawRef]:
    for entry in _expand_conditionals(entries):
        if entry.is_symbol:
            yield entry.text, entry.token
        elif entry.kind in (FormKind.LIST, FormKind.VECTOR):
            # (java.util Date List)
            items = list(_expand_conditionals(entry.children))
            if not items or not items[0].is_symbol:
                continue
            package = items[0].text
            for cls in items[1:]:
                if cls.is_symbol:
                    yield _join(package, cls.text), cls.token


_CLAUSE_EXTRACTORS: dict[ClauseKind, Callable[[Iterable[Form]], Iterator[RawRef]]] = {
    ClauseKind.REQUIRE: _require_refs,
    ClauseKind.REQUIRE_MACROS: _require_refs,
    ClauseKind.USE: _require_refs,
    ClauseKind.USE_MACROS: _require_refs,
    ClauseKind.IMPORT: _import_refs,
}

_CLAUSE_KEYWORDS = {kind.value: kind for kind in ClauseKind}


def _clause_kind(form: Form) -> Optional[ClauseKind]:
    if form.kind is not FormKind.LIST:
        return None
    head = form.head()
    if head is None or not head.is_keyword:
        return None
    return _CLAUSE_KEYWORDS.get(head.text)


# =============================================================================
# NS FORM
# =============================================================================

def find_ns_form(forms: Iterable[Form]) -> Optional[Form]:
    """First top-level, unquoted list whose head is the ns symbol."""
    for form in forms:
        if form.kind is not FormKind.LIST or form.prefixes:
            continue
        head = form.head()
        if head is not None and head.is_symbol and head.text in NS_SYMBOLS:
            return form
    return None


def _valid_identifier(identifier: str) -> bool:
    return all(identifier.split("."))


def extract_references(ns_form: Form) -> list[Reference]:
    """All distinct references declared in an ns form, in source order."""
    seen: set[str] = set()
    references: list[Reference] = []
    for clause in _expand_conditionals(ns_form.children[2:]):
        kind = _clause_kind(clause)
        if kind is None:
            continue
        extractor = _CLAUSE_EXTRACTORS[kind]
        for target, token in extractor(clause.children[1:]):
            # malformed targets (foo..bar) are kept so the policy still sees them
            if target in seen:
                continue
            seen.add(target)
            references.append(Reference(target, token.span, kind))
    return references


def extract_namespace(
    tokens: Sequence[Token],
    file_path: str = "<unknown>",
    source: Optional[SourceFile] = None,
) -> tuple[NamespaceDecl, list[Reference]]:
    """
    Extract the namespace declaration and its references from a token stream.

    Raises:
        MissingNamespaceError: no ns form in the file
        NamespaceError: the ns form does not name a namespace
    """
    ns_form = find_ns_form(read_forms(tokens))
    if ns_form is None:
        raise MissingNamespaceError(file_path)

    name = ns_form.children[1] if len(ns_form.children) > 1 else None
    if name is None or not name.is_symbol or not _valid_identifier(name.text):
        raise NamespaceError(
            "malformed module declaration, expected a namespace name",
            file_path,
            ns_form.token.span,
        )

    decl = NamespaceDecl(name.text, file_path, ns_form.span, source)
    return decl, extract_references(ns_form)


def parse_namespace(text: str, file_path: str = "<unknown>") -> tuple[NamespaceDecl, list[Reference]]:
    """Tokenize source text and extract its namespace declaration, keeping the text for excerpts."""
    source = SourceFile.from_text(file_path, text)
    return extract_namespace(tokenize(text, file_path), file_path, source)
