"""
Structural Form Reader

Turns the lexer's flat token stream into nested forms (lists, vectors, maps,
sets and atoms). Comments and #_ discarded tokens never reach a form. The
reader only records structure: reader-macro prefixes are attached to the form
they precede and ^metadata is attached to its target, but nothing is
interpreted or evaluated.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Sequence

from nsrules.parser.lexer import CLOSERS, OPENERS, Prefix, Span, Token, TokenKind


class FormKind(Enum):
    """Types of forms."""
    LIST = auto()      # ( ... )
    VECTOR = auto()    # [ ... ]
    MAP = auto()       # { ... }
    SET = auto()       # #{ ... }
    ATOM = auto()      # symbol, keyword, string, number, character


_COLLECTION_KINDS = {
    TokenKind.OPEN_PAREN: FormKind.LIST,
    TokenKind.OPEN_BRACKET: FormKind.VECTOR,
    TokenKind.OPEN_BRACE: FormKind.MAP,
}


@dataclass
class Form:
    """A form: an atom token, or a collection from its opening to its closing bracket."""
    kind: FormKind
    token: Token
    children: List['Form'] = field(default_factory=list)
    prefixes: List[Prefix] = field(default_factory=list)
    meta: Optional['Form'] = None
    end: Optional[Token] = None

    def __repr__(self):
        if self.kind is FormKind.ATOM:
            return f"Form({self.token.text!r})"
        return f"Form({self.kind.name}, {len(self.children)} children)"

    @property
    def text(self) -> str:
        return self.token.text

    @property
    def span(self) -> Span:
        """Span from the opening token to the closing bracket (or the atom itself)."""
        start = self.token.span
        if self.end is None:
            return start
        end = self.end.span
        return Span(start.line, start.start_col, end.end_col, end.end_line)

    @property
    def is_symbol(self) -> bool:
        return self.kind is FormKind.ATOM and self.token.kind is TokenKind.SYMBOL

    @property
    def is_keyword(self) -> bool:
        return self.kind is FormKind.ATOM and self.token.kind is TokenKind.KEYWORD

    @property
    def is_collection(self) -> bool:
        return self.kind is not FormKind.ATOM

    def has_prefix(self, prefix: Prefix) -> bool:
        return prefix in self.prefixes

    def head(self) -> Optional['Form']:
        """First child of a collection, if any."""
        return self.children[0] if self.children else None


class FormReader:
    """
    Reader from tokens to forms.

    Usage:
        reader = FormReader(tokens)
        forms = reader.read_all()
    """

    def __init__(self, tokens: Sequence[Token]):
        self.tokens = [
            t for t in tokens
            if t.kind is not TokenKind.COMMENT and not t.discarded
        ]
        self.pos = 0
        self.length = len(self.tokens)

    def _current(self) -> Optional[Token]:
        if self.pos >= self.length:
            return None
        return self.tokens[self.pos]

    def _advance(self) -> Optional[Token]:
        """Advance one token and return it."""
        token = self._current()
        if token is not None:
            self.pos += 1
        return token

    def read_all(self) -> List[Form]:
        """Read every top-level form."""
        forms = []
        while self._current() is not None:
            form = self.read_form()
            if form is not None:
                forms.append(form)
        return forms

    def read_form(self) -> Optional[Form]:
        """Read the next complete form, or None at end of input."""
        token = self._advance()
        if token is None:
            return None

        if token.kind is TokenKind.QUOTE_PREFIX:
            return self._read_prefixed(token)

        if token.kind in OPENERS:
            return self._read_collection(token)

        if token.kind in CLOSERS:
            # The lexer rejects unbalanced input, so this only happens with
            # hand-built token lists; skip the stray closer.
            return None

        return Form(FormKind.ATOM, token)

    def _read_prefixed(self, token: Token) -> Optional[Form]:
        if token.prefix is Prefix.METADATA:
            meta = self.read_form()
            target = self.read_form()
            if target is None:
                return None
            target.meta = meta
            return target

        target = self.read_form()
        if target is None:
            return None
        target.prefixes.insert(0, token.prefix)
        if token.prefix is Prefix.SET and target.kind is FormKind.MAP:
            target.kind = FormKind.SET
        return target

    def _read_collection(self, opener: Token) -> Form:
        form = Form(_COLLECTION_KINDS[opener.kind], opener)
        while True:
            current = self._current()
            if current is None:
                return form
            if current.kind in CLOSERS:
                form.end = self._advance()
                return form
            child = self.read_form()
            if child is not None:
                form.children.append(child)


def read_forms(tokens: Sequence[Token]) -> List[Form]:
    """Read all top-level forms from a token stream."""
    return FormReader(tokens).read_all()
