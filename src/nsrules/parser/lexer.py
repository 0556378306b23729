"""
Clojure Reader Lexer (Tokenizer)

Converts raw .clj/.cljs/.cljc source into a flat stream of span-annotated tokens.
Handles: brackets, symbols, keywords, strings, characters, numbers, comments
and reader-macro prefixes.

Nothing is evaluated. Reader macros (quote, metadata, reader conditionals,
tagged literals, ...) are emitted as opaque QUOTE_PREFIX tokens; only the
bracket structure is tracked, which is enough to locate the ns form and to
flag the forms swallowed by #_ as discarded.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, List, Optional, Tuple


class TokenKind(Enum):
    """Kinds of tokens in Clojure source."""
    OPEN_PAREN = auto()      # (
    CLOSE_PAREN = auto()     # )
    OPEN_BRACKET = auto()    # [
    CLOSE_BRACKET = auto()   # ]
    OPEN_BRACE = auto()      # {
    CLOSE_BRACE = auto()     # }
    SYMBOL = auto()          # foo, clojure.string, my.ns/fn
    KEYWORD = auto()         # :require, ::local, :a/b
    STRING = auto()          # "text", #"regex"
    NUMBER = auto()          # 42, -1.5, 1/2, ##Inf
    CHARACTER = auto()       # \a, \newline, \u00e9
    QUOTE_PREFIX = auto()    # ' ` ~ ~@ @ ^ #' #_ #? #?@ #tag ...
    COMMENT = auto()         # ; to end of line


class Prefix(Enum):
    """Reader macros emitted as QUOTE_PREFIX tokens."""
    QUOTE = auto()                        # '
    SYNTAX_QUOTE = auto()                 # `
    UNQUOTE = auto()                      # ~
    UNQUOTE_SPLICING = auto()             # ~@
    DEREF = auto()                        # @
    VAR_QUOTE = auto()                    # #'
    METADATA = auto()                     # ^ or #^
    DISCARD = auto()                      # #_
    READER_CONDITIONAL = auto()           # #?
    READER_CONDITIONAL_SPLICING = auto()  # #?@
    ANONYMOUS_FN = auto()                 # # in #(
    SET = auto()                          # # in #{
    NAMESPACED_MAP = auto()               # #:ns or #::
    EVAL = auto()                         # #=
    TAGGED_LITERAL = auto()               # #inst, #uuid, #js


OPENERS = frozenset({TokenKind.OPEN_PAREN, TokenKind.OPEN_BRACKET, TokenKind.OPEN_BRACE})
CLOSERS = frozenset({TokenKind.CLOSE_PAREN, TokenKind.CLOSE_BRACKET, TokenKind.CLOSE_BRACE})
ATOMS = frozenset({
    TokenKind.SYMBOL,
    TokenKind.KEYWORD,
    TokenKind.STRING,
    TokenKind.NUMBER,
    TokenKind.CHARACTER,
})

MATCHING_CLOSER = {
    TokenKind.OPEN_PAREN: TokenKind.CLOSE_PAREN,
    TokenKind.OPEN_BRACKET: TokenKind.CLOSE_BRACKET,
    TokenKind.OPEN_BRACE: TokenKind.CLOSE_BRACE,
}

_BRACKETS = {
    '(': TokenKind.OPEN_PAREN,
    ')': TokenKind.CLOSE_PAREN,
    '[': TokenKind.OPEN_BRACKET,
    ']': TokenKind.CLOSE_BRACKET,
    '{': TokenKind.OPEN_BRACE,
    '}': TokenKind.CLOSE_BRACE,
}

# Single-character reader macros
_SIMPLE_PREFIXES = {
    "'": Prefix.QUOTE,
    '`': Prefix.SYNTAX_QUOTE,
    '@': Prefix.DEREF,
    '^': Prefix.METADATA,
}

# Characters that end a symbol, keyword or number token.
# Note: ' and # are NOT terminators in Clojure (foo' and gensym# are valid symbols)
TERMINATORS = frozenset('";@^`~()[]{}\\')


@dataclass(frozen=True, order=True)
class Span:
    """1-based source position. end_col is inclusive."""
    line: int
    start_col: int
    end_col: int
    end_line: int = 0

    def __post_init__(self):
        if not self.end_line:
            object.__setattr__(self, "end_line", self.line)

    @property
    def width(self) -> int:
        return self.end_col - self.start_col + 1

    def __str__(self):
        return f"{self.line}:{self.start_col}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    kind: TokenKind
    text: str
    span: Span
    prefix: Optional[Prefix] = None
    discarded: bool = False

    def __repr__(self):
        flag = ", discarded" if self.discarded else ""
        name = self.prefix.name if self.prefix else self.kind.name
        return f"Token({name}, {self.text!r}, L{self.span.line}:{self.span.start_col}{flag})"


class LexError(Exception):
    """Error during lexical analysis."""
    def __init__(self, message: str, span: Span, filename: str = "<unknown>"):
        self.message = message
        self.span = span
        self.filename = filename
        super().__init__(f"Lexer error at line {span.line}, column {span.start_col}: {message}")

    @property
    def line(self) -> int:
        return self.span.line

    @property
    def column(self) -> int:
        return self.span.start_col


def _is_whitespace(ch: str) -> bool:
    # Commas are whitespace in Clojure
    return ch == ',' or ch.isspace()


class Lexer:
    """
    Tokenizer for Clojure source files.

    Usage:
        lexer = Lexer(source_text, "src/my/ns.clj")
        tokens = list(lexer.tokenize())

    or one token at a time with next_token(), which returns None at end of input.
    A tab counts as a single column.
    """

    def __init__(self, source: str, filename: str = "<unknown>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.length = len(source)
        # Position of the last consumed character, for inclusive span ends
        self._last_line = 1
        self._last_col = 0
        # Open bracket tokens, innermost last
        self._open: List[Token] = []
        # Pending #_ discards per bracket depth (index 0 is top level)
        self._pending_discards: List[int] = [0]
        # Bracket depths at which a discarded collection was opened
        self._discard_depths: List[int] = []

    def _current(self) -> Optional[str]:
        """Get current character or None if at end."""
        if self.pos >= self.length:
            return None
        return self.source[self.pos]

    def _peek(self, offset: int = 1) -> Optional[str]:
        """Peek ahead by offset characters."""
        pos = self.pos + offset
        if pos >= self.length:
            return None
        return self.source[pos]

    def _advance(self) -> Optional[str]:
        """Advance one character and return it."""
        ch = self._current()
        if ch is not None:
            self._last_line = self.line
            self._last_col = self.column
            self.pos += 1
            if ch == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return ch

    def _skip_whitespace(self) -> None:
        while True:
            ch = self._current()
            if ch is None or not _is_whitespace(ch):
                return
            self._advance()

    def _span_from(self, line: int, column: int) -> Span:
        """Span from (line, column) through the last consumed character."""
        return Span(line, column, self._last_col, self._last_line)

    def _error(self, message: str, line: int, column: int) -> LexError:
        end_col = max(column, self._last_col) if self._last_line == line else column
        return LexError(message, Span(line, column, end_col), self.filename)

    def _read_token_chars(self) -> None:
        """Consume characters up to the next whitespace or terminating macro character."""
        while True:
            ch = self._current()
            if ch is None or _is_whitespace(ch) or ch in TERMINATORS:
                return
            self._advance()

    def _read_line_comment(self) -> None:
        while True:
            ch = self._current()
            if ch is None or ch == '\n':
                return
            self._advance()

    def _read_string(self, start_line: int, start_col: int) -> None:
        """Read a double-quoted string (the opening quote is current), handling escapes."""
        self._advance()
        while True:
            ch = self._current()
            if ch is None:
                raise self._error("Unterminated string literal", start_line, start_col)
            if ch == '\\':
                self._advance()
                if self._current() is None:
                    raise self._error("Unterminated string literal", start_line, start_col)
                self._advance()
                continue
            self._advance()
            if ch == '"':
                return

    def _read_character(self, start_line: int, start_col: int) -> None:
        """Read a character literal: \\a, \\newline, \\u00e9, \\( ..."""
        self._advance()
        if self._current() is None:
            raise self._error("Unterminated character literal", start_line, start_col)
        # The first character is always part of the literal, even a bracket or quote
        self._advance()
        self._read_token_chars()

    def _read_dispatch(self, start_line: int, start_col: int) -> Tuple[TokenKind, Optional[Prefix]]:
        """Read a #-dispatch reader macro. The # is current."""
        nxt = self._peek()
        if nxt is None:
            self._advance()
            raise self._error("Unexpected end of input after '#'", start_line, start_col)

        if nxt == '(':
            self._advance()
            return TokenKind.QUOTE_PREFIX, Prefix.ANONYMOUS_FN
        if nxt == '{':
            self._advance()
            return TokenKind.QUOTE_PREFIX, Prefix.SET
        if nxt == '"':
            self._advance()
            self._read_string(start_line, start_col)
            return TokenKind.STRING, None
        if nxt == '!':
            # Shebang line: #!/usr/bin/env bb
            self._read_line_comment()
            return TokenKind.COMMENT, None

        self._advance()
        self._advance()
        if nxt == '_':
            return TokenKind.QUOTE_PREFIX, Prefix.DISCARD
        if nxt == "'":
            return TokenKind.QUOTE_PREFIX, Prefix.VAR_QUOTE
        if nxt == '^':
            return TokenKind.QUOTE_PREFIX, Prefix.METADATA
        if nxt == '=':
            return TokenKind.QUOTE_PREFIX, Prefix.EVAL
        if nxt == '?':
            if self._current() == '@':
                self._advance()
                return TokenKind.QUOTE_PREFIX, Prefix.READER_CONDITIONAL_SPLICING
            return TokenKind.QUOTE_PREFIX, Prefix.READER_CONDITIONAL
        if nxt == ':':
            # #:my.ns{...} or #::{...}
            self._read_token_chars()
            return TokenKind.QUOTE_PREFIX, Prefix.NAMESPACED_MAP
        if nxt == '#':
            # ##Inf, ##-Inf, ##NaN
            self._read_token_chars()
            return TokenKind.NUMBER, None
        if not _is_whitespace(nxt) and nxt not in TERMINATORS:
            self._read_token_chars()
            return TokenKind.QUOTE_PREFIX, Prefix.TAGGED_LITERAL
        raise self._error(f"Unexpected dispatch character {nxt!r}", start_line, start_col)

    def _scan(self, ch: str, start_line: int, start_col: int) -> Tuple[TokenKind, Optional[Prefix]]:
        """Consume one token starting at ch and return its kind (and prefix, if any)."""
        if ch == ';':
            self._read_line_comment()
            return TokenKind.COMMENT, None

        if ch in _BRACKETS:
            self._advance()
            return _BRACKETS[ch], None

        if ch == '"':
            self._read_string(start_line, start_col)
            return TokenKind.STRING, None

        if ch == '\\':
            self._read_character(start_line, start_col)
            return TokenKind.CHARACTER, None

        if ch in _SIMPLE_PREFIXES:
            self._advance()
            return TokenKind.QUOTE_PREFIX, _SIMPLE_PREFIXES[ch]

        if ch == '~':
            self._advance()
            if self._current() == '@':
                self._advance()
                return TokenKind.QUOTE_PREFIX, Prefix.UNQUOTE_SPLICING
            return TokenKind.QUOTE_PREFIX, Prefix.UNQUOTE

        if ch == '#':
            return self._read_dispatch(start_line, start_col)

        if ch == ':':
            self._read_token_chars()
            return TokenKind.KEYWORD, None

        nxt = self._peek()
        if ch.isdigit() or (ch in '+-' and nxt is not None and nxt.isdigit()):
            self._read_token_chars()
            return TokenKind.NUMBER, None

        self._read_token_chars()
        return TokenKind.SYMBOL, None

    def _track(self, kind: TokenKind, prefix: Optional[Prefix], span: Span, text: str) -> bool:
        """Update bracket and discard state for a new token. Returns its discarded flag."""
        pending = self._pending_discards
        discarded = pending[-1] > 0 or bool(self._discard_depths)

        if kind is TokenKind.COMMENT:
            return discarded

        if kind is TokenKind.QUOTE_PREFIX:
            if prefix is Prefix.DISCARD:
                pending[-1] += 1
                return True
            if prefix is Prefix.METADATA and pending[-1]:
                # ^meta form: the metadata form and its target both belong to the discard
                pending[-1] += 1
            return discarded

        if kind in OPENERS:
            if pending[-1]:
                pending[-1] -= 1
                self._discard_depths.append(len(self._open))
            self._open.append(Token(kind, text, span))
            pending.append(0)
            return discarded

        if kind in CLOSERS:
            discarded = bool(self._discard_depths)
            if not self._open:
                raise LexError(f"Unmatched closing {text!r}", span, self.filename)
            opener = self._open.pop()
            if MATCHING_CLOSER[opener.kind] is not kind:
                raise LexError(
                    f"Mismatched closing {text!r} for {opener.text!r} opened at "
                    f"line {opener.span.line}, column {opener.span.start_col}",
                    span,
                    self.filename,
                )
            pending.pop()
            if self._discard_depths and self._discard_depths[-1] == len(self._open):
                self._discard_depths.pop()
            return discarded

        # Atom: completes one pending discard at this depth
        if pending[-1]:
            pending[-1] -= 1
        return discarded

    def next_token(self) -> Optional[Token]:
        """Return the next token, or None at end of input."""
        self._skip_whitespace()

        ch = self._current()
        if ch is None:
            if self._open:
                opener = self._open[-1]
                raise LexError(f"Unclosed {opener.text!r} at end of input", opener.span, self.filename)
            return None

        start_pos = self.pos
        start_line = self.line
        start_col = self.column

        kind, prefix = self._scan(ch, start_line, start_col)
        text = self.source[start_pos:self.pos]
        span = self._span_from(start_line, start_col)
        discarded = self._track(kind, prefix, span, text)
        return Token(kind, text, span, prefix, discarded)

    def tokenize(self) -> Iterator[Token]:
        """Generate tokens from the source."""
        while True:
            token = self.next_token()
            if token is None:
                return
            yield token

    def tokenize_all(self) -> List[Token]:
        """Convenience method to get all tokens as a list."""
        return list(self.tokenize())


def tokenize(source: str, filename: str = "<unknown>") -> List[Token]:
    """Tokenize source text and return all tokens (comments and discarded forms included)."""
    return Lexer(source, filename).tokenize_all()
