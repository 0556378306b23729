"""
nsrules.parser - Clojure ns form reader

Lexer, structural form reader and namespace extractor for Clojure source.
Converts .clj/.cljs/.cljc text into a namespace declaration plus its
references, without evaluating anything.
"""

from nsrules.parser.lexer import Lexer, LexError, Prefix, Span, Token, TokenKind, tokenize
from nsrules.parser.reader import Form, FormKind, FormReader, read_forms
from nsrules.parser.namespace import (
    ClauseKind,
    MissingNamespaceError,
    NamespaceDecl,
    NamespaceError,
    Reference,
    extract_namespace,
    find_ns_form,
    parse_namespace,
)

__all__ = [
    # Lexer
    "Lexer",
    "LexError",
    "Prefix",
    "Span",
    "Token",
    "TokenKind",
    "tokenize",
    # Reader
    "Form",
    "FormKind",
    "FormReader",
    "read_forms",
    # Namespace extraction
    "ClauseKind",
    "MissingNamespaceError",
    "NamespaceDecl",
    "NamespaceError",
    "Reference",
    "extract_namespace",
    "find_ns_form",
    "parse_namespace",
]
