"""
Tests for the form reader and the ns form extractor.
"""

import pytest
from nsrules.parser import (
    ClauseKind,
    FormKind,
    MissingNamespaceError,
    NamespaceError,
    Prefix,
    Span,
    parse_namespace,
    read_forms,
    tokenize,
)

from conftest import reference_targets


PORT_SOURCE = """\
(ns shipping.entity.port
  "Ports that ships can dock at."
  (:require [shipping.entity.ship :as ship]
            [shipping.service.database :as db]))
"""


class TestFormReader:
    """Test structural reading of token streams."""

    def test_nested_collections(self):
        """Lists, vectors and maps nest."""
        forms = read_forms(tokenize("(a [b {:c d}])"))
        assert len(forms) == 1
        outer = forms[0]
        assert outer.kind is FormKind.LIST
        assert outer.head().text == "a"
        vector = outer.children[1]
        assert vector.kind is FormKind.VECTOR
        assert vector.children[1].kind is FormKind.MAP

    def test_set_literal(self):
        """#{...} reads as a set."""
        form = read_forms(tokenize("#{a b}"))[0]
        assert form.kind is FormKind.SET
        assert form.has_prefix(Prefix.SET)
        assert [c.text for c in form.children] == ["a", "b"]

    def test_metadata_attached_to_target(self):
        """^meta is attached to the form that follows it."""
        form = read_forms(tokenize("^:private foo"))[0]
        assert form.text == "foo"
        assert form.meta.text == ":private"

    def test_comments_and_discards_skipped(self):
        """Comments and discarded forms never become forms."""
        forms = read_forms(tokenize("; note\n#_ (skipped) kept"))
        assert [f.text for f in forms] == ["kept"]

    def test_collection_span(self):
        """A collection spans its opening to its closing bracket."""
        form = read_forms(tokenize("(a\n  b)"))[0]
        assert form.span == Span(1, 1, 4, 2)

    def test_quoted_form_keeps_prefix(self):
        """Prefixes are recorded on the form."""
        form = read_forms(tokenize("'(ns fake)"))[0]
        assert form.has_prefix(Prefix.QUOTE)


class TestNamespaceDeclaration:
    """Test finding and naming the ns form."""

    def test_simple_ns(self):
        """Name and span of a minimal ns form."""
        decl, references = parse_namespace("(ns foo.bar)", "src/foo/bar.clj")
        assert decl.identifier == "foo.bar"
        assert decl.file_path == "src/foo/bar.clj"
        assert decl.decl_span == Span(1, 1, 12)
        assert decl.segments == ("foo", "bar")
        assert references == []

    def test_ns_after_comments(self):
        """Leading comments, discards and shebangs are skipped."""
        source = "#!/usr/bin/env bb\n;; header\n#_(ns not.this)\n(ns real.one)"
        decl, _ = parse_namespace(source)
        assert decl.identifier == "real.one"
        assert decl.decl_span.line == 4

    def test_docstring_and_attr_map(self):
        """Docstrings and attribute maps before the clauses."""
        source = '(ns a.b "docs" {:author "me"} (:require [c.d]))'
        assert reference_targets(source) == ["c.d"]

    def test_metadata_on_name(self):
        """^{...} metadata on the namespace name."""
        decl, _ = parse_namespace('(ns ^{:doc "x"} a.b (:require c.d))')
        assert decl.identifier == "a.b"

    def test_qualified_ns_symbol(self):
        """clojure.core/ns is recognized too."""
        decl, _ = parse_namespace("(clojure.core/ns a.b)")
        assert decl.identifier == "a.b"

    def test_quoted_ns_ignored(self):
        """A quoted (ns ...) list is data, not a declaration."""
        decl, _ = parse_namespace("'(ns fake)\n(ns real)")
        assert decl.identifier == "real"

    def test_first_ns_wins(self):
        """Only the first ns form counts."""
        decl, _ = parse_namespace("(ns first.one)\n(ns second.one)")
        assert decl.identifier == "first.one"

    def test_missing_ns(self):
        """A file without an ns form."""
        with pytest.raises(MissingNamespaceError) as exc_info:
            parse_namespace(";; nothing here\n(+ 1 2)", "scratch.clj")
        assert exc_info.value.reason == "missing module declaration"
        assert exc_info.value.line == 0
        assert exc_info.value.file_path == "scratch.clj"

    def test_nested_ns_not_found(self):
        """An ns form that is not top level does not count."""
        with pytest.raises(MissingNamespaceError):
            parse_namespace("(comment (ns inner))")

    @pytest.mark.parametrize("source", [
        "(ns)",
        "(ns :keyword)",
        '(ns "string")',
        "(ns a..b)",
    ])
    def test_malformed_ns(self, source):
        """An ns form without a usable name."""
        with pytest.raises(NamespaceError, match="malformed module declaration") as exc_info:
            parse_namespace(source)
        assert not isinstance(exc_info.value, MissingNamespaceError)
        assert exc_info.value.line == 1


class TestReferences:
    """Test reference extraction from ns clauses."""

    def test_reference_spans(self):
        """Each reference spans exactly its identifier token."""
        _, references = parse_namespace(PORT_SOURCE)
        assert [r.target for r in references] == ["shipping.entity.ship", "shipping.service.database"]
        assert references[0].span == Span(3, 14, 33)
        assert references[1].span == Span(4, 14, 38)
        assert references[1].clause is ClauseKind.REQUIRE

    def test_span_matches_source_text(self):
        """Slicing the source line with the span gives the target."""
        lines = PORT_SOURCE.splitlines()
        _, references = parse_namespace(PORT_SOURCE)
        for ref in references:
            line = lines[ref.span.line - 1]
            assert line[ref.span.start_col - 1:ref.span.end_col] == ref.target

    def test_bare_symbols(self):
        """Unwrapped symbols in :require."""
        assert reference_targets("(ns a (:require b.c d.e))") == ["b.c", "d.e"]

    def test_libspec_options_ignored(self):
        """:as, :refer and friends are not references."""
        source = "(ns a (:require [b.c :as c :refer [x y]] [d.e :refer :all]))"
        assert reference_targets(source) == ["b.c", "d.e"]

    def test_prefix_list(self):
        """(prefix suffix [suffix :as x]) expands to full names."""
        source = "(ns a (:require (clojure set [string :as str])))"
        assert reference_targets(source) == ["clojure.set", "clojure.string"]

    def test_prefix_vector(self):
        """[prefix suffix ...] with a symbol second element is a prefix list."""
        source = "(ns a (:require [clojure set [string :as str]]))"
        assert reference_targets(source) == ["clojure.set", "clojure.string"]

    def test_prefix_list_span_is_suffix(self):
        """A prefix-list reference points at its suffix token."""
        _, references = parse_namespace("(ns a (:require (clojure set)))")
        assert references[0].target == "clojure.set"
        assert references[0].span == Span(1, 26, 28)

    def test_use_and_macros(self):
        """:use, :require-macros and :use-macros are references too."""
        source = """
        (ns a
          (:use [b.c :only [x]])
          (:require-macros [d.e :as e])
          (:use-macros f.g))
        """
        _, references = parse_namespace(source)
        assert [(r.target, r.clause) for r in references] == [
            ("b.c", ClauseKind.USE),
            ("d.e", ClauseKind.REQUIRE_MACROS),
            ("f.g", ClauseKind.USE_MACROS),
        ]

    def test_import(self):
        """:import symbols and package lists."""
        source = "(ns a (:import java.io.File (java.util Date List) [java.net URI]))"
        assert reference_targets(source) == [
            "java.io.File", "java.util.Date", "java.util.List", "java.net.URI",
        ]

    def test_duplicates_keep_first(self):
        """A target named twice is reported once, at its first position."""
        source = "(ns a\n  (:require [b.c])\n  (:use b.c))"
        _, references = parse_namespace(source)
        assert len(references) == 1
        assert references[0].span.line == 2

    def test_discarded_entries_ignored(self):
        """#_ entries are not references."""
        source = "(ns a (:require [b.c] #_[d.e :as e] #_ f.g))"
        assert reference_targets(source) == ["b.c"]

    def test_commented_entries_ignored(self):
        """Commented-out entries are not references."""
        source = "(ns a\n  (:require [b.c]\n            ;; [d.e]\n            ))"
        assert reference_targets(source) == ["b.c"]

    def test_reader_conditional(self):
        """Every branch of a reader conditional counts."""
        source = "(ns a (:require #?(:clj [b.jvm] :cljs [b.js])))"
        assert reference_targets(source) == ["b.jvm", "b.js"]

    def test_splicing_reader_conditional(self):
        """#?@ splices each branch's entries."""
        source = "(ns a (:require #?@(:clj [[b.c] [d.e]] :cljs [[f.g]])))"
        assert reference_targets(source) == ["b.c", "d.e", "f.g"]

    def test_conditional_clause(self):
        """A reader conditional around a whole clause."""
        source = "(ns a #?(:clj (:import java.util.Date) :cljs (:require [goog.string])))"
        assert reference_targets(source) == ["java.util.Date", "goog.string"]

    def test_string_libs_ignored(self):
        """JS module strings are not namespaces."""
        source = '(ns a (:require ["react" :as react] [b.c]))'
        assert reference_targets(source) == ["b.c"]

    def test_flags_ignored(self):
        """:reload and similar flags are not references."""
        assert reference_targets("(ns a (:require [b.c] :reload-all))") == ["b.c"]

    def test_other_clauses_ignored(self):
        """:gen-class, :refer-clojure and unknown clauses."""
        source = "(ns a (:gen-class) (:refer-clojure :exclude [map]) (:load x.y) (:require b.c))"
        assert reference_targets(source) == ["b.c"]

    def test_code_body_require_ignored(self):
        """Only the ns form is inspected."""
        source = "(ns a (:require b.c))\n(require 'd.e)"
        assert reference_targets(source) == ["b.c"]

    def test_malformed_target_kept(self):
        """A target with empty segments is still a reference."""
        source = "(ns a (:require [foo..bar :as fb] b.c))"
        assert reference_targets(source) == ["foo..bar", "b.c"]

    def test_parse_keeps_source(self):
        """The decl carries the parsed text for excerpts."""
        decl, _ = parse_namespace("(ns a.b)\n(def x 1)\n", "src/a/b.clj")
        assert decl.source is not None
        assert decl.source.display_path == "src/a/b.clj"
        assert decl.source.lines == ["(ns a.b)", "(def x 1)"]
