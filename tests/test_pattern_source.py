import pytest
from parsers.pattern_source import PatternSource, PredicateToken
from queries.errors import QueryError
from queries.types import QueryErrorKind

class TestPatternSource:
    """Scanning predicate forms out of query text."""

    def test_extracts_predicate(self):
        text = '((identifier) @id (#eq? @id "self"))'
        source = PatternSource(text)
        assert len(source.predicate_forms) == 1
        form = source.predicate_forms[0]
        assert form.operator == "eq?"
        assert [(t.is_capture, t.value) for t in form.args] == [(True, "id"), (False, "self")]
        assert text[form.start:form.end] == '(#eq? @id "self")'

    def test_blanks_predicates_keeping_offsets(self):
        text = '((identifier) @id\n (#match? @id "^_"))'
        source = PatternSource(text)
        structural = source.structural_source
        assert len(structural) == len(text.encode("utf-8"))
        assert b"#" not in structural
        assert structural.startswith(b"((identifier) @id\n ")
        assert structural.endswith(b")")

    def test_blanking_keeps_newlines(self):
        text = '((a) @a (#set! "x"\n "y"))'
        structural = PatternSource(text).structural_source
        assert structural.count(b"\n") == 1

    def test_bare_words_are_strings(self):
        form = PatternSource("((a) @a (#set! priority 100))").predicate_forms[0]
        assert form.args == (
            PredicateToken(False, "priority", form.args[0].offset),
            PredicateToken(False, "100", form.args[1].offset),
        )
        assert "((a) @a (#set! priority 100))"[form.args[0].offset:].startswith("priority")

    def test_string_escapes(self):
        form = PatternSource(r'((a) @a (#eq? @a "a\"b\\c\n"))').predicate_forms[0]
        assert form.args[1].value == 'a"b\\c\n'

    def test_regex_escape(self):
        form = PatternSource(r'((a) @a (#match? @a "^\\s+$"))').predicate_forms[0]
        assert form.args[1].value == "^\\s+$"

    def test_skips_comments_and_strings(self):
        text = '; (#eq? @x "y")\n((a) "(#not a predicate)" @a)'
        source = PatternSource(text)
        assert source.predicate_forms == []
        assert source.structural_source == text.encode("utf-8")

    def test_whitespace_before_hash(self):
        form = PatternSource("((a) @a ( #eq? @a b))").predicate_forms[0]
        assert form.operator == "eq?"

    def test_multiple_forms_in_order(self):
        source = PatternSource("((a) @a (#eq? @a x) (#set! k))\n((b) @b (#is? local))")
        assert [f.operator for f in source.predicate_forms] == ["eq?", "set!", "is?"]

    def test_location(self):
        source = PatternSource("(a)\n  (b)")
        assert source.location(6) == (1, 2)

    def test_unicode_offsets_are_bytes(self):
        text = '((a) @a (#eq? @a "é"))'
        source = PatternSource(text)
        form = source.predicate_forms[0]
        assert source.source[form.start:form.end] == '(#eq? @a "é")'.encode("utf-8")

class TestPatternSourceErrors:
    @pytest.mark.parametrize("text,message", [
        ('((a) @a (#eq? @a "x))', "unterminated string"),
        ("((a) @a (#eq? @a x", "unterminated predicate"),
        ("((a) @a (#eq? @a (b)))", "unexpected"),
        ("((a) @a (# @a))", "missing predicate name"),
        ("((a) @a (#eq? @ x))", "missing capture name"),
    ])
    def test_syntax_errors(self, text, message):
        with pytest.raises(QueryError) as exc:
            PatternSource(text)
        assert exc.value.kind == QueryErrorKind.SYNTAX
        assert message in str(exc.value)

    def test_error_location(self):
        with pytest.raises(QueryError) as exc:
            PatternSource('(a)\n((b) @b (#eq? @b "x))')
        assert exc.value.row == 1
        assert exc.value.column == 17
