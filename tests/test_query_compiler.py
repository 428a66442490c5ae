import re
import pytest
from queries.compiler import QueryCompiler, compile_predicates, split_predicate_steps, position_for_offset
from queries.errors import (
    PredicateError, ArgCountMismatchError, ArgKindMismatchError, MustBeginWithLiteralError,
    InvalidRegexError, InvalidArgumentError, HandlerMissingError, InvalidHandlerResultError
)
from queries.models import (
    PredicateStep, TextPredicate, QueryProperty, PropertyPredicate, GeneralPredicate, PredicateArg
)
from queries.registry import PredicateRegistry, create_default_registry
from queries.types import TextPredicateType, BindingPolicy, PredicateErrorKind, QueryErrorKind
from tests.mocks.matcher_mock import MockPatternSet

def compile_one(*predicates, captures=("a", "b")):
    return compile_predicates(MockPatternSet.from_predicates(captures, *predicates),
                              registry=create_default_registry())

class TestSplitPredicateSteps:
    """Splitting flat step arrays at DONE sentinels."""

    def test_splits_at_done(self):
        steps = [
            PredicateStep.string(0), PredicateStep.capture(0), PredicateStep.done(),
            PredicateStep.string(1), PredicateStep.done()
        ]
        assert split_predicate_steps(steps) == [
            [PredicateStep.string(0), PredicateStep.capture(0)],
            [PredicateStep.string(1)]
        ]

    def test_drops_empty_predicates(self):
        steps = [PredicateStep.done(), PredicateStep.string(0), PredicateStep.done(), PredicateStep.done()]
        assert split_predicate_steps(steps) == [[PredicateStep.string(0)]]

    def test_keeps_trailing_predicate_without_done(self):
        steps = [PredicateStep.string(0), PredicateStep.capture(1)]
        assert split_predicate_steps(steps) == [[PredicateStep.string(0), PredicateStep.capture(1)]]

    def test_empty(self):
        assert split_predicate_steps([]) == []

class TestPositionForOffset:
    def test_first_line(self):
        assert position_for_offset(b"(a) (b)", 4) == (0, 4)

    def test_later_line(self):
        assert position_for_offset(b"(a)\n\n  (b)", 7) == (2, 2)

    def test_clamps_offset(self):
        assert position_for_offset(b"ab", 10) == (0, 2)

class TestTextPredicateCompilation:
    """Built-in text operators compile to TextPredicate values."""

    def test_eq_string(self):
        query = compile_one(("eq?", "@a", "foo"))
        assert query.text_predicates(0) == (
            TextPredicate(TextPredicateType.EQ_STRING, 0, "foo"),
        )

    def test_eq_capture(self):
        query = compile_one(("eq?", "@a", "@b"))
        predicate = query.text_predicates(0)[0]
        assert predicate.type == TextPredicateType.EQ_CAPTURE
        assert predicate.capture_id == 0
        assert predicate.value == 1

    @pytest.mark.parametrize("operator,positive,policy", [
        ("eq?", True, BindingPolicy.REQUIRE_ALL),
        ("not-eq?", False, BindingPolicy.REQUIRE_ALL),
        ("any-eq?", True, BindingPolicy.REQUIRE_ANY),
        ("any-not-eq?", False, BindingPolicy.REQUIRE_ANY),
    ])
    def test_eq_variants(self, operator, positive, policy):
        predicate = compile_one((operator, "@a", "x")).text_predicates(0)[0]
        assert predicate.positive is positive
        assert predicate.policy is policy
        assert predicate.match_all_bindings is (policy is BindingPolicy.REQUIRE_ALL)

    @pytest.mark.parametrize("operator,positive,policy", [
        ("match?", True, BindingPolicy.REQUIRE_ALL),
        ("not-match?", False, BindingPolicy.REQUIRE_ALL),
        ("any-match?", True, BindingPolicy.REQUIRE_ANY),
        ("any-not-match?", False, BindingPolicy.REQUIRE_ANY),
    ])
    def test_match_variants_compile_regex(self, operator, positive, policy):
        predicate = compile_one((operator, "@a", "^// [a-z]+$")).text_predicates(0)[0]
        assert predicate.type == TextPredicateType.MATCH_STRING
        assert isinstance(predicate.value, re.Pattern)
        assert predicate.value.pattern == "^// [a-z]+$"
        assert predicate.positive is positive
        assert predicate.policy is policy

    def test_any_of(self):
        predicate = compile_one(("any-of?", "@a", "x", "y", "z")).text_predicates(0)[0]
        assert predicate.type == TextPredicateType.ANY_STRING
        assert predicate.value == ("x", "y", "z")
        assert predicate.positive
        assert predicate.policy is BindingPolicy.REQUIRE_ALL

    def test_not_any_of(self):
        predicate = compile_one(("not-any-of?", "@a", "x", "y")).text_predicates(0)[0]
        assert not predicate.positive
        assert predicate.policy is BindingPolicy.REQUIRE_ALL

    def test_predicates_keep_order(self):
        query = compile_one(("eq?", "@a", "x"), ("match?", "@b", "y"))
        assert [p.type for p in query.text_predicates(0)] == [
            TextPredicateType.EQ_STRING, TextPredicateType.MATCH_STRING
        ]

class TestPropertyCompilation:
    def test_set_key(self):
        query = compile_one(("set!", "indent"))
        assert query.property_settings(0) == (QueryProperty("indent"),)

    def test_set_key_value(self):
        query = compile_one(("set!", "priority", "100"))
        assert query.property_settings(0) == (QueryProperty("priority", "100"),)

    def test_set_capture_key_value(self):
        query = compile_one(("set!", "@a", "role", "name"))
        assert query.property_settings(0) == (QueryProperty("role", "name", capture_id=0),)

    def test_capture_accepted_after_key(self):
        query = compile_one(("set!", "role", "@b"))
        assert query.property_settings(0) == (QueryProperty("role", None, capture_id=1),)

    def test_is(self):
        query = compile_one(("is?", "local"))
        assert query.property_predicates(0) == (PropertyPredicate(QueryProperty("local"), positive=True),)

    def test_is_not(self):
        query = compile_one(("is-not?", "@a", "local"))
        assert query.property_predicates(0) == (
            PropertyPredicate(QueryProperty("local", capture_id=0), positive=False),
        )

    def test_properties_do_not_filter(self):
        query = compile_one(("set!", "k"), ("is?", "k"))
        assert query.text_predicates(0) == ()

class TestGeneralPredicates:
    def test_unknown_operator_is_kept(self):
        query = compile_one(("select-adjacent!", "@a", "@b"))
        assert query.general_predicates(0) == (
            GeneralPredicate("select-adjacent!", (PredicateArg(capture_id=0), PredicateArg(capture_id=1))),
        )

    def test_general_predicate_mixed_args(self):
        query = compile_one(("strip!", "@a", "^\\s+"))
        predicate = query.general_predicates(0)[0]
        assert predicate.args[0].is_capture
        assert not predicate.args[1].is_capture
        assert predicate.args[1].string == "^\\s+"

    def test_general_predicate_without_args(self):
        query = compile_one(("nothing!",))
        assert query.general_predicates(0) == (GeneralPredicate("nothing!", ()),)

    def test_unknown_operator_rejected_without_catchall(self):
        registry = create_default_registry(allow_unknown=False)
        pattern_set = MockPatternSet.from_predicates(("a",), ("mystery?", "@a"))
        with pytest.raises(HandlerMissingError) as exc:
            QueryCompiler(registry).compile(pattern_set)
        assert exc.value.predicate_kind == PredicateErrorKind.HANDLER_MISSING
        assert exc.value.operator == "mystery?"

class TestPredicateErrors:
    """Invalid predicates abort compilation."""

    @pytest.mark.parametrize("predicate", [
        ("match?", "@a"),
        ("match?", "@a", "x", "y"),
        ("eq?", "@a"),
        ("eq?", "@a", "x", "y"),
        ("not-eq?",),
        ("any-of?", "@a"),
        ("set!",),
        ("set!", "@a", "k", "v", "w"),
        ("is?",),
        ("is-not?", "a", "b", "c", "d"),
    ])
    def test_arg_count_mismatch(self, predicate):
        with pytest.raises(ArgCountMismatchError) as exc:
            compile_one(predicate)
        assert exc.value.predicate_kind == PredicateErrorKind.ARG_COUNT_MISMATCH
        assert exc.value.kind == QueryErrorKind.PREDICATE

    @pytest.mark.parametrize("predicate", [
        ("match?", "x", "y"),
        ("match?", "@a", "@b"),
        ("eq?", "x", "@a"),
        ("not-eq?", "x", "y"),
        ("any-of?", "x", "y"),
        ("any-of?", "@a", "x", "@b"),
    ])
    def test_arg_kind_mismatch(self, predicate):
        with pytest.raises(ArgKindMismatchError) as exc:
            compile_one(predicate)
        assert exc.value.predicate_kind == PredicateErrorKind.ARG_KIND_MISMATCH

    def test_kind_message_names_argument(self):
        with pytest.raises(ArgKindMismatchError) as exc:
            compile_one(("match?", "@a", "@b"))
        assert "arg #2 must NOT be a capture" in str(exc.value)
        assert "@b" in str(exc.value)

    def test_count_message(self):
        with pytest.raises(ArgCountMismatchError) as exc:
            compile_one(("eq?", "@a"))
        assert str(exc.value) == "predicate error: wrong arguments # for #eq? (expected 2, got 1) at 1:1"

    def test_range_arity_message(self):
        with pytest.raises(ArgCountMismatchError) as exc:
            compile_one(("set!",))
        assert "expected [1..3], got 0" in str(exc.value)

    def test_must_begin_with_literal(self):
        pattern_set = MockPatternSet(
            ["a"], ["eq?"],
            [[PredicateStep.capture(0), PredicateStep.string(0), PredicateStep.done()]]
        )
        with pytest.raises(MustBeginWithLiteralError) as exc:
            compile_predicates(pattern_set, registry=create_default_registry())
        assert "@a" in str(exc.value)

    def test_invalid_regex(self):
        with pytest.raises(InvalidRegexError) as exc:
            compile_one(("match?", "@a", "(unclosed"))
        assert exc.value.pattern == "(unclosed"
        assert isinstance(exc.value.cause, re.error)

    def test_set_two_captures(self):
        with pytest.raises(InvalidArgumentError):
            compile_one(("set!", "@a", "@b", "k"))

    def test_set_missing_key(self):
        with pytest.raises(InvalidArgumentError):
            compile_one(("set!", "@a"))

    def test_error_location_is_pattern_start(self):
        source = b"(a)\n\n  (b) @a (#eq? @a)"
        pattern_set = MockPatternSet(
            ["a"], ["eq?"],
            [[], [PredicateStep.string(0), PredicateStep.capture(0), PredicateStep.done()]],
            source=source,
            pattern_starts=[0, 7]
        )
        with pytest.raises(ArgCountMismatchError) as exc:
            compile_predicates(pattern_set, registry=create_default_registry())
        assert (exc.value.row, exc.value.column) == (2, 2)
        assert str(exc.value).endswith("at 3:3")

    def test_first_error_aborts(self):
        with pytest.raises(PredicateError):
            compile_one(("eq?", "@a", "x"), ("match?", "@a"))

    def test_invalid_handler_result(self):
        registry = PredicateRegistry(handlers={"odd!": lambda ctx: "not a predicate"})
        pattern_set = MockPatternSet.from_predicates(("a",), ("odd!", "@a"))
        with pytest.raises(InvalidHandlerResultError) as exc:
            QueryCompiler(registry).compile(pattern_set)
        assert exc.value.operator == "odd!"
        assert "str" in str(exc.value)

class TestCompiledQuery:
    def test_tables_are_per_pattern(self):
        pattern_set = MockPatternSet(
            ["a"], ["eq?", "x", "set!", "k"],
            [
                [PredicateStep.string(0), PredicateStep.capture(0), PredicateStep.string(1), PredicateStep.done()],
                [PredicateStep.string(2), PredicateStep.string(3), PredicateStep.done()],
            ]
        )
        query = compile_predicates(pattern_set, registry=create_default_registry())
        assert query.pattern_count == 2
        assert len(query.text_predicates(0)) == 1
        assert query.text_predicates(1) == ()
        assert query.property_settings(1) == (QueryProperty("k"),)
        assert query.property_settings(0) == ()

    def test_capture_index_for_name(self):
        query = compile_one(("eq?", "@a", "@b"))
        assert query.capture_index_for_name("b") == 1
        assert query.capture_index_for_name("@a") == 0
        assert query.capture_index_for_name("missing") is None

    def test_counts(self):
        query = compile_one(("eq?", "@a", "x"))
        assert query.capture_count == 2
        assert query.string_count == 2
        assert query.capture_names == ("a", "b")

    def test_compiled_query_is_immutable(self):
        query = compile_one(("eq?", "@a", "x"))
        with pytest.raises(Exception):
            query.capture_names = ()

class TestPatternControls:
    """Pattern and capture controls on a compiled query."""

    def test_analysis_delegates_to_pattern_set(self):
        query = compile_one(("eq?", "@a", "x"))
        query.pattern_set.rooted[0] = False
        query.pattern_set.non_local[0] = True
        query.pattern_set.guaranteed_steps.add(7)
        assert not query.is_pattern_rooted(0)
        assert query.is_pattern_non_local(0)
        assert query.is_pattern_guaranteed_at_step(7)
        assert not query.is_pattern_guaranteed_at_step(8)

    def test_pattern_index_checked(self):
        query = compile_one(("eq?", "@a", "x"))
        for method in (query.disable_pattern, query.is_pattern_rooted, query.is_pattern_non_local):
            with pytest.raises(IndexError):
                method(1)

    def test_disable_capture_accepts_at_prefix(self):
        query = compile_one(("eq?", "@a", "x"))
        query.disable_capture("@b")
        assert query.pattern_set.disabled_captures == {"b"}
        assert query.is_capture_disabled("@b")
        assert not query.is_capture_disabled("a")
        # Compiled predicate tables are untouched
        assert query.text_predicates(0)[0].capture_id == 0

    def test_disable_unknown_capture(self):
        query = compile_one(("eq?", "@a", "x"))
        with pytest.raises(KeyError):
            query.disable_capture("c")
        assert query.pattern_set.disabled_captures == set()
