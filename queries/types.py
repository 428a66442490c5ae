"""Type definitions for the query predicate engine.

This module defines the enums shared by the compiler, the evaluator and
the structural matcher adapters.
"""

from enum import Enum, IntEnum

class PredicateStepType(IntEnum):
    """Kind of one step in a flat predicate step array.

    Values follow tree-sitter's ``TSQueryPredicateStepType``.
    """
    DONE = 0
    CAPTURE = 1
    STRING = 2

    @property
    def label(self) -> str:
        return self.name.lower()

class CaptureQuantifier(IntEnum):
    """Multiplicity of a capture within one pattern.

    Values follow tree-sitter's ``TSQuantifier``.
    """
    ZERO = 0
    ZERO_OR_ONE = 1
    ZERO_OR_MORE = 2
    ONE = 3
    ONE_OR_MORE = 4

    @classmethod
    def from_symbol(cls, symbol: str) -> 'CaptureQuantifier':
        """Map the quantifier spelling used in query text to a quantifier.

        Args:
            symbol: ``""`` (exactly one), ``"?"``, ``"*"`` or ``"+"``

        Returns:
            CaptureQuantifier: The matching quantifier; unknown symbols map to ONE
        """
        return _QUANTIFIER_SYMBOLS.get(symbol, cls.ONE)

    @property
    def allows_many(self) -> bool:
        """Whether more than one node may bind to the capture."""
        return self in (CaptureQuantifier.ZERO_OR_MORE, CaptureQuantifier.ONE_OR_MORE)

_QUANTIFIER_SYMBOLS = {
    "": CaptureQuantifier.ONE,
    "?": CaptureQuantifier.ZERO_OR_ONE,
    "*": CaptureQuantifier.ZERO_OR_MORE,
    "+": CaptureQuantifier.ONE_OR_MORE,
}

class TextPredicateType(str, Enum):
    """Kinds of text predicates evaluated against match text."""
    EQ_CAPTURE = "eq_capture"
    EQ_STRING = "eq_string"
    MATCH_STRING = "match_string"
    ANY_STRING = "any_string"

class BindingPolicy(str, Enum):
    """How per-node outcomes of one predicate are reduced.

    REQUIRE_ALL is the reduction for ``eq?``/``match?``/``any-of?`` and
    holds for an empty binding list. REQUIRE_ANY is the reduction for the
    ``any-`` variants and fails for an empty binding list.
    """
    REQUIRE_ALL = "require_all"
    REQUIRE_ANY = "require_any"

    def reduce(self, outcomes) -> bool:
        if self is BindingPolicy.REQUIRE_ALL:
            return all(outcomes)
        return any(outcomes)

class QueryErrorKind(str, Enum):
    """Query error categories."""
    SYNTAX = "syntax"
    NODE_TYPE = "node_type"
    FIELD = "field"
    CAPTURE = "capture"
    STRUCTURE = "structure"
    LANGUAGE = "language"
    PREDICATE = "predicate"

class PredicateErrorKind(str, Enum):
    """Predicate compilation error categories."""
    ARG_COUNT_MISMATCH = "arg_count_mismatch"
    ARG_KIND_MISMATCH = "arg_kind_mismatch"
    MUST_BEGIN_WITH_LITERAL = "must_begin_with_literal"
    INVALID_REGEX = "invalid_regex"
    INVALID_ARGUMENT = "invalid_argument"
    HANDLER_MISSING = "unregistered_handler_missing"
    INVALID_HANDLER_RESULT = "invalid_handler_result"

class StreamState(str, Enum):
    """Lifecycle of a match or capture stream."""
    READY = "ready"
    EXHAUSTED = "exhausted"
