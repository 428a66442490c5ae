"""Tree-sitter query predicate engine.

Compiles the predicates of a query (``#eq?``, ``#match?``, ``#any-of?``,
``#set!``, ``#is?`` and caller-defined operators) and filters structural
matches by them. Entry points for tree-sitter live in ``queries.api``.
"""

from queries.types import (
    PredicateStepType, CaptureQuantifier, TextPredicateType, BindingPolicy,
    QueryErrorKind, PredicateErrorKind, StreamState
)
from queries.models import (
    Point, PredicateStep, TextPredicate, QueryProperty, PropertyPredicate,
    PredicateArg, GeneralPredicate, QueryCapture, QueryMatch
)
from queries.errors import (
    QueryError, PredicateError, ArgCountMismatchError, ArgKindMismatchError,
    MustBeginWithLiteralError, InvalidRegexError, InvalidArgumentError,
    HandlerMissingError, InvalidHandlerResultError
)
from queries.matcher import PatternSet, MatchCursor
from queries.compiled_query import CompiledQuery
from queries.registry import (
    Arity, PredicateContext, PredicateHandler, PredicateRegistry,
    create_default_registry, predicate_registry, register_predicate
)
from queries.compiler import QueryCompiler, compile_predicates, split_predicate_steps
from queries.evaluator import PredicateEvaluator, satisfies_text_predicates
from queries.streams import MatchStream, CaptureStream

__all__ = [
    'PredicateStepType', 'CaptureQuantifier', 'TextPredicateType', 'BindingPolicy',
    'QueryErrorKind', 'PredicateErrorKind', 'StreamState',
    'Point', 'PredicateStep', 'TextPredicate', 'QueryProperty', 'PropertyPredicate',
    'PredicateArg', 'GeneralPredicate', 'QueryCapture', 'QueryMatch',
    'QueryError', 'PredicateError', 'ArgCountMismatchError', 'ArgKindMismatchError',
    'MustBeginWithLiteralError', 'InvalidRegexError', 'InvalidArgumentError',
    'HandlerMissingError', 'InvalidHandlerResultError',
    'PatternSet', 'MatchCursor', 'CompiledQuery',
    'Arity', 'PredicateContext', 'PredicateHandler', 'PredicateRegistry',
    'create_default_registry', 'predicate_registry', 'register_predicate',
    'QueryCompiler', 'compile_predicates', 'split_predicate_steps',
    'PredicateEvaluator', 'satisfies_text_predicates',
    'MatchStream', 'CaptureStream'
]
