"""Predicate handler registry.

Each predicate operator (``eq?``, ``match?``, ``set!`` ...) maps to a
``PredicateHandler`` that validates the operator's arguments and turns
them into one of the compiled predicate variants. Operators without a
handler fall through to the catch-all, which keeps them verbatim as
``GeneralPredicate`` values for the caller to interpret.

Custom operators can be added with ``register_predicate``::

    class LengthHandler(PredicateHandler):
        arity = Arity.exactly(2)

        def compile(self, ctx):
            self.check_arg_kind(ctx, 1, capture=True)
            return GeneralPredicate(ctx.operator, ...)

    register_predicate("len?", LengthHandler())
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union
from queries.models import (
    PredicateStep, TextPredicate, QueryProperty, PropertyPredicate,
    PredicateArg, GeneralPredicate, CompiledPredicate
)
from queries.types import PredicateStepType, TextPredicateType, BindingPolicy
from queries.errors import (
    ArgCountMismatchError, ArgKindMismatchError, InvalidRegexError, InvalidArgumentError
)

CATCHALL = "default"

@dataclass(frozen=True)
class Arity:
    """Accepted argument count of an operator (operator step excluded)."""
    minimum: int
    maximum: Optional[int] = None

    @classmethod
    def exactly(cls, count: int) -> 'Arity':
        return cls(count, count)

    @classmethod
    def between(cls, minimum: int, maximum: int) -> 'Arity':
        return cls(minimum, maximum)

    @classmethod
    def at_least(cls, minimum: int) -> 'Arity':
        return cls(minimum, None)

    def accepts(self, count: int) -> bool:
        if count < self.minimum:
            return False
        return self.maximum is None or count <= self.maximum

    def describe(self) -> str:
        if self.maximum is None:
            return f"at least {self.minimum}"
        if self.minimum == self.maximum:
            return str(self.minimum)
        return f"[{self.minimum}..{self.maximum}]"

@dataclass(frozen=True)
class PredicateContext:
    """Raw predicate handed to a handler.

    Attributes:
        steps: Predicate steps; ``steps[0]`` is the operator
        operator: Operator name, e.g. ``eq?``
        row: Row of the enclosing pattern in the query text
        column: Column of the enclosing pattern in the query text
        literal_at: Resolves the string value of the step at an index
        capture_label_at: Resolves ``@name`` of the capture step at an index
    """
    steps: Sequence[PredicateStep]
    operator: str
    row: int
    column: int
    literal_at: Callable[[int], str]
    capture_label_at: Callable[[int], str]

    @property
    def arg_count(self) -> int:
        return len(self.steps) - 1

    def is_capture(self, index: int) -> bool:
        return self.steps[index].type == PredicateStepType.CAPTURE

    def describe_step(self, index: int) -> str:
        if self.is_capture(index):
            return self.capture_label_at(index)
        return repr(self.literal_at(index))

def is_negated(operator: str) -> bool:
    return operator.startswith("not-") or operator.startswith("any-not-")

def binding_policy(operator: str) -> BindingPolicy:
    if operator.startswith("any-"):
        return BindingPolicy.REQUIRE_ANY
    return BindingPolicy.REQUIRE_ALL

class PredicateHandler(ABC):
    """Validates and compiles one predicate operator."""

    arity: Optional[Arity] = None

    @abstractmethod
    def compile(self, ctx: PredicateContext) -> CompiledPredicate:
        """Compile a raw predicate, raising ``PredicateError`` when invalid."""

    def __call__(self, ctx: PredicateContext) -> CompiledPredicate:
        if self.arity is not None:
            self.check_arg_count(ctx, self.arity)
        return self.compile(ctx)

    @staticmethod
    def check_arg_count(ctx: PredicateContext, arity: Arity) -> None:
        if not arity.accepts(ctx.arg_count):
            raise ArgCountMismatchError(ctx.operator, arity.describe(), ctx.arg_count, ctx.row, ctx.column)

    @staticmethod
    def check_arg_kind(ctx: PredicateContext, index: int, capture: bool) -> None:
        """Require argument ``index`` to be (or not be) a capture."""
        if ctx.is_capture(index) == capture:
            return
        expected = "be a capture" if capture else "NOT be a capture"
        actual = "capture" if ctx.is_capture(index) else "string"
        raise ArgKindMismatchError(
            ctx.operator,
            f"arg #{index} must {expected}, got {actual} {ctx.describe_step(index)}",
            ctx.row,
            ctx.column
        )

class EqPredicateHandler(PredicateHandler):
    """``eq?``, ``not-eq?``, ``any-eq?``, ``any-not-eq?``"""

    arity = Arity.exactly(2)

    def compile(self, ctx: PredicateContext) -> TextPredicate:
        self.check_arg_kind(ctx, 1, capture=True)
        capture_id = ctx.steps[1].value_id
        if ctx.is_capture(2):
            return TextPredicate(
                TextPredicateType.EQ_CAPTURE, capture_id, ctx.steps[2].value_id,
                positive=not is_negated(ctx.operator),
                policy=binding_policy(ctx.operator)
            )
        return TextPredicate(
            TextPredicateType.EQ_STRING, capture_id, ctx.literal_at(2),
            positive=not is_negated(ctx.operator),
            policy=binding_policy(ctx.operator)
        )

class MatchPredicateHandler(PredicateHandler):
    """``match?``, ``not-match?``, ``any-match?``, ``any-not-match?``

    The regex is compiled here so evaluation never compiles patterns.
    """

    arity = Arity.exactly(2)

    def compile(self, ctx: PredicateContext) -> TextPredicate:
        self.check_arg_kind(ctx, 1, capture=True)
        self.check_arg_kind(ctx, 2, capture=False)
        source = ctx.literal_at(2)
        try:
            regex = re.compile(source)
        except re.error as e:
            raise InvalidRegexError(ctx.operator, source, e, ctx.row, ctx.column) from e
        return TextPredicate(
            TextPredicateType.MATCH_STRING, ctx.steps[1].value_id, regex,
            positive=not is_negated(ctx.operator),
            policy=binding_policy(ctx.operator)
        )

class AnyOfPredicateHandler(PredicateHandler):
    """``any-of?``, ``not-any-of?``"""

    arity = Arity.at_least(2)

    def compile(self, ctx: PredicateContext) -> TextPredicate:
        self.check_arg_kind(ctx, 1, capture=True)
        values = []
        for index in range(2, len(ctx.steps)):
            if ctx.is_capture(index):
                raise ArgKindMismatchError(
                    ctx.operator,
                    f"values must be literals, got capture {ctx.capture_label_at(index)}",
                    ctx.row,
                    ctx.column
                )
            values.append(ctx.literal_at(index))
        return TextPredicate(
            TextPredicateType.ANY_STRING, ctx.steps[1].value_id, tuple(values),
            positive=not is_negated(ctx.operator),
            policy=BindingPolicy.REQUIRE_ALL
        )

class SetPredicateHandler(PredicateHandler):
    """``set!``: attaches a property to the pattern."""

    arity = Arity.between(1, 3)

    def compile(self, ctx: PredicateContext) -> QueryProperty:
        return parse_property(ctx)

class IsPredicateHandler(SetPredicateHandler):
    """``is?``, ``is-not?``: property assertions left to the caller."""

    def compile(self, ctx: PredicateContext) -> PropertyPredicate:
        return PropertyPredicate(parse_property(ctx), positive=not ctx.operator.endswith("-not?"))

class GeneralPredicateHandler(PredicateHandler):
    """Catch-all: keeps the predicate verbatim."""

    def compile(self, ctx: PredicateContext) -> GeneralPredicate:
        args = []
        for index in range(1, len(ctx.steps)):
            if ctx.is_capture(index):
                args.append(PredicateArg(capture_id=ctx.steps[index].value_id))
            else:
                args.append(PredicateArg(string=ctx.literal_at(index)))
        return GeneralPredicate(ctx.operator, tuple(args))

class FunctionPredicateHandler(PredicateHandler):
    """Adapts a plain ``fn(ctx)`` callable to the handler interface."""

    def __init__(self, fn: Callable[[PredicateContext], CompiledPredicate], arity: Optional[Arity] = None):
        self._fn = fn
        self.arity = arity

    def compile(self, ctx: PredicateContext) -> CompiledPredicate:
        return self._fn(ctx)

def parse_property(ctx: PredicateContext) -> QueryProperty:
    """Read ``[@capture] key [value]`` arguments into a QueryProperty."""
    capture_id = None
    key = None
    value = None

    for index in range(1, len(ctx.steps)):
        if ctx.is_capture(index):
            if capture_id is not None:
                raise InvalidArgumentError(
                    ctx.operator, f"unexpected capture #2 name {ctx.capture_label_at(index)}",
                    ctx.row, ctx.column
                )
            capture_id = ctx.steps[index].value_id
        elif key is None:
            key = ctx.literal_at(index)
        elif value is None:
            value = ctx.literal_at(index)
        else:
            raise InvalidArgumentError(
                ctx.operator, f"unexpected argument #3 {ctx.literal_at(index)!r}",
                ctx.row, ctx.column
            )

    if key is None:
        raise InvalidArgumentError(ctx.operator, "missing key argument", ctx.row, ctx.column)

    return QueryProperty(key, value, capture_id)

HandlerLike = Union[PredicateHandler, Callable[[PredicateContext], CompiledPredicate]]

class PredicateRegistry:
    """Maps operator names to predicate handlers.

    Attributes:
        catchall: Handler for operators without an entry, or None to reject them
    """

    def __init__(self, handlers: Optional[Dict[str, HandlerLike]] = None, catchall: Optional[HandlerLike] = None):
        self._handlers: Dict[str, PredicateHandler] = {}
        self.catchall = _as_handler(catchall) if catchall is not None else None
        for operator, handler in (handlers or {}).items():
            self.register(operator, handler)

    def register(self, operator: str, handler: HandlerLike) -> None:
        """Add or replace the handler for ``operator``."""
        operator = operator.lstrip("#")
        if operator == CATCHALL:
            self.catchall = _as_handler(handler)
            return
        self._handlers[operator] = _as_handler(handler)

    def unregister(self, operator: str) -> None:
        self._handlers.pop(operator.lstrip("#"), None)

    def lookup(self, operator: str) -> Optional[PredicateHandler]:
        """Handler for ``operator``, falling back to the catch-all."""
        return self._handlers.get(operator, self.catchall)

    def __contains__(self, operator: str) -> bool:
        return operator in self._handlers

    @property
    def operators(self) -> List[str]:
        return sorted(self._handlers)

    def copy(self) -> 'PredicateRegistry':
        clone = PredicateRegistry(catchall=self.catchall)
        clone._handlers = dict(self._handlers)
        return clone

def _as_handler(handler: HandlerLike) -> PredicateHandler:
    if isinstance(handler, PredicateHandler):
        return handler
    if callable(handler):
        return FunctionPredicateHandler(handler)
    raise TypeError(f"predicate handler must be callable, got {type(handler).__name__}")

def create_default_registry(allow_unknown: bool = True) -> PredicateRegistry:
    """Registry with the built-in operators.

    Args:
        allow_unknown: Keep unknown operators as GeneralPredicates instead of rejecting them

    Returns:
        PredicateRegistry: A new registry
    """
    eq = EqPredicateHandler()
    match = MatchPredicateHandler()
    any_of = AnyOfPredicateHandler()
    is_ = IsPredicateHandler()
    return PredicateRegistry(
        handlers={
            "eq?": eq,
            "not-eq?": eq,
            "any-eq?": eq,
            "any-not-eq?": eq,
            "match?": match,
            "not-match?": match,
            "any-match?": match,
            "any-not-match?": match,
            "any-of?": any_of,
            "not-any-of?": any_of,
            "set!": SetPredicateHandler(),
            "is?": is_,
            "is-not?": is_,
        },
        catchall=GeneralPredicateHandler() if allow_unknown else None
    )

# Global instance
predicate_registry = create_default_registry()

def register_predicate(operator: str, handler: HandlerLike) -> None:
    """Register a handler on the process-wide registry."""
    predicate_registry.register(operator, handler)
