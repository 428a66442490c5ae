"""Predicate compilation.

Turns the flat predicate step arrays of a ``PatternSet`` into a validated
``CompiledQuery``. Compilation is all-or-nothing: the first invalid
predicate raises and no query is produced.
"""

from typing import List, Optional, Sequence, Tuple
from queries.compiled_query import CompiledQuery
from queries.errors import MustBeginWithLiteralError, HandlerMissingError, InvalidHandlerResultError
from queries.matcher import PatternSet
from queries.models import (
    PredicateStep, TextPredicate, PropertyPredicate, QueryProperty, GeneralPredicate
)
from queries.registry import PredicateRegistry, PredicateContext, predicate_registry
from queries.types import PredicateStepType
from utils.logger import log

def split_predicate_steps(steps: Sequence[PredicateStep]) -> List[List[PredicateStep]]:
    """Split a DONE-terminated step array into one list per predicate.

    Empty predicates (two adjacent DONE steps) are dropped. A trailing
    predicate without a DONE sentinel is kept.
    """
    predicates: List[List[PredicateStep]] = []
    current: List[PredicateStep] = []
    for step in steps:
        if step.type == PredicateStepType.DONE:
            if current:
                predicates.append(current)
            current = []
        else:
            current.append(step)
    if current:
        predicates.append(current)
    return predicates

def position_for_offset(source: bytes, offset: int) -> Tuple[int, int]:
    """Zero-based (row, column) of a byte offset in ``source``."""
    offset = max(0, min(offset, len(source)))
    row = source.count(b"\n", 0, offset)
    line_start = source.rfind(b"\n", 0, offset) + 1
    return row, offset - line_start

class QueryCompiler:
    """Compiles predicate metadata using a predicate registry."""

    def __init__(self, registry: Optional[PredicateRegistry] = None):
        self.registry = registry if registry is not None else predicate_registry

    def compile(self, pattern_set: PatternSet, source: Optional[bytes] = None) -> CompiledQuery:
        """Compile every pattern's predicates.

        Args:
            pattern_set: Structural patterns with raw predicate steps
            source: Query text used to locate errors; defaults to ``pattern_set.source``

        Returns:
            CompiledQuery: The immutable compiled query

        Raises:
            PredicateError: If any predicate is invalid
        """
        if source is None:
            source = pattern_set.source

        capture_names = tuple(
            pattern_set.capture_name_for_id(i) for i in range(pattern_set.capture_count)
        )
        quantifiers = tuple(
            tuple(pattern_set.capture_quantifier_for_id(p, c) for c in range(pattern_set.capture_count))
            for p in range(pattern_set.pattern_count)
        )
        literals = tuple(
            pattern_set.string_value_for_id(i) for i in range(pattern_set.string_count)
        )

        text_table = []
        property_table = []
        setting_table = []
        general_table = []

        for pattern_index in range(pattern_set.pattern_count):
            row, column = position_for_offset(source, pattern_set.start_byte_for_pattern(pattern_index))

            text_predicates = []
            property_predicates = []
            settings = []
            general_predicates = []

            for steps in split_predicate_steps(pattern_set.predicates_for_pattern(pattern_index)):
                compiled = self._compile_predicate(steps, row, column, capture_names, literals)
                if isinstance(compiled, TextPredicate):
                    text_predicates.append(compiled)
                elif isinstance(compiled, PropertyPredicate):
                    property_predicates.append(compiled)
                elif isinstance(compiled, QueryProperty):
                    settings.append(compiled)
                elif isinstance(compiled, GeneralPredicate):
                    general_predicates.append(compiled)
                else:
                    raise InvalidHandlerResultError(
                        literals[steps[0].value_id],
                        f"handler returned {type(compiled).__name__}",
                        row,
                        column
                    )

            text_table.append(tuple(text_predicates))
            property_table.append(tuple(property_predicates))
            setting_table.append(tuple(settings))
            general_table.append(tuple(general_predicates))

        query = CompiledQuery(
            pattern_set=pattern_set,
            capture_names=capture_names,
            capture_quantifier_table=quantifiers,
            text_predicate_table=tuple(text_table),
            property_predicate_table=tuple(property_table),
            property_setting_table=tuple(setting_table),
            general_predicate_table=tuple(general_table)
        )
        log("Compiled query predicates", level="debug", context={
            "patterns": query.pattern_count,
            "captures": query.capture_count,
            "text_predicates": sum(len(t) for t in text_table)
        })
        return query

    def _compile_predicate(
        self,
        steps: List[PredicateStep],
        row: int,
        column: int,
        capture_names: Tuple[str, ...],
        literals: Tuple[str, ...]
    ):
        if steps[0].type != PredicateStepType.STRING:
            raise MustBeginWithLiteralError("", f"@{capture_names[steps[0].value_id]}", row, column)

        operator = literals[steps[0].value_id]
        handler = self.registry.lookup(operator)
        if handler is None:
            raise HandlerMissingError(operator, "", row, column)

        ctx = PredicateContext(
            steps=tuple(steps),
            operator=operator,
            row=row,
            column=column,
            literal_at=lambda i: literals[steps[i].value_id],
            capture_label_at=lambda i: "@" + capture_names[steps[i].value_id]
        )
        return handler(ctx)

def compile_predicates(pattern_set: PatternSet, source: Optional[bytes] = None,
                       registry: Optional[PredicateRegistry] = None) -> CompiledQuery:
    """Compile with a one-off ``QueryCompiler``."""
    return QueryCompiler(registry).compile(pattern_set, source)
