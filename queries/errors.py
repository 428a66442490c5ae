"""Query compilation errors.

Every error raised while turning query text into a ``CompiledQuery`` is a
``QueryError``. Errors reported by the structural matcher keep the kind
the matcher gave them; errors found while compiling predicates are
``PredicateError`` subclasses carrying the operator name and the
location of the offending pattern.
"""

from typing import Optional
from queries.types import QueryErrorKind, PredicateErrorKind
from utils.error_handling import ProcessingError, register_error_category

class QueryError(ProcessingError):
    """A query failed to compile.

    Attributes:
        kind: Error category
        message: Detail text (a name, a source line excerpt, or a predicate description)
        row: Zero-based row in the query text
        column: Zero-based column in the query text
        offset: Byte offset in the query text, when known
    """

    def __init__(
        self,
        kind: QueryErrorKind,
        message: str,
        row: Optional[int] = None,
        column: Optional[int] = None,
        offset: Optional[int] = None
    ):
        self.kind = kind
        self.message = message
        self.row = row
        self.column = column
        self.offset = offset
        super().__init__(str(self))

    def _prefix(self) -> str:
        return {
            QueryErrorKind.SYNTAX: "invalid syntax",
            QueryErrorKind.NODE_TYPE: "invalid node type",
            QueryErrorKind.FIELD: "invalid field",
            QueryErrorKind.CAPTURE: "invalid capture",
            QueryErrorKind.STRUCTURE: "impossible pattern",
            QueryErrorKind.LANGUAGE: "incompatible language version",
            QueryErrorKind.PREDICATE: "predicate error",
        }[self.kind]

    def _location(self) -> str:
        if self.row is None:
            return ""
        return f" at {self.row + 1}:{(self.column or 0) + 1}"

    def __str__(self) -> str:
        detail = f" {self.message}" if self.message else ""
        return f"{self._prefix()}{detail}{self._location()}"

class PredicateError(QueryError):
    """A predicate inside a pattern is malformed."""

    predicate_kind = PredicateErrorKind.INVALID_ARGUMENT
    description = "invalid argument"

    def __init__(self, operator: str, message: str, row: int = 0, column: int = 0):
        self.operator = operator
        super().__init__(QueryErrorKind.PREDICATE, message, row, column)

    def __str__(self) -> str:
        detail = f" for #{self.operator}" if self.operator else ""
        if self.message:
            detail += f" ({self.message})"
        return f"predicate error: {self.description}{detail}{self._location()}"

class ArgCountMismatchError(PredicateError):
    """Predicate called with the wrong number of arguments."""

    predicate_kind = PredicateErrorKind.ARG_COUNT_MISMATCH
    description = "wrong arguments #"

    def __init__(self, operator: str, expected: str, actual: int, row: int = 0, column: int = 0):
        self.expected = expected
        self.actual = actual
        super().__init__(operator, f"expected {expected}, got {actual}", row, column)

class ArgKindMismatchError(PredicateError):
    """Predicate argument is a capture where a literal is required, or the reverse."""

    predicate_kind = PredicateErrorKind.ARG_KIND_MISMATCH
    description = "invalid type"

class MustBeginWithLiteralError(PredicateError):
    """Predicate does not start with an operator name."""

    predicate_kind = PredicateErrorKind.MUST_BEGIN_WITH_LITERAL
    description = "must begin with a literal value"

    def __str__(self) -> str:
        return f"predicate error: {self.description}, got {self.message}{self._location()}"

class InvalidRegexError(PredicateError):
    """Regex literal failed to compile."""

    predicate_kind = PredicateErrorKind.INVALID_REGEX
    description = "invalid regex"

    def __init__(self, operator: str, pattern: str, cause: Exception, row: int = 0, column: int = 0):
        self.pattern = pattern
        self.cause = cause
        super().__init__(operator, f"{pattern!r}: {cause}", row, column)

class InvalidArgumentError(PredicateError):
    """Predicate arguments are structurally invalid (missing key, repeated capture)."""

class HandlerMissingError(PredicateError):
    """No handler registered for the operator and no catch-all available."""

    predicate_kind = PredicateErrorKind.HANDLER_MISSING
    description = "none registered"

class InvalidHandlerResultError(PredicateError):
    """A handler returned something that is not a compiled predicate."""

    predicate_kind = PredicateErrorKind.INVALID_HANDLER_RESULT
    description = "invalid return type"

register_error_category(QueryError, "query")
