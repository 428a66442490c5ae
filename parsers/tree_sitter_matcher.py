"""Structural matching on top of py-tree-sitter.

``TreeSitterPatternSet`` compiles the structural part of a query with
``tree_sitter.Query`` (predicate forms blanked out, so the native matcher
never filters) and serves the predicate steps extracted by
``PatternSource``. ``TreeSitterMatchCursor`` runs a ``tree_sitter.QueryCursor``
and hands out raw candidates with match ids and pending storage that the
predicate streams can release.
"""

import re
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Set, Tuple, Union
from tree_sitter import Language, Query, QueryCursor, QueryError as NativeQueryError
from queries.errors import QueryError
from queries.matcher import PatternSet, MatchCursor
from queries.models import PredicateStep, QueryCapture, QueryMatch
from queries.types import CaptureQuantifier, QueryErrorKind
from parsers.language_mapping import get_language_for_name
from parsers.pattern_source import PatternSource
from utils.logger import log

_NATIVE_ERROR_KINDS = (
    ("node type", QueryErrorKind.NODE_TYPE),
    ("field", QueryErrorKind.FIELD),
    ("capture", QueryErrorKind.CAPTURE),
    ("structure", QueryErrorKind.STRUCTURE),
    ("impossible", QueryErrorKind.STRUCTURE),
    ("language", QueryErrorKind.LANGUAGE),
)
_NATIVE_LOCATION = re.compile(r"row:? (\d+),? column:? (\d+)")

def translate_native_error(error: Exception) -> QueryError:
    """Map a py-tree-sitter query error to a ``QueryError``."""
    message = str(error)
    lowered = message.lower()
    kind = QueryErrorKind.SYNTAX
    for needle, candidate in _NATIVE_ERROR_KINDS:
        if needle in lowered:
            kind = candidate
            break
    row = column = None
    location = _NATIVE_LOCATION.search(lowered)
    if location:
        row, column = int(location.group(1)), int(location.group(2))
    return QueryError(kind, message, row, column)

class TreeSitterPatternSet(PatternSet):
    """Query patterns compiled by tree-sitter, with engine-side predicates."""

    def __init__(self, language: Language, source: Union[str, bytes]):
        self.language = language
        self.pattern_source = PatternSource(source)
        try:
            self.native_query = Query(language, self.pattern_source.structural_source.decode("utf-8"))
        except NativeQueryError as e:
            raise translate_native_error(e) from e

        self._capture_names = [
            self.native_query.capture_name(i) for i in range(self.native_query.capture_count)
        ]
        self._capture_ids = {name: i for i, name in enumerate(self._capture_names)}
        self._strings: List[str] = []
        self._string_ids: Dict[str, int] = {}
        self._steps = self._build_steps()
        self._disabled_patterns: Set[int] = set()
        self._disabled_captures: Set[str] = set()

    @classmethod
    def from_source(cls, language: Union[str, Language], source: Union[str, bytes]) -> 'TreeSitterPatternSet':
        """Build from a language name (``"python"``, ``"js"`` ...) or a Language."""
        if isinstance(language, str):
            language = get_language_for_name(language)
        return cls(language, source)

    def _intern(self, value: str) -> int:
        if value not in self._string_ids:
            self._string_ids[value] = len(self._strings)
            self._strings.append(value)
        return self._string_ids[value]

    def _pattern_for_offset(self, offset: int) -> Optional[int]:
        owner = None
        for index in range(self.pattern_count):
            if self.native_query.start_byte_for_pattern(index) <= offset:
                owner = index
            else:
                break
        return owner

    def _build_steps(self) -> List[List[PredicateStep]]:
        steps: List[List[PredicateStep]] = [[] for _ in range(self.pattern_count)]
        for form in self.pattern_source.predicate_forms:
            owner = self._pattern_for_offset(form.start)
            if owner is None:
                row, column = self.pattern_source.location(form.start)
                raise QueryError(QueryErrorKind.SYNTAX, f"#{form.operator} outside of a pattern", row, column, form.start)

            pattern_steps = steps[owner]
            pattern_steps.append(PredicateStep.string(self._intern(form.operator)))
            for token in form.args:
                if not token.is_capture:
                    pattern_steps.append(PredicateStep.string(self._intern(token.value)))
                    continue
                if token.value not in self._capture_ids:
                    row, column = self.pattern_source.location(token.offset)
                    raise QueryError(QueryErrorKind.CAPTURE, token.value, row, column, token.offset)
                pattern_steps.append(PredicateStep.capture(self._capture_ids[token.value]))
            pattern_steps.append(PredicateStep.done())
        return steps

    @property
    def pattern_count(self) -> int:
        return self.native_query.pattern_count

    @property
    def capture_count(self) -> int:
        return len(self._capture_names)

    @property
    def string_count(self) -> int:
        return len(self._strings)

    @property
    def source(self) -> bytes:
        return self.pattern_source.source

    def capture_name_for_id(self, capture_id: int) -> str:
        return self._capture_names[capture_id]

    def string_value_for_id(self, string_id: int) -> str:
        return self._strings[string_id]

    def capture_quantifier_for_id(self, pattern_index: int, capture_id: int) -> CaptureQuantifier:
        try:
            symbol = self.native_query.capture_quantifier(pattern_index, capture_id)
        except SystemError:
            # py-tree-sitter has no symbol for a capture absent from the pattern
            return CaptureQuantifier.ZERO
        return CaptureQuantifier.from_symbol(symbol)

    def disable_pattern(self, pattern_index: int) -> None:
        self.native_query.disable_pattern(pattern_index)
        self._disabled_patterns.add(pattern_index)

    def disable_capture(self, name: str) -> None:
        self.native_query.disable_capture(name)
        self._disabled_captures.add(name)

    def is_pattern_disabled(self, pattern_index: int) -> bool:
        return pattern_index in self._disabled_patterns

    def is_capture_disabled(self, name: str) -> bool:
        return name in self._disabled_captures

    def is_pattern_rooted(self, pattern_index: int) -> bool:
        return self.native_query.is_pattern_rooted(pattern_index)

    def is_pattern_non_local(self, pattern_index: int) -> bool:
        return self.native_query.is_pattern_non_local(pattern_index)

    def is_pattern_guaranteed_at_step(self, byte_offset: int) -> bool:
        return self.native_query.is_pattern_guaranteed_at_step(byte_offset)

    def predicates_for_pattern(self, pattern_index: int) -> List[PredicateStep]:
        return list(self._steps[pattern_index])

    def start_byte_for_pattern(self, pattern_index: int) -> int:
        return self.native_query.start_byte_for_pattern(pattern_index)

    def end_byte_for_pattern(self, pattern_index: int) -> int:
        return self.native_query.end_byte_for_pattern(pattern_index)

class TreeSitterMatchCursor(MatchCursor):
    """Candidate matches from a ``tree_sitter.QueryCursor``.

    ``exec`` drains ``QueryCursor.matches`` eagerly. The native cursor has
    already finished (and applied ``match_limit``) before any predicate is
    evaluated, so ``remove_match`` only drops the match from this object's
    pending storage and its queued captures; it frees no native memory and
    cannot make room under the match limit.

    Args:
        match_limit: Maximum number of in-progress matches kept by tree-sitter
        max_start_depth: Maximum depth at which a pattern's root may start
        byte_range: Restrict matching to (start_byte, end_byte)
        point_range: Restrict matching to ((row, column), (row, column))
    """

    def __init__(
        self,
        match_limit: Optional[int] = None,
        max_start_depth: Optional[int] = None,
        byte_range: Optional[Tuple[int, int]] = None,
        point_range: Optional[Tuple[Tuple[int, int], Tuple[int, int]]] = None
    ):
        self.match_limit = match_limit
        self.max_start_depth = max_start_depth
        self.byte_range = byte_range
        self.point_range = point_range
        self._native: Optional[QueryCursor] = None
        self._pending: Dict[int, QueryMatch] = {}
        self._match_queue: Deque[int] = deque()
        self._capture_queue: Deque[Tuple[int, int]] = deque()
        self._captures_left: Dict[int, int] = {}

    def _native_cursor(self, query: Query) -> QueryCursor:
        if self.match_limit is not None:
            cursor = QueryCursor(query, match_limit=self.match_limit)
        else:
            cursor = QueryCursor(query)
        if self.max_start_depth is not None:
            cursor.set_max_start_depth(self.max_start_depth)
        if self.byte_range is not None:
            cursor.set_byte_range(*self.byte_range)
        if self.point_range is not None:
            cursor.set_point_range(*self.point_range)
        return cursor

    def exec(self, pattern_set: PatternSet, node: Any) -> None:
        if not isinstance(pattern_set, TreeSitterPatternSet):
            raise TypeError("TreeSitterMatchCursor requires a TreeSitterPatternSet")

        self._native = self._native_cursor(pattern_set.native_query)
        self._pending.clear()
        self._match_queue.clear()
        self._capture_queue.clear()
        self._captures_left.clear()

        capture_ids = {
            pattern_set.capture_name_for_id(i): i for i in range(pattern_set.capture_count)
        }
        ordered = []
        for match_id, (pattern_index, captured) in enumerate(self._native.matches(node)):
            captures = [
                QueryCapture(node=n, index=capture_ids[name])
                for name, nodes in captured.items()
                for n in (nodes if isinstance(nodes, list) else [nodes])
            ]
            captures.sort(key=lambda c: (c.node.start_byte, -c.node.end_byte, c.index))
            match = QueryMatch(id=match_id, pattern_index=pattern_index, captures=captures)
            self._pending[match_id] = match
            self._match_queue.append(match_id)
            self._captures_left[match_id] = len(captures)
            for position, capture in enumerate(captures):
                ordered.append((capture.node.start_byte, match_id, position))

        ordered.sort()
        self._capture_queue.extend((match_id, position) for _, match_id, position in ordered)
        log("Query cursor executed", level="debug", context={
            "candidates": len(self._pending),
            "match_limit_exceeded": self.did_exceed_match_limit
        })

    def next_match(self) -> Optional[QueryMatch]:
        while self._match_queue:
            match = self._pending.pop(self._match_queue.popleft(), None)
            if match is not None:
                return match
        return None

    def next_capture(self) -> Optional[Tuple[QueryMatch, int]]:
        while self._capture_queue:
            match_id, position = self._capture_queue.popleft()
            match = self._pending.get(match_id)
            if match is None:
                continue
            self._captures_left[match_id] -= 1
            if self._captures_left[match_id] == 0:
                # Finished matches leave pending storage
                del self._pending[match_id]
            return match, position
        return None

    def remove_match(self, match_id: int) -> None:
        self._pending.pop(match_id, None)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def did_exceed_match_limit(self) -> bool:
        return bool(self._native is not None and self._native.did_exceed_match_limit)
