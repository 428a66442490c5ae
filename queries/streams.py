"""Filtered match and capture streams.

A stream pulls candidate matches from a ``MatchCursor`` one at a time,
keeps the ones that satisfy their pattern's text predicates and removes
the rest from the cursor's pending storage. Streams are single use: once
exhausted they keep returning None.
"""

from typing import Any, Optional, Set, Tuple
from queries.compiled_query import CompiledQuery
from queries.evaluator import PredicateEvaluator, predicate_evaluator
from queries.matcher import MatchCursor
from queries.models import QueryMatch
from queries.types import StreamState
from utils.logger import log

class _FilteredStream:
    """State shared by match and capture streams."""

    def __init__(self, cursor: MatchCursor, query: CompiledQuery, source: bytes,
                 evaluator: Optional[PredicateEvaluator] = None):
        self.cursor = cursor
        self.query = query
        self.source = source
        self.evaluator = evaluator or predicate_evaluator
        self.state = StreamState.READY
        self.yielded = 0
        self.discarded = 0

    @property
    def exhausted(self) -> bool:
        return self.state == StreamState.EXHAUSTED

    def _discard(self, match: QueryMatch) -> None:
        """Remove a failed match from the cursor."""
        self.cursor.remove_match(match.id)
        self.discarded += 1

    def _finish(self) -> None:
        self.state = StreamState.EXHAUSTED
        log("Query stream exhausted", level="debug", context={
            "yielded": self.yielded,
            "discarded": self.discarded,
            "match_limit_exceeded": self.cursor.did_exceed_match_limit
        })

    def __iter__(self):
        return self

class MatchStream(_FilteredStream):
    """Iterates over matches that satisfy their text predicates."""

    def next(self) -> Optional[QueryMatch]:
        """Next passing match, or None once the cursor has no more candidates."""
        if self.exhausted:
            return None
        while True:
            match = self.cursor.next_match()
            if match is None:
                self._finish()
                return None
            if self.evaluator.satisfies(match, self.query, self.source):
                self.yielded += 1
                return match
            self._discard(match)

    def __next__(self) -> QueryMatch:
        match = self.next()
        if match is None:
            raise StopIteration
        return match

class CaptureStream(_FilteredStream):
    """Iterates over individual captures of matches that satisfy their predicates.

    A failing predicate removes the whole enclosing match, so none of its
    remaining captures are produced.
    """

    def __init__(self, cursor: MatchCursor, query: CompiledQuery, source: bytes,
                 evaluator: Optional[PredicateEvaluator] = None):
        super().__init__(cursor, query, source, evaluator)
        # Ids of removed matches whose last capture has not been seen yet
        self._removed: Set[int] = set()

    def next(self) -> Optional[Tuple[QueryMatch, int]]:
        """Next (match, capture position) pair, or None when exhausted."""
        if self.exhausted:
            return None
        while True:
            result = self.cursor.next_capture()
            if result is None:
                self._finish()
                return None
            match, capture_index = result
            last = capture_index == len(match.captures) - 1
            if match.id in self._removed:
                if last:
                    self._removed.discard(match.id)
                continue
            if self.evaluator.satisfies(match, self.query, self.source):
                self.yielded += 1
                return match, capture_index
            self._discard(match)
            if not last:
                self._removed.add(match.id)

    @property
    def removed_pending(self) -> int:
        """Removed matches whose remaining captures may still be skipped."""
        return len(self._removed)

    def __next__(self) -> Tuple[QueryMatch, int]:
        result = self.next()
        if result is None:
            raise StopIteration
        return result

def open_match_stream(cursor: MatchCursor, query: CompiledQuery, node: Any, source: bytes) -> MatchStream:
    """Execute ``query`` under ``node`` and stream filtered matches."""
    cursor.exec(query.pattern_set, node)
    return MatchStream(cursor, query, source)

def open_capture_stream(cursor: MatchCursor, query: CompiledQuery, node: Any, source: bytes) -> CaptureStream:
    """Execute ``query`` under ``node`` and stream filtered captures."""
    cursor.exec(query.pattern_set, node)
    return CaptureStream(cursor, query, source)
