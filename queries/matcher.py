"""Interfaces of the structural matcher collaborator.

The predicate engine never matches tree shapes itself. It reads predicate
metadata from a ``PatternSet`` at compile time and pulls candidate
matches from a ``MatchCursor`` at run time. ``parsers.tree_sitter_matcher``
implements both on top of py-tree-sitter; tests use in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple
from queries.models import PredicateStep, QueryMatch
from queries.types import CaptureQuantifier

class PatternSet(ABC):
    """Compiled structural patterns plus their raw predicate metadata."""

    @property
    @abstractmethod
    def pattern_count(self) -> int:
        """Number of patterns."""

    @property
    @abstractmethod
    def capture_count(self) -> int:
        """Number of distinct capture names."""

    @property
    @abstractmethod
    def string_count(self) -> int:
        """Number of distinct string literals used by predicates."""

    @abstractmethod
    def capture_name_for_id(self, capture_id: int) -> str:
        """Name of a capture, without the leading ``@``."""

    @abstractmethod
    def string_value_for_id(self, string_id: int) -> str:
        """Value of a string literal."""

    @abstractmethod
    def capture_quantifier_for_id(self, pattern_index: int, capture_id: int) -> CaptureQuantifier:
        """Quantifier of a capture within one pattern."""

    @abstractmethod
    def predicates_for_pattern(self, pattern_index: int) -> List[PredicateStep]:
        """Flat predicate step array of a pattern, ``DONE``-separated."""

    @abstractmethod
    def start_byte_for_pattern(self, pattern_index: int) -> int:
        """Byte offset where the pattern starts in the query text."""

    @abstractmethod
    def end_byte_for_pattern(self, pattern_index: int) -> int:
        """Byte offset where the pattern ends in the query text."""

    @abstractmethod
    def disable_pattern(self, pattern_index: int) -> None:
        """Stop a pattern from producing matches. Cannot be undone."""

    @abstractmethod
    def disable_capture(self, name: str) -> None:
        """Stop a capture from being recorded in matches. Cannot be undone.

        Capture ids and the capture name table are unchanged.
        """

    @abstractmethod
    def is_pattern_disabled(self, pattern_index: int) -> bool:
        """Whether ``disable_pattern`` was called for the pattern."""

    @abstractmethod
    def is_capture_disabled(self, name: str) -> bool:
        """Whether ``disable_capture`` was called for the capture."""

    @abstractmethod
    def is_pattern_rooted(self, pattern_index: int) -> bool:
        """Whether the pattern has a single root node."""

    @abstractmethod
    def is_pattern_non_local(self, pattern_index: int) -> bool:
        """Whether the pattern can match sibling sequences spanning parents."""

    @abstractmethod
    def is_pattern_guaranteed_at_step(self, byte_offset: int) -> bool:
        """Whether reaching the step at ``byte_offset`` guarantees a match."""

    @property
    def source(self) -> bytes:
        """Query text the patterns were compiled from."""
        return b""

class MatchCursor(ABC):
    """Stateful producer of candidate matches for one execution.

    A cursor keeps pending (not yet finished) matches in bounded storage;
    ``remove_match`` releases a match and drops its outstanding captures.
    Once the cursor runs out of candidates (exhausted, timed out, or
    restricted by range/depth) both ``next_*`` methods return None.
    """

    @abstractmethod
    def exec(self, pattern_set: PatternSet, node: Any) -> None:
        """Start matching ``pattern_set`` under ``node``."""

    @abstractmethod
    def next_match(self) -> Optional[QueryMatch]:
        """Next finished match, or None when there are no more."""

    @abstractmethod
    def next_capture(self) -> Optional[Tuple[QueryMatch, int]]:
        """Next capture as (enclosing match, position in its captures), or None."""

    @abstractmethod
    def remove_match(self, match_id: int) -> None:
        """Release a match from pending storage."""

    @property
    def did_exceed_match_limit(self) -> bool:
        """Whether pending matches were dropped because of the match limit."""
        return False
