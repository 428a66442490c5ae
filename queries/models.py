"""Data models for the query predicate engine.

This module defines predicate steps, the compiled predicate variants, and
the match/capture values handed to callers.
"""

import re
from typing import Any, List, Optional, Tuple, Union, Protocol
from dataclasses import dataclass, field
from queries.types import PredicateStepType, TextPredicateType, BindingPolicy

class NodeRef(Protocol):
    """Anything that exposes a byte range, e.g. a tree-sitter ``Node``."""
    start_byte: int
    end_byte: int

@dataclass(frozen=True)
class Point:
    """Zero-based row/column position."""
    row: int
    column: int

@dataclass(frozen=True)
class PredicateStep:
    """One step of a flat predicate step array."""
    type: PredicateStepType
    value_id: int = 0

    @classmethod
    def done(cls) -> 'PredicateStep':
        return cls(PredicateStepType.DONE, 0)

    @classmethod
    def capture(cls, capture_id: int) -> 'PredicateStep':
        return cls(PredicateStepType.CAPTURE, capture_id)

    @classmethod
    def string(cls, string_id: int) -> 'PredicateStep':
        return cls(PredicateStepType.STRING, string_id)

    @property
    def is_capture(self) -> bool:
        return self.type == PredicateStepType.CAPTURE

    @property
    def is_done(self) -> bool:
        return self.type == PredicateStepType.DONE

# Value compared against the primary capture of a text predicate
TextPredicateValue = Union[int, str, re.Pattern, Tuple[str, ...]]

@dataclass(frozen=True)
class TextPredicate:
    """Compiled text-comparing predicate.

    Attributes:
        type: What ``value`` holds and how it is compared
        capture_id: Capture whose bound nodes are tested
        value: Capture id, literal, compiled regex or tuple of literals
        positive: False for the ``not-`` variants
        policy: Reduction over the nodes bound to ``capture_id``
    """
    type: TextPredicateType
    capture_id: int
    value: TextPredicateValue
    positive: bool = True
    policy: BindingPolicy = BindingPolicy.REQUIRE_ALL

    @property
    def match_all_bindings(self) -> bool:
        return self.policy is BindingPolicy.REQUIRE_ALL

@dataclass(frozen=True)
class QueryProperty:
    """Key/value pair attached to a pattern, optionally scoped to a capture."""
    key: str
    value: Optional[str] = None
    capture_id: Optional[int] = None

@dataclass(frozen=True)
class PropertyPredicate:
    """Property assertion from ``is?`` / ``is-not?``; interpreted by the caller."""
    property: QueryProperty
    positive: bool = True

@dataclass(frozen=True)
class PredicateArg:
    """One argument of a general predicate: a capture id or a literal."""
    capture_id: Optional[int] = None
    string: Optional[str] = None

    @property
    def is_capture(self) -> bool:
        return self.capture_id is not None

@dataclass(frozen=True)
class GeneralPredicate:
    """Predicate whose operator the engine does not interpret."""
    operator: str
    args: Tuple[PredicateArg, ...] = ()

# Everything a predicate handler may produce
CompiledPredicate = Union[TextPredicate, PropertyPredicate, QueryProperty, GeneralPredicate]

@dataclass(frozen=True)
class QueryCapture:
    """A node bound to a capture index. The node is borrowed from its tree."""
    node: Any
    index: int

@dataclass
class QueryMatch:
    """One structural match of a pattern.

    Attributes:
        id: Identifier used by the matcher to track the match
        pattern_index: Index of the pattern that matched
        captures: Captures in the order the matcher found them
    """
    id: int
    pattern_index: int
    captures: List[QueryCapture] = field(default_factory=list)

    def nodes_for_capture_index(self, capture_index: int) -> List[Any]:
        """Nodes bound to ``capture_index``, in capture order."""
        return [c.node for c in self.captures if c.index == capture_index]
