"""Immutable result of compiling a query's predicates."""

from dataclasses import dataclass, field
from typing import Optional, Tuple
from queries.models import TextPredicate, PropertyPredicate, QueryProperty, GeneralPredicate
from queries.matcher import PatternSet
from queries.types import CaptureQuantifier

@dataclass(frozen=True)
class CompiledQuery:
    """Per-pattern compiled predicates plus capture tables.

    Every per-pattern attribute is a tuple indexed by pattern index. The
    predicate tables never change and the object can back any number of
    streams at once. Disabling patterns or captures acts on ``pattern_set``.

    Attributes:
        pattern_set: Structural patterns the query runs with
        capture_names: Capture names indexed by capture id
        capture_quantifier_table: Quantifiers indexed by pattern, then capture id
    """
    pattern_set: PatternSet = field(compare=False, repr=False)
    capture_names: Tuple[str, ...] = ()
    capture_quantifier_table: Tuple[Tuple[CaptureQuantifier, ...], ...] = ()
    text_predicate_table: Tuple[Tuple[TextPredicate, ...], ...] = ()
    property_predicate_table: Tuple[Tuple[PropertyPredicate, ...], ...] = ()
    property_setting_table: Tuple[Tuple[QueryProperty, ...], ...] = ()
    general_predicate_table: Tuple[Tuple[GeneralPredicate, ...], ...] = ()

    @property
    def pattern_count(self) -> int:
        return len(self.text_predicate_table)

    @property
    def capture_count(self) -> int:
        return len(self.capture_names)

    @property
    def string_count(self) -> int:
        return self.pattern_set.string_count

    def capture_index_for_name(self, name: str) -> Optional[int]:
        """Capture id for ``name`` (with or without ``@``), or None."""
        name = name[1:] if name.startswith("@") else name
        try:
            return self.capture_names.index(name)
        except ValueError:
            return None

    def capture_quantifiers(self, pattern_index: int) -> Tuple[CaptureQuantifier, ...]:
        return self.capture_quantifier_table[pattern_index]

    def text_predicates(self, pattern_index: int) -> Tuple[TextPredicate, ...]:
        return self.text_predicate_table[pattern_index]

    def property_predicates(self, pattern_index: int) -> Tuple[PropertyPredicate, ...]:
        return self.property_predicate_table[pattern_index]

    def property_settings(self, pattern_index: int) -> Tuple[QueryProperty, ...]:
        return self.property_setting_table[pattern_index]

    def general_predicates(self, pattern_index: int) -> Tuple[GeneralPredicate, ...]:
        return self.general_predicate_table[pattern_index]

    def disable_pattern(self, pattern_index: int) -> None:
        """Stop ``pattern_index`` from producing matches in every later execution.

        Mutates the shared pattern set; the predicate tables stay as compiled.
        """
        self._check_pattern(pattern_index)
        self.pattern_set.disable_pattern(pattern_index)

    def disable_capture(self, name: str) -> None:
        """Stop capture ``name`` (with or without ``@``) from being recorded.

        Capture ids keep their positions in ``capture_names``. Text predicates
        on a disabled capture see no bound nodes.
        """
        name = name[1:] if name.startswith("@") else name
        if self.capture_index_for_name(name) is None:
            raise KeyError(f"unknown capture {name!r}")
        self.pattern_set.disable_capture(name)

    def is_pattern_disabled(self, pattern_index: int) -> bool:
        return self.pattern_set.is_pattern_disabled(pattern_index)

    def is_capture_disabled(self, name: str) -> bool:
        return self.pattern_set.is_capture_disabled(name[1:] if name.startswith("@") else name)

    def is_pattern_rooted(self, pattern_index: int) -> bool:
        self._check_pattern(pattern_index)
        return self.pattern_set.is_pattern_rooted(pattern_index)

    def is_pattern_non_local(self, pattern_index: int) -> bool:
        self._check_pattern(pattern_index)
        return self.pattern_set.is_pattern_non_local(pattern_index)

    def is_pattern_guaranteed_at_step(self, byte_offset: int) -> bool:
        return self.pattern_set.is_pattern_guaranteed_at_step(byte_offset)

    def _check_pattern(self, pattern_index: int) -> None:
        if not 0 <= pattern_index < self.pattern_count:
            raise IndexError(f"pattern index {pattern_index} out of range")

    def start_byte_for_pattern(self, pattern_index: int) -> int:
        return self.pattern_set.start_byte_for_pattern(pattern_index)

    def end_byte_for_pattern(self, pattern_index: int) -> int:
        return self.pattern_set.end_byte_for_pattern(pattern_index)
