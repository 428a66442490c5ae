"""Text predicate evaluation.

Decides whether a candidate match satisfies the text predicates of its
pattern. Evaluation is a pure function of the match, the compiled query
and the source bytes; every value it compares was validated when the
query was compiled.
"""

from typing import Any, Iterator, List
from queries.compiled_query import CompiledQuery
from queries.models import QueryMatch, TextPredicate
from queries.types import BindingPolicy, TextPredicateType

def node_text(node: Any, source: bytes) -> bytes:
    return source[node.start_byte:node.end_byte]

class PredicateEvaluator:
    """Evaluates ``TextPredicate`` values against matches."""

    def satisfies(self, match: QueryMatch, query: CompiledQuery, source: bytes) -> bool:
        """Whether ``match`` passes every text predicate of its pattern.

        Stops at the first failing predicate.
        """
        for predicate in query.text_predicates(match.pattern_index):
            if not self.satisfies_predicate(predicate, match, source):
                return False
        return True

    def satisfies_predicate(self, predicate: TextPredicate, match: QueryMatch, source: bytes) -> bool:
        nodes = match.nodes_for_capture_index(predicate.capture_id)

        if predicate.type == TextPredicateType.EQ_CAPTURE:
            others = match.nodes_for_capture_index(predicate.value)
            outcome = predicate.policy.reduce(self._pair_outcomes(predicate, nodes, others, source))
            if predicate.policy is BindingPolicy.REQUIRE_ALL:
                # Every node needs a partner
                return outcome and len(nodes) == len(others)
            return outcome

        return predicate.policy.reduce(self._node_outcomes(predicate, nodes, source))

    def _pair_outcomes(self, predicate: TextPredicate, nodes: List[Any], others: List[Any],
                       source: bytes) -> Iterator[bool]:
        for left, right in zip(nodes, others):
            equal = node_text(left, source) == node_text(right, source)
            yield equal == predicate.positive

    def _node_outcomes(self, predicate: TextPredicate, nodes: List[Any], source: bytes) -> Iterator[bool]:
        for node in nodes:
            yield self._test_node(predicate, node_text(node, source)) == predicate.positive

    def _test_node(self, predicate: TextPredicate, text: bytes) -> bool:
        if predicate.type == TextPredicateType.EQ_STRING:
            return text == predicate.value.encode("utf-8")
        if predicate.type == TextPredicateType.MATCH_STRING:
            return predicate.value.search(text.decode("utf-8", errors="replace")) is not None
        if predicate.type == TextPredicateType.ANY_STRING:
            return any(text == value.encode("utf-8") for value in predicate.value)
        raise ValueError(f"unknown text predicate type {predicate.type}")

# Global instance
predicate_evaluator = PredicateEvaluator()

def satisfies_text_predicates(match: QueryMatch, query: CompiledQuery, source: bytes) -> bool:
    """Evaluate with the shared evaluator."""
    return predicate_evaluator.satisfies(match, query, source)
