"""Entry points: compile query text and run it over tree-sitter nodes.

    query = compile_query('((identifier) @id (#eq? @id "self"))', "python")
    root = parse_source(b"self.x = self", "python")
    for match in run_query(query, root, b"self.x = self"):
        ...
"""

from typing import Any, Optional, Union
from tree_sitter import Language
from queries.compiled_query import CompiledQuery
from queries.compiler import QueryCompiler
from queries.errors import QueryError
from queries.matcher import MatchCursor
from queries.registry import PredicateRegistry, predicate_registry
from queries.streams import MatchStream, CaptureStream, open_match_stream, open_capture_stream
from parsers.tree_sitter_matcher import TreeSitterPatternSet, TreeSitterMatchCursor
from utils.error_handling import ErrorBoundary, ErrorSeverity

def _default_registry() -> PredicateRegistry:
    from config.config import query_config

    if query_config.allow_unknown_predicates:
        return predicate_registry
    registry = predicate_registry.copy()
    registry.catchall = None
    return registry

def compile_query(source: Union[str, bytes], language: Union[str, Language],
                  registry: Optional[PredicateRegistry] = None) -> CompiledQuery:
    """
    Compile query text for a language.

    Args:
        source: Query text with S-expression patterns and predicates
        language: Language name or loaded tree-sitter Language
        registry: Predicate handlers; defaults to the process-wide registry

    Returns:
        CompiledQuery: The compiled query

    Raises:
        QueryError: If the patterns or predicates are invalid
    """
    with ErrorBoundary("query compilation", error_types=QueryError, severity=ErrorSeverity.WARNING):
        pattern_set = TreeSitterPatternSet.from_source(language, source)
        return QueryCompiler(registry or _default_registry()).compile(pattern_set)

def _cursor(cursor: Optional[MatchCursor], options: dict) -> MatchCursor:
    if cursor is not None:
        return cursor
    from config.config import query_config

    merged = query_config.cursor_options()
    merged.update(options)
    return TreeSitterMatchCursor(**merged)

def _as_bytes(source: Union[str, bytes]) -> bytes:
    return source.encode("utf-8") if isinstance(source, str) else bytes(source)

def run_query(query: CompiledQuery, node: Any, source: Union[str, bytes],
              cursor: Optional[MatchCursor] = None, **cursor_options) -> MatchStream:
    """Stream the matches of ``query`` under ``node`` that pass their predicates.

    ``cursor_options`` (``match_limit``, ``max_start_depth``, ``byte_range``,
    ``point_range``) configure a new ``TreeSitterMatchCursor`` when no
    cursor is given.
    """
    return open_match_stream(_cursor(cursor, cursor_options), query, node, _as_bytes(source))

def run_captures(query: CompiledQuery, node: Any, source: Union[str, bytes],
                 cursor: Optional[MatchCursor] = None, **cursor_options) -> CaptureStream:
    """Stream (match, capture position) pairs of matches that pass their predicates."""
    return open_capture_stream(_cursor(cursor, cursor_options), query, node, _as_bytes(source))
