"""Tree-sitter collaborators of the query predicate engine.

Parsing, grammar lookup, predicate extraction from query text, and the
structural matcher adapter.
"""

from parsers.language_mapping import (
    normalize_language_name,
    is_supported_language,
    get_language_for_name,
    UnsupportedLanguageError
)
from parsers.pattern_source import PatternSource, PredicateForm, PredicateToken
from parsers.tree_sitter_parser import (
    TreeSitterParser,
    CancellationToken,
    NoLanguageSetError,
    ParseCancelledError,
    ResourceLimitExceededError,
    parse_source
)
from parsers.tree_sitter_matcher import TreeSitterPatternSet, TreeSitterMatchCursor

__all__ = [
    'normalize_language_name',
    'is_supported_language',
    'get_language_for_name',
    'UnsupportedLanguageError',
    'PatternSource',
    'PredicateForm',
    'PredicateToken',
    'TreeSitterParser',
    'CancellationToken',
    'NoLanguageSetError',
    'ParseCancelledError',
    'ResourceLimitExceededError',
    'parse_source',
    'TreeSitterPatternSet',
    'TreeSitterMatchCursor'
]
