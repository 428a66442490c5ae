"""Tree-sitter parser wrapper.

Parses source bytes into a syntax tree with a grammar from
tree-sitter-language-pack, with cooperative cancellation and a source
size limit. The predicate engine only consumes the resulting nodes.
"""

import threading
from typing import Any, Optional, Union
from tree_sitter import Language, LogType, Parser, Tree
from utils.error_handling import ParsingError
from utils.logger import log
from parsers.language_mapping import get_language_for_name, normalize_language_name

# Bytes handed to tree-sitter per read when parsing cancellably
_READ_CHUNK = 4096

class NoLanguageSetError(ParsingError):
    """Parse attempted before a language was set."""
    pass

class ParseCancelledError(ParsingError):
    """Parsing stopped because its cancellation token was triggered."""
    pass

class ResourceLimitExceededError(ParsingError):
    """Source exceeds the configured parse limits."""
    pass

class CancellationToken:
    """Flag checked by the parser while it runs; safe to set from another thread."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

def tree_sitter_logger(log_type: int, message: str) -> None:
    """Custom logger callback for the Tree-sitter parser."""
    # Skip logging of skipped characters to reduce noise
    if "skip character" in message:
        return

    if log_type == LogType.LEX:
        # Only log important lexer events
        if any(key in message for key in ["accept", "error", "invalid"]):
            log(f"Tree-sitter [LEX]: {message}", level="debug")
    elif log_type == LogType.PARSE:
        # Log all parse events except internal state changes
        if not message.startswith("lex_internal"):
            log(f"Tree-sitter [PARSE]: {message}", level="debug")
    else:
        log(f"Tree-sitter [UNKNOWN-{log_type}]: {message}", level="debug")

class TreeSitterParser:
    """Tree-sitter parser for one language at a time.

    Instances are not thread-safe; use one per thread.

    Attributes:
        language_id: Normalized language name, or None until set
        max_source_bytes: Largest source accepted by ``parse``
    """

    def __init__(self, language_id: Optional[str] = None, max_source_bytes: Optional[int] = None,
                 attach_logger: Optional[bool] = None):
        from config.config import parser_config

        self.language_id: Optional[str] = None
        self.max_source_bytes = max_source_bytes if max_source_bytes is not None else parser_config.max_source_bytes
        self._parser = Parser()
        if attach_logger if attach_logger is not None else parser_config.attach_logger:
            self._parser.logger = tree_sitter_logger
            log("Attached tree-sitter logger callback", level="debug")
        if language_id is not None:
            self.set_language(language_id)

    def set_language(self, language: Union[str, Language]) -> None:
        """Switch grammars; accepts a language name or a loaded Language."""
        if isinstance(language, str):
            self.language_id = normalize_language_name(language)
            language = get_language_for_name(language)
        self._parser.language = language

    @property
    def language(self) -> Optional[Language]:
        return self._parser.language

    def parse(self, source: Union[str, bytes], cancellation: Optional[CancellationToken] = None,
              old_tree: Optional[Tree] = None) -> Tree:
        """
        Parse source into a syntax tree.

        Args:
            source: Source text; str is encoded as UTF-8
            cancellation: Token that stops parsing when cancelled
            old_tree: Previous tree, edited to match ``source``, for incremental reparse

        Returns:
            Tree: The syntax tree

        Raises:
            NoLanguageSetError: If no language was set
            ResourceLimitExceededError: If the source is larger than ``max_source_bytes``
            ParseCancelledError: If ``cancellation`` was triggered
        """
        if self._parser.language is None:
            raise NoLanguageSetError("No language set on parser")

        data = source.encode("utf-8") if isinstance(source, str) else bytes(source)
        if len(data) > self.max_source_bytes:
            raise ResourceLimitExceededError(
                f"Source of {len(data)} bytes exceeds limit of {self.max_source_bytes} bytes"
            )
        if cancellation is not None and cancellation.cancelled:
            raise ParseCancelledError("Parse cancelled before start")

        kwargs: dict = {}
        if old_tree is not None:
            kwargs["old_tree"] = old_tree
        if cancellation is None:
            return self._parser.parse(data, **kwargs)

        # tree-sitter only reports progress when it reads through a callback
        tree = self._parser.parse(
            lambda byte, _point: data[byte:byte + _READ_CHUNK],
            progress_callback=lambda *_: cancellation.cancelled,
            **kwargs
        )
        if tree is None or cancellation.cancelled:
            self._parser.reset()
            raise ParseCancelledError("Parse cancelled")
        return tree

def parse_source(source: Union[str, bytes], language_id: str,
                 cancellation: Optional[CancellationToken] = None) -> Any:
    """Parse ``source`` and return the root node of the tree."""
    return TreeSitterParser(language_id).parse(source, cancellation).root_node
