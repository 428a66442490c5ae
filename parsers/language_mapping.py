"""Language name normalization and grammar lookup.

Maps user-facing language names and aliases (``C++``, ``js``, ``py`` ...)
to tree-sitter-language-pack identifiers and caches the loaded grammars.
"""

import threading
from typing import Dict
from tree_sitter import Language
from tree_sitter_language_pack import SupportedLanguage, get_language
from utils.error_handling import ParsingError
from utils.logger import log

# Define language aliases mapping to tree-sitter-language-pack names.
ALIASES = {
    "c++": "cpp",
    "cplusplus": "cpp",
    "c#": "csharp",
    "js": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "typescriptreact": "tsx",
    "golang": "go",
    "py": "python",
    "rb": "ruby",
    "rs": "rust",
    "sh": "bash",
    "shell": "bash",
    "yml": "yaml",
}

class UnsupportedLanguageError(ParsingError):
    """No tree-sitter grammar is available for a language."""
    pass

# Cache of loaded grammars, keyed by normalized name
_language_cache: Dict[str, Language] = {}
_cache_lock = threading.Lock()

def normalize_language_name(lang_name: str) -> str:
    """
    Normalize the given language name to a tree-sitter-language-pack name.
    Lower-cases the name, applies aliases, and maps ``-``/space to ``_``.
    """
    lang_lower = lang_name.lower().strip()
    if lang_lower in ALIASES:
        return ALIASES[lang_lower]

    normalized = lang_lower.replace('-', '_').replace(' ', '_')
    if normalized in ALIASES:
        return ALIASES[normalized]

    return normalized.replace('++', 'pp').replace('#', 'sharp')

def is_supported_language(lang_name: str) -> bool:
    """Whether tree-sitter-language-pack ships a grammar for ``lang_name``."""
    return normalize_language_name(lang_name) in SupportedLanguage.__args__

def get_language_for_name(lang_name: str) -> Language:
    """
    Get the tree-sitter grammar for a language name.

    Args:
        lang_name: The input language name (e.g. 'C++', 'Python', 'js')

    Returns:
        Language: The loaded grammar

    Raises:
        UnsupportedLanguageError: If the language is not supported.
    """
    normalized = normalize_language_name(lang_name)
    if normalized not in SupportedLanguage.__args__:
        raise UnsupportedLanguageError(f"Unsupported language: {lang_name}")

    with _cache_lock:
        if normalized not in _language_cache:
            log(f"Loading grammar for {normalized}", level="debug")
            _language_cache[normalized] = get_language(normalized)
        return _language_cache[normalized]
