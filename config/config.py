"""Configuration management with error handling."""

import os
import json
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple
from dotenv import load_dotenv
from utils.logger import log
from utils.error_handling import handle_errors, ConfigurationError, ErrorBoundary, ErrorSeverity

# Load environment variables from a .env file
load_dotenv()

def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")

# Environment variables that did not hold an integer, reported by validate_configs
_invalid_env: Dict[str, str] = {}

def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _invalid_env[name] = value
        return default

def _env_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError:
        _invalid_env[name] = value
        return None

@dataclass
class ParserConfig:
    """
    Parser configuration.
    Limits and diagnostics for the tree-sitter parser collaborator.
    """
    default_language: str = os.getenv("PARSER_DEFAULT_LANGUAGE", "python")
    max_source_bytes: int = _env_int("PARSER_MAX_SOURCE_BYTES", 10485760)  # 10MB default
    attach_logger: bool = _env_bool("PARSER_ATTACH_LOGGER", "false")

@dataclass
class QueryConfig:
    """Query compilation and cursor configuration."""
    # None leaves the matcher's own default (unlimited pending matches)
    match_limit: Optional[int] = _env_optional_int("QUERY_MATCH_LIMIT")
    max_start_depth: Optional[int] = _env_optional_int("QUERY_MAX_START_DEPTH")
    allow_unknown_predicates: bool = _env_bool("QUERY_ALLOW_UNKNOWN_PREDICATES", "true")

    def cursor_options(self) -> Dict[str, Any]:
        """Keyword options for a match cursor, omitting unset values."""
        options = {}
        if self.match_limit is not None:
            options["match_limit"] = self.match_limit
        if self.max_start_depth is not None:
            options["max_start_depth"] = self.max_start_depth
        return options

@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    log_dir: Optional[str] = os.getenv("LOG_DIR") or None
    logger_name: str = os.getenv("LOG_NAME", "query_predicates")
    valid_levels: Tuple[str, ...] = field(default=("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"))

class Config:
    """Configuration management for the application."""

    def __init__(self):
        """Initialize configuration."""
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """Load configuration from environment and files."""
        self._config.update({
            "parser": {
                "default_language": parser_config.default_language,
                "max_source_bytes": parser_config.max_source_bytes,
                "attach_logger": parser_config.attach_logger
            },
            "query": {
                "match_limit": query_config.match_limit,
                "max_start_depth": query_config.max_start_depth,
                "allow_unknown_predicates": query_config.allow_unknown_predicates
            },
            "logging": {
                "level": logging_config.level,
                "dir": logging_config.log_dir
            }
        })

        # Load from config file if exists
        config_file = os.getenv("CONFIG_FILE", "config.json")
        if os.path.exists(config_file):
            with open(config_file, 'r') as f:
                file_config = json.load(f)
                self._deep_update(self._config, file_config)

    def _deep_update(self, d: Dict, u: Dict):
        """Recursively update dictionary."""
        for k, v in u.items():
            if isinstance(v, dict):
                d[k] = self._deep_update(d.get(k, {}), v)
            else:
                d[k] = v
        return d

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dotted key, e.g. ``query.match_limit``."""
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k, default)
            else:
                return default

        return value

    def update(self, new_config: Dict[str, Any]):
        """Overlay values onto the current configuration."""
        self._deep_update(self._config, new_config)

    def save_config(self, config_file: str = "config.json"):
        """Save configuration to file."""
        with open(config_file, 'w') as f:
            json.dump(self._config, f, indent=2)

# Create global configuration instances
parser_config = ParserConfig()
query_config = QueryConfig()
logging_config = LoggingConfig()

# Create global instance
config = Config()

def _check_configs() -> None:
    if _invalid_env:
        name, value = next(iter(_invalid_env.items()))
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if parser_config.max_source_bytes <= 0:
        raise ConfigurationError("PARSER_MAX_SOURCE_BYTES must be positive")
    if query_config.match_limit is not None and query_config.match_limit <= 0:
        raise ConfigurationError("QUERY_MATCH_LIMIT must be positive")
    if query_config.max_start_depth is not None and query_config.max_start_depth < 0:
        raise ConfigurationError("QUERY_MAX_START_DEPTH must not be negative")
    if logging_config.level.upper() not in logging_config.valid_levels:
        raise ConfigurationError(f"Unknown LOG_LEVEL {logging_config.level}")

@handle_errors(error_types=(ConfigurationError,), default_return=False)
def validate_configs() -> bool:
    """Validate all configuration settings."""
    with ErrorBoundary("configuration validation", error_types=ConfigurationError, severity=ErrorSeverity.CRITICAL):
        _check_configs()
    log("Configuration validated", level="debug")
    return True
