"""Configuration package."""

from .config import (
    ParserConfig,
    QueryConfig,
    LoggingConfig,
    Config,
    config,
    parser_config,
    query_config,
    logging_config,
    validate_configs
)

__all__ = [
    'ParserConfig',
    'QueryConfig',
    'LoggingConfig',
    'Config',
    'config',
    'parser_config',
    'query_config',
    'logging_config',
    'validate_configs'
]
