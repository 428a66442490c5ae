"""Structured logging with error handling."""

import logging
import sys
import os
import threading
from datetime import datetime
from typing import Optional, Dict, Any
import json
from utils.error_handling import LoggingError

class EnhancedLogger:
    """Structured JSON logging on top of the standard logging module."""

    def __init__(self, name: str = "query_predicates"):
        """Private constructor - use create() instead."""
        self._initialized = False
        self._lock = threading.Lock()
        self._logger = logging.getLogger(name)
        self.log_levels = {
            'debug': logging.DEBUG,
            'info': logging.INFO,
            'warning': logging.WARNING,
            'error': logging.ERROR,
            'critical': logging.CRITICAL
        }

    def ensure_initialized(self):
        """Ensure the instance is properly initialized before use."""
        if not self._initialized:
            raise LoggingError("EnhancedLogger not initialized. Use create() to initialize.")
        return True

    @classmethod
    def create(cls) -> 'EnhancedLogger':
        """Factory method to create and initialize an EnhancedLogger instance."""
        from config.config import logging_config

        instance = cls(logging_config.logger_name)
        try:
            instance._initialize_logger(logging_config.level, logging_config.log_dir)
        except (OSError, ValueError) as e:
            # Use direct logging here to avoid circular dependency
            logging.error(f"Error initializing enhanced logger: {e}")
            raise LoggingError(f"Failed to initialize enhanced logger: {e}") from e
        instance._initialized = True
        return instance

    def _initialize_logger(self, level: str, log_dir: Optional[str]):
        """Attach handlers to the named logger once."""
        self._logger.setLevel(level.upper())
        if self._logger.handlers:
            return

        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        self._logger.addHandler(stream_handler)

        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            log_file = os.path.join(
                log_dir,
                f"query_{datetime.now().strftime('%Y%m%d')}.log"
            )
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            self._logger.addHandler(file_handler)

    def _write_log(self, log_entry: Dict[str, Any]):
        """Write a log entry to all handlers."""
        level = self.log_levels.get(log_entry.get('level', 'info'), logging.INFO)
        self._logger.log(level, json.dumps(log_entry, default=str))

    def log(
        self,
        message: str,
        level: str = "info",
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        """Log a message with optional context."""
        self.ensure_initialized()

        # Skip building the entry for disabled levels
        if not self._logger.isEnabledFor(self.log_levels.get(level, logging.INFO)):
            return

        log_entry = {
            "message": message,
            "timestamp": datetime.now().isoformat(),
            "level": level
        }
        if context:
            log_entry["context"] = context

        with self._lock:
            self._write_log(log_entry)

    def debug(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """Log debug message."""
        self.log(message, "debug", context)

    def info(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """Log info message."""
        self.log(message, "info", context)

    def warning(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """Log warning message."""
        self.log(message, "warning", context)

    def error(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """Log error message."""
        self.log(message, "error", context)

    def critical(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """Log critical message."""
        self.log(message, "critical", context)

# Global logger instance
logger = None

def get_logger() -> EnhancedLogger:
    """Get the global logger instance."""
    global logger
    if not logger:
        logger = EnhancedLogger.create()
    return logger

# Convenience function
def log(message: str, level: str = "info", context: Optional[Dict[str, Any]] = None):
    """Global logging function."""
    get_logger().log(message, level, context)
