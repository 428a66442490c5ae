"""Error handling utilities."""

from typing import Type, Tuple, Callable, Any, Dict, List, Optional, Union
from functools import wraps
from contextlib import contextmanager
import threading
import traceback
import time
from datetime import datetime
import logging

# Add error severity levels
class ErrorSeverity:
    """Error severity levels for better error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

class ErrorMetrics:
    """Tracks error counts and operation timings."""
    def __init__(self):
        self.error_counts = {level: 0 for level in vars(ErrorSeverity).keys() if not level.startswith('_')}
        self.total_operations = 0
        self.total_errors = 0
        self.performance_data = []
        self._lock = threading.Lock()

    def record_error(self, severity: str):
        """Record an error occurrence."""
        with self._lock:
            self.error_counts[severity] = self.error_counts.get(severity, 0) + 1
            self.total_errors += 1

    def record_operation(self, duration: float):
        """Record operation performance."""
        with self._lock:
            self.total_operations += 1
            self.performance_data.append(duration)

    def get_error_rate(self) -> float:
        """Calculate error rate."""
        if self.total_operations == 0:
            return 0.0
        return self.total_errors / self.total_operations

    def reset(self):
        with self._lock:
            self.error_counts = {level: 0 for level in self.error_counts}
            self.total_operations = 0
            self.total_errors = 0
            self.performance_data = []

# Global metrics instance
error_metrics = ErrorMetrics()

class ProcessingError(Exception):
    """Base class for processing errors."""
    pass

class ParsingError(ProcessingError):
    """Error during parsing operations."""
    pass

class LoggingError(ProcessingError):
    """Error during logging operations."""
    pass

class ConfigurationError(ProcessingError):
    """Invalid configuration value."""
    pass

# Map of error types to their categories for auditing.
# Order matters: the first matching class wins.
ERROR_CATEGORIES = {
    ParsingError: "parsing",
    LoggingError: "logging",
    ConfigurationError: "configuration",
    ProcessingError: "processing",
    Exception: "general"
}

def register_error_category(error_cls: Type[Exception], category: str) -> None:
    """Register a category for an error class defined outside this module.

    The new entry is placed ahead of the generic fallbacks so subclasses
    of ``ProcessingError`` keep their specific category.
    """
    items = [(k, v) for k, v in ERROR_CATEGORIES.items() if k is not error_cls]
    ERROR_CATEGORIES.clear()
    ERROR_CATEGORIES[error_cls] = category
    ERROR_CATEGORIES.update(items)

def _as_tuple(error_types) -> Tuple[Type[Exception], ...]:
    if error_types is None:
        return (Exception,)
    if isinstance(error_types, list):
        return tuple(error_types)
    if isinstance(error_types, type):
        return (error_types,)
    return tuple(error_types)

class ErrorAudit:
    """
    Tracks exceptions recorded by error boundaries and decorators.

    Records are grouped by exception type name and can be summarized with
    ``get_error_report``.
    """

    _lock = threading.Lock()
    _errors: Dict[str, List[Dict]] = {}

    @classmethod
    def record_error(cls, error: Exception, operation_name: str, handled_types: Union[Type[Exception], Tuple[Type[Exception], ...], List[Type[Exception]], None]) -> None:
        """
        Record an error for audit purposes.

        Args:
            error: The exception that was caught
            operation_name: The name of the operation where the error occurred
            handled_types: The type(s) of exceptions that were handled
        """
        handled_types = _as_tuple(handled_types)

        category = "unknown"
        for error_cls, cat in ERROR_CATEGORIES.items():
            if isinstance(error, error_cls):
                category = cat
                break

        with cls._lock:
            cls._errors.setdefault(type(error).__name__, []).append({
                "message": str(error),
                "location": operation_name,
                "category": category,
                "timestamp": datetime.now().isoformat(),
                "handled_by": [t.__name__ for t in handled_types],
                "traceback": traceback.format_exc()
            })

    @classmethod
    def get_error_report(cls) -> Dict[str, Any]:
        """
        Generate an error report.

        Returns:
            Dict containing error counts by type, by category and the most
            frequent locations.
        """
        with cls._lock:
            error_counts = {error_type: len(occurrences)
                            for error_type, occurrences in cls._errors.items()}

            category_counts: Dict[str, int] = {}
            location_counts: Dict[str, int] = {}
            for occurrences in cls._errors.values():
                for occurrence in occurrences:
                    category = occurrence.get("category", "unknown")
                    category_counts[category] = category_counts.get(category, 0) + 1
                    location = occurrence.get("location", "unknown")
                    location_counts[location] = location_counts.get(location, 0) + 1

            sorted_locations = sorted(
                location_counts.items(),
                key=lambda x: x[1],
                reverse=True
            )

            return {
                "total_errors": sum(error_counts.values()),
                "unique_error_types": len(error_counts),
                "error_counts_by_type": error_counts,
                "error_counts_by_category": category_counts,
                "top_error_locations": sorted_locations[:10]
            }

    @classmethod
    def clear(cls) -> None:
        with cls._lock:
            cls._errors.clear()

@contextmanager
def ErrorBoundary(operation_name=None, error_types=(Exception,), error_message=None, reraise=True, severity=ErrorSeverity.ERROR):
    """Context manager for error handling.

    Errors of ``error_types`` are logged, recorded in ``ErrorAudit`` and
    stored on the yielded container. They are re-raised unless
    ``reraise`` is False.
    """
    start_time = time.time()
    error_types = _as_tuple(error_types)

    class ErrorContainer:
        def __init__(self):
            self.error = None
            self.duration = 0
            self.severity = severity

    error_container = ErrorContainer()
    msg_prefix = error_message if error_message else f"Error in {operation_name}"

    try:
        yield error_container
    except error_types as e:
        error_metrics.record_error(severity)
        logging.log(
            logging.getLevelName(severity.upper()) if isinstance(severity, str) else logging.ERROR,
            f"{msg_prefix}: {str(e)}"
        )
        ErrorAudit.record_error(e, operation_name or "unknown", error_types)
        error_container.error = e
        if reraise:
            raise
    finally:
        duration = time.time() - start_time
        error_container.duration = duration
        error_metrics.record_operation(duration)

def handle_errors(error_types=None, default_return=None):
    """Decorator for handling errors in synchronous functions.

    Exceptions matching ``error_types`` are logged and recorded, and
    ``default_return`` is returned in their place. Any other exception
    propagates.
    """
    def decorator(func: Callable) -> Callable:
        handled = _as_tuple(error_types)

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except handled as e:
                logging.error(f"Error in {func.__name__}: {str(e)}")
                ErrorAudit.record_error(e, func.__name__, handled)
                return default_return
        return wrapper
    return decorator
