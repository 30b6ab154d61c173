"""Observability utilities for Eminent Notes.

Provides rotating disk logging, in-process timing metrics and
operation tracing for the manager layer.
"""
import functools
import logging
import re
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

ROOT_LOGGER_NAME = "eminent_notes"
DEFAULT_LOG_DIR = Path.home() / ".eminent_notes" / "logs"
LOG_FILE_NAME = "eminent_notes.log"

# Logging format with ISO 8601 timestamps
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

F = TypeVar("F", bound=Callable[..., Any])

_logging_configured = False


def _sanitize_error_message(message: Optional[str], max_length: int = 200) -> Optional[str]:
    """Make an error message safe to keep in metrics.

    Replaces the home directory with ``~``, flattens whitespace and
    truncates long messages with an ellipsis.
    """
    if message is None:
        return None
    home = str(Path.home())
    if home and home != "/":
        message = message.replace(home, "~")
    message = re.sub(r"\s+", " ", message).strip()
    if len(message) > max_length:
        message = message[: max_length - 3] + "..."
    return message


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: Union[int, str] = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    console: bool = True,
) -> Path:
    """Configure persistent file logging with rotation.

    Attaches a rotating file handler (and optionally a console handler) to
    the ``eminent_notes`` logger hierarchy. Calling it again replaces the
    handlers installed by the previous call.

    Args:
        log_dir: Directory for log files. Defaults to ~/.eminent_notes/logs/
        level: Logging level, as a number or a name such as "DEBUG"
        max_bytes: Maximum size per log file before rotation
        backup_count: Number of rotated files to keep
        console: Also log to stderr

    Returns:
        Path to the log directory
    """
    global _logging_configured

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        if getattr(handler, "_eminent_notes", False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    log_file = log_path / LOG_FILE_NAME
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    file_handler._eminent_notes = True
    root_logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        console_handler._eminent_notes = True
        root_logger.addHandler(console_handler)

    _logging_configured = True
    root_logger.debug(f"Logging configured: {log_file}")

    return log_path


def is_logging_configured() -> bool:
    """Check if file logging has been configured."""
    return _logging_configured


@dataclass
class OperationMetrics:
    """Metrics for a single operation type."""
    count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: float = float("inf")
    max_duration_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None


class MetricsCollector:
    """Thread-safe, in-process metrics for manager operations.

    Collects timing, success/failure counts and the last error for each
    operation name (create_folder, save_note, ...). Nothing is persisted.
    """

    def __init__(self):
        self._metrics: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self._lock = Lock()
        self._start_time = datetime.now(timezone.utc)

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        """Record metrics for an operation.

        Args:
            operation: The operation name
            duration_ms: Duration in milliseconds
            success: Whether the operation succeeded
            error: Error message if the operation failed
        """
        with self._lock:
            m = self._metrics[operation]
            m.count += 1
            m.total_duration_ms += duration_ms
            m.min_duration_ms = min(m.min_duration_ms, duration_ms)
            m.max_duration_ms = max(m.max_duration_ms, duration_ms)

            if success:
                m.success_count += 1
            else:
                m.error_count += 1
                m.last_error = _sanitize_error_message(error)
                m.last_error_time = datetime.now(timezone.utc)

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Get a snapshot of all metrics, keyed by operation name."""
        with self._lock:
            result = {}
            for op, m in self._metrics.items():
                avg_duration = m.total_duration_ms / m.count if m.count > 0 else 0
                min_dur = m.min_duration_ms if m.min_duration_ms != float("inf") else 0
                result[op] = {
                    "count": m.count,
                    "success_count": m.success_count,
                    "error_count": m.error_count,
                    "success_rate": m.success_count / m.count if m.count > 0 else 0,
                    "avg_duration_ms": round(avg_duration, 2),
                    "min_duration_ms": round(min_dur, 2),
                    "max_duration_ms": round(m.max_duration_ms, 2),
                    "last_error": m.last_error,
                    "last_error_time": (
                        m.last_error_time.isoformat() if m.last_error_time else None
                    ),
                }
            return result

    def get_summary(self) -> Dict[str, Any]:
        """Get aggregate statistics across all operations."""
        with self._lock:
            total_ops = sum(m.count for m in self._metrics.values())
            total_success = sum(m.success_count for m in self._metrics.values())
            total_errors = sum(m.error_count for m in self._metrics.values())

            return {
                "uptime_seconds": (
                    datetime.now(timezone.utc) - self._start_time
                ).total_seconds(),
                "total_operations": total_ops,
                "total_success": total_success,
                "total_errors": total_errors,
                "overall_success_rate": total_success / total_ops if total_ops > 0 else 1.0,
                "operations_tracked": list(self._metrics.keys()),
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._metrics.clear()
            self._start_time = datetime.now(timezone.utc)


# Global metrics collector instance
metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context):
    """Context manager for timing and logging operations.

    Args:
        operation: Name of the operation being performed
        **context: Additional context to include in log messages

    Yields:
        A dictionary where you can store result info (e.g., result_count)

    Example:
        with timed_operation('fetch_notes', search='milk') as op:
            notes = store.fetch(...)
            op['result_count'] = len(notes)
    """
    correlation_id = str(uuid.uuid4())[:8]
    start_time = time.perf_counter()
    result_info: Dict[str, Any] = {"correlation_id": correlation_id}

    context_str = ", ".join(f"{k}={v}" for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({context_str})")

    error_msg = None
    success = True

    try:
        yield result_info
    except Exception as e:
        success = False
        error_msg = str(e)
        raise
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        metrics.record_operation(operation, duration_ms, success, error_msg)

        result_str = ", ".join(
            f"{k}={v}" for k, v in result_info.items() if k != "correlation_id"
        )
        status = "OK" if success else f"ERROR: {error_msg}"
        logger.debug(
            f"[{correlation_id}] END {operation} "
            f"({duration_ms:.2f}ms) [{status}] {result_str}"
        )


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Decorator for automatic operation tracing.

    Times the function, records metrics, and logs start/end with a
    correlation ID. A ``None`` or ``False`` result counts as a success;
    only raised exceptions are recorded as errors.

    Example:
        @traced('create_folder')
        def create_folder(self, name, parent=None):
            ...
    """
    def decorator(func: F) -> F:
        op_name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            context = {}
            for key in ("name", "title", "note_id", "folder_id"):
                if isinstance(kwargs.get(key), str):
                    context[key] = kwargs[key][:50]

            with timed_operation(op_name, **context) as op:
                result = func(*args, **kwargs)
                if isinstance(result, (list, tuple)):
                    op["result_count"] = len(result)
                elif result is not None:
                    op["has_result"] = True
                return result

        return wrapper  # type: ignore
    return decorator
