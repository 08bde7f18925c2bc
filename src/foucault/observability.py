"""Logging and operation metrics for Foucault.

Every engine call goes through ``traced``: it is timed, counted per
operation in the global ``metrics`` collector and logged at DEBUG with a
short trace ID. ``configure_logging`` sends the ``foucault`` logger
hierarchy to a rotating file, and to the console for ``foucault serve``.
"""
import functools
import inspect
import json
import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

# Root of the package logger hierarchy
ROOT_LOGGER_NAME = "foucault"
LOG_FILE_NAME = "foucault.log"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Engine arguments shown in trace lines
TRACED_ARGUMENTS = ("note_id", "tag_id", "name", "note_name", "prefix", "pattern")

F = TypeVar("F", bound=Callable[..., Any])


def configure_logging(
    log_dir: Union[str, Path],
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console: bool = True,
) -> Path:
    """Send the ``foucault`` loggers to ``<log_dir>/foucault.log``.

    Calling it again only adjusts the level; handlers are never stacked.

    Args:
        log_dir: Directory for the log file and its rotated backups
        level: Level for the package logger and its handlers
        max_bytes: Size at which the file is rotated
        backup_count: Rotated files to keep
        console: Also write to stderr (interactive sessions own the terminal
            and pass False)

    Returns:
        Path to the log file
    """
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / LOG_FILE_NAME

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    new_handlers = []
    if not any(isinstance(h, RotatingFileHandler) for h in package_logger.handlers):
        new_handlers.append(RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        ))
    if console and not any(type(h) is logging.StreamHandler for h in package_logger.handlers):
        new_handlers.append(logging.StreamHandler())
    for handler in new_handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
    for handler in package_logger.handlers:
        handler.setLevel(level)

    logger.info(f"Logging to {log_file} (rotating at {max_bytes} bytes, {backup_count} backups)")
    return log_file


@dataclass
class OperationStats:
    """Running totals for one engine operation."""

    count: int = 0
    errors: int = 0
    total_ms: float = 0.0
    min_ms: Optional[float] = None
    max_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def add(self, duration_ms: float, success: bool, error: Optional[str]) -> None:
        self.count += 1
        self.total_ms += duration_ms
        self.min_ms = duration_ms if self.min_ms is None else min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)
        if not success:
            self.errors += 1
            self.last_error = error
            self.last_error_at = datetime.now(timezone.utc)

    def as_dict(self) -> Dict[str, Any]:
        successes = self.count - self.errors
        return {
            "count": self.count,
            "success_count": successes,
            "error_count": self.errors,
            "success_rate": successes / self.count if self.count else 0,
            "avg_duration_ms": round(self.total_ms / self.count, 2) if self.count else 0,
            "min_duration_ms": round(self.min_ms or 0, 2),
            "max_duration_ms": round(self.max_ms, 2),
            "last_error": self.last_error,
            "last_error_time": self.last_error_at.isoformat() if self.last_error_at else None,
        }


class MetricsCollector:
    """Thread-safe per-operation statistics, optionally saved as JSON.

    ``foucault serve`` points it at ``metrics.json`` next to the log file
    and exposes the live snapshot at ``GET /metrics``.
    """

    def __init__(
        self,
        metrics_file: Optional[Union[str, Path]] = None,
        auto_save_interval: int = 100,
    ):
        """Initialize the collector.

        Args:
            metrics_file: Where snapshots are written. Nothing is written when None.
            auto_save_interval: Save after every N recorded operations (0 disables)
        """
        self._lock = Lock()
        self._stats: Dict[str, OperationStats] = {}
        self._started = datetime.now(timezone.utc)
        self._metrics_file = Path(metrics_file) if metrics_file else None
        self._auto_save_interval = auto_save_interval
        self._unsaved = 0

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        with self._lock:
            self._stats.setdefault(operation, OperationStats()).add(duration_ms, success, error)
            self._unsaved += 1
            if (
                self._metrics_file is not None
                and self._auto_save_interval > 0
                and self._unsaved >= self._auto_save_interval
            ):
                self._write()

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every operation's statistics, keyed by operation name."""
        with self._lock:
            return {name: stats.as_dict() for name, stats in self._stats.items()}

    def get_summary(self) -> Dict[str, Any]:
        with self._lock:
            total = sum(s.count for s in self._stats.values())
            errors = sum(s.errors for s in self._stats.values())
            return {
                "uptime_seconds": (datetime.now(timezone.utc) - self._started).total_seconds(),
                "total_operations": total,
                "total_success": total - errors,
                "total_errors": errors,
                "overall_success_rate": (total - errors) / total if total else 1.0,
                "operations_tracked": sorted(self._stats),
            }

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()
            self._started = datetime.now(timezone.utc)
            self._unsaved = 0

    def set_metrics_file(self, metrics_file: Optional[Union[str, Path]]) -> None:
        """Enable (or disable, with None) saving to disk."""
        with self._lock:
            self._metrics_file = Path(metrics_file) if metrics_file else None

    def save_metrics(self) -> bool:
        """Write a snapshot now. Returns False when nothing could be written."""
        with self._lock:
            return self._write()

    def _write(self) -> bool:
        # Caller holds the lock
        if self._metrics_file is None:
            return False
        snapshot = {
            "start_time": self._started.isoformat(),
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "operations": {name: stats.as_dict() for name, stats in self._stats.items()},
        }
        partial = self._metrics_file.with_suffix(".tmp")
        try:
            self._metrics_file.parent.mkdir(parents=True, exist_ok=True)
            partial.write_text(json.dumps(snapshot, indent=2), encoding="utf-8")
            partial.replace(self._metrics_file)
        except OSError as e:
            logger.error(f"Failed to save metrics to {self._metrics_file}: {e}")
            return False
        self._unsaved = 0
        return True


# Global metrics collector instance
metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context) -> Iterator[Dict[str, Any]]:
    """Time a block, record it in ``metrics`` and log it at DEBUG.

    Yields a dict the block may fill with result details for the end line.

    Example:
        with timed_operation("list_notes") as result:
            notes = repository.list_summaries()
            result["results"] = len(notes)
    """
    trace_id = uuid.uuid4().hex[:8]
    arguments = " ".join(f"{key}={value!r}" for key, value in context.items())
    logger.debug(f"[{trace_id}] {operation} {arguments}".rstrip())

    result: Dict[str, Any] = {}
    error: Optional[Exception] = None
    started = time.perf_counter()
    try:
        yield result
    except Exception as e:
        error = e
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        metrics.record_operation(
            operation, elapsed_ms, error is None, None if error is None else str(error)
        )
        outcome = "ok" if error is None else f"failed: {error}"
        details = " ".join(f"{key}={value}" for key, value in result.items())
        logger.debug(f"[{trace_id}] {operation} {outcome} in {elapsed_ms:.2f}ms {details}".rstrip())


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Run every call of the decorated function under ``timed_operation``.

    Note and tag IDs, names and search terms are put on the trace lines
    whether they were passed by position or by keyword.

    Args:
        operation_name: Metrics key; the function name when None.
    """
    def decorator(func: F) -> F:
        operation = operation_name or func.__name__
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                bound = signature.bind(*args, **kwargs).arguments
            except TypeError:
                bound = kwargs
            context = {key: bound[key] for key in TRACED_ARGUMENTS if key in bound}
            with timed_operation(operation, **context) as result:
                value = func(*args, **kwargs)
                if isinstance(value, list):
                    result["results"] = len(value)
                return value

        return wrapper  # type: ignore[return-value]
    return decorator
