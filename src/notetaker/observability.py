"""Logging and operation metrics for the notetaker package.

Log output goes to the ``notetaker`` logger hierarchy, optionally to a
rotating file. Service operations are timed with :func:`traced`; the numbers
are kept in process memory by :data:`metrics` and vanish at exit.
"""
import functools
import logging
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".notetaker-mcp" / "logs"
LOG_FILE_NAME = "notetaker.log"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

F = TypeVar("F", bound=Callable[..., Any])


def _has_handler(target: logging.Logger, kind: type, exclude: Optional[type] = None) -> bool:
    return any(
        isinstance(h, kind) and not (exclude and isinstance(h, exclude))
        for h in target.handlers
    )


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console: bool = True,
) -> Path:
    """Send ``notetaker`` log records to a rotating file.

    Calling this again does not stack handlers.

    Args:
        log_dir: Directory for ``notetaker.log``. Defaults to ~/.notetaker-mcp/logs/
        level: Level for the package logger and its handlers.
        max_bytes: File size that triggers rotation (10 MB).
        backup_count: Rotated files to keep.
        console: Also attach a stderr handler.

    Returns:
        The log directory in use.
    """
    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / LOG_FILE_NAME

    package_logger = logging.getLogger("notetaker")
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    new_handlers = []
    if not _has_handler(package_logger, RotatingFileHandler):
        new_handlers.append(
            RotatingFileHandler(
                log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
        )
    if console and not _has_handler(
        package_logger, logging.StreamHandler, exclude=RotatingFileHandler
    ):
        new_handlers.append(logging.StreamHandler())

    for handler in new_handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.info(f"Logging to {log_file} (rotate at {max_bytes} bytes, keep {backup_count})")
    return log_path


@dataclass
class OperationMetrics:
    """Running totals for one operation name."""
    count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: float = float("inf")
    max_duration_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None

    def add(self, duration_ms: float, success: bool, error: Optional[str]) -> None:
        self.count += 1
        self.total_duration_ms += duration_ms
        self.min_duration_ms = min(self.min_duration_ms, duration_ms)
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        if success:
            self.success_count += 1
            return
        self.error_count += 1
        self.last_error = error
        self.last_error_time = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        if not self.count:
            return {"count": 0}
        return {
            "count": self.count,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "success_rate": self.success_count / self.count,
            "avg_duration_ms": round(self.total_duration_ms / self.count, 2),
            "min_duration_ms": round(self.min_duration_ms, 2),
            "max_duration_ms": round(self.max_duration_ms, 2),
            "last_error": self.last_error,
            "last_error_time": (
                self.last_error_time.isoformat() if self.last_error_time else None
            ),
        }


class MetricsCollector:
    """Thread-safe per-operation counters for service calls."""

    def __init__(self):
        self._lock = Lock()
        self._operations: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        """Add one call of ``operation`` (e.g. 'save_note') to the totals."""
        with self._lock:
            self._operations[operation].add(duration_ms, success, error)

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every operation's totals."""
        with self._lock:
            return {name: m.to_dict() for name, m in self._operations.items()}

    def reset(self) -> None:
        with self._lock:
            self._operations.clear()


metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context) -> Iterator[Dict[str, Any]]:
    """Time a block, log its start and end, and record it in :data:`metrics`.

    The yielded dict collects result details for the end-of-operation log
    line::

        with timed_operation("search_notes", query=query) as op:
            results = index.search(query)
            op["result_count"] = len(results)
    """
    correlation_id = uuid.uuid4().hex[:8]
    details: Dict[str, Any] = {}
    context_str = ", ".join(f"{k}={v}" for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({context_str})")

    error: Optional[str] = None
    started = time.perf_counter()
    try:
        yield details
    except Exception as e:
        error = str(e)
        raise
    finally:
        duration_ms = (time.perf_counter() - started) * 1000
        metrics.record_operation(operation, duration_ms, error is None, error)
        status = "OK" if error is None else f"ERROR: {error}"
        detail_str = ", ".join(f"{k}={v}" for k, v in details.items())
        logger.debug(
            f"[{correlation_id}] END {operation} ({duration_ms:.2f}ms) [{status}] {detail_str}"
        )


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Wrap a service method in :func:`timed_operation`.

    The first positional argument after ``self`` (a title or a query) is
    logged as context, and list results report their length.
    """
    def decorator(func: F) -> F:
        name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            context = {}
            for key in ("title", "query"):
                if key in kwargs:
                    context[key] = str(kwargs[key])[:50]
                    break
            else:
                if len(args) > 1 and isinstance(args[1], str):
                    context["arg"] = args[1][:50]

            with timed_operation(name, **context) as op:
                result = func(*args, **kwargs)
                if isinstance(result, (list, tuple)):
                    op["result_count"] = len(result)
                elif result is not None:
                    op["has_result"] = True
                return result

        return wrapper  # type: ignore
    return decorator
