"""
Operation metrics for MONGOMAN.

Every backup, restore, import, export and aggregation call is timed and
counted here, together with connection start-up and shutdown. The numbers
are kept in process and served by ``GET /api/metrics``.

Series are keyed by operation name plus optional labels, rendered as
``backup.database{db_name=shop}``. Summaries fold all labels of one operation
together.
"""

import functools
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_SERIES = 10000


def series_key(operation_name: str, labels: dict[str, Any]) -> str:
    if not labels:
        return operation_name
    rendered = ",".join(f"{name}={labels[name]}" for name in sorted(labels))
    return f"{operation_name}{{{rendered}}}"


@dataclass
class OperationMetrics:
    """Running totals for one series."""

    operation_name: str
    count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: float | None = None
    max_duration_ms: float = 0.0
    last_execution: datetime | None = None

    @property
    def avg_duration_ms(self) -> float:
        if not self.count:
            return 0.0
        return self.total_duration_ms / self.count

    @property
    def error_rate(self) -> float:
        if not self.count:
            return 0.0
        return self.error_count * 100 / self.count

    def record(self, duration_ms: float, success: bool = True) -> None:
        self.count += 1
        self.total_duration_ms += duration_ms
        if self.min_duration_ms is None or duration_ms < self.min_duration_ms:
            self.min_duration_ms = duration_ms
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        if not success:
            self.error_count += 1
        self.last_execution = datetime.now()

    def merge(self, other: "OperationMetrics") -> None:
        """Fold another series of the same operation into this one."""
        self.count += other.count
        self.error_count += other.error_count
        self.total_duration_ms += other.total_duration_ms
        if other.min_duration_ms is not None:
            if self.min_duration_ms is None:
                self.min_duration_ms = other.min_duration_ms
            else:
                self.min_duration_ms = min(self.min_duration_ms, other.min_duration_ms)
        self.max_duration_ms = max(self.max_duration_ms, other.max_duration_ms)
        if other.last_execution and (
            self.last_execution is None or other.last_execution > self.last_execution
        ):
            self.last_execution = other.last_execution

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation_name,
            "count": self.count,
            "avg_duration_ms": round(self.avg_duration_ms, 2),
            "min_duration_ms": round(self.min_duration_ms or 0.0, 2),
            "max_duration_ms": round(self.max_duration_ms, 2),
            "error_count": self.error_count,
            "error_rate_percent": round(self.error_rate, 2),
            "last_execution": self.last_execution.isoformat() if self.last_execution else None,
        }


class MetricsCollector:
    """
    Thread-safe store of operation series.

    Once ``max_metrics`` series exist, recording a new one evicts the series
    that was updated least recently.
    """

    def __init__(self, max_metrics: int = DEFAULT_MAX_SERIES):
        self._series: OrderedDict[str, OperationMetrics] = OrderedDict()
        self._lock = threading.Lock()
        self._max_series = max_metrics

    def record_operation(
        self, operation_name: str, duration_ms: float, success: bool = True, **labels: Any
    ) -> None:
        """
        Record one execution of an operation.

        Args:
            operation_name: Dotted name, e.g. "restore.database"
            duration_ms: Wall time in milliseconds
            success: False when the operation raised
            **labels: Extra labels (db_name, collection_name, ...)
        """
        key = series_key(operation_name, labels)
        with self._lock:
            series = self._series.get(key)
            if series is None:
                if len(self._series) >= self._max_series:
                    evicted, _ = self._series.popitem(last=False)
                    logger.debug(f"Evicted metrics series '{evicted}'")
                series = self._series[key] = OperationMetrics(operation_name=operation_name)
            else:
                self._series.move_to_end(key)
            series.record(duration_ms, success)

    def get_metrics(self, operation_name: str | None = None) -> dict[str, Any]:
        """Per-series metrics, optionally limited to keys starting with a prefix."""
        with self._lock:
            metrics = {
                key: series.to_dict()
                for key, series in self._series.items()
                if operation_name is None or key.startswith(operation_name)
            }
            total = len(self._series)
        return {
            "timestamp": datetime.now().isoformat(),
            "metrics": metrics,
            "total_operations": total,
        }

    def get_summary(self) -> dict[str, Any]:
        """Metrics per operation with all labels folded together."""
        with self._lock:
            merged: dict[str, OperationMetrics] = {}
            for series in self._series.values():
                name = series.operation_name
                merged.setdefault(name, OperationMetrics(operation_name=name)).merge(series)
            total = len(self._series)
        return {
            "timestamp": datetime.now().isoformat(),
            "total_operations": total,
            "summary": {name: series.to_dict() for name, series in merged.items()},
        }

    def get_operation_count(self, operation_name: str) -> int:
        with self._lock:
            return sum(
                series.count
                for series in self._series.values()
                if series.operation_name == operation_name
            )

    def reset(self) -> None:
        with self._lock:
            self._series.clear()


_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector used by the console operations."""
    return _collector


def record_operation(
    operation_name: str, duration_ms: float, success: bool = True, **labels: Any
) -> None:
    _collector.record_operation(operation_name, duration_ms, success, **labels)


def timed_operation(operation_name: str, **labels: Any):
    """
    Time an async operation and record it, failed or not.

    Usage:
        @timed_operation("restore.database")
        async def restore_database(connection, db_name, bundle):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            started = time.perf_counter()
            success = False
            try:
                result = await func(*args, **kwargs)
                success = True
                return result
            finally:
                elapsed_ms = (time.perf_counter() - started) * 1000
                record_operation(operation_name, elapsed_ms, success, **labels)

        return wrapper

    return decorator
