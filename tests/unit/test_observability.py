"""
Unit tests for observability.

Tests:
- MetricsCollector recording, eviction and summaries
- The timed_operation decorator
- Contextual logging
"""

import logging
import threading

import pytest

from mongoman.observability import (ContextualLoggerAdapter,
                                    MetricsCollector, clear_correlation_id,
                                    clear_operation_context,
                                    get_correlation_id, get_logger,
                                    get_logging_context,
                                    get_metrics_collector, log_operation,
                                    record_operation, set_correlation_id,
                                    set_operation_context, timed_operation)


class TestMetricsCollector:
    """Test metrics collection."""

    def test_concurrent_record_operation(self):
        collector = MetricsCollector()
        num_threads = 8
        operations_per_thread = 50
        barrier = threading.Barrier(num_threads)

        def record_operations(thread_id: int):
            barrier.wait()
            for i in range(operations_per_thread):
                collector.record_operation(
                    "restore.database", duration_ms=1.0 + i, db_name=f"db{thread_id}"
                )

        threads = [
            threading.Thread(target=record_operations, args=(i,)) for i in range(num_threads)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert collector.get_operation_count("restore.database") == (
            num_threads * operations_per_thread
        )

    def test_oldest_key_is_evicted(self):
        collector = MetricsCollector(max_metrics=2)
        collector.record_operation("a", 1.0)
        collector.record_operation("b", 1.0)
        collector.record_operation("c", 1.0)

        assert set(collector.get_metrics()["metrics"]) == {"b", "c"}

    def test_summary_aggregates_tags(self):
        collector = MetricsCollector()
        collector.record_operation("export.collection", 10.0, collection_name="a")
        collector.record_operation("export.collection", 30.0, False, collection_name="b")

        summary = collector.get_summary()["summary"]["export.collection"]

        assert summary["count"] == 2
        assert summary["avg_duration_ms"] == 20.0
        assert summary["error_count"] == 1
        assert summary["error_rate_percent"] == 50.0

    def test_filter_by_prefix(self):
        collector = MetricsCollector()
        collector.record_operation("backup.database", 1.0)
        collector.record_operation("restore.database", 1.0)

        assert list(collector.get_metrics("backup")["metrics"]) == ["backup.database"]

    def test_module_level_record(self):
        record_operation("aggregate.run", 5.0)
        assert get_metrics_collector().get_operation_count("aggregate.run") == 1


class TestTimedOperation:
    """Test the timed_operation decorator."""

    @pytest.mark.asyncio
    async def test_records_success(self):
        @timed_operation("test.op")
        async def operation(value):
            return value * 2

        assert await operation(2) == 4
        summary = get_metrics_collector().get_summary()["summary"]["test.op"]
        assert summary["count"] == 1
        assert summary["error_count"] == 0

    @pytest.mark.asyncio
    async def test_records_failure_and_reraises(self):
        @timed_operation("test.op")
        async def operation():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await operation()

        assert get_metrics_collector().get_summary()["summary"]["test.op"]["error_count"] == 1

    def test_keeps_function_metadata(self):
        @timed_operation("test.op")
        async def restore_something():
            """Docstring."""

        assert restore_something.__name__ == "restore_something"
        assert restore_something.__doc__ == "Docstring."


class TestContextualLogging:
    """Test correlation ids and operation context."""

    def teardown_method(self):
        clear_correlation_id()
        clear_operation_context()

    def test_correlation_id(self):
        correlation_id = set_correlation_id()
        assert get_correlation_id() == correlation_id
        assert get_logging_context()["correlation_id"] == correlation_id

        clear_correlation_id()
        assert get_correlation_id() is None

    def test_operation_context(self):
        set_operation_context(db_name="shop", collection_name="orders")
        context = get_logging_context()
        assert context["db_name"] == "shop"
        assert context["collection_name"] == "orders"

    def test_adapter_adds_context(self, caplog):
        set_correlation_id("abc")
        logger = get_logger("mongoman.test")
        assert isinstance(logger, ContextualLoggerAdapter)

        with caplog.at_level(logging.INFO, logger="mongoman.test"):
            logger.info("hello", extra={"rows": 3})

        record = caplog.records[-1]
        assert record.correlation_id == "abc"
        assert record.rows == 3

    def test_log_operation(self, caplog):
        logger = logging.getLogger("mongoman.test")
        with caplog.at_level(logging.INFO, logger="mongoman.test"):
            log_operation(logger, "backup.database", duration_ms=12.5, collections=2)
            log_operation(
                logger, "restore.database", level=logging.ERROR, success=False, error="x"
            )

        ok, failed = caplog.records[-2:]
        assert ok.getMessage() == "Operation: backup.database (duration: 12.50ms)"
        assert ok.collections == 2
        assert failed.getMessage() == "Operation failed: restore.database"
        assert failed.levelno == logging.ERROR
