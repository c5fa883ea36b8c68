"""
Logging and metrics utilities for VisaScore.
Provides structured logging, metrics collection, and operation timing.
"""

import asyncio
import json
import logging
import threading
import time
from collections import defaultdict
from datetime import datetime
from functools import wraps
from typing import Any, Callable, Dict, List, Optional


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    EXTRA_FIELDS = (
        "request_id",
        "session_id",
        "job_id",
        "service",
        "operation",
        "provider",
        "execution_time_ms",
        "success",
        "error_type",
    )

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        for field in self.EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(log_level: str = "INFO", structured: bool = True):
    """
    Set up application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        structured: Whether to use structured JSON logging
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Suppress noisy third-party loggers
    for noisy in ('httpx', 'httpcore', 'anthropic', 'google', 'urllib3', 'pdfminer'):
        logging.getLogger(noisy).setLevel(logging.WARNING)


class MetricsCollector:
    """
    In-process counters and timers.
    """

    def __init__(self, max_samples: int = 1000):
        self.max_samples = max_samples
        self.counters: Dict[str, float] = defaultdict(float)
        self.timers: Dict[str, List[float]] = defaultdict(list)
        self._lock = threading.Lock()

    def increment_counter(self, name: str, value: float = 1.0, tags: Optional[Dict[str, str]] = None):
        """Increment a counter metric."""
        with self._lock:
            self.counters[self._make_key(name, tags or {})] += value

    def record_timer(self, name: str, duration_ms: float, tags: Optional[Dict[str, str]] = None):
        """Record a timer value."""
        with self._lock:
            key = self._make_key(name, tags or {})
            self.timers[key].append(duration_ms)

            # Keep only recent values
            if len(self.timers[key]) > self.max_samples:
                self.timers[key] = self.timers[key][-self.max_samples:]

    def get_counter(self, name: str, tags: Optional[Dict[str, str]] = None) -> float:
        """Get counter value."""
        return self.counters.get(self._make_key(name, tags or {}), 0.0)

    def get_timer_stats(self, name: str, tags: Optional[Dict[str, str]] = None) -> Dict[str, float]:
        """Get timer statistics."""
        return self._stats(self.timers.get(self._make_key(name, tags or {}), []))

    def get_all_metrics(self) -> Dict[str, Any]:
        """Get all current metrics."""
        with self._lock:
            return {
                "counters": dict(self.counters),
                "timers": {key: self._stats(values) for key, values in self.timers.items()},
                "timestamp": datetime.now().isoformat()
            }

    def reset(self):
        """Drop all recorded values."""
        with self._lock:
            self.counters.clear()
            self.timers.clear()

    @staticmethod
    def _stats(values: List[float]) -> Dict[str, float]:
        if not values:
            return {}

        sorted_values = sorted(values)
        count = len(sorted_values)

        return {
            "count": count,
            "min": sorted_values[0],
            "max": sorted_values[-1],
            "mean": sum(sorted_values) / count,
            "p50": sorted_values[int(count * 0.5)],
            "p95": sorted_values[int(count * 0.95)]
        }

    def _make_key(self, name: str, tags: Dict[str, str]) -> str:
        """Create a unique key for metric with tags."""
        if not tags:
            return name

        tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{name}[{tag_str}]"


def monitor_performance(
    service: str,
    operation: str,
    collector: Optional["MetricsCollector"] = None
):
    """
    Decorator for timing async operations and logging their outcome.

    Args:
        service: Service name
        operation: Operation name
        collector: Metrics collector instance (module collector if omitted)
    """
    def decorator(func: Callable) -> Callable:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"monitor_performance expects a coroutine function, got {func.__name__}")

        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            success = True
            error_type = None

            try:
                return await func(*args, **kwargs)
            except Exception as e:
                success = False
                error_type = type(e).__name__
                raise
            finally:
                duration_ms = (time.time() - start_time) * 1000
                target = collector or metrics_collector
                tags = {"service": service, "operation": operation, "success": str(success)}

                target.record_timer("operation_duration", duration_ms, tags)
                target.increment_counter("operation_count", 1.0, tags)
                if not success:
                    target.increment_counter("operation_errors", 1.0, {"service": service, "operation": operation})

                logger = logging.getLogger(f"{service}.{operation}")
                extra = {
                    'service': service,
                    'operation': operation,
                    'execution_time_ms': duration_ms,
                    'success': success
                }
                if error_type:
                    extra['error_type'] = error_type

                if success:
                    logger.info("Operation completed successfully", extra=extra)
                else:
                    logger.error("Operation failed", extra=extra)

        return wrapper

    return decorator


# Global instance
metrics_collector = MetricsCollector()


def get_monitoring_status() -> Dict[str, Any]:
    """Get overall monitoring system status."""
    return {
        "metrics": metrics_collector.get_all_metrics(),
        "timestamp": datetime.now().isoformat()
    }
