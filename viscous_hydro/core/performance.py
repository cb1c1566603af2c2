"""
Performance monitoring utilities for the hydrodynamic step.

This module provides timing of named operations (grid sweeps, RK sub-steps)
and a report of where the time goes.
"""

import functools
import threading
import time
from collections import defaultdict
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import Any

from ..utils.logging_config import performance_logger


class StepProfiler:
    """
    Wall-clock profiler with hierarchical call tracking.

    Timings are accumulated per operation name. The call stack is kept per
    thread so operations timed inside worker threads nest correctly.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._local = threading.local()
        self.operation_times: dict[str, list[float]] = defaultdict(list)
        self.operation_counts: dict[str, int] = defaultdict(int)
        self.call_hierarchy: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self.operation_metadata: dict[str, dict[str, Any]] = defaultdict(dict)

    @property
    def _call_stack(self) -> list[str]:
        if not hasattr(self._local, "stack"):
            self._local.stack = []
        return self._local.stack

    @contextmanager
    def profile_operation(
        self, operation_name: str, metadata: dict[str, Any] | None = None
    ) -> Generator[None, None, None]:
        """
        Time the enclosed block under ``operation_name``.

        Only outermost operations of a thread are sent to the performance
        logger; nested ones are counted in the hierarchy. ``metadata`` (tau,
        number of cells, ...) is attached to the record.
        """
        start_time = time.perf_counter()
        stack = self._call_stack
        parent_operation = stack[-1] if stack else "root"
        stack.append(operation_name)

        try:
            yield
        finally:
            elapsed = time.perf_counter() - start_time
            stack.pop()
            with self._lock:
                self.operation_times[operation_name].append(elapsed)
                self.operation_counts[operation_name] += 1
                self.call_hierarchy[parent_operation][operation_name] += 1
                if metadata:
                    self.operation_metadata[operation_name].update(metadata)
            if parent_operation == "root":
                performance_logger.log_operation(operation_name, elapsed, **(metadata or {}))

    def report(self) -> dict[str, Any]:
        """Summary of total, mean and count per operation, slowest first."""
        with self._lock:
            operations = {
                name: {
                    "count": self.operation_counts[name],
                    "total_time": sum(times),
                    "mean_time": sum(times) / len(times),
                }
                for name, times in self.operation_times.items()
            }
            hierarchy = {parent: dict(children) for parent, children in self.call_hierarchy.items()}

        slowest = sorted(operations.items(), key=lambda item: item[1]["total_time"], reverse=True)
        return {
            "total_operations": sum(op["count"] for op in operations.values()),
            "operations": dict(slowest),
            "hierarchy": hierarchy,
        }

    def reset_stats(self) -> None:
        with self._lock:
            self.operation_times.clear()
            self.operation_counts.clear()
            self.call_hierarchy.clear()
            self.operation_metadata.clear()


_step_profiler = StepProfiler()


def get_step_profiler() -> StepProfiler:
    return _step_profiler


def monitor_performance(operation_name: str) -> Callable[[Callable], Callable]:
    """Time every call of the decorated function with the global profiler."""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with _step_profiler.profile_operation(operation_name):
                return func(*args, **kwargs)
        return wrapper
    return decorator


def profile_operation(operation_name: str, metadata: dict[str, Any] | None = None):
    """Context manager timing a block with the global profiler."""
    return _step_profiler.profile_operation(operation_name, metadata)


def performance_report() -> dict[str, Any]:
    """Report of all operations timed so far."""
    return _step_profiler.report()


def reset_performance_stats() -> None:
    """Clear all collected timings."""
    _step_profiler.reset_stats()
