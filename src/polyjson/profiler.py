"""Performance profiler for codec operations."""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import psutil


@dataclass
class OperationMetrics:
    """Performance metrics for one serialize or deserialize call."""
    operation_name: str
    start_time: float
    end_time: float
    duration: float
    input_size: int
    output_size: int
    memory_start_mb: float
    memory_end_mb: float
    memory_sampled_max_mb: float
    throughput_mbps: float


class ProfilingSession:
    """
    Mutable state of one profiled operation; the caller sets ``output_size``.

    RSS is read at the start and end of the operation and at every
    :meth:`sample` call in between, so the recorded maximum is the highest
    reading taken, not a true peak.
    """

    def __init__(self, operation_name: str, input_size: int):
        self.operation_name = operation_name
        self.input_size = input_size
        self.output_size = 0
        self.start_time = time.time()
        self.start_memory = _rss_mb()
        self.max_memory = self.start_memory

    def sample(self):
        """Take an RSS reading between phases of the operation."""
        self.max_memory = max(self.max_memory, _rss_mb())


class CodecProfiler:
    """
    Collects timing and memory metrics per codec operation.

    Memory figures are the resident set size of the current process, read
    through psutil at the start and end of each operation and whenever the
    operation calls :meth:`ProfilingSession.sample`.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize the profiler.

        Args:
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger(__name__)
        self.metrics_history: List[OperationMetrics] = []

    @contextmanager
    def profile_operation(self, operation_name: str, input_size: int = 0):
        """
        Context manager for profiling operations.

        Args:
            operation_name: Name of the operation being profiled
            input_size: Size of input data in bytes
        """
        session = ProfilingSession(operation_name, input_size)
        self.logger.debug(f"Started profiling: {operation_name}")
        try:
            yield session
        finally:
            self._finish(session)

    def _finish(self, session: ProfilingSession) -> OperationMetrics:
        end_time = time.time()
        end_memory = _rss_mb()
        session.max_memory = max(session.max_memory, end_memory)
        duration = end_time - session.start_time

        size = max(session.input_size, session.output_size)
        throughput = (size / 1024 / 1024) / duration if duration > 0 else 0.0  # MB/s

        metrics = OperationMetrics(
            operation_name=session.operation_name,
            start_time=session.start_time,
            end_time=end_time,
            duration=duration,
            input_size=session.input_size,
            output_size=session.output_size,
            memory_start_mb=session.start_memory,
            memory_end_mb=end_memory,
            memory_sampled_max_mb=session.max_memory,
            throughput_mbps=throughput,
        )
        self.metrics_history.append(metrics)

        self.logger.debug(f"Profiled {metrics.operation_name}: {duration * 1000:.3f}ms, "
                          f"{metrics.input_size}B in, {metrics.output_size}B out, "
                          f"max sampled {metrics.memory_sampled_max_mb:.1f}MB")
        return metrics

    def get_summary(self) -> Dict[str, Any]:
        """
        Get summary of all recorded metrics.

        Returns:
            Dictionary with per-operation totals and averages
        """
        if not self.metrics_history:
            return {"total_operations": 0}

        by_operation: Dict[str, List[OperationMetrics]] = {}
        for metrics in self.metrics_history:
            by_operation.setdefault(metrics.operation_name, []).append(metrics)

        return {
            "total_operations": len(self.metrics_history),
            "total_duration": sum(m.duration for m in self.metrics_history),
            "max_memory_sampled_mb": max(m.memory_sampled_max_mb for m in self.metrics_history),
            "operations": {
                name: {
                    "count": len(entries),
                    "total_duration": sum(m.duration for m in entries),
                    "average_duration": sum(m.duration for m in entries) / len(entries),
                    "total_input_bytes": sum(m.input_size for m in entries),
                    "total_output_bytes": sum(m.output_size for m in entries),
                }
                for name, entries in by_operation.items()
            },
        }

    def reset(self):
        self.metrics_history.clear()


def _rss_mb() -> float:
    return psutil.Process().memory_info().rss / 1024 / 1024
