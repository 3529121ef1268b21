"""Tests for the codec profiler."""

import pytest

from polyjson.profiler import CodecProfiler, OperationMetrics


class TestCodecProfiler:
    """Tests for CodecProfiler class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.profiler = CodecProfiler()

    def test_empty_summary(self):
        """Test the summary before any operation."""
        assert self.profiler.get_summary() == {"total_operations": 0}

    def test_profile_operation(self):
        """Test one profiled operation is recorded."""
        with self.profiler.profile_operation("deserialize", input_size=128) as session:
            session.output_size = 64

        [metrics] = self.profiler.metrics_history
        assert isinstance(metrics, OperationMetrics)
        assert metrics.operation_name == "deserialize"
        assert metrics.input_size == 128
        assert metrics.output_size == 64
        assert metrics.duration >= 0
        assert metrics.memory_sampled_max_mb >= metrics.memory_start_mb > 0
        assert metrics.memory_sampled_max_mb >= metrics.memory_end_mb

    def test_sample_raises_recorded_maximum(self):
        """Test a reading between phases counts toward the recorded maximum."""
        with self.profiler.profile_operation("deserialize") as session:
            session.start_memory = session.max_memory = 0.0
            session.sample()
            sampled = session.max_memory

        [metrics] = self.profiler.metrics_history
        assert sampled > 0
        assert metrics.memory_sampled_max_mb >= sampled

    def test_failed_operation_is_recorded(self):
        """Test metrics are recorded when the operation raises."""
        with pytest.raises(RuntimeError):
            with self.profiler.profile_operation("serialize"):
                raise RuntimeError("boom")

        assert len(self.profiler.metrics_history) == 1

    def test_summary_per_operation(self):
        """Test the summary aggregates by operation name."""
        for size in (10, 20):
            with self.profiler.profile_operation("deserialize", size):
                pass
        with self.profiler.profile_operation("serialize") as session:
            session.output_size = 5

        summary = self.profiler.get_summary()

        assert summary["total_operations"] == 3
        assert summary["operations"]["deserialize"]["count"] == 2
        assert summary["operations"]["deserialize"]["total_input_bytes"] == 30
        assert summary["operations"]["serialize"]["total_output_bytes"] == 5
        assert summary["max_memory_sampled_mb"] > 0

    def test_reset(self):
        """Test clearing recorded metrics."""
        with self.profiler.profile_operation("serialize"):
            pass

        self.profiler.reset()

        assert self.profiler.get_summary() == {"total_operations": 0}
