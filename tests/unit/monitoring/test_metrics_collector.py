"""Tests for in-process metrics collection."""

import pytest

from trustweave.monitoring.metrics import MetricPoint, MetricsCollector, MetricType


class TestMetricPoint:
    """Tests for MetricPoint dataclass."""

    def test_timestamp_defaults_to_now(self):
        point = MetricPoint(metric_name="scoring_latency", value=12.5, unit="Milliseconds")
        assert point.timestamp is not None
        assert point.timestamp.tzinfo is not None


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    @pytest.fixture
    def collector(self):
        return MetricsCollector(max_points=100)

    def test_record_scoring(self, collector):
        collector.record_scoring(10.0, "high")
        collector.record_scoring(30.0, "low", degraded=True)

        latencies = collector.points(MetricType.SCORING_LATENCY.value)
        assert [p.value for p in latencies] == [10.0, 30.0]
        assert latencies[1].dimensions == {"degraded": "true"}

    def test_summary(self, collector):
        for latency in (10.0, 20.0, 30.0):
            collector.record_scoring(latency, "medium")
        collector.record_scoring_error("ProcessingFailure", batch=True)
        collector.record_feedback("fraud", "manual_review")
        collector.record_update("high", 3, success=True)
        collector.record_update("high", 3, success=False)

        summary = collector.summary()
        assert summary["transactions_scored"] == 3
        assert summary["scoring_errors"] == 1
        assert summary["feedback_submitted"] == 1
        assert summary["updates_executed"] == 1
        assert summary["updates_failed"] == 1
        assert summary["risk_levels"] == {"medium": 3}
        assert summary["latency_ms_mean"] == pytest.approx(20.0)

    def test_empty_summary(self, collector):
        summary = collector.summary()
        assert summary["transactions_scored"] == 0
        assert summary["latency_ms_p95"] == 0.0

    def test_buffer_bounded_but_counters_keep_counting(self):
        collector = MetricsCollector(max_points=5)
        for _ in range(10):
            collector.record_scoring_error("InvalidInputError")

        assert len(collector.points()) == 5
        assert collector.count(MetricType.SCORING_ERROR.value) == 10

    def test_reset(self, collector):
        collector.record_feedback("fraud", "manual_review")
        collector.reset()
        assert collector.points() == []
        assert collector.count(MetricType.FEEDBACK_SUBMITTED.value) == 0
