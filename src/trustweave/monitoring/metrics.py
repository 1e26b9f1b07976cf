"""Monitoring - track scoring latency, scoring errors, feedback and model updates."""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

import numpy as np

logger = logging.getLogger(__name__)


class MetricType(str, Enum):
    SCORING_LATENCY = "scoring_latency"
    SCORING_ERROR = "scoring_error"
    RISK_LEVEL = "risk_level"
    FEEDBACK_SUBMITTED = "feedback_submitted"
    UPDATE_EXECUTED = "update_executed"
    UPDATE_FAILED = "update_failed"


@dataclass
class MetricPoint:
    metric_name: str
    value: float
    unit: str = "None"
    timestamp: Optional[datetime] = None
    dimensions: Optional[Dict[str, str]] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)


class MetricsCollector:
    """Collects metrics in a bounded in-process buffer.

    Oldest points are dropped once ``max_points`` is reached; the
    running counters keep counting.
    """

    def __init__(self, max_points: int = 10_000):
        self.max_points = max_points
        self._points: Deque[MetricPoint] = deque(maxlen=max_points)
        self._counters: Dict[str, int] = {}
        self._lock = threading.Lock()

    def record_metric(self, metric: MetricPoint) -> None:
        with self._lock:
            self._points.append(metric)
            self._counters[metric.metric_name] = self._counters.get(metric.metric_name, 0) + 1

    def record_scoring(self, latency_ms: float, risk_level: str, degraded: bool = False) -> None:
        """Record latency and risk tier for one scored transaction."""
        self.record_metric(MetricPoint(
            metric_name=MetricType.SCORING_LATENCY.value,
            value=latency_ms,
            unit="Milliseconds",
            dimensions={"degraded": str(degraded).lower()},
        ))
        self.record_metric(MetricPoint(
            metric_name=MetricType.RISK_LEVEL.value,
            value=1.0,
            unit="Count",
            dimensions={"risk_level": risk_level},
        ))

    def record_scoring_error(self, error_type: str, batch: bool = False) -> None:
        self.record_metric(MetricPoint(
            metric_name=MetricType.SCORING_ERROR.value,
            value=1.0,
            unit="Count",
            dimensions={"error_type": error_type, "mode": "batch" if batch else "single"},
        ))

    def record_feedback(self, label: str, evidence_type: str) -> None:
        self.record_metric(MetricPoint(
            metric_name=MetricType.FEEDBACK_SUBMITTED.value,
            value=1.0,
            unit="Count",
            dimensions={"label": label, "evidence_type": evidence_type},
        ))

    def record_update(self, priority: str, batch_size: int, success: bool) -> None:
        self.record_metric(MetricPoint(
            metric_name=(MetricType.UPDATE_EXECUTED if success else MetricType.UPDATE_FAILED).value,
            value=float(batch_size),
            unit="Count",
            dimensions={"priority": priority},
        ))

    def points(self, metric_name: Optional[str] = None) -> List[MetricPoint]:
        with self._lock:
            return [p for p in self._points if metric_name is None or p.metric_name == metric_name]

    def count(self, metric_name: str) -> int:
        with self._lock:
            return self._counters.get(metric_name, 0)

    def summary(self) -> Dict[str, Any]:
        """Counters plus latency statistics over the buffered window."""
        latencies = [p.value for p in self.points(MetricType.SCORING_LATENCY.value)]
        risk_counts: Dict[str, int] = {}
        for p in self.points(MetricType.RISK_LEVEL.value):
            level = (p.dimensions or {}).get("risk_level", "unknown")
            risk_counts[level] = risk_counts.get(level, 0) + 1

        with self._lock:
            counters = dict(self._counters)

        return {
            "transactions_scored": counters.get(MetricType.SCORING_LATENCY.value, 0),
            "scoring_errors": counters.get(MetricType.SCORING_ERROR.value, 0),
            "feedback_submitted": counters.get(MetricType.FEEDBACK_SUBMITTED.value, 0),
            "updates_executed": counters.get(MetricType.UPDATE_EXECUTED.value, 0),
            "updates_failed": counters.get(MetricType.UPDATE_FAILED.value, 0),
            "risk_levels": risk_counts,
            "latency_ms_mean": float(np.mean(latencies)) if latencies else 0.0,
            "latency_ms_p95": float(np.percentile(latencies, 95)) if latencies else 0.0,
        }

    def reset(self) -> None:
        with self._lock:
            self._points.clear()
            self._counters.clear()
