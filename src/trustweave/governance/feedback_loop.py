"""Human-in-the-loop feedback loop.

Features:
- Review selection via active learning (pending-review queue)
- Feedback storage with bounded retention (latest record per transaction wins)
- Reviewer workload tracking
- Priority-ordered model update queue with fixed-backoff retry
- Aggregate performance snapshot nudged by updates and periodic drift
"""

import logging
import threading
from collections import Counter, OrderedDict, deque
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from pydantic import ValidationError

from trustweave.common.constants import FeedbackConstants
from trustweave.common.exceptions import InvalidInputError
from trustweave.data.schemas.biometric import BiometricSample
from trustweave.data.schemas.feedback import (
    ActiveLearningQuery,
    EvidenceType,
    FeedbackLabel,
    FeedbackRecord,
    FeedbackReport,
    ModelPerformanceSnapshot,
    ModelUpdateRequest,
    ReviewerCount,
    UpdatePriority,
    UpdateType,
)
from trustweave.data.schemas.transaction import Transaction
from trustweave.data.schemas.verdict import FraudVerdict
from trustweave.governance.active_learning import ActiveLearner
from trustweave.governance.routing import ReviewRoutingRules
from trustweave.governance.scheduler import PeriodicTask
from trustweave.monitoring.metrics import MetricsCollector

logger = logging.getLogger(__name__)

FeedbackInput = Union[FeedbackRecord, Mapping[str, Any]]
UpdateExecutor = Callable[[ModelUpdateRequest], None]

UPDATE_DELAYS = {
    UpdatePriority.HIGH: timedelta(0),
    UpdatePriority.MEDIUM: timedelta(seconds=FeedbackConstants.MEDIUM_DELAY_SECONDS),
    UpdatePriority.LOW: timedelta(seconds=FeedbackConstants.LOW_DELAY_SECONDS),
}

# Used when stored feedback carries no recurring signal
DEFAULT_PATTERNS = [
    "High-value transactions flagged incorrectly",
    "ATM withdrawals with legitimate explanations",
    "New user behavior patterns",
    "Cross-border transactions",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeedbackLoop:
    """Owns all feedback-side state.

    Each transaction id moves scored -> pending-review -> resolved.
    Resolved is terminal: a resolved id never re-enters the pending
    queue, even after its record ages out of the bounded history.

    Thread-safe. Feedback state, the update queue and the performance
    snapshot each have their own lock; no method holds two at once.
    """

    def __init__(
        self,
        rules: Optional[ReviewRoutingRules] = None,
        update_executor: Optional[UpdateExecutor] = None,
        rng: Optional[np.random.Generator] = None,
        metrics: Optional[MetricsCollector] = None,
        feedback_retention: int = 10_000,
        resolved_id_retention: int = 100_000,
        pending_review_retention: int = 10_000,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize feedback loop.

        Args:
            rules: Reviewer roster and routing thresholds
            update_executor: Applies a model update; raising reschedules it
            rng: Generator for performance drift
            metrics: Optional metrics sink
            feedback_retention: Feedback records kept (oldest evicted)
            resolved_id_retention: Resolved transaction ids remembered
            pending_review_retention: Pending reviews kept (oldest selection evicted)
            clock: Source of "now" (UTC)
        """
        self.rules = rules or ReviewRoutingRules()
        self.learner = ActiveLearner(self.rules)
        self._executor = update_executor
        self._rng = rng if rng is not None else np.random.default_rng()
        self._metrics = metrics
        self._clock = clock

        self._feedback_retention = feedback_retention
        self._resolved_retention = max(resolved_id_retention, feedback_retention)
        self._pending_retention = pending_review_retention

        # Feedback state
        self._lock = threading.Lock()
        self._history: "OrderedDict[str, FeedbackRecord]" = OrderedDict()
        self._resolved: "OrderedDict[str, None]" = OrderedDict()
        self._pending: "OrderedDict[str, ActiveLearningQuery]" = OrderedDict()
        self._workload: Dict[str, int] = {r: 0 for r in self.rules.reviewers}
        self._submissions: Deque[datetime] = deque()

        # Update queue, kept sorted by ModelUpdateRequest.sort_key
        self._queue_lock = threading.Lock()
        self._queue: List[ModelUpdateRequest] = []

        # Performance snapshot and applied improvements (for reports)
        self._perf_lock = threading.Lock()
        self._performance = ModelPerformanceSnapshot(last_updated=self._clock())
        self._improvements: Deque[Tuple[datetime, float]] = deque(maxlen=feedback_retention)

        self._tasks: List[PeriodicTask] = []

    # ===== ACTIVE LEARNING =====

    def identify_uncertain(
        self,
        verdicts: Sequence[FraudVerdict],
        transactions: Sequence[Transaction],
        biometrics: Optional[Sequence[BiometricSample]] = None,
    ) -> List[ActiveLearningQuery]:
        """Select the scored transactions most worth a human review.

        Every selected item enters the pending-review queue, which keeps
        the most recent selections up to its retention bound. At most the
        top 10 by combined score are returned. Resolved ids are skipped.

        Args:
            verdicts: Verdicts to consider
            transactions: The transactions behind them (matched by id)
            biometrics: Session samples; accepted for interface parity,
                not used by the current scoring rules

        Returns:
            Queries sorted by combined score, highest first
        """
        by_id = {t.transaction_id: t for t in transactions}

        with self._lock:
            total_feedback = len(self._resolved)
            workload = dict(self._workload)
            resolved = set(self._resolved)

        selected = []
        for verdict in verdicts:
            if verdict.transaction_id in resolved:
                continue
            transaction = by_id.get(verdict.transaction_id)
            if transaction is None:
                logger.warning("No transaction supplied for verdict %s, skipping", verdict.transaction_id)
                continue
            query = self.learner.evaluate(verdict, transaction, total_feedback, workload)
            if query is not None:
                selected.append(query)

        with self._lock:
            # Feedback may have landed while scoring; resolved wins
            selected = [q for q in selected if q.transaction_id not in self._resolved]
            for query in selected:
                self._pending.pop(query.transaction_id, None)
                self._pending[query.transaction_id] = query
            evicted = 0
            while len(self._pending) > self._pending_retention:
                self._pending.popitem(last=False)
                evicted += 1

        if evicted:
            logger.warning("Pending review queue full, dropped %d oldest reviews", evicted)

        ranked = self.learner.rank(selected)
        logger.info("Identified %d transactions for human review", len(selected))
        return ranked

    # ===== FEEDBACK =====

    @staticmethod
    def _validate(record: FeedbackInput) -> FeedbackRecord:
        if isinstance(record, FeedbackRecord):
            return record
        if isinstance(record, Mapping):
            try:
                return FeedbackRecord.model_validate(dict(record))
            except ValidationError as e:
                raise InvalidInputError.from_validation("feedback", e) from e
        raise InvalidInputError(
            "Invalid feedback: expected a feedback record",
            details={"type": type(record).__name__},
        )

    def submit_feedback(self, record: FeedbackInput) -> FeedbackRecord:
        """Store a reviewer's label and resolve the transaction.

        Raises:
            InvalidInputError: If transaction_id, actual_label or
                reviewer_id is missing or malformed. Nothing is stored.
        """
        validated = self._validate(record)
        trigger = self._accept(validated)
        if trigger:
            self.queue_update([validated], UpdateType.INCREMENTAL, UpdatePriority.HIGH)
        return validated

    def submit_batch_feedback(self, records: Iterable[FeedbackInput]) -> List[FeedbackRecord]:
        """Submit several records; five or more also queue a medium update.

        All records are validated before any is stored.
        """
        validated = [self._validate(r) for r in records]
        for record in validated:
            if self._accept(record):
                self.queue_update([record], UpdateType.INCREMENTAL, UpdatePriority.HIGH)

        if len(validated) >= FeedbackConstants.BATCH_UPDATE_SIZE:
            self.queue_update(validated, UpdateType.INCREMENTAL, UpdatePriority.MEDIUM)
        return validated

    def _accept(self, record: FeedbackRecord) -> bool:
        """Store a validated record. Returns True if it warrants an immediate update."""
        now = self._clock()
        window_start = now - timedelta(seconds=FeedbackConstants.TRAILING_WINDOW_SECONDS)

        with self._lock:
            self._history.pop(record.transaction_id, None)
            self._history[record.transaction_id] = record
            while len(self._history) > self._feedback_retention:
                self._history.popitem(last=False)

            self._resolved.pop(record.transaction_id, None)
            self._resolved[record.transaction_id] = None
            while len(self._resolved) > self._resolved_retention:
                self._resolved.popitem(last=False)

            self._pending.pop(record.transaction_id, None)
            self._workload[record.reviewer_id] = self._workload.get(record.reviewer_id, 0) + 1

            self._submissions.append(now)
            while self._submissions and self._submissions[0] < window_start:
                self._submissions.popleft()
            recent = len(self._submissions)

        if self._metrics is not None:
            self._metrics.record_feedback(record.actual_label.value, record.evidence_type.value)
        logger.info(
            "Feedback stored for transaction %s: %s (reviewer %s)",
            record.transaction_id, record.actual_label.value, record.reviewer_id,
        )

        confirmed = (
            record.confidence > FeedbackConstants.IMMEDIATE_UPDATE_CONFIDENCE
            and record.evidence_type == EvidenceType.BANK_CONFIRMATION
        )
        return confirmed or recent >= FeedbackConstants.TRAILING_WINDOW_TRIGGER

    # ===== MODEL UPDATES =====

    def queue_update(
        self,
        feedback_batch: Sequence[FeedbackRecord],
        update_type: UpdateType,
        priority: UpdatePriority,
    ) -> ModelUpdateRequest:
        """Schedule a model update (high: now, medium: +5 min, low: +30 min)."""
        request = ModelUpdateRequest(
            feedback_batch=tuple(feedback_batch),
            update_type=update_type,
            priority=priority,
            scheduled_time=self._clock() + UPDATE_DELAYS[priority],
        )
        self._enqueue(request)
        logger.info(
            "Queued %s %s model update %s with %d feedback samples",
            priority.value, update_type.value, request.update_id, request.batch_size,
        )
        return request

    def _enqueue(self, request: ModelUpdateRequest) -> None:
        with self._queue_lock:
            self._queue.append(request)
            self._queue.sort(key=ModelUpdateRequest.sort_key)

    def process_update_queue(self) -> int:
        """Execute every due update; failures are rescheduled +10 min.

        Due updates are removed from the queue under the lock before
        execution, so concurrent ticks never run the same update twice.

        Returns:
            Number of updates executed successfully
        """
        now = self._clock()
        with self._queue_lock:
            due = [u for u in self._queue if u.scheduled_time <= now]
            self._queue = [u for u in self._queue if u.scheduled_time > now]

        executed = 0
        for update in due:
            try:
                if self._executor is not None:
                    self._executor(update)
            except Exception as e:
                update.attempts += 1
                update.last_error = str(e)
                update.scheduled_time = self._clock() + timedelta(
                    seconds=FeedbackConstants.RETRY_BACKOFF_SECONDS
                )
                self._enqueue(update)
                if self._metrics is not None:
                    self._metrics.record_update(update.priority.value, update.batch_size, success=False)
                logger.warning(
                    "Model update %s failed (attempt %d), rescheduled for %s: %s",
                    update.update_id, update.attempts, update.scheduled_time.isoformat(), e,
                )
                continue

            self._apply_improvement(update.batch_size)
            executed += 1
            if self._metrics is not None:
                self._metrics.record_update(update.priority.value, update.batch_size, success=True)
            logger.info(
                "Executed %s model update %s with %d samples",
                update.update_type.value, update.update_id, update.batch_size,
            )
        return executed

    def _apply_improvement(self, batch_size: int) -> None:
        factor = min(
            FeedbackConstants.IMPROVEMENT_CAP,
            batch_size * FeedbackConstants.IMPROVEMENT_PER_SAMPLE,
        )
        ceiling = FeedbackConstants.METRIC_CEILING
        now = self._clock()

        with self._perf_lock:
            perf = self._performance
            accuracy = min(ceiling, perf.accuracy + factor)
            precision = min(ceiling, perf.precision + factor * FeedbackConstants.PRECISION_FACTOR)
            recall = min(ceiling, perf.recall + factor * FeedbackConstants.RECALL_FACTOR)
            self._improvements.append((now, accuracy - perf.accuracy))
            self._performance = perf.model_copy(update={
                "accuracy": accuracy,
                "precision": precision,
                "recall": recall,
                "f1_score": _f1(precision, recall),
                "last_updated": now,
                "sample_size": perf.sample_size + batch_size,
            })

    def apply_performance_drift(self) -> ModelPerformanceSnapshot:
        """One step of bounded random drift (±0.5%) on accuracy/precision/recall."""
        amplitude = FeedbackConstants.DRIFT_AMPLITUDE
        with self._perf_lock:
            variation = float(self._rng.uniform(-amplitude, amplitude))
            perf = self._performance
            accuracy = _clamp(perf.accuracy + variation, 0.85, 0.99)
            precision = _clamp(perf.precision + variation, 0.80, 0.99)
            recall = _clamp(perf.recall + variation, 0.85, 0.99)
            self._performance = perf.model_copy(update={
                "accuracy": accuracy,
                "precision": precision,
                "recall": recall,
                "f1_score": _f1(precision, recall),
                "false_positive_rate": 1 - precision,
                "false_negative_rate": 1 - recall,
                "last_updated": self._clock(),
            })
            return self._performance

    # ===== BACKGROUND TICKS =====

    def start(self, drain_interval: float = 30.0, drift_interval: float = 300.0) -> None:
        """Start the update-drain and performance-drift ticks."""
        if self._tasks:
            return
        self._tasks = [
            PeriodicTask("UpdateQueueDrain", drain_interval, self.process_update_queue),
            PeriodicTask("PerformanceDrift", drift_interval, self.apply_performance_drift),
        ]
        for task in self._tasks:
            task.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        for task in self._tasks:
            task.stop(timeout)
        self._tasks = []

    @property
    def background_alive(self) -> Dict[str, bool]:
        return {task.name: task.is_alive for task in self._tasks}

    # ===== QUERIES =====

    def is_resolved(self, transaction_id: str) -> bool:
        with self._lock:
            return transaction_id in self._resolved

    def get_pending_reviews(self) -> List[ActiveLearningQuery]:
        with self._lock:
            pending = list(self._pending.values())
        return sorted(pending, key=lambda q: q.combined_score, reverse=True)

    def get_feedback_history(self, limit: int = FeedbackConstants.DEFAULT_HISTORY_LIMIT) -> List[FeedbackRecord]:
        """Newest first by review timestamp."""
        with self._lock:
            records = list(self._history.values())
        records.sort(key=lambda r: r.review_timestamp, reverse=True)
        return records[:max(0, limit)]

    def get_model_performance(self) -> ModelPerformanceSnapshot:
        with self._perf_lock:
            return self._performance.model_copy()

    def get_reviewer_workload(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._workload)

    def get_update_queue_status(self) -> Dict[str, int]:
        with self._queue_lock:
            priorities = Counter(u.priority for u in self._queue)
            pending = len(self._queue)
        return {
            "pending": pending,
            "high_priority": priorities.get(UpdatePriority.HIGH, 0),
            "medium_priority": priorities.get(UpdatePriority.MEDIUM, 0),
            "low_priority": priorities.get(UpdatePriority.LOW, 0),
        }

    def pending_updates(self) -> List[ModelUpdateRequest]:
        with self._queue_lock:
            return list(self._queue)

    def generate_feedback_report(self, start: datetime, end: datetime) -> FeedbackReport:
        """Summarize feedback whose review timestamp falls in [start, end]."""
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        if end < start:
            raise InvalidInputError(
                "Invalid time range: end precedes start",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )

        with self._lock:
            in_range = [r for r in self._history.values() if start <= r.review_timestamp <= end]
        with self._perf_lock:
            improvement = sum(delta for at, delta in self._improvements if start <= at <= end)

        labels = Counter(r.actual_label for r in in_range)
        reviewers = Counter(r.reviewer_id for r in in_range)
        evidence = Counter(r.evidence_type.value for r in in_range)

        return FeedbackReport(
            start=start,
            end=end,
            total_feedback=len(in_range),
            fraud_confirmed=labels.get(FeedbackLabel.FRAUD, 0),
            legitimate_confirmed=labels.get(FeedbackLabel.LEGITIMATE, 0),
            unknown=labels.get(FeedbackLabel.UNKNOWN, 0),
            accuracy_improvement=improvement,
            top_reviewers=[
                ReviewerCount(reviewer=r, count=c)
                for r, c in reviewers.most_common(FeedbackConstants.TOP_REVIEWERS)
            ],
            evidence_breakdown=dict(evidence),
            common_patterns=_common_patterns(in_range),
        )

    @property
    def feedback_count(self) -> int:
        with self._lock:
            return len(self._history)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)


def _f1(precision: float, recall: float) -> float:
    if precision + recall == 0:
        return 0.0
    return 2 * precision * recall / (precision + recall)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _common_patterns(records: Sequence[FeedbackRecord], limit: int = 4) -> List[str]:
    """Recurring label/evidence pairs and reviewer notes, else a fixed catalogue."""
    patterns = []
    pairs = Counter((r.actual_label.value, r.evidence_type.value) for r in records)
    for (label, evidence), count in pairs.most_common():
        if count < 2:
            break
        patterns.append(f"{label.capitalize()} confirmed via {evidence.replace('_', ' ')} ({count} cases)")

    notes = Counter(r.notes.strip().lower() for r in records if r.notes and r.notes.strip())
    for note, count in notes.most_common():
        if count < 2:
            break
        patterns.append(f"Recurring reviewer note: {note} ({count} cases)")

    return patterns[:limit] if patterns else list(DEFAULT_PATTERNS)
