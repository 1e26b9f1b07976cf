"""Fraud Detection Service - the scoring and feedback entry point.

Owns every stateful component (profiles, feedback, update queue, graph
snapshot cache) and is constructed explicitly at process start, then
passed to whoever needs it.

Design principles:
- Invalid input is rejected before any state changes
- Single-item failures surface with elapsed time attached
- Batch items fail individually, never the whole batch
- Every response carries processing time
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from pydantic import BaseModel, ValidationError

from trustweave.api.schemas import (
    BatchPerformance,
    BatchScoreResponse,
    BatchSummary,
    ScoringRequest,
)
from trustweave.common.config import Config, get_config
from trustweave.common.exceptions import InvalidInputError, ProcessingFailure
from trustweave.common.logging import get_logger
from trustweave.data.schemas.biometric import BiometricSample
from trustweave.data.schemas.feedback import (
    ActiveLearningQuery,
    FeedbackRecord,
    FeedbackReport,
    ModelPerformanceSnapshot,
)
from trustweave.data.schemas.transaction import Transaction
from trustweave.data.schemas.verdict import FraudVerdict, RiskLevel, ScoringFailure
from trustweave.governance.feedback_loop import FeedbackInput, FeedbackLoop, UpdateExecutor
from trustweave.governance.routing import load_routing_rules
from trustweave.models.behavior.profiler import BiometricProfiler
from trustweave.models.graph.builder import GraphBuilder
from trustweave.models.graph.cache import GraphSnapshot, GraphSnapshotCache
from trustweave.models.graph.propagator import EmbeddingPropagator, PropagatorConfig
from trustweave.models.risk.base import RiskModelConfig
from trustweave.models.risk.heuristic_model import HeuristicRiskModel
from trustweave.models.risk.scorer import FraudScorer
from trustweave.monitoring.metrics import MetricsCollector

logger = logging.getLogger(__name__)

StreamItem = Union[ScoringRequest, Mapping[str, Any], Tuple[Any, Any, Any]]


def _coerce(model: type, value: Any, what: str) -> Any:
    """Validate a model instance or a plain mapping into ``model``."""
    if isinstance(value, model):
        return value
    if value is None:
        raise InvalidInputError(f"Missing {what}")
    if isinstance(value, BaseModel):
        value = value.model_dump()
    if not isinstance(value, Mapping):
        raise InvalidInputError(f"Invalid {what}: expected a mapping", details={"type": type(value).__name__})
    try:
        return model.model_validate(dict(value))
    except ValidationError as e:
        raise InvalidInputError.from_validation(what, e) from e


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


class FraudDetectionService:
    """Real-time transaction fraud scoring with a human feedback loop.

    Orchestrates:
    1. Input validation
    2. Graph snapshot (built or reused within the staleness window)
    3. Biometric anomaly detection (then profile update)
    4. Risk scoring
    5. Review selection, feedback and scheduled model updates

    Components can be injected for testing; anything not supplied is
    built from ``config``.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        builder: Optional[GraphBuilder] = None,
        propagator: Optional[EmbeddingPropagator] = None,
        profiler: Optional[BiometricProfiler] = None,
        scorer: Optional[FraudScorer] = None,
        feedback: Optional[FeedbackLoop] = None,
        cache: Optional[GraphSnapshotCache] = None,
        metrics: Optional[MetricsCollector] = None,
        update_executor: Optional[UpdateExecutor] = None,
    ):
        """Initialize the service.

        Args:
            config: Configuration. Uses the global config if not provided.
            builder: Graph builder
            propagator: Embedding propagator
            profiler: Biometric profiler
            scorer: Fraud scorer
            feedback: Feedback loop
            cache: Graph snapshot cache
            metrics: Metrics collector
            update_executor: Model update hook for the default feedback loop
        """
        self.config = config or get_config()
        cfg = self.config
        get_logger(level=cfg.log_level.value)

        # Independent streams so one consumer's draws never shift another's
        weight_seq, baseline_seq, drift_seq = np.random.SeedSequence(cfg.model_seed).spawn(3)

        self.metrics = metrics or MetricsCollector()
        self.builder = builder or GraphBuilder()
        self.propagator = propagator or EmbeddingPropagator(
            PropagatorConfig(num_layers=cfg.embedding_layers),
            rng=np.random.default_rng(weight_seq),
        )
        self.profiler = profiler or BiometricProfiler(
            rng=np.random.default_rng(baseline_seq),
            session_log_capacity=cfg.session_log_capacity,
            session_log_samples=cfg.session_log_samples,
        )
        self.scorer = scorer or FraudScorer(
            model=HeuristicRiskModel(RiskModelConfig(
                noise_scale=cfg.score_noise_scale,
                seed=cfg.model_seed,
            )),
        )
        self.feedback = feedback or FeedbackLoop(
            rules=load_routing_rules(cfg.routing_file),
            update_executor=update_executor,
            rng=np.random.default_rng(drift_seq),
            metrics=self.metrics,
            feedback_retention=cfg.feedback_retention,
            resolved_id_retention=cfg.resolved_id_retention,
            pending_review_retention=cfg.pending_review_retention,
        )
        self.cache = cache or GraphSnapshotCache(
            ttl_seconds=cfg.graph_cache_ttl_seconds,
            max_entries=cfg.graph_cache_max_entries,
        )

        self._executor = ThreadPoolExecutor(
            max_workers=cfg.batch_max_workers,
            thread_name_prefix="ScoringWorker",
        )
        self._started = False
        self._closed = False

    # ===== LIFECYCLE =====

    def start(self) -> "FraudDetectionService":
        """Start the background update-drain and performance-drift ticks."""
        if not self._started:
            self.feedback.start(
                drain_interval=self.config.update_drain_interval_seconds,
                drift_interval=self.config.performance_drift_interval_seconds,
            )
            self._started = True
            logger.info("FraudDetectionService started (env=%s)", self.config.environment.value)
        return self

    def shutdown(self) -> None:
        """Stop background ticks and the scoring pool."""
        if self._closed:
            return
        self.feedback.stop()
        self._executor.shutdown(wait=True)
        self._closed = True
        self._started = False
        logger.info("FraudDetectionService shutdown complete")

    def __enter__(self) -> "FraudDetectionService":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.shutdown()

    # ===== SCORING =====

    def _build_snapshot(self, window: Iterable[Transaction]) -> GraphSnapshot:
        graph = self.builder.build(window)
        embeddings = self.propagator.propagate(graph)
        return GraphSnapshot(graph=graph, embeddings=embeddings, created_at=self.cache.now())

    def _snapshot(self, window: Sequence[Transaction]) -> GraphSnapshot:
        return self.cache.get_or_build(window, self._build_snapshot)

    def _score_one(
        self,
        transaction: Transaction,
        biometric: BiometricSample,
        snapshot: GraphSnapshot,
    ) -> FraudVerdict:
        anomalies = self.profiler.process(biometric)
        return self.scorer.predict(
            transaction,
            biometric,
            snapshot.embeddings,
            anomalies=anomalies,
            graph_node_count=snapshot.node_count,
        )

    @staticmethod
    def _coerce_window(recent: Optional[Iterable[Any]]) -> List[Transaction]:
        return [_coerce(Transaction, t, "recent transaction") for t in (recent or ())]

    def score(
        self,
        transaction: Any,
        biometric: Any,
        recent_transactions: Optional[Iterable[Any]] = None,
    ) -> FraudVerdict:
        """Score one transaction synchronously.

        Args:
            transaction: Transaction (model or mapping)
            biometric: Biometric sample for the same session
            recent_transactions: Sliding window used to build the graph

        Returns:
            FraudVerdict with processing_time_ms set

        Raises:
            InvalidInputError: Malformed input; nothing was changed
            ProcessingFailure: An internal step failed; carries elapsed_ms
        """
        start = time.perf_counter()
        txn = _coerce(Transaction, transaction, "transaction")
        bio = _coerce(BiometricSample, biometric, "biometric sample")
        window = GraphBuilder.window(self._coerce_window(recent_transactions), [txn])

        try:
            verdict = self._score_one(txn, bio, self._snapshot(window))
        except Exception as e:
            elapsed = _elapsed_ms(start)
            self.metrics.record_scoring_error(type(e).__name__)
            logger.error("Scoring failed for %s after %.1fms: %s", txn.transaction_id, elapsed, e)
            raise ProcessingFailure(
                f"Scoring failed: {e}",
                transaction_id=txn.transaction_id,
                elapsed_ms=elapsed,
            ) from e

        elapsed = _elapsed_ms(start)
        self.metrics.record_scoring(elapsed, verdict.risk_level.value)
        return verdict.model_copy(update={"processing_time_ms": elapsed})

    def score_batch(
        self,
        transactions: Sequence[Any],
        biometrics: Sequence[Any],
        recent_transactions: Optional[Iterable[Any]] = None,
    ) -> BatchScoreResponse:
        """Score many transactions against one shared graph.

        Biometrics pair with transactions by position. An item with a
        missing or malformed sample, or whose scoring fails, becomes a
        ScoringFailure; its siblings are unaffected.

        Raises:
            InvalidInputError: Empty batch or malformed recent window
            ProcessingFailure: The shared graph snapshot could not be
                built; carries elapsed_ms
        """
        start = time.perf_counter()
        if not transactions:
            raise InvalidInputError("Missing or invalid transactions array")
        recent = self._coerce_window(recent_transactions)

        parsed: List[Optional[Transaction]] = []
        for item in transactions:
            try:
                parsed.append(_coerce(Transaction, item, "transaction"))
            except InvalidInputError:
                parsed.append(None)

        try:
            snapshot = self._snapshot(GraphBuilder.window(recent, [t for t in parsed if t is not None]))
        except Exception as e:
            elapsed = _elapsed_ms(start)
            self.metrics.record_scoring_error(type(e).__name__)
            logger.error("Graph snapshot for batch of %d failed after %.1fms: %s", len(parsed), elapsed, e)
            raise ProcessingFailure(f"Graph snapshot failed: {e}", elapsed_ms=elapsed) from e

        futures = [
            self._executor.submit(
                self._score_batch_item,
                index,
                transactions[index],
                txn,
                biometrics[index] if index < len(biometrics) else None,
                snapshot,
            )
            for index, txn in enumerate(parsed)
        ]
        results = [f.result() for f in futures]

        total_ms = _elapsed_ms(start)
        summary = BatchSummary(
            total_transactions=len(results),
            high_risk=sum(1 for r in results if r.risk_level == RiskLevel.HIGH),
            medium_risk=sum(1 for r in results if r.risk_level == RiskLevel.MEDIUM),
            low_risk=sum(1 for r in results if r.risk_level == RiskLevel.LOW),
            errors=sum(1 for r in results if isinstance(r, ScoringFailure)),
        )
        performance = BatchPerformance(
            total_time_ms=total_ms,
            avg_time_ms=total_ms / len(results),
            throughput_per_second=len(results) / (total_ms / 1000.0) if total_ms > 0 else 0.0,
        )
        logger.info(
            "Scored batch of %d in %.1fms (%d errors)",
            summary.total_transactions, total_ms, summary.errors,
        )
        return BatchScoreResponse(
            results=results,
            summary=summary,
            performance=performance,
            graph_node_count=snapshot.node_count,
        )

    def _score_batch_item(
        self,
        index: int,
        raw: Any,
        transaction: Optional[Transaction],
        biometric: Any,
        snapshot: GraphSnapshot,
    ) -> Union[FraudVerdict, ScoringFailure]:
        start = time.perf_counter()
        if transaction is None:
            txn_id = raw.get("transaction_id") if isinstance(raw, Mapping) else None
            return self._failure(txn_id or f"item_{index}", "Invalid transaction data", start)
        if biometric is None:
            return self._failure(transaction.transaction_id, "Missing biometric data", start)

        try:
            bio = _coerce(BiometricSample, biometric, "biometric sample")
        except InvalidInputError as e:
            return self._failure(transaction.transaction_id, e.message, start)

        try:
            verdict = self._score_one(transaction, bio, snapshot)
        except Exception as e:
            logger.warning("Batch item %s degraded: %s", transaction.transaction_id, e)
            return self._failure(transaction.transaction_id, "Processing failed", start, type(e).__name__)

        elapsed = _elapsed_ms(start)
        self.metrics.record_scoring(elapsed, verdict.risk_level.value)
        return verdict.model_copy(update={"processing_time_ms": elapsed})

    def _failure(
        self,
        transaction_id: str,
        error: str,
        start: float,
        error_type: str = "InvalidInputError",
    ) -> ScoringFailure:
        elapsed = _elapsed_ms(start)
        self.metrics.record_scoring_error(error_type, batch=True)
        self.metrics.record_scoring(elapsed, RiskLevel.MEDIUM.value, degraded=True)
        return ScoringFailure(transaction_id=transaction_id, error=error, processing_time_ms=elapsed)

    def process_stream(self, items: Iterable[StreamItem]) -> Iterator[Union[FraudVerdict, ScoringFailure]]:
        """Lazily score an ingestion stream.

        Each item is a ScoringRequest, a mapping with transaction /
        biometric / recent_transactions keys, or a
        (transaction, biometric, recent_transactions) tuple. A bad item
        yields a ScoringFailure and the stream continues.
        """
        for index, item in enumerate(items):
            start = time.perf_counter()
            try:
                if isinstance(item, tuple):
                    transaction, biometric, recent = item
                elif isinstance(item, ScoringRequest):
                    transaction, biometric, recent = item.transaction, item.biometric, item.recent_transactions
                elif isinstance(item, Mapping):
                    transaction = item.get("transaction")
                    biometric = item.get("biometric")
                    recent = item.get("recent_transactions")
                else:
                    raise InvalidInputError(f"Unsupported stream item: {type(item).__name__}")
                yield self.score(transaction, biometric, recent)
            except (InvalidInputError, ProcessingFailure, ValueError) as e:
                txn_id = getattr(e, "transaction_id", None) or f"stream_{index}"
                message = e.message if hasattr(e, "message") else str(e)
                yield ScoringFailure(
                    transaction_id=txn_id,
                    error=message,
                    processing_time_ms=_elapsed_ms(start),
                )

    # ===== FEEDBACK =====

    def identify_uncertain(
        self,
        verdicts: Sequence[FraudVerdict],
        transactions: Sequence[Any],
        biometrics: Optional[Sequence[Any]] = None,
    ) -> List[ActiveLearningQuery]:
        txns = [_coerce(Transaction, t, "transaction") for t in transactions]
        bios = [_coerce(BiometricSample, b, "biometric sample") for b in (biometrics or ())]
        return self.feedback.identify_uncertain(verdicts, txns, bios)

    def submit_feedback(self, record: FeedbackInput) -> FeedbackRecord:
        return self.feedback.submit_feedback(record)

    def submit_batch_feedback(self, records: Iterable[FeedbackInput]) -> List[FeedbackRecord]:
        return self.feedback.submit_batch_feedback(records)

    def get_pending_reviews(self) -> List[ActiveLearningQuery]:
        return self.feedback.get_pending_reviews()

    def get_feedback_history(self, limit: int = 100) -> List[FeedbackRecord]:
        return self.feedback.get_feedback_history(limit)

    def get_model_performance(self) -> ModelPerformanceSnapshot:
        return self.feedback.get_model_performance()

    def get_reviewer_workload(self) -> Dict[str, int]:
        return self.feedback.get_reviewer_workload()

    def get_update_queue_status(self) -> Dict[str, int]:
        return self.feedback.get_update_queue_status()

    def generate_feedback_report(self, start: datetime, end: datetime) -> FeedbackReport:
        return self.feedback.generate_feedback_report(start, end)

    def process_update_queue(self) -> int:
        return self.feedback.process_update_queue()

    def apply_performance_drift(self) -> ModelPerformanceSnapshot:
        return self.feedback.apply_performance_drift()

    # ===== HEALTH =====

    def health_check(self) -> Dict[str, Any]:
        """Component status for liveness probes."""
        workers = self.feedback.background_alive
        degraded = self._started and not all(workers.values())
        return {
            "status": "closed" if self._closed else ("degraded" if degraded else "healthy"),
            "model_version": self.scorer.model.version,
            "environment": self.config.environment.value,
            "components": {
                "graph_builder": "healthy",
                "embedding_propagator": "healthy",
                "biometric_profiler": "healthy",
                "fraud_scorer": "healthy",
                "feedback_loop": "healthy" if not degraded else "degraded",
            },
            "profiles": self.profiler.profile_count(),
            "pending_reviews": self.feedback.pending_count,
            "queued_updates": self.feedback.get_update_queue_status()["pending"],
            "graph_cache_entries": len(self.cache),
            "background_workers": workers,
            "metrics": self.metrics.summary(),
        }
