"""Service entry point."""

from trustweave.api.schemas import BatchPerformance, BatchScoreResponse, BatchSummary, ScoringRequest
from trustweave.api.service import FraudDetectionService

__all__ = [
    "FraudDetectionService",
    "ScoringRequest",
    "BatchScoreResponse",
    "BatchSummary",
    "BatchPerformance",
]
