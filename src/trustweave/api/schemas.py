"""Service request/response models."""

from datetime import datetime, timezone
from typing import List, Union

from pydantic import BaseModel, Field

from trustweave.common.constants import ScoringConstants
from trustweave.data.schemas.biometric import BiometricSample
from trustweave.data.schemas.transaction import Transaction
from trustweave.data.schemas.verdict import FraudVerdict, ScoringFailure


class ScoringRequest(BaseModel):
    """One item of the ingestion stream."""
    transaction: Transaction
    biometric: BiometricSample
    recent_transactions: List[Transaction] = Field(default_factory=list)


class BatchSummary(BaseModel):
    """Counts by risk tier; failed items count as medium and as errors."""
    total_transactions: int = Field(..., ge=0)
    high_risk: int = Field(default=0, ge=0)
    medium_risk: int = Field(default=0, ge=0)
    low_risk: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)


class BatchPerformance(BaseModel):
    total_time_ms: float = Field(..., ge=0)
    avg_time_ms: float = Field(..., ge=0)
    throughput_per_second: float = Field(..., ge=0, description="Transactions per second")


class BatchScoreResponse(BaseModel):
    """Result of scoring a batch. ``results`` keeps input order."""
    results: List[Union[FraudVerdict, ScoringFailure]]
    summary: BatchSummary
    performance: BatchPerformance
    graph_node_count: int = Field(default=0, ge=0)
    model_version: str = ScoringConstants.MODEL_VERSION
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
