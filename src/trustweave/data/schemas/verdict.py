"""Fraud verdict schemas - what scoring hands back to callers."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from trustweave.common.constants import ScoringConstants


class RiskLevel(str, Enum):
    """Risk tier derived from fraud probability."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_probability(cls, probability: float) -> "RiskLevel":
        """Map a probability onto the tier bands (> 0.7 high, > 0.4 medium)."""
        if probability > ScoringConstants.HIGH_RISK_THRESHOLD:
            return cls.HIGH
        if probability > ScoringConstants.MEDIUM_RISK_THRESHOLD:
            return cls.MEDIUM
        return cls.LOW


class FraudVerdict(BaseModel):
    """Scoring result for one transaction.

    Produced once per transaction and immutable afterwards.
    """
    transaction_id: str
    fraud_probability: float = Field(..., ge=0.0, le=1.0)
    risk_level: RiskLevel
    explanation: List[str] = Field(default_factory=list)
    biometric_anomaly_count: int = Field(default=0, ge=0)
    confidence: float = Field(..., ge=0.0, le=1.0, description="Scorer certainty")
    graph_node_count: int = Field(default=0, ge=0)
    model_version: str = Field(default=ScoringConstants.MODEL_VERSION)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    processing_time_ms: float = Field(default=0.0, ge=0.0)
    error: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def is_degraded(self) -> bool:
        return self.error is not None


class ScoringFailure(BaseModel):
    """Placeholder result for a batch item whose scoring failed.

    Carries the neutral default verdict so downstream counts stay whole.
    """
    transaction_id: str
    error: str
    fraud_probability: float = 0.5
    risk_level: RiskLevel = RiskLevel.MEDIUM
    processing_time_ms: float = Field(default=0.0, ge=0.0)

    model_config = {"frozen": True}

    @property
    def is_degraded(self) -> bool:
        return True
