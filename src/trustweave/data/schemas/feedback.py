"""Feedback and active learning schemas."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from trustweave.common.constants import FeedbackConstants


def _utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so window arithmetic never mixes kinds."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class FeedbackLabel(str, Enum):
    """Ground truth a reviewer assigns."""
    FRAUD = "fraud"
    LEGITIMATE = "legitimate"
    UNKNOWN = "unknown"


class EvidenceType(str, Enum):
    """Where the reviewer's label came from."""
    MANUAL_REVIEW = "manual_review"
    CUSTOMER_DISPUTE = "customer_dispute"
    BANK_CONFIRMATION = "bank_confirmation"
    AUTOMATED_VERIFICATION = "automated_verification"


class UpdateType(str, Enum):
    INCREMENTAL = "incremental"
    FULL_RETRAIN = "full_retrain"


class UpdatePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class FeedbackRecord(BaseModel):
    """A reviewer's label for one transaction.

    Keyed by transaction_id; a later record for the same id replaces the
    earlier one, but a stored record is never mutated.
    """
    transaction_id: str = Field(..., min_length=1)
    actual_label: FeedbackLabel
    confidence: float = Field(..., ge=0.0, le=1.0)
    reviewer_id: str = Field(..., min_length=1)
    review_timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    evidence_type: EvidenceType = EvidenceType.MANUAL_REVIEW
    notes: Optional[str] = None

    model_config = {"frozen": True, "allow_inf_nan": False}

    @field_validator("review_timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return _utc(value)


class ActiveLearningQuery(BaseModel):
    """A scored transaction selected for human review."""
    transaction_id: str
    uncertainty_score: float = Field(..., ge=0.0, le=1.0)
    diversity_score: float = Field(..., ge=0.0, le=1.0)
    importance_score: float = Field(..., ge=0.0, le=1.0)
    query_reasons: List[str] = Field(default_factory=list)
    suggested_reviewers: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}

    @property
    def combined_score(self) -> float:
        return (
            FeedbackConstants.UNCERTAINTY_WEIGHT * self.uncertainty_score
            + FeedbackConstants.DIVERSITY_WEIGHT * self.diversity_score
            + FeedbackConstants.IMPORTANCE_WEIGHT * self.importance_score
        )


@dataclass
class ModelUpdateRequest:
    """A queued model update.

    Mutable only in its scheduling fields: a failed execution moves
    ``scheduled_time`` forward and bumps ``attempts``.
    """
    feedback_batch: Tuple[FeedbackRecord, ...]
    update_type: UpdateType
    priority: UpdatePriority
    scheduled_time: datetime
    update_id: str = field(default_factory=lambda: f"upd_{uuid4().hex[:12]}")
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    attempts: int = 0
    last_error: Optional[str] = None

    @property
    def batch_size(self) -> int:
        return len(self.feedback_batch)

    def sort_key(self) -> Tuple[int, datetime]:
        """High priority first, then earliest scheduled."""
        return (-self.priority.rank, self.scheduled_time)


class ModelPerformanceSnapshot(BaseModel):
    """Aggregate model quality, drifted by updates and periodic variance."""
    accuracy: float = 0.92
    precision: float = 0.89
    recall: float = 0.94
    f1_score: float = 0.91
    false_positive_rate: float = 0.08
    false_negative_rate: float = 0.06
    auc: float = 0.96
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    sample_size: int = 1000


class ReviewerCount(BaseModel):
    reviewer: str
    count: int


class FeedbackReport(BaseModel):
    """Summary of feedback received inside a time range."""
    start: datetime
    end: datetime
    total_feedback: int
    fraud_confirmed: int
    legitimate_confirmed: int
    unknown: int
    accuracy_improvement: float
    top_reviewers: List[ReviewerCount] = Field(default_factory=list)
    evidence_breakdown: Dict[str, int] = Field(default_factory=dict)
    common_patterns: List[str] = Field(default_factory=list)
