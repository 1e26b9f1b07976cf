"""Data schemas - canonical Pydantic definitions."""

from trustweave.data.schemas.transaction import Transaction, Location, Merchant
from trustweave.data.schemas.biometric import (
    BiometricSample,
    KeystrokeDynamics,
    MouseMovements,
    DeviceSensors,
)
from trustweave.data.schemas.verdict import FraudVerdict, ScoringFailure, RiskLevel
from trustweave.data.schemas.feedback import (
    FeedbackRecord,
    FeedbackLabel,
    EvidenceType,
    ActiveLearningQuery,
    ModelUpdateRequest,
    UpdateType,
    UpdatePriority,
    ModelPerformanceSnapshot,
    FeedbackReport,
    ReviewerCount,
)

__all__ = [
    "Transaction",
    "Location",
    "Merchant",
    "BiometricSample",
    "KeystrokeDynamics",
    "MouseMovements",
    "DeviceSensors",
    "FraudVerdict",
    "ScoringFailure",
    "RiskLevel",
    "FeedbackRecord",
    "FeedbackLabel",
    "EvidenceType",
    "ActiveLearningQuery",
    "ModelUpdateRequest",
    "UpdateType",
    "UpdatePriority",
    "ModelPerformanceSnapshot",
    "FeedbackReport",
    "ReviewerCount",
]
