"""TrustWeave - graph, biometric and feedback-driven transaction fraud scoring."""

__version__ = "0.1.0"
__author__ = "TrustWeave Team"

from trustweave.data.schemas import (
    Transaction,
    BiometricSample,
    FraudVerdict,
    FeedbackRecord,
)

__all__ = [
    "Transaction",
    "BiometricSample",
    "FraudVerdict",
    "FeedbackRecord",
]
