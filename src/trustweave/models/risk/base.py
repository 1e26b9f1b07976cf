"""Base classes for risk scoring models.

Defines the interface every risk model implements. The model supplies
a base score, its confidence and the rule descriptions behind it;
biometric fusion and risk tiering stay in FraudScorer, so a trained
model can replace the heuristic without touching callers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from trustweave.common.constants import ScoringConstants
from trustweave.data.schemas.biometric import BiometricSample
from trustweave.data.schemas.transaction import Transaction
from trustweave.models.behavior.deviation import BiometricAnomaly
from trustweave.models.graph.schema import NodeKey, NodeEmbedding


@dataclass
class RiskModelConfig:
    """Configuration for risk scoring models.

    Attributes:
        noise_scale: Upper bound of the additive noise term (0 disables it)
        seed: Seed for noise and confidence draws (None = OS entropy)
        confidence_min: Lower bound of the confidence estimate
        confidence_max: Upper bound of the confidence estimate
        score_clamp_min: Minimum score value (clamping)
        score_clamp_max: Maximum score value (clamping)
    """
    noise_scale: float = ScoringConstants.NOISE_SCALE
    seed: Optional[int] = None
    confidence_min: float = ScoringConstants.CONFIDENCE_MIN
    confidence_max: float = ScoringConstants.CONFIDENCE_MAX
    score_clamp_min: float = 0.0
    score_clamp_max: float = 1.0


@dataclass
class ScoringContext:
    """Everything a model may look at for one transaction."""
    transaction: Transaction
    biometric: BiometricSample
    features: np.ndarray
    feature_names: Sequence[str]
    embeddings: Dict[NodeKey, NodeEmbedding] = field(default_factory=dict)
    anomalies: Sequence[BiometricAnomaly] = ()


@dataclass
class RiskPrediction:
    """Output from a risk model prediction.

    Attributes:
        raw_score: Rule score before noise and clamping
        score: Clamped base score in [0, 1]
        confidence: Model certainty, independent of the score
        reasons: Transaction-level explanation lines, in rule order
        feature_values: Feature values used for prediction
        feature_names: Names of features
    """
    raw_score: float
    score: float
    confidence: float
    reasons: List[str]
    feature_values: np.ndarray
    feature_names: List[str]


class RiskModel(ABC):
    """Abstract base class for risk scoring models.

    The model only provides scores - no decisions.
    """

    version: str = "0.0.0"

    def __init__(self, config: Optional[RiskModelConfig] = None):
        self.config = config or RiskModelConfig()

    @abstractmethod
    def predict(self, context: ScoringContext) -> RiskPrediction:
        """Score one transaction.

        Args:
            context: Transaction, biometric sample and extracted features

        Returns:
            RiskPrediction with base score, confidence and reasons
        """

    def _clamp_score(self, score: float) -> float:
        return max(
            self.config.score_clamp_min,
            min(self.config.score_clamp_max, score)
        )
