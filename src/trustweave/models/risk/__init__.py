"""Risk scoring: feature extraction, swappable model, verdict fusion."""

from trustweave.models.risk.base import RiskModel, RiskModelConfig, RiskPrediction, ScoringContext
from trustweave.models.risk.feature_extractor import FeatureExtractor, FeatureConfig, FEATURE_NAMES
from trustweave.models.risk.heuristic_model import HeuristicRiskModel
from trustweave.models.risk.scorer import FraudScorer

__all__ = [
    "RiskModel",
    "RiskModelConfig",
    "RiskPrediction",
    "ScoringContext",
    "FeatureExtractor",
    "FeatureConfig",
    "FEATURE_NAMES",
    "HeuristicRiskModel",
    "FraudScorer",
]
