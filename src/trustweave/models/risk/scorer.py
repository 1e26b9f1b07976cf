"""Fraud scorer - fuses rule score, biometric anomalies and graph context."""

import logging
from typing import Dict, Optional, Sequence

from trustweave.common.constants import ScoringConstants
from trustweave.data.schemas.biometric import BiometricSample
from trustweave.data.schemas.transaction import Transaction
from trustweave.data.schemas.verdict import FraudVerdict, RiskLevel
from trustweave.models.behavior.deviation import AnomalySeverity, BiometricAnomaly
from trustweave.models.graph.schema import NodeKey, NodeEmbedding
from trustweave.models.risk.base import RiskModel, ScoringContext
from trustweave.models.risk.feature_extractor import FeatureExtractor
from trustweave.models.risk.heuristic_model import HeuristicRiskModel

logger = logging.getLogger(__name__)

SEVERITY_BOOST = {
    AnomalySeverity.HIGH: ScoringConstants.HIGH_SEVERITY_BOOST,
    AnomalySeverity.MEDIUM: ScoringConstants.MEDIUM_SEVERITY_BOOST,
}


class FraudScorer:
    """Produce a FraudVerdict from a transaction and its context.

    The base score comes from a swappable RiskModel. Biometric anomalies
    then push it up (+0.2 per high, +0.1 per medium) before tiering.
    """

    def __init__(
        self,
        model: Optional[RiskModel] = None,
        extractor: Optional[FeatureExtractor] = None,
    ):
        self.model = model or HeuristicRiskModel()
        self.extractor = extractor or FeatureExtractor()

    def predict(
        self,
        transaction: Transaction,
        biometric: BiometricSample,
        embeddings: Dict[NodeKey, NodeEmbedding],
        anomalies: Sequence[BiometricAnomaly] = (),
        graph_node_count: int = 0,
    ) -> FraudVerdict:
        """Score one transaction.

        Args:
            transaction: Transaction being scored
            biometric: Biometric sample for the same session
            embeddings: Node embeddings of the current graph window
            anomalies: Biometric anomalies in detection order
            graph_node_count: Size of the graph the embeddings came from

        Returns:
            Immutable FraudVerdict
        """
        context = ScoringContext(
            transaction=transaction,
            biometric=biometric,
            features=self.extractor.extract(transaction, biometric, embeddings),
            feature_names=self.extractor.feature_names,
            embeddings=embeddings,
            anomalies=tuple(anomalies),
        )
        prediction = self.model.predict(context)

        probability = prediction.score + sum(SEVERITY_BOOST.get(a.severity, 0.0) for a in anomalies)
        probability = min(1.0, max(0.0, probability))

        explanation = list(prediction.reasons)
        explanation.extend(f"Biometric: {a.description}" for a in anomalies)

        verdict = FraudVerdict(
            transaction_id=transaction.transaction_id,
            fraud_probability=probability,
            risk_level=RiskLevel.from_probability(probability),
            explanation=explanation,
            biometric_anomaly_count=len(anomalies),
            confidence=prediction.confidence,
            graph_node_count=graph_node_count,
            model_version=self.model.version,
        )
        logger.debug(
            "Scored %s: p=%.3f risk=%s anomalies=%d",
            transaction.transaction_id, probability, verdict.risk_level.value, len(anomalies),
        )
        return verdict
