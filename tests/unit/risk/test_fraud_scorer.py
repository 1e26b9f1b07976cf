"""Unit tests for risk scoring.

Tests for:
- Feature extraction
- Heuristic rule scoring and determinism
- Biometric fusion and risk tiering
"""

import numpy as np
import pytest

from trustweave.common.constants import ScoringConstants
from trustweave.data.schemas import RiskLevel
from trustweave.models.behavior import AnomalySeverity, AnomalyType, BiometricAnomaly
from trustweave.models.graph import (
    EmbeddingPropagator,
    GraphBuilder,
    NodeType,
    PropagatorConfig,
    node_key,
)
from trustweave.models.risk import (
    FEATURE_NAMES,
    FeatureExtractor,
    FraudScorer,
    HeuristicRiskModel,
    RiskModelConfig,
)


def anomaly(severity, description="Unusual key dwell time"):
    return BiometricAnomaly(
        anomaly_type=AnomalyType.KEYSTROKE,
        severity=severity,
        description=description,
        confidence=0.8,
        deviation_score=0.8,
    )


@pytest.fixture
def quiet_scorer():
    """Scorer without the noise term."""
    return FraudScorer(HeuristicRiskModel(RiskModelConfig(noise_scale=0.0, seed=1)))


@pytest.fixture
def embeddings(make_transaction):
    graph = GraphBuilder().build([make_transaction("txn_a"), make_transaction("txn_b", merchant_id="m2")])
    return EmbeddingPropagator(PropagatorConfig(seed=2)).propagate(graph)


class TestFeatureExtractor:
    """Tests for feature extraction."""

    def test_feature_names_defined(self):
        assert len(FEATURE_NAMES) == 39
        assert FEATURE_NAMES[0] == "amount_log"
        assert "device_emb_9" in FEATURE_NAMES

    def test_extract_returns_correct_shape(self, make_transaction, make_biometric, embeddings):
        features = FeatureExtractor().extract(make_transaction(), make_biometric(), embeddings)
        assert features.shape == (39,)

    def test_embedding_slice_copied(self, make_transaction, make_biometric, embeddings):
        features = FeatureExtractor().extract(make_transaction(), make_biometric(), embeddings)
        user_embedding = embeddings[node_key(NodeType.USER, "user_001")].vector

        np.testing.assert_allclose(features[9:19], user_embedding[:10])

    def test_missing_embeddings_are_zero(self, make_transaction, make_biometric):
        features = FeatureExtractor().extract(make_transaction(), make_biometric(), {})
        assert np.all(features[9:] == 0.0)


class TestHeuristicRiskModel:
    """Tests for the rule-based base score."""

    def test_seeded_scores_are_deterministic(self, make_transaction, make_biometric):
        txn = make_transaction(amount=1500.0)
        first = FraudScorer(HeuristicRiskModel(RiskModelConfig(seed=9))).predict(txn, make_biometric(), {})
        second = FraudScorer(HeuristicRiskModel(RiskModelConfig(seed=9))).predict(txn, make_biometric(), {})

        assert first.fraud_probability == second.fraud_probability
        assert first.confidence == second.confidence

    def test_noise_bounded(self, make_transaction, make_biometric):
        scorer = FraudScorer(HeuristicRiskModel(RiskModelConfig(seed=4)))
        for i in range(20):
            verdict = scorer.predict(make_transaction(f"txn_{i}"), make_biometric(), {})
            assert 0.0 <= verdict.fraud_probability <= 0.2
            assert 0.7 <= verdict.confidence <= 1.0

    def test_negative_noise_rejected(self):
        with pytest.raises(ValueError):
            HeuristicRiskModel(RiskModelConfig(noise_scale=-0.1))

    def test_default_config_uses_scoring_constants(self):
        config = RiskModelConfig()
        assert config.noise_scale == ScoringConstants.NOISE_SCALE
        assert (config.confidence_min, config.confidence_max) == (
            ScoringConstants.CONFIDENCE_MIN,
            ScoringConstants.CONFIDENCE_MAX,
        )


class TestFraudScorer:
    """Tests for FraudScorer.predict."""

    def test_probability_in_unit_interval(self, make_transaction, make_biometric, embeddings):
        scorer = FraudScorer(HeuristicRiskModel(RiskModelConfig(seed=3)))
        verdict = scorer.predict(
            make_transaction(amount=9000.0, hour=3, category="atm"),
            make_biometric(),
            embeddings,
            anomalies=[anomaly(AnomalySeverity.HIGH)] * 3,
        )
        assert verdict.fraud_probability == 1.0
        assert verdict.risk_level == RiskLevel.HIGH

    def test_large_night_atm_withdrawal_is_high_risk(self, quiet_scorer, make_transaction, make_biometric):
        verdict = quiet_scorer.predict(
            make_transaction(amount=6000.0, hour=2, category="atm"), make_biometric(), {}
        )

        assert verdict.risk_level == RiskLevel.HIGH
        assert verdict.explanation == [
            "High transaction amount: $6,000.00",
            "Unusual time: 2:00",
            "Large ATM withdrawal: $6,000.00",
        ]

    def test_daytime_small_purchase_is_low_risk(self, quiet_scorer, make_transaction, make_biometric):
        verdict = quiet_scorer.predict(make_transaction(amount=25.0), make_biometric(), {})

        assert verdict.fraud_probability == 0.0
        assert verdict.risk_level == RiskLevel.LOW
        assert verdict.explanation == []

    def test_late_evening_counts_as_unusual_time(self, quiet_scorer, make_transaction, make_biometric):
        verdict = quiet_scorer.predict(make_transaction(hour=23), make_biometric(), {})
        assert verdict.explanation == ["Unusual time: 23:00"]
        assert verdict.fraud_probability == pytest.approx(0.2)

    def test_severity_boosts(self, quiet_scorer, make_transaction, make_biometric):
        verdict = quiet_scorer.predict(
            make_transaction(amount=25.0),
            make_biometric(),
            {},
            anomalies=[
                anomaly(AnomalySeverity.HIGH),
                anomaly(AnomalySeverity.MEDIUM),
                anomaly(AnomalySeverity.LOW),
                anomaly(AnomalySeverity.HIGH),
            ],
        )
        assert verdict.fraud_probability == pytest.approx(0.5)
        assert verdict.risk_level == RiskLevel.MEDIUM
        assert verdict.biometric_anomaly_count == 4

    def test_explanation_lists_rules_then_anomalies(self, quiet_scorer, make_transaction, make_biometric):
        verdict = quiet_scorer.predict(
            make_transaction(amount=1200.0),
            make_biometric(typing_speed=20.0),
            {},
            anomalies=[anomaly(AnomalySeverity.MEDIUM, "Unusual typing speed")],
        )
        assert verdict.explanation == [
            "High transaction amount: $1,200.00",
            "Unusual typing pattern detected",
            "Biometric: Unusual typing speed",
        ]

    def test_graph_node_count_and_version(self, quiet_scorer, make_transaction, make_biometric):
        verdict = quiet_scorer.predict(make_transaction(), make_biometric(), {}, graph_node_count=8)
        assert verdict.graph_node_count == 8
        assert verdict.model_version == "1.0.0"


class TestRiskLevel:
    """Tests for probability banding."""

    @pytest.mark.parametrize("probability,expected", [
        (0.0, RiskLevel.LOW),
        (0.4, RiskLevel.LOW),
        (0.41, RiskLevel.MEDIUM),
        (0.7, RiskLevel.MEDIUM),
        (0.71, RiskLevel.HIGH),
        (1.0, RiskLevel.HIGH),
    ])
    def test_bands(self, probability, expected):
        assert RiskLevel.from_probability(probability) == expected
