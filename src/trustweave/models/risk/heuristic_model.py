"""Rule-based risk model.

Stands in for a trained model behind the RiskModel interface. Scores
accumulate fixed rule contributions plus a bounded noise term.
"""

import zlib
from typing import List, Optional, Tuple

import numpy as np

from trustweave.common.constants import ScoringConstants
from trustweave.models.risk.base import RiskModel, RiskModelConfig, RiskPrediction, ScoringContext


class HeuristicRiskModel(RiskModel):
    """Transaction rules: amount, time of day, ATM withdrawals.

    Noise and confidence are drawn from a generator keyed on the seed and
    the transaction id, so the same transaction always gets the same draws
    under a fixed seed, regardless of call order or thread.
    """

    version = ScoringConstants.MODEL_VERSION

    def __init__(self, config: Optional[RiskModelConfig] = None):
        super().__init__(config)
        if self.config.noise_scale < 0:
            raise ValueError("noise_scale must not be negative")
        if not 0.0 <= self.config.confidence_min <= self.config.confidence_max <= 1.0:
            raise ValueError("confidence bounds must satisfy 0 <= min <= max <= 1")

    def _rng_for(self, transaction_id: str) -> np.random.Generator:
        if self.config.seed is None:
            return np.random.default_rng()
        return np.random.default_rng([self.config.seed, zlib.crc32(transaction_id.encode("utf-8"))])

    @staticmethod
    def rule_score(context: ScoringContext) -> Tuple[float, List[str]]:
        """Sum of triggered rule weights and their descriptions, in rule order."""
        txn = context.transaction
        amount = txn.amount
        hour = txn.hour
        is_atm = txn.merchant.category.lower() == "atm"

        score = 0.0
        reasons: List[str] = []

        # Additive: a 6000 payment collects both amount weights
        if amount > ScoringConstants.HIGH_AMOUNT:
            score += ScoringConstants.HIGH_AMOUNT_WEIGHT
            reasons.append(f"High transaction amount: ${amount:,.2f}")
        if amount > ScoringConstants.VERY_HIGH_AMOUNT:
            score += ScoringConstants.VERY_HIGH_AMOUNT_WEIGHT

        if hour < ScoringConstants.NIGHT_START_HOUR or hour > ScoringConstants.NIGHT_END_HOUR:
            score += ScoringConstants.NIGHT_WEIGHT
            reasons.append(f"Unusual time: {hour}:00")

        if is_atm and amount > ScoringConstants.ATM_AMOUNT:
            score += ScoringConstants.ATM_WEIGHT
            reasons.append(f"Large ATM withdrawal: ${amount:,.2f}")

        return score, reasons

    def predict(self, context: ScoringContext) -> RiskPrediction:
        rng = self._rng_for(context.transaction.transaction_id)
        raw, reasons = self.rule_score(context)

        noise = float(rng.random()) * self.config.noise_scale
        score = self._clamp_score(raw + noise)
        confidence = float(rng.uniform(self.config.confidence_min, self.config.confidence_max))

        # Explanation-only extras; they never move the score
        if context.biometric.keystroke.typing_speed < ScoringConstants.SLOW_TYPING_WPM:
            reasons.append("Unusual typing pattern detected")
        if score > 0.5 and not reasons:
            reasons.append("Anomalous behavioral patterns detected")

        return RiskPrediction(
            raw_score=raw,
            score=score,
            confidence=confidence,
            reasons=reasons,
            feature_values=context.features,
            feature_names=list(context.feature_names),
        )
