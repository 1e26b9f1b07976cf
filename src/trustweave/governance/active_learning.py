"""Active learning - pick the scored transactions most worth a human review.

Scoring only; the pending-review queue and feedback history live in
FeedbackLoop, which calls into this module.
"""

from typing import List, Mapping, Optional, Sequence

from trustweave.common.constants import FeedbackConstants, ScoringConstants
from trustweave.data.schemas.feedback import ActiveLearningQuery
from trustweave.data.schemas.transaction import Transaction
from trustweave.data.schemas.verdict import FraudVerdict, RiskLevel
from trustweave.governance.routing import ReviewRoutingRules

BUSINESS_CRITICAL_CATEGORIES = frozenset({"bank", "atm", "financial"})


class ActiveLearner:
    """Uncertainty, diversity and importance scoring for review selection.

    combined = 0.4 * uncertainty + 0.3 * diversity + 0.3 * importance;
    a transaction is worth a review when combined > 0.6.
    """

    def __init__(self, rules: Optional[ReviewRoutingRules] = None):
        self.rules = rules or ReviewRoutingRules()

    @staticmethod
    def uncertainty(verdict: FraudVerdict) -> float:
        """High near p = 0.5, or when the scorer itself is unsure."""
        distance_uncertainty = 1 - 2 * abs(verdict.fraud_probability - 0.5)
        confidence_uncertainty = 1 - verdict.confidence
        return max(0.0, min(1.0, max(distance_uncertainty, confidence_uncertainty)))

    @staticmethod
    def diversity(transaction: Transaction, total_feedback: int) -> float:
        """How far the transaction sits from what reviewers have already labeled.

        With fewer than 10 labels overall everything counts as novel.
        """
        if total_feedback < FeedbackConstants.EXPLORATION_MIN_FEEDBACK:
            return FeedbackConstants.EXPLORATION_DIVERSITY

        hour = transaction.hour
        score = 0.3
        if hour < ScoringConstants.NIGHT_START_HOUR or hour > ScoringConstants.NIGHT_END_HOUR:
            score += 0.2
        if transaction.amount > ScoringConstants.HIGH_AMOUNT:
            score += 0.3
        if transaction.merchant.category.lower() == "atm":
            score += 0.2
        return min(1.0, score)

    @staticmethod
    def importance(verdict: FraudVerdict, transaction: Transaction) -> float:
        """Business impact of getting this one wrong."""
        score = 0.0
        if transaction.amount > ScoringConstants.VERY_HIGH_AMOUNT:
            score += 0.4
        elif transaction.amount > ScoringConstants.HIGH_AMOUNT:
            score += 0.2

        if verdict.risk_level == RiskLevel.HIGH:
            score += 0.3
        elif verdict.risk_level == RiskLevel.MEDIUM:
            score += 0.1

        if len(verdict.explanation) > 2:
            score += 0.2
        if transaction.merchant.category.lower() in BUSINESS_CRITICAL_CATEGORIES:
            score += 0.1
        return min(1.0, score)

    @staticmethod
    def query_reasons(
        verdict: FraudVerdict,
        transaction: Transaction,
        uncertainty: float,
        diversity: float,
    ) -> List[str]:
        reasons = []
        if uncertainty > 0.7:
            reasons.append("Model uncertainty: prediction confidence is low")
        if abs(verdict.fraud_probability - 0.5) < 0.1:
            reasons.append("Borderline case: fraud probability near decision threshold")
        if diversity > 0.6:
            reasons.append("Novel transaction pattern: different from training data")
        if transaction.amount > ScoringConstants.VERY_HIGH_AMOUNT:
            reasons.append("High-value transaction: requires manual verification")
        if len(verdict.explanation) > 3:
            reasons.append("Complex case: multiple risk factors identified")
        if verdict.biometric_anomaly_count > 2:
            reasons.append("Behavioral anomalies: unusual user interaction patterns")
        return reasons

    def suggest_reviewers(
        self,
        verdict: FraudVerdict,
        transaction: Transaction,
        workload: Mapping[str, int],
    ) -> List[str]:
        """Escalation targets first, then the least-loaded reviewers, deduplicated.

        Ties in workload keep roster order.
        """
        rules = self.rules
        suggested = []
        if (verdict.risk_level == RiskLevel.HIGH
                or transaction.amount > rules.senior_amount_threshold):
            suggested.append(rules.senior_reviewer)
        if verdict.biometric_anomaly_count > rules.specialist_anomaly_threshold:
            suggested.append(rules.specialist_reviewer)

        by_load = sorted(rules.reviewers, key=lambda r: workload.get(r, 0))
        suggested.extend(by_load[:rules.load_balanced_count])

        return list(dict.fromkeys(suggested))

    def evaluate(
        self,
        verdict: FraudVerdict,
        transaction: Transaction,
        total_feedback: int,
        workload: Mapping[str, int],
    ) -> Optional[ActiveLearningQuery]:
        """Build a review query, or None if the case is not worth a review."""
        uncertainty = self.uncertainty(verdict)
        diversity = self.diversity(transaction, total_feedback)
        importance = self.importance(verdict, transaction)

        combined = (
            FeedbackConstants.UNCERTAINTY_WEIGHT * uncertainty
            + FeedbackConstants.DIVERSITY_WEIGHT * diversity
            + FeedbackConstants.IMPORTANCE_WEIGHT * importance
        )
        if combined <= FeedbackConstants.REVIEW_THRESHOLD:
            return None

        return ActiveLearningQuery(
            transaction_id=verdict.transaction_id,
            uncertainty_score=uncertainty,
            diversity_score=diversity,
            importance_score=importance,
            query_reasons=self.query_reasons(verdict, transaction, uncertainty, diversity),
            suggested_reviewers=self.suggest_reviewers(verdict, transaction, workload),
        )

    @staticmethod
    def rank(queries: Sequence[ActiveLearningQuery], limit: int = FeedbackConstants.MAX_QUERIES) -> List[ActiveLearningQuery]:
        """Highest combined score first, capped at ``limit``."""
        return sorted(queries, key=lambda q: q.combined_score, reverse=True)[:limit]

