"""Feature extraction for risk scoring.

Converts a transaction, its biometric sample and the graph embeddings
of the nodes it touches into one numeric vector with a fixed order.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from trustweave.common.constants import ScoringConstants
from trustweave.data.schemas.biometric import BiometricSample
from trustweave.data.schemas.transaction import Transaction
from trustweave.models.graph.schema import NodeType, NodeKey, NodeEmbedding, node_key


@dataclass
class FeatureConfig:
    """Configuration for feature extraction.

    Attributes:
        embedding_slice: Leading dimensions taken from each node embedding
        amount_log_div: Divisor applied to log(amount + 1)
    """
    embedding_slice: int = ScoringConstants.EMBEDDING_SLICE
    amount_log_div: float = 10.0


def _feature_names(embedding_slice: int) -> List[str]:
    names = [
        # Transaction features
        "amount_log",
        "hour_of_day",
        "is_credit_card",
        "category_atm",
        "category_retail",
        # Biometric summary
        "mean_dwell_time",
        "typing_speed",
        "mean_mouse_velocity",
        "motion_magnitude",
    ]
    for prefix in ("user", "merchant", "device"):
        names.extend(f"{prefix}_emb_{i}" for i in range(embedding_slice))
    return names


# Canonical feature order for the default slice (9 + 3 x 10)
FEATURE_NAMES = _feature_names(ScoringConstants.EMBEDDING_SLICE)


class FeatureExtractor:
    """Extract the scoring feature vector.

    Missing node embeddings contribute zeros, so a transaction outside
    the current graph window still gets a full-length vector.
    """

    def __init__(self, config: Optional[FeatureConfig] = None):
        self.config = config or FeatureConfig()
        self._feature_names = _feature_names(self.config.embedding_slice)

    @property
    def feature_names(self) -> List[str]:
        return list(self._feature_names)

    @property
    def n_features(self) -> int:
        return len(self._feature_names)

    def extract(
        self,
        transaction: Transaction,
        biometric: BiometricSample,
        embeddings: Dict[NodeKey, NodeEmbedding],
    ) -> np.ndarray:
        """Build the feature vector.

        Args:
            transaction: Transaction being scored
            biometric: Biometric sample for the same session
            embeddings: Node embeddings of the current graph window

        Returns:
            1D numpy array of length n_features
        """
        category = transaction.merchant.category.lower()
        features = [
            math.log(transaction.amount + 1) / self.config.amount_log_div,
            transaction.hour / 24,
            float(transaction.payment_method == "credit_card"),
            float(category == "atm"),
            float(category == "retail"),
            biometric.keystroke.mean_dwell_time / 200,
            biometric.keystroke.typing_speed / 100,
            biometric.mouse.mean_velocity / 1000,
            biometric.sensors.motion_magnitude,
        ]

        for key in (
            node_key(NodeType.USER, transaction.user_id),
            node_key(NodeType.MERCHANT, transaction.merchant.merchant_id),
            node_key(NodeType.DEVICE, transaction.device_id),
        ):
            features.extend(self._embedding_slice(embeddings.get(key)))

        return np.array(features, dtype=np.float64)

    def _embedding_slice(self, embedding: Optional[NodeEmbedding]) -> np.ndarray:
        k = self.config.embedding_slice
        out = np.zeros(k, dtype=np.float64)
        if embedding is not None:
            head = embedding.vector[:k]
            out[:len(head)] = head
        return out
