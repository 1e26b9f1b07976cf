"""Single-layer message passing for node embeddings.

Each node's embedding is tanh(W . [self_features || mean(neighbor_features)]).
Stacking more layers feeds the previous layer's embeddings back in as
features. The projection is a fixed random linear map; it stands in for
trained weights and can be replaced via ``load_weights``.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import numpy as np

from trustweave.common.constants import GraphConstants
from trustweave.models.graph.schema import (
    NodeType,
    NodeKey,
    GraphNode,
    NodeEmbedding,
    TransactionGraph,
)


# Merchant categories with a dedicated one-hot slot
MERCHANT_CATEGORY_SLOTS = {"retail": 2, "food": 3, "atm": 4}


@dataclass
class PropagatorConfig:
    """Configuration for embedding propagation."""
    feature_dim: int = GraphConstants.NODE_FEATURE_DIM
    embedding_dim: int = GraphConstants.EMBEDDING_DIM
    num_layers: int = 1
    weight_scale: float = GraphConstants.WEIGHT_INIT_SCALE
    seed: Optional[int] = None


def extract_node_features(node: GraphNode, dim: int = GraphConstants.NODE_FEATURE_DIM) -> np.ndarray:
    """Encode a node as a fixed-length vector.

    Layout:
        0: user indicator
        1: merchant indicator, 2-4: retail / food / atm one-hot
        5: device indicator
        6: location indicator, 7: lat / 90, 8: lng / 180
        9: reserved
    """
    features = np.zeros(dim, dtype=np.float64)

    if node.node_type == NodeType.USER:
        features[0] = 1.0
    elif node.node_type == NodeType.MERCHANT:
        features[1] = 1.0
        slot = MERCHANT_CATEGORY_SLOTS.get(str(node.get("category", "")).lower())
        if slot is not None:
            features[slot] = 1.0
    elif node.node_type == NodeType.DEVICE:
        features[5] = 1.0
    elif node.node_type == NodeType.LOCATION:
        features[6] = 1.0
        features[7] = float(node.get("lat", 0.0)) / GraphConstants.LATITUDE_NORM
        features[8] = float(node.get("lng", 0.0)) / GraphConstants.LONGITUDE_NORM

    return features


class EmbeddingPropagator:
    """Compute per-node embeddings by one-hop mean aggregation.

    Generates embeddings on-the-fly from a graph; holds no per-graph state
    so one instance can serve concurrent scoring calls.
    """

    def __init__(
        self,
        config: Optional[PropagatorConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        """Initialize propagator.

        Args:
            config: Propagation configuration
            rng: Random generator for weight init (defaults to config.seed)
        """
        self.config = config or PropagatorConfig()
        if self.config.num_layers < 1:
            raise ValueError("num_layers must be at least 1")
        rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self._weights = self._init_weights(rng)

    def _init_weights(self, rng: np.random.Generator) -> List[np.ndarray]:
        scale = self.config.weight_scale
        dims = [2 * self.config.feature_dim] + [
            2 * self.config.embedding_dim for _ in range(self.config.num_layers - 1)
        ]
        return [
            rng.uniform(-scale, scale, size=(in_dim, self.config.embedding_dim))
            for in_dim in dims
        ]

    @property
    def weights(self) -> List[np.ndarray]:
        return [w.copy() for w in self._weights]

    def load_weights(self, weights: Sequence[np.ndarray]) -> None:
        """Replace the projection matrices (e.g. with trained ones)."""
        if len(weights) != len(self._weights):
            raise ValueError(f"Expected {len(self._weights)} weight matrices, got {len(weights)}")
        for current, new in zip(self._weights, weights):
            if np.shape(new) != current.shape:
                raise ValueError(f"Weight shape {np.shape(new)} does not match {current.shape}")
        self._weights = [np.array(w, dtype=np.float64) for w in weights]

    def propagate(self, graph: TransactionGraph) -> Dict[NodeKey, NodeEmbedding]:
        """Embed every node of the graph.

        Args:
            graph: Transaction graph for the scoring window

        Returns:
            Mapping of node key to NodeEmbedding (dimension embedding_dim)
        """
        keys = list(graph.nodes.keys())
        if not keys:
            return {}

        neighbors: Dict[NodeKey, List[NodeKey]] = {
            key: [n.key for n in graph.get_neighbors(key)] for key in keys
        }
        features = {
            key: extract_node_features(graph.nodes[key], self.config.feature_dim)
            for key in keys
        }

        for weight in self._weights:
            features = self._layer(keys, features, neighbors, weight)

        now = datetime.now(timezone.utc)
        return {
            key: NodeEmbedding(node_key=key, vector=features[key], timestamp=now)
            for key in keys
        }

    @staticmethod
    def _layer(
        keys: List[NodeKey],
        features: Dict[NodeKey, np.ndarray],
        neighbors: Dict[NodeKey, List[NodeKey]],
        weight: np.ndarray,
    ) -> Dict[NodeKey, np.ndarray]:
        out = {}
        for key in keys:
            own = features[key]
            if neighbors[key]:
                aggregated = np.mean([features[n] for n in neighbors[key]], axis=0)
            else:
                aggregated = np.zeros_like(own)
            combined = np.concatenate([own, aggregated])
            out[key] = np.tanh(combined @ weight)
        return out
