"""Transaction graph: construction, embedding propagation, snapshot cache."""

from trustweave.models.graph.schema import (
    NodeType,
    EdgeType,
    NodeKey,
    node_key,
    GraphNode,
    GraphEdge,
    NodeEmbedding,
    TransactionGraph,
)
from trustweave.models.graph.builder import GraphBuilder
from trustweave.models.graph.propagator import (
    EmbeddingPropagator,
    PropagatorConfig,
    extract_node_features,
)
from trustweave.models.graph.cache import GraphSnapshot, GraphSnapshotCache

__all__ = [
    "NodeType",
    "EdgeType",
    "NodeKey",
    "node_key",
    "GraphNode",
    "GraphEdge",
    "NodeEmbedding",
    "TransactionGraph",
    "GraphBuilder",
    "EmbeddingPropagator",
    "PropagatorConfig",
    "extract_node_features",
    "GraphSnapshot",
    "GraphSnapshotCache",
]
