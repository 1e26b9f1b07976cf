"""Graph schema definitions for transaction fraud detection.

Defines node and edge types for the user-device-merchant-location graph.
Nodes are unique per (type, id): a device and a user may share an id
string without colliding.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np


class NodeType(str, Enum):
    """Types of nodes in the transaction graph."""
    USER = "user"
    DEVICE = "device"
    MERCHANT = "merchant"
    LOCATION = "location"


class EdgeType(str, Enum):
    """Types of edges in the transaction graph."""
    TRANSACTED_WITH = "transacted_with"  # user -> merchant, weight = amount
    USED_DEVICE = "used_device"          # user -> device
    LOCATED_AT = "located_at"            # device -> location


NodeKey = Tuple[NodeType, str]


def node_key(node_type: NodeType, node_id: str) -> NodeKey:
    """Namespaced key for a node."""
    return (NodeType(node_type), node_id)


@dataclass(frozen=True)
class GraphNode:
    """A node in the transaction graph.

    Attributes:
        node_id: Identifier within its type namespace
        node_type: user, device, merchant or location
        properties: Type-specific attributes (category, lat/lng, ...)
    """
    node_id: str
    node_type: NodeType
    properties: Tuple[Tuple[str, Any], ...] = ()

    @property
    def key(self) -> NodeKey:
        return (self.node_type, self.node_id)

    def get(self, name: str, default: Any = None) -> Any:
        return dict(self.properties).get(name, default)


@dataclass(frozen=True)
class GraphEdge:
    """A directed, weighted edge between two existing nodes."""
    source: NodeKey
    target: NodeKey
    edge_type: EdgeType
    weight: float = 1.0
    timestamp: Optional[datetime] = None


@dataclass
class NodeEmbedding:
    """Feature embedding for one node, recomputed per scoring window."""
    node_key: NodeKey
    vector: np.ndarray
    timestamp: datetime

    def __post_init__(self):
        if not isinstance(self.vector, np.ndarray):
            self.vector = np.array(self.vector, dtype=np.float64)

    @property
    def node_id(self) -> str:
        return self.node_key[1]


@dataclass
class TransactionGraph:
    """The relationship graph built from a transaction window."""
    nodes: Dict[NodeKey, GraphNode] = field(default_factory=dict)
    edges: List[GraphEdge] = field(default_factory=list)

    # Index for fast edge lookup
    _edge_index: Dict[NodeKey, List[GraphEdge]] = field(default_factory=dict)

    def add_node(self, node: GraphNode) -> bool:
        """Add a node unless one with the same key exists. Returns True if added."""
        if node.key in self.nodes:
            return False
        self.nodes[node.key] = node
        return True

    def add_edge(self, edge: GraphEdge) -> None:
        """Add an edge. Both endpoints must already be in the graph."""
        for endpoint in (edge.source, edge.target):
            if endpoint not in self.nodes:
                raise ValueError(f"Edge endpoint {endpoint} is not a node in the graph")

        self.edges.append(edge)
        self._edge_index.setdefault(edge.source, []).append(edge)
        if edge.target != edge.source:
            self._edge_index.setdefault(edge.target, []).append(edge)

    def get_node(self, key: NodeKey) -> Optional[GraphNode]:
        return self.nodes.get(key)

    def get_edges_for_node(self, key: NodeKey) -> List[GraphEdge]:
        """Get all edges incident to a node."""
        return self._edge_index.get(key, [])

    def get_neighbors(self, key: NodeKey) -> List[GraphNode]:
        """One neighbor per incident edge, so parallel edges weigh in repeatedly."""
        neighbors = []
        for edge in self.get_edges_for_node(key):
            other = edge.target if edge.source == key else edge.source
            neighbors.append(self.nodes[other])
        return neighbors

    def get_nodes_by_type(self, node_type: NodeType) -> List[GraphNode]:
        return [n for n in self.nodes.values() if n.node_type == node_type]

    def node_count(self) -> int:
        return len(self.nodes)

    def edge_count(self) -> int:
        return len(self.edges)

    def node_set(self) -> frozenset:
        return frozenset(self.nodes.values())

    def edge_set(self) -> frozenset:
        return frozenset(self.edges)
