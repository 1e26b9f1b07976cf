"""Graph builder for constructing transaction relationship graphs.

Builds the user-device-merchant-location graph from a sliding window
of recent transactions.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Tuple

from trustweave.data.schemas.transaction import Transaction
from trustweave.models.graph.schema import (
    NodeType,
    EdgeType,
    GraphNode,
    GraphEdge,
    TransactionGraph,
)

logger = logging.getLogger(__name__)


class GraphBuilder:
    """Build the fraud detection graph for one transaction window.

    Stateless: every call builds a fresh graph. Transactions are
    deduplicated by id and processed in id order, so the node and edge
    sets only depend on the input as a set. When two different records
    share an id, the one with the latest timestamp wins (ties go to the
    greater canonical JSON form).
    """

    def build(self, transactions: Iterable[Transaction]) -> TransactionGraph:
        """Construct nodes and edges from a transaction window.

        Args:
            transactions: Recent transactions (any order, duplicates allowed)

        Returns:
            TransactionGraph with deduplicated nodes and one edge triple
            per distinct transaction
        """
        unique: Dict[str, Transaction] = {}
        for txn in transactions:
            kept = unique.get(txn.transaction_id)
            if kept is None or _precedence(txn) > _precedence(kept):
                unique[txn.transaction_id] = txn

        graph = TransactionGraph()
        for txn_id in sorted(unique):
            self._add_transaction(graph, unique[txn_id])

        logger.debug(
            "Built graph with %d nodes and %d edges from %d transactions",
            graph.node_count(), graph.edge_count(), len(unique),
        )
        return graph

    def _add_transaction(self, graph: TransactionGraph, txn: Transaction) -> None:
        user = GraphNode(
            node_id=txn.user_id,
            node_type=NodeType.USER,
            properties=(("user_id", txn.user_id),),
        )
        merchant = GraphNode(
            node_id=txn.merchant.merchant_id,
            node_type=NodeType.MERCHANT,
            properties=(
                ("name", txn.merchant.name),
                ("category", txn.merchant.category),
            ),
        )
        device = GraphNode(
            node_id=txn.device_id,
            node_type=NodeType.DEVICE,
            properties=(("device_id", txn.device_id),),
        )
        location = GraphNode(
            node_id=txn.location.location_id,
            node_type=NodeType.LOCATION,
            properties=(
                ("lat", txn.location.lat),
                ("lng", txn.location.lng),
                ("city", txn.location.city),
                ("country", txn.location.country),
            ),
        )

        # First transaction (by id) to mention a node fixes its properties
        for node in (user, merchant, device, location):
            graph.add_node(node)

        graph.add_edge(GraphEdge(
            source=user.key,
            target=merchant.key,
            edge_type=EdgeType.TRANSACTED_WITH,
            weight=float(txn.amount),
            timestamp=txn.timestamp,
        ))
        graph.add_edge(GraphEdge(
            source=user.key,
            target=device.key,
            edge_type=EdgeType.USED_DEVICE,
            weight=1.0,
            timestamp=txn.timestamp,
        ))
        graph.add_edge(GraphEdge(
            source=device.key,
            target=location.key,
            edge_type=EdgeType.LOCATED_AT,
            weight=1.0,
            timestamp=txn.timestamp,
        ))

    @staticmethod
    def window(
        recent: Iterable[Transaction],
        current: Iterable[Transaction] = (),
    ) -> List[Transaction]:
        """Merge the recent window with the transactions being scored.

        A transaction being scored replaces any recent record with its id.
        """
        merged: Dict[str, Transaction] = {}
        for txn in recent:
            kept = merged.get(txn.transaction_id)
            if kept is None or _precedence(txn) > _precedence(kept):
                merged[txn.transaction_id] = txn
        for txn in current:
            merged[txn.transaction_id] = txn
        return list(merged.values())


def _precedence(txn: Transaction) -> Tuple[datetime, str]:
    ts = txn.timestamp
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts, txn.model_dump_json()
