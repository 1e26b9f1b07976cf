"""Short-lived cache of graph + embedding snapshots.

Scoring calls that arrive close together usually share the same recent
transaction window. A snapshot is reused while it is younger than the
staleness bound and its window (as a set of transaction ids) matches.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, Optional

from trustweave.data.schemas.transaction import Transaction
from trustweave.models.graph.schema import NodeKey, NodeEmbedding, TransactionGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphSnapshot:
    """A built graph and its node embeddings."""
    graph: TransactionGraph
    embeddings: Dict[NodeKey, NodeEmbedding]
    created_at: float

    @property
    def node_count(self) -> int:
        return self.graph.node_count()


SnapshotFactory = Callable[[Iterable[Transaction]], GraphSnapshot]


class GraphSnapshotCache:
    """LRU cache of snapshots bounded by age and entry count.

    Thread-safe. A miss builds outside the lock, so two threads racing on
    the same window may both build; the later result wins and both are
    equivalent.
    """

    def __init__(
        self,
        ttl_seconds: float = 5.0,
        max_entries: int = 64,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[FrozenSet[str], GraphSnapshot]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def window_key(transactions: Iterable[Transaction]) -> FrozenSet[str]:
        return frozenset(t.transaction_id for t in transactions)

    def get(self, key: FrozenSet[str]) -> Optional[GraphSnapshot]:
        """Return a fresh snapshot for the window, evicting it if stale."""
        with self._lock:
            snapshot = self._entries.get(key)
            if snapshot is None:
                return None
            if self._clock() - snapshot.created_at > self.ttl_seconds:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return snapshot

    def put(self, key: FrozenSet[str], snapshot: GraphSnapshot) -> None:
        with self._lock:
            self._entries[key] = snapshot
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def get_or_build(
        self,
        transactions: Iterable[Transaction],
        factory: SnapshotFactory,
    ) -> GraphSnapshot:
        """Return the cached snapshot for this window or build a new one."""
        window = list(transactions)
        key = self.window_key(window)

        snapshot = self.get(key)
        if snapshot is not None:
            with self._lock:
                self.hits += 1
            return snapshot

        snapshot = factory(window)
        with self._lock:
            self.misses += 1
        self.put(key, snapshot)
        logger.debug("Graph snapshot built for window of %d transactions", len(key))
        return snapshot

    def now(self) -> float:
        return self._clock()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
