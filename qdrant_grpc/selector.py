"""
Round-robin connection selection biased towards healthy connections.
"""

from collections.abc import (
    Callable,
    Sequence,
)
import logging
import threading
from typing import (
    Generic,
    TypeVar,
)

logger = logging.getLogger("qdrant_grpc.selector")

T = TypeVar("T")


class RoundRobinSelector(Generic[T]):
    """
    Picks pooled connections in rotation.

    When a ``healthy_indices`` callback is given, the rotation only covers the
    indices it returns. An empty healthy subset falls back to the whole pool
    so that a transient outage never blocks every call.
    """

    def __init__(
        self,
        connections: Sequence[T],
        healthy_indices: Callable[[], list[int]] | None = None,
    ) -> None:
        if not connections:
            raise ValueError("No connections available")
        self._connections = list(connections)
        self._healthy_indices = healthy_indices
        self._lock = threading.Lock()
        self._next = 0

    def _advance(self) -> int:
        with self._lock:
            index = self._next
            self._next += 1
            return index

    def select_index(self) -> int:
        if len(self._connections) == 1:
            return 0

        if self._healthy_indices is not None:
            # Snapshot once; the healthy subset may change concurrently.
            healthy = self._healthy_indices()
            if healthy:
                return healthy[self._advance() % len(healthy)]
            logger.debug("No healthy connections, falling back to full rotation")

        return self._advance() % len(self._connections)

    def select(self) -> T:
        return self._connections[self.select_index()]
