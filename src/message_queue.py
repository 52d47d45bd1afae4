import threading
from queue import Queue, Empty
from typing import List, Optional

from models import Transaction


class ShardedQueue:
    """
    Thread-safe message queue split into one FIFO per consumer.
    Messages are routed by client id, so every transaction of a client is
    consumed by the same worker in the order it was published.
    All synchronization is internal - callers never need to lock.
    """

    DEFAULT_TIMEOUT = 0.1

    def __init__(self, num_shards: int):
        if num_shards < 1:
            raise ValueError(f"num_shards must be >= 1, got {num_shards}")
        self._shards: List[Queue[Transaction]] = [Queue() for _ in range(num_shards)]
        self._shutdown_event = threading.Event()

    @property
    def num_shards(self) -> int:
        return len(self._shards)

    def shard_for(self, client_id: int) -> int:
        return client_id % len(self._shards)

    def publish_message(self, message: Transaction) -> None:
        """Add message to its client's shard. Thread-safe."""
        self._shards[self.shard_for(message.client_id)].put(message)

    def consume_message(self, shard: int) -> Optional[Transaction]:
        """
        Get next message from a shard.
        Returns None if the shard is empty after timeout.
        Thread-safe.
        """
        try:
            return self._shards[shard].get(timeout=self.DEFAULT_TIMEOUT)
        except Empty:
            return None

    def is_empty(self, shard: int) -> bool:
        """Check if a shard is empty."""
        return self._shards[shard].empty()

    def shutdown(self) -> None:
        """Signal no more messages will be published."""
        self._shutdown_event.set()

    def is_shutdown(self) -> bool:
        """Check if shutdown has been signaled."""
        return self._shutdown_event.is_set()
