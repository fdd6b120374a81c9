"""
Receive queue for ciphertext chunks.

The relay reader pushes frames as they arrive and a single decrypt worker
awaits them, so the sink can start consuming before the transfer lands. The
sender is not throttled unless flow control is enabled, so the queue grows
without a fixed bound; the only hard limit is the total ciphertext the
declared size allows.
"""

import asyncio
from typing import Optional

from .types import ProtocolViolationError


class QueueClosedError(Exception):
    """Raised when putting into a closed queue."""

    def __init__(self) -> None:
        super().__init__("Queue is closed")


class ChunkQueue:
    """Single-producer, single-consumer FIFO of ciphertext frames."""

    def __init__(self, expected_bytes: int) -> None:
        """
        Create a queue for one transfer.

        Args:
            expected_bytes: Total ciphertext the declared size allows
        """
        self._queue: "asyncio.Queue[Optional[bytes]]" = asyncio.Queue()
        self._expected_bytes = expected_bytes
        self._received_bytes = 0
        self._closed = False

    @property
    def expected_bytes(self) -> int:
        """Total ciphertext bytes this queue will accept."""
        return self._expected_bytes

    @property
    def received_bytes(self) -> int:
        """Ciphertext bytes put so far."""
        return self._received_bytes

    @property
    def pending(self) -> int:
        """Frames waiting for the worker."""
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        """Whether the queue has been closed."""
        return self._closed

    def put(self, chunk: bytes) -> None:
        """
        Append a ciphertext frame.

        Raises:
            QueueClosedError: If the queue was closed
            ProtocolViolationError: If the frame exceeds the declared total
        """
        if self._closed:
            raise QueueClosedError()

        if self._received_bytes + len(chunk) > self._expected_bytes:
            raise ProtocolViolationError(
                f"Received more than {self._expected_bytes} ciphertext bytes"
            )

        self._received_bytes += len(chunk)
        self._queue.put_nowait(chunk)

    async def get(self) -> Optional[bytes]:
        """Wait for the next frame. Returns None once the queue is closed and drained."""
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def close(self) -> None:
        """Stop accepting frames and wake the worker."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)
