"""Byte sinks the archive engine writes into."""

import logging
import queue
import threading
from typing import Optional, Protocol

from dirserve.core.errors import SinkWriteFailure

logger = logging.getLogger(__name__)


class WriteSink(Protocol):
    """Destination of a streamed archive."""

    def write(self, chunk: bytes) -> None:
        """Accept one chunk, raising SinkWriteFailure when no longer possible."""
        ...


class MemorySink:
    """Sink collecting every chunk in memory."""

    def __init__(self):
        self.chunks: list[bytes] = []

    def write(self, chunk: bytes) -> None:
        self.chunks.append(bytes(chunk))

    @property
    def bytes_written(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)

    def getvalue(self) -> bytes:
        return b"".join(self.chunks)


class _End:
    def __init__(self, error: Optional[BaseException] = None):
        self.error = error


class QueueSink:
    """
    Bounded hand-off between a producer thread and an async consumer.

    write() blocks while ``depth`` chunks are waiting, so the producer never
    reads further ahead than the consumer (the client) accepts. After cancel()
    every write raises SinkWriteFailure.
    """

    def __init__(self, depth: int = 8, poll_interval: float = 0.1):
        self._queue: queue.Queue = queue.Queue(maxsize=depth)
        self._cancelled = threading.Event()
        self._poll_interval = poll_interval

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _put(self, item) -> None:
        while True:
            if self._cancelled.is_set():
                raise SinkWriteFailure("Client disconnected")
            try:
                self._queue.put(item, timeout=self._poll_interval)
                return
            except queue.Full:
                continue

    def write(self, chunk: bytes) -> None:
        if chunk:
            self._put(bytes(chunk))

    def finish(self, error: Optional[BaseException] = None) -> None:
        """Signal end of stream to the consumer, optionally with an error to re-raise."""
        try:
            self._put(_End(error))
        except SinkWriteFailure:
            logger.debug("Consumer gone before end of stream")

    def get(self) -> Optional[bytes]:
        """
        Take the next chunk, blocking until one is available.

        Returns:
            Chunk bytes, or None once the producer finished

        Raises:
            Exception: The error the producer finished with, if any
        """
        item = self._queue.get()
        if isinstance(item, _End):
            if item.error is not None:
                raise item.error
            return None
        return item

    def cancel(self) -> None:
        """Stop accepting writes and release both sides if they are blocked."""
        self._cancelled.set()
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        # Wakes a consumer still waiting in get()
        try:
            self._queue.put_nowait(_End())
        except queue.Full:
            logger.debug("Queue refilled during cancel")
