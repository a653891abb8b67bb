"""
SSE Duplex
==========

In-process byte pipe with a write end owned by the Emitter and a read end
handed to the streaming response.
"""

from typing import AsyncIterator, Optional
import asyncio

from .errors import ChannelClosedError
from .events import KEEP_ALIVE_COMMENT


class Duplex:
    """FIFO byte duplex backed by an unbounded asyncio queue."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, chunk: bytes) -> None:
        """Append a chunk to the pipe."""
        if self._closed:
            raise ChannelClosedError("Cannot write to a closed duplex")
        await self._queue.put(chunk)

    async def close(self) -> None:
        """Close the write end; readers drain pending chunks then stop."""
        if self._closed:
            raise ChannelClosedError("Duplex is already closed")
        self._closed = True
        await self._queue.put(None)

    async def readable(self, heartbeat_interval: Optional[float] = None) -> AsyncIterator[bytes]:
        """
        Iterate chunks in write order until the write end is closed.

        Args:
            heartbeat_interval: Seconds of idleness before a keep-alive
                comment is yielded; None or 0 disables keep-alives

        Yields:
            Written chunks and keep-alive comments
        """
        while True:
            if heartbeat_interval:
                try:
                    chunk = await asyncio.wait_for(self._queue.get(), timeout=heartbeat_interval)
                except asyncio.TimeoutError:
                    yield KEEP_ALIVE_COMMENT
                    continue
            else:
                chunk = await self._queue.get()

            # None is a signal to stop
            if chunk is None:
                break

            yield chunk
