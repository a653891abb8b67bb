"""
SSE Response
============

Streaming response carrying the read end of an Emitter's duplex.
"""

from typing import AsyncIterator, Dict, Optional

from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from .signals import AbortSignal

EVENT_STREAM_MEDIA_TYPE = "text/event-stream"

EVENT_STREAM_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Content-Type": "text/event-stream; charset=utf-8",
    "Connection": "keep-alive",
    "Cache-Control": "no-cache, no-transform",
    "X-Accel-Buffering": "no",  # Disable Nginx buffering
    "Content-Encoding": "none",
}


class EventStreamResponse(StreamingResponse):
    """
    Event-stream response that reports client disconnects.

    If the ASGI exchange finishes before the body iterator is exhausted the
    client went away, and ``abort_signal`` is fired.
    """

    def __init__(
        self,
        content: AsyncIterator[bytes],
        abort_signal: Optional[AbortSignal] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.abort_signal = abort_signal
        self.body_exhausted = False
        super().__init__(
            self._track_exhaustion(content),
            status_code=200,
            headers={**EVENT_STREAM_HEADERS, **(headers or {})},
            media_type=EVENT_STREAM_MEDIA_TYPE,
        )

    async def _track_exhaustion(self, content: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        async for chunk in content:
            yield chunk
        self.body_exhausted = True

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            if not self.body_exhausted and self.abort_signal is not None:
                await self.abort_signal.abort("client disconnected")
