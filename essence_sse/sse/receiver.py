"""
SSE Receiver
============

Client side of a connection pairing. Subscribes to an event-stream URL,
decodes envelopes for one channel tag and hands data envelopes to a
callback until the termination envelope arrives.
"""

from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Type, Union
import asyncio
import inspect

import httpx
from pydantic import ValidationError

from essence_sse.config.settings import get_settings
from essence_sse.config.logging import get_logger

from .errors import MalformedPayloadError
from .events import EventStreamParser, ServerSentEvent
from .models import Envelope, PayloadT

logger = get_logger(__name__)

DataCallback = Callable[[Envelope[Any]], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[MalformedPayloadError], Any]


class Receiver(Generic[PayloadT]):
    """
    Subscription to a remote event stream.

    ``on_data`` is called once per data envelope, in order, and never for
    the termination envelope. Malformed bodies are reported and skipped.
    """

    def __init__(
        self,
        url: str,
        channel_tag: str,
        on_data: DataCallback,
        on_error: Optional[ErrorCallback] = None,
        payload_type: Type[Any] = Any,  # type: ignore[assignment]
        client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.url = url
        self.channel_tag = channel_tag
        self._on_data = on_data
        self._on_error = on_error
        self._envelope_model: Any = Envelope[payload_type]  # type: ignore[valid-type]
        self._client = client
        self._owns_client = client is None
        self._headers = headers or {}
        self.settings = get_settings()
        self.logger: Any = logger.bind(component="sse_receiver", channel_tag=channel_tag)

        self._task: Optional["asyncio.Task[None]"] = None
        self._reader: Optional["asyncio.Task[None]"] = None
        self._closing = False
        self._closed = False
        self._terminated = False
        self.messages_received = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminated(self) -> bool:
        """Whether the termination envelope was received."""
        return self._terminated

    def _create_client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(
            self.settings.receiver_connect_timeout_seconds,
            read=self.settings.receiver_read_timeout_seconds,
        )
        return httpx.AsyncClient(timeout=timeout)

    async def run(self) -> None:
        """
        Consume the stream until termination, teardown, or end of response.

        Returns normally when ``close()`` tears the subscription down.

        Raises:
            httpx.HTTPStatusError: If the server answers with an error status
        """
        if self._closing or self._closed:
            self._closed = True
            self.logger.warning("Receiver already closed, not subscribing", url=self.url)
            return

        # Reading happens in its own task so close() can interrupt an idle
        # stream without cancelling whoever awaits run()
        self._reader = asyncio.create_task(self._consume())
        try:
            await self._reader
        except asyncio.CancelledError:
            if not self._closing:
                raise

    async def _consume(self) -> None:
        client = self._client or self._create_client()
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache", **self._headers}

        self.logger.info("Subscribing to event stream", url=self.url)
        try:
            async with client.stream("GET", self.url, headers=headers) as response:
                response.raise_for_status()
                parser = EventStreamParser()

                async for line in response.aiter_lines():
                    event = parser.feed_line(line)
                    if event is None or event.event != self.channel_tag:
                        continue

                    if await self._handle_event(event):
                        self._terminated = True
                        self.logger.info(
                            "Termination envelope received",
                            messages_received=self.messages_received,
                        )
                        break
                    if self._closing:
                        break
        finally:
            if self._owns_client:
                await client.aclose()
            self._closed = True
            self.logger.info("Subscription closed", url=self.url, terminated=self._terminated)

    async def _handle_event(self, event: ServerSentEvent) -> bool:
        """Dispatch one event for our tag. Returns True on termination."""
        try:
            envelope = self._envelope_model.model_validate_json(event.data)
        except ValidationError as e:
            error = MalformedPayloadError(
                f"Malformed payload on channel '{self.channel_tag}': {e.error_count()} error(s)",
                self.channel_tag,
                raw=event.data,
            )
            self.logger.warning("Malformed payload skipped", raw=event.data, error=str(e))
            if self._on_error is not None:
                try:
                    self._on_error(error)
                except Exception as callback_error:
                    self.logger.error(
                        "Error callback failed",
                        error_type=type(callback_error).__name__,
                        error=str(callback_error),
                    )
            return False

        if envelope.is_termination:
            return True

        self.messages_received += 1
        result = self._on_data(envelope)
        if inspect.isawaitable(result):
            await result
        return False

    def start(self) -> "asyncio.Task[None]":
        """Run the subscription in a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def wait_closed(self) -> None:
        """Wait for a background subscription to finish."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def close(self) -> None:
        """
        Tear down the subscription before termination arrives.

        Releases the HTTP stream and returns once the subscription is closed.
        A failure of the background task started by ``start()`` is raised here.

        Raises:
            httpx.HTTPStatusError: If the background subscription failed on it
        """
        self._closing = True
        current = asyncio.current_task()
        reader = self._reader

        if reader is None:
            # Never subscribed; a pending start() task returns immediately
            self._closed = True
        elif reader is current:
            # Called from on_data, the read loop stops after the callback
            return
        elif not reader.done():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
            # A reader cancelled before its first step never reached its finally
            self._closed = True

        task = self._task
        if task is not None and task is not current:
            await self.wait_closed()

    async def __aenter__(self) -> "Receiver[PayloadT]":
        self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        try:
            await self.close()
        except Exception as e:
            if exc_type is None:
                raise
            # The exception leaving the block takes precedence
            self.logger.error(
                "Subscription failed", error_type=type(e).__name__, error=str(e)
            )
