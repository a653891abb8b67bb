"""
SSE Emitter
===========

Server side of a connection pairing. Pushes tagged envelopes onto a duplex
whose read end is streamed to the client, and terminates the stream with
the termination envelope.

Lifecycle: ``unopened -> open -> closed``. Closing happens either through
``close()`` or when the abort signal fires; both take the same path.
"""

from typing import Any, Callable, Generic, Optional
from pydantic_core import PydanticSerializationError

from essence_sse.config.settings import get_settings
from essence_sse.config.logging import get_logger

from .duplex import Duplex
from .errors import ChannelClosedError, ChannelError, NotOpenError
from .events import format_frame, validate_channel_tag
from .models import TERMINATION_ENVELOPE, EmitterState, Envelope, PayloadT
from .response import EventStreamResponse
from .signals import AbortSignal

logger = get_logger(__name__)

ErrorCallback = Callable[[ChannelError], Any]


class Emitter(Generic[PayloadT]):
    """
    Pushes typed values to a single connected client.

    Errors are never raised from ``push`` or ``close``. They are logged and
    passed to ``on_error`` when one is supplied, and the call returns False.
    """

    def __init__(
        self,
        abort_signal: AbortSignal,
        channel_tag: str,
        on_error: Optional[ErrorCallback] = None,
        heartbeat_interval: Optional[float] = None,
    ):
        self.channel_tag = channel_tag
        self._state = EmitterState.UNOPENED
        self._duplex = Duplex()
        self._abort_signal = abort_signal
        self._on_error = on_error
        self.settings = get_settings()
        self.heartbeat_interval = (
            heartbeat_interval
            if heartbeat_interval is not None
            else self.settings.sse_heartbeat_interval_seconds
        )
        self.logger: Any = logger.bind(component="sse_emitter", channel_tag=channel_tag)

        # Connection disconnected
        abort_signal.add_listener(self._handle_abort)

    @property
    def state(self) -> EmitterState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == EmitterState.OPEN

    def open(self) -> EventStreamResponse:
        """
        Open the event stream.

        Must be called once, before ``push`` or ``close``.

        Returns:
            Streaming response with the event-stream headers already set

        Raises:
            ValueError: If the channel tag cannot be framed
            ChannelError: If the emitter was already opened
        """
        if self._state != EmitterState.UNOPENED:
            raise ChannelError(
                f"Emitter cannot be opened from state '{self._state.value}'", self.channel_tag
            )
        validate_channel_tag(self.channel_tag)

        self._state = EmitterState.OPEN
        self.logger.info("SSE stream opened")

        return EventStreamResponse(
            self._duplex.readable(self.heartbeat_interval),
            abort_signal=self._abort_signal,
        )

    async def push(self, value: PayloadT) -> bool:
        """
        Push a value to the subscribed client.

        Args:
            value: Application payload, wrapped in a data envelope

        Returns:
            True if the frame was written
        """
        if self._state == EmitterState.UNOPENED:
            self._report(NotOpenError("Cannot push before the stream is opened", self.channel_tag))
            return False
        if self._state == EmitterState.CLOSED:
            self._report(ChannelClosedError("Cannot push to a closed stream", self.channel_tag))
            return False

        try:
            frame = format_frame(self.channel_tag, Envelope.running(value))
        except PydanticSerializationError as e:
            self._report(ChannelError(f"Payload is not JSON serializable: {e}", self.channel_tag))
            return False

        try:
            await self._duplex.write(frame)
        except ChannelClosedError as e:
            e.channel_tag = self.channel_tag
            self._report(e)
            return False

        self.logger.debug("Frame pushed", frame_size=len(frame))
        return True

    async def close(self) -> bool:
        """
        Terminate the stream.

        Writes the termination frame and closes the write end. Only the
        first call has any effect.

        Returns:
            True if this call closed the stream
        """
        if self._state == EmitterState.UNOPENED:
            self._report(NotOpenError("Cannot close before the stream is opened", self.channel_tag))
            return False
        if self._state == EmitterState.CLOSED:
            self._report(ChannelClosedError("Stream is already closed", self.channel_tag))
            return False

        # Transition first so pushes racing with an abort see a closed stream
        self._state = EmitterState.CLOSED

        # Notify subscriber of signal termination
        await self._duplex.write(format_frame(self.channel_tag, TERMINATION_ENVELOPE))
        await self._duplex.close()

        self.logger.info("SSE stream closed")
        return True

    async def _handle_abort(self, reason: str) -> None:
        self.logger.info("Connection aborted", reason=reason, state=self._state.value)
        if self._state == EmitterState.OPEN:
            await self.close()

    def _report(self, error: ChannelError) -> None:
        self.logger.warning(
            "SSE emitter error",
            error_type=type(error).__name__,
            error=str(error),
            state=self._state.value,
        )
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception as e:
            self.logger.error(
                "Error callback failed", error_type=type(e).__name__, error=str(e)
            )
