"""
Server-Sent Events (SSE) Infrastructure
======================================

Push of typed, tagged messages from a server to one client over a single
long-lived HTTP response, with a distinguishable end-of-stream marker.

Components:
- Emitter: Server-side push, close, and abort handling
- Receiver: Client-side subscription with termination detection
- Events: Frame encoding and event-stream parsing
- Models: Pydantic envelope models
"""

from .emitter import Emitter
from .errors import ChannelClosedError, ChannelError, MalformedPayloadError, NotOpenError
from .events import EventStreamParser, ServerSentEvent, format_frame
from .models import TERMINATION_ENVELOPE, EmitterState, Envelope, EnvelopeStatus
from .receiver import Receiver
from .response import EVENT_STREAM_HEADERS, EventStreamResponse
from .signals import AbortSignal

__all__ = [
    "AbortSignal",
    "ChannelClosedError",
    "ChannelError",
    "EVENT_STREAM_HEADERS",
    "Emitter",
    "EmitterState",
    "Envelope",
    "EnvelopeStatus",
    "EventStreamParser",
    "EventStreamResponse",
    "MalformedPayloadError",
    "NotOpenError",
    "Receiver",
    "ServerSentEvent",
    "TERMINATION_ENVELOPE",
    "format_frame",
]
