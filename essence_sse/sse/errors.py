"""
SSE Errors
==========

Exceptions reported by the Emitter and Receiver.

Emitter errors are never raised into the request pipeline; they are logged
and handed to the optional ``on_error`` callback instead.
"""

from typing import Optional


class ChannelError(Exception):
    """Base exception for channel failures."""

    def __init__(self, message: str, channel_tag: Optional[str] = None):
        super().__init__(message)
        self.channel_tag = channel_tag


class NotOpenError(ChannelError):
    """Raised when pushing to or closing an emitter that was never opened."""

    pass


class ChannelClosedError(ChannelError):
    """Raised when writing to an emitter or duplex that is already closed."""

    pass


class MalformedPayloadError(ChannelError):
    """Raised when an inbound event body is not a valid envelope."""

    def __init__(self, message: str, channel_tag: Optional[str] = None, raw: str = ""):
        super().__init__(message, channel_tag)
        self.raw = raw
