"""
SSE Events
==========

Frame encoding and event-stream parsing.

Every frame is a single atomic write::

    event: <channel tag>
    data: <JSON envelope>
    <blank line>

Parsing follows the WHATWG event-stream rules: comments are skipped, data
lines are joined with newlines and a blank line dispatches the event.
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from .models import Envelope

KEEP_ALIVE_COMMENT = b": keep-alive\n\n"
DEFAULT_EVENT_NAME = "message"


@dataclass
class ServerSentEvent:
    """A dispatched event-stream event."""

    event: str = DEFAULT_EVENT_NAME
    data: str = ""
    id: Optional[str] = None
    retry: Optional[int] = None


def validate_channel_tag(channel_tag: str) -> str:
    """Ensure the tag fits on a single ``event:`` line."""
    if not channel_tag:
        raise ValueError("Channel tag cannot be empty")
    if "\n" in channel_tag or "\r" in channel_tag:
        raise ValueError(f"Channel tag must not contain line breaks: {channel_tag!r}")
    return channel_tag


def format_frame(channel_tag: str, envelope: Envelope[Any]) -> bytes:
    """
    Encode an envelope as one event-stream frame.

    Args:
        channel_tag: Event name identifying the logical stream
        envelope: Data or termination envelope

    Returns:
        UTF-8 encoded frame
    """
    # Compact JSON never contains a raw newline, so one data line is enough
    data_json = envelope.model_dump_json()
    return f"event: {channel_tag}\ndata: {data_json}\n\n".encode("utf-8")


class EventStreamParser:
    """Incremental parser fed one line at a time (terminators already stripped)."""

    def __init__(self) -> None:
        self._event = ""
        self._data: List[str] = []
        self._last_event_id: Optional[str] = None
        self._retry: Optional[int] = None

    @property
    def last_event_id(self) -> Optional[str]:
        return self._last_event_id

    def feed_line(self, line: str) -> Optional[ServerSentEvent]:
        """
        Consume a single line.

        Returns:
            The dispatched event when ``line`` is blank and data was buffered,
            otherwise None
        """
        if not line:
            return self._dispatch()

        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            if "\0" not in value:
                self._last_event_id = value
        elif field == "retry":
            if value.isdigit():
                self._retry = int(value)
        # Unknown fields are ignored

        return None

    def _dispatch(self) -> Optional[ServerSentEvent]:
        if not self._data:
            self._event = ""
            return None

        event = ServerSentEvent(
            event=self._event or DEFAULT_EVENT_NAME,
            data="\n".join(self._data),
            id=self._last_event_id,
            retry=self._retry,
        )
        self._event = ""
        self._data = []
        return event
