"""
SSE Models
==========

Pydantic models for the envelope carried by every frame.

A data envelope wraps an application payload with ``status="running"``.
The termination envelope is a single protocol-wide constant with a null
payload and ``status="terminate"``.
"""

from typing import Any, Generic, Optional, TypeVar
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, model_validator

PayloadT = TypeVar("PayloadT")


class EnvelopeStatus(str, Enum):
    """Envelope discriminant."""

    RUNNING = "running"
    TERMINATE = "terminate"


class EmitterState(str, Enum):
    """Emitter lifecycle state."""

    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


class Envelope(BaseModel, Generic[PayloadT]):
    """Unit of information carried per frame."""

    payload: Optional[PayloadT] = Field(None, description="Application payload")
    status: EnvelopeStatus = Field(..., description="Envelope discriminant")

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    @model_validator(mode="after")
    def validate_termination_payload(self) -> "Envelope[PayloadT]":
        """The termination envelope never carries a payload."""
        if self.status == EnvelopeStatus.TERMINATE and self.payload is not None:
            raise ValueError("Termination envelope must have a null payload")
        return self

    @classmethod
    def running(cls, payload: Any) -> "Envelope[Any]":
        """Build a data envelope around ``payload``."""
        return cls(payload=payload, status=EnvelopeStatus.RUNNING)

    @property
    def is_termination(self) -> bool:
        """Whether this envelope marks the end of the stream."""
        return self.status == EnvelopeStatus.TERMINATE


TERMINATION_ENVELOPE: Envelope[Any] = Envelope(payload=None, status=EnvelopeStatus.TERMINATE)
