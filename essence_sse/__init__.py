"""
Essence SSE
===========

Typed, tagged Server-Sent Events over a single long-lived HTTP response.

This package provides:
- Emitter: server-side push of tagged envelopes with graceful termination
- Receiver: client-side subscription that detects the end of the stream
- A FastAPI demo service streaming progress updates
"""

__version__ = "1.0.0"
__author__ = "Essence SSE Team"
