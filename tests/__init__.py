"""
Test Suite
==========

Unit and integration tests for the Essence SSE emitter and receiver.
"""
