"""
FastAPI Demo Service
====================

HTTP endpoints that exercise the SSE emitter.

Endpoints:
- GET /sse/progress: Stream progress updates, then terminate
- GET /health: Health check endpoint
"""
