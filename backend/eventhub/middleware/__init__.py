"""
EventHub Backend — Middleware Package
======================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation ID for log lines and error responses
    2. Logging: one access line per request, tagged with the request ID
    3. GZip / CORS: FastAPI's built-in middleware
"""
