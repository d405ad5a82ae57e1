# Middleware package init
"""
Bug Tracker Backend: Middleware Package
=========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first: every later log line can carry the correlation ID
    2. Logging: method, path, status and duration, tagged with the ID
    3. GZip / CORS: standard Starlette middleware

    Responses pass back through the chain in reverse, which is where the
    X-Request-ID header is added and the duration is measured.
"""
