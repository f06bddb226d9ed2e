# Middleware package init
"""
NoteCraft Backend — Middleware Package
=======================================

Middleware Chain (outermost first):
    Request → [CORS] → [Request ID] → [Logging] → [Session] → Route Handler

    1. CORS outermost: preflight OPTIONS is answered before authentication,
       and 401 responses still carry CORS headers.
    2. Request ID: correlation ID for every log line below it.
    3. Logging: method, path, status, duration.
    4. Session: identity client + Principal for /api requests.
"""
