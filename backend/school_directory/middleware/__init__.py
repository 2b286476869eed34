# Middleware package init
"""
School Directory Backend — Middleware Package
===============================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation ID for logs and error bodies
    2. Logging: method, path, status and duration, tagged with the request ID
"""
