# Middleware package init
"""
Wellspring Backend - Middleware Package
========================================

Middleware Chain (request order):
    Request → [Request ID] → [Logging] → [CORS] → [Rate Limit] → [GZip] → Route

    Starlette runs the middleware added LAST first, so main.py adds them
    in reverse. Request ID comes first so that the access log line and
    429 bodies carry the correlation ID.
"""
