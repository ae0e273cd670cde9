# Middleware package init
"""
RecipeBox — Middleware Package
==============================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit: reject abusive clients before any work is done
    2. Request ID: correlation id for logs, echoed in X-Request-ID
    3. Logging:    one access-log line per request, tagged with the request id

Responses unwind in the reverse order, so the request id header is added
after the logging middleware has measured the duration.
"""
