"""
RecipeHub Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route
    Response ← same chain in reverse

    - The request ID is set before the access log line is written, so every
      log entry of a request carries it.
    - Rate-limited requests never reach the database.
"""
