# Middleware package init
"""
Project Gallery Backend — Middleware Package
==============================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [Body Limit] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation ID available to every later log line
    2. Logging: method, path, status and duration, including 413s
    3. Body Limit: rejects oversized non-multipart bodies before parsing
"""
