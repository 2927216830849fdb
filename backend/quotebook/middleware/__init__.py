# Middleware package init
"""
Quotebook Backend — Middleware Package
======================================

What:  Per-request concerns shared by every route.

Middleware chain (outermost first):
    Request → [Request ID] → [Access Log] → [CORS] → [GZip] → Route Handler

    - Request ID runs first so the access log line and any error body carry
      the same correlation id.
    - The access log measures the full handler time, including the remote
      backend round-trips.
"""
