"""Core reducer primitives (per-call context and commit events).

Kept free of FastAPI concerns so it can be reused by API routes, scripts, and tests.
"""
