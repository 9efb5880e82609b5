"""
FratRank backend package.

This package provides a FastAPI application with storage, rate limiting and
entity-store abstractions so the campus rating app can run against Postgres,
a local key/value store (offline/demo mode) or plain memory in tests.
"""
