"""
Resumable Stream Package.

A per-session, append-only log of typed messages (Redis Streams) plus a
best-effort wake-up channel (Redis pub/sub), combined so any number of
observers can replay a generation from the start and then follow it live.
"""

__version__ = "1.0.0"
