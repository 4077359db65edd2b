"""Rate limiting adapters.

Sliding-window limiters behind a small abstraction: an in-memory
implementation for tests and single-process runs, and a Redis one that is
shared across processes.
"""
