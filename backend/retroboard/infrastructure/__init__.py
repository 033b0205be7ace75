"""Infrastructure Layer — database access, logging, locking and event fan-out.

Invariants:
    - Infrastructure never imports from services/ or api/
    - Persistence failures are mapped to DatabaseError, never retried here
"""
