"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Rule violations surface as named RetroBoardError subclasses

Design Decisions:
    - Functional core separated from imperative shell: services load rows,
      core validates, services write
"""
