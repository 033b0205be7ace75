"""Retro Board Application Package — card relationship and reaction engine.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
