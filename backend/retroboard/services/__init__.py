"""Services Layer — imperative shell around the pure core.

Invariants:
    - Every service takes an AsyncSession and the board lock registry
    - Graph, reaction and maintenance writes run under the board lock

Design Decisions:
    - One class per concern (lifecycle, graph, reactions, maintenance)
"""
