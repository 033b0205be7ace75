"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Broadcasting is an outbound port; the core never calls it itself, route
      handlers publish after a core operation has returned

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
"""

from collections.abc import Callable
from typing import Protocol

from retroboard.core.domain_types import BoardId

EventHandler = Callable[[BoardId, str, dict], None]


class EventPublisher(Protocol):
    """Contract for pushing state changes to other viewers of a board."""
    def publish(self, board_id: BoardId, event_type: str, payload: dict) -> None: ...
    def subscribe(self, board_id: BoardId, handler: EventHandler) -> None: ...
    def unsubscribe(self, board_id: BoardId, handler: EventHandler) -> None: ...
