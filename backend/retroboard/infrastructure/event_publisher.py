"""In-Process Event Publisher — hands board events to local subscribers.

Invariants:
    - publish() never raises: a failing subscriber is logged and skipped
    - Subscribers only receive events for the board they subscribed to

Design Decisions:
    - Network transport (websockets etc.) plugs in as a subscriber; this module
      only does fan-out and logging
"""

import logging

from retroboard.core.boundary_protocols import EventHandler
from retroboard.core.domain_types import BoardId

logger = logging.getLogger(__name__)


class InProcessEventPublisher:
    """EventPublisher implementation backed by a dict of callbacks."""

    def __init__(self) -> None:
        self._subscribers: dict[BoardId, list[EventHandler]] = {}

    def subscribe(self, board_id: BoardId, handler: EventHandler) -> None:
        self._subscribers.setdefault(board_id, []).append(handler)

    def unsubscribe(self, board_id: BoardId, handler: EventHandler) -> None:
        handlers = self._subscribers.get(board_id, [])
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            self._subscribers.pop(board_id, None)

    def publish(self, board_id: BoardId, event_type: str, payload: dict) -> None:
        logger.debug(
            f"Publishing {event_type}",
            extra={"board_id": board_id, "event_type": event_type},
        )
        for handler in list(self._subscribers.get(board_id, [])):
            try:
                handler(board_id, event_type, payload)
            except Exception:
                logger.exception(
                    f"Event subscriber failed for {event_type}",
                    extra={"board_id": board_id, "event_type": event_type},
                )


event_publisher = InProcessEventPublisher()
