"""Board Lock Registry — per-board mutual exclusion for card graph writes.

Invariants:
    - At most one graph/reaction/maintenance mutation per board runs at a time
    - Boards never wait on each other (one lock per board id, no global lock)
    - A lock exists only while someone holds or waits for it

Design Decisions:
    - asyncio.Lock keyed by board id, created lazily and dropped on last release.
      Safe without extra locking because registry bookkeeping never awaits
    - Single-process deployment: a multi-worker setup would need a DB-level
      lock (e.g. SELECT ... FOR UPDATE on the board row) instead
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID

logger = logging.getLogger(__name__)


class BoardLockRegistry:
    """Keyed mutex map: one asyncio.Lock per board id."""

    def __init__(self) -> None:
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._holders: dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, board_id: UUID) -> AsyncIterator[None]:
        """Serialize the enclosed read-validate-write block for one board."""
        lock = self._locks.get(board_id)
        if lock is None:
            lock = self._locks[board_id] = asyncio.Lock()
        self._holders[board_id] = self._holders.get(board_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[board_id] -= 1
            if self._holders[board_id] == 0:
                del self._holders[board_id]
                del self._locks[board_id]

    def is_locked(self, board_id: UUID) -> bool:
        lock = self._locks.get(board_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)

    def stats(self) -> dict[str, int]:
        """Boards with a write pending or running, and how many are running."""
        locked = sum(1 for lock in self._locks.values() if lock.locked())
        return {
            "tracked": len(self._locks),
            "locked": locked,
            "waiting": sum(self._holders.values()) - locked,
        }


board_locks = BoardLockRegistry()
