"""Board Maintenance — clear, reset, seed and delete whole boards.

Invariants:
    - Each operation holds the board lock for its whole duration and commits
      once; a failure rolls back every row it touched
    - clear removes cards, reactions, cross-links and sessions; the board row
      and its configuration stay
    - reset = clear + reopen if closed
    - Seeded data satisfies the same graph invariants and counts as data built
      through the single-item operations, but skips per-user limits

Design Decisions:
    - Seeding is planned in core.seed_plan and persisted with ORM bulk
      INSERT/UPDATE statements (one round trip per table)
    - Parent pointers are cleared before cards are deleted, so the delete does
      not depend on FK action ordering
"""

import logging
import random
from uuid import UUID

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from retroboard.core.domain_types import BoardId, Identity
from retroboard.core.enforce_board import check_board_active, check_is_creator
from retroboard.core.errors import DomainValidationError
from retroboard.core.seed_plan import SeedRequest, build_seed_plan
from retroboard.infrastructure.board_locks import BoardLockRegistry, board_locks
from retroboard.models.card import Card
from retroboard.models.card_link import CardLink
from retroboard.models.reaction import Reaction
from retroboard.models.user_session import UserSession
from retroboard.services.board_lifecycle import BoardLifecycle
from retroboard.services.graph_queries import utcnow
from retroboard.services.reaction_ledger import ReactionLedger

logger = logging.getLogger(__name__)


class BoardMaintenance:
    """Bulk board operations for tests, demos and board deletion."""

    def __init__(self, db: AsyncSession, locks: BoardLockRegistry = board_locks):
        self.db = db
        self.locks = locks
        self.boards = BoardLifecycle(db, locks)

    async def clear_board(self, board_id: UUID) -> dict:
        async with self.locks.hold(board_id):
            await self.boards.get_board(board_id)
            counts = await self._clear_data(board_id)
            await self.db.commit()
        logger.info(f"Board cleared: {board_id}", extra={"board_id": str(board_id)})
        return counts

    async def reset_board(self, board_id: UUID) -> dict:
        async with self.locks.hold(board_id):
            board = await self.boards.get_board(board_id)
            counts = await self._clear_data(board_id)
            counts["board_reopened"] = await self.boards.reopen_board(board)
            await self.db.commit()
        logger.info(f"Board reset: {board_id}", extra={"board_id": str(board_id)})
        return counts

    async def seed_test_data(
        self, board_id: UUID, request: SeedRequest, rng: random.Random | None = None,
    ) -> dict:
        async with self.locks.hold(board_id):
            board = await self.boards.get_board(board_id)
            check_board_active(board.id, board.state)
            existing = await self.db.scalars(
                select(UserSession.user_hash).where(UserSession.board_id == board_id),
            )
            try:
                plan = build_seed_plan(
                    BoardId(board.id),
                    [col["id"] for col in board.columns],
                    request,
                    now=utcnow(),
                    rng=rng,
                    existing_user_hashes=frozenset(existing.all()),
                )
            except ValueError as e:
                raise DomainValidationError(str(e))

            if plan.sessions:
                await self.db.execute(insert(UserSession), plan.sessions)
            if plan.cards:
                await self.db.execute(insert(Card), plan.cards)
            if plan.parent_links:
                await self.db.execute(update(Card), plan.parent_links)
            if plan.cross_links:
                await self.db.execute(insert(CardLink), plan.cross_links)
            if plan.reactions:
                await self.db.execute(insert(Reaction), plan.reactions)
            await self.db.commit()

        logger.info(
            f"Board seeded: {len(plan.cards)} cards, {len(plan.reactions)} reactions",
            extra={"board_id": str(board_id)},
        )
        return {
            "users_created": len(plan.sessions),
            "cards_created": len(plan.cards),
            "action_cards_created": plan.action_cards_created,
            "reactions_created": len(plan.reactions),
            "relationships_created": plan.relationships_created,
            "links_created": plan.links_created,
            "user_aliases": plan.user_aliases,
        }

    async def delete_board(self, board_id: UUID, identity: Identity) -> None:
        """Creator-only: remove the board and everything on it."""
        async with self.locks.hold(board_id):
            board = await self.boards.get_board(board_id)
            check_is_creator(board.created_by_hash, identity, "board")
            await self._clear_data(board_id)
            await self.db.delete(board)
            await self.db.commit()
        logger.info(f"Board deleted: {board_id}", extra={"board_id": str(board_id)})

    async def _clear_data(self, board_id: UUID) -> dict:
        card_ids = (await self.db.scalars(
            select(Card.id).where(Card.board_id == board_id),
        )).all()
        reactions_deleted = await ReactionLedger(self.db, self.locks).delete_by_cards(card_ids)
        await self.db.execute(delete(CardLink).where(CardLink.board_id == board_id))
        await self.db.execute(
            update(Card).where(Card.board_id == board_id).values(parent_card_id=None),
        )
        cards = await self.db.execute(delete(Card).where(Card.board_id == board_id))
        sessions = await self.db.execute(
            delete(UserSession).where(UserSession.board_id == board_id),
        )
        return {
            "cards_deleted": cards.rowcount,
            "reactions_deleted": reactions_deleted,
            "users_deleted": sessions.rowcount,
        }
