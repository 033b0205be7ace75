"""Reaction Ledger — records reactions and keeps card counts consistent.

Invariants:
    - At most one reaction per (card, user, reaction_type); re-adding is a no-op
    - direct_reaction_count is recounted from the reactions table on every write
    - Every write recomputes the card's aggregate and its parent's aggregate
      (if any) in the same transaction
    - The per-user reaction limit counts the user's reactions across the board
      and only applies to a reaction that would be new

Design Decisions:
    - Removing a missing reaction is a no-op, not an error (double-click safe)
    - delete_by_cards never commits: it is one step of a card or board delete
"""

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from retroboard.core.domain_types import DEFAULT_REACTION_TYPE, LimitKind, short_hash
from retroboard.core.enforce_board import quota
from retroboard.infrastructure.board_locks import BoardLockRegistry, board_locks
from retroboard.models.card import Card
from retroboard.models.reaction import Reaction
from retroboard.services.board_lifecycle import BoardLifecycle
from retroboard.services.graph_queries import (
    load_card, recompute_aggregation, recount_direct_reactions,
)

logger = logging.getLogger(__name__)


class ReactionLedger:
    """Add/remove reactions under the board lock."""

    def __init__(self, db: AsyncSession, locks: BoardLockRegistry = board_locks):
        self.db = db
        self.locks = locks
        self.boards = BoardLifecycle(db, locks)

    async def add_reaction(
        self, card_id: UUID, user_hash: str,
        reaction_type: str = DEFAULT_REACTION_TYPE,
    ) -> tuple[Reaction, Card, bool]:
        """Returns (reaction, card, is_new)."""
        located = await load_card(self.db, card_id)
        async with self.locks.hold(located.board_id):
            card = await load_card(self.db, card_id)
            board = await self.boards.get_board(card.board_id)
            self.boards.assert_active(board)

            existing = await self._find(card_id, user_hash, reaction_type)
            if existing is not None:
                return existing, card, False

            current = await self.count_user_reactions(board.id, user_hash)
            self.boards.assert_under_limit(board, LimitKind.REACTIONS, current)

            session = await self.boards.get_session(board.id, user_hash)
            reaction = Reaction(
                board_id=board.id, card_id=card.id, user_hash=user_hash,
                user_alias=session.alias if session else None,
                reaction_type=reaction_type,
            )
            self.db.add(reaction)
            await self.db.flush()
            await self._refresh_counts(card)
            await self.db.commit()
        logger.info(f"Reaction added to card {card_id}", extra={
            "board_id": str(card.board_id), "card_id": str(card_id),
            "user_hash": short_hash(user_hash),
        })
        return reaction, card, True

    async def remove_reaction(
        self, card_id: UUID, user_hash: str,
        reaction_type: str = DEFAULT_REACTION_TYPE,
    ) -> tuple[Card, bool]:
        """Returns (card, removed)."""
        located = await load_card(self.db, card_id)
        async with self.locks.hold(located.board_id):
            card = await load_card(self.db, card_id)
            board = await self.boards.get_board(card.board_id)
            self.boards.assert_active(board)

            existing = await self._find(card_id, user_hash, reaction_type)
            if existing is None:
                return card, False
            await self.db.delete(existing)
            await self.db.flush()
            await self._refresh_counts(card)
            await self.db.commit()
        logger.info(f"Reaction removed from card {card_id}", extra={
            "board_id": str(card.board_id), "card_id": str(card_id),
            "user_hash": short_hash(user_hash),
        })
        return card, True

    async def delete_by_cards(self, card_ids: Sequence[UUID]) -> int:
        """Bulk-delete every reaction on the given cards; no count maintenance."""
        if not card_ids:
            return 0
        result = await self.db.execute(
            delete(Reaction).where(Reaction.card_id.in_(list(card_ids))),
        )
        return result.rowcount

    async def count_user_reactions(self, board_id: UUID, user_hash: str) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(Reaction)
            .where(Reaction.board_id == board_id)
            .where(Reaction.user_hash == user_hash),
        )

    async def reaction_quota(self, board_id: UUID, user_hash: str) -> dict:
        board = await self.boards.get_board(board_id)
        current = await self.count_user_reactions(board_id, user_hash)
        return quota(board.reaction_limit_per_user, current)

    async def _find(
        self, card_id: UUID, user_hash: str, reaction_type: str,
    ) -> Reaction | None:
        result = await self.db.execute(
            select(Reaction)
            .where(Reaction.card_id == card_id)
            .where(Reaction.user_hash == user_hash)
            .where(Reaction.reaction_type == reaction_type),
        )
        return result.scalar_one_or_none()

    async def _refresh_counts(self, card: Card) -> None:
        await recount_direct_reactions(self.db, card)
        await recompute_aggregation(self.db, card.id)
        if card.parent_card_id is not None:
            await recompute_aggregation(self.db, card.parent_card_id)
