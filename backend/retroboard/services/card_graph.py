"""Card Graph Engine — card CRUD, parent/child links, cross-links and aggregation.

Invariants:
    - Every mutation runs read-validate-write-commit inside the board lock, so
      two concurrent link requests can never both pass validation
    - Validation completes before the first write: a rejected operation leaves
      no partial state behind
    - Any change to a card's parent pointer recomputes the aggregates of the
      old parent and the new parent before commit
    - Deleting a card orphans its children (they become roots, aggregates reset
      to their direct counts), drops its reactions and cross-links, and
      recomputes its former parent

Design Decisions:
    - The card is read once outside the lock only to learn its board id, then
      re-read fresh inside the lock for validation
    - Authorization is optional (identity=None) so internal callers and
      maintenance jobs share the same code path as HTTP handlers
    - Re-parenting a child that already has a parent is allowed and moves it
"""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from retroboard.core.card_graph import (
    link_pair, validate_cross_link, validate_parent_link,
)
from retroboard.core.domain_types import CardType, Identity, LimitKind
from retroboard.core.enforce_board import (
    check_column_exists, check_creator_or_admin, check_is_admin,
    check_is_creator, quota,
)
from retroboard.core.errors import DomainValidationError, RetroBoardError
from retroboard.infrastructure.board_locks import BoardLockRegistry, board_locks
from retroboard.models.card import Card
from retroboard.models.card_link import CardLink
from retroboard.services.board_lifecycle import BoardLifecycle
from retroboard.services.graph_queries import (
    card_node, find_link, linked_ids, load_card, load_children, parent_map,
    recompute_aggregation, utcnow,
)
from retroboard.services.reaction_ledger import ReactionLedger

logger = logging.getLogger(__name__)


@dataclass
class CardView:
    """A card with its children and cross-linked card ids."""
    card: Card
    children: list[Card] = field(default_factory=list)
    linked_feedback_ids: list[UUID] = field(default_factory=list)


class CardGraph:
    """Imperative shell around core.card_graph for one DB session."""

    def __init__(self, db: AsyncSession, locks: BoardLockRegistry = board_locks):
        self.db = db
        self.locks = locks
        self.boards = BoardLifecycle(db, locks)

    # ─── Card CRUD ───────────────────────────────────────────────

    async def create_card(
        self,
        board_id: UUID,
        column_id: str,
        content: str,
        identity: Identity,
        card_type: CardType = CardType.FEEDBACK,
        is_anonymous: bool = False,
    ) -> Card:
        async with self.locks.hold(board_id):
            board = await self.boards.get_board(board_id)
            self.boards.assert_active(board)
            check_column_exists(board.columns, column_id, board_id)
            if card_type == CardType.FEEDBACK:
                current = await self.count_user_cards(board_id, identity.user_hash)
                self.boards.assert_under_limit(board, LimitKind.CARDS, current)

            alias = None
            if not is_anonymous:
                session = await self.boards.get_session(board_id, identity.user_hash)
                alias = session.alias if session else identity.alias
            card = Card(
                board_id=board_id, column_id=column_id, content=content,
                card_type=CardType(card_type).value, is_anonymous=is_anonymous,
                created_by_hash=identity.user_hash, created_by_alias=alias,
                direct_reaction_count=0, aggregated_reaction_count=0,
            )
            self.db.add(card)
            await self.db.commit()
        logger.info(f"Card created: {card.id}", extra={
            "board_id": str(board_id), "card_id": str(card.id),
            "user_hash": identity.short_hash,
        })
        return card

    async def update_card(self, card_id: UUID, content: str, identity: Identity) -> Card:
        located = await load_card(self.db, card_id)
        async with self.locks.hold(located.board_id):
            card = await load_card(self.db, card_id)
            board = await self.boards.get_board(card.board_id)
            self.boards.assert_active(board)
            check_is_creator(card.created_by_hash, identity, "card")
            card.content = content
            card.updated_at = utcnow()
            await self.db.commit()
        return card

    async def move_card(
        self, card_id: UUID, column_id: str, identity: Identity | None = None,
    ) -> Card:
        """Change a card's column. Relationships are untouched."""
        located = await load_card(self.db, card_id)
        async with self.locks.hold(located.board_id):
            card = await load_card(self.db, card_id)
            board = await self.boards.get_board(card.board_id)
            self.boards.assert_active(board)
            if identity is not None:
                check_is_creator(card.created_by_hash, identity, "card")
            check_column_exists(board.columns, column_id, board.id)
            card.column_id = column_id
            card.updated_at = utcnow()
            await self.db.commit()
        logger.info(f"Card moved: {card_id} -> {column_id}", extra={
            "board_id": str(card.board_id), "card_id": str(card_id),
        })
        return card

    async def delete_card(self, card_id: UUID, identity: Identity | None = None) -> Card:
        located = await load_card(self.db, card_id)
        async with self.locks.hold(located.board_id):
            card = await load_card(self.db, card_id)
            board = await self.boards.get_board(card.board_id)
            self.boards.assert_active(board)
            if identity is not None:
                check_creator_or_admin(
                    card.created_by_hash, board.admins, identity, "delete this card",
                )

            former_parent_id = card.parent_card_id
            for child in await load_children(self.db, card.id):
                child.parent_card_id = None
                child.aggregated_reaction_count = child.direct_reaction_count
                child.updated_at = utcnow()
            await self.db.execute(
                delete(CardLink).where(
                    or_(CardLink.card_a_id == card.id, CardLink.card_b_id == card.id),
                ),
            )
            await ReactionLedger(self.db, self.locks).delete_by_cards([card.id])
            await self.db.delete(card)
            await self.db.flush()
            if former_parent_id is not None:
                await recompute_aggregation(self.db, former_parent_id)
            await self.db.commit()
        logger.info(f"Card deleted: {card_id}", extra={
            "board_id": str(card.board_id), "card_id": str(card_id),
        })
        return card

    # ─── Reads ───────────────────────────────────────────────────

    async def get_card(self, card_id: UUID) -> CardView:
        card = await load_card(self.db, card_id)
        return CardView(
            card=card,
            children=await load_children(self.db, card.id),
            linked_feedback_ids=await linked_ids(self.db, card.id),
        )

    async def list_cards(
        self,
        board_id: UUID,
        column_id: str | None = None,
        created_by: str | None = None,
        include_relationships: bool = True,
    ) -> list[CardView]:
        """Top-level cards (no parent) in creation order, children embedded.

        Filters select top-level cards; their children are always embedded.
        """
        await self.boards.get_board(board_id, fresh=False)
        result = await self.db.execute(
            select(Card)
            .where(Card.board_id == board_id)
            .order_by(Card.created_at, Card.id),
        )
        cards = list(result.scalars().all())
        top_level = [
            c for c in cards
            if c.parent_card_id is None
            and (column_id is None or c.column_id == column_id)
            and (created_by is None or c.created_by_hash == created_by)
        ]
        if not include_relationships:
            return [CardView(card=c) for c in top_level]

        links = await self._board_links(board_id)
        children: dict[UUID, list[Card]] = {}
        for c in cards:
            if c.parent_card_id is not None:
                children.setdefault(c.parent_card_id, []).append(c)
        return [
            CardView(
                card=c,
                children=children.get(c.id, []),
                linked_feedback_ids=links.get(c.id, []),
            )
            for c in top_level
        ]

    async def count_user_cards(self, board_id: UUID, user_hash: str) -> int:
        """Feedback cards only; action cards never count toward the limit."""
        return await self.db.scalar(
            select(func.count()).select_from(Card)
            .where(Card.board_id == board_id)
            .where(Card.created_by_hash == user_hash)
            .where(Card.card_type == CardType.FEEDBACK.value),
        )

    async def card_quota(self, board_id: UUID, user_hash: str) -> dict:
        board = await self.boards.get_board(board_id)
        current = await self.count_user_cards(board_id, user_hash)
        return quota(board.card_limit_per_user, current)

    # ─── Parent/child links ──────────────────────────────────────

    async def set_parent_link(
        self, child_id: UUID, parent_id: UUID, identity: Identity | None = None,
    ) -> tuple[Card, Card]:
        """Make parent_id the parent of child_id. Returns (child, parent)."""
        located = await load_card(self.db, child_id)
        async with self.locks.hold(located.board_id):
            child = await load_card(self.db, child_id)
            parent = await load_card(self.db, parent_id)
            board = await self.boards.get_board(child.board_id)
            self.boards.assert_active(board)
            if identity is not None:
                check_creator_or_admin(
                    parent.created_by_hash, board.admins, identity, "link cards",
                )
            if child.parent_card_id == parent.id:
                return child, parent

            cross_linked = await find_link(self.db, child.id, parent.id) is not None
            try:
                validate_parent_link(
                    card_node(child), card_node(parent),
                    await parent_map(self.db, board.id), cross_linked,
                )
            except RetroBoardError as e:
                logger.warning(f"Parent link rejected: {e.code}", extra={
                    "board_id": str(board.id), "card_id": str(child_id),
                    "error_code": e.code,
                })
                raise

            former_parent_id = child.parent_card_id
            child.parent_card_id = parent.id
            child.updated_at = utcnow()
            await self.db.flush()
            await recompute_aggregation(self.db, parent.id)
            if former_parent_id is not None:
                await recompute_aggregation(self.db, former_parent_id)
            await self.db.commit()
        logger.info(f"Parent link set: {parent_id} -> {child_id}", extra={
            "board_id": str(board.id), "card_id": str(child_id),
        })
        return child, parent

    async def remove_parent_link(
        self,
        child_id: UUID,
        identity: Identity | None = None,
        expected_parent_id: UUID | None = None,
    ) -> tuple[Card, Card | None]:
        """Detach child_id from its parent. Returns (child, former_parent).

        A card without a parent is left untouched (former_parent is None).
        """
        located = await load_card(self.db, child_id)
        async with self.locks.hold(located.board_id):
            child = await load_card(self.db, child_id)
            board = await self.boards.get_board(child.board_id)
            self.boards.assert_active(board)
            if identity is not None:
                check_is_admin(board.admins, identity)
            former_parent_id = child.parent_card_id
            if former_parent_id is None:
                return child, None
            if expected_parent_id is not None and former_parent_id != expected_parent_id:
                raise DomainValidationError("Card is not a child of the given parent")

            child.parent_card_id = None
            child.updated_at = utcnow()
            await self.db.flush()
            former_parent = await recompute_aggregation(self.db, former_parent_id)
            await recompute_aggregation(self.db, child.id)
            await self.db.commit()
        logger.info(f"Parent link removed: {former_parent_id} -> {child_id}", extra={
            "board_id": str(board.id), "card_id": str(child_id),
        })
        return child, former_parent

    async def recompute(self, card_id: UUID) -> Card:
        """Recompute one card's aggregated count from its current children."""
        located = await load_card(self.db, card_id)
        async with self.locks.hold(located.board_id):
            card = await recompute_aggregation(self.db, card_id)
            await self.db.commit()
        return card

    # ─── Cross-links ─────────────────────────────────────────────

    async def add_cross_link(
        self, source_id: UUID, target_id: UUID, identity: Identity | None = None,
    ) -> CardLink:
        """Link two cards symmetrically; linking an already linked pair is a no-op."""
        located = await load_card(self.db, source_id)
        async with self.locks.hold(located.board_id):
            source = await load_card(self.db, source_id)
            target = await load_card(self.db, target_id)
            board = await self.boards.get_board(source.board_id)
            self.boards.assert_active(board)
            if identity is not None:
                check_creator_or_admin(
                    source.created_by_hash, board.admins, identity, "link cards",
                )
            try:
                validate_cross_link(card_node(source), card_node(target))
            except RetroBoardError as e:
                logger.warning(f"Cross-link rejected: {e.code}", extra={
                    "board_id": str(board.id), "card_id": str(source_id),
                    "error_code": e.code,
                })
                raise

            existing = await find_link(self.db, source.id, target.id)
            if existing is not None:
                return existing
            card_a_id, card_b_id = link_pair(source.id, target.id)
            link = CardLink(board_id=board.id, card_a_id=card_a_id, card_b_id=card_b_id)
            self.db.add(link)
            await self.db.commit()
        logger.info(f"Cards linked: {source_id} <-> {target_id}", extra={
            "board_id": str(board.id), "card_id": str(source_id),
        })
        return link

    async def remove_cross_link(
        self, source_id: UUID, target_id: UUID, identity: Identity | None = None,
    ) -> bool:
        """Returns True when a link was removed."""
        located = await load_card(self.db, source_id)
        async with self.locks.hold(located.board_id):
            source = await load_card(self.db, source_id)
            target = await load_card(self.db, target_id)
            board = await self.boards.get_board(source.board_id)
            self.boards.assert_active(board)
            if identity is not None:
                check_is_admin(board.admins, identity)
            existing = await find_link(self.db, source.id, target.id)
            if existing is None:
                return False
            await self.db.delete(existing)
            await self.db.commit()
        logger.info(f"Cards unlinked: {source_id} <-> {target_id}", extra={
            "board_id": str(board.id), "card_id": str(source_id),
        })
        return True

    async def _board_links(self, board_id: UUID) -> dict[UUID, list[UUID]]:
        result = await self.db.execute(
            select(CardLink.card_a_id, CardLink.card_b_id)
            .where(CardLink.board_id == board_id)
            .order_by(CardLink.created_at),
        )
        links: dict[UUID, list[UUID]] = {}
        for a, b in result:
            links.setdefault(a, []).append(b)
            links.setdefault(b, []).append(a)
        return links
