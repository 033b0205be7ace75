"""Graph Queries — shared reads and the aggregation recompute for the card graph.

Invariants:
    - fresh loads use populate_existing: validation never trusts a row cached
      in the session from before the board lock was taken
    - recompute_aggregation derives the count from the current children every
      time (no running deltas)
    - Nothing here commits; callers own the transaction
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from retroboard.core.card_graph import CardNode, aggregate_count, link_pair
from retroboard.core.domain_types import BoardId, CardId, CardType
from retroboard.core.errors import CardNotFoundError
from retroboard.models.card import Card
from retroboard.models.card_link import CardLink
from retroboard.models.reaction import Reaction


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def load_card(db: AsyncSession, card_id: UUID, fresh: bool = True) -> Card:
    stmt = select(Card).where(Card.id == card_id)
    if fresh:
        stmt = stmt.execution_options(populate_existing=True)
    card = (await db.execute(stmt)).scalar_one_or_none()
    if card is None:
        raise CardNotFoundError(card_id)
    return card


def card_node(card: Card) -> CardNode:
    return CardNode(
        id=CardId(card.id), board_id=BoardId(card.board_id),
        parent_card_id=card.parent_card_id, card_type=CardType(card.card_type),
    )


async def parent_map(db: AsyncSession, board_id: UUID) -> dict[CardId, CardId | None]:
    """Current {card_id: parent_card_id} for every card on the board."""
    rows = await db.execute(
        select(Card.id, Card.parent_card_id).where(Card.board_id == board_id),
    )
    return {row.id: row.parent_card_id for row in rows}


async def find_link(db: AsyncSession, a: UUID, b: UUID) -> CardLink | None:
    first, second = link_pair(a, b)
    result = await db.execute(
        select(CardLink)
        .where(CardLink.card_a_id == first)
        .where(CardLink.card_b_id == second),
    )
    return result.scalar_one_or_none()


async def linked_ids(db: AsyncSession, card_id: UUID) -> list[UUID]:
    result = await db.execute(
        select(CardLink.card_a_id, CardLink.card_b_id)
        .where(or_(CardLink.card_a_id == card_id, CardLink.card_b_id == card_id))
        .order_by(CardLink.created_at),
    )
    return [b if a == card_id else a for a, b in result]


async def load_children(db: AsyncSession, card_id: UUID) -> list[Card]:
    result = await db.execute(
        select(Card)
        .where(Card.parent_card_id == card_id)
        .order_by(Card.created_at, Card.id),
    )
    return list(result.scalars().all())


async def recount_direct_reactions(db: AsyncSession, card: Card) -> int:
    card.direct_reaction_count = await db.scalar(
        select(func.count()).select_from(Reaction).where(Reaction.card_id == card.id),
    )
    return card.direct_reaction_count


async def recompute_aggregation(db: AsyncSession, card_id: UUID) -> Card:
    """aggregated = own direct count + direct counts of current children."""
    card = await load_card(db, card_id)
    child_counts = await db.scalars(
        select(Card.direct_reaction_count).where(Card.parent_card_id == card_id),
    )
    card.aggregated_reaction_count = aggregate_count(
        card.direct_reaction_count, child_counts.all(),
    )
    return card
