"""Reaction Routes — add/remove a reaction on a card.

Invariants:
    - Responses report the card's counts (and its parent's aggregate) after commit
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from retroboard.api.dependencies import get_identity, get_publisher
from retroboard.core.boundary_protocols import EventPublisher
from retroboard.core.domain_types import BoardId, DEFAULT_REACTION_TYPE, Identity
from retroboard.infrastructure.database import get_db
from retroboard.models.card import Card
from retroboard.models.reaction import Reaction
from retroboard.schemas.reaction import (
    CardCounts, ReactionCreate, ReactionResponse, ReactionResult,
)
from retroboard.services.graph_queries import load_card
from retroboard.services.reaction_ledger import ReactionLedger

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/cards", tags=["reactions"])


async def _counts(db: AsyncSession, card: Card) -> CardCounts:
    counts = CardCounts(
        card_id=card.id,
        direct_reaction_count=card.direct_reaction_count,
        aggregated_reaction_count=card.aggregated_reaction_count,
    )
    if card.parent_card_id is not None:
        parent = await load_card(db, card.parent_card_id, fresh=False)
        counts.parent_card_id = parent.id
        counts.parent_aggregated_reaction_count = parent.aggregated_reaction_count
    return counts


def _reaction(reaction: Reaction) -> ReactionResponse:
    return ReactionResponse(
        id=reaction.id,
        card_id=reaction.card_id,
        user_alias=reaction.user_alias,
        reaction_type=reaction.reaction_type,
        created_at=reaction.created_at,
    )


@router.post(
    "/{card_id}/reactions", response_model=ReactionResult,
    status_code=status.HTTP_201_CREATED,
)
async def add_reaction(
    card_id: UUID,
    body: ReactionCreate,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    reaction, card, is_new = await ReactionLedger(db).add_reaction(
        card_id, identity.user_hash, body.reaction_type,
    )
    result = ReactionResult(
        reaction=_reaction(reaction), card=await _counts(db, card), changed=is_new,
    )
    if is_new:
        publisher.publish(
            BoardId(card.board_id), "reaction:added", result.model_dump(mode="json"),
        )
    return result


@router.delete("/{card_id}/reactions", response_model=ReactionResult)
async def remove_reaction(
    card_id: UUID,
    reaction_type: str = Query(DEFAULT_REACTION_TYPE),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    card, removed = await ReactionLedger(db).remove_reaction(
        card_id, identity.user_hash, reaction_type,
    )
    result = ReactionResult(reaction=None, card=await _counts(db, card), changed=removed)
    if removed:
        publisher.publish(
            BoardId(card.board_id), "reaction:removed", result.model_dump(mode="json"),
        )
    return result
