"""Reaction Schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from retroboard.core.domain_types import DEFAULT_REACTION_TYPE


class ReactionCreate(BaseModel):
    reaction_type: str = Field(DEFAULT_REACTION_TYPE, pattern=r"^[a-z][a-z0-9_]{0,29}$")


class ReactionResponse(BaseModel):
    id: UUID
    card_id: UUID
    user_alias: str | None
    reaction_type: str
    created_at: datetime


class CardCounts(BaseModel):
    """Counts after the write; parent fields set when the card is a child."""
    card_id: UUID
    direct_reaction_count: int
    aggregated_reaction_count: int
    parent_card_id: UUID | None = None
    parent_aggregated_reaction_count: int | None = None


class ReactionResult(BaseModel):
    reaction: ReactionResponse | None
    card: CardCounts
    changed: bool
