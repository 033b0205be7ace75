"""Card Schemas — card CRUD, linking and listing contracts.

Invariants:
    - content: 1-5000 chars, stripped, non-empty
    - Link requests name the target card and the relationship kind
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from retroboard.core.domain_types import CardType, LinkType, MAX_CARD_CONTENT


def _strip_content(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("content cannot be empty or whitespace")
    return v


class CardCreate(BaseModel):
    column_id: str = Field(min_length=1, max_length=50)
    content: str = Field(min_length=1, max_length=MAX_CARD_CONTENT)
    card_type: CardType = CardType.FEEDBACK
    is_anonymous: bool = False

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        return _strip_content(v)


class CardUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=MAX_CARD_CONTENT)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        return _strip_content(v)


class CardMove(BaseModel):
    column_id: str = Field(min_length=1, max_length=50)


class CardLinkRequest(BaseModel):
    """parent_of: the path card becomes parent of target. linked_to: cross-link."""
    target_card_id: UUID
    link_type: LinkType


class CardChild(BaseModel):
    id: UUID
    column_id: str
    content: str
    card_type: CardType
    is_anonymous: bool
    created_by_alias: str | None
    direct_reaction_count: int
    aggregated_reaction_count: int
    created_at: datetime


class CardResponse(CardChild):
    board_id: UUID
    parent_card_id: UUID | None
    updated_at: datetime | None
    children: list[CardChild] = []
    linked_feedback_ids: list[UUID] = []


class CardListResponse(BaseModel):
    cards: list[CardResponse]
    total_count: int
    cards_by_column: dict[str, int]


class LinkResponse(BaseModel):
    source_card_id: UUID
    target_card_id: UUID
    link_type: LinkType
    source: CardResponse
    target: CardResponse
