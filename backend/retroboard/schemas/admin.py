"""Maintenance Schemas — clear/reset/seed request and result contracts.

Invariants:
    - SeedTestDataRequest bounds: users 1-100, cards 1-500, action cards
      0-50 and never more than cards, reactions 0-1000
"""

from pydantic import BaseModel, Field, model_validator


class SeedTestDataRequest(BaseModel):
    num_users: int = Field(5, ge=1, le=100)
    num_cards: int = Field(20, ge=1, le=500)
    num_action_cards: int = Field(5, ge=0, le=50)
    num_reactions: int = Field(50, ge=0, le=1000)
    create_relationships: bool = True

    @model_validator(mode="after")
    def action_cards_within_cards(self):
        if self.num_action_cards > self.num_cards:
            raise ValueError("num_action_cards cannot exceed num_cards")
        return self


class SeedTestDataResponse(BaseModel):
    """Counts of what the seed actually wrote.

    reactions_created can fall below num_reactions: reactions are random
    (user, card) draws and repeats are dropped. Set SEED_RANDOM_SEED to make
    the result repeatable.
    """
    users_created: int
    cards_created: int
    action_cards_created: int
    reactions_created: int = Field(
        description="Distinct random (user, card) reactions; may be below num_reactions",
    )
    relationships_created: int = Field(description="Parent cards given children")
    links_created: int = Field(description="Action-to-feedback cross-links")
    user_aliases: list[str]


class ClearBoardResponse(BaseModel):
    cards_deleted: int
    reactions_deleted: int
    users_deleted: int


class ResetBoardResponse(ClearBoardResponse):
    board_reopened: bool
