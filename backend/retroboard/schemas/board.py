"""Board Schemas — board creation, participation and quota contracts.

Invariants:
    - BoardCreate.columns: 1-10 entries with unique ids, optional #RRGGBB color
    - Limits are positive when set; None disables the limit
    - Aliases: 1-50 chars, stripped, non-empty
    - Board names 1-200 chars and column names 1-100 chars, stripped, non-empty

Design Decisions:
    - Shareable link is returned as a full URL built from settings.app_url
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from retroboard.core.domain_types import BoardState, MAX_COLUMNS, MIN_COLUMNS


def _strip_alias(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("alias cannot be empty or whitespace")
    return v


def _strip_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("name cannot be empty or whitespace")
    return v


class ColumnSchema(BaseModel):
    id: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=100)
    color: str | None = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")


class BoardCreate(BaseModel):
    """Board creation — the caller becomes creator and first admin."""
    name: str = Field(min_length=1, max_length=200)
    columns: list[ColumnSchema] = Field(min_length=MIN_COLUMNS, max_length=MAX_COLUMNS)
    card_limit_per_user: int | None = Field(None, ge=1)
    reaction_limit_per_user: int | None = Field(None, ge=1)
    creator_alias: str | None = Field(None, min_length=1, max_length=50)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)

    @field_validator("columns")
    @classmethod
    def unique_column_ids(cls, v: list[ColumnSchema]) -> list[ColumnSchema]:
        ids = [col.id for col in v]
        if len(set(ids)) != len(ids):
            raise ValueError("column ids must be unique")
        return v


class BoardRename(BaseModel):
    name: str = Field(min_length=1, max_length=200)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)


class ColumnRename(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)


class ActiveUser(BaseModel):
    alias: str
    is_admin: bool
    last_active_at: datetime


class BoardResponse(BaseModel):
    id: UUID
    name: str
    shareable_link: str
    state: BoardState
    columns: list[ColumnSchema]
    card_limit_per_user: int | None
    reaction_limit_per_user: int | None
    created_by_hash: str
    admins: list[str]
    created_at: datetime
    closed_at: datetime | None
    active_users: list[ActiveUser] = []


class JoinBoard(BaseModel):
    alias: str = Field(min_length=1, max_length=50)

    @field_validator("alias")
    @classmethod
    def strip_alias(cls, v: str) -> str:
        return _strip_alias(v)


class AliasUpdate(BaseModel):
    alias: str = Field(min_length=1, max_length=50)

    @field_validator("alias")
    @classmethod
    def strip_alias(cls, v: str) -> str:
        return _strip_alias(v)


class AdminAdd(BaseModel):
    user_hash: str = Field(min_length=64, max_length=64)


class UserSessionResponse(BaseModel):
    board_id: UUID
    alias: str
    is_admin: bool
    joined_at: datetime
    last_active_at: datetime


class HeartbeatResponse(BaseModel):
    alias: str
    last_active_at: datetime


class CardQuotaResponse(BaseModel):
    current_count: int
    limit: int | None
    can_create: bool
    limit_enabled: bool


class ReactionQuotaResponse(BaseModel):
    current_count: int
    limit: int | None
    can_react: bool
    limit_enabled: bool
