"""Reaction ORM — at most one row per (card, user, reaction type).

Invariants:
    - Unique on (card_id, user_hash, reaction_type)
    - board_id always equals the card's board_id
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from retroboard.db.base import Base


class Reaction(Base):
    __tablename__ = "reactions"
    __table_args__ = (
        UniqueConstraint(
            "card_id", "user_hash", "reaction_type",
            name="uq_reactions_card_user_type",
        ),
        Index("ix_reactions_board_user", "board_id", "user_hash"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    board_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=False,
    )
    card_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    user_alias: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reaction_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default="thumbs_up",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
