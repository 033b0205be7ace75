"""Card ORM — one feedback or action item in a flat, board-scoped table.

Invariants:
    - column_id references a column of the owning board
    - parent_card_id, if set, points at a card on the same board (never itself)
    - aggregated_reaction_count = direct_reaction_count + children's direct counts
    - created_by_alias is NULL for anonymous cards

Design Decisions:
    - Parent pointer is a self-referencing FK with ON DELETE SET NULL; no ORM
      relationship() — children are found by querying parent_card_id
    - Counts are denormalized on the row and recomputed by the graph engine
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from retroboard.db.base import Base


class Card(Base):
    """Card entity — node of the board's card graph."""
    __tablename__ = "cards"
    __table_args__ = (
        Index("ix_cards_board_created", "board_id", "created_at"),
        Index("ix_cards_board_user_type", "board_id", "created_by_hash", "card_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    board_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=False,
    )
    column_id: Mapped[str] = mapped_column(String(50), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    card_type: Mapped[str] = mapped_column(
        String(10), nullable=False, default="feedback",
    )
    is_anonymous: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_by_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_by_alias: Mapped[str | None] = mapped_column(
        String(50), nullable=True,
    )
    parent_card_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("cards.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    direct_reaction_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    aggregated_reaction_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
