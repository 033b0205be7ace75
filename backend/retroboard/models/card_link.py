"""CardLink ORM — symmetric cross-link between two related cards.

Invariants:
    - One row per unordered pair, stored with card_a_id < card_b_id
    - Both cards belong to board_id; a card is never linked to itself
    - A pair in a parent/child relation is never also cross-linked

Design Decisions:
    - Edge table instead of an id array on each card: the symmetric set is a
      single row, so both sides can never disagree
    - board_id denormalized: clearing a board deletes its links in one statement
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from retroboard.db.base import Base


class CardLink(Base):
    """Undirected cross-link edge."""
    __tablename__ = "card_links"
    __table_args__ = (
        UniqueConstraint("card_a_id", "card_b_id", name="uq_card_links_pair"),
        CheckConstraint("card_a_id < card_b_id", name="ck_card_links_ordered"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    board_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("boards.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    card_a_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    card_b_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
