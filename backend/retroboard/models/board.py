"""Board ORM — the aggregate root every card, reaction and session belongs to.

Invariants:
    - state is "active" or "closed"; closed_at is set iff state == "closed"
    - columns is an ordered JSON list of {id, name, color?}, 1-10 entries
    - admins is a JSON list of user hashes and always contains created_by_hash
    - limits are NULL when disabled

Design Decisions:
    - Columns and admins embedded as JSON: always read and written with the board
    - JSON lists are reassigned, never mutated in place, so changes are tracked
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from retroboard.db.base import Base


class Board(Base):
    """Retrospective board."""
    __tablename__ = "boards"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    columns: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    shareable_link: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True,
    )
    state: Mapped[str] = mapped_column(
        String(10), nullable=False, default="active",
    )
    card_limit_per_user: Mapped[int | None] = mapped_column(
        Integer, nullable=True,
    )
    reaction_limit_per_user: Mapped[int | None] = mapped_column(
        Integer, nullable=True,
    )
    created_by_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    admins: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
