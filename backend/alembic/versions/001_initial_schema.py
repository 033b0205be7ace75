"""Initial schema — boards, cards, card_links, reactions, user_sessions.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "boards",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("columns", sa.JSON, nullable=False),
        sa.Column("shareable_link", sa.String(32), nullable=False, unique=True),
        sa.Column("state", sa.String(10), nullable=False, server_default="active"),
        sa.Column("card_limit_per_user", sa.Integer, nullable=True),
        sa.Column("reaction_limit_per_user", sa.Integer, nullable=True),
        sa.Column("created_by_hash", sa.String(64), nullable=False),
        sa.Column("admins", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "cards",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("board_id", UUID(as_uuid=True), sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("column_id", sa.String(50), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("card_type", sa.String(10), nullable=False, server_default="feedback"),
        sa.Column("is_anonymous", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("created_by_hash", sa.String(64), nullable=False),
        sa.Column("created_by_alias", sa.String(50), nullable=True),
        sa.Column("parent_card_id", UUID(as_uuid=True), sa.ForeignKey("cards.id", ondelete="SET NULL"), nullable=True),
        sa.Column("direct_reaction_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("aggregated_reaction_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_cards_parent_card_id", "cards", ["parent_card_id"])
    op.create_index("ix_cards_board_created", "cards", ["board_id", "created_at"])
    op.create_index("ix_cards_board_user_type", "cards", ["board_id", "created_by_hash", "card_type"])

    op.create_table(
        "card_links",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("board_id", UUID(as_uuid=True), sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("card_a_id", UUID(as_uuid=True), sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("card_b_id", UUID(as_uuid=True), sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("card_a_id", "card_b_id", name="uq_card_links_pair"),
        sa.CheckConstraint("card_a_id < card_b_id", name="ck_card_links_ordered"),
    )
    op.create_index("ix_card_links_board_id", "card_links", ["board_id"])
    op.create_index("ix_card_links_card_a_id", "card_links", ["card_a_id"])
    op.create_index("ix_card_links_card_b_id", "card_links", ["card_b_id"])

    op.create_table(
        "reactions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("board_id", UUID(as_uuid=True), sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("card_id", UUID(as_uuid=True), sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_hash", sa.String(64), nullable=False),
        sa.Column("user_alias", sa.String(50), nullable=True),
        sa.Column("reaction_type", sa.String(30), nullable=False, server_default="thumbs_up"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("card_id", "user_hash", "reaction_type", name="uq_reactions_card_user_type"),
    )
    op.create_index("ix_reactions_board_user", "reactions", ["board_id", "user_hash"])

    op.create_table(
        "user_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("board_id", UUID(as_uuid=True), sa.ForeignKey("boards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_hash", sa.String(64), nullable=False),
        sa.Column("alias", sa.String(50), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_active_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("board_id", "user_hash", name="uq_user_sessions_board_user"),
    )


def downgrade() -> None:
    op.drop_table("user_sessions")
    op.drop_table("reactions")
    op.drop_table("card_links")
    op.drop_table("cards")
    op.drop_table("boards")
