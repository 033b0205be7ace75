"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Board is the aggregate root; every other entity is scoped by board_id

Design Decisions:
    - One file per entity
    - All models imported here so Base.metadata is complete before create_all
      or alembic autogenerate runs
"""

from retroboard.models.board import Board  # noqa: F401
from retroboard.models.card import Card  # noqa: F401
from retroboard.models.card_link import CardLink  # noqa: F401
from retroboard.models.reaction import Reaction  # noqa: F401
from retroboard.models.user_session import UserSession  # noqa: F401
