"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - BoardId, CardId wrap UUIDs; UserHash wraps the SHA-256 hex of a session cookie
    - All valid states encoded as Enums — no raw string matching
    - Identity is the only caller information the core ever sees

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to DB string columns without custom encoders
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

BoardId = NewType("BoardId", UUID)
CardId = NewType("CardId", UUID)
UserHash = NewType("UserHash", str)


def short_hash(user_hash: str) -> str:
    """Truncated hash for log lines."""
    return user_hash[:8] + "..."


@dataclass(frozen=True)
class Identity:
    """Resolved caller: pseudonymous hash plus the admin-secret override flag."""
    user_hash: UserHash
    alias: str | None = None
    is_admin_override: bool = False

    @property
    def short_hash(self) -> str:
        return short_hash(self.user_hash)


# ─── Enums ───────────────────────────────────────────────────────

class BoardState(str, Enum):
    """Board lifecycle states — maps to DB `state` column."""
    ACTIVE = "active"
    CLOSED = "closed"


class CardType(str, Enum):
    FEEDBACK = "feedback"
    ACTION = "action"


class LinkType(str, Enum):
    """Relationship kinds between two cards."""
    PARENT_OF = "parent_of"   # source becomes parent of target
    LINKED_TO = "linked_to"   # symmetric cross-link


class LimitKind(str, Enum):
    """Per-user quotas a board may enforce."""
    CARDS = "cards"
    REACTIONS = "reactions"


# ─── Constants ───────────────────────────────────────────────────

DEFAULT_REACTION_TYPE = "thumbs_up"
MAX_CARD_CONTENT = 5000
MIN_COLUMNS = 1
MAX_COLUMNS = 10
