"""Board Lifecycle Enforcement — pure checks guarding every board mutation.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Raise a named RetroBoardError on violation, return None on success
    - A closed board rejects card create/update/move/link, reactions and joins
    - Limits are only enforced when configured (None = unlimited)

Design Decisions:
    - Functions take plain values (state, limit, admins), not ORM rows, so the
      same checks serve the services and the tests
"""

from collections.abc import Collection, Sequence

from retroboard.core.domain_types import BoardState, Identity, LimitKind
from retroboard.core.errors import (
    BoardClosedError,
    CardLimitReachedError,
    ColumnNotFoundError,
    ForbiddenError,
    ReactionLimitReachedError,
)


def check_board_active(board_id: object, state: str) -> None:
    """Fail with BoardClosedError when the board no longer accepts mutations."""
    if BoardState(state) == BoardState.CLOSED:
        raise BoardClosedError(board_id)


def check_under_limit(
    kind: LimitKind, limit: int | None, current_count: int,
    board_id: object | None = None,
) -> None:
    """Enforce card_limit_per_user / reaction_limit_per_user when set.

    `current_count` is the user's count *before* the new item is added.
    """
    if limit is None or current_count < limit:
        return
    if kind == LimitKind.CARDS:
        raise CardLimitReachedError(limit, board_id)
    raise ReactionLimitReachedError(limit, board_id)


def check_column_exists(
    columns: Sequence[dict], column_id: str, board_id: object | None = None,
) -> None:
    if not any(col.get("id") == column_id for col in columns):
        raise ColumnNotFoundError(column_id, board_id)


def is_board_admin(admins: Collection[str], identity: Identity) -> bool:
    return identity.is_admin_override or identity.user_hash in admins


def check_is_admin(admins: Collection[str], identity: Identity) -> None:
    if not is_board_admin(admins, identity):
        raise ForbiddenError("Admin access required")


def check_is_creator(
    created_by_hash: str, identity: Identity, what: str,
) -> None:
    """Only the creator (or an admin-secret caller) may touch this entity."""
    if identity.is_admin_override or created_by_hash == identity.user_hash:
        return
    raise ForbiddenError(f"Only the {what} creator can perform this action")


def check_creator_or_admin(
    created_by_hash: str, admins: Collection[str], identity: Identity,
    action: str,
) -> None:
    if created_by_hash == identity.user_hash or is_board_admin(admins, identity):
        return
    raise ForbiddenError(f"Only the card creator or a board admin can {action}")


def quota(limit: int | None, current_count: int) -> dict:
    """Quota summary shared by card and reaction quota endpoints."""
    return {
        "current_count": current_count,
        "limit": limit,
        "allowed": limit is None or current_count < limit,
        "limit_enabled": limit is not None,
    }
