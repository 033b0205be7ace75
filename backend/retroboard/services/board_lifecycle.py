"""Board Lifecycle — creation, state transitions, admins and participant sessions.

Invariants:
    - Only admins (or the admin secret) close a board; only the creator adds admins
    - close_board is idempotent: closing a closed board returns it unchanged
    - reopen_board never takes the board lock; it runs inside a maintenance
      operation that already holds it
    - join/alias/admin/rename/heartbeat writes happen under the board lock,
      same as graph writes
    - Board and column renames are admin-only and need an active board
    - list_users with a window returns only sessions active inside it

Design Decisions:
    - Board rows are re-read with populate_existing inside the lock so state
      checks see the latest committed close/reopen
    - Shareable link is a random 16-char hex code, joined to app_url for display
"""

import logging
import secrets
from datetime import timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from retroboard.core.domain_types import BoardState, Identity, LimitKind, short_hash
from retroboard.core.enforce_board import (
    check_board_active, check_column_exists, check_is_admin, check_is_creator,
    check_under_limit, is_board_admin,
)
from retroboard.core.errors import BoardNotFoundError, DomainValidationError, UserNotFoundError
from retroboard.infrastructure.board_locks import BoardLockRegistry, board_locks
from retroboard.models.board import Board
from retroboard.models.user_session import UserSession
from retroboard.services.graph_queries import utcnow

logger = logging.getLogger(__name__)


def new_shareable_link() -> str:
    return secrets.token_hex(8)


class BoardLifecycle:
    """Board state machine (active <-> closed) plus admins and participants."""

    def __init__(self, db: AsyncSession, locks: BoardLockRegistry = board_locks):
        self.db = db
        self.locks = locks

    # --- Reads ----------------------------------------------------------------

    async def get_board(self, board_id: UUID, fresh: bool = True) -> Board:
        stmt = select(Board).where(Board.id == board_id)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        board = (await self.db.execute(stmt)).scalar_one_or_none()
        if board is None:
            raise BoardNotFoundError(board_id)
        return board

    async def get_board_by_link(self, shareable_link: str) -> Board:
        result = await self.db.execute(
            select(Board).where(Board.shareable_link == shareable_link),
        )
        board = result.scalar_one_or_none()
        if board is None:
            raise BoardNotFoundError(shareable_link)
        return board

    async def get_session(self, board_id: UUID, user_hash: str) -> UserSession | None:
        result = await self.db.execute(
            select(UserSession)
            .where(UserSession.board_id == board_id)
            .where(UserSession.user_hash == user_hash)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def list_users(
        self, board: Board, window: timedelta | None = None,
    ) -> list[dict]:
        """Participants of the board, each flagged with is_admin.

        With a window, only sessions whose last_active_at falls inside it.
        """
        stmt = (
            select(UserSession)
            .where(UserSession.board_id == board.id)
            .order_by(UserSession.joined_at)
        )
        if window is not None:
            stmt = stmt.where(UserSession.last_active_at >= utcnow() - window)
        result = await self.db.execute(stmt)
        return [
            {
                "alias": s.alias,
                "is_admin": s.user_hash in board.admins,
                "last_active_at": s.last_active_at,
            }
            for s in result.scalars().all()
        ]

    async def count_sessions(self, board_id: UUID) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(UserSession)
            .where(UserSession.board_id == board_id),
        )

    # --- Checks ---------------------------------------------------------------

    @staticmethod
    def assert_active(board: Board) -> None:
        check_board_active(board.id, board.state)

    @staticmethod
    def assert_under_limit(board: Board, kind: LimitKind, current_count: int) -> None:
        limit = (
            board.card_limit_per_user if kind == LimitKind.CARDS
            else board.reaction_limit_per_user
        )
        check_under_limit(kind, limit, current_count, board.id)

    # --- Mutations ------------------------------------------------------------

    async def create_board(
        self,
        name: str,
        columns: list[dict],
        identity: Identity,
        card_limit_per_user: int | None = None,
        reaction_limit_per_user: int | None = None,
        creator_alias: str | None = None,
    ) -> Board:
        """Create an active board; the creator is its first admin.

        With a creator_alias the creator also joins the board immediately.
        """
        ids = [col["id"] for col in columns]
        if len(set(ids)) != len(ids):
            raise DomainValidationError("Column ids must be unique")
        board = Board(
            name=name,
            columns=[dict(col) for col in columns],
            shareable_link=new_shareable_link(),
            state=BoardState.ACTIVE.value,
            card_limit_per_user=card_limit_per_user,
            reaction_limit_per_user=reaction_limit_per_user,
            created_by_hash=identity.user_hash,
            admins=[identity.user_hash],
        )
        self.db.add(board)
        await self.db.flush()
        if creator_alias:
            now = utcnow()
            self.db.add(UserSession(
                board_id=board.id, user_hash=identity.user_hash,
                alias=creator_alias, joined_at=now, last_active_at=now,
            ))
        await self.db.commit()
        logger.info(f"Board created: {board.id}", extra={
            "board_id": str(board.id), "user_hash": identity.short_hash,
        })
        return board

    async def close_board(self, board_id: UUID, identity: Identity) -> Board:
        async with self.locks.hold(board_id):
            board = await self.get_board(board_id)
            check_is_admin(board.admins, identity)
            if board.state == BoardState.CLOSED.value:
                return board
            board.state = BoardState.CLOSED.value
            board.closed_at = utcnow()
            await self.db.commit()
        logger.info(f"Board closed: {board_id}", extra={"board_id": str(board_id)})
        return board

    async def reopen_board(self, board: Board) -> bool:
        """Set the board back to active. Caller holds the lock and commits.

        Returns True when the board was closed.
        """
        if board.state == BoardState.ACTIVE.value:
            return False
        board.state = BoardState.ACTIVE.value
        board.closed_at = None
        return True

    async def add_admin(self, board_id: UUID, user_hash: str, identity: Identity) -> Board:
        async with self.locks.hold(board_id):
            board = await self.get_board(board_id)
            check_is_creator(board.created_by_hash, identity, "board")
            self.assert_active(board)
            if await self.get_session(board_id, user_hash) is None:
                raise UserNotFoundError(board_id)
            if user_hash not in board.admins:
                board.admins = [*board.admins, user_hash]
                await self.db.commit()
        logger.info(f"Admin added to board {board_id}", extra={
            "board_id": str(board_id), "user_hash": short_hash(user_hash),
        })
        return board

    async def join_board(
        self, board_id: UUID, identity: Identity, alias: str,
    ) -> tuple[UserSession, bool]:
        """Upsert the caller's session. Returns (session, is_new)."""
        async with self.locks.hold(board_id):
            board = await self.get_board(board_id)
            self.assert_active(board)
            now = utcnow()
            session = await self.get_session(board_id, identity.user_hash)
            is_new = session is None
            if is_new:
                session = UserSession(
                    board_id=board_id, user_hash=identity.user_hash,
                    alias=alias, joined_at=now, last_active_at=now,
                )
                self.db.add(session)
            else:
                session.alias = alias
                session.last_active_at = now
            await self.db.commit()
        if is_new:
            logger.info(f"User joined board {board_id}", extra={
                "board_id": str(board_id), "user_hash": identity.short_hash,
            })
        return session, is_new

    async def update_alias(
        self, board_id: UUID, identity: Identity, alias: str,
    ) -> UserSession:
        async with self.locks.hold(board_id):
            self.assert_active(await self.get_board(board_id))
            session = await self.get_session(board_id, identity.user_hash)
            if session is None:
                raise UserNotFoundError(board_id)
            session.alias = alias
            session.last_active_at = utcnow()
            await self.db.commit()
        return session

    def is_admin(self, board: Board, identity: Identity) -> bool:
        return is_board_admin(board.admins, identity)

    async def rename_board(self, board_id: UUID, name: str, identity: Identity) -> Board:
        async with self.locks.hold(board_id):
            board = await self.get_board(board_id)
            self.assert_active(board)
            check_is_admin(board.admins, identity)
            board.name = name
            await self.db.commit()
        logger.info(f"Board renamed: {board_id}", extra={"board_id": str(board_id)})
        return board

    async def rename_column(
        self, board_id: UUID, column_id: str, name: str, identity: Identity,
    ) -> Board:
        async with self.locks.hold(board_id):
            board = await self.get_board(board_id)
            self.assert_active(board)
            check_is_admin(board.admins, identity)
            check_column_exists(board.columns, column_id, board_id)
            # JSON column: assign a new list so the change is flushed
            board.columns = [
                {**col, "name": name} if col["id"] == column_id else dict(col)
                for col in board.columns
            ]
            await self.db.commit()
        logger.info(f"Column {column_id} renamed on board {board_id}", extra={
            "board_id": str(board_id),
        })
        return board

    async def heartbeat(self, board_id: UUID, identity: Identity) -> UserSession:
        """Refresh the caller's last_active_at."""
        async with self.locks.hold(board_id):
            self.assert_active(await self.get_board(board_id))
            session = await self.get_session(board_id, identity.user_hash)
            if session is None:
                raise UserNotFoundError(board_id)
            session.last_active_at = utcnow()
            await self.db.commit()
        return session
