"""Database Session Manager — async pool, rollback and constraint-aware error mapping.

Invariants:
    - Every session rolls back on exception; no partial board write survives
    - A unique-constraint violation on a known retro board constraint surfaces
      as DuplicateEntryError (409), never as a 503
    - Every other SQLAlchemy failure surfaces as DatabaseError (503)

Design Decisions:
    - Constraints are recognised by name (PostgreSQL reports it) or by their
      table.column list (SQLite reports only that)
    - Singleton db_manager initialized on startup by the FastAPI lifespan
    - expire_on_commit=False: rows stay readable after a service commits
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from retroboard.core.errors import DatabaseError, DuplicateEntryError, RetroBoardError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UniqueRule:
    name: str
    table: str
    columns: tuple[str, ...]
    message: str

    def matches(self, detail: str) -> bool:
        if self.name in detail:
            return True
        return all(f"{self.table}.{col}" in detail for col in self.columns)


UNIQUE_RULES = (
    UniqueRule(
        "uq_reactions_card_user_type", "reactions",
        ("card_id", "user_hash", "reaction_type"), "Reaction already recorded",
    ),
    UniqueRule(
        "uq_card_links_pair", "card_links",
        ("card_a_id", "card_b_id"), "Cards are already linked",
    ),
    UniqueRule(
        "uq_user_sessions_board_user", "user_sessions",
        ("board_id", "user_hash"), "User has already joined this board",
    ),
)


def map_integrity_error(exc: IntegrityError) -> RetroBoardError:
    detail = str(exc.orig)
    for rule in UNIQUE_RULES:
        if rule.matches(detail):
            return DuplicateEntryError(rule.message, rule.name)
    return DatabaseError("Integrity constraint violated", "commit")


class DatabaseSessionManager:
    """Owns the engine and hands out sessions that roll back on failure."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.engine = create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            mapped = map_integrity_error(e)
            level = logging.WARNING if mapped.http_status < 500 else logging.ERROR
            logger.log(level, f"DB integrity error: {e.orig}", extra={
                "error_code": mapped.code,
            })
            raise mapped from e
        except OperationalError as e:
            await session.rollback()
            logger.error(f"DB operational error: {e}")
            raise DatabaseError("Connection or operational error", "execute") from e
        except (DBAPIError, SQLAlchemyError) as e:
            await session.rollback()
            logger.error(f"DB error: {e}")
            raise DatabaseError("Database operation failed", "query") from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except DatabaseError as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs):
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
