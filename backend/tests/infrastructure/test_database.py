"""Session manager tests — rollback and unique-constraint mapping on SQLite."""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from retroboard.core.card_graph import link_pair
from retroboard.core.domain_types import CardType
from retroboard.core.errors import DatabaseError, DuplicateEntryError
from retroboard.infrastructure.database import DatabaseSessionManager, map_integrity_error
from retroboard.models.card_link import CardLink
from retroboard.models.reaction import Reaction
from retroboard.models.user_session import UserSession
from retroboard.services.card_graph import CardGraph
from retroboard.services.graph_queries import utcnow


@pytest.fixture
def manager(test_engine, test_session_factory):
    """Manager bound to the in-memory test engine."""
    m = DatabaseSessionManager.__new__(DatabaseSessionManager)
    m.engine = test_engine
    m._session_factory = test_session_factory
    return m


@pytest.fixture
async def cards(test_db, board, alice):
    graph = CardGraph(test_db)
    feedback = await graph.create_card(board.id, "went-well", "Pairing helped", alice)
    action = await graph.create_card(
        board.id, "actions", "Pair every Friday", alice, card_type=CardType.ACTION,
    )
    return feedback, action


def _reaction(board, card, identity):
    return Reaction(
        board_id=board.id, card_id=card.id, user_hash=identity.user_hash,
        reaction_type="thumbs_up",
    )


# --- Unique constraints -------------------------------------------------------

async def test_duplicate_reaction_is_a_conflict(manager, board, alice, cards):
    feedback, _ = cards
    with pytest.raises(DuplicateEntryError) as exc:
        async with manager.session() as db:
            db.add_all([_reaction(board, feedback, alice), _reaction(board, feedback, alice)])
            await db.commit()
    assert exc.value.code == "DUPLICATE_ENTRY"
    assert exc.value.http_status == 409
    assert exc.value.constraint == "uq_reactions_card_user_type"


async def test_duplicate_link_is_a_conflict(manager, board, cards):
    first, second = link_pair(cards[0].id, cards[1].id)
    with pytest.raises(DuplicateEntryError) as exc:
        async with manager.session() as db:
            for _ in range(2):
                db.add(CardLink(board_id=board.id, card_a_id=first, card_b_id=second))
                await db.flush()
    assert exc.value.constraint == "uq_card_links_pair"


async def test_duplicate_session_is_a_conflict(manager, board, alice):
    now = utcnow()
    with pytest.raises(DuplicateEntryError) as exc:
        async with manager.session() as db:
            db.add(UserSession(
                board_id=board.id, user_hash=alice.user_hash, alias="Alice again",
                joined_at=now, last_active_at=now,
            ))
            await db.commit()
    assert exc.value.constraint == "uq_user_sessions_board_user"


async def test_other_integrity_errors_stay_database_errors(manager, board, cards):
    first, second = link_pair(cards[0].id, cards[1].id)
    with pytest.raises(DatabaseError) as exc:
        async with manager.session() as db:
            db.add(CardLink(board_id=board.id, card_a_id=second, card_b_id=first))
            await db.commit()
    assert exc.value.http_status == 503


async def test_failed_session_leaves_nothing_behind(manager, board, alice, cards, test_db):
    feedback, _ = cards
    with pytest.raises(DuplicateEntryError):
        async with manager.session() as db:
            db.add_all([_reaction(board, feedback, alice), _reaction(board, feedback, alice)])
            await db.commit()
    count = await test_db.scalar(select(func.count()).select_from(Reaction))
    assert count == 0


async def test_non_database_errors_pass_through(manager):
    with pytest.raises(ValueError):
        async with manager.session():
            raise ValueError("not ours")


# --- map_integrity_error ------------------------------------------------------

def test_postgres_message_matched_by_constraint_name():
    exc = IntegrityError(
        "INSERT INTO card_links ...", {},
        Exception('duplicate key value violates unique constraint "uq_card_links_pair"'),
    )
    mapped = map_integrity_error(exc)
    assert isinstance(mapped, DuplicateEntryError)
    assert mapped.message == "Cards are already linked"


def test_unknown_constraint_is_a_database_error():
    exc = IntegrityError(
        "INSERT INTO boards ...", {},
        Exception(f"UNIQUE constraint failed: boards.shareable_link ({uuid.uuid4()})"),
    )
    assert map_integrity_error(exc).code == "DATABASE_ERROR"


async def test_health_check(manager):
    assert await manager.health_check() is True
