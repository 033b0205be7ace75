"""Board maintenance tests — clear/reset/seed/delete keep the board consistent."""

import random
import uuid

import pytest
from sqlalchemy import func, select

from retroboard.core.card_graph import validate_forest
from retroboard.core.domain_types import CardType
from retroboard.core.errors import BoardClosedError, BoardNotFoundError, ForbiddenError
from retroboard.core.seed_plan import SeedRequest
from retroboard.models.card import Card
from retroboard.models.card_link import CardLink
from retroboard.models.reaction import Reaction
from retroboard.models.user_session import UserSession
from retroboard.services.board_lifecycle import BoardLifecycle
from retroboard.services.board_maintenance import BoardMaintenance
from retroboard.services.card_graph import CardGraph
from retroboard.services.reaction_ledger import ReactionLedger


@pytest.fixture
def maintenance(test_db):
    return BoardMaintenance(test_db)


@pytest.fixture
async def populated(test_db, board, alice, bob):
    """Board with a parent/child pair, a cross-link, three reactions and two users."""
    await BoardLifecycle(test_db).join_board(board.id, bob, "Bob")
    graph = CardGraph(test_db)
    parent = await graph.create_card(board.id, "went-well", "CI is fast", alice)
    child = await graph.create_card(board.id, "went-well", "Builds under 5m", bob)
    action = await graph.create_card(
        board.id, "actions", "Keep caching", alice, card_type=CardType.ACTION,
    )
    await graph.set_parent_link(child.id, parent.id)
    await graph.add_cross_link(action.id, parent.id)
    ledger = ReactionLedger(test_db)
    await ledger.add_reaction(parent.id, alice.user_hash)
    await ledger.add_reaction(child.id, alice.user_hash)
    await ledger.add_reaction(child.id, bob.user_hash)
    return board


async def _count(db, model, board_id) -> int:
    return await db.scalar(
        select(func.count()).select_from(model).where(model.board_id == board_id),
    )


# --- clear / reset ------------------------------------------------------------

async def test_clear_reports_counts(maintenance, populated, test_db):
    counts = await maintenance.clear_board(populated.id)
    assert counts == {"cards_deleted": 3, "reactions_deleted": 3, "users_deleted": 2}
    for model in (Card, Reaction, CardLink, UserSession):
        assert await _count(test_db, model, populated.id) == 0


async def test_clear_keeps_board_and_state(maintenance, populated, alice, test_db):
    await BoardLifecycle(test_db).close_board(populated.id, alice)
    await maintenance.clear_board(populated.id)
    board = await BoardLifecycle(test_db).get_board(populated.id)
    assert board.state == "closed"
    assert board.name == "Sprint 42 Retro"


async def test_clear_empty_board(maintenance, board):
    counts = await maintenance.clear_board(board.id)
    assert counts["cards_deleted"] == 0
    assert counts["users_deleted"] == 1


async def test_clear_missing_board(maintenance):
    with pytest.raises(BoardNotFoundError):
        await maintenance.clear_board(uuid.uuid4())


async def test_reset_reopens_closed_board(maintenance, populated, alice, test_db):
    await BoardLifecycle(test_db).close_board(populated.id, alice)
    counts = await maintenance.reset_board(populated.id)
    assert counts["board_reopened"] is True
    assert counts["cards_deleted"] == 3
    board = await BoardLifecycle(test_db).get_board(populated.id)
    assert board.state == "active"
    assert board.closed_at is None


async def test_reset_active_board(maintenance, board):
    counts = await maintenance.reset_board(board.id)
    assert counts["board_reopened"] is False


# --- seed_test_data -----------------------------------------------------------

async def test_seed_creates_groups_of_three(maintenance, board, test_db):
    result = await maintenance.seed_test_data(
        board.id,
        SeedRequest(num_users=3, num_cards=6, num_reactions=0, create_relationships=True),
        rng=random.Random(7),
    )
    assert result["cards_created"] == 6
    assert result["relationships_created"] == 2
    assert result["users_created"] == 3
    assert len(result["user_aliases"]) == 3

    rows = (await test_db.execute(
        select(Card.id, Card.parent_card_id).where(Card.board_id == board.id),
    )).all()
    parent_map = {row.id: row.parent_card_id for row in rows}
    validate_forest(parent_map)
    assert sum(1 for p in parent_map.values() if p is not None) == 4


async def test_seed_links_action_cards_to_feedback(maintenance, board, test_db):
    result = await maintenance.seed_test_data(
        board.id,
        SeedRequest(
            num_users=3, num_cards=9, num_action_cards=3, create_relationships=True,
        ),
        rng=random.Random(7),
    )
    assert result["links_created"] == 6
    assert await _count(test_db, CardLink, board.id) == 6

    types = dict((await test_db.execute(
        select(Card.id, Card.card_type).where(Card.board_id == board.id),
    )).all())
    links = (await test_db.scalars(
        select(CardLink).where(CardLink.board_id == board.id),
    )).all()
    for link in links:
        assert {types[link.card_a_id], types[link.card_b_id]} == {"action", "feedback"}

    counts = await maintenance.clear_board(board.id)
    assert counts["cards_deleted"] == 9
    assert await _count(test_db, CardLink, board.id) == 0


async def test_seed_without_relationships_creates_no_links(maintenance, board):
    result = await maintenance.seed_test_data(
        board.id, SeedRequest(num_users=2, num_cards=6, num_action_cards=2),
    )
    assert result["links_created"] == 0
    assert result["relationships_created"] == 0


async def test_seed_deduplicates_reactions(maintenance, board):
    result = await maintenance.seed_test_data(
        board.id, SeedRequest(num_users=1, num_cards=1, num_reactions=5),
    )
    assert result["reactions_created"] == 1


async def test_seed_action_cards_are_last(maintenance, board, test_db):
    result = await maintenance.seed_test_data(
        board.id, SeedRequest(num_users=2, num_cards=4, num_action_cards=1),
    )
    assert result["action_cards_created"] == 1
    types = (await test_db.scalars(
        select(Card.card_type).where(Card.board_id == board.id),
    )).all()
    assert sorted(types) == ["action", "feedback", "feedback", "feedback"]


async def test_seeded_counts_match_reactions(maintenance, board, test_db):
    await maintenance.seed_test_data(
        board.id,
        SeedRequest(num_users=4, num_cards=9, num_reactions=30, create_relationships=True),
        rng=random.Random(42),
    )
    cards = (await test_db.scalars(
        select(Card).where(Card.board_id == board.id)
        .execution_options(populate_existing=True),
    )).all()
    by_id = {c.id: c for c in cards}
    for card in cards:
        direct = await test_db.scalar(
            select(func.count()).select_from(Reaction).where(Reaction.card_id == card.id),
        )
        assert card.direct_reaction_count == direct
        children = [c for c in cards if c.parent_card_id == card.id]
        assert card.aggregated_reaction_count == direct + sum(
            c.direct_reaction_count for c in children
        )
        if card.parent_card_id is not None:
            assert by_id[card.parent_card_id].parent_card_id is None


async def test_seed_twice_reuses_sessions(maintenance, board):
    request = SeedRequest(num_users=2, num_cards=2)
    await maintenance.seed_test_data(board.id, request)
    again = await maintenance.seed_test_data(board.id, request)
    assert again["users_created"] == 0
    assert again["cards_created"] == 2


async def test_seed_ignores_card_limit(maintenance, alice, test_db):
    board = await BoardLifecycle(test_db).create_board(
        "Limited", [{"id": "c1", "name": "One"}], alice, card_limit_per_user=1,
    )
    result = await maintenance.seed_test_data(
        board.id, SeedRequest(num_users=1, num_cards=5),
    )
    assert result["cards_created"] == 5


async def test_seed_closed_board(maintenance, board, alice, test_db):
    await BoardLifecycle(test_db).close_board(board.id, alice)
    with pytest.raises(BoardClosedError):
        await maintenance.seed_test_data(board.id, SeedRequest(num_users=1, num_cards=1))


async def test_seeded_board_accepts_graph_operations(maintenance, board, alice, test_db):
    await maintenance.seed_test_data(
        board.id, SeedRequest(num_users=2, num_cards=3, num_reactions=4),
        rng=random.Random(1),
    )
    ids = (await test_db.scalars(select(Card.id).where(Card.board_id == board.id))).all()
    child, parent = await CardGraph(test_db).set_parent_link(ids[1], ids[0])
    assert child.parent_card_id == parent.id
    assert parent.aggregated_reaction_count == (
        parent.direct_reaction_count + child.direct_reaction_count
    )


# --- delete_board -------------------------------------------------------------

async def test_delete_board_removes_everything(maintenance, populated, alice, test_db):
    board_id = populated.id
    await maintenance.delete_board(board_id, alice)
    with pytest.raises(BoardNotFoundError):
        await BoardLifecycle(test_db).get_board(board_id)
    assert await _count(test_db, Card, board_id) == 0
    assert await _count(test_db, UserSession, board_id) == 0


async def test_only_creator_deletes_board(maintenance, populated, bob):
    with pytest.raises(ForbiddenError):
        await maintenance.delete_board(populated.id, bob)
