"""Reaction ledger tests — upsert semantics, limits and count maintenance."""

import logging
import uuid

import pytest

from retroboard.core.domain_types import short_hash
from retroboard.core.errors import (
    BoardClosedError,
    CardNotFoundError,
    ReactionLimitReachedError,
)
from retroboard.services.board_lifecycle import BoardLifecycle
from retroboard.services.card_graph import CardGraph
from retroboard.services.graph_queries import load_card
from retroboard.services.reaction_ledger import ReactionLedger


@pytest.fixture
def ledger(test_db):
    return ReactionLedger(test_db)


@pytest.fixture
async def card(test_db, board, alice):
    return await CardGraph(test_db).create_card(board.id, "went-well", "Great demo", alice)


@pytest.fixture
async def family(test_db, board, alice):
    """(parent, child) pair on the board."""
    graph = CardGraph(test_db)
    parent = await graph.create_card(board.id, "went-well", "Deploys", alice)
    child = await graph.create_card(board.id, "went-well", "Deploys are slow", alice)
    await graph.set_parent_link(child.id, parent.id)
    return parent, child


# --- add_reaction -------------------------------------------------------------

async def test_add_reaction_increments_counts(ledger, card, alice):
    reaction, card, is_new = await ledger.add_reaction(card.id, alice.user_hash)
    assert is_new
    assert reaction.reaction_type == "thumbs_up"
    assert card.direct_reaction_count == 1
    assert card.aggregated_reaction_count == 1


async def test_reaction_logs_truncated_hash(ledger, card, alice, caplog):
    with caplog.at_level(logging.INFO, logger="retroboard.services.reaction_ledger"):
        await ledger.add_reaction(card.id, alice.user_hash)
        await ledger.remove_reaction(card.id, alice.user_hash)
    logged = [r.user_hash for r in caplog.records if hasattr(r, "user_hash")]
    assert logged == [alice.short_hash, alice.short_hash]
    assert alice.short_hash == short_hash(alice.user_hash)
    assert alice.user_hash not in caplog.text


async def test_add_reaction_is_idempotent(ledger, card, alice):
    first, _, _ = await ledger.add_reaction(card.id, alice.user_hash)
    second, card, is_new = await ledger.add_reaction(card.id, alice.user_hash)
    assert not is_new
    assert second.id == first.id
    assert card.direct_reaction_count == 1


async def test_reaction_types_are_separate(ledger, card, alice):
    await ledger.add_reaction(card.id, alice.user_hash, "thumbs_up")
    _, card, is_new = await ledger.add_reaction(card.id, alice.user_hash, "heart")
    assert is_new
    assert card.direct_reaction_count == 2


async def test_reaction_stores_alias_of_joined_user(ledger, card, alice, bob):
    reaction, _, _ = await ledger.add_reaction(card.id, alice.user_hash)
    anonymous, _, _ = await ledger.add_reaction(card.id, bob.user_hash)
    assert reaction.user_alias == "Alice"
    assert anonymous.user_alias is None


async def test_child_reaction_updates_parent_aggregate(ledger, family, alice, bob, test_db):
    parent, child = family
    await ledger.add_reaction(parent.id, alice.user_hash)
    await ledger.add_reaction(child.id, alice.user_hash)
    await ledger.add_reaction(child.id, bob.user_hash)

    parent = await load_card(test_db, parent.id)
    child = await load_card(test_db, child.id)
    assert parent.direct_reaction_count == 1
    assert parent.aggregated_reaction_count == 3
    assert child.aggregated_reaction_count == 2


async def test_add_reaction_to_missing_card(ledger, alice):
    with pytest.raises(CardNotFoundError):
        await ledger.add_reaction(uuid.uuid4(), alice.user_hash)


async def test_add_reaction_on_closed_board(ledger, card, board, alice, test_db):
    await BoardLifecycle(test_db).close_board(board.id, alice)
    with pytest.raises(BoardClosedError):
        await ledger.add_reaction(card.id, alice.user_hash)


# --- Limits -------------------------------------------------------------------

@pytest.fixture
async def limited_cards(test_db, alice):
    board = await BoardLifecycle(test_db).create_board(
        "Limited", [{"id": "c1", "name": "One"}], alice, reaction_limit_per_user=2,
    )
    graph = CardGraph(test_db)
    return [
        await graph.create_card(board.id, "c1", f"Card {i}", alice)
        for i in range(3)
    ]


async def test_reaction_limit_counts_across_board(ledger, limited_cards, alice):
    await ledger.add_reaction(limited_cards[0].id, alice.user_hash)
    await ledger.add_reaction(limited_cards[1].id, alice.user_hash)
    with pytest.raises(ReactionLimitReachedError):
        await ledger.add_reaction(limited_cards[2].id, alice.user_hash)


async def test_existing_reaction_not_blocked_at_limit(ledger, limited_cards, alice):
    await ledger.add_reaction(limited_cards[0].id, alice.user_hash)
    await ledger.add_reaction(limited_cards[1].id, alice.user_hash)
    _, _, is_new = await ledger.add_reaction(limited_cards[0].id, alice.user_hash)
    assert not is_new


async def test_reaction_limit_is_per_user(ledger, limited_cards, alice, bob):
    await ledger.add_reaction(limited_cards[0].id, alice.user_hash)
    await ledger.add_reaction(limited_cards[1].id, alice.user_hash)
    await ledger.add_reaction(limited_cards[2].id, bob.user_hash)


async def test_removing_frees_quota(ledger, limited_cards, alice):
    await ledger.add_reaction(limited_cards[0].id, alice.user_hash)
    await ledger.add_reaction(limited_cards[1].id, alice.user_hash)
    await ledger.remove_reaction(limited_cards[0].id, alice.user_hash)
    await ledger.add_reaction(limited_cards[2].id, alice.user_hash)

    q = await ledger.reaction_quota(limited_cards[0].board_id, alice.user_hash)
    assert q["current_count"] == 2
    assert q["allowed"] is False


# --- remove_reaction ----------------------------------------------------------

async def test_remove_reaction_decrements(ledger, card, alice):
    await ledger.add_reaction(card.id, alice.user_hash)
    card, removed = await ledger.remove_reaction(card.id, alice.user_hash)
    assert removed
    assert card.direct_reaction_count == 0
    assert card.aggregated_reaction_count == 0


async def test_remove_missing_reaction_is_noop(ledger, card, alice):
    card, removed = await ledger.remove_reaction(card.id, alice.user_hash)
    assert not removed
    assert card.direct_reaction_count == 0


async def test_remove_child_reaction_updates_parent(ledger, family, alice, test_db):
    parent, child = family
    await ledger.add_reaction(child.id, alice.user_hash)
    await ledger.remove_reaction(child.id, alice.user_hash)
    assert (await load_card(test_db, parent.id)).aggregated_reaction_count == 0


async def test_remove_reaction_on_closed_board(ledger, card, board, alice, test_db):
    await ledger.add_reaction(card.id, alice.user_hash)
    await BoardLifecycle(test_db).close_board(board.id, alice)
    with pytest.raises(BoardClosedError):
        await ledger.remove_reaction(card.id, alice.user_hash)


# --- delete_by_cards ----------------------------------------------------------

async def test_delete_by_cards_returns_count(ledger, family, alice, bob, test_db):
    parent, child = family
    await ledger.add_reaction(parent.id, alice.user_hash)
    await ledger.add_reaction(child.id, alice.user_hash)
    await ledger.add_reaction(child.id, bob.user_hash)

    deleted = await ledger.delete_by_cards([parent.id, child.id])
    await test_db.commit()

    assert deleted == 3
    assert await ledger.count_user_reactions(parent.board_id, alice.user_hash) == 0


async def test_delete_by_cards_with_no_ids(ledger):
    assert await ledger.delete_by_cards([]) == 0

