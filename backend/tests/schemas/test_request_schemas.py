"""Request schema validation — boards, cards, reactions and seeding."""

import uuid

import pytest
from pydantic import ValidationError

from retroboard.schemas.admin import SeedTestDataRequest
from retroboard.schemas.board import AdminAdd, BoardCreate, BoardRename, ColumnRename, JoinBoard
from retroboard.schemas.card import CardCreate, CardLinkRequest, CardUpdate
from retroboard.schemas.reaction import ReactionCreate


# --- BoardCreate --------------------------------------------------------------

class TestBoardCreate:

    def test_minimal_board(self):
        board = BoardCreate(name="  Retro  ", columns=[{"id": "a", "name": "A"}])
        assert board.name == "Retro"
        assert board.card_limit_per_user is None

    def test_requires_a_column(self):
        with pytest.raises(ValidationError):
            BoardCreate(name="Retro", columns=[])

    def test_at_most_ten_columns(self):
        columns = [{"id": f"c{i}", "name": f"C{i}"} for i in range(11)]
        with pytest.raises(ValidationError):
            BoardCreate(name="Retro", columns=columns)

    def test_column_ids_unique(self):
        with pytest.raises(ValidationError, match="unique"):
            BoardCreate(name="Retro", columns=[
                {"id": "a", "name": "A"}, {"id": "a", "name": "B"},
            ])

    def test_color_format(self):
        BoardCreate(name="Retro", columns=[{"id": "a", "name": "A", "color": "#a1B2c3"}])
        with pytest.raises(ValidationError):
            BoardCreate(name="Retro", columns=[{"id": "a", "name": "A", "color": "#abc"}])

    @pytest.mark.parametrize("field", ["card_limit_per_user", "reaction_limit_per_user"])
    def test_limits_positive(self, field):
        with pytest.raises(ValidationError):
            BoardCreate(name="Retro", columns=[{"id": "a", "name": "A"}], **{field: 0})

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            BoardCreate(name="   ", columns=[{"id": "a", "name": "A"}])


# --- Participants -------------------------------------------------------------

def test_alias_is_stripped():
    assert JoinBoard(alias="  Bob ").alias == "Bob"


def test_alias_max_length():
    with pytest.raises(ValidationError):
        JoinBoard(alias="x" * 51)


def test_admin_hash_length():
    AdminAdd(user_hash="a" * 64)
    with pytest.raises(ValidationError):
        AdminAdd(user_hash="abc")


def test_board_rename_is_stripped():
    assert BoardRename(name="  Q4 Retro ").name == "Q4 Retro"


@pytest.mark.parametrize("model,too_long", [(BoardRename, 201), (ColumnRename, 101)])
def test_rename_length_limits(model, too_long):
    with pytest.raises(ValidationError):
        model(name="x" * too_long)
    with pytest.raises(ValidationError):
        model(name="   ")


# --- Cards --------------------------------------------------------------------

def test_card_defaults():
    card = CardCreate(column_id="a", content=" hello ")
    assert card.content == "hello"
    assert card.card_type == "feedback"
    assert card.is_anonymous is False


def test_card_content_limit():
    CardUpdate(content="x" * 5000)
    with pytest.raises(ValidationError):
        CardUpdate(content="x" * 5001)


def test_card_type_must_be_known():
    with pytest.raises(ValidationError):
        CardCreate(column_id="a", content="x", card_type="note")


def test_link_type_must_be_known():
    CardLinkRequest(target_card_id=uuid.uuid4(), link_type="linked_to")
    with pytest.raises(ValidationError):
        CardLinkRequest(target_card_id=uuid.uuid4(), link_type="child_of")


# --- Reactions ----------------------------------------------------------------

@pytest.mark.parametrize("value", ["thumbs_up", "heart", "plus1"])
def test_reaction_type_accepted(value):
    assert ReactionCreate(reaction_type=value).reaction_type == value


@pytest.mark.parametrize("value", ["", "Thumbs", "1up", "a b"])
def test_reaction_type_rejected(value):
    with pytest.raises(ValidationError):
        ReactionCreate(reaction_type=value)


# --- Seeding ------------------------------------------------------------------

def test_seed_defaults():
    req = SeedTestDataRequest()
    assert (req.num_users, req.num_cards, req.num_action_cards, req.num_reactions) == (
        5, 20, 5, 50,
    )
    assert req.create_relationships is True


@pytest.mark.parametrize("field,value", [
    ("num_users", 0), ("num_users", 101),
    ("num_cards", 0), ("num_cards", 501),
    ("num_action_cards", 51), ("num_reactions", 1001),
])
def test_seed_bounds(field, value):
    with pytest.raises(ValidationError):
        SeedTestDataRequest(**{field: value})


def test_seed_action_cards_within_cards():
    with pytest.raises(ValidationError):
        SeedTestDataRequest(num_cards=3, num_action_cards=4)
