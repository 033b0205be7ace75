"""Log formatters — context fields, hash truncation, text suffix."""

import json
import logging

from retroboard.infrastructure.observability import (
    JSONFormatter,
    TextFormatter,
    record_context,
    setup_logging,
)

FULL_HASH = "a" * 64


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "retroboard.services.card_graph", logging.INFO, __file__, 1,
        "Card created", None, None,
    )
    record.__dict__.update(extra)
    return record


def test_json_includes_board_context():
    line = JSONFormatter().format(make_record(board_id="b-1", card_id="c-1"))
    data = json.loads(line)
    assert data["message"] == "Card created"
    assert data["level"] == "INFO"
    assert data["board_id"] == "b-1"
    assert data["card_id"] == "c-1"
    assert "user_hash" not in data


def test_full_user_hash_is_truncated():
    data = json.loads(JSONFormatter().format(make_record(user_hash=FULL_HASH)))
    assert data["user_hash"] == "aaaaaaaa..."


def test_already_short_hash_kept():
    assert record_context(make_record(user_hash="abcdef12..."))["user_hash"] == "abcdef12..."


def test_text_format_appends_context():
    line = TextFormatter().format(make_record(board_id="b-1", error_code="BOARD_CLOSED"))
    assert line.endswith("Card created [board_id=b-1 error_code=BOARD_CLOSED]")


def test_text_format_without_context():
    assert TextFormatter().format(make_record()).endswith("Card created")


def test_setup_logging_quiets_sqlalchemy():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    try:
        setup_logging("DEBUG", "text")
        assert isinstance(root.handlers[0].formatter, TextFormatter)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    finally:
        root.handlers = handlers
        root.setLevel(level)
