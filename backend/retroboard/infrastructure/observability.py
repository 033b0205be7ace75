"""Structured Logging — JSON and text formatters carrying board/card context.

Invariants:
    - Every line has timestamp, level, logger and message
    - board_id, card_id, user_hash, error_code, path and event_type are
      emitted whenever a log call passes them in `extra`
    - A full user hash never reaches the output; it is cut to short_hash form

Design Decisions:
    - JSON for production, one-line text with a [key=value] suffix for local runs
    - SQLAlchemy engine and driver chatter is held at WARNING or above
"""

import json
import logging
from datetime import datetime, timezone

from retroboard.core.domain_types import short_hash

CONTEXT_FIELDS = ("board_id", "card_id", "user_hash", "error_code", "path", "event_type")
NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


def record_context(record: logging.LogRecord) -> dict[str, str]:
    context = {}
    for key in CONTEXT_FIELDS:
        val = record.__dict__.get(key)
        if val is None:
            continue
        val = str(val)
        if key == "user_hash" and not val.endswith("..."):
            val = short_hash(val)
        context[key] = val
    return context


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """`<time> <level> <logger>: <message> [board_id=... card_id=...]`"""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
        return line


def setup_logging(level: str = "INFO", fmt: str = "json"):
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    root_level = getattr(logging, level.upper(), logging.INFO)
    logging.root.handlers = [handler]
    logging.root.setLevel(root_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))
