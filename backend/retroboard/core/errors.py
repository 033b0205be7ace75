"""Error Hierarchy — typed, categorized exceptions for every retro board failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Structural violations of the card graph each have their own class and code
    - Domain errors (4xx) are recoverable; infrastructure errors (5xx) are critical
    - to_response() produces the REST envelope; no internal details in messages

Design Decisions:
    - Single hierarchy with RetroBoardError base: one FastAPI handler catches all
    - ErrorContext as dataclass: board/card ids travel with the error for logging
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    board_id: str | None = None
    card_id: str | None = None
    debug_info: dict[str, Any] | None = None


class RetroBoardError(Exception):
    """Base exception for all retro board errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "board_id": self.context.board_id,
                    "card_id": self.context.card_id,
                },
            }
        }


# ─── Not Found (404 / 400) ──────────────────────────────────────

class ResourceNotFoundError(RetroBoardError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, code: str = "NOT_FOUND",
        context: ErrorContext | None = None, http_status: int = 404,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            code, ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, http_status,
        )
        self.resource_id = resource_id


class BoardNotFoundError(ResourceNotFoundError):
    def __init__(self, board_id: object):
        super().__init__(
            "Board", str(board_id), "BOARD_NOT_FOUND",
            ErrorContext(board_id=str(board_id)),
        )


class CardNotFoundError(ResourceNotFoundError):
    def __init__(self, card_id: object):
        super().__init__(
            "Card", str(card_id), "CARD_NOT_FOUND",
            ErrorContext(card_id=str(card_id)),
        )


class ColumnNotFoundError(ResourceNotFoundError):
    """Column id not present on the board — a bad request, not a missing URL."""
    def __init__(self, column_id: str, board_id: object | None = None):
        super().__init__(
            "Column", column_id, "COLUMN_NOT_FOUND",
            ErrorContext(board_id=str(board_id) if board_id else None), 400,
        )


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, board_id: object):
        super().__init__(
            "User session on board", str(board_id), "USER_NOT_FOUND",
            ErrorContext(board_id=str(board_id)),
        )


# ─── Validation / Authorization ─────────────────────────────────

class DomainValidationError(RetroBoardError):
    """Input is well-formed but not acceptable for this board."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


class ForbiddenError(RetroBoardError):
    """Caller is not allowed to perform this action."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.FORBIDDEN,
            ErrorSeverity.WARNING, context, 403,
        )


class UnauthorizedError(RetroBoardError):
    """Maintenance route called without a valid admin secret."""
    def __init__(self, message: str = "Admin secret required"):
        super().__init__(
            message, "UNAUTHORIZED", ErrorCategory.FORBIDDEN,
            ErrorSeverity.WARNING, None, 401,
        )


# ─── Conflicts (board state, limits, graph structure) ───────────

class BoardClosedError(RetroBoardError):
    """Mutation attempted on a closed (read-only) board."""
    def __init__(self, board_id: object):
        super().__init__(
            "Board is closed", "BOARD_CLOSED", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ErrorContext(board_id=str(board_id)), 409,
        )


class CardLimitReachedError(RetroBoardError):
    def __init__(self, limit: int, board_id: object | None = None):
        super().__init__(
            f"Card limit of {limit} reached", "CARD_LIMIT_REACHED",
            ErrorCategory.BUSINESS_RULE, ErrorSeverity.WARNING,
            ErrorContext(board_id=str(board_id) if board_id else None), 403,
        )
        self.limit = limit


class ReactionLimitReachedError(RetroBoardError):
    def __init__(self, limit: int, board_id: object | None = None):
        super().__init__(
            f"Reaction limit of {limit} reached", "REACTION_LIMIT_REACHED",
            ErrorCategory.BUSINESS_RULE, ErrorSeverity.WARNING,
            ErrorContext(board_id=str(board_id) if board_id else None), 403,
        )
        self.limit = limit


class CircularRelationshipError(RetroBoardError):
    """Parent link would make a card its own ancestor."""
    def __init__(self, message: str, card_id: object | None = None):
        super().__init__(
            message, "CIRCULAR_RELATIONSHIP", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR,
            ErrorContext(card_id=str(card_id) if card_id else None), 409,
        )


class ChildCannotBeParentError(RetroBoardError):
    """Proposed child already has children of its own."""
    def __init__(self, card_id: object):
        super().__init__(
            "A card that already has children cannot become a child "
            "(1-level hierarchy limit)",
            "CHILD_CANNOT_BE_PARENT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, ErrorContext(card_id=str(card_id)), 409,
        )


class ParentCannotBeChildError(RetroBoardError):
    """Proposed parent is itself a child of another card."""
    def __init__(self, card_id: object):
        super().__init__(
            "A child card cannot become a parent (1-level hierarchy limit)",
            "PARENT_CANNOT_BE_CHILD", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, ErrorContext(card_id=str(card_id)), 409,
        )


class RelationshipConflictError(RetroBoardError):
    """Pair is already related by the other relationship kind."""
    def __init__(self, message: str, card_id: object | None = None):
        super().__init__(
            message, "RELATIONSHIP_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR,
            ErrorContext(card_id=str(card_id) if card_id else None), 409,
        )


class DuplicateEntryError(RetroBoardError):
    """A unique constraint rejected a row another writer already stored."""
    def __init__(self, message: str, constraint: str, context: ErrorContext | None = None):
        super().__init__(
            message, "DUPLICATE_ENTRY", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )
        self.constraint = constraint


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(RetroBoardError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
