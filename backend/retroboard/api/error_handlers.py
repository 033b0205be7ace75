"""Error Handlers — map retro board failures to the REST error envelope.

Invariants:
    - RetroBoardError → its own status and to_response() body
    - RequestValidationError → 400 VALIDATION_ERROR with field-level details
    - Anything else → 500 INTERNAL_ERROR, no internal details in the body
    - Every logged failure carries error_code, path and the board/card ids
      from the error context

Design Decisions:
    - Log level follows the outcome: routine refusals (limits, closed boards,
      missing rows) at INFO, rule violations at WARNING, 5xx at ERROR
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from retroboard.core.errors import ErrorCategory, ErrorSeverity, RetroBoardError

logger = logging.getLogger(__name__)

ROUTINE_CATEGORIES = {ErrorCategory.RESOURCE_NOT_FOUND, ErrorCategory.BUSINESS_RULE}
ROUTINE_CODES = {"BOARD_CLOSED", "DUPLICATE_ENTRY"}


def register_error_handlers(app: FastAPI) -> None:
    _register_domain_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def log_level_for(exc: RetroBoardError) -> int:
    if exc.http_status >= 500:
        return logging.ERROR
    if exc.category in ROUTINE_CATEGORIES or exc.code in ROUTINE_CODES:
        return logging.INFO
    return logging.WARNING


def log_context(exc: RetroBoardError, request: Request) -> dict:
    context = {"error_code": exc.code, "path": request.url.path}
    if exc.context.board_id:
        context["board_id"] = exc.context.board_id
    if exc.context.card_id:
        context["card_id"] = exc.context.card_id
    return context


def _register_domain_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RetroBoardError)
    async def retroboard_error_handler(request: Request, exc: RetroBoardError):
        logger.log(
            log_level_for(exc), f"{exc.code}: {exc.message}",
            extra=log_context(exc, request),
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_response())


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(loc) for loc in e["loc"]) for e in exc.errors()]
        logger.info(
            f"Invalid request fields: {', '.join(fields)}",
            extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {exc}", exc_info=True,
            extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": ErrorCategory.INTERNAL.value,
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": ErrorCategory.VALIDATION.value,
            "severity": ErrorSeverity.ERROR.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }
