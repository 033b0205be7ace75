"""Health Routes — liveness plus readiness with database and board-lock status.

Invariants:
    - GET /api/v1/health/ returns 200 while the process is up
    - GET /api/v1/health/ready returns 503 when the database is unreachable
    - Readiness reports the board lock registry so stuck board writes show up
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from retroboard.infrastructure import database
from retroboard.infrastructure.board_locks import board_locks

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "retroboard-api"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/ready")
async def readiness_check():
    manager = database.db_manager
    db_ok = await manager.health_check() if manager else False
    body = {
        "status": "ready" if db_ok else "not_ready",
        "checks": {"database": "healthy" if db_ok else "unavailable"},
        "board_locks": board_locks.stats(),
    }
    if not db_ok:
        logger.warning("Readiness check failed: database unavailable")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body
