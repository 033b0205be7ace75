"""Maintenance Routes — clear, reset and seed a board for tests and demos.

Invariants:
    - Every route requires the X-Admin-Secret header (401 otherwise)
    - Zero affected rows is a success, not an error
"""

import logging
import random
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from retroboard.api.dependencies import get_publisher, require_admin_secret
from retroboard.config import Settings, get_settings
from retroboard.core.boundary_protocols import EventPublisher
from retroboard.core.domain_types import BoardId
from retroboard.core.seed_plan import SeedRequest
from retroboard.infrastructure.database import get_db
from retroboard.schemas.admin import (
    ClearBoardResponse, ResetBoardResponse, SeedTestDataRequest,
    SeedTestDataResponse,
)
from retroboard.services.board_maintenance import BoardMaintenance

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/boards",
    tags=["maintenance"],
    dependencies=[Depends(require_admin_secret)],
)


@router.post("/{board_id}/test/clear", response_model=ClearBoardResponse)
async def clear_board(
    board_id: UUID,
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    counts = await BoardMaintenance(db).clear_board(board_id)
    publisher.publish(BoardId(board_id), "board:cleared", counts)
    return counts


@router.post("/{board_id}/test/reset", response_model=ResetBoardResponse)
async def reset_board(
    board_id: UUID,
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    counts = await BoardMaintenance(db).reset_board(board_id)
    publisher.publish(BoardId(board_id), "board:reset", counts)
    return counts


@router.post("/{board_id}/test/seed", response_model=SeedTestDataResponse)
async def seed_test_data(
    board_id: UUID,
    body: SeedTestDataRequest | None = None,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    publisher: EventPublisher = Depends(get_publisher),
):
    body = body or SeedTestDataRequest()
    rng = (
        random.Random(settings.seed_random_seed)
        if settings.seed_random_seed is not None else None
    )
    result = await BoardMaintenance(db).seed_test_data(
        board_id, SeedRequest(**body.model_dump()), rng=rng,
    )
    publisher.publish(BoardId(board_id), "board:seeded", {
        k: v for k, v in result.items() if k != "user_aliases"
    })
    return result
