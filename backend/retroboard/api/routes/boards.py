"""Board Routes — create, read, rename, close, join, presence and quota endpoints.

Invariants:
    - Every handler delegates to BoardLifecycle / CardGraph / ReactionLedger
    - Events are published only after the service call has committed
    - active_users lists only sessions seen within settings.active_user_window
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from retroboard.api.dependencies import get_identity, get_publisher
from retroboard.config import Settings, get_settings
from retroboard.core.boundary_protocols import EventPublisher
from retroboard.core.domain_types import BoardId, Identity
from retroboard.infrastructure.database import get_db
from retroboard.models.board import Board
from retroboard.models.user_session import UserSession
from retroboard.schemas.board import (
    AdminAdd, AliasUpdate, BoardCreate, BoardRename, BoardResponse,
    CardQuotaResponse, ColumnRename, HeartbeatResponse, JoinBoard,
    ReactionQuotaResponse, UserSessionResponse,
)
from retroboard.services.board_lifecycle import BoardLifecycle
from retroboard.services.board_maintenance import BoardMaintenance
from retroboard.services.card_graph import CardGraph
from retroboard.services.reaction_ledger import ReactionLedger

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/boards", tags=["boards"])


def board_response(
    board: Board, settings: Settings, users: list[dict] | None = None,
) -> BoardResponse:
    return BoardResponse(
        id=board.id,
        name=board.name,
        shareable_link=f"{settings.app_url}/join/{board.shareable_link}",
        state=board.state,
        columns=board.columns,
        card_limit_per_user=board.card_limit_per_user,
        reaction_limit_per_user=board.reaction_limit_per_user,
        created_by_hash=board.created_by_hash,
        admins=board.admins,
        created_at=board.created_at,
        closed_at=board.closed_at,
        active_users=users or [],
    )


def session_response(session: UserSession, board: Board) -> UserSessionResponse:
    return UserSessionResponse(
        board_id=session.board_id,
        alias=session.alias,
        is_admin=session.user_hash in board.admins,
        joined_at=session.joined_at,
        last_active_at=session.last_active_at,
    )


@router.post("", response_model=BoardResponse, status_code=status.HTTP_201_CREATED)
async def create_board(
    body: BoardCreate,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    lifecycle = BoardLifecycle(db)
    board = await lifecycle.create_board(
        name=body.name,
        columns=[col.model_dump(exclude_none=True) for col in body.columns],
        identity=identity,
        card_limit_per_user=body.card_limit_per_user,
        reaction_limit_per_user=body.reaction_limit_per_user,
        creator_alias=body.creator_alias,
    )
    users = await lifecycle.list_users(board, settings.active_user_window)
    return board_response(board, settings, users)


@router.get("/by-link/{shareable_link}", response_model=BoardResponse)
async def get_board_by_link(
    shareable_link: str,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    lifecycle = BoardLifecycle(db)
    board = await lifecycle.get_board_by_link(shareable_link)
    users = await lifecycle.list_users(board, settings.active_user_window)
    return board_response(board, settings, users)


@router.get("/{board_id}", response_model=BoardResponse)
async def get_board(
    board_id: UUID,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    lifecycle = BoardLifecycle(db)
    board = await lifecycle.get_board(board_id)
    users = await lifecycle.list_users(board, settings.active_user_window)
    return board_response(board, settings, users)


@router.patch("/{board_id}/name", response_model=BoardResponse)
async def rename_board(
    board_id: UUID,
    body: BoardRename,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    publisher: EventPublisher = Depends(get_publisher),
):
    board = await BoardLifecycle(db).rename_board(board_id, body.name, identity)
    publisher.publish(BoardId(board_id), "board:renamed", {
        "board_id": str(board_id), "name": board.name,
    })
    return board_response(board, settings)


@router.patch("/{board_id}/columns/{column_id}", response_model=BoardResponse)
async def rename_column(
    board_id: UUID,
    column_id: str,
    body: ColumnRename,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    publisher: EventPublisher = Depends(get_publisher),
):
    board = await BoardLifecycle(db).rename_column(board_id, column_id, body.name, identity)
    publisher.publish(BoardId(board_id), "column:renamed", {
        "board_id": str(board_id), "column_id": column_id, "name": body.name,
    })
    return board_response(board, settings)


@router.post("/{board_id}/close", response_model=BoardResponse)
async def close_board(
    board_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    publisher: EventPublisher = Depends(get_publisher),
):
    board = await BoardLifecycle(db).close_board(board_id, identity)
    response = board_response(board, settings)
    publisher.publish(BoardId(board_id), "board:closed", {
        "board_id": str(board_id),
        "closed_at": response.closed_at.isoformat() if response.closed_at else None,
    })
    return response


@router.post("/{board_id}/admins", response_model=BoardResponse)
async def add_admin(
    board_id: UUID,
    body: AdminAdd,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    board = await BoardLifecycle(db).add_admin(board_id, body.user_hash, identity)
    return board_response(board, settings)


@router.delete("/{board_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_board(
    board_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    await BoardMaintenance(db).delete_board(board_id, identity)
    publisher.publish(BoardId(board_id), "board:deleted", {"board_id": str(board_id)})


# --- Participants ----------------------------------------------------------

@router.post("/{board_id}/join", response_model=UserSessionResponse)
async def join_board(
    board_id: UUID,
    body: JoinBoard,
    response: Response,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    lifecycle = BoardLifecycle(db)
    session, is_new = await lifecycle.join_board(board_id, identity, body.alias)
    board = await lifecycle.get_board(board_id)
    if is_new:
        response.status_code = status.HTTP_201_CREATED
        publisher.publish(BoardId(board_id), "user:joined", {
            "board_id": str(board_id), "alias": session.alias,
        })
    return session_response(session, board)


@router.patch("/{board_id}/users/alias", response_model=UserSessionResponse)
async def update_alias(
    board_id: UUID,
    body: AliasUpdate,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    lifecycle = BoardLifecycle(db)
    session = await lifecycle.update_alias(board_id, identity, body.alias)
    board = await lifecycle.get_board(board_id)
    publisher.publish(BoardId(board_id), "user:alias_changed", {
        "board_id": str(board_id), "alias": session.alias,
    })
    return session_response(session, board)


@router.patch("/{board_id}/users/heartbeat", response_model=HeartbeatResponse)
async def heartbeat(
    board_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    session = await BoardLifecycle(db).heartbeat(board_id, identity)
    return HeartbeatResponse(alias=session.alias, last_active_at=session.last_active_at)


@router.get("/{board_id}/users/me/card-quota", response_model=CardQuotaResponse)
async def card_quota(
    board_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    q = await CardGraph(db).card_quota(board_id, identity.user_hash)
    return CardQuotaResponse(
        current_count=q["current_count"], limit=q["limit"],
        can_create=q["allowed"], limit_enabled=q["limit_enabled"],
    )


@router.get("/{board_id}/users/me/reaction-quota", response_model=ReactionQuotaResponse)
async def reaction_quota(
    board_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    q = await ReactionLedger(db).reaction_quota(board_id, identity.user_hash)
    return ReactionQuotaResponse(
        current_count=q["current_count"], limit=q["limit"],
        can_react=q["allowed"], limit_enabled=q["limit_enabled"],
    )
