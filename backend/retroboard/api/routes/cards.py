"""Card Routes — card CRUD plus parent/child and cross-link endpoints.

Invariants:
    - POST /cards/{id}/link with parent_of makes {id} the parent of the target
    - DELETE /cards/{id}/link removes the same relationship kind it names
    - Responses carry counts as committed by the service call

Design Decisions:
    - One link endpoint for both relationship kinds, dispatched on link_type
"""

import logging
from collections import Counter
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from retroboard.api.dependencies import get_identity, get_publisher
from retroboard.core.boundary_protocols import EventPublisher
from retroboard.core.domain_types import BoardId, Identity, LinkType
from retroboard.infrastructure.database import get_db
from retroboard.models.card import Card
from retroboard.schemas.card import (
    CardChild, CardCreate, CardLinkRequest, CardListResponse, CardMove,
    CardResponse, CardUpdate, LinkResponse,
)
from retroboard.services.card_graph import CardGraph, CardView

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["cards"])


def _child(card: Card) -> CardChild:
    return CardChild(
        id=card.id,
        column_id=card.column_id,
        content=card.content,
        card_type=card.card_type,
        is_anonymous=card.is_anonymous,
        created_by_alias=card.created_by_alias,
        direct_reaction_count=card.direct_reaction_count,
        aggregated_reaction_count=card.aggregated_reaction_count,
        created_at=card.created_at,
    )


def card_response(view: CardView) -> CardResponse:
    card = view.card
    return CardResponse(
        **_child(card).model_dump(),
        board_id=card.board_id,
        parent_card_id=card.parent_card_id,
        updated_at=card.updated_at,
        children=[_child(c) for c in view.children],
        linked_feedback_ids=view.linked_feedback_ids,
    )


def _publish_card(publisher: EventPublisher, event_type: str, response: CardResponse):
    publisher.publish(
        BoardId(response.board_id), event_type, response.model_dump(mode="json"),
    )


@router.post(
    "/boards/{board_id}/cards", response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_card(
    board_id: UUID,
    body: CardCreate,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    card = await CardGraph(db).create_card(
        board_id, body.column_id, body.content, identity,
        card_type=body.card_type, is_anonymous=body.is_anonymous,
    )
    response = card_response(CardView(card=card))
    _publish_card(publisher, "card:created", response)
    return response


@router.get("/boards/{board_id}/cards", response_model=CardListResponse)
async def list_cards(
    board_id: UUID,
    column_id: str | None = Query(None),
    created_by: str | None = Query(None),
    include_relationships: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    views = await CardGraph(db).list_cards(
        board_id, column_id=column_id, created_by=created_by,
        include_relationships=include_relationships,
    )
    return CardListResponse(
        cards=[card_response(v) for v in views],
        total_count=len(views),
        cards_by_column=dict(Counter(v.card.column_id for v in views)),
    )


@router.get("/cards/{card_id}", response_model=CardResponse)
async def get_card(card_id: UUID, db: AsyncSession = Depends(get_db)):
    return card_response(await CardGraph(db).get_card(card_id))


@router.put("/cards/{card_id}", response_model=CardResponse)
async def update_card(
    card_id: UUID,
    body: CardUpdate,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    graph = CardGraph(db)
    await graph.update_card(card_id, body.content, identity)
    response = card_response(await graph.get_card(card_id))
    _publish_card(publisher, "card:updated", response)
    return response


@router.patch("/cards/{card_id}/column", response_model=CardResponse)
async def move_card(
    card_id: UUID,
    body: CardMove,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    graph = CardGraph(db)
    await graph.move_card(card_id, body.column_id, identity)
    response = card_response(await graph.get_card(card_id))
    _publish_card(publisher, "card:moved", response)
    return response


@router.delete("/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(
    card_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    card = await CardGraph(db).delete_card(card_id, identity)
    publisher.publish(BoardId(card.board_id), "card:deleted", {
        "card_id": str(card_id), "parent_card_id": (
            str(card.parent_card_id) if card.parent_card_id else None
        ),
    })


# --- Relationships -----------------------------------------------------------

@router.post("/cards/{card_id}/link", response_model=LinkResponse)
async def link_cards(
    card_id: UUID,
    body: CardLinkRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    graph = CardGraph(db)
    if body.link_type == LinkType.PARENT_OF:
        await graph.set_parent_link(body.target_card_id, card_id, identity)
    else:
        await graph.add_cross_link(card_id, body.target_card_id, identity)
    response = await _link_response(graph, card_id, body)
    publisher.publish(
        BoardId(response.source.board_id), "card:linked",
        response.model_dump(mode="json"),
    )
    return response


@router.delete("/cards/{card_id}/link", response_model=LinkResponse)
async def unlink_cards(
    card_id: UUID,
    body: CardLinkRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
):
    graph = CardGraph(db)
    if body.link_type == LinkType.PARENT_OF:
        await graph.remove_parent_link(
            body.target_card_id, identity, expected_parent_id=card_id,
        )
    else:
        await graph.remove_cross_link(card_id, body.target_card_id, identity)
    response = await _link_response(graph, card_id, body)
    publisher.publish(
        BoardId(response.source.board_id), "card:unlinked",
        response.model_dump(mode="json"),
    )
    return response


async def _link_response(
    graph: CardGraph, card_id: UUID, body: CardLinkRequest,
) -> LinkResponse:
    return LinkResponse(
        source_card_id=card_id,
        target_card_id=body.target_card_id,
        link_type=body.link_type,
        source=card_response(await graph.get_card(card_id)),
        target=card_response(await graph.get_card(body.target_card_id)),
    )
