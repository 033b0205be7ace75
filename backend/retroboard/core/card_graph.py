"""Card Graph Rules — pure relationship invariants for one board's cards.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Parent pointers form a forest of depth <= 1: a card is a root, a parent,
      or a child, never both parent and child
    - No card is its own ancestor; every ancestor walk is bounded by the
      board's card count
    - Parent links and cross-links are mutually exclusive for any pair
    - A cross-link always joins one action card to one feedback card; parent
      links carry no card-type restriction
    - aggregated = own direct count + sum of children's direct counts;
      cross-links never contribute

Design Decisions:
    - Cards are an arena: a flat {card_id: parent_card_id} map built from the
      persisted rows, not nested objects. The shell re-reads it under the
      board lock right before validating
    - Cross-link pairs are stored once, ordered (a < b)
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from retroboard.core.domain_types import BoardId, CardId, CardType
from retroboard.core.errors import (
    ChildCannotBeParentError,
    CircularRelationshipError,
    DomainValidationError,
    ParentCannotBeChildError,
    RelationshipConflictError,
)

ParentMap = Mapping[CardId, CardId | None]


@dataclass(frozen=True)
class CardNode:
    """The slice of a card the graph rules need."""
    id: CardId
    board_id: BoardId
    parent_card_id: CardId | None = None
    card_type: CardType = CardType.FEEDBACK


# --- Traversal ----------------------------------------------------------------

def walk_ancestors(parent_map: ParentMap, start: CardId) -> list[CardId]:
    """Return the parent chain above `start`, nearest first.

    Bounded by len(parent_map) steps; a revisit means the stored data already
    holds a cycle and is reported as CircularRelationshipError.
    """
    chain: list[CardId] = []
    seen = {start}
    current = parent_map.get(start)
    while current is not None:
        if current in seen or len(chain) >= len(parent_map):
            raise CircularRelationshipError(
                "Existing parent chain contains a cycle", start,
            )
        chain.append(current)
        seen.add(current)
        current = parent_map.get(current)
    return chain


def has_children(parent_map: ParentMap, card_id: CardId) -> bool:
    return any(pid == card_id for pid in parent_map.values())


# --- Parent/child validation --------------------------------------------------

def validate_parent_link(
    child: CardNode, parent: CardNode, parent_map: ParentMap,
    cross_linked: bool = False,
) -> None:
    """Check that `parent` may become the parent of `child`.

    Order matters: each violation has its own error code and the first one
    found is reported.
    """
    if child.id == parent.id:
        raise CircularRelationshipError("A card cannot be its own parent", child.id)
    if child.board_id != parent.board_id:
        raise DomainValidationError("Cards must be on the same board")
    if parent_map.get(parent.id) is not None:
        raise ParentCannotBeChildError(parent.id)
    if has_children(parent_map, child.id):
        raise ChildCannotBeParentError(child.id)
    if child.id in walk_ancestors(parent_map, parent.id):
        raise CircularRelationshipError(
            "Cannot create circular parent-child relationship", child.id,
        )
    if cross_linked:
        raise RelationshipConflictError(
            "Cards are cross-linked; remove the link before nesting them",
            child.id,
        )


def is_parent_pair(a: CardNode, b: CardNode) -> bool:
    return a.parent_card_id == b.id or b.parent_card_id == a.id


# --- Cross-link validation ----------------------------------------------------

def link_pair(a: CardId, b: CardId) -> tuple[CardId, CardId]:
    """Canonical storage order for an undirected pair."""
    return (a, b) if a < b else (b, a)


def validate_cross_link(a: CardNode, b: CardNode) -> None:
    """Check that `a` and `b` may be cross-linked, in either direction."""
    if a.id == b.id:
        raise DomainValidationError("A card cannot be linked to itself")
    if a.board_id != b.board_id:
        raise DomainValidationError("Cards must be on the same board")
    if is_parent_pair(a, b):
        raise RelationshipConflictError(
            "Cards are already in a parent-child relationship", a.id,
        )
    if {a.card_type, b.card_type} != {CardType.ACTION, CardType.FEEDBACK}:
        raise DomainValidationError(
            "Cross-links must join an action card to a feedback card",
        )


# --- Aggregation --------------------------------------------------------------

def aggregate_count(direct_count: int, child_direct_counts: Iterable[int]) -> int:
    return direct_count + sum(child_direct_counts)


# --- Whole-board verification -------------------------------------------------

def validate_forest(parent_map: ParentMap) -> None:
    """Verify every parent-chain invariant over a complete board snapshot."""
    for card_id, parent_id in parent_map.items():
        if parent_id is None:
            continue
        if parent_id == card_id:
            raise CircularRelationshipError("A card cannot be its own parent", card_id)
        if parent_id not in parent_map:
            raise DomainValidationError(f"Parent {parent_id} is not on this board")
        walk_ancestors(parent_map, card_id)
        if parent_map[parent_id] is not None:
            raise ParentCannotBeChildError(parent_id)
