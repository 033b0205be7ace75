"""Seed Plan — pure generation of a test-data batch for one board.

Invariants:
    - All functions are PURE apart from the injected rng and id factory
    - Every row the plan yields already satisfies the card graph invariants:
      depth-1 parent forest, reaction uniqueness per (card, user, type),
      counts equal to what single-item operations would have produced
    - Reactions are drawn as random (user, card) pairs and repeated draws are
      dropped, so fewer reactions than requested may be planned. The count
      is reproducible only when the rng is seeded (SEED_RANDOM_SEED)
    - Cross-links always join an action card to a feedback card and never
      duplicate a parent pair

Design Decisions:
    - The plan is computed fully in memory and handed to the shell as rows for
      bulk insert; nothing is written until the whole plan exists
    - Parent/child groups of three: first card of every complete triple is
      the parent of the next two
    - Cross-links: min(2 * actions, feedback) pairs, action i % A linked to
      feedback i % F, stored in canonical (a < b) order
"""

import hashlib
import random
import uuid
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from retroboard.core.card_graph import (
    CardNode,
    aggregate_count,
    is_parent_pair,
    link_pair,
    validate_cross_link,
    validate_forest,
)
from retroboard.core.domain_types import (
    BoardId, CardId, CardType, DEFAULT_REACTION_TYPE,
)

ADJECTIVES = [
    "Happy", "Quick", "Clever", "Brave", "Calm",
    "Eager", "Gentle", "Jolly", "Kind", "Lively",
]
NOUNS = [
    "Penguin", "Tiger", "Eagle", "Dolphin", "Fox",
    "Panda", "Owl", "Wolf", "Bear", "Hawk",
]
FEEDBACK_TEMPLATES = [
    "We should improve how we handle deployments",
    "Great job on the sprint delivery this week",
    "Consider trying pair programming more often",
    "I noticed that our standups are running long",
    "What if we add more automated tests?",
    "The team collaboration has been excellent",
    "We need better documentation for new features",
    "The code review process is working well",
    "Could we have more async communication?",
    "Our retrospectives are very valuable",
]
ACTION_TEMPLATES = [
    "Action: Schedule a meeting to discuss this",
    "Action: Create a wiki page for documentation",
    "Action: Set up automated testing pipeline",
    "Action: Review and update deployment process",
    "Action: Implement new communication guidelines",
]
GROUP_SIZE = 3


@dataclass
class SeedRequest:
    num_users: int
    num_cards: int
    num_action_cards: int = 0
    num_reactions: int = 0
    create_relationships: bool = False


@dataclass
class SeedPlan:
    sessions: list[dict] = field(default_factory=list)
    cards: list[dict] = field(default_factory=list)
    parent_links: list[dict] = field(default_factory=list)  # {"id", "parent_card_id"}
    cross_links: list[dict] = field(default_factory=list)
    reactions: list[dict] = field(default_factory=list)
    user_aliases: list[str] = field(default_factory=list)

    @property
    def relationships_created(self) -> int:
        return len({link["parent_card_id"] for link in self.parent_links})

    @property
    def links_created(self) -> int:
        return len(self.cross_links)

    @property
    def action_cards_created(self) -> int:
        return sum(1 for c in self.cards if c["card_type"] == CardType.ACTION.value)


def seed_alias(index: int) -> str:
    return f"{ADJECTIVES[index % len(ADJECTIVES)]}{NOUNS[index % len(NOUNS)]}{index + 1}"


def seed_user_hash(index: int) -> str:
    """Stable pseudonymous hash for seeded user #index."""
    return hashlib.sha256(f"test-user-{index}-seed-data".encode()).hexdigest()


def build_seed_plan(
    board_id: BoardId,
    column_ids: Sequence[str],
    request: SeedRequest,
    now: datetime,
    rng: random.Random | None = None,
    existing_user_hashes: frozenset[str] = frozenset(),
    new_id: Callable[[], uuid.UUID] = uuid.uuid4,
) -> SeedPlan:
    if not column_ids:
        raise ValueError("board has no columns")
    if request.num_action_cards > request.num_cards:
        raise ValueError("num_action_cards cannot exceed num_cards")
    if request.num_users < 1:
        raise ValueError("num_users must be at least 1")
    rng = rng or random.Random()
    plan = SeedPlan()

    users = [(seed_user_hash(i), seed_alias(i)) for i in range(request.num_users)]
    plan.user_aliases = [alias for _, alias in users]
    plan.sessions = [
        {
            "id": new_id(), "board_id": board_id, "user_hash": user_hash,
            "alias": alias, "joined_at": now, "last_active_at": now,
        }
        for user_hash, alias in users
        if user_hash not in existing_user_hashes
    ]

    first_action = request.num_cards - request.num_action_cards
    for i in range(request.num_cards):
        user_hash, alias = users[i % len(users)]
        is_action = i >= first_action
        is_anonymous = i % 5 == 0
        templates = ACTION_TEMPLATES if is_action else FEEDBACK_TEMPLATES
        plan.cards.append({
            "id": CardId(new_id()),
            "board_id": board_id,
            "column_id": column_ids[i % len(column_ids)],
            "content": templates[i % len(templates)],
            "card_type": (CardType.ACTION if is_action else CardType.FEEDBACK).value,
            "is_anonymous": is_anonymous,
            "created_by_hash": user_hash,
            "created_by_alias": None if is_anonymous else alias,
            "created_at": now,
            "direct_reaction_count": 0,
            "aggregated_reaction_count": 0,
        })

    if request.create_relationships:
        plan.parent_links = _plan_parent_links(plan.cards)
        plan.cross_links = _plan_cross_links(plan.cards, plan.parent_links, now, new_id)

    if plan.cards:
        plan.reactions = _plan_reactions(plan, users, request.num_reactions, rng, now, new_id)

    _apply_counts(plan)
    return plan


def _plan_parent_links(cards: list[dict]) -> list[dict]:
    links = []
    for start in range(0, len(cards) - GROUP_SIZE + 1, GROUP_SIZE):
        parent_id = cards[start]["id"]
        for child in cards[start + 1:start + GROUP_SIZE]:
            links.append({"id": child["id"], "parent_card_id": parent_id})
    parent_map = {c["id"]: None for c in cards}
    parent_map.update({link["id"]: link["parent_card_id"] for link in links})
    validate_forest(parent_map)
    return links


def _plan_cross_links(
    cards: list[dict], parent_links: list[dict], now: datetime,
    new_id: Callable[[], uuid.UUID],
) -> list[dict]:
    parents = {link["id"]: link["parent_card_id"] for link in parent_links}
    nodes = [
        CardNode(
            id=c["id"], board_id=c["board_id"], parent_card_id=parents.get(c["id"]),
            card_type=CardType(c["card_type"]),
        )
        for c in cards
    ]
    actions = [n for n in nodes if n.card_type == CardType.ACTION]
    feedback = [n for n in nodes if n.card_type == CardType.FEEDBACK]
    if not actions or not feedback:
        return []

    links = []
    seen: set[tuple[CardId, CardId]] = set()
    for i in range(min(len(actions) * 2, len(feedback))):
        action, target = actions[i % len(actions)], feedback[i % len(feedback)]
        pair = link_pair(action.id, target.id)
        if pair in seen or is_parent_pair(action, target):
            continue
        validate_cross_link(action, target)
        seen.add(pair)
        links.append({
            "id": new_id(), "board_id": action.board_id,
            "card_a_id": pair[0], "card_b_id": pair[1], "created_at": now,
        })
    return links


def _plan_reactions(
    plan: SeedPlan, users: list[tuple[str, str]], requested: int,
    rng: random.Random, now: datetime, new_id: Callable[[], uuid.UUID],
) -> list[dict]:
    seen: set[tuple[int, int]] = set()
    reactions = []
    for _ in range(requested):
        pair = (rng.randrange(len(users)), rng.randrange(len(plan.cards)))
        if pair in seen:
            continue
        seen.add(pair)
        user_hash, alias = users[pair[0]]
        card = plan.cards[pair[1]]
        reactions.append({
            "id": new_id(),
            "board_id": card["board_id"],
            "card_id": card["id"],
            "user_hash": user_hash,
            "user_alias": alias,
            "reaction_type": DEFAULT_REACTION_TYPE,
            "created_at": now,
        })
    return reactions


def _apply_counts(plan: SeedPlan) -> None:
    """Fill direct and aggregated counts from the planned reactions and links."""
    direct = Counter(r["card_id"] for r in plan.reactions)
    children: dict[CardId, list[CardId]] = {}
    for link in plan.parent_links:
        children.setdefault(link["parent_card_id"], []).append(link["id"])
    for card in plan.cards:
        card["direct_reaction_count"] = direct[card["id"]]
        card["aggregated_reaction_count"] = aggregate_count(
            direct[card["id"]],
            (direct[child] for child in children.get(card["id"], [])),
        )
