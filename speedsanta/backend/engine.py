"""Reducer for room actions: joining, starting the game and settling gifts."""

from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass
from typing import Any

from .config import BUDGET_POLICIES, BackendSettings
from .errors import (
    AssignmentNotFound,
    BudgetExceeded,
    GameAlreadyStarted,
    GameFinished,
    InsufficientParticipants,
    InvalidAmount,
    UnknownAction,
)
from .identifiers import generate_gift_id
from .matching import compute_assignments
from .reveal import reveal_gifts, should_reveal
from .state import build_participant, clean_username, find_participant

logger = logging.getLogger(__name__)

DEFAULT_MIN_PARTICIPANTS = 3


@dataclass(frozen=True)
class ActionResult:
    state: dict[str, Any]
    engine_events: list[dict[str, Any]]


def apply_room_action(
    state: dict[str, Any],
    action: dict[str, Any],
    rng: random.Random | None = None,
    settings: BackendSettings | None = None,
) -> ActionResult:
    """Dispatch a room action to the matching transition."""
    action_type = str(action.get("type", "")).upper()
    if action_type == "JOIN":
        return add_participant(state=state, username=action.get("username"))
    if action_type == "START_GAME":
        min_participants = settings.min_participants if settings is not None else DEFAULT_MIN_PARTICIPANTS
        return start_game(state=state, rng=rng, min_participants=min_participants)
    if action_type == "SETTLE_GIFT":
        return settle_gift(
            state=state,
            gifter=str(action.get("gifter", "")),
            recipient=str(action.get("recipient", "")),
            amount=action.get("amount"),
            description=str(action.get("description", "")),
            rng=rng,
            budget_policy=settings.budget_policy if settings is not None else "lenient",
        )
    raise UnknownAction(action_type)


def add_participant(state: dict[str, Any], username: Any) -> ActionResult:
    username = clean_username(username)

    # Rejoining under a known name is a no-op.
    if find_participant(state, username) is not None:
        return ActionResult(state=state, engine_events=[])
    if state.get("gameStarted"):
        raise GameAlreadyStarted(f"Room {state.get('id')} is no longer accepting participants")

    next_state = dict(state)
    next_state["participants"] = [dict(p) for p in state.get("participants", [])] + [build_participant(username)]
    return ActionResult(
        state=next_state,
        engine_events=[{"kind": "participant_joined", "username": username}],
    )


def start_game(
    state: dict[str, Any],
    rng: random.Random | None = None,
    min_participants: int = DEFAULT_MIN_PARTICIPANTS,
) -> ActionResult:
    """Open the first round: draw initial assignments with no exclusions."""
    if state.get("gameStarted"):
        raise GameAlreadyStarted(f"Room {state.get('id')} has already started")

    participants = [dict(p) for p in state.get("participants", [])]
    if len(participants) < min_participants:
        raise InsufficientParticipants(len(participants), min_participants)

    assignments = compute_assignments(
        participants=participants,
        budget=int(state["budget"]),
        active_assignments=[],
        rng=rng,
    )
    _sync_gifter_flags(participants, assignments)

    next_state = dict(state)
    next_state["gameStarted"] = True
    next_state["participants"] = participants
    next_state["activeAssignments"] = assignments

    logger.info("Started room %s with %d participants", state.get("id"), len(participants))
    events: list[dict[str, Any]] = [{"kind": "game_started", "participantCount": len(participants)}]
    if assignments:
        events.append({"kind": "assignments_created", "assignments": [dict(a) for a in assignments]})
    return ActionResult(state=next_state, engine_events=events)


def settle_gift(
    state: dict[str, Any],
    gifter: str,
    recipient: str,
    amount: Any,
    description: str = "",
    rng: random.Random | None = None,
    now_ms: int | None = None,
    budget_policy: str = "lenient",
) -> ActionResult:
    """Record a completed gift and backfill assignments.

    Nothing in ``state`` is mutated; on any error the caller still holds the
    untouched room.
    """
    if budget_policy not in BUDGET_POLICIES:
        raise ValueError(f"Unknown budget policy {budget_policy!r}")
    amount = _validate_amount(amount)
    if state.get("revealed"):
        raise GameFinished(f"Room {state.get('id')} has already revealed its gifts")

    active = list(state.get("activeAssignments", []))
    if not any(a["gifter"] == gifter and a["recipient"] == recipient for a in active):
        raise AssignmentNotFound(gifter, recipient)

    participants = [dict(p) for p in state.get("participants", [])]
    by_name = {p["username"]: p for p in participants}
    if gifter not in by_name or recipient not in by_name:
        raise AssignmentNotFound(gifter, recipient)

    budget = int(state["budget"])
    spent = int(by_name[gifter]["spent"])
    if spent + amount > budget:
        raise BudgetExceeded(gifter, spent, amount, budget, role="gifter")
    received = int(by_name[recipient]["received"])
    if budget_policy == "strict" and received + amount > budget:
        raise BudgetExceeded(recipient, received, amount, budget)

    by_name[gifter]["spent"] = spent + amount
    by_name[recipient]["received"] = received + amount
    by_name[gifter]["isGifter"] = False
    by_name[gifter]["recipient"] = None

    remaining = [a for a in active if not (a["gifter"] == gifter and a["recipient"] == recipient)]
    backfill = compute_assignments(
        participants=participants,
        budget=budget,
        active_assignments=remaining,
        excluded_gifters=[gifter],
        rng=rng,
    )
    next_assignments = remaining + backfill
    _sync_gifter_flags(participants, next_assignments)

    gifts = list(state.get("gifts", []))
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    gift = {
        "id": generate_gift_id(timestamp, len(gifts) + 1),
        "gifter": gifter,
        "recipient": recipient,
        "description": description,
        "amount": amount,
        "timestamp": timestamp,
        "isHidden": True,
    }
    gifts.append(gift)

    next_state = dict(state)
    next_state["participants"] = participants
    next_state["gifts"] = gifts
    next_state["activeAssignments"] = next_assignments

    logger.info("Settled gift %s in room %s: %s -> %s (%d)", gift["id"], state.get("id"), gifter, recipient, amount)
    events: list[dict[str, Any]] = [
        {
            "kind": "gift_settled",
            "giftId": gift["id"],
            "gifter": gifter,
            "recipient": recipient,
            "amount": amount,
        }
    ]
    if backfill:
        events.append({"kind": "assignments_created", "assignments": [dict(a) for a in backfill]})

    if should_reveal(next_state):
        next_state = reveal_gifts(next_state)
        logger.info("Everyone in room %s reached the budget, revealing %d gifts", state.get("id"), len(gifts))
        events.append({"kind": "gifts_revealed", "giftCount": len(gifts)})

    return ActionResult(state=next_state, engine_events=events)


def _validate_amount(amount: Any) -> int:
    if isinstance(amount, bool):
        raise InvalidAmount(amount)
    if isinstance(amount, float):
        if not math.isfinite(amount) or not amount.is_integer():
            raise InvalidAmount(amount)
        amount = int(amount)
    if not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(amount)
    return amount


def _sync_gifter_flags(participants: list[dict[str, Any]], assignments: list[dict[str, Any]]) -> None:
    recipients = {a["gifter"]: a["recipient"] for a in assignments}
    for participant in participants:
        recipient = recipients.get(participant["username"])
        participant["isGifter"] = recipient is not None
        participant["recipient"] = recipient
