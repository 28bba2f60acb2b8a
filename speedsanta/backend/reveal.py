"""One-way reveal of gift descriptions once everyone is at budget."""

from __future__ import annotations

from typing import Any


def should_reveal(state: dict[str, Any]) -> bool:
    """True when the game is running and every participant has received the budget."""
    participants = state.get("participants", [])
    if not state.get("gameStarted") or not participants:
        return False
    budget = int(state["budget"])
    return all(int(p.get("received", 0)) >= budget for p in participants)


def reveal_gifts(state: dict[str, Any]) -> dict[str, Any]:
    next_state = dict(state)
    next_state["gifts"] = [dict(gift, isHidden=False) for gift in state.get("gifts", [])]
    next_state["revealed"] = True
    return next_state


def visible_gifts(state: dict[str, Any], viewer: str | None = None) -> list[dict[str, Any]]:
    """Return the gift ledger as ``viewer`` may see it.

    Hidden gifts keep gifter, recipient and amount so everyone can follow the
    game; only the description is withheld, except from the gifter who wrote it.
    """
    gifts: list[dict[str, Any]] = []
    for gift in state.get("gifts", []):
        if gift.get("isHidden") and gift.get("gifter") != viewer:
            gifts.append(dict(gift, description=None))
        else:
            gifts.append(dict(gift))
    return gifts
