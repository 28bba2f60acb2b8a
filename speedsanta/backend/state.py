"""State builders for room snapshots."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .errors import InvalidUsername


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def clean_username(username: Any) -> str:
    """Strip surrounding whitespace; blank or non-string names are rejected."""
    if not isinstance(username, str) or username.strip() == "":
        raise InvalidUsername(username)
    return username.strip()


def build_participant(username: str) -> dict[str, Any]:
    """Return a participant that has neither given nor received anything yet."""
    return {
        "username": username,
        "spent": 0,
        "received": 0,
        "isGifter": False,
        "recipient": None,
    }


def build_initial_state(room_id: str, name: str, budget: int, created_by: str) -> dict[str, Any]:
    """Return the initial room state with the creator as its only participant."""
    created_by = clean_username(created_by)
    now = _utc_now_iso()
    return {
        "id": room_id,
        "version": 1,
        "name": name,
        "budget": budget,
        "gameStarted": False,
        "revealed": False,
        "participants": [build_participant(created_by)],
        "gifts": [],
        "activeAssignments": [],
        "createdBy": created_by,
        "log": [],
        "meta": {
            "createdAt": now,
            "updatedAt": now,
        },
    }


def find_participant(state: dict[str, Any], username: str) -> dict[str, Any] | None:
    for participant in state.get("participants", []):
        if participant.get("username") == username:
            return participant
    return None
