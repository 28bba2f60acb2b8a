"""Gifter/recipient matching for the next round."""

from __future__ import annotations

import random
from typing import Any, Iterable


def eligible_recipients(
    participants: list[dict[str, Any]],
    budget: int,
    active_assignments: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Participants still under budget who are not already someone's recipient."""
    taken = {assignment["recipient"] for assignment in active_assignments}
    return [p for p in participants if p["received"] < budget and p["username"] not in taken]


def candidate_gifters(
    participants: list[dict[str, Any]],
    active_assignments: list[dict[str, Any]],
    excluded_gifters: Iterable[str] = (),
    budget: int | None = None,
) -> list[dict[str, Any]]:
    """Participants who may become gifters, first-timers only while any remain.

    With a ``budget``, anyone who has already spent all of it is left out.
    """
    blocked = set(excluded_gifters)
    blocked.update(assignment["gifter"] for assignment in active_assignments)
    available = [p for p in participants if not p.get("isGifter") and p["username"] not in blocked]
    if budget is not None:
        available = [p for p in available if p["spent"] < budget]

    first_timers = [p for p in available if p["spent"] == 0]
    if first_timers:
        return first_timers
    return available


def max_gifters(participant_count: int) -> int:
    return participant_count // 2


def compute_assignments(
    participants: list[dict[str, Any]],
    budget: int,
    active_assignments: list[dict[str, Any]],
    excluded_gifters: Iterable[str] = (),
    rng: random.Random | None = None,
) -> list[dict[str, str]]:
    """Return the new assignments to merge into ``active_assignments``.

    Existing assignments are left alone and never duplicated: their gifters
    cannot be picked again and their recipients are not offered a second
    gifter. At most ``len(participants) // 2`` assignments are active after
    merging. A gifter whose only remaining recipients are itself is skipped
    and gets another chance on the next call.
    """
    capacity = max_gifters(len(participants)) - len(active_assignments)
    if capacity <= 0:
        return []

    recipients = eligible_recipients(participants, budget, active_assignments)
    gifters = candidate_gifters(participants, active_assignments, excluded_gifters, budget=budget)
    if not recipients or not gifters:
        return []

    rng = rng if rng is not None else random.Random()
    shuffled_recipients = [p["username"] for p in recipients]
    shuffled_gifters = [p["username"] for p in gifters]
    rng.shuffle(shuffled_recipients)
    rng.shuffle(shuffled_gifters)

    assignments: list[dict[str, str]] = []
    used: set[str] = set()
    for gifter in shuffled_gifters:
        recipient = next((r for r in shuffled_recipients if r != gifter and r not in used), None)
        if recipient is None:
            continue
        assignments.append({"gifter": gifter, "recipient": recipient})
        used.add(recipient)
        if len(assignments) >= capacity:
            break
    return assignments
