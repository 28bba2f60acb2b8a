"""Error types raised by the engine and the room store."""

from __future__ import annotations

from typing import Any


class SpeedSantaError(Exception):
    """Base class for every game error surfaced to the host."""


class RoomNotFound(SpeedSantaError):
    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class InsufficientParticipants(SpeedSantaError):
    def __init__(self, count: int, minimum: int) -> None:
        self.count = count
        self.minimum = minimum
        super().__init__(f"Need at least {minimum} participants to start, got {count}")


class AssignmentNotFound(SpeedSantaError):
    def __init__(self, gifter: str, recipient: str) -> None:
        self.gifter = gifter
        self.recipient = recipient
        super().__init__(f"No active assignment {gifter} -> {recipient}")


class InvalidAmount(SpeedSantaError):
    def __init__(self, amount: Any) -> None:
        self.amount = amount
        super().__init__(f"Gift amount must be a positive integer, got {amount!r}")


class BudgetExceeded(SpeedSantaError):
    """Raised when a gift would overspend the gifter or overfill the recipient."""

    def __init__(self, username: str, current: int, amount: int, budget: int, role: str = "recipient") -> None:
        self.username = username
        self.current = current
        self.amount = amount
        self.budget = budget
        self.role = role
        verb = "spend" if role == "gifter" else "receive"
        super().__init__(
            f"Gift of {amount} would make {username} {verb} {current + amount}, over the budget of {budget}"
        )


class InvalidUsername(SpeedSantaError):
    def __init__(self, username: Any) -> None:
        self.username = username
        super().__init__(f"Invalid username {username!r}")


class GameAlreadyStarted(SpeedSantaError):
    pass


class GameFinished(SpeedSantaError):
    """Raised when a settlement arrives after the gifts were revealed."""


class UnknownAction(SpeedSantaError):
    def __init__(self, action_type: str) -> None:
        self.action_type = action_type
        super().__init__(f"Unknown room action {action_type!r}")


class VersionConflict(SpeedSantaError):
    def __init__(self, room_id: str, expected: int, actual: int | None) -> None:
        self.room_id = room_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"Room {room_id} moved from version {expected} to {actual}")
