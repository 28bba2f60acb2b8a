"""Records exchanged between the room store and its callers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RoomRecord:
    room_id: str
    version: int
    state: dict[str, Any]


@dataclass(frozen=True)
class CreatedRoom:
    room_id: str
    state: dict[str, Any]
