"""Backend package for SpeedSanta."""

from .config import BackendSettings, load_settings
from .engine import ActionResult, add_participant, apply_room_action, settle_gift, start_game
from .matching import compute_assignments
from .reveal import reveal_gifts, should_reveal, visible_gifts
from .state import build_initial_state, build_participant
from .store import InMemoryRoomStore, PostgresRoomStore, RoomStore, create_store

__all__ = [
    "ActionResult",
    "add_participant",
    "apply_room_action",
    "BackendSettings",
    "build_initial_state",
    "build_participant",
    "compute_assignments",
    "create_store",
    "InMemoryRoomStore",
    "load_settings",
    "PostgresRoomStore",
    "reveal_gifts",
    "RoomStore",
    "settle_gift",
    "should_reveal",
    "start_game",
    "visible_gifts",
]
