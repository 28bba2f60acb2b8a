"""Persistence interfaces and implementations for room data."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
import random
import threading
from typing import Any, Protocol
import uuid

from speedsanta.backend.config import BackendSettings
from speedsanta.backend.engine import ActionResult, apply_room_action
from speedsanta.backend.errors import RoomNotFound, VersionConflict
from speedsanta.backend.identifiers import generate_room_id
from speedsanta.backend.models import CreatedRoom, RoomRecord
from speedsanta.backend.state import build_initial_state, clean_username

logger = logging.getLogger(__name__)


class RoomStore(Protocol):
    def create_room(self, name: str, budget: int, created_by: str) -> CreatedRoom:
        """Create a room with its creator as first participant."""

    def get_room(self, room_id: str) -> RoomRecord:
        """Return the current room snapshot or raise RoomNotFound."""

    def apply_action(self, room_id: str, action: dict[str, Any]) -> dict[str, Any]:
        """Run one room action as a read-modify-write transaction and return the new state."""


def _next_state_with_events(
    state: dict[str, Any],
    action: dict[str, Any],
    result: ActionResult,
) -> dict[str, Any]:
    next_state = dict(result.state)
    next_state["version"] = int(state["version"]) + 1
    next_meta = dict(state["meta"])
    next_meta["updatedAt"] = datetime.now(timezone.utc).isoformat()
    next_state["meta"] = next_meta

    # Gift descriptions stay out of the log until the reveal.
    logged_action = {key: value for key, value in action.items() if key != "description"}
    next_log = list(state.get("log", []))
    next_log.append({"kind": "action", "action": logged_action})
    next_log.extend(result.engine_events)
    next_state["log"] = next_log
    return next_state


class _TransactionalStore(ABC):
    """Read-reduce-write loop shared by the store implementations.

    Subclasses provide ``get_room`` and ``_save``; ``_save`` must refuse the
    write with VersionConflict when the stored version is no longer the one
    that was read.
    """

    settings: BackendSettings | None
    rng: random.Random | None

    @abstractmethod
    def get_room(self, room_id: str) -> RoomRecord:
        """Return the current room snapshot or raise RoomNotFound."""

    @abstractmethod
    def _save(self, room_id: str, expected_version: int, state: dict[str, Any]) -> None:
        """Write ``state`` if the stored version still equals ``expected_version``."""

    @property
    def max_retries(self) -> int:
        return self.settings.max_retries if self.settings is not None else 3

    def apply_action(self, room_id: str, action: dict[str, Any]) -> dict[str, Any]:
        attempt = 0
        while True:
            record = self.get_room(room_id)
            result = apply_room_action(state=record.state, action=action, rng=self.rng, settings=self.settings)
            if result.state is record.state:
                return record.state

            next_state = _next_state_with_events(state=record.state, action=action, result=result)
            try:
                self._save(room_id, record.version, next_state)
            except VersionConflict:
                attempt += 1
                if attempt > self.max_retries:
                    raise
                logger.warning("Version conflict on room %s, retrying (%d/%d)", room_id, attempt, self.max_retries)
                continue
            return next_state


@dataclass
class InMemoryRoomStore(_TransactionalStore):
    settings: BackendSettings | None = None
    rng: random.Random | None = None
    _rooms: dict[str, dict[str, Any]] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def create_room(self, name: str, budget: int, created_by: str) -> CreatedRoom:
        created_by = clean_username(created_by)
        with self._lock:
            room_id = generate_room_id()
            while room_id in self._rooms:
                logger.warning("Room id collision detected, regenerating: %s", room_id)
                room_id = generate_room_id()
            state = build_initial_state(room_id=room_id, name=name, budget=budget, created_by=created_by)
            self._rooms[room_id] = state
        logger.info("Created room %s for %s with budget %d", room_id, created_by, budget)
        return CreatedRoom(room_id=room_id, state=state)

    def get_room(self, room_id: str) -> RoomRecord:
        with self._lock:
            state = self._rooms.get(room_id)
        if state is None:
            raise RoomNotFound(room_id)
        return RoomRecord(room_id=room_id, version=int(state["version"]), state=state)

    def _save(self, room_id: str, expected_version: int, state: dict[str, Any]) -> None:
        with self._lock:
            current = self._rooms.get(room_id)
            if current is None:
                raise RoomNotFound(room_id)
            if int(current["version"]) != expected_version:
                raise VersionConflict(room_id, expected_version, int(current["version"]))
            self._rooms[room_id] = state


@dataclass
class PostgresRoomStore(_TransactionalStore):
    database_url: str
    settings: BackendSettings | None = None
    rng: random.Random | None = None

    def _connect(self) -> Any:
        import psycopg

        return psycopg.connect(self.database_url)

    def create_room(self, name: str, budget: int, created_by: str) -> CreatedRoom:
        created_by = clean_username(created_by)
        now = datetime.now(timezone.utc)

        with self._connect() as conn:
            with conn.cursor() as cur:
                room_id = generate_room_id()
                cur.execute("SELECT 1 FROM rooms WHERE id = %s", (room_id,))
                while cur.fetchone() is not None:
                    logger.warning("Room id collision detected, regenerating: %s", room_id)
                    room_id = generate_room_id()
                    cur.execute("SELECT 1 FROM rooms WHERE id = %s", (room_id,))

                state = build_initial_state(room_id=room_id, name=name, budget=budget, created_by=created_by)
                cur.execute(
                    """
                    INSERT INTO rooms (id, name, budget, created_by, current_version, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    """,
                    (room_id, name, budget, created_by, state["version"], now, now),
                )
                cur.execute(
                    """
                    INSERT INTO room_snapshots (id, room_id, version, created_at, state_json)
                    VALUES (%s, %s, %s, %s, %s::jsonb)
                    """,
                    (str(uuid.uuid4()), room_id, state["version"], now, json.dumps(state)),
                )
            conn.commit()

        logger.info("Created room %s for %s with budget %d", room_id, created_by, budget)
        return CreatedRoom(room_id=room_id, state=state)

    def get_room(self, room_id: str) -> RoomRecord:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT r.current_version, s.state_json
                    FROM rooms r
                    JOIN room_snapshots s
                      ON s.room_id = r.id AND s.version = r.current_version
                    WHERE r.id = %s
                    """,
                    (room_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise RoomNotFound(room_id)

        version, state_json = row
        state = state_json if isinstance(state_json, dict) else json.loads(state_json)
        return RoomRecord(room_id=room_id, version=int(version), state=state)

    def _save(self, room_id: str, expected_version: int, state: dict[str, Any]) -> None:
        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE rooms
                    SET current_version = %s, updated_at = %s
                    WHERE id = %s AND current_version = %s
                    """,
                    (state["version"], now, room_id, expected_version),
                )
                if cur.rowcount != 1:
                    conn.rollback()
                    raise VersionConflict(room_id, expected_version, None)
                cur.execute(
                    """
                    INSERT INTO room_snapshots (id, room_id, version, created_at, state_json)
                    VALUES (%s, %s, %s, %s, %s::jsonb)
                    """,
                    (str(uuid.uuid4()), room_id, state["version"], now, json.dumps(state)),
                )
            conn.commit()


def create_store(settings: BackendSettings | None = None, rng: random.Random | None = None) -> RoomStore:
    if settings is not None and settings.database_url:
        return PostgresRoomStore(database_url=settings.database_url, settings=settings, rng=rng)
    return InMemoryRoomStore(settings=settings, rng=rng)
