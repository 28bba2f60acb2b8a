"""FastAPI endpoints for room creation, game actions and websocket sync."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from fastapi import Depends, FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import BackendSettings, load_settings
from .errors import (
    AssignmentNotFound,
    BudgetExceeded,
    GameAlreadyStarted,
    GameFinished,
    InsufficientParticipants,
    InvalidAmount,
    InvalidUsername,
    RoomNotFound,
    SpeedSantaError,
    UnknownAction,
    VersionConflict,
)
from .reveal import visible_gifts
from .store import RoomStore, create_store

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[SpeedSantaError], int] = {
    RoomNotFound: 404,
    InsufficientParticipants: 422,
    InvalidAmount: 422,
    InvalidUsername: 422,
    BudgetExceeded: 422,
    UnknownAction: 422,
    AssignmentNotFound: 409,
    GameAlreadyStarted: 409,
    GameFinished: 409,
    VersionConflict: 409,
}


class CreateRoomRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    username: str = Field(min_length=1, max_length=100)
    budget: int = Field(gt=0)


class CreateRoomResponse(BaseModel):
    room_id: str
    state: dict[str, Any]


class RoomStateResponse(BaseModel):
    state: dict[str, Any]


class JoinRequest(BaseModel):
    username: str = Field(min_length=1, max_length=100)


class GiftRequest(BaseModel):
    gifter: str = Field(min_length=1)
    recipient: str = Field(min_length=1)
    description: str = Field(default="", max_length=1000)
    amount: int


def view_for(state: dict[str, Any], username: str | None) -> dict[str, Any]:
    """Room state as ``username`` may see it; hidden descriptions are withheld."""
    view = dict(state)
    view["gifts"] = visible_gifts(state, viewer=username)
    view.pop("log", None)
    return view


class RoomWebSocketHub:
    def __init__(self) -> None:
        self._connections: dict[str, dict[WebSocket, str | None]] = defaultdict(dict)

    async def connect(self, room_id: str, websocket: WebSocket, username: str | None) -> None:
        await websocket.accept()
        self._connections[room_id][websocket] = username

    def disconnect(self, room_id: str, websocket: WebSocket) -> None:
        connections = self._connections.get(room_id)
        if connections is None:
            return
        connections.pop(websocket, None)
        if not connections:
            self._connections.pop(room_id, None)

    async def send_state(self, websocket: WebSocket, state: dict[str, Any], username: str | None) -> None:
        await websocket.send_json({"type": "state.full", "state": view_for(state, username)})

    async def broadcast_state(self, room_id: str, state: dict[str, Any]) -> None:
        stale_connections: list[WebSocket] = []
        for websocket, username in list(self._connections.get(room_id, {}).items()):
            try:
                await self.send_state(websocket, state, username)
            except RuntimeError:
                stale_connections.append(websocket)
        for websocket in stale_connections:
            self.disconnect(room_id=room_id, websocket=websocket)


def create_app(store: RoomStore | None = None, settings: BackendSettings | None = None) -> FastAPI:
    app = FastAPI(title="SpeedSanta API", version="0.1.0")
    app_settings = settings if settings is not None else load_settings()
    room_store = store if store is not None else create_store(settings=app_settings)
    websocket_hub = RoomWebSocketHub()
    app.state.websocket_hub = websocket_hub

    async def publish_state(room_id: str, state: dict[str, Any]) -> None:
        await websocket_hub.broadcast_state(room_id=room_id, state=state)

    app.state.publish_state = publish_state

    def get_store() -> RoomStore:
        return room_store

    @app.exception_handler(SpeedSantaError)
    async def speedsanta_error_handler(request: Request, exc: SpeedSantaError) -> JSONResponse:
        status_code = ERROR_STATUS.get(type(exc), 400)
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    @app.post("/api/rooms", response_model=CreateRoomResponse)
    def create_room(
        payload: CreateRoomRequest,
        local_store: RoomStore = Depends(get_store),
    ) -> CreateRoomResponse:
        created = local_store.create_room(name=payload.name, budget=payload.budget, created_by=payload.username)
        return CreateRoomResponse(room_id=created.room_id, state=view_for(created.state, created.state["createdBy"]))

    @app.get("/api/rooms/{room_id}", response_model=RoomStateResponse)
    def get_room(
        room_id: str,
        username: str | None = Query(default=None),
        local_store: RoomStore = Depends(get_store),
    ) -> RoomStateResponse:
        record = local_store.get_room(room_id)
        return RoomStateResponse(state=view_for(record.state, username))

    @app.post("/api/rooms/{room_id}/participants", response_model=RoomStateResponse)
    async def join_room(
        room_id: str,
        payload: JoinRequest,
        local_store: RoomStore = Depends(get_store),
    ) -> RoomStateResponse:
        state = local_store.apply_action(room_id=room_id, action={"type": "JOIN", "username": payload.username})
        await publish_state(room_id=room_id, state=state)
        return RoomStateResponse(state=view_for(state, payload.username))

    @app.post("/api/rooms/{room_id}/start", response_model=RoomStateResponse)
    async def start_room(
        room_id: str,
        username: str | None = Query(default=None),
        local_store: RoomStore = Depends(get_store),
    ) -> RoomStateResponse:
        state = local_store.apply_action(room_id=room_id, action={"type": "START_GAME"})
        await publish_state(room_id=room_id, state=state)
        return RoomStateResponse(state=view_for(state, username))

    @app.post("/api/rooms/{room_id}/gifts", response_model=RoomStateResponse)
    async def post_gift(
        room_id: str,
        payload: GiftRequest,
        local_store: RoomStore = Depends(get_store),
    ) -> RoomStateResponse:
        state = local_store.apply_action(
            room_id=room_id,
            action={
                "type": "SETTLE_GIFT",
                "gifter": payload.gifter,
                "recipient": payload.recipient,
                "description": payload.description,
                "amount": payload.amount,
            },
        )
        await publish_state(room_id=room_id, state=state)
        return RoomStateResponse(state=view_for(state, payload.gifter))

    @app.websocket("/ws/rooms/{room_id}")
    async def room_ws(
        websocket: WebSocket,
        room_id: str,
        local_store: RoomStore = Depends(get_store),
    ) -> None:
        username = websocket.query_params.get("username") or None
        try:
            record = local_store.get_room(room_id)
        except RoomNotFound:
            await websocket.close(code=1008)
            return

        await websocket_hub.connect(room_id=room_id, websocket=websocket, username=username)
        await websocket_hub.send_state(websocket=websocket, state=record.state, username=username)

        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            websocket_hub.disconnect(room_id=room_id, websocket=websocket)

    return app


app = create_app()


def main() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    settings = load_settings()
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
