"""FastAPI server exposing Guess Who rooms over HTTP and websockets."""

from __future__ import annotations

import json
import logging
from typing import Any, cast

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from framework.errors import (
    DuplicateSecretExhaustedError,
    GameError,
    InvalidCandidateIndexError,
    InvalidParticipantIdError,
    InvalidRoomIdError,
    OpponentMissingError,
    OutOfTurnError,
    RoomFullError,
    RosterUnavailableError,
    SessionClosedError,
    StandInError,
)
from framework.events import Audience
from framework.serialize import json_dumps
from guesswho.roster import DEFAULT_VARIANT
from server.hub import RoomHub
from server.schemas import ActionRequest, JoinRequest, action_payload_adapter
from server.session import SessionRegistry
from server.settings import Settings

logger = logging.getLogger(__name__)

settings = Settings.from_env()
app = FastAPI(title="Guess Who Game API", version="0.1.0")
registry = SessionRegistry.from_settings(settings)
hub = RoomHub()

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_BY_ERROR: tuple[tuple[type[GameError], int], ...] = (
    (InvalidRoomIdError, 400),
    (InvalidParticipantIdError, 400),
    (InvalidCandidateIndexError, 400),
    (RoomFullError, 409),
    (OutOfTurnError, 409),
    (OpponentMissingError, 409),
    (DuplicateSecretExhaustedError, 409),
    (SessionClosedError, 410),
    (StandInError, 502),
    (RosterUnavailableError, 503),
)


def _status_for(exc: GameError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _error_payload(exc: Exception) -> dict[str, Any]:
    if isinstance(exc, GameError):
        return exc.to_dict()
    return {"type": exc.__class__.__name__, "message": str(exc)}


@app.get("/api/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""
    return {"status": "ok"}


@app.post("/api/room/{room_id}/join")
def join_room(room_id: str, request: JoinRequest) -> dict:
    """Join a room, creating its session on first join."""
    try:
        session, outcome = registry.obtain_session(room_id, request.participant_id, request.variant, request.mode)
    except GameError as exc:
        logger.warning("Join rejected room=%s participant=%s: %s", room_id, request.participant_id, exc)
        raise HTTPException(status_code=_status_for(exc), detail=exc.to_dict()) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {
        "room_id": room_id,
        "participant_id": request.participant_id,
        "state": session.view(request.participant_id),
        "broadcasts": [broadcast.to_dict() for broadcast in outcome.for_audience(Audience.SELF, Audience.ROOM)],
    }


@app.get("/api/room/{room_id}/state")
def get_state(room_id: str, participant_id: str = Query(...)) -> dict:
    """Return one participant's view of a live room."""
    try:
        session = registry.get(room_id)
        return session.view(participant_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown room_id: {room_id}") from exc
    except GameError as exc:
        raise HTTPException(status_code=_status_for(exc), detail=exc.to_dict()) from exc


@app.post("/api/room/{room_id}/action")
def submit_action(room_id: str, request: ActionRequest) -> dict:
    """Apply one gameplay action and return what the caller should see."""
    try:
        session = registry.get(room_id)
        action = registry.game.parse_action(request.action.model_dump())
        outcome = registry.dispatch(room_id, request.participant_id, action)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown room_id: {room_id}") from exc
    except GameError as exc:
        raise HTTPException(status_code=_status_for(exc), detail=exc.to_dict()) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {
        "room_id": room_id,
        "participant_id": request.participant_id,
        "outcome": outcome.to_dict(),
        "state": session.view(request.participant_id),
    }


@app.get("/api/room/{room_id}/events", response_model=None)
def get_events(room_id: str, format: str = Query(default="array")) -> Any:
    """Return the room's event history as array (default) or JSONL text."""
    try:
        events = registry.events(room_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown room_id: {room_id}") from exc

    if format == "jsonl":
        text = "\n".join(json_dumps(event) for event in events)
        return PlainTextResponse(content=text, media_type="application/jsonl")
    return events


@app.websocket("/ws/rooms/{room_id}")
async def room_socket(
    websocket: WebSocket,
    room_id: str,
    participant_id: str | None = None,
    variant: str = DEFAULT_VARIANT,
    mode: str = "multi-participant",
) -> None:
    """Realtime transport: join on connect, then one JSON action per message."""
    await websocket.accept()
    try:
        _, outcome = await run_in_threadpool(registry.obtain_session, room_id, participant_id, variant, mode)
    except (GameError, ValueError) as exc:
        logger.warning("Join rejected room=%s participant=%s: %s", room_id, participant_id, exc)
        await websocket.send_json({"event": "error", "payload": _error_payload(exc)})
        await websocket.close()
        return

    # obtain_session rejects a missing participant_id, so it is a str from here on.
    participant_id = cast(str, participant_id)
    await hub.connect(room_id, participant_id, websocket)
    logger.info("Client connected room=%s participant=%s", room_id, participant_id)
    try:
        await hub.publish(room_id, participant_id, outcome)
        await hub.broadcast_player_count(room_id)
        while True:
            raw = await websocket.receive_text()
            try:
                payload = action_payload_adapter.validate_python(json.loads(raw))
                action = registry.game.parse_action(payload.model_dump())
                outcome = await run_in_threadpool(registry.dispatch, room_id, participant_id, action)
            except KeyError:
                await websocket.send_json(
                    {"event": "error", "payload": {"type": "UnknownRoom", "message": f"Unknown room_id: {room_id}"}}
                )
                continue
            except (GameError, ValidationError, ValueError) as exc:
                await websocket.send_json({"event": "error", "payload": _error_payload(exc)})
                continue
            await hub.publish(room_id, participant_id, outcome, delay_sec=settings.stand_in_delay_sec)
    except WebSocketDisconnect:
        logger.info("Client disconnected room=%s participant=%s", room_id, participant_id)
    finally:
        await hub.disconnect(room_id, websocket)
        await hub.broadcast_player_count(room_id)


def run() -> None:
    """Console entry point."""
    import uvicorn

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("server.main:app", host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
