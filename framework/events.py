"""Session event log, transport broadcasts, and JSONL utilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from time import time
from typing import Any, Iterable

from .serialize import json_dumps, to_serializable


class EventType(str, Enum):
    """Event types recorded for every accepted action in a room."""

    SESSION_START = "session_start"
    JOIN = "join"
    ASK = "ask"
    ANSWER = "answer"
    GUESS = "guess"
    ELIMINATE = "eliminate"
    REVIVE = "revive"
    READY = "ready"
    STAND_IN = "stand_in"
    TERMINAL = "terminal"
    REMATCH = "rematch"


@dataclass(frozen=True)
class SessionEvent:
    """Single replay event emitted while a session is live."""

    event_type: EventType
    room_id: str
    seq: int
    timestamp_ms: int
    payload: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Return JSON-serializable event data."""
        return {
            "event_type": self.event_type.value,
            "room_id": self.room_id,
            "seq": self.seq,
            "timestamp_ms": self.timestamp_ms,
            "payload": to_serializable(self.payload),
        }

    @classmethod
    def create(cls, event_type: EventType, room_id: str, seq: int, payload: dict[str, Any]) -> "SessionEvent":
        """Construct an event with the current wall-clock timestamp."""
        return cls(
            event_type=event_type,
            room_id=room_id,
            seq=seq,
            timestamp_ms=int(time() * 1000),
            payload=payload,
        )


class Audience(str, Enum):
    """Who receives a broadcast."""

    SELF = "self"
    OTHERS = "others"
    ROOM = "room"


@dataclass(frozen=True)
class Broadcast:
    """One message the transport should deliver after an action."""

    event: str
    payload: Any
    audience: Audience
    delayed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event,
            "payload": to_serializable(self.payload),
            "audience": self.audience.value,
            "delayed": self.delayed,
        }


@dataclass
class Outcome:
    """Result of one action: the broadcasts to fan out plus rematch bookkeeping."""

    broadcasts: list[Broadcast] = field(default_factory=list)
    rematch: bool = False
    next_room_id: str | None = None

    def emit(self, event: str, payload: Any, audience: Audience, *, delayed: bool = False) -> None:
        self.broadcasts.append(Broadcast(event=event, payload=payload, audience=audience, delayed=delayed))

    def for_audience(self, *audiences: Audience) -> list[Broadcast]:
        """Return broadcasts addressed to any of `audiences`, in order."""
        wanted = set(audiences)
        return [broadcast for broadcast in self.broadcasts if broadcast.audience in wanted]

    def to_dict(self) -> dict[str, Any]:
        return {
            "broadcasts": [broadcast.to_dict() for broadcast in self.broadcasts],
            "rematch": self.rematch,
            "next_room_id": self.next_room_id,
        }


def write_jsonl(path: str | Path, events: Iterable[SessionEvent]) -> None:
    """Persist events as JSONL to disk."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as handle:
        for event in events:
            handle.write(json_dumps(event.to_dict()))
            handle.write("\n")
