"""In-memory room registry: session creation, joins, action dispatch and rematch teardown."""

from __future__ import annotations

import logging
import random
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from time import time
from typing import Any
from uuid import uuid4

from framework.action import Action
from framework.errors import (
    InvalidParticipantIdError,
    InvalidRoomIdError,
    SessionClosedError,
)
from framework.events import Audience, EventType, Outcome, SessionEvent, write_jsonl
from framework.player import StandIn
from guesswho.guesswho_actions import ActionType
from guesswho.guesswho_game import GuessWhoGame
from guesswho.guesswho_state import DEFAULT_ROSTER_SIZE, STAND_IN_ID, GameSession, SessionMode
from guesswho.roster import DEFAULT_VARIANT, HttpRosterProvider, RosterProvider, StaticRosterProvider, build_roster
from server.settings import Settings
from server.stand_in_factory import create_stand_in

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.:-]{1,64}$")

_EVENT_TYPES: dict[str, EventType] = {
    ActionType.ASK.value: EventType.ASK,
    ActionType.ANSWER.value: EventType.ANSWER,
    ActionType.GUESS.value: EventType.GUESS,
    ActionType.ELIMINATE.value: EventType.ELIMINATE,
    ActionType.REVIVE.value: EventType.REVIVE,
    ActionType.READY.value: EventType.READY,
}


def _validate_room_id(room_id: Any) -> str:
    if not isinstance(room_id, str) or not _ID_PATTERN.match(room_id):
        raise InvalidRoomIdError(room_id)
    return room_id


def _validate_participant_id(participant_id: Any) -> str:
    if not isinstance(participant_id, str) or not _ID_PATTERN.match(participant_id):
        raise InvalidParticipantIdError(participant_id)
    if participant_id == STAND_IN_ID:
        raise InvalidParticipantIdError(participant_id, "reserved for the stand-in")
    return participant_id


def _normalize_mode(mode: SessionMode | str | None) -> SessionMode:
    if mode is None:
        return SessionMode.MULTI_PARTICIPANT
    try:
        return SessionMode(mode)
    except ValueError as exc:
        supported = [item.value for item in SessionMode]
        raise ValueError(f"Unsupported mode {mode!r}. Supported modes: {supported}") from exc


@dataclass
class RoomSession:
    """One live room: game state plus its lock and event log."""

    room_id: str
    game: GuessWhoGame
    state: GameSession
    lock: threading.RLock = field(repr=False)
    events: list[SessionEvent] = field(default_factory=list)
    closed: bool = False
    next_room_id: str | None = None

    def record(self, event_type: EventType, payload: dict[str, Any]) -> None:
        self.events.append(SessionEvent.create(event_type, self.room_id, len(self.events), payload))

    def view(self, participant_id: str) -> dict[str, Any]:
        """Return the participant's view of the live state."""
        with self.lock:
            if participant_id not in self.state.secrets or participant_id == STAND_IN_ID:
                raise InvalidParticipantIdError(participant_id, f"not seated in room {self.room_id}")
            payload = self.game.view(self.state, participant_id)
            payload["closed"] = self.closed
            payload["next_room_id"] = self.next_room_id
            return payload


class SessionRegistry:
    """Maps room ids to exactly one live session.

    Creation and first assignment for a room run under that room's lock;
    the lock table itself is guarded by a registry-wide lock, so
    check-then-insert is atomic and a room is never created twice. Every
    later action for the room is applied under the same lock, in arrival
    order.
    """

    def __init__(
        self,
        *,
        roster_provider: RosterProvider | None = None,
        game: GuessWhoGame | None = None,
        roster_size: int = DEFAULT_ROSTER_SIZE,
        stand_in_factory: Callable[[], StandIn] | None = None,
        seed: int | None = None,
        event_log_dir: str | Path | None = None,
        room_id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.roster_provider = roster_provider or StaticRosterProvider()
        self.game = game or GuessWhoGame()
        self.roster_size = roster_size
        self.stand_in_factory = stand_in_factory or (lambda: create_stand_in("random"))
        self.event_log_dir = Path(event_log_dir) if event_log_dir is not None else None
        self._seed = seed
        self._rng = random.Random(seed)
        self._room_id_factory = room_id_factory or (lambda: str(uuid4()))
        self._sessions: dict[str, RoomSession] = {}
        self._room_locks: dict[str, threading.RLock] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionRegistry":
        provider: RosterProvider
        if settings.roster_url:
            provider = HttpRosterProvider(settings.roster_url, timeout_sec=settings.roster_timeout_sec)
        else:
            provider = StaticRosterProvider()
        return cls(
            roster_provider=provider,
            game=GuessWhoGame(enforce_turns=settings.enforce_turns),
            roster_size=settings.roster_size,
            stand_in_factory=lambda: create_stand_in(settings.stand_in),
            event_log_dir=settings.event_log_dir,
        )

    def __contains__(self, room_id: object) -> bool:
        with self._lock:
            return room_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get(self, room_id: str) -> RoomSession:
        with self._lock:
            if room_id not in self._sessions:
                raise KeyError(room_id)
            return self._sessions[room_id]

    def events(self, room_id: str) -> list[dict[str, Any]]:
        session = self.get(room_id)
        with session.lock:
            return [event.to_dict() for event in session.events]

    def obtain_session(
        self,
        room_id: str,
        participant_id: str,
        variant: str = DEFAULT_VARIANT,
        mode: SessionMode | str | None = SessionMode.MULTI_PARTICIPANT,
    ) -> tuple[RoomSession, Outcome]:
        """Return the room's session, creating it on first join, and seat the participant."""
        _validate_room_id(room_id)
        _validate_participant_id(participant_id)
        session_mode = _normalize_mode(mode)

        while True:
            lock = self._room_lock(room_id)
            with lock:
                with self._lock:
                    if self._room_locks.get(room_id) is not lock:
                        # The room was retired, or its creation failed, while we waited; start over.
                        continue
                    session = self._sessions.get(room_id)

                if session is not None:
                    rejoin = participant_id in session.state.secrets
                    dialogue_before = len(session.state.dialogue)
                    outcome = self.game.join(session.state, participant_id)
                    session.record(EventType.JOIN, {"participant_id": participant_id, "rejoin": rejoin})
                    self._record_stand_in_lines(session, dialogue_before)
                    return session, outcome

                try:
                    session = self._create_session(room_id, variant, session_mode, lock)
                    outcome = self.game.join(session.state, participant_id)
                except Exception:
                    # Nothing was inserted, so the lock entry goes too.
                    self._discard_room_lock(room_id, lock)
                    raise
                session.record(EventType.JOIN, {"participant_id": participant_id, "rejoin": False})
                self._record_stand_in_lines(session, 0)
                with self._lock:
                    self._sessions[room_id] = session
                logger.info(
                    "Game initialized room=%s participant=%s variant=%s mode=%s",
                    room_id,
                    participant_id,
                    variant,
                    session_mode.value,
                )
                return session, outcome

    def dispatch(self, room_id: str, participant_id: str, action: Action) -> Outcome:
        """Apply one action to a live room and retire it once a rematch is agreed."""
        session = self.get(room_id)
        with session.lock:
            if session.closed:
                raise SessionClosedError(f"Room {room_id} has been retired; rematch room is {session.next_room_id}.")

            dialogue_before = len(session.state.dialogue)
            was_terminal = self.game.is_terminal(session.state)
            outcome = self.game.apply(session.state, participant_id, action)
            if was_terminal and not outcome.broadcasts and not outcome.rematch:
                # Moves after a winner is set are no-ops and leave no trace.
                return outcome
            session.record(
                _EVENT_TYPES[action.action_type],
                {"participant_id": participant_id, "action": action.to_dict()},
            )
            self._record_stand_in_lines(session, dialogue_before)

            if self.game.is_terminal(session.state) and not was_terminal:
                session.record(
                    EventType.TERMINAL,
                    {"winner": session.state.winner, "secrets": dict(session.state.secrets)},
                )

            if outcome.rematch:
                outcome.next_room_id = self._retire(session)
                outcome.emit("new-game", outcome.next_room_id, Audience.ROOM)
            return outcome

    def _room_lock(self, room_id: str) -> threading.RLock:
        with self._lock:
            return self._room_locks.setdefault(room_id, threading.RLock())

    def _discard_room_lock(self, room_id: str, lock: threading.RLock) -> None:
        with self._lock:
            if room_id not in self._sessions and self._room_locks.get(room_id) is lock:
                del self._room_locks[room_id]

    def _derive_seed(self) -> int | None:
        if self._seed is None:
            return None
        with self._lock:
            return self._rng.randrange(1, 2**31)

    def _create_session(
        self,
        room_id: str,
        variant: str,
        mode: SessionMode,
        lock: threading.RLock,
    ) -> RoomSession:
        seed = self._derive_seed()
        rng = random.Random(seed)
        roster = build_roster(self.roster_provider, variant, self.roster_size, rng)
        state = self.game.new_session(room_id=room_id, variant=variant, mode=mode, roster=roster, rng=rng)
        if mode is SessionMode.STAND_IN_AUGMENTED:
            self.game.arm_stand_in(state, self.stand_in_factory(), seed=seed)

        session = RoomSession(room_id=room_id, game=self.game, state=state, lock=lock)
        session.record(
            EventType.SESSION_START,
            {"variant": variant, "mode": mode.value, "roster": list(roster), "seed": seed},
        )
        return session

    def _record_stand_in_lines(self, session: RoomSession, start: int) -> None:
        for message in session.state.dialogue[start:]:
            if message.speaker_id == STAND_IN_ID:
                session.record(EventType.STAND_IN, {"text": message.text})

    def _retire(self, session: RoomSession) -> str:
        next_room_id = self._room_id_factory()
        with self._lock:
            if self._sessions.get(session.room_id) is session:
                del self._sessions[session.room_id]
            if self._room_locks.get(session.room_id) is session.lock:
                del self._room_locks[session.room_id]
        session.closed = True
        session.next_room_id = next_room_id
        session.record(EventType.REMATCH, {"next_room_id": next_room_id})
        logger.info("New game created room=%s next_room=%s", session.room_id, next_room_id)

        if self.event_log_dir is not None:
            path = self.event_log_dir / f"{session.room_id}-{int(time() * 1000)}.jsonl"
            write_jsonl(path, session.events)
        return next_room_id
