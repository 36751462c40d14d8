"""Tests for the room registry: lazy creation, concurrency, capacity and rematch teardown."""

from __future__ import annotations

import threading
import time
from collections.abc import Sequence

import pytest

from framework.errors import (
    InvalidParticipantIdError,
    InvalidRoomIdError,
    RoomFullError,
    RosterUnavailableError,
    SessionClosedError,
)
from framework.events import Audience
from guesswho.guesswho_actions import Ask, Eliminate, GuessCharacter, Ready
from guesswho.guesswho_state import STAND_IN_ID, Phase
from guesswho.roster import StaticRosterProvider
from server.session import SessionRegistry

ROSTER = ("A", "B", "C", "D")


class _CountingProvider:
    """Roster provider that records fetches and can be slowed down."""

    def __init__(self, names: Sequence[str] = ROSTER, delay_sec: float = 0.0):
        self.names = tuple(names)
        self.delay_sec = delay_sec
        self.calls = 0
        self._lock = threading.Lock()

    def fetch(self, variant: str) -> Sequence[str]:
        with self._lock:
            self.calls += 1
        if self.delay_sec:
            time.sleep(self.delay_sec)
        return self.names


def _registry(provider=None, **kwargs) -> SessionRegistry:
    return SessionRegistry(
        roster_provider=provider or _CountingProvider(),
        roster_size=len(ROSTER),
        seed=kwargs.pop("seed", 5),
        **kwargs,
    )


def test_first_join_creates_session_and_fetches_roster_once() -> None:
    provider = _CountingProvider()
    registry = _registry(provider)

    session, _ = registry.obtain_session("r1", "p1")
    again, _ = registry.obtain_session("r1", "p2")

    assert session is again
    assert provider.calls == 1
    assert sorted(session.state.roster) == sorted(ROSTER)
    assert "r1" in registry
    assert len(registry) == 1


def test_rejoin_returns_same_secret() -> None:
    registry = _registry()
    session, _ = registry.obtain_session("r1", "p1")
    secret = session.state.secrets["p1"]
    registry.obtain_session("r1", "p2")

    rejoined, outcome = registry.obtain_session("r1", "p1")

    assert rejoined.state.secrets["p1"] == secret
    assert outcome.for_audience(Audience.SELF)[0].payload["secret"] == secret
    assert len(rejoined.state.secrets) == 2


def test_concurrent_first_joins_produce_one_session() -> None:
    provider = _CountingProvider(delay_sec=0.05)
    registry = _registry(provider)
    barrier = threading.Barrier(8)
    sessions = []
    errors: list[Exception] = []

    def _join(participant_id: str) -> None:
        barrier.wait()
        try:
            session, _ = registry.obtain_session("race", participant_id)
            sessions.append(session)
        except RoomFullError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=_join, args=(f"p{index % 2}",)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert provider.calls == 1
    assert errors == []
    assert len({id(session) for session in sessions}) == 1
    secrets = sessions[0].state.secrets
    assert set(secrets) == {"p0", "p1"}
    assert secrets["p0"] != secrets["p1"]


def test_room_full_rejects_third_participant_without_mutation() -> None:
    registry = _registry()
    session, _ = registry.obtain_session("r1", "p1")
    registry.obtain_session("r1", "p2")
    snapshot = session.state.to_dict()

    with pytest.raises(RoomFullError):
        registry.obtain_session("r1", "p3")
    assert session.state.to_dict() == snapshot


def test_roster_failure_leaves_no_session() -> None:
    registry = _registry(_CountingProvider(names=("A", "B", "A")))

    with pytest.raises(RosterUnavailableError):
        registry.obtain_session("r1", "p1")
    assert "r1" not in registry
    with pytest.raises(KeyError):
        registry.get("r1")


@pytest.mark.parametrize("room_id", ["", "has space", "x" * 65, None, 42])
def test_malformed_room_id_is_rejected(room_id) -> None:
    registry = _registry()

    with pytest.raises(InvalidRoomIdError):
        registry.obtain_session(room_id, "p1")
    assert len(registry) == 0


@pytest.mark.parametrize("participant_id", ["", "bad/id", None, STAND_IN_ID])
def test_malformed_participant_id_is_rejected(participant_id) -> None:
    registry = _registry()

    with pytest.raises(InvalidParticipantIdError):
        registry.obtain_session("r1", participant_id)
    assert len(registry) == 0


def test_unknown_mode_is_rejected() -> None:
    registry = _registry()

    with pytest.raises(ValueError):
        registry.obtain_session("r1", "p1", mode="three-way")


def test_later_join_cannot_change_mode_or_variant() -> None:
    registry = _registry(StaticRosterProvider({"classic": ROSTER, "other": ("E", "F", "G", "H")}))
    registry.obtain_session("r1", "p1", variant="classic")

    session, _ = registry.obtain_session("r1", "p2", variant="other", mode="stand-in-augmented")

    assert session.state.variant == "classic"
    assert session.state.mode.value == "multi-participant"
    assert STAND_IN_ID not in session.state.secrets


def test_both_ready_retires_session_and_issues_new_room() -> None:
    registry = _registry(room_id_factory=lambda: "r2")
    session, _ = registry.obtain_session("r1", "p1")
    registry.obtain_session("r1", "p2")

    waiting = registry.dispatch("r1", "p1", Ready())
    assert not waiting.rematch
    assert "r1" in registry

    done = registry.dispatch("r1", "p2", Ready())

    assert done.rematch
    assert done.next_room_id == "r2"
    assert [(b.event, b.payload) for b in done.for_audience(Audience.ROOM)] == [("new-game", "r2")]
    assert "r1" not in registry
    with pytest.raises(KeyError):
        registry.get("r1")
    assert session.closed


def test_retired_room_id_can_host_a_fresh_session() -> None:
    provider = _CountingProvider()
    registry = _registry(provider)
    old, _ = registry.obtain_session("r1", "p1")
    registry.obtain_session("r1", "p2")
    registry.dispatch("r1", "p1", Ready())
    registry.dispatch("r1", "p2", Ready())

    fresh, _ = registry.obtain_session("r1", "p1")

    assert fresh is not old
    assert provider.calls == 2
    assert fresh.state.ready_votes == set()


def test_dispatch_on_retired_handle_raises_session_closed(monkeypatch) -> None:
    registry = _registry()
    session, _ = registry.obtain_session("r1", "p1")
    registry.obtain_session("r1", "p2")
    registry.dispatch("r1", "p1", Ready())
    registry.dispatch("r1", "p2", Ready())

    # A handler that looked the room up just before retirement still holds the old session.
    monkeypatch.setattr(registry, "get", lambda room_id: session)
    with pytest.raises(SessionClosedError):
        registry.dispatch("r1", "p1", Eliminate(index=0))


def test_dispatch_unknown_room_raises_key_error() -> None:
    registry = _registry()

    with pytest.raises(KeyError):
        registry.dispatch("missing", "p1", Ready())


def test_events_record_actions_and_terminal_result() -> None:
    registry = _registry()
    session, _ = registry.obtain_session("r1", "p1")
    registry.obtain_session("r1", "p2")
    registry.dispatch("r1", "p1", Ask(question="Hat?"))
    registry.dispatch("r1", "p1", GuessCharacter(candidate=session.state.secrets["p2"]))

    events = registry.events("r1")

    assert [event["event_type"] for event in events] == [
        "session_start",
        "join",
        "join",
        "ask",
        "guess",
        "terminal",
    ]
    assert [event["seq"] for event in events] == list(range(len(events)))
    assert events[-1]["payload"]["winner"] == "p1"
    assert session.state.phase is Phase.GAME_OVER


def test_retired_session_writes_event_log(tmp_path) -> None:
    registry = _registry(event_log_dir=tmp_path)
    registry.obtain_session("r1", "p1")
    registry.obtain_session("r1", "p2")
    registry.dispatch("r1", "p1", Ready())
    registry.dispatch("r1", "p2", Ready())

    files = list(tmp_path.glob("r1-*.jsonl"))
    assert len(files) == 1
    lines = files[0].read_text(encoding="utf-8").splitlines()
    assert '"event_type":"rematch"' in lines[-1]


def test_failed_creations_do_not_leave_room_locks_behind() -> None:
    registry = _registry(StaticRosterProvider({"classic": ROSTER}))

    for index in range(20):
        with pytest.raises(RosterUnavailableError):
            registry.obtain_session(f"room-{index}", "p1", variant="nope")

    assert len(registry) == 0
    assert registry._room_locks == {}

    registry.obtain_session("room-0", "p1")
    assert set(registry._room_locks) == {"room-0"}


def test_moves_after_a_winner_are_not_recorded() -> None:
    registry = _registry()
    session, _ = registry.obtain_session("r1", "p1")
    registry.obtain_session("r1", "p2")
    registry.dispatch("r1", "p1", GuessCharacter(candidate=session.state.secrets["p2"]))
    recorded = registry.events("r1")

    registry.dispatch("r1", "p2", Ask(question="Too late?"))
    registry.dispatch("r1", "p2", GuessCharacter(candidate=session.state.secrets["p1"]))
    assert registry.events("r1") == recorded

    registry.dispatch("r1", "p2", Eliminate(index=0))
    assert registry.events("r1")[-1]["event_type"] == "eliminate"
