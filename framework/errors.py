"""Structured exceptions used across the game server."""

from __future__ import annotations

from typing import Any


class GameError(Exception):
    """Base class for game-level exceptions."""

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {"type": self.__class__.__name__, "message": str(self)}


class InvalidRoomIdError(GameError):
    """Raised when a join request carries a malformed room identifier."""

    def __init__(self, room_id: Any):
        self.room_id = room_id
        super().__init__(f"Invalid room id: {room_id!r}")


class InvalidParticipantIdError(GameError):
    """Raised when a participant identifier is malformed or unknown to the room."""

    def __init__(self, participant_id: Any, reason: str | None = None):
        self.participant_id = participant_id
        self.reason = reason
        message = f"Invalid participant id: {participant_id!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class RoomFullError(GameError):
    """Raised when a new participant tries to join a room at capacity."""

    def __init__(self, room_id: str, capacity: int):
        self.room_id = room_id
        self.capacity = capacity
        super().__init__("This game is full.")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"room_id": self.room_id, "capacity": self.capacity})
        return payload


class RosterUnavailableError(GameError):
    """Raised when the roster cannot be fetched or is too small for a session."""

    def __init__(self, variant: str, message: str):
        self.variant = variant
        super().__init__(f"Roster unavailable for variant '{variant}': {message}")


class DuplicateSecretExhaustedError(GameError):
    """Raised when every roster candidate is already somebody's secret."""


class InvalidCandidateIndexError(GameError):
    """Raised when an elimination targets an index outside the roster."""

    def __init__(self, index: int, roster_size: int):
        self.index = index
        self.roster_size = roster_size
        super().__init__(f"Candidate index {index} is outside 0..{roster_size - 1}.")


class OutOfTurnError(GameError):
    """Raised in strict turn mode when a participant acts out of turn."""

    def __init__(self, participant_id: str, action_type: str, reason: str):
        self.participant_id = participant_id
        self.action_type = action_type
        super().__init__(f"{participant_id} cannot {action_type} now: {reason}")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"participant_id": self.participant_id, "action": self.action_type})
        return payload


class OpponentMissingError(GameError):
    """Raised when an action needs an opponent that has not joined yet."""


class SessionClosedError(GameError):
    """Raised when an action targets a session that was already retired."""


class StandInError(GameError):
    """Raised when a stand-in policy produces an unusable result."""
