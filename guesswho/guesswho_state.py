"""State and enums for Guess Who rooms."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from framework.player import StandIn
from framework.serialize import to_serializable

STAND_IN_ID = "stand-in"
DEFAULT_ROSTER_SIZE = 24
MAX_PRINCIPALS = 2


class Phase(str, Enum):
    """Turn phases."""

    ASKING = "ASKING"
    AWAITING_ANSWER = "AWAITING_ANSWER"
    GAME_OVER = "GAME_OVER"


class SessionMode(str, Enum):
    """Who the opponent is."""

    MULTI_PARTICIPANT = "multi-participant"
    STAND_IN_AUGMENTED = "stand-in-augmented"


@dataclass(frozen=True)
class Message:
    """One line of the room dialogue."""

    text: str
    speaker_id: str


@dataclass
class GameSession:
    """Mutable state of one room."""

    room_id: str
    variant: str
    mode: SessionMode
    roster: tuple[str, ...]
    secrets: dict[str, str] = field(default_factory=dict)
    eliminated: dict[str, set[int]] = field(default_factory=dict)
    dialogue: list[Message] = field(default_factory=list)
    turn_holder: str | None = None
    phase: Phase = Phase.ASKING
    winner: str | None = None
    ready_votes: set[str] = field(default_factory=set)
    stand_in: StandIn | None = field(default=None, repr=False, compare=False)
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    @property
    def participants(self) -> list[str]:
        """Participants in join order (dicts keep insertion order)."""
        return list(self.secrets)

    @property
    def human_participants(self) -> list[str]:
        return [participant_id for participant_id in self.secrets if participant_id != STAND_IN_ID]

    @property
    def has_stand_in(self) -> bool:
        return self.stand_in is not None and STAND_IN_ID in self.secrets

    @property
    def is_terminal(self) -> bool:
        return self.winner is not None

    def opponent_of(self, participant_id: str) -> str | None:
        """Return the other participant holding a secret, if any."""
        for other in self.secrets:
            if other != participant_id:
                return other
        return None

    def last_message_from(self, speaker_id: str) -> Message | None:
        for message in reversed(self.dialogue):
            if message.speaker_id == speaker_id:
                return message
        return None

    def to_dict(self) -> dict[str, Any]:
        """Return the full (unredacted) state for logs and debugging."""
        return {
            "room_id": self.room_id,
            "variant": self.variant,
            "mode": self.mode.value,
            "roster": list(self.roster),
            "secrets": dict(self.secrets),
            "eliminated": to_serializable(self.eliminated),
            "dialogue": to_serializable(self.dialogue),
            "turn_holder": self.turn_holder,
            "phase": self.phase.value,
            "winner": self.winner,
            "ready_votes": to_serializable(self.ready_votes),
        }
