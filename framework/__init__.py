"""Framework exports for room games, stand-ins, and event tooling."""

from .action import Action
from .errors import GameError
from .events import Audience, Broadcast, EventType, Outcome, SessionEvent
from .game import Game, ParticipantId
from .player import NO, YES, StandIn

__all__ = [
    "Action",
    "Audience",
    "Broadcast",
    "EventType",
    "Game",
    "GameError",
    "NO",
    "Outcome",
    "ParticipantId",
    "SessionEvent",
    "StandIn",
    "YES",
]
