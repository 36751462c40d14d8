"""Guess Who package exports."""

from .guesswho_actions import ActionType, Answer, Ask, Eliminate, GuessCharacter, Ready, Revive, action_from_dict
from .guesswho_game import GuessWhoGame
from .guesswho_state import DEFAULT_ROSTER_SIZE, STAND_IN_ID, GameSession, Message, Phase, SessionMode
from .roster import (
    CLASSIC_CHARACTERS,
    DEFAULT_VARIANT,
    HttpRosterProvider,
    RosterProvider,
    StaticRosterProvider,
    build_roster,
)

__all__ = [
    "ActionType",
    "Answer",
    "Ask",
    "CLASSIC_CHARACTERS",
    "DEFAULT_ROSTER_SIZE",
    "DEFAULT_VARIANT",
    "Eliminate",
    "GameSession",
    "GuessCharacter",
    "GuessWhoGame",
    "HttpRosterProvider",
    "Message",
    "Phase",
    "Ready",
    "Revive",
    "RosterProvider",
    "STAND_IN_ID",
    "SessionMode",
    "StaticRosterProvider",
    "action_from_dict",
    "build_roster",
]
