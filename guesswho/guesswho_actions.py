"""Action definitions for Guess Who."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from framework.action import Action


class ActionType(str, Enum):
    """Supported action discriminators."""

    ASK = "ask"
    ANSWER = "answer"
    GUESS = "guess"
    ELIMINATE = "eliminate"
    REVIVE = "revive"
    READY = "ready"


@dataclass(frozen=True)
class Ask(Action):
    """Free-text yes/no question for the opponent."""

    question: str
    action_type = ActionType.ASK.value

    def __post_init__(self) -> None:
        if not isinstance(self.question, str):
            raise ValueError("Question must be a string.")


@dataclass(frozen=True)
class Answer(Action):
    """Reply to the opponent's last question."""

    answer: str
    action_type = ActionType.ANSWER.value

    def __post_init__(self) -> None:
        if not isinstance(self.answer, str):
            raise ValueError("Answer must be a string.")


@dataclass(frozen=True)
class GuessCharacter(Action):
    """Attempt to name the opponent's secret character."""

    candidate: str
    action_type = ActionType.GUESS.value

    def __post_init__(self) -> None:
        if not isinstance(self.candidate, str):
            raise ValueError("Guess must be a candidate name.")


@dataclass(frozen=True)
class Eliminate(Action):
    """Mark a roster index as eliminated on the actor's own board."""

    index: int
    action_type = ActionType.ELIMINATE.value

    def __post_init__(self) -> None:
        if isinstance(self.index, bool) or not isinstance(self.index, int):
            raise ValueError("Eliminate index must be an integer.")


@dataclass(frozen=True)
class Revive(Action):
    """Undo an elimination on the actor's own board."""

    index: int
    action_type = ActionType.REVIVE.value

    def __post_init__(self) -> None:
        if isinstance(self.index, bool) or not isinstance(self.index, int):
            raise ValueError("Revive index must be an integer.")


@dataclass(frozen=True)
class Ready(Action):
    """Vote for a rematch."""

    action_type = ActionType.READY.value


_ACTIONS: dict[str, type[Action]] = {
    ActionType.ASK.value: Ask,
    ActionType.ANSWER.value: Answer,
    ActionType.GUESS.value: GuessCharacter,
    ActionType.ELIMINATE.value: Eliminate,
    ActionType.REVIVE.value: Revive,
    ActionType.READY.value: Ready,
}


def action_from_dict(data: Mapping[str, Any]) -> Action:
    """Parse a Guess Who action from a JSON payload."""
    action_type = data.get("type") or data.get("action_type")
    action_cls = _ACTIONS.get(str(action_type))
    if action_cls is None:
        raise ValueError(f"Unknown Guess Who action type: {action_type!r}")
    if action_cls is GuessCharacter and "candidate" not in data and "guess" in data:
        translated = dict(data)
        translated["candidate"] = translated.pop("guess")
        return GuessCharacter.from_dict(translated)
    return action_cls.from_dict(data)
