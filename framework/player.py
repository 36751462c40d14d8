"""Stand-in interface for the scripted opponent in single-player rooms."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AbstractSet, Sequence

YES = "Yes"
NO = "No"


class StandIn(ABC):
    """Base interface for scripted opponents.

    The game engine only orchestrates these calls; the quality of the
    questions, answers and eliminations is entirely up to the policy.
    """

    def __init__(self, stand_in_id: str):
        self.stand_in_id = stand_in_id

    def reset(self, room_id: str, seed: int | None) -> None:
        """Reset internal state before a new session."""

    @abstractmethod
    def propose_question(self, roster: Sequence[str], eliminated: AbstractSet[int]) -> str:
        """Return the next yes/no question to ask the human opponent."""

    @abstractmethod
    def answer(self, secret: str, question: str) -> str:
        """Return "Yes" or "No" for a question about the stand-in's own secret."""

    @abstractmethod
    def choose_eliminations(
        self,
        roster: Sequence[str],
        eliminated: AbstractSet[int],
        last_question: str,
        last_answer: str,
    ) -> set[int]:
        """Return roster indices to newly eliminate after an answered question."""
