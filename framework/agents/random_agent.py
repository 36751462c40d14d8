"""Random baseline stand-in."""

from __future__ import annotations

import hashlib
import random
from typing import AbstractSet, Sequence

from ..player import NO, YES, StandIn

DEFAULT_QUESTIONS: tuple[str, ...] = (
    "Are you a fun person?",
    "Do you wear glasses?",
    "Is your character wearing a hat?",
    "Does your character have curly hair?",
    "Is your character smiling?",
    "Does your character have facial hair?",
)


class RandomStandIn(StandIn):
    """Asks from a fixed question bank, answers by coin flip, eliminates at random."""

    def __init__(
        self,
        stand_in_id: str,
        *,
        questions: Sequence[str] = DEFAULT_QUESTIONS,
        eliminations_per_turn: int = 5,
    ):
        super().__init__(stand_in_id=stand_in_id)
        if not questions:
            raise ValueError("RandomStandIn requires at least one question.")
        self.questions = tuple(questions)
        self.eliminations_per_turn = max(0, int(eliminations_per_turn))
        self._rng = random.Random()

    def reset(self, room_id: str, seed: int | None) -> None:
        """Reset deterministic RNG state per room when a seed is provided."""
        if seed is None:
            self._rng.seed()
            return
        material = f"{seed}:{room_id}:{self.stand_in_id}".encode("utf-8")
        derived_seed = int.from_bytes(hashlib.sha256(material).digest()[:8], byteorder="big", signed=False)
        self._rng.seed(derived_seed)

    def propose_question(self, roster: Sequence[str], eliminated: AbstractSet[int]) -> str:
        return self._rng.choice(self.questions)

    def answer(self, secret: str, question: str) -> str:
        return YES if self._rng.random() < 0.5 else NO

    def choose_eliminations(
        self,
        roster: Sequence[str],
        eliminated: AbstractSet[int],
        last_question: str,
        last_answer: str,
    ) -> set[int]:
        """Pick up to `eliminations_per_turn` indices that are still standing."""
        standing = [index for index in range(len(roster)) if index not in eliminated]
        count = min(self.eliminations_per_turn, len(standing))
        return set(self._rng.sample(standing, count))
