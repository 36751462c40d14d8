"""Scripted stand-in scaffold."""

from __future__ import annotations

from typing import AbstractSet, Callable, Sequence

from ..player import StandIn

QuestionPolicy = Callable[[Sequence[str], AbstractSet[int]], str]
AnswerPolicy = Callable[[str, str], str]
EliminationPolicy = Callable[[Sequence[str], AbstractSet[int], str, str], set[int]]


class ScriptedStandIn(StandIn):
    """Runs user-provided policy callables."""

    def __init__(
        self,
        stand_in_id: str,
        *,
        question_policy: QuestionPolicy | None = None,
        answer_policy: AnswerPolicy | None = None,
        elimination_policy: EliminationPolicy | None = None,
    ):
        super().__init__(stand_in_id=stand_in_id)
        self.question_policy = question_policy
        self.answer_policy = answer_policy
        self.elimination_policy = elimination_policy

    def propose_question(self, roster: Sequence[str], eliminated: AbstractSet[int]) -> str:
        if self.question_policy is None:
            raise NotImplementedError("ScriptedStandIn requires a question_policy(roster, eliminated) callable.")
        return self.question_policy(roster, eliminated)

    def answer(self, secret: str, question: str) -> str:
        if self.answer_policy is None:
            raise NotImplementedError("ScriptedStandIn requires an answer_policy(secret, question) callable.")
        return self.answer_policy(secret, question)

    def choose_eliminations(
        self,
        roster: Sequence[str],
        eliminated: AbstractSet[int],
        last_question: str,
        last_answer: str,
    ) -> set[int]:
        if self.elimination_policy is None:
            return set()
        return set(self.elimination_policy(roster, eliminated, last_question, last_answer))
