"""Guess Who rules: secret assignment, turn protocol, elimination ledger and stand-in orchestration."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from framework.action import Action
from framework.errors import (
    DuplicateSecretExhaustedError,
    InvalidCandidateIndexError,
    InvalidParticipantIdError,
    OpponentMissingError,
    OutOfTurnError,
    RoomFullError,
    StandInError,
)
from framework.events import Audience, Outcome
from framework.game import Game
from framework.player import NO, YES, StandIn
from framework.serialize import to_serializable

from .guesswho_actions import Answer, Ask, Eliminate, GuessCharacter, Ready, Revive, action_from_dict
from .guesswho_state import MAX_PRINCIPALS, STAND_IN_ID, GameSession, Message, Phase, SessionMode

logger = logging.getLogger(__name__)

_YES_NO = {"yes": YES, "no": NO}


def _normalize_yes_no(raw: Any) -> str:
    normalized = _YES_NO.get(str(raw).strip().lower()) if isinstance(raw, str) else None
    if normalized is None:
        raise StandInError(f"Stand-in answers must be 'Yes' or 'No'; received {raw!r}.")
    return normalized


@dataclass(frozen=True)
class _TurnCheckpoint:
    """Turn-related slice of a session that stand-in replies can change."""

    dialogue_length: int
    turn_holder: str | None
    phase: Phase
    stand_in_eliminated: frozenset[int] | None

    @classmethod
    def capture(cls, session: GameSession) -> "_TurnCheckpoint":
        ledger = session.eliminated.get(STAND_IN_ID)
        return cls(
            dialogue_length=len(session.dialogue),
            turn_holder=session.turn_holder,
            phase=session.phase,
            stand_in_eliminated=frozenset(ledger) if ledger is not None else None,
        )

    def restore(self, session: GameSession) -> None:
        del session.dialogue[self.dialogue_length :]
        session.turn_holder = self.turn_holder
        session.phase = self.phase
        if self.stand_in_eliminated is not None:
            session.eliminated[STAND_IN_ID] = set(self.stand_in_eliminated)


class GuessWhoGame(Game[GameSession, Action]):
    """Two-participant Guess Who with an optional scripted opponent.

    Turn validity is advisory unless `enforce_turns` is set: out-of-turn
    questions, answers and guesses still execute, matching how the game is
    played over a trusted transport. In strict mode they raise
    `OutOfTurnError` before touching the session.
    """

    def __init__(self, *, enforce_turns: bool = False):
        self.enforce_turns = enforce_turns

    def new_session(
        self,
        *,
        room_id: str,
        variant: str,
        mode: SessionMode,
        roster: Sequence[str],
        rng: random.Random | None = None,
    ) -> GameSession:
        """Create an empty session in the ASKING phase."""
        roster_tuple = tuple(roster)
        if len(set(roster_tuple)) != len(roster_tuple):
            raise ValueError("Roster names must be unique.")
        if len(roster_tuple) < MAX_PRINCIPALS:
            raise ValueError(f"Roster needs at least {MAX_PRINCIPALS} candidates.")
        return GameSession(
            room_id=room_id,
            variant=variant,
            mode=SessionMode(mode),
            roster=roster_tuple,
            rng=rng or random.Random(),
        )

    def arm_stand_in(self, session: GameSession, stand_in: StandIn, *, seed: int | None = None) -> None:
        """Attach the scripted opponent; it is seated on the first human join."""
        if session.mode is not SessionMode.STAND_IN_AUGMENTED:
            raise ValueError("Only stand-in-augmented sessions accept a stand-in.")
        stand_in.reset(session.room_id, seed)
        session.stand_in = stand_in

    def capacity(self, session: GameSession) -> int:
        if session.mode is SessionMode.STAND_IN_AUGMENTED:
            return MAX_PRINCIPALS - 1
        return MAX_PRINCIPALS

    def expected_ready_count(self, session: GameSession) -> int:
        """Every participant holding a secret must vote, and never fewer than two."""
        return max(MAX_PRINCIPALS, len(session.secrets))

    def is_terminal(self, session: GameSession) -> bool:
        return session.is_terminal

    def parse_action(self, data: Mapping[str, Any]) -> Action:
        return action_from_dict(data)

    def assign_secret(self, session: GameSession, participant_id: str) -> str:
        """Draw a secret uniformly from the candidates nobody holds yet."""
        existing = session.secrets.get(participant_id)
        if existing is not None:
            return existing

        taken = set(session.secrets.values())
        remaining = [name for name in session.roster if name not in taken]
        if not remaining:
            raise DuplicateSecretExhaustedError(
                f"All {len(session.roster)} candidates in room {session.room_id} are already assigned."
            )
        secret = session.rng.choice(remaining)
        session.secrets[participant_id] = secret
        session.eliminated.setdefault(participant_id, set())
        return secret

    def _seat(self, session: GameSession, participant_id: str) -> None:
        first = not session.secrets
        self.assign_secret(session, participant_id)
        if first or session.turn_holder is None:
            session.turn_holder = participant_id
        elif session.rng.random() < 0.5:
            # Coin flip for whether the newcomer opens.
            session.turn_holder = participant_id

    def join(self, session: GameSession, participant_id: str) -> Outcome:
        """Seat a participant; rejoining returns the same secret without mutating anything."""
        outcome = Outcome()
        if participant_id == STAND_IN_ID:
            raise InvalidParticipantIdError(participant_id, "reserved for the stand-in")

        if participant_id in session.secrets:
            outcome.emit("init", self.view(session, participant_id), Audience.SELF)
            outcome.emit("turn", session.turn_holder, Audience.OTHERS)
            return outcome

        capacity = self.capacity(session)
        if len(session.human_participants) >= capacity:
            raise RoomFullError(session.room_id, capacity)

        self._seat(session, participant_id)
        logger.info("Participant joined room=%s participant=%s", session.room_id, participant_id)

        stand_in_opens = False
        if session.stand_in is not None and STAND_IN_ID not in session.secrets:
            self._seat(session, STAND_IN_ID)
            logger.info("Stand-in armed room=%s", session.room_id)
            if session.turn_holder == STAND_IN_ID:
                stand_in_opens = True

        if stand_in_opens:
            question = self._stand_in_question(session)
        outcome.emit("init", self.view(session, participant_id), Audience.SELF)
        outcome.emit("turn", session.turn_holder, Audience.OTHERS)
        if stand_in_opens:
            outcome.emit("ask", question, Audience.ROOM)
        return outcome

    def apply(self, session: GameSession, participant_id: str, action: Action) -> Outcome:
        if participant_id not in session.secrets or participant_id == STAND_IN_ID:
            raise InvalidParticipantIdError(participant_id, f"not seated in room {session.room_id}")

        checkpoint = _TurnCheckpoint.capture(session)
        try:
            return self._dispatch(session, participant_id, action)
        except StandInError:
            # A failed stand-in reply must not leave the human's move half-applied.
            checkpoint.restore(session)
            logger.warning("Stand-in failed room=%s; rolled back %s", session.room_id, action.action_type)
            raise

    def _dispatch(self, session: GameSession, participant_id: str, action: Action) -> Outcome:
        if isinstance(action, Ask):
            return self._ask(session, participant_id, action.question)
        if isinstance(action, Answer):
            return self._answer(session, participant_id, action.answer)
        if isinstance(action, GuessCharacter):
            return self._guess(session, participant_id, action.candidate)
        if isinstance(action, Eliminate):
            return self._update_ledger(session, participant_id, action.index, eliminate=True)
        if isinstance(action, Revive):
            return self._update_ledger(session, participant_id, action.index, eliminate=False)
        if isinstance(action, Ready):
            return self._ready(session, participant_id)
        raise ValueError(f"Unsupported Guess Who action: {action!r}")

    def _require_opponent(self, session: GameSession, participant_id: str, action_type: str) -> str:
        opponent = session.opponent_of(participant_id)
        if opponent is None:
            raise OpponentMissingError(f"Cannot {action_type} before an opponent joins room {session.room_id}.")
        return opponent

    def _check_turn(self, session: GameSession, participant_id: str, action_type: str, phase: Phase | None) -> None:
        if not self.enforce_turns:
            return
        if session.turn_holder != participant_id:
            raise OutOfTurnError(participant_id, action_type, f"it is {session.turn_holder}'s turn")
        if phase is not None and session.phase is not phase:
            raise OutOfTurnError(participant_id, action_type, f"phase is {session.phase.value}")

    def _ask(self, session: GameSession, participant_id: str, question: str) -> Outcome:
        outcome = Outcome()
        if session.is_terminal:
            return outcome
        opponent = self._require_opponent(session, participant_id, "ask")
        self._check_turn(session, participant_id, "ask", Phase.ASKING)

        session.dialogue.append(Message(text=question, speaker_id=participant_id))
        session.turn_holder = opponent
        session.phase = Phase.AWAITING_ANSWER
        outcome.emit("ask", question, Audience.OTHERS)
        logger.info("Question asked room=%s participant=%s question=%r", session.room_id, participant_id, question)

        if opponent == STAND_IN_ID and session.has_stand_in:
            answer = self._stand_in_answer(session, question)
            outcome.emit("answer", answer, Audience.ROOM)
            follow_up = self._stand_in_question(session)
            outcome.emit("ask", follow_up, Audience.ROOM, delayed=True)
        return outcome

    def _answer(self, session: GameSession, participant_id: str, answer: str) -> Outcome:
        outcome = Outcome()
        if session.is_terminal:
            return outcome
        opponent = self._require_opponent(session, participant_id, "answer")
        self._check_turn(session, participant_id, "answer", Phase.AWAITING_ANSWER)

        session.dialogue.append(Message(text=answer, speaker_id=participant_id))
        # The answerer moves next: eliminate, then ask.
        session.turn_holder = participant_id
        session.phase = Phase.ASKING
        outcome.emit("answer", answer, Audience.OTHERS)
        logger.info("Question answered room=%s participant=%s answer=%r", session.room_id, participant_id, answer)

        if opponent == STAND_IN_ID and session.has_stand_in:
            count = self._stand_in_eliminate(session, answer)
            outcome.emit("eliminated-count", count, Audience.ROOM)
        return outcome

    def _guess(self, session: GameSession, participant_id: str, candidate: str) -> Outcome:
        outcome = Outcome()
        if session.is_terminal:
            return outcome
        opponent = self._require_opponent(session, participant_id, "guess")
        self._check_turn(session, participant_id, "guess", None)

        if candidate == session.secrets[opponent]:
            session.winner = participant_id
            session.phase = Phase.GAME_OVER
            outcome.emit("winner", participant_id, Audience.ROOM)
            logger.info("Correct guess room=%s participant=%s guess=%r", session.room_id, participant_id, candidate)
            return outcome

        session.turn_holder = opponent
        session.phase = Phase.ASKING
        outcome.emit("bad-guess", candidate, Audience.OTHERS)
        outcome.emit("answer", NO, Audience.SELF)
        logger.info("Wrong guess room=%s participant=%s guess=%r", session.room_id, participant_id, candidate)

        if opponent == STAND_IN_ID and session.has_stand_in:
            follow_up = self._stand_in_question(session)
            outcome.emit("ask", follow_up, Audience.ROOM, delayed=True)
        return outcome

    def _update_ledger(self, session: GameSession, participant_id: str, index: int, *, eliminate: bool) -> Outcome:
        if not 0 <= index < len(session.roster):
            raise InvalidCandidateIndexError(index, len(session.roster))
        ledger = session.eliminated.setdefault(participant_id, set())
        if eliminate:
            ledger.add(index)
        else:
            ledger.discard(index)

        outcome = Outcome()
        outcome.emit("eliminated-count", len(ledger), Audience.OTHERS)
        outcome.emit("eliminate" if eliminate else "revive", sorted(ledger), Audience.SELF)
        return outcome

    def _ready(self, session: GameSession, participant_id: str) -> Outcome:
        outcome = Outcome()
        session.ready_votes.add(participant_id)
        if session.has_stand_in:
            session.ready_votes.add(STAND_IN_ID)

        if len(session.ready_votes) >= self.expected_ready_count(session):
            outcome.rematch = True
            return outcome
        outcome.emit("ready", participant_id, Audience.OTHERS)
        return outcome

    def _consult(self, session: GameSession, behaviour: str, *args: Any) -> Any:
        """Call one stand-in policy; any failure surfaces as StandInError."""
        if session.stand_in is None:
            raise StandInError(f"Room {session.room_id} has no stand-in.")
        try:
            return getattr(session.stand_in, behaviour)(*args)
        except StandInError:
            raise
        except Exception as exc:
            raise StandInError(f"Stand-in {behaviour} failed in room {session.room_id}: {exc}") from exc

    def _stand_in_answer(self, session: GameSession, question: str) -> str:
        raw = self._consult(session, "answer", session.secrets[STAND_IN_ID], question)
        answer = _normalize_yes_no(raw)
        session.dialogue.append(Message(text=answer, speaker_id=STAND_IN_ID))
        session.turn_holder = STAND_IN_ID
        session.phase = Phase.ASKING
        return answer

    def _stand_in_question(self, session: GameSession) -> str:
        question = self._consult(
            session,
            "propose_question",
            session.roster,
            frozenset(session.eliminated.get(STAND_IN_ID, set())),
        )
        if not isinstance(question, str) or not question.strip():
            raise StandInError(f"Stand-in produced an empty question: {question!r}")
        session.dialogue.append(Message(text=question, speaker_id=STAND_IN_ID))
        session.turn_holder = session.opponent_of(STAND_IN_ID)
        session.phase = Phase.AWAITING_ANSWER
        return question

    def _stand_in_eliminate(self, session: GameSession, answer: str) -> int:
        last_question = session.last_message_from(STAND_IN_ID)
        ledger = session.eliminated.setdefault(STAND_IN_ID, set())
        chosen = self._consult(
            session,
            "choose_eliminations",
            session.roster,
            frozenset(ledger),
            last_question.text if last_question is not None else "",
            answer,
        )
        roster_size = len(session.roster)
        ledger.update(
            index
            for index in chosen
            if isinstance(index, int) and not isinstance(index, bool) and 0 <= index < roster_size
        )
        return len(ledger)

    def view(self, session: GameSession, participant_id: str) -> dict[str, Any]:
        """Return what one participant may see; opponent secrets stay hidden until game over."""
        opponent = session.opponent_of(participant_id)
        own_ledger = session.eliminated.get(participant_id, set())
        opponent_ledger = session.eliminated.get(opponent, set()) if opponent is not None else set()
        return {
            "room_id": session.room_id,
            "participant_id": participant_id,
            "variant": session.variant,
            "mode": session.mode.value,
            "roster": list(session.roster),
            "secret": session.secrets.get(participant_id),
            "eliminated": sorted(own_ledger),
            "opponent_id": opponent,
            "opponent_eliminated_count": len(opponent_ledger),
            "opponent_secret": session.secrets.get(opponent) if session.is_terminal and opponent else None,
            "dialogue": to_serializable(session.dialogue),
            "turn_holder": session.turn_holder,
            "is_your_turn": session.turn_holder == participant_id,
            "phase": session.phase.value,
            "winner": session.winner,
            "ready_votes": sorted(session.ready_votes),
            "participants": session.participants,
        }
