"""Core interface for session-based turn games driven by participant actions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Mapping, TypeVar

from .action import Action
from .events import Outcome

ParticipantId = str
SessionT = TypeVar("SessionT")
ActionT = TypeVar("ActionT", bound=Action)


class Game(ABC, Generic[SessionT, ActionT]):
    """Abstract interface that every room game implementation must satisfy."""

    @abstractmethod
    def capacity(self, session: SessionT) -> int:
        """Return the number of human participants the session accepts."""

    @abstractmethod
    def join(self, session: SessionT, participant_id: ParticipantId) -> Outcome:
        """Admit a participant (idempotent for participants already seated)."""

    @abstractmethod
    def apply(self, session: SessionT, participant_id: ParticipantId, action: ActionT) -> Outcome:
        """Apply one action from a seated participant and describe what to broadcast."""

    @abstractmethod
    def is_terminal(self, session: SessionT) -> bool:
        """Return whether gameplay is over for the session."""

    @abstractmethod
    def view(self, session: SessionT, participant_id: ParticipantId) -> dict[str, Any]:
        """Return a participant-specific view (partial information, hidden secrets redacted)."""

    @abstractmethod
    def parse_action(self, data: Mapping[str, Any]) -> ActionT:
        """Parse an action payload produced by a transport."""
