"""Base action abstractions for inbound gameplay events."""

from __future__ import annotations

from abc import ABC
from dataclasses import asdict, is_dataclass
from typing import Any, ClassVar, Mapping, Self

from .serialize import to_serializable


class Action(ABC):
    """Base class for a typed event submitted by a participant."""

    action_type: ClassVar[str] = "action"

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the action."""
        if is_dataclass(self):
            payload = {key: to_serializable(value) for key, value in asdict(self).items()}
        else:
            payload = {
                key: to_serializable(value)
                for key, value in vars(self).items()
                if not key.startswith("_")
            }
        payload["type"] = self.action_type
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build the action from a dictionary payload."""
        kwargs = {key: value for key, value in data.items() if key not in {"type", "action_type"}}
        try:
            return cls(**kwargs)  # type: ignore[misc, call-arg]
        except TypeError as exc:
            raise ValueError(f"Malformed {cls.action_type} payload: {exc}") from exc
