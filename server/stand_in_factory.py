"""Factory for building stand-ins from server configuration."""

from __future__ import annotations

from typing import Any

from framework.agents.random_agent import RandomStandIn
from framework.player import StandIn
from guesswho.guesswho_state import STAND_IN_ID


def normalize_stand_in_config(raw: Any) -> dict[str, Any]:
    """Normalize a stand-in configuration into a typed dictionary."""
    if isinstance(raw, str):
        return {"type": raw.strip().lower() or "random"}
    if isinstance(raw, dict):
        data = dict(raw)
        data["type"] = str(data.get("type", "random")).strip().lower()
        return data
    return {"type": "random"}


def create_stand_in(config: Any) -> StandIn:
    """Instantiate a concrete stand-in for one config."""
    normalized = normalize_stand_in_config(config)
    stand_in_type = normalized["type"]
    if stand_in_type == "random":
        kwargs: dict[str, Any] = {}
        if "questions" in normalized:
            kwargs["questions"] = tuple(str(question) for question in normalized["questions"])
        if "eliminations_per_turn" in normalized:
            kwargs["eliminations_per_turn"] = int(normalized["eliminations_per_turn"])
        return RandomStandIn(STAND_IN_ID, **kwargs)

    raise ValueError(f"Unsupported stand-in type '{stand_in_type}'. Supported types: random.")
