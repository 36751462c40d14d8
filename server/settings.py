"""Environment-driven server settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from framework.agents.env_utils import getenv_any, getenv_bool
from guesswho.guesswho_state import DEFAULT_ROSTER_SIZE

DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://127.0.0.1:5173")


def _int_env(name: str, default: int) -> int:
    raw = getenv_any(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer; received {raw!r}.") from exc


def _float_env(name: str, default: float) -> float:
    raw = getenv_any(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number; received {raw!r}.") from exc


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration for the game server."""

    roster_size: int = DEFAULT_ROSTER_SIZE
    roster_url: str | None = None
    roster_timeout_sec: float = 10.0
    enforce_turns: bool = False
    stand_in: str = "random"
    stand_in_delay_sec: float = 0.0
    event_log_dir: Path | None = None
    cors_origins: tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)
    log_level: str = "INFO"
    port: int = 3000

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment (and `.env`, if present)."""
        event_log_dir = getenv_any("GUESSWHO_EVENT_LOG_DIR")
        cors_raw = getenv_any("GUESSWHO_CORS_ORIGINS")
        cors_origins = (
            tuple(origin.strip() for origin in cors_raw.split(",") if origin.strip())
            if cors_raw
            else DEFAULT_CORS_ORIGINS
        )
        roster_size = _int_env("GUESSWHO_ROSTER_SIZE", DEFAULT_ROSTER_SIZE)
        if roster_size < 2:
            raise ValueError("GUESSWHO_ROSTER_SIZE must be at least 2.")
        return cls(
            roster_size=roster_size,
            roster_url=getenv_any("GUESSWHO_ROSTER_URL"),
            roster_timeout_sec=_float_env("GUESSWHO_ROSTER_TIMEOUT_SEC", 10.0),
            enforce_turns=getenv_bool("GUESSWHO_ENFORCE_TURNS", default=False),
            stand_in=getenv_any("GUESSWHO_STAND_IN", default="random") or "random",
            stand_in_delay_sec=max(0.0, _float_env("GUESSWHO_STAND_IN_DELAY_SEC", 0.0)),
            event_log_dir=Path(event_log_dir) if event_log_dir else None,
            cors_origins=cors_origins,
            log_level=(getenv_any("GUESSWHO_LOG_LEVEL", default="INFO") or "INFO").upper(),
            port=_int_env("PORT", 3000),
        )
