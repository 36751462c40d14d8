"""Roster sources and session roster construction."""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

from framework.agents.http_utils import get_json
from framework.errors import RosterUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_VARIANT = "classic"

CLASSIC_CHARACTERS: tuple[str, ...] = (
    "Abdul",
    "Ang",
    "Anna",
    "Boris",
    "Carl",
    "Charles",
    "Chimezi",
    "Colin",
    "Destiny",
    "Erin",
    "Fran",
    "Gwen",
    "Imani",
    "Jada",
    "Jing",
    "Kai",
    "Kevin",
    "Kiki",
    "Liza",
    "Len",
    "Lucy",
    "Manu",
    "Marcus",
    "Maria",
    "Martha",
    "Meryl",
    "Miles",
    "Nonna",
    "Paige",
    "Pablo",
    "Raquel",
    "Ron",
    "Samir",
    "Sang",
    "Simu",
    "Stew",
    "Sue",
    "Tina",
    "Tonto",
    "Trae",
    "Waru",
)


class RosterProvider(Protocol):
    """Supplies candidate names for a game variant."""

    def fetch(self, variant: str) -> Sequence[str]:
        """Return candidate names for `variant`."""


class StaticRosterProvider:
    """In-process roster variants."""

    def __init__(self, variants: Mapping[str, Sequence[str]] | None = None):
        self.variants: dict[str, tuple[str, ...]] = {
            key: tuple(names) for key, names in (variants or {DEFAULT_VARIANT: CLASSIC_CHARACTERS}).items()
        }

    def fetch(self, variant: str) -> Sequence[str]:
        if variant not in self.variants:
            raise RosterUnavailableError(
                variant, f"unknown variant; available variants: {sorted(self.variants)}"
            )
        return self.variants[variant]


class HttpRosterProvider:
    """Fetches roster names from an HTTP endpoint.

    `url_template` may contain a `{variant}` placeholder. The endpoint may
    return a JSON list of names, a list of objects with a `name` key, or an
    object holding such a list under `characters` or `names`.
    """

    def __init__(self, url_template: str, *, timeout_sec: float = 10.0, headers: dict[str, str] | None = None):
        self.url_template = url_template
        self.timeout_sec = timeout_sec
        self.headers = dict(headers or {})

    def fetch(self, variant: str) -> Sequence[str]:
        url = self.url_template.format(variant=variant)
        try:
            payload = get_json(url, headers=self.headers, timeout_sec=self.timeout_sec)
        except RuntimeError as exc:
            raise RosterUnavailableError(variant, str(exc)) from exc
        return _names_from_payload(variant, payload)


def _names_from_payload(variant: str, payload: Any) -> list[str]:
    if isinstance(payload, Mapping):
        for key in ("characters", "names"):
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
        else:
            raise RosterUnavailableError(variant, "response object has no 'characters' or 'names' list")

    if not isinstance(payload, list):
        raise RosterUnavailableError(variant, f"expected a list of names, got {type(payload).__name__}")

    names: list[str] = []
    for item in payload:
        if isinstance(item, str):
            names.append(item)
        elif isinstance(item, Mapping) and isinstance(item.get("name"), str):
            names.append(item["name"])
        else:
            raise RosterUnavailableError(variant, f"unsupported roster entry: {item!r}")
    return names


def dedupe_names(names: Iterable[str]) -> list[str]:
    """Drop blanks and repeated names while keeping first-seen order."""
    seen: set[str] = set()
    unique: list[str] = []
    for raw in names:
        name = raw.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        unique.append(name)
    return unique


def build_roster(provider: RosterProvider, variant: str, size: int, rng: random.Random) -> tuple[str, ...]:
    """Fetch once and draw a shuffled roster of `size` distinct names."""
    if size < 2:
        raise ValueError("Roster size must be at least 2.")
    try:
        fetched = provider.fetch(variant)
    except RosterUnavailableError:
        raise
    except Exception as exc:
        raise RosterUnavailableError(variant, str(exc)) from exc
    names = dedupe_names(fetched)
    if len(names) < size:
        raise RosterUnavailableError(variant, f"needed {size} distinct names, received {len(names)}")
    roster = tuple(rng.sample(names, size))
    logger.debug("Built roster variant=%s size=%d from %d names", variant, size, len(names))
    return roster
