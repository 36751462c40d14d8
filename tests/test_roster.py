"""Tests for roster providers and session roster construction."""

from __future__ import annotations

import random

import pytest

import guesswho.roster as roster_module
from framework.errors import RosterUnavailableError
from guesswho.roster import (
    CLASSIC_CHARACTERS,
    HttpRosterProvider,
    StaticRosterProvider,
    build_roster,
    dedupe_names,
)


def test_classic_roster_has_unique_names() -> None:
    assert len(CLASSIC_CHARACTERS) == 41
    assert len(set(CLASSIC_CHARACTERS)) == len(CLASSIC_CHARACTERS)


def test_build_roster_draws_distinct_names_from_variant() -> None:
    roster = build_roster(StaticRosterProvider(), "classic", 24, random.Random(3))

    assert len(roster) == 24
    assert len(set(roster)) == 24
    assert set(roster) <= set(CLASSIC_CHARACTERS)


def test_build_roster_is_reproducible_for_a_seed() -> None:
    provider = StaticRosterProvider()
    assert build_roster(provider, "classic", 24, random.Random(9)) == build_roster(
        provider, "classic", 24, random.Random(9)
    )


def test_dedupe_names_keeps_first_seen_order() -> None:
    assert dedupe_names(["B", "A", " B ", "", "C", "A"]) == ["B", "A", "C"]


def test_too_few_distinct_names_fails_fast() -> None:
    provider = StaticRosterProvider({"tiny": ["A", "B", "B", "C"]})

    with pytest.raises(RosterUnavailableError, match="needed 4 distinct names, received 3"):
        build_roster(provider, "tiny", 4, random.Random(1))


def test_unknown_static_variant_is_unavailable() -> None:
    with pytest.raises(RosterUnavailableError):
        build_roster(StaticRosterProvider(), "pirates", 4, random.Random(1))


def test_provider_crash_is_reported_as_unavailable() -> None:
    class _BrokenProvider:
        def fetch(self, variant: str) -> list[str]:
            raise OSError("disk on fire")

    with pytest.raises(RosterUnavailableError, match="disk on fire"):
        build_roster(_BrokenProvider(), "classic", 4, random.Random(1))


@pytest.mark.parametrize(
    "payload",
    [
        ["A", "B", "C", "D"],
        [{"name": "A"}, {"name": "B"}, {"name": "C"}, {"name": "D"}],
        {"characters": ["A", "B", "C", "D"]},
        {"names": ["A", "B", "C", "D"]},
    ],
)
def test_http_provider_accepts_supported_shapes(monkeypatch, payload) -> None:
    calls: list[str] = []

    def _fake_get_json(url, headers=None, timeout_sec=10.0):
        calls.append(url)
        return payload

    monkeypatch.setattr(roster_module, "get_json", _fake_get_json)
    provider = HttpRosterProvider("https://roster.example/{variant}.json")

    assert list(provider.fetch("classic")) == ["A", "B", "C", "D"]
    assert calls == ["https://roster.example/classic.json"]


def test_http_provider_wraps_network_errors(monkeypatch) -> None:
    def _failing_get_json(url, headers=None, timeout_sec=10.0):
        raise RuntimeError(f"Network error calling {url}: refused")

    monkeypatch.setattr(roster_module, "get_json", _failing_get_json)

    with pytest.raises(RosterUnavailableError, match="refused"):
        HttpRosterProvider("https://roster.example/{variant}").fetch("classic")


def test_http_provider_rejects_unexpected_payload(monkeypatch) -> None:
    monkeypatch.setattr(roster_module, "get_json", lambda url, headers=None, timeout_sec=10.0: {"oops": 1})

    with pytest.raises(RosterUnavailableError):
        HttpRosterProvider("https://roster.example/{variant}").fetch("classic")
