from __future__ import annotations

import logging
import threading

import pytest

from towerflip.engine.state import Entity
from towerflip.paths import get_paths
from towerflip.services.content import ContentService
from towerflip.services.entities import ProceduralEntityProvider, fetch_roster


def _content() -> ContentService:
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir)


def _fetch(provider, **kwargs):
    content = _content()
    return fetch_roster(
        provider,
        "2024-1-1",
        content.load_fallback_roster(),
        content.load_schema("entity"),
        **kwargs,
    )


class _Failing:
    def generate(self, seed: str, difficulty_multiplier: float):
        raise ConnectionError("offline")


class _Short:
    def generate(self, seed: str, difficulty_multiplier: float):
        return ProceduralEntityProvider().generate(seed, difficulty_multiplier)[:1]


class _Malformed:
    def generate(self, seed: str, difficulty_multiplier: float):
        blocks = ProceduralEntityProvider().generate(seed, difficulty_multiplier)
        blocks[1]["max_hp"] = "lots"
        return blocks


class _Slow:
    def __init__(self) -> None:
        self.release = threading.Event()

    def generate(self, seed: str, difficulty_multiplier: float):
        self.release.wait(5.0)
        return ProceduralEntityProvider().generate(seed, difficulty_multiplier)


def test_procedural_provider_is_deterministic() -> None:
    p = ProceduralEntityProvider()
    assert p.generate("2024-1-1", 1.0) == p.generate("2024-1-1", 1.0)
    blocks = p.generate("2024-1-1", 1.0)
    assert [b["difficulty"] for b in blocks] == ["easy", "medium", "hard"]
    assert blocks[-1]["boss"] in ("burn", "slime", "confusion")
    assert [b["max_hp"] for b in blocks] == [6, 10, 15]


def test_difficulty_multiplier_scales_hp() -> None:
    blocks = ProceduralEntityProvider().generate("2024-1-1", 2.0)
    assert [b["max_hp"] for b in blocks] == [12, 20, 30]


def test_provider_roster_is_used_when_valid() -> None:
    roster, used_fallback = _fetch(ProceduralEntityProvider())
    assert not used_fallback
    assert len(roster) == 3
    assert all(isinstance(e, Entity) and e.current_hp == e.max_hp for e in roster)


@pytest.mark.parametrize("provider", [_Failing(), _Short(), _Malformed()])
def test_bad_provider_falls_back(provider, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="towerflip.services.entities"):
        roster, used_fallback = _fetch(provider)
    assert used_fallback
    assert [e.name for e in roster] == ["Rotting Rat", "Hollow Guard", "The Forgotten"]
    assert "fallback roster" in caplog.text


def test_slow_provider_times_out() -> None:
    provider = _Slow()
    try:
        roster, used_fallback = _fetch(provider, timeout=0.05)
    finally:
        provider.release.set()
    assert used_fallback
    assert roster[0].name == "Rotting Rat"


def test_fallback_entities_are_fresh_copies() -> None:
    fallback = [Entity(name="Rat", max_hp=6, current_hp=1, shield=4, difficulty="easy")] * 3
    roster, used_fallback = fetch_roster(
        _Failing(), "x", fallback, _content().load_schema("entity")
    )
    assert used_fallback
    assert roster[0] is not fallback[0]
    assert (roster[0].current_hp, roster[0].shield) == (6, 0)
