from __future__ import annotations

from collections import Counter

from towerflip.engine.board import SeededRNG, generate_board, round_seed, seed_hash
from towerflip.engine.types import DECK_COMPOSITION

DAILY_FLOOR_0 = [
    "attack_medium", "shield", "coin_small", "attack_big",
    "attack_medium", "attack_small", "attack_small", "heal_medium",
    "heal_medium", "heal_small", "heal_small", "attack_small",
    "attack_small", "shield", "coin_small", "attack_big",
]


def test_board_is_deterministic_per_seed() -> None:
    a = generate_board("2024-1-1-floor-0")
    b = generate_board("2024-1-1-floor-0")
    assert a == b
    assert [c.effect for c in a] == DAILY_FLOOR_0
    assert [c.id for c in a] == [f"card-{i}" for i in range(16)]


def test_different_seeds_shuffle_differently() -> None:
    assert [c.effect for c in generate_board("2024-1-1-floor-0")] != [
        c.effect for c in generate_board("2024-1-1-floor-1")
    ]


def test_reshuffle_uses_round_seed_and_fresh_ids() -> None:
    assert round_seed("s", 0) == "s"
    assert round_seed("s", 2) == "s-round-2"
    board = generate_board("2024-1-1-floor-0", 1)
    assert [c.effect for c in board][:4] == ["attack_big", "heal_medium", "attack_small", "shield"]
    assert board[0].id == "card-r1-0"


def test_board_holds_every_kind_in_pairs() -> None:
    counts = Counter(c.effect for c in generate_board("any seed at all"))
    expected = Counter(DECK_COMPOSITION) + Counter(DECK_COMPOSITION)
    assert counts == expected
    assert all(n % 2 == 0 for n in counts.values())


def test_fresh_board_is_all_face_down() -> None:
    for c in generate_board("t"):
        assert c.selectable and c.hidden
        assert not (c.face_up or c.matched or c.disabled or c.wild or c.revealed)


def test_seed_hash_is_fnv1a() -> None:
    assert seed_hash("") == 0x811C9DC5
    # FNV-1a 32 of "a"
    assert seed_hash("a") == 0xE40C292C


def test_rng_below_stays_in_range() -> None:
    rng = SeededRNG("range")
    for n in (1, 2, 7, 16):
        for _ in range(50):
            assert 0 <= rng.below(n) < n
