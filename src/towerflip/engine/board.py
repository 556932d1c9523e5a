from __future__ import annotations

from dataclasses import dataclass

from .types import DECK_COMPOSITION, EffectKind

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193
_MASK32 = 0xFFFFFFFF

_LCG_A = 1664525
_LCG_C = 1013904223
_LCG_M = 2**32


@dataclass
class Card:
    id: str
    effect: EffectKind
    face_up: bool = False
    matched: bool = False
    disabled: bool = False
    wild: bool = False
    # Temporary peek (items, class passive); not part of the two-card selection.
    revealed: bool = False

    @property
    def selectable(self) -> bool:
        return not (self.matched or self.disabled or self.face_up)

    @property
    def hidden(self) -> bool:
        return not (self.matched or self.face_up or self.revealed)


def seed_hash(seed: str) -> int:
    """FNV-1a over the UTF-16 code units of `seed`, as an unsigned 32-bit int."""
    h = _FNV_OFFSET
    data = seed.encode("utf-16-le")
    for i in range(0, len(data), 2):
        h ^= data[i] | (data[i + 1] << 8)
        h = (h * _FNV_PRIME) & _MASK32
    return h


class SeededRNG:
    """Linear congruential stream over a string seed.

    Integer-only so the sequence is identical on every platform.
    """

    def __init__(self, seed: str) -> None:
        self.state = seed_hash(seed)

    def next_u32(self) -> int:
        self.state = (self.state * _LCG_A + _LCG_C) % _LCG_M
        return self.state

    def next_float(self) -> float:
        return self.next_u32() / _LCG_M

    def below(self, n: int) -> int:
        # floor(next_float() * n) computed exactly
        return (self.next_u32() * n) >> 32


def round_seed(seed: str, round_no: int) -> str:
    if round_no <= 0:
        return seed
    return f"{seed}-round-{round_no}"


def shuffled_effects(seed: str) -> list[EffectKind]:
    rng = SeededRNG(seed)
    effects: list[EffectKind] = []
    for eff in DECK_COMPOSITION:
        effects.append(eff)
        effects.append(eff)
    for i in range(len(effects) - 1, 0, -1):
        j = rng.below(i + 1)
        effects[i], effects[j] = effects[j], effects[i]
    return effects


def generate_board(seed: str, round_no: int = 0) -> list[Card]:
    """Build the shuffled 16-card board for `seed`.

    Pure: the same (seed, round_no) always yields the same sequence. Card ids
    are stable per position and carry the round so a reshuffled board never
    reuses the previous board's ids.
    """
    effects = shuffled_effects(round_seed(seed, round_no))
    prefix = "card" if round_no <= 0 else f"card-r{round_no}"
    return [Card(id=f"{prefix}-{i}", effect=eff) for i, eff in enumerate(effects)]
