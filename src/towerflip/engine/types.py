from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

EffectKind = Literal[
    "attack_small",
    "attack_medium",
    "attack_big",
    "heal_small",
    "heal_medium",
    "shield",
    "coin_small",
    "coin_medium",
]
Category = Literal["attack", "heal", "shield", "gold"]

Side = Literal["player", "opponent"]
Difficulty = Literal["easy", "medium", "hard"]
BossKind = Literal["none", "burn", "slime", "confusion"]
ClassId = Literal["warden", "acolyte", "oracle", "appraiser"]

Phase = Literal[
    "loading",
    "player_turn",
    "opponent_thinking",
    "opponent_acting",
    "level_complete",
    "victory",
    "defeat",
]
TERMINAL_PHASES: frozenset[str] = frozenset({"level_complete", "victory", "defeat"})

LogKind = Literal["info", "player", "enemy", "heal", "burn", "item"]


@dataclass(frozen=True)
class EffectSpec:
    kind: EffectKind
    category: Category
    value: int
    label: str


EFFECTS: dict[EffectKind, EffectSpec] = {
    "attack_small": EffectSpec("attack_small", "attack", 2, "Attack"),
    "attack_medium": EffectSpec("attack_medium", "attack", 4, "Slash"),
    "attack_big": EffectSpec("attack_big", "attack", 6, "Heavy Hit"),
    "heal_small": EffectSpec("heal_small", "heal", 2, "Heal"),
    "heal_medium": EffectSpec("heal_medium", "heal", 4, "Big Heal"),
    "shield": EffectSpec("shield", "shield", 2, "Shield"),
    "coin_small": EffectSpec("coin_small", "gold", 5, "Gold"),
    "coin_medium": EffectSpec("coin_medium", "gold", 10, "Treasure"),
}

# 16 cards = 8 pairs. attack_small is listed twice on purpose (two pairs).
DECK_COMPOSITION: tuple[EffectKind, ...] = (
    "attack_small",
    "attack_small",
    "attack_medium",
    "attack_big",
    "heal_small",
    "heal_medium",
    "shield",
    "coin_small",
)

# Two wild cards matched together resolve as this effect.
WILD_PAIR_EFFECT: EffectKind = "attack_small"


def category_of(kind: EffectKind) -> Category:
    return EFFECTS[kind].category


# ---- Consumables ----

FlagName = Literal["mercy", "mirror", "opponent_skipped"]


@dataclass(frozen=True)
class RevealItem:
    type: Literal["reveal"]
    count: int
    duration: float


@dataclass(frozen=True)
class RevealPairItem:
    type: Literal["reveal_pair"]
    duration: float


@dataclass(frozen=True)
class FlagItem:
    type: Literal["flag"]
    flag: FlagName


@dataclass(frozen=True)
class ClearMemoryItem:
    type: Literal["clear_memory"]


@dataclass(frozen=True)
class BloodRevealItem:
    type: Literal["blood_reveal"]
    hp_cost: int
    count: int
    duration: float


@dataclass(frozen=True)
class WildcardItem:
    type: Literal["wildcard"]


@dataclass(frozen=True)
class HealItem:
    type: Literal["heal"]
    amount: int


ItemAction = (
    RevealItem
    | RevealPairItem
    | FlagItem
    | ClearMemoryItem
    | BloodRevealItem
    | WildcardItem
    | HealItem
)


@dataclass(frozen=True)
class ItemDefinition:
    id: str
    name: str
    description: str
    cost: int
    icon: str
    action: ItemAction


@dataclass(frozen=True)
class ItemCatalog:
    """Immutable consumable catalog used by the engine."""

    items: dict[str, ItemDefinition]

    def get(self, item_id: str) -> ItemDefinition | None:
        return self.items.get(item_id)

    def all_ids(self) -> list[str]:
        return sorted(self.items.keys())


@dataclass(frozen=True)
class CharacterDefinition:
    id: ClassId
    name: str
    description: str
    passive: str
    visual: str
    color: tuple[int, int, int]
