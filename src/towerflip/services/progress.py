from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Mapping

from towerflip.engine.state import Entity
from towerflip.engine.types import ItemCatalog

from .content import CosmeticCatalog

logger = logging.getLogger(__name__)

CLAIM_COOLDOWN_S = 24 * 60 * 60
DAILY_CLAIM_GOLD = 10
PROFILE_VERSION = 1


class ProgressError(RuntimeError):
    pass


@dataclass
class BestiaryEntry:
    name: str
    visual: str
    description: str
    difficulty: str
    date_encountered: str

    @staticmethod
    def from_dict(d: Mapping[str, object]) -> "BestiaryEntry":
        name = d.get("name")
        if not isinstance(name, str):
            raise ProgressError("Invalid bestiary entry")
        return BestiaryEntry(
            name=name,
            visual=str(d.get("visual", "")),
            description=str(d.get("description", "")),
            difficulty=str(d.get("difficulty", "easy")),
            date_encountered=str(d.get("date_encountered", "")),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "visual": self.visual,
            "description": self.description,
            "difficulty": self.difficulty,
            "date_encountered": self.date_encountered,
        }


@dataclass
class Profile:
    version: int = PROFILE_VERSION
    gold: int = 0
    inventory: list[str] = field(default_factory=list)
    bestiary: list[BestiaryEntry] = field(default_factory=list)
    unlocked_cosmetics: list[str] = field(default_factory=lambda: ["default"])
    selected_cosmetic: str = "default"
    tower_level: int = 0
    last_daily_claim: float = 0.0

    @staticmethod
    def default() -> "Profile":
        return Profile()

    @staticmethod
    def from_dict(d: Mapping[str, object]) -> "Profile":
        version_raw = d.get("version", PROFILE_VERSION)
        version = version_raw if isinstance(version_raw, int) else PROFILE_VERSION

        gold_raw = d.get("gold", 0)
        gold = max(0, gold_raw) if isinstance(gold_raw, int) else 0

        inv_raw = d.get("inventory", [])
        inventory = [x for x in inv_raw if isinstance(x, str)] if isinstance(inv_raw, list) else []

        bestiary: list[BestiaryEntry] = []
        best_raw = d.get("bestiary", [])
        if isinstance(best_raw, list):
            for e in best_raw:
                if isinstance(e, dict):
                    bestiary.append(BestiaryEntry.from_dict(e))

        unlocked_raw = d.get("unlocked_cosmetics", [])
        unlocked = [str(x) for x in unlocked_raw] if isinstance(unlocked_raw, list) else []
        if "default" not in unlocked:
            unlocked.insert(0, "default")

        selected = d.get("selected_cosmetic", "default")
        if not isinstance(selected, str) or selected not in unlocked:
            selected = "default"

        level_raw = d.get("tower_level", 0)
        claim_raw = d.get("last_daily_claim", 0.0)

        return Profile(
            version=version,
            gold=gold,
            inventory=inventory,
            bestiary=bestiary,
            unlocked_cosmetics=unlocked,
            selected_cosmetic=selected,
            tower_level=level_raw if isinstance(level_raw, int) else 0,
            last_daily_claim=float(claim_raw) if isinstance(claim_raw, (int, float)) else 0.0,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "version": self.version,
            "gold": self.gold,
            "inventory": list(self.inventory),
            "bestiary": [e.to_dict() for e in self.bestiary],
            "unlocked_cosmetics": list(self.unlocked_cosmetics),
            "selected_cosmetic": self.selected_cosmetic,
            "tower_level": self.tower_level,
            "last_daily_claim": self.last_daily_claim,
        }


class ProgressStore:
    """Persistent meta-progress shared between runs.

    Every mutating call saves immediately.
    """

    def __init__(self, path: Path, items: ItemCatalog, cosmetics: CosmeticCatalog) -> None:
        self._path = path
        self.items = items
        self.cosmetics = cosmetics
        self.profile = self._load_or_create()

    def _load_or_create(self) -> Profile:
        if not self._path.exists():
            prof = Profile.default()
            self._write(prof)
            return prof
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ProgressError("progress file must hold an object")
            return Profile.from_dict(raw)
        except (json.JSONDecodeError, ProgressError) as e:
            logger.warning("Progress file %s is unreadable (%s); starting a fresh profile", self._path, e)
            return Profile.default()

    def _write(self, prof: Profile) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(prof.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")

    def save(self) -> None:
        self._write(self.profile)

    # -------- Gold --------
    @property
    def gold(self) -> int:
        return self.profile.gold

    def add_gold(self, amount: int) -> None:
        if amount < 0:
            raise ProgressError("Cannot add a negative amount of gold.")
        self.profile.gold += amount
        self.save()

    def spend_gold(self, amount: int) -> None:
        if amount < 0:
            raise ProgressError("Cannot spend a negative amount of gold.")
        if self.profile.gold < amount:
            raise ProgressError("Not enough gold.")
        self.profile.gold -= amount
        self.save()

    def claim_daily(self, now: datetime | None = None) -> int:
        """Grant the daily gold. Returns the amount, or 0 while on cooldown."""
        ts = (now or datetime.now(tz=timezone.utc)).timestamp()
        if ts - self.profile.last_daily_claim < CLAIM_COOLDOWN_S:
            return 0
        self.profile.last_daily_claim = ts
        self.profile.gold += DAILY_CLAIM_GOLD
        self.save()
        return DAILY_CLAIM_GOLD

    def seconds_until_claim(self, now: datetime | None = None) -> float:
        ts = (now or datetime.now(tz=timezone.utc)).timestamp()
        return max(0.0, CLAIM_COOLDOWN_S - (ts - self.profile.last_daily_claim))

    # -------- Inventory --------
    @property
    def inventory(self) -> list[str]:
        return list(self.profile.inventory)

    def add_item(self, item_id: str) -> None:
        if self.items.get(item_id) is None:
            raise ProgressError(f"Unknown item: {item_id}")
        self.profile.inventory.append(item_id)
        self.save()

    def buy_item(self, item_id: str) -> None:
        item = self.items.get(item_id)
        if item is None:
            raise ProgressError(f"Unknown item: {item_id}")
        if self.profile.gold < item.cost:
            raise ProgressError("Not enough gold.")
        self.profile.gold -= item.cost
        self.profile.inventory.append(item_id)
        self.save()

    def take_inventory(self) -> list[str]:
        """Hand every stored item to a run; the store keeps none of them."""
        taken = list(self.profile.inventory)
        self.profile.inventory.clear()
        self.save()
        return taken

    # -------- Bestiary --------
    @property
    def bestiary(self) -> list[BestiaryEntry]:
        return list(self.profile.bestiary)

    def record_kill(self, opponent: Entity, date_label: str) -> bool:
        """Add a defeated opponent to the bestiary. Returns False if already known."""
        if any(e.name == opponent.name for e in self.profile.bestiary):
            return False
        self.profile.bestiary.append(
            BestiaryEntry(
                name=opponent.name,
                visual=opponent.visual,
                description=opponent.description,
                difficulty=opponent.difficulty,
                date_encountered=date_label,
            )
        )
        self.save()
        return True

    # -------- Cosmetics --------
    @property
    def unlocked_cosmetics(self) -> list[str]:
        return list(self.profile.unlocked_cosmetics)

    def buy_cosmetic(self, cosmetic_id: str) -> None:
        back = self.cosmetics.card_backs.get(cosmetic_id)
        if back is None:
            raise ProgressError(f"Unknown cosmetic: {cosmetic_id}")
        if cosmetic_id in self.profile.unlocked_cosmetics:
            raise ProgressError("Already unlocked.")
        if self.profile.gold < back.price:
            raise ProgressError("Not enough gold.")
        self.profile.gold -= back.price
        self.profile.unlocked_cosmetics.append(cosmetic_id)
        self.profile.selected_cosmetic = cosmetic_id
        self.save()

    def select_cosmetic(self, cosmetic_id: str) -> None:
        if cosmetic_id not in self.profile.unlocked_cosmetics:
            raise ProgressError("Cosmetic is locked.")
        self.profile.selected_cosmetic = cosmetic_id
        self.save()

    # -------- Runs --------
    def finish_run(self, floors_cleared: int, leftover_items: Iterable[str] = ()) -> None:
        """Store unused consumables and the highest floor reached."""
        for item_id in leftover_items:
            if self.items.get(item_id) is not None:
                self.profile.inventory.append(item_id)
        self.profile.tower_level = max(self.profile.tower_level, floors_cleared)
        self.save()
