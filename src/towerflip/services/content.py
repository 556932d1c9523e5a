from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from towerflip.engine.state import Entity
from towerflip.engine.types import (
    BloodRevealItem,
    CharacterDefinition,
    ClearMemoryItem,
    FlagItem,
    HealItem,
    ItemAction,
    ItemCatalog,
    ItemDefinition,
    RevealItem,
    RevealPairItem,
    WildcardItem,
)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.absolute_path))
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


def _require_float(obj: Mapping[str, object], key: str) -> float:
    v = obj.get(key)
    if not isinstance(v, (int, float)):
        raise ContentError(f"Expected number for {key}")
    return float(v)


def _require_list(obj: Mapping[str, object], key: str) -> list[object]:
    v = obj.get(key)
    if not isinstance(v, list):
        raise ContentError(f"Expected list for {key}")
    return v


def _rgb(raw: Mapping[str, object], key: str) -> tuple[int, int, int]:
    vals = [c for c in _require_list(raw, key) if isinstance(c, int)]
    if len(vals) != 3:
        raise ContentError(f"Expected RGB triple for {key}")
    return vals[0], vals[1], vals[2]


def _parse_action(raw: Mapping[str, object]) -> ItemAction:
    t = raw.get("type")
    if not isinstance(t, str):
        raise ContentError("Item action missing type")
    if t == "reveal":
        return RevealItem(type="reveal", count=_require_int(raw, "count"), duration=_require_float(raw, "duration"))
    if t == "reveal_pair":
        return RevealPairItem(type="reveal_pair", duration=_require_float(raw, "duration"))
    if t == "flag":
        return FlagItem(type="flag", flag=_require_str(raw, "flag"))  # type: ignore[arg-type]
    if t == "clear_memory":
        return ClearMemoryItem(type="clear_memory")
    if t == "blood_reveal":
        return BloodRevealItem(
            type="blood_reveal",
            hp_cost=_require_int(raw, "hp_cost"),
            count=_require_int(raw, "count"),
            duration=_require_float(raw, "duration"),
        )
    if t == "wildcard":
        return WildcardItem(type="wildcard")
    if t == "heal":
        return HealItem(type="heal", amount=_require_int(raw, "amount"))
    raise ContentError(f"Unknown item action type: {t}")


def parse_entity(raw: Mapping[str, object]) -> Entity:
    """Build an opponent from a validated stat block."""
    max_hp = _require_int(raw, "max_hp")
    boss = raw.get("boss", "none")
    return Entity(
        name=_require_str(raw, "name"),
        max_hp=max_hp,
        current_hp=max_hp,
        difficulty=_require_str(raw, "difficulty"),  # type: ignore[arg-type]
        boss=boss if isinstance(boss, str) else "none",  # type: ignore[arg-type]
        description=_require_str(raw, "description"),
        visual=_require_str(raw, "visual"),
    )


@dataclass(frozen=True)
class CardBack:
    id: str
    name: str
    price: int
    description: str
    color: tuple[int, int, int]
    accent: tuple[int, int, int]


@dataclass(frozen=True)
class CosmeticCatalog:
    card_backs: dict[str, CardBack]

    def ordered(self) -> list[CardBack]:
        return sorted(self.card_backs.values(), key=lambda b: (b.price, b.id))


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def _load_validated(self, name: str) -> dict[str, object]:
        path = self._data_dir / f"{name}.json"
        schema = self.load_schema(name)
        raw = _load_json(path)
        validate_json(raw, schema, context=str(path))
        if not isinstance(raw, dict):
            raise ContentError(f"{name}.json must be an object")
        return raw

    def load_schema(self, name: str) -> object:
        return _load_json(self._schema_dir / f"{name}.schema.json")

    def load_items(self) -> ItemCatalog:
        raw = self._load_validated("items")
        items: dict[str, ItemDefinition] = {}
        for item in _require_list(raw, "items"):
            if not isinstance(item, dict):
                continue
            action_raw = item.get("action")
            if not isinstance(action_raw, dict):
                raise ContentError("item.action must be an object")
            definition = ItemDefinition(
                id=_require_str(item, "id"),
                name=_require_str(item, "name"),
                description=_require_str(item, "description"),
                cost=_require_int(item, "cost"),
                icon=_require_str(item, "icon"),
                action=_parse_action(action_raw),
            )
            if definition.id in items:
                raise ContentError(f"Duplicate item id: {definition.id}")
            items[definition.id] = definition
        return ItemCatalog(items=items)

    def load_characters(self) -> dict[str, CharacterDefinition]:
        raw = self._load_validated("characters")
        out: dict[str, CharacterDefinition] = {}
        for c in _require_list(raw, "characters"):
            if not isinstance(c, dict):
                continue
            ch = CharacterDefinition(
                id=_require_str(c, "id"),  # type: ignore[arg-type]
                name=_require_str(c, "name"),
                description=_require_str(c, "description"),
                passive=_require_str(c, "passive"),
                visual=_require_str(c, "visual"),
                color=_rgb(c, "color"),
            )
            out[ch.id] = ch
        return out

    def load_fallback_roster(self) -> list[Entity]:
        raw = self._load_validated("roster")
        return [parse_entity(e) for e in _require_list(raw, "entities") if isinstance(e, dict)]

    def load_cosmetics(self) -> CosmeticCatalog:
        raw = self._load_validated("cosmetics")
        backs: dict[str, CardBack] = {}
        for b in _require_list(raw, "card_backs"):
            if not isinstance(b, dict):
                continue
            back = CardBack(
                id=_require_str(b, "id"),
                name=_require_str(b, "name"),
                price=_require_int(b, "price"),
                description=_require_str(b, "description"),
                color=_rgb(b, "color"),
                accent=_rgb(b, "accent"),
            )
            backs[back.id] = back
        if "default" not in backs:
            raise ContentError("cosmetics.json must define a 'default' card back")
        return CosmeticCatalog(card_backs=backs)

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        _ = self.load_items()
        _ = self.load_characters()
        _ = self.load_fallback_roster()
        _ = self.load_cosmetics()
        _ = self.load_schema("entity")
