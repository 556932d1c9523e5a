from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .board import Card
from .state import EncounterState, Entity, Event
from .types import EFFECTS, WILD_PAIR_EFFECT, ClassId, EffectKind, Side

MatchRule = Literal["pair", "wild", "wild_pair", "passive"]

# Effect categories a class may pair across kinds, averaging the two base values.
_CROSS_KIND_PASSIVES: dict[ClassId, str] = {
    "warden": "attack",
    "acolyte": "heal",
}

_HISTORY_MARKS = {"attack": "⚔️", "heal": "💚", "shield": "🛡️", "gold": "🪙"}


@dataclass(frozen=True)
class MatchOutcome:
    effect: EffectKind
    base_value: int
    rule: MatchRule


def cards_match(a: Card, b: Card, class_id: ClassId | None = None) -> MatchOutcome | None:
    """Decide whether two revealed cards form a match, and what it resolves to."""
    if a.wild and b.wild:
        return MatchOutcome(WILD_PAIR_EFFECT, EFFECTS[WILD_PAIR_EFFECT].value, "wild_pair")
    if a.wild or b.wild:
        normal = b if a.wild else a
        return MatchOutcome(normal.effect, EFFECTS[normal.effect].value, "wild")
    if a.effect == b.effect:
        return MatchOutcome(a.effect, EFFECTS[a.effect].value, "pair")

    if class_id is None:
        return None
    spec_a = EFFECTS[a.effect]
    spec_b = EFFECTS[b.effect]
    if spec_a.category != spec_b.category or _CROSS_KIND_PASSIVES.get(class_id) != spec_a.category:
        return None
    stronger = spec_a if spec_a.value >= spec_b.value else spec_b
    return MatchOutcome(stronger.kind, (spec_a.value + spec_b.value) // 2, "passive")


def scaled_value(base: int, streak: int, step_halves: int = 1) -> int:
    """floor(base * (1 + streak * 0.5)) in integer arithmetic."""
    if streak <= 0:
        return base
    return (base * (2 + streak * step_halves)) // 2


def apply_damage(target: Entity, amount: int) -> tuple[int, int]:
    """Shield absorbs first, the rest spills into HP. Returns (absorbed, to_hp)."""
    if amount <= 0:
        return 0, 0
    absorbed = min(target.shield, amount)
    target.shield -= absorbed
    remaining = amount - absorbed
    target.current_hp = max(0, target.current_hp - remaining)
    return absorbed, remaining


def apply_heal(target: Entity, amount: int, *, overflow_to_shield: bool = False) -> tuple[int, int]:
    """Raise HP up to max. Returns (healed, shield_gained)."""
    if amount <= 0:
        return 0, 0
    room = max(0, target.max_hp - target.current_hp)
    healed = min(room, amount)
    target.current_hp += healed
    shielded = 0
    if overflow_to_shield and amount > healed:
        shielded = amount - healed
        target.shield += shielded
    return healed, shielded


def combo_callout(streak: int) -> str | None:
    if streak <= 0:
        return None
    if streak == 1:
        return "COMBO!"
    if streak == 2:
        return "SUPER COMBO!"
    if streak == 3:
        return "MEGA COMBO!"
    return "ULTRA COMBO!"


def resolve_match(state: EncounterState, outcome: MatchOutcome, side: Side, streak: int) -> list[Event]:
    """Apply a matched pair's effect for `side`.

    Pure state transformation: never raises, and does nothing once the
    encounter has resolved.
    """
    if state.resolved:
        return []

    cfg = state.config
    spec = EFFECTS[outcome.effect]
    actor = state.entity(side)
    target = state.target_of(side)
    is_player = side == "player"

    value = scaled_value(outcome.base_value, streak, cfg.combo_step_halves)
    if is_player and state.ctx.mirror_active:
        value *= 2
        state.ctx.mirror_active = False
        state.add_log("The Mirror doubles your effect!", "item")

    combo_text = f" (Combo x{1 + streak * cfg.combo_step_halves * 0.5:g}!)" if streak > 0 else ""
    events: list[Event] = []

    if spec.category == "attack":
        absorbed, to_hp = apply_damage(target, value)
        events.append(
            {"type": "DAMAGE", "source": side, "amount": value, "absorbed": absorbed, "to_hp": to_hp}
        )
        if is_player:
            state.add_log(f"Player attacks for {value} damage!{combo_text}", "player")
        else:
            state.add_log(f"{actor.name} attacks you for {value} damage!{combo_text}", "enemy")

    elif spec.category == "heal":
        overflow = is_player and actor.class_id == "acolyte"
        healed, shielded = apply_heal(actor, value, overflow_to_shield=overflow)
        events.append({"type": "HEAL", "source": side, "amount": value, "healed": healed, "shielded": shielded})
        if is_player:
            state.add_log(f"Player heals for {value} HP.{combo_text}", "heal")
            if shielded:
                state.add_log(f"Overflowing grace hardens into {shielded} Shield.", "heal")
        else:
            state.add_log(f"{actor.name} heals for {value} HP.{combo_text}", "enemy")

    elif spec.category == "shield":
        actor.shield += value
        events.append({"type": "SHIELD", "source": side, "amount": value})
        if is_player:
            state.add_log(f"Player gains {value} Shield.{combo_text}", "player")
        else:
            state.add_log(f"{actor.name} raises a shield ({value}).{combo_text}", "enemy")

    elif spec.category == "gold":
        if is_player:
            gained = value
            if actor.class_id == "appraiser":
                gained += cfg.appraiser_gold_bonus
            actor.gold += gained
            events.append({"type": "GOLD", "source": side, "amount": gained})
            state.add_log(f"Player found {gained} coins!{combo_text}", "info")
        else:
            events.append({"type": "GOLD", "source": side, "amount": 0})
            state.add_log(f"{actor.name} finds some gold.{combo_text}", "info")

    if is_player and actor.class_id == "appraiser" and streak > 0:
        actor.essence += cfg.appraiser_essence
        events.append({"type": "ESSENCE", "amount": cfg.appraiser_essence})

    if is_player:
        state.history.append(_HISTORY_MARKS[spec.category])
    elif spec.category == "attack":
        state.history.append("🩸")

    state.event_log.extend(events)
    return events
