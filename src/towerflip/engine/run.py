from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Literal, Sequence

from .encounter import new_encounter
from .state import EncounterConfig, EncounterState, Entity, StepResult, rejected
from .types import CharacterDefinition, ItemCatalog

RunPhase = Literal["encounter", "shop", "complete", "defeated"]


@dataclass(frozen=True)
class RunConfig:
    floors: int = 3
    player_max_hp: int = 12
    floor_heal: int = 3
    full_hp_gold: int = 5
    # Floor indices that are preceded by a merchant interlude.
    shop_before: tuple[int, ...] = (2,)


@dataclass(frozen=True)
class FloorResult:
    floor: int
    outcome: str
    opponent: Entity
    gold_to_bank: int


@dataclass
class RunState:
    seed_base: str
    roster: list[Entity]
    items: ItemCatalog
    player: Entity
    inventory: list[str]
    config: RunConfig = field(default_factory=RunConfig)
    encounter_config: EncounterConfig = field(default_factory=EncounterConfig)
    floor: int = 0
    phase: RunPhase = "encounter"
    encounter: EncounterState | None = None
    history: list[str] = field(default_factory=list)
    kills: list[str] = field(default_factory=list)
    banked_gold: int = 0
    results: list[FloorResult] = field(default_factory=list)

    @property
    def final_floor(self) -> bool:
        return self.floor >= self.config.floors - 1


def floor_seed(seed_base: str, floor: int) -> str:
    return f"{seed_base}-floor-{floor}"


def make_player(character: CharacterDefinition | None, config: RunConfig | None = None) -> Entity:
    cfg = config or RunConfig()
    if character is None:
        return Entity(name="Hero", max_hp=cfg.player_max_hp, current_hp=cfg.player_max_hp, visual="🧙")
    return Entity(
        name=character.name,
        max_hp=cfg.player_max_hp,
        current_hp=cfg.player_max_hp,
        class_id=character.id,
        description=character.description,
        visual=character.visual,
    )


def start_run(
    player: Entity,
    roster: Sequence[Entity],
    items: ItemCatalog,
    seed_base: str,
    inventory: Sequence[str] = (),
    *,
    config: RunConfig | None = None,
    encounter_config: EncounterConfig | None = None,
) -> RunState:
    cfg = config or RunConfig()
    if len(roster) < cfg.floors:
        raise ValueError(f"Roster has {len(roster)} entries, need {cfg.floors}")
    run = RunState(
        seed_base=seed_base,
        roster=list(roster),
        items=items,
        player=player,
        inventory=list(inventory),
        config=cfg,
        encounter_config=encounter_config or EncounterConfig(),
    )
    _start_floor(run)
    return run


def _start_floor(run: RunState) -> None:
    template = run.roster[run.floor]
    opponent = replace(template, current_hp=template.max_hp, shield=0, gold=0)
    run.encounter = new_encounter(
        run.player,
        opponent,
        floor_seed(run.seed_base, run.floor),
        run.items,
        run.inventory,
        config=run.encounter_config,
        floor=run.floor,
        final_floor=run.final_floor,
    )
    run.phase = "encounter"


def conclude_floor(run: RunState) -> FloorResult | None:
    """Fold a resolved encounter back into the run.

    Returns None while the encounter is still being played. Run gold earned
    since the last kill is reported as `gold_to_bank` so the caller can
    credit the player's profile.
    """
    enc = run.encounter
    if enc is None or not enc.resolved or run.phase != "encounter":
        return None

    run.inventory = list(enc.inventory)
    run.history.extend(enc.history)

    gold_to_bank = 0
    if enc.phase != "defeat":
        run.kills.append(enc.opponent.name)
        gold_to_bank = max(0, run.player.gold - run.banked_gold)
        run.banked_gold = run.player.gold

    result = FloorResult(floor=run.floor, outcome=enc.phase, opponent=enc.opponent, gold_to_bank=gold_to_bank)
    run.results.append(result)

    if enc.phase == "defeat":
        run.phase = "defeated"
    elif enc.phase == "victory" or run.final_floor:
        run.phase = "complete"
    elif run.floor + 1 in run.config.shop_before:
        run.phase = "shop"
    else:
        advance_floor(run)
    return result


def advance_floor(run: RunState) -> None:
    """Move to the next floor: small heal, or a gold bonus when already at full HP."""
    cfg = run.config
    run.floor += 1
    p = run.player
    if p.current_hp >= p.max_hp:
        p.gold += cfg.full_hp_gold
    else:
        p.current_hp = min(p.max_hp, p.current_hp + cfg.floor_heal)
    _start_floor(run)


def buy_in_shop(run: RunState, item_id: str) -> StepResult:
    if run.phase != "shop":
        return rejected("The merchant is not here.")
    item = run.items.get(item_id)
    if item is None:
        return rejected("Unknown item.")
    if run.player.gold < item.cost:
        return rejected("Not enough gold.")
    run.player.gold -= item.cost
    # Shop spending comes out of gold that was already banked.
    run.banked_gold = min(run.banked_gold, run.player.gold)
    run.inventory.append(item_id)
    return StepResult(ok=True, events=[{"type": "ITEM_BOUGHT", "item_id": item_id, "cost": item.cost}])


def leave_shop(run: RunState) -> bool:
    if run.phase != "shop":
        return False
    advance_floor(run)
    return True


def share_text(run: RunState, date_label: str) -> str:
    if run.phase == "complete":
        status = "🏆 Tower Conquered"
    else:
        status = f"💀 Died Floor {run.floor + 1}"
    moves = "".join(run.history)
    return f"Towerflip 🏰\n{date_label}\n{status}\n{moves}\n\nPlay now!"
