from __future__ import annotations

from collections.abc import Sequence

from .board import Card
from .resolver import apply_damage, apply_heal
from .state import EncounterState, Event, StepResult, rejected
from .types import (
    BloodRevealItem,
    ClearMemoryItem,
    EffectKind,
    FlagItem,
    HealItem,
    ItemDefinition,
    RevealItem,
    RevealPairItem,
    WildcardItem,
)

# ---- Temporary reveals ----


def peek(state: EncounterState, positions: Sequence[int], duration: float, *, source: str) -> list[int]:
    """Show cards to both sides for `duration`, then hide them again.

    The AI memory records each card the instant it becomes visible.
    """
    shown: list[Card] = []
    revealed_positions: list[int] = []
    for pos in positions:
        card = state.board[pos]
        if card.matched or card.face_up:
            continue
        card.revealed = True
        state.memory.remember(pos, card)
        shown.append(card)
        revealed_positions.append(pos)
    if not shown:
        return []
    state.emit({"type": "PEEK", "source": source, "positions": revealed_positions})
    state.scheduler.schedule(duration, f"{source}_hide", lambda: _end_peek(state, shown), blocking=False)
    return revealed_positions


def _end_peek(state: EncounterState, cards: list[Card]) -> None:
    if state.resolved:
        return
    for card in cards:
        card.revealed = False


def oracle_foresight(state: EncounterState) -> list[int]:
    hidden = state.hidden_positions()
    if not hidden:
        return []
    pos = state.rng.choice(hidden)
    state.add_log("Foresight! A card reveals itself...", "info")
    return peek(state, [pos], state.config.peek_window * 0.6, source="foresight")


# ---- Boss traits ----


def add_burn(state: EncounterState) -> int:
    added = state.config.burn_stacks_per_miss
    state.ctx.burn_stacks += added
    state.emit({"type": "BURN_ADDED", "stacks": state.ctx.burn_stacks})
    state.add_log(f"{state.opponent.name} sets you ablaze! ({state.ctx.burn_stacks} burn)", "burn")
    return added


def tick_burn(state: EncounterState) -> bool:
    """Consume one burn stack at the end of the player's turn."""
    if state.resolved or state.ctx.burn_stacks <= 0:
        return False
    state.ctx.burn_stacks -= 1
    absorbed, to_hp = apply_damage(state.player, state.config.burn_damage)
    state.emit({"type": "BURN_TICK", "absorbed": absorbed, "to_hp": to_hp, "stacks": state.ctx.burn_stacks})
    state.add_log(f"You burn for {state.config.burn_damage} damage.", "burn")
    return True


def slime_cards(state: EncounterState) -> list[int]:
    """Disable a same-kind pair of unmatched cards.

    Disabling whole pairs keeps every kind's selectable count even. Suppressed
    entirely while `slime_floor` or fewer cards are selectable (face-down,
    unmatched and not already slimed), so it can never softlock the board.
    """
    cfg = state.config
    selectable = state.selectable_positions()
    if len(selectable) <= cfg.slime_floor or len(selectable) - cfg.slime_count < 2:
        state.add_log("The slime finds nothing to cling to.", "info")
        return []

    groups: dict[EffectKind, list[int]] = {}
    for pos in selectable:
        card = state.board[pos]
        if card.wild:
            continue
        groups.setdefault(card.effect, []).append(pos)

    disabled: list[int] = []
    while len(disabled) < cfg.slime_count:
        kinds = sorted(k for k, positions in groups.items() if len(positions) >= 2)
        if not kinds:
            break
        kind = state.rng.choice(kinds)
        pair = state.rng.sample(groups[kind], 2)
        for pos in pair:
            groups[kind].remove(pos)
            state.board[pos].disabled = True
            disabled.append(pos)

    if disabled:
        state.emit({"type": "SLIMED", "positions": sorted(disabled)})
        state.add_log(f"{state.opponent.name} slimes {len(disabled)} cards!", "enemy")
    return disabled


def pick_confusion_pair(state: EncounterState) -> tuple[int, int] | None:
    candidates = [i for i in state.hidden_positions() if state.board[i].selectable]
    if len(candidates) < 2:
        return None
    a, b = state.rng.sample(candidates, 2)
    return a, b


def swap_identities(state: EncounterState, a: int, b: int) -> None:
    """Exchange what two cards are while each keeps its id and position."""
    ca = state.board[a]
    cb = state.board[b]
    ca.effect, cb.effect = cb.effect, ca.effect
    ca.wild, cb.wild = cb.wild, ca.wild
    state.emit({"type": "CONFUSED", "positions": [a, b]})
    state.add_log("The cards shift when you aren't looking...", "enemy")


# ---- Consumables ----


def _pair_candidates(state: EncounterState) -> list[tuple[int, int]]:
    groups: dict[EffectKind, list[int]] = {}
    for pos in state.hidden_positions():
        card = state.board[pos]
        if card.wild:
            continue
        groups.setdefault(card.effect, []).append(pos)
    return [(ps[0], ps[1]) for _, ps in sorted(groups.items()) if len(ps) >= 2]


def _wild_candidates(state: EncounterState) -> list[int]:
    return [i for i in state.hidden_positions() if not state.board[i].wild]


def _precheck(state: EncounterState, item: ItemDefinition) -> str | None:
    action = item.action
    ctx = state.ctx
    if isinstance(action, (RevealItem, BloodRevealItem)) and not state.hidden_positions():
        return "Nothing left to reveal."
    if isinstance(action, RevealPairItem) and not _pair_candidates(state):
        return "No hidden pair remains."
    if isinstance(action, BloodRevealItem) and state.player.current_hp <= action.hp_cost:
        return "Not enough HP for the ritual."
    if isinstance(action, WildcardItem) and not _wild_candidates(state):
        return "No card can be transformed."
    if isinstance(action, FlagItem):
        active = {
            "mercy": ctx.mercy_active,
            "mirror": ctx.mirror_active,
            "opponent_skipped": ctx.opponent_skipped,
        }[action.flag]
        if active:
            return f"{item.name} is already active."
    return None


def use_item(state: EncounterState, item_id: str) -> StepResult:
    """Consume one item from the inventory and apply it."""
    if state.resolved:
        return rejected("Encounter already resolved.")
    if state.phase != "player_turn":
        return rejected("Items can only be used on your turn.")
    if state.scheduler.busy:
        return rejected("Wait for the board to settle.")
    if item_id not in state.inventory:
        return rejected("You don't have that item.")
    item = state.items.get(item_id)
    if item is None:
        return rejected("Unknown item.")
    problem = _precheck(state, item)
    if problem is not None:
        return rejected(problem)

    state.inventory.remove(item_id)
    before = len(state.event_log)
    state.emit({"type": "ITEM_USED", "item_id": item_id})
    state.add_log(f"You use {item.name}.", "item")

    action = item.action
    ctx = state.ctx
    if isinstance(action, RevealItem):
        hidden = state.hidden_positions()
        picks = state.rng.sample(hidden, min(action.count, len(hidden)))
        peek(state, picks, action.duration, source=item_id)

    elif isinstance(action, RevealPairItem):
        pair = state.rng.choice(_pair_candidates(state))
        peek(state, list(pair), action.duration, source=item_id)

    elif isinstance(action, FlagItem):
        if action.flag == "mercy":
            ctx.mercy_active = True
            state.add_log("Mercy will spare your next miss.", "item")
        elif action.flag == "mirror":
            ctx.mirror_active = True
            state.add_log("Your next match will be mirrored.", "item")
        else:
            ctx.opponent_skipped = True
            state.add_log(f"{state.opponent.name} grows drowsy...", "item")

    elif isinstance(action, ClearMemoryItem):
        state.memory.clear()
        state.add_log(f"{state.opponent.name} forgets everything it saw.", "item")

    elif isinstance(action, BloodRevealItem):
        state.player.current_hp -= action.hp_cost
        state.emit({"type": "HP_SPENT", "amount": action.hp_cost})
        hidden = state.hidden_positions()
        picks = state.rng.sample(hidden, min(action.count, len(hidden)))
        peek(state, picks, action.duration, source=item_id)

    elif isinstance(action, WildcardItem):
        pos = state.rng.choice(_wild_candidates(state))
        state.board[pos].wild = True
        state.emit({"type": "WILDCARD", "position": pos})
        state.add_log("A card shimmers with trickery.", "item")

    elif isinstance(action, HealItem):
        healed, shielded = apply_heal(
            state.player, action.amount, overflow_to_shield=state.player.class_id == "acolyte"
        )
        state.emit({"type": "HEAL", "source": "item", "amount": action.amount, "healed": healed, "shielded": shielded})
        state.add_log(f"You recover {healed} HP.", "heal")

    events: list[Event] = state.event_log[before:]
    return StepResult(ok=True, events=list(events))
