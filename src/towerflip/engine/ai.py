from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .state import EncounterState
from .types import Difficulty, EffectKind

PlanReason = Literal["remembered", "explore", "guess"]


@dataclass(frozen=True)
class AISpec:
    """Tuning for the opponent's imperfect memory.

    forget_chance:  probability of ignoring a remembered pair at turn start
    mistake_chance: probability of deliberately missing a known partner
                    after the first flip
    guaranteed_mistake: blunder exactly once per encounter the first time
                    the AI actually knows a match
    boss_budget:    roll a small per-encounter budget of "distracted" turns
                    instead of lowering raw skill further
    """

    forget_chance: float
    mistake_chance: float
    guaranteed_mistake: bool = True
    boss_budget: bool = False


AI_PROFILES: dict[Difficulty, AISpec] = {
    "easy": AISpec(forget_chance=0.5, mistake_chance=0.6),
    "medium": AISpec(forget_chance=0.3, mistake_chance=0.3),
    "hard": AISpec(forget_chance=0.4, mistake_chance=0.6, boss_budget=True),
}


def spec_for(difficulty: Difficulty) -> AISpec:
    return AI_PROFILES.get(difficulty, AI_PROFILES["medium"])


@dataclass(frozen=True)
class AIPlan:
    first: int
    # Partner committed to at turn start when a remembered pair survived.
    second: int | None
    reason: PlanReason


def roll_boss_budget(state: EncounterState, spec: AISpec | None = None) -> int:
    spec = spec or spec_for(state.opponent.difficulty)
    if not spec.boss_budget:
        return 0
    lo, hi = state.config.boss_budget_range
    return state.rng.randint(lo, hi)


def find_remembered_pair(state: EncounterState) -> tuple[int, int] | None:
    """First two remembered, still selectable, non-wild positions sharing an effect."""
    seen: dict[EffectKind, int] = {}
    for pos, mem in state.memory.items():
        if mem.wild or not state.board[pos].selectable:
            continue
        if mem.effect in seen:
            return seen[mem.effect], pos
        seen[mem.effect] = pos
    return None


def streak_capped(state: EncounterState) -> bool:
    return state.ctx.opponent_matches_this_turn >= state.config.opponent_streak_cap


def _take_forced_mistake(state: EncounterState, spec: AISpec) -> bool:
    if spec.guaranteed_mistake and not state.ctx.forced_mistake_used:
        state.ctx.forced_mistake_used = True
        return True
    return False


def plan_first(state: EncounterState, spec: AISpec | None = None) -> AIPlan | None:
    """Pick the first card of the AI turn, or None to pass the turn back."""
    if state.resolved:
        return None
    spec = spec or spec_for(state.opponent.difficulty)
    ctx = state.ctx
    name = state.opponent.name

    selectable = state.selectable_positions()
    if len(selectable) < 2:
        return None

    pair = find_remembered_pair(state)

    capped = streak_capped(state)
    if pair is not None and capped:
        state.add_log(f"{name} gets greedy and loses focus...", "info")
        state.emit({"type": "AI_DISCARD", "reason": "streak_cap"})
        pair = None

    if (
        pair is not None
        and spec.boss_budget
        and ctx.boss_mistake_budget > 0
        and state.unmatched_count() > 4
    ):
        ctx.boss_mistake_budget -= 1
        state.add_log(f"{name} seems distracted by the chaos...", "info")
        state.emit({"type": "AI_DISCARD", "reason": "distracted", "budget_left": ctx.boss_mistake_budget})
        pair = None

    if pair is not None:
        forced = _take_forced_mistake(state, spec)
        if forced or state.rng.random() < spec.forget_chance:
            state.emit({"type": "AI_DISCARD", "reason": "forced" if forced else "forgot"})
            pair = None

    if pair is not None:
        return AIPlan(first=pair[0], second=pair[1], reason="remembered")

    unknown = [i for i in selectable if i not in state.memory]
    if unknown:
        return AIPlan(first=state.rng.choice(unknown), second=None, reason="explore")
    return AIPlan(first=state.rng.choice(selectable), second=None, reason="guess")


def _remembered_partner(state: EncounterState, first: int) -> int | None:
    card = state.board[first]
    wild_partner: int | None = None
    for pos, mem in state.memory.items():
        if pos == first or not state.board[pos].selectable:
            continue
        if card.wild:
            return pos
        if mem.wild:
            if wild_partner is None:
                wild_partner = pos
            continue
        if mem.effect == card.effect:
            return pos
    return wild_partner


def plan_second(state: EncounterState, plan: AIPlan, spec: AISpec | None = None) -> int | None:
    """Pick the second card once the first is face up.

    Returns None only if nothing else is selectable.
    """
    if plan.second is not None:
        return plan.second

    spec = spec or spec_for(state.opponent.difficulty)
    name = state.opponent.name
    options = [i for i in state.selectable_positions() if i != plan.first]
    if not options:
        return None

    partner = _remembered_partner(state, plan.first)
    if partner is None:
        return state.rng.choice(options)

    forced = _take_forced_mistake(state, spec)
    if streak_capped(state) or forced or state.rng.random() < spec.mistake_chance:
        wrong = [i for i in options if i != partner]
        if wrong:
            state.add_log(f"{name} stumbles!", "info")
            state.emit({"type": "AI_MISS_ON_PURPOSE", "partner": partner})
            return state.rng.choice(wrong)
        return partner

    state.add_log(f"{name} sneers...", "enemy")
    return partner
