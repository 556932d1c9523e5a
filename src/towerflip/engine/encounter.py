from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from itertools import combinations

from .actions import Action, SelectCardAction, UseItemAction
from .ai import plan_first, plan_second, roll_boss_budget
from .board import generate_board, seed_hash
from .resolver import MatchOutcome, cards_match, combo_callout, resolve_match
from .specials import (
    add_burn,
    oracle_foresight,
    pick_confusion_pair,
    slime_cards,
    swap_identities,
    tick_burn,
    use_item,
)
from .state import EncounterConfig, EncounterState, Entity, StepResult, rejected
from .types import ItemCatalog, Side


def new_encounter(
    player: Entity,
    opponent: Entity,
    seed: str,
    items: ItemCatalog,
    inventory: Sequence[str] = (),
    *,
    config: EncounterConfig | None = None,
    rng: random.Random | None = None,
    floor: int = 0,
    final_floor: bool = True,
) -> EncounterState:
    """Create an encounter and deal its first board.

    Randomness for AI mistakes and special mechanics comes from `rng`; by
    default it is seeded from `seed` so a whole encounter replays exactly.
    """
    cfg = config or EncounterConfig()
    state = EncounterState(
        config=cfg,
        seed=seed,
        rng=rng if rng is not None else random.Random(seed_hash(seed)),
        board=[],
        player=player,
        opponent=opponent,
        items=items,
        inventory=list(inventory),
        floor=floor,
        final_floor=final_floor,
    )
    _begin(state)
    return state


def _begin(state: EncounterState) -> None:
    if state.phase != "loading":
        return
    state.ctx.boss_mistake_budget = roll_boss_budget(state)
    state.board = generate_board(state.seed)
    state.memory.clear()
    state.phase = "player_turn"
    state.emit(
        {
            "type": "ENCOUNTER_STARTED",
            "seed": state.seed,
            "opponent": state.opponent.name,
            "boss": state.opponent.boss,
        }
    )
    state.add_log(f"Floor {state.floor + 1}: {state.opponent.name} appears!", "enemy")
    state.add_log(state.opponent.description or "Prepare for battle!", "info")


# ---- Shared helpers ----


def _flip(state: EncounterState, pos: int, side: Side) -> None:
    card = state.board[pos]
    card.face_up = True
    card.revealed = False
    state.flipped.append(pos)
    state.memory.remember(pos, card)
    state.emit({"type": "CARD_FLIPPED", "side": side, "position": pos, "effect": card.effect, "wild": card.wild})


def _unflip(state: EncounterState, positions: Iterable[int]) -> None:
    for pos in positions:
        state.board[pos].face_up = False
    state.flipped.clear()


def board_exhausted(state: EncounterState) -> bool:
    """True when no two remaining selectable cards can still form a match."""
    remaining = [c for c in state.board if c.selectable]
    for a, b in combinations(remaining, 2):
        if cards_match(a, b, state.player.class_id) is not None:
            return False
    return True


def _check_terminal(state: EncounterState) -> bool:
    if state.ctx.terminal:
        return True
    if state.player.current_hp <= 0:
        state.phase = "defeat"
        state.add_log("You have fallen...", "enemy")
    elif state.opponent.current_hp <= 0:
        state.phase = "victory" if state.final_floor else "level_complete"
        state.add_log(f"{state.opponent.name} is defeated!", "player")
    else:
        return False
    state.ctx.terminal = True
    cancelled = state.scheduler.cancel_all()
    state.flipped.clear()
    state.emit({"type": "ENCOUNTER_RESOLVED", "outcome": state.phase, "cancelled": cancelled})
    return True


def _evaluate_pair(state: EncounterState, side: Side) -> None:
    i, j = state.flipped
    cfg = state.config
    class_id = state.player.class_id if side == "player" else None
    outcome = cards_match(state.board[i], state.board[j], class_id)
    if outcome is not None:
        delay = cfg.reveal_delay if side == "player" else cfg.ai_match_delay
        state.scheduler.schedule(delay, "resolve_match", lambda: _resolve_pair(state, i, j, outcome, side))
        return
    if side == "player":
        state.scheduler.schedule(cfg.mismatch_delay, "player_mismatch", lambda: _player_mismatch(state, i, j))
    else:
        state.scheduler.schedule(cfg.mismatch_delay, "opponent_mismatch", lambda: _opponent_mismatch(state, i, j))


# ---- Match / mismatch continuations ----


def _resolve_pair(state: EncounterState, i: int, j: int, outcome: MatchOutcome, side: Side) -> None:
    if state.resolved:
        return
    ctx = state.ctx
    cfg = state.config

    for pos in (i, j):
        state.board[pos].matched = True
        state.memory.forget(pos)
    state.flipped.clear()

    streak = ctx.combo.streak_for(side)
    state.emit({"type": "MATCH", "side": side, "positions": [i, j], "effect": outcome.effect, "rule": outcome.rule})
    callout = combo_callout(streak)
    if callout is not None:
        state.add_log(callout, "info")

    if side == "opponent":
        ctx.opponent_matches_this_turn += 1
    else:
        ctx.opponent_matches_this_turn = 0
        ctx.player_match_chain += 1

    resolve_match(state, outcome, side, streak)
    ctx.combo.bump(side)

    if _check_terminal(state):
        return

    if (
        side == "player"
        and state.player.class_id == "oracle"
        and ctx.player_match_chain % cfg.oracle_chain == 0
    ):
        oracle_foresight(state)

    if board_exhausted(state):
        _schedule_reshuffle(state, side)
        return
    if side == "opponent":
        state.scheduler.schedule(cfg.ai_chain_delay, "opponent_continue", lambda: _opponent_act(state))


def _player_mismatch(state: EncounterState, i: int, j: int) -> None:
    if state.resolved:
        return
    _unflip(state, (i, j))
    state.ctx.combo.reset()
    state.ctx.player_match_chain = 0
    state.emit({"type": "MISMATCH", "side": "player", "positions": [i, j]})

    boss = state.opponent.boss
    if boss == "burn":
        add_burn(state)
    elif boss == "slime":
        slime_cards(state)
    elif boss == "confusion":
        pair = pick_confusion_pair(state)
        if pair is not None:
            state.add_log("The air twists around the board...", "enemy")
            state.scheduler.schedule(
                state.config.confusion_window, "confusion_swap", lambda: _commit_confusion(state, pair)
            )
            return
    _end_player_turn(state)


def _commit_confusion(state: EncounterState, pair: tuple[int, int]) -> None:
    if state.resolved:
        return
    swap_identities(state, *pair)
    _end_player_turn(state)


def _end_player_turn(state: EncounterState) -> None:
    ctx = state.ctx
    # Boss trait penalties above always apply; Mercy only decides who moves next.
    if ctx.mercy_active:
        ctx.mercy_active = False
        state.phase = "player_turn"
        state.emit({"type": "MERCY_USED"})
        state.add_log("Mercy! You keep your turn.", "item")
        _reshuffle_if_stuck(state, "player")
        return

    if tick_burn(state) and _check_terminal(state):
        return

    if ctx.opponent_skipped:
        ctx.opponent_skipped = False
        state.phase = "player_turn"
        state.emit({"type": "OPPONENT_SKIPPED"})
        state.add_log(f"{state.opponent.name} is asleep and skips its turn.", "item")
        _reshuffle_if_stuck(state, "player")
        return

    state.phase = "opponent_thinking"
    ctx.opponent_matches_this_turn = 0
    state.emit({"type": "TURN_PASSED", "to": "opponent"})
    if _reshuffle_if_stuck(state, "opponent"):
        return
    state.scheduler.schedule(state.config.ai_think_delay, "opponent_think", lambda: _opponent_act(state))


def _reshuffle_if_stuck(state: EncounterState, resume: Side) -> bool:
    # Slime can disable the last real pair, leaving only cards nobody can match.
    if not board_exhausted(state):
        return False
    _schedule_reshuffle(state, resume)
    return True


def _opponent_act(state: EncounterState) -> None:
    if state.resolved:
        return
    state.phase = "opponent_acting"
    plan = plan_first(state)
    if plan is None:
        _opponent_pass(state)
        return
    _flip(state, plan.first, "opponent")
    second = plan_second(state, plan)
    if second is None:
        _unflip(state, [plan.first])
        _opponent_pass(state)
        return
    state.scheduler.schedule(
        state.config.ai_flip_delay, "opponent_second_flip", lambda: _opponent_second_flip(state, second)
    )


def _opponent_second_flip(state: EncounterState, pos: int) -> None:
    if state.resolved:
        return
    if not state.board[pos].selectable:
        _unflip(state, list(state.flipped))
        _opponent_pass(state)
        return
    _flip(state, pos, "opponent")
    _evaluate_pair(state, "opponent")


def _opponent_pass(state: EncounterState) -> None:
    state.phase = "player_turn"
    state.emit({"type": "AI_PASS"})
    state.add_log(f"{state.opponent.name} hesitates and passes.", "enemy")


def _opponent_mismatch(state: EncounterState, i: int, j: int) -> None:
    if state.resolved:
        return
    _unflip(state, (i, j))
    state.ctx.combo.reset()
    state.ctx.opponent_matches_this_turn = 0
    state.phase = "player_turn"
    state.emit({"type": "MISMATCH", "side": "opponent", "positions": [i, j]})
    state.add_log("Your turn!", "info")


# ---- Reshuffle ----


def _schedule_reshuffle(state: EncounterState, resume: Side) -> None:
    state.add_log("Board reshuffling...", "info")
    state.emit({"type": "RESHUFFLE_PENDING", "resume": resume})
    state.scheduler.schedule(state.config.reshuffle_settle, "reshuffle", lambda: _reshuffle(state, resume))


def _reshuffle(state: EncounterState, resume: Side) -> None:
    if state.resolved:
        return
    ctx = state.ctx
    ctx.round += 1
    state.board = generate_board(state.seed, ctx.round)
    state.flipped.clear()
    state.memory.clear()
    ctx.reset_round()
    state.emit({"type": "RESHUFFLED", "round": ctx.round, "resume": resume})

    if resume == "opponent":
        state.phase = "opponent_thinking"
        state.add_log(f"{state.opponent.name} prepares to continue...", "enemy")
        state.scheduler.schedule(state.config.ai_think_delay, "opponent_think", lambda: _opponent_act(state))
    else:
        state.phase = "player_turn"
        state.add_log("Your turn!", "info")


# ---- Public entry points ----


def select_card(state: EncounterState, position: int) -> StepResult:
    if state.resolved:
        return rejected("Encounter already resolved.")
    if state.phase != "player_turn":
        return rejected("Not your turn.")
    if state.scheduler.busy:
        return rejected("Wait for the board to settle.")
    if len(state.flipped) >= 2:
        return rejected("Two cards are already face up.")
    if position < 0 or position >= len(state.board):
        return rejected("Invalid position.")
    card = state.board[position]
    if card.matched:
        return rejected("Card already matched.")
    if card.disabled:
        return rejected("That card is slimed.")
    if card.face_up:
        return rejected("Card already face up.")

    before = len(state.event_log)
    _flip(state, position, "player")
    if len(state.flipped) == 2:
        _evaluate_pair(state, "player")
    return StepResult(ok=True, events=state.event_log[before:])


def step(state: EncounterState, action: Action) -> StepResult:
    """Apply one player input.

    Input is only ever validated and queued here; the consequences unfold as
    the scheduler clock advances (`advance` / `settle`).
    """
    if state.resolved:
        return rejected("Encounter already resolved.")
    if isinstance(action, SelectCardAction):
        result = select_card(state, action.position)
    elif isinstance(action, UseItemAction):
        result = use_item(state, action.item_id)
    else:
        return rejected("Unknown action.")
    if result.ok:
        state.action_log.append(action)
    return result


def advance(state: EncounterState, dt: float) -> int:
    return state.scheduler.advance(dt)


def settle(state: EncounterState) -> int:
    """Run every pending transition, including whole AI turns."""
    return state.scheduler.run_until_idle()


def replay(
    player: Entity,
    opponent: Entity,
    seed: str,
    items: ItemCatalog,
    actions: Iterable[Action],
    inventory: Sequence[str] = (),
    config: EncounterConfig | None = None,
) -> EncounterState:
    state = new_encounter(player, opponent, seed, items, inventory, config=config)
    for a in actions:
        step(state, a)
        settle(state)
        if state.resolved:
            break
    return state
