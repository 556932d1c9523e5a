from __future__ import annotations

import random

from towerflip.engine.actions import SelectCardAction, UseItemAction
from towerflip.engine.ai import plan_first
from towerflip.engine.encounter import new_encounter, replay, settle, step
from towerflip.engine.resolver import MatchOutcome, resolve_match
from towerflip.engine.serialize import snapshot
from towerflip.engine.state import Entity
from towerflip.paths import get_paths
from towerflip.services.content import ContentService

SEED = "2024-1-1-floor-0"
# Pairs on the SEED board, by position.
PAIRS = [(0, 4), (1, 13), (2, 14), (3, 15), (5, 6), (7, 8), (9, 10), (11, 12)]


def _load_items():
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir).load_items()


def _new(
    *,
    opponent_hp: int = 10,
    player_hp: int = 12,
    boss: str = "none",
    inventory: tuple[str, ...] = (),
    final_floor: bool = True,
):
    player = Entity(name="Hero", max_hp=12, current_hp=player_hp)
    opponent = Entity(name="Rotting Rat", max_hp=opponent_hp, current_hp=opponent_hp, boss=boss)  # type: ignore[arg-type]
    return new_encounter(player, opponent, SEED, _load_items(), inventory, final_floor=final_floor)


def _flip_pair(state, a: int, b: int) -> None:
    assert step(state, SelectCardAction(a)).ok
    assert step(state, SelectCardAction(b)).ok
    # run the pending reveal/mismatch transition
    assert state.scheduler.run_next()


def test_encounter_starts_on_player_turn() -> None:
    state = _new()
    assert state.phase == "player_turn"
    assert state.board[0].effect == "attack_medium"
    assert state.log[0].message == "Floor 1: Rotting Rat appears!"
    assert state.scheduler.idle


def test_opening_attack_small_pair() -> None:
    state = _new()
    _flip_pair(state, 5, 6)

    assert state.board[5].matched and state.board[6].matched
    assert state.opponent.current_hp == 10 - 2
    assert state.ctx.combo.streak == 1
    assert state.ctx.combo.owner == "player"
    assert state.phase == "player_turn"
    assert not state.scheduler.busy
    assert state.flipped == []


def test_input_is_rejected_while_a_window_is_open() -> None:
    state = _new()
    step(state, SelectCardAction(5))
    step(state, SelectCardAction(6))
    res = step(state, SelectCardAction(0))
    assert not res.ok
    assert not state.board[0].face_up
    assert state.flipped == [5, 6]


def test_select_rejects_bad_positions() -> None:
    state = _new()
    assert not step(state, SelectCardAction(99)).ok
    assert not step(state, SelectCardAction(-1)).ok
    step(state, SelectCardAction(3))
    assert step(state, SelectCardAction(3)).error == "Card already face up."
    state.board[2].disabled = True
    assert step(state, SelectCardAction(2)).error == "That card is slimed."


def test_combo_grows_then_resets_on_mismatch() -> None:
    state = _new()
    _flip_pair(state, 5, 6)
    _flip_pair(state, 11, 12)
    # second match is scaled by the streak: floor(2 * 1.5)
    assert state.opponent.current_hp == 10 - 2 - 3
    assert state.ctx.combo.streak == 2
    assert any(e.message == "COMBO!" for e in state.log)

    _flip_pair(state, 0, 1)
    assert state.ctx.combo.streak == 0
    assert state.ctx.combo.owner is None
    assert not state.board[0].face_up and not state.board[1].face_up


def test_mismatch_hands_turn_to_opponent() -> None:
    state = _new()
    _flip_pair(state, 0, 1)
    assert state.phase == "opponent_thinking"
    assert state.scheduler.pending_labels() == ["opponent_think"]
    # both flipped identities are now known to the AI
    assert state.memory.knows(0) and state.memory.knows(1)

    settle(state)
    assert state.phase == "player_turn"
    assert state.flipped == []


def test_mercy_keeps_the_turn_once() -> None:
    state = _new(inventory=("mercy",))
    assert step(state, UseItemAction("mercy")).ok
    assert state.ctx.mercy_active

    _flip_pair(state, 0, 1)
    assert state.phase == "player_turn"
    assert not state.ctx.mercy_active
    assert state.inventory == []

    _flip_pair(state, 0, 1)
    assert state.phase == "opponent_thinking"


def test_sleep_skips_the_opponent_turn() -> None:
    state = _new(inventory=("sleep",))
    assert step(state, UseItemAction("sleep")).ok
    _flip_pair(state, 0, 1)
    assert state.phase == "player_turn"
    assert not state.ctx.opponent_skipped
    assert any(e.get("type") == "OPPONENT_SKIPPED" for e in state.event_log)


def test_victory_on_final_floor_is_terminal() -> None:
    state = _new(opponent_hp=2)
    _flip_pair(state, 5, 6)
    assert state.phase == "victory"
    assert state.ctx.terminal
    assert state.scheduler.idle

    before = snapshot(state, reveal_all=True)
    assert not step(state, SelectCardAction(0)).ok
    settle(state)
    assert snapshot(state, reveal_all=True) == before


def test_opponent_defeat_mid_run_is_level_complete() -> None:
    state = _new(opponent_hp=2, final_floor=False)
    _flip_pair(state, 5, 6)
    assert state.phase == "level_complete"


def test_resolver_and_ai_are_inert_after_resolution() -> None:
    state = _new(opponent_hp=2)
    _flip_pair(state, 5, 6)
    hp = (state.player.current_hp, state.opponent.current_hp)
    board = [(c.face_up, c.matched) for c in state.board]

    assert resolve_match(state, MatchOutcome("attack_big", 6, "pair"), "opponent", 0) == []
    assert plan_first(state) is None
    assert (state.player.current_hp, state.opponent.current_hp) == hp
    assert [(c.face_up, c.matched) for c in state.board] == board


def test_burn_ticks_when_the_player_turn_ends() -> None:
    state = _new(boss="burn")
    state.player.shield = 1
    _flip_pair(state, 0, 1)
    # two stacks added, one consumed; the shield took the tick
    assert state.ctx.burn_stacks == 1
    assert state.player.shield == 0
    assert state.player.current_hp == 12


def test_burn_can_finish_the_player() -> None:
    state = _new(boss="burn", player_hp=1)
    _flip_pair(state, 0, 1)
    assert state.phase == "defeat"
    assert state.scheduler.idle


def test_slime_boss_disables_a_same_kind_pair() -> None:
    state = _new(boss="slime")
    _flip_pair(state, 0, 1)
    disabled = [i for i, c in enumerate(state.board) if c.disabled]
    assert len(disabled) == 2
    assert state.board[disabled[0]].effect == state.board[disabled[1]].effect


def test_confusion_swaps_identities_after_a_window() -> None:
    state = _new(boss="confusion")
    effects = [c.effect for c in state.board]
    ids = [c.id for c in state.board]

    _flip_pair(state, 0, 1)
    assert state.scheduler.pending_labels() == ["confusion_swap"]
    assert not step(state, SelectCardAction(2)).ok

    assert state.scheduler.run_next()
    swap = next(e for e in state.event_log if e.get("type") == "CONFUSED")
    a, b = swap["positions"]  # type: ignore[misc]
    assert state.board[a].effect == effects[b]
    assert state.board[b].effect == effects[a]
    assert [c.id for c in state.board] == ids
    assert state.phase == "opponent_thinking"


def test_clearing_the_board_reshuffles_and_keeps_the_turn() -> None:
    state = _new(opponent_hp=99)
    for a, b in PAIRS:
        _flip_pair(state, a, b)
    assert all(c.matched for c in state.board)
    assert state.scheduler.pending_labels() == ["reshuffle"]

    assert state.scheduler.run_next()
    assert state.ctx.round == 1
    assert state.board[0].id == "card-r1-0"
    assert not any(c.matched for c in state.board)
    assert len(state.memory) == 0
    assert state.phase == "player_turn"


def test_pairing_invariant_holds_through_a_slime_fight() -> None:
    state = _new(boss="slime", opponent_hp=30, player_hp=12)
    state.player.max_hp = 99
    state.player.current_hp = 99
    for _ in range(200):
        if state.resolved:
            break
        counts: dict[str, int] = {}
        for c in state.board:
            if not c.matched and not c.disabled and not c.wild:
                counts[c.effect] = counts.get(c.effect, 0) + 1
        assert all(n % 2 == 0 for n in counts.values())
        options = state.selectable_positions()
        if len(options) < 2:
            settle(state)
            continue
        step(state, SelectCardAction(options[0]))
        step(state, SelectCardAction(options[1]))
        settle(state)


def test_replay_is_deterministic() -> None:
    actions = [SelectCardAction(p) for p in (0, 1, 2, 3, 4, 7, 8, 9, 5, 6, 10, 12)]

    state = _new()
    for a in actions:
        step(state, a)
        settle(state)
        if state.resolved:
            break

    player = Entity(name="Hero", max_hp=12, current_hp=12)
    opponent = Entity(name="Rotting Rat", max_hp=10, current_hp=10)
    again = replay(player, opponent, SEED, _load_items(), actions)

    assert snapshot(state, reveal_all=True) == snapshot(again, reveal_all=True)
    assert state.event_log == again.event_log


def test_snapshot_hides_face_down_cards() -> None:
    state = _new()
    step(state, SelectCardAction(3))
    snap = snapshot(state)
    board = snap["board"]
    assert board[3]["effect"] == "attack_big"  # type: ignore[index]
    assert board[0]["effect"] is None  # type: ignore[index]
    assert snap["action_log"] == [{"type": "select", "position": 3}]
    assert snapshot(state, reveal_all=True)["board"][0]["effect"] == "attack_medium"  # type: ignore[index]


class _Steady(random.Random):
    """Float rolls never fall under any AI forget/miss chance."""

    def random(self) -> float:
        return 0.99


def _leave_unmatched(state, *positions: int) -> None:
    for pos, card in enumerate(state.board):
        if pos not in positions:
            card.matched = True


def test_matched_cards_are_purged_from_ai_memory() -> None:
    state = _new(inventory=("hourglass",))
    assert step(state, UseItemAction("hourglass")).ok
    assert state.memory.knows(5) and state.memory.knows(6)

    _flip_pair(state, 5, 6)
    assert state.board[5].matched and state.board[6].matched
    assert not state.memory.knows(5)
    assert not state.memory.knows(6)
    assert state.memory.knows(0)


def test_slime_leaving_no_possible_match_reshuffles() -> None:
    # 0-3 have lost their partners; 5/6 is the only real pair left
    state = _new(boss="slime")
    _leave_unmatched(state, 0, 1, 2, 3, 5, 6)

    _flip_pair(state, 0, 1)
    assert state.board[5].disabled and state.board[6].disabled
    assert state.scheduler.pending_labels() == ["reshuffle"]
    assert state.phase == "opponent_thinking"

    assert state.scheduler.run_next()
    assert state.ctx.round == 1
    assert not any(c.disabled or c.matched for c in state.board)
    assert state.phase == "opponent_thinking"
    assert state.scheduler.pending_labels() == ["opponent_think"]


def test_stuck_board_under_mercy_reshuffles_on_the_player_turn() -> None:
    state = _new(boss="slime", inventory=("mercy",))
    _leave_unmatched(state, 0, 1, 2, 3, 5, 6)
    assert step(state, UseItemAction("mercy")).ok

    _flip_pair(state, 0, 1)
    assert state.scheduler.pending_labels() == ["reshuffle"]
    assert not step(state, SelectCardAction(2)).ok

    state.scheduler.run_next()
    assert state.ctx.round == 1
    assert state.phase == "player_turn"
    assert step(state, SelectCardAction(2)).ok


def test_opponent_clearing_the_board_keeps_its_turn() -> None:
    player = Entity(name="Hero", max_hp=12, current_hp=12)
    opponent = Entity(name="Rotting Rat", max_hp=10, current_hp=10)
    state = new_encounter(player, opponent, SEED, _load_items(), rng=_Steady(3))
    _leave_unmatched(state, 0, 1, 5, 6)
    state.ctx.forced_mistake_used = True
    for pos in (5, 6):
        state.memory.remember(pos, state.board[pos])

    # player misses on the two orphans; the AI then takes the last pair
    _flip_pair(state, 0, 1)
    assert state.phase == "opponent_thinking"
    for _ in range(10):
        if state.scheduler.pending_labels() == ["reshuffle"]:
            break
        assert state.scheduler.run_next()
    assert state.board[5].matched and state.board[6].matched
    assert state.player.current_hp == 10
    assert state.event_log[-1] == {"type": "RESHUFFLE_PENDING", "resume": "opponent"}

    assert state.scheduler.run_next()
    assert state.ctx.round == 1
    assert state.phase == "opponent_thinking"
    assert state.scheduler.pending_labels() == ["opponent_think"]
