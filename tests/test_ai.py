from __future__ import annotations

import random

from towerflip.engine.ai import (
    AI_PROFILES,
    AIPlan,
    find_remembered_pair,
    plan_first,
    plan_second,
    roll_boss_budget,
    spec_for,
)
from towerflip.engine.encounter import new_encounter
from towerflip.engine.state import Entity
from towerflip.paths import get_paths
from towerflip.services.content import ContentService

SEED = "2024-1-1-floor-0"


class FixedRandom(random.Random):
    """Random whose float draws are pinned; choice/sample stay seeded."""

    def __init__(self, value: float, seed: int = 7) -> None:
        super().__init__(seed)
        self.value = value

    def random(self) -> float:
        return self.value


def _load_items():
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir).load_items()


def _state(value: float = 0.99, difficulty: str = "easy"):
    player = Entity(name="Hero", max_hp=12, current_hp=12)
    opponent = Entity(name="Hollow Guard", max_hp=10, current_hp=10, difficulty=difficulty)  # type: ignore[arg-type]
    state = new_encounter(player, opponent, SEED, _load_items(), rng=FixedRandom(value))
    state.phase = "opponent_acting"
    return state


def _see(state, *positions: int) -> None:
    for pos in positions:
        state.memory.remember(pos, state.board[pos])


def test_profiles() -> None:
    assert AI_PROFILES["easy"].forget_chance == 0.5
    assert AI_PROFILES["easy"].mistake_chance == 0.6
    assert AI_PROFILES["medium"].forget_chance == 0.3
    assert AI_PROFILES["hard"].boss_budget
    assert not AI_PROFILES["medium"].boss_budget
    assert spec_for("hard") is AI_PROFILES["hard"]


def test_boss_budget_only_for_hard() -> None:
    easy = _state(difficulty="easy")
    hard = _state(difficulty="hard")
    assert roll_boss_budget(easy) == 0
    assert 1 <= roll_boss_budget(hard) <= 3
    assert 1 <= hard.ctx.boss_mistake_budget <= 3


def test_find_remembered_pair_skips_unselectable() -> None:
    state = _state()
    _see(state, 5, 0, 6)
    assert find_remembered_pair(state) == (5, 6)
    state.board[6].disabled = True
    assert find_remembered_pair(state) is None


def test_first_known_match_is_always_blundered() -> None:
    state = _state(value=0.99)
    _see(state, 5, 6)

    plan = plan_first(state)
    assert plan is not None
    assert plan.reason == "explore"
    assert plan.first not in (5, 6)
    assert state.ctx.forced_mistake_used

    plan = plan_first(state)
    assert plan == AIPlan(first=5, second=6, reason="remembered")


def test_forget_roll_discards_a_known_pair() -> None:
    state = _state(value=0.0)
    state.ctx.forced_mistake_used = True
    _see(state, 5, 6)
    plan = plan_first(state)
    assert plan is not None
    assert plan.reason == "explore"
    assert any(e.get("reason") == "forgot" for e in state.event_log)


def test_streak_cap_discards_the_pair() -> None:
    state = _state(value=0.99)
    state.ctx.forced_mistake_used = True
    state.ctx.opponent_matches_this_turn = 2
    _see(state, 5, 6)

    plan = plan_first(state)
    assert plan is not None and plan.reason == "explore"
    assert state.log[-1].message == "Hollow Guard gets greedy and loses focus..."


def test_hard_boss_spends_its_distraction_budget() -> None:
    state = _state(value=0.99, difficulty="hard")
    state.ctx.forced_mistake_used = True
    state.ctx.boss_mistake_budget = 2
    _see(state, 5, 6)

    plan = plan_first(state)
    assert plan is not None and plan.reason == "explore"
    assert state.ctx.boss_mistake_budget == 1
    assert state.log[-1].message == "Hollow Guard seems distracted by the chaos..."


def test_distraction_is_not_spent_on_a_small_board() -> None:
    state = _state(value=0.99, difficulty="hard")
    state.ctx.forced_mistake_used = True
    state.ctx.boss_mistake_budget = 2
    for pos, card in enumerate(state.board):
        if pos not in (5, 6, 11, 12):
            card.matched = True
    _see(state, 5, 6)

    plan = plan_first(state)
    assert plan == AIPlan(first=5, second=6, reason="remembered")
    assert state.ctx.boss_mistake_budget == 2


def test_passes_with_fewer_than_two_selectable() -> None:
    state = _state()
    for card in state.board[1:]:
        card.matched = True
    assert plan_first(state) is None


def test_explore_prefers_unseen_cards() -> None:
    state = _state()
    seen = list(range(0, 16, 2))
    _see(state, *seen)
    for _ in range(10):
        plan = plan_first(state)
        assert plan is not None
        assert plan.reason == "explore"
        assert plan.first not in seen


def test_guess_when_everything_is_known() -> None:
    state = _state()
    # only unpaired knowledge remains: one card of each of two pairs
    for pos, card in enumerate(state.board):
        if pos not in (0, 1):
            card.matched = True
    _see(state, 0, 1)
    plan = plan_first(state)
    assert plan is not None
    assert plan.reason == "guess"
    assert plan.first in (0, 1)


def test_second_flip_honours_a_committed_partner() -> None:
    state = _state()
    assert plan_second(state, AIPlan(first=5, second=6, reason="remembered")) == 6


def test_second_flip_misses_on_purpose_then_sneers() -> None:
    state = _state(value=0.99)
    _see(state, 6)
    plan = AIPlan(first=5, second=None, reason="explore")

    # the encounter's one guaranteed blunder
    wrong = plan_second(state, plan)
    assert wrong is not None and wrong not in (5, 6)
    assert state.log[-1].message == "Hollow Guard stumbles!"

    assert plan_second(state, plan) == 6
    assert state.log[-1].message == "Hollow Guard sneers..."


def test_second_flip_mistake_roll() -> None:
    state = _state(value=0.0)
    state.ctx.forced_mistake_used = True
    _see(state, 6)
    second = plan_second(state, AIPlan(first=5, second=None, reason="explore"))
    assert second not in (5, 6)


def test_second_flip_random_without_knowledge() -> None:
    state = _state()
    second = plan_second(state, AIPlan(first=5, second=None, reason="explore"))
    assert second is not None and second != 5
    assert not state.ctx.forced_mistake_used
