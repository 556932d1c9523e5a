from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Iterator

from .actions import Action
from .board import Card
from .scheduler import Scheduler
from .types import (
    TERMINAL_PHASES,
    BossKind,
    ClassId,
    Difficulty,
    EffectKind,
    ItemCatalog,
    LogKind,
    Phase,
    Side,
)

Event = dict[str, object]


@dataclass(frozen=True)
class EncounterConfig:
    # pacing windows (seconds on the scheduler clock)
    reveal_delay: float = 0.5
    mismatch_delay: float = 1.0
    ai_think_delay: float = 1.5
    ai_flip_delay: float = 0.8
    ai_match_delay: float = 0.8
    ai_chain_delay: float = 1.0
    reshuffle_settle: float = 1.5
    confusion_window: float = 1.0
    peek_window: float = 2.5

    combo_step_halves: int = 1  # +50% per streak
    opponent_streak_cap: int = 2
    boss_budget_range: tuple[int, int] = (1, 3)

    burn_stacks_per_miss: int = 2
    burn_damage: int = 1
    slime_count: int = 2
    slime_floor: int = 4

    appraiser_gold_bonus: int = 3
    appraiser_essence: int = 1
    oracle_chain: int = 2


@dataclass
class Entity:
    name: str
    max_hp: int
    current_hp: int
    shield: int = 0
    gold: int = 0
    difficulty: Difficulty = "easy"
    boss: BossKind = "none"
    class_id: ClassId | None = None
    description: str = ""
    visual: str = ""
    essence: int = 0

    @property
    def alive(self) -> bool:
        return self.current_hp > 0


@dataclass
class Combo:
    streak: int = 0
    owner: Side | None = None

    def streak_for(self, side: Side) -> int:
        return self.streak if self.owner == side else 0

    def bump(self, side: Side) -> None:
        if self.owner != side:
            self.streak = 0
        self.owner = side
        self.streak += 1

    def reset(self) -> None:
        self.streak = 0
        self.owner = None


@dataclass
class EncounterContext:
    """All mutable game-control flags of one encounter, threaded through every call."""

    terminal: bool = False
    combo: Combo = field(default_factory=Combo)
    round: int = 0

    burn_stacks: int = 0
    mercy_active: bool = False
    mirror_active: bool = False
    opponent_skipped: bool = False

    boss_mistake_budget: int = 0
    forced_mistake_used: bool = False
    opponent_matches_this_turn: int = 0
    player_match_chain: int = 0

    def reset_round(self) -> None:
        self.burn_stacks = 0
        self.opponent_matches_this_turn = 0
        self.player_match_chain = 0


@dataclass(frozen=True)
class Remembered:
    effect: EffectKind
    wild: bool = False


class AIMemory:
    """Opponent's record of card identities it has seen, by board position."""

    def __init__(self) -> None:
        self._seen: dict[int, Remembered] = {}

    def remember(self, pos: int, card: Card) -> None:
        if card.matched:
            return
        # re-insert so iteration order follows recency of the sighting
        self._seen.pop(pos, None)
        self._seen[pos] = Remembered(effect=card.effect, wild=card.wild)

    def forget(self, pos: int) -> None:
        self._seen.pop(pos, None)

    def clear(self) -> None:
        self._seen.clear()

    def get(self, pos: int) -> Remembered | None:
        return self._seen.get(pos)

    def knows(self, pos: int) -> bool:
        return pos in self._seen

    def items(self) -> Iterator[tuple[int, Remembered]]:
        return iter(list(self._seen.items()))

    def positions(self) -> list[int]:
        return list(self._seen.keys())

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, pos: object) -> bool:
        return pos in self._seen


@dataclass
class StepResult:
    ok: bool
    events: list[Event]
    error: str | None = None


def rejected(error: str) -> StepResult:
    return StepResult(ok=False, events=[], error=error)


@dataclass(frozen=True)
class LogEntry:
    seq: int
    kind: LogKind
    message: str


@dataclass
class EncounterState:
    config: EncounterConfig
    seed: str
    rng: random.Random
    board: list[Card]
    player: Entity
    opponent: Entity
    items: ItemCatalog
    inventory: list[str]
    ctx: EncounterContext = field(default_factory=EncounterContext)
    memory: AIMemory = field(default_factory=AIMemory)
    scheduler: Scheduler = field(default_factory=Scheduler)
    phase: Phase = "loading"
    floor: int = 0
    final_floor: bool = True
    flipped: list[int] = field(default_factory=list)
    log: list[LogEntry] = field(default_factory=list)
    event_log: list[Event] = field(default_factory=list)
    history: list[str] = field(default_factory=list)
    action_log: list[Action] = field(default_factory=list)

    def entity(self, side: Side) -> Entity:
        return self.player if side == "player" else self.opponent

    def target_of(self, side: Side) -> Entity:
        return self.opponent if side == "player" else self.player

    @property
    def resolved(self) -> bool:
        return self.ctx.terminal or self.phase in TERMINAL_PHASES

    def add_log(self, message: str, kind: LogKind = "info") -> None:
        self.log.append(LogEntry(seq=len(self.log), kind=kind, message=message))

    def emit(self, event: Event) -> None:
        self.event_log.append(event)

    def selectable_positions(self) -> list[int]:
        return [i for i, c in enumerate(self.board) if c.selectable]

    def hidden_positions(self) -> list[int]:
        return [i for i, c in enumerate(self.board) if c.hidden and not c.disabled]

    def unmatched_count(self) -> int:
        return sum(1 for c in self.board if not c.matched)
