from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Protocol, Sequence

from towerflip.engine.board import SeededRNG
from towerflip.engine.state import Entity

from .content import ContentError, parse_entity, validate_json

logger = logging.getLogger(__name__)

StatBlock = dict[str, object]


class EntityProvider(Protocol):
    def generate(self, seed: str, difficulty_multiplier: float) -> Sequence[StatBlock]: ...


_PREFIXES = ("Rotting", "Hollow", "Ashen", "Weeping", "Gilded", "Feral", "Drowned", "Pale")
_CREATURES = (
    ("Rat", "🐀"),
    ("Guard", "🛡️"),
    ("Wisp", "👻"),
    ("Hound", "🐺"),
    ("Spider", "🕷️"),
    ("Knight", "⚔️"),
    ("Bat", "🦇"),
    ("Toad", "🐸"),
)
_BOSSES = (
    ("The Cinder King", "👑", "burn", "Every miss feeds its flames."),
    ("The Oozing Mother", "🟢", "slime", "It smothers the cards you fail to read."),
    ("The Forgotten", "👁️", "confusion", "It remembers you, but you do not remember it."),
)
_TIERS = (("easy", 6), ("medium", 10), ("hard", 15))


class ProceduralEntityProvider:
    """Offline provider: a deterministic roster derived from the run seed."""

    def generate(self, seed: str, difficulty_multiplier: float) -> list[StatBlock]:
        rng = SeededRNG(f"{seed}-roster")
        out: list[StatBlock] = []
        for difficulty, base_hp in _TIERS[:-1]:
            prefix = _PREFIXES[rng.below(len(_PREFIXES))]
            creature, visual = _CREATURES[rng.below(len(_CREATURES))]
            out.append(
                {
                    "name": f"{prefix} {creature}",
                    "max_hp": max(1, round(base_hp * difficulty_multiplier)),
                    "description": f"A {prefix.lower()} {creature.lower()} stalks the stairwell.",
                    "visual": visual,
                    "difficulty": difficulty,
                    "boss": "none",
                }
            )
        name, visual, boss, description = _BOSSES[rng.below(len(_BOSSES))]
        out.append(
            {
                "name": name,
                "max_hp": max(1, round(_TIERS[-1][1] * difficulty_multiplier)),
                "description": description,
                "visual": visual,
                "difficulty": _TIERS[-1][0],
                "boss": boss,
            }
        )
        return out


def _check_roster(raw: Sequence[StatBlock], schema: object, floors: int) -> list[Entity]:
    if len(raw) < floors:
        raise ContentError(f"Provider returned {len(raw)} entities, need {floors}")
    roster: list[Entity] = []
    for i, block in enumerate(raw[:floors]):
        validate_json(block, schema, context=f"entity[{i}]")
        roster.append(parse_entity(block))
    return roster


def fetch_roster(
    provider: EntityProvider,
    seed: str,
    fallback: Sequence[Entity],
    entity_schema: object,
    *,
    difficulty_multiplier: float = 1.0,
    floors: int = 3,
    timeout: float = 5.0,
) -> tuple[list[Entity], bool]:
    """Ask the provider for the run's opponents without ever blocking play for long.

    Returns (roster, used_fallback). Any provider failure, timeout or
    malformed stat block yields the fallback roster instead.
    """
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="entity-provider")
    future = pool.submit(provider.generate, seed, difficulty_multiplier)
    try:
        raw = future.result(timeout=timeout)
        return _check_roster(list(raw), entity_schema, floors), False
    except FutureTimeout:
        logger.warning("Entity provider timed out after %.1fs; using fallback roster", timeout)
    except ContentError as e:
        logger.warning("Entity provider returned an invalid roster; using fallback roster: %s", e)
    except Exception:
        logger.exception("Entity provider failed; using fallback roster")
    finally:
        # A stuck provider thread must not hold up the caller.
        pool.shutdown(wait=False, cancel_futures=True)
    return [_fresh(e) for e in fallback[:floors]], True


def _fresh(e: Entity) -> Entity:
    return Entity(
        name=e.name,
        max_hp=e.max_hp,
        current_hp=e.max_hp,
        difficulty=e.difficulty,
        boss=e.boss,
        description=e.description,
        visual=e.visual,
    )
