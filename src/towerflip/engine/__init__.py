"""Deterministic, headless combat engine for Towerflip.

IMPORTANT: This package must never import pygame.
"""

from .actions import SelectCardAction, UseItemAction
from .board import Card, generate_board, seed_hash
from .encounter import advance, new_encounter, replay, settle, step
from .run import RunConfig, RunState, start_run
from .state import EncounterConfig, EncounterState, Entity, StepResult
from .types import CharacterDefinition, ItemCatalog, ItemDefinition

__all__ = [
    "Card",
    "CharacterDefinition",
    "EncounterConfig",
    "EncounterState",
    "Entity",
    "ItemCatalog",
    "ItemDefinition",
    "RunConfig",
    "RunState",
    "SelectCardAction",
    "StepResult",
    "UseItemAction",
    "advance",
    "generate_board",
    "new_encounter",
    "replay",
    "seed_hash",
    "settle",
    "start_run",
    "step",
]
