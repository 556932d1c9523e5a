from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import pygame  # type: ignore[import-not-found]

from towerflip.engine.run import RunState
from towerflip.engine.state import Entity
from towerflip.engine.types import CharacterDefinition, ItemCatalog
from towerflip.paths import Paths
from towerflip.services.content import ContentService, CosmeticCatalog
from towerflip.services.entities import EntityProvider
from towerflip.services.progress import ProgressStore
from towerflip.services.telemetry import TelemetryService

from .scene_base import Scene


@dataclass
class Fonts:
    ui: pygame.font.Font
    small: pygame.font.Font
    big: pygame.font.Font
    card: pygame.font.Font


def load_fonts() -> Fonts:
    pygame.font.init()
    return Fonts(
        ui=pygame.font.SysFont(None, 24),
        small=pygame.font.SysFont(None, 18),
        big=pygame.font.SysFont(None, 34),
        card=pygame.font.SysFont(None, 28),
    )


@dataclass
class GameContext:
    screen: pygame.Surface
    clock: pygame.time.Clock
    paths: Paths
    fonts: Fonts
    content: ContentService
    telemetry: TelemetryService
    seed: str
    provider: EntityProvider | None = None

    # Loaded at boot
    items: Optional[ItemCatalog] = None
    characters: dict[str, CharacterDefinition] = field(default_factory=dict)
    cosmetics: Optional[CosmeticCatalog] = None
    roster: list[Entity] = field(default_factory=list)
    progress: Optional[ProgressStore] = None

    selected_class: str = "warden"
    run: Optional[RunState] = None


class App:
    def __init__(self, ctx: GameContext, initial_scene: Scene) -> None:
        self.ctx = ctx
        self.scene: Scene = initial_scene
        self.running = True

    def run(self) -> int:
        while self.running:
            dt = self.ctx.clock.tick(60) / 1000.0
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                    break
                self.scene.handle_event(event)

            tr = self.scene.update(dt)
            if tr is not None:
                self.scene = tr.next_scene

            self.scene.render(self.ctx.screen)
            pygame.display.flip()

        pygame.quit()
        return 0
