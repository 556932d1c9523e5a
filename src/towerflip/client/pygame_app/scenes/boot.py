from __future__ import annotations

import traceback

import pygame  # type: ignore[import-not-found]

from towerflip.services.entities import fetch_roster
from towerflip.services.progress import ProgressStore

from ..app import GameContext
from ..scene_base import SceneTransition
from ..ui import Button, draw_text
from .main_menu import MainMenuScene


class BootScene:
    def __init__(self, ctx: GameContext) -> None:
        self.ctx = ctx
        self._did_boot = False
        self._error: str | None = None
        self._quit_button: Button | None = None

    def handle_event(self, event: pygame.event.Event) -> None:
        if self._quit_button is not None:
            self._quit_button.handle_event(event)

    def update(self, dt: float) -> SceneTransition | None:
        if self._did_boot:
            return None
        self._did_boot = True
        ctx = self.ctx
        try:
            ctx.content.validate_all()
            ctx.items = ctx.content.load_items()
            ctx.characters = ctx.content.load_characters()
            ctx.cosmetics = ctx.content.load_cosmetics()
            fallback = ctx.content.load_fallback_roster()

            ctx.paths.userdata_dir.mkdir(parents=True, exist_ok=True)
            ctx.progress = ProgressStore(ctx.paths.progress_file, ctx.items, ctx.cosmetics)

            used_fallback = True
            if ctx.provider is None:
                ctx.roster = fallback
            else:
                ctx.roster, used_fallback = fetch_roster(
                    ctx.provider,
                    ctx.seed,
                    fallback,
                    ctx.content.load_schema("entity"),
                )

            ctx.telemetry.log("boot", {"ok": True, "seed": ctx.seed, "fallback_roster": used_fallback})
            return SceneTransition(MainMenuScene(ctx))
        except Exception as e:
            tb = traceback.format_exc(limit=8)
            self._error = f"{e}\n\n{tb}"
            ctx.telemetry.log("boot", {"ok": False, "error": str(e)})
            self._quit_button = Button(
                rect=pygame.Rect(20, ctx.screen.get_height() - 68, 140, 44),
                text="Quit",
                on_click=lambda: pygame.event.post(pygame.event.Event(pygame.QUIT)),
            )
            return None

    def render(self, screen: pygame.Surface) -> None:
        screen.fill((10, 10, 14))
        fonts = self.ctx.fonts
        draw_text(screen, fonts.big, "Towerflip", (20, 20))

        if self._error is None:
            draw_text(screen, fonts.ui, "Climbing the stairs... validating data, loading progress.", (20, 80))
        else:
            draw_text(screen, fonts.ui, "BOOT ERROR", (20, 80), color=(240, 80, 80))
            y = 120
            for line in self._error.splitlines()[:22]:
                draw_text(screen, fonts.small, line[:120], (20, y), color=(230, 230, 230))
                y += 18
            if self._quit_button is not None:
                self._quit_button.draw(screen, fonts.ui)
