from __future__ import annotations

import pygame  # type: ignore[import-not-found]

from towerflip.engine.run import make_player, start_run

from ..app import GameContext
from ..scene_base import MenuScene
from ..ui import Button, draw_text
from .encounter import EncounterScene
from .shop import ShopScene


class MainMenuScene(MenuScene):
    def __init__(self, ctx: GameContext) -> None:
        super().__init__(ctx)
        self._buttons: list[Button] = []
        self._build_ui()

    def _build_ui(self) -> None:
        x, y, w, h, gap = 60, 200, 320, 52, 12
        self._buttons = [
            Button(rect=pygame.Rect(x, y, w, h), text="Enter the Tower", on_click=self._on_enter),
            Button(rect=pygame.Rect(x, y + (h + gap), w, h), text="Claim Daily Gold", on_click=self._on_claim),
            Button(rect=pygame.Rect(x, y + (h + gap) * 2, w, h), text="Store", on_click=lambda: self.go(ShopScene(self.ctx))),
            Button(
                rect=pygame.Rect(x, y + (h + gap) * 3, w, h),
                text="Quit",
                on_click=lambda: pygame.event.post(pygame.event.Event(pygame.QUIT)),
            ),
        ]
        for i, cid in enumerate(sorted(self.ctx.characters)):
            self._buttons.append(
                Button(
                    rect=pygame.Rect(460, y + i * (h + gap), 220, h),
                    text=self.ctx.characters[cid].name,
                    on_click=lambda c=cid: self._select(c),
                )
            )

    def _select(self, class_id: str) -> None:
        self.ctx.selected_class = class_id
        self.message = self.ctx.characters[class_id].passive

    def _on_claim(self) -> None:
        store = self.ctx.progress
        if store is None:
            return
        gained = store.claim_daily()
        if gained:
            self.message = f"Claimed {gained} gold."
        else:
            hours = store.seconds_until_claim() / 3600
            self.message = f"Next claim in {hours:.1f}h."

    def _on_enter(self) -> None:
        ctx = self.ctx
        store = ctx.progress
        if ctx.items is None or store is None or not ctx.roster:
            return
        player = make_player(ctx.characters.get(ctx.selected_class))
        ctx.run = start_run(player, ctx.roster, ctx.items, ctx.seed, store.take_inventory())
        self.go(EncounterScene(ctx))

    def handle_event(self, event: pygame.event.Event) -> None:
        for b in self._buttons:
            if b.handle_event(event):
                return

    def render(self, screen: pygame.Surface) -> None:
        screen.fill((12, 12, 18))
        fonts = self.ctx.fonts
        draw_text(screen, fonts.big, "Towerflip", (60, 40))
        draw_text(screen, fonts.small, f"Daily seed {self.ctx.seed}", (60, 80))
        store = self.ctx.progress
        if store is not None:
            draw_text(
                screen,
                fonts.ui,
                f"Gold: {store.gold}   Items: {len(store.inventory)}   Bestiary: {len(store.bestiary)}"
                f"   Best floor: {store.profile.tower_level}",
                (60, 120),
            )
        for b in self._buttons:
            b.draw(screen, fonts.ui)

        selected = self.ctx.characters.get(self.ctx.selected_class)
        if selected is not None:
            draw_text(screen, fonts.ui, f"Class: {selected.name}", (460, 160), color=selected.color)
        if self.message:
            draw_text(screen, fonts.ui, self.message, (60, 520), color=(240, 200, 120))
