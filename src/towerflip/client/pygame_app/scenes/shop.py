from __future__ import annotations

import pygame  # type: ignore[import-not-found]

from towerflip.engine.run import buy_in_shop, leave_shop
from towerflip.services.progress import ProgressError

from ..app import GameContext
from ..scene_base import MenuScene
from ..ui import Button, draw_text


class ShopScene(MenuScene):
    """Merchant interlude during a run, or the between-runs store.

    The merchant sells consumables for run gold. The store sells
    consumables and card backs for banked gold.
    """

    def __init__(self, ctx: GameContext, merchant: bool = False) -> None:
        super().__init__(ctx)
        self.merchant = merchant
        self._buttons: list[Button] = []
        self._build_ui()

    def _build_ui(self) -> None:
        ctx = self.ctx
        label = "Continue Climbing" if self.merchant else "Back"
        self._buttons = [Button(rect=pygame.Rect(20, 20, 220, 40), text=label, on_click=self._on_leave)]
        if ctx.items is not None:
            for i, item_id in enumerate(ctx.items.all_ids()):
                item = ctx.items.items[item_id]
                self._buttons.append(
                    Button(
                        rect=pygame.Rect(40, 120 + i * 44, 360, 38),
                        text=f"{item.name} - {item.cost}g",
                        on_click=lambda iid=item_id: self._buy_item(iid),
                    )
                )
        if not self.merchant and ctx.cosmetics is not None:
            for i, back in enumerate(ctx.cosmetics.ordered()):
                self._buttons.append(
                    Button(
                        rect=pygame.Rect(460, 120 + i * 44, 320, 38),
                        text=f"{back.name} - {back.price}g",
                        on_click=lambda bid=back.id: self._buy_or_select_back(bid),
                    )
                )

    def _on_leave(self) -> None:
        from .encounter import EncounterScene
        from .main_menu import MainMenuScene

        run = self.ctx.run
        if self.merchant and run is not None and leave_shop(run):
            self.go(EncounterScene(self.ctx))
            return
        self.go(MainMenuScene(self.ctx))

    def _buy_item(self, item_id: str) -> None:
        ctx = self.ctx
        if self.merchant:
            if ctx.run is None:
                return
            res = buy_in_shop(ctx.run, item_id)
            self.message = "Bought." if res.ok else (res.error or "")
            return
        if ctx.progress is None:
            return
        try:
            ctx.progress.buy_item(item_id)
            self.message = "Bought."
        except ProgressError as e:
            self.message = str(e)

    def _buy_or_select_back(self, back_id: str) -> None:
        store = self.ctx.progress
        if store is None:
            return
        try:
            if back_id in store.unlocked_cosmetics:
                store.select_cosmetic(back_id)
                self.message = "Equipped."
            else:
                store.buy_cosmetic(back_id)
                self.message = "Unlocked and equipped."
        except ProgressError as e:
            self.message = str(e)

    def handle_event(self, event: pygame.event.Event) -> None:
        for b in self._buttons:
            if b.handle_event(event):
                return

    def render(self, screen: pygame.Surface) -> None:
        screen.fill((14, 12, 10))
        ctx = self.ctx
        fonts = ctx.fonts
        if self.merchant and ctx.run is not None:
            title = "A merchant blocks the stairs"
            gold = ctx.run.player.gold
            draw_text(screen, fonts.small, f"Carrying {len(ctx.run.inventory)} items", (460, 84))
        else:
            title = "Store"
            gold = ctx.progress.gold if ctx.progress is not None else 0
        draw_text(screen, fonts.big, title, (260, 20))
        draw_text(screen, fonts.ui, f"Gold: {gold}", (40, 84))
        for b in self._buttons:
            b.draw(screen, fonts.ui)
        if not self.merchant and ctx.progress is not None:
            draw_text(screen, fonts.small, f"Equipped back: {ctx.progress.profile.selected_cosmetic}", (460, 84))
        if self.message:
            draw_text(screen, fonts.ui, self.message, (40, ctx.screen.get_height() - 50), color=(240, 200, 120))
