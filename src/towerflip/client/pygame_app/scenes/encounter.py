from __future__ import annotations

from collections import Counter

import pygame  # type: ignore[import-not-found]

from towerflip.engine.actions import SelectCardAction, UseItemAction
from towerflip.engine.encounter import advance, step
from towerflip.engine.run import FloorResult, conclude_floor, share_text
from towerflip.engine.serialize import snapshot
from towerflip.engine.types import EFFECTS

from ..app import GameContext
from ..scene_base import MenuScene, SceneTransition
from ..ui import CATEGORY_COLORS, LOG_COLORS, Button, draw_centered, draw_health_bar, draw_text

GRID = 4
CARD_W, CARD_H, CARD_GAP = 96, 120, 12
BOARD_X, BOARD_Y = 40, 150


class EncounterScene(MenuScene):
    def __init__(self, ctx: GameContext) -> None:
        super().__init__(ctx)
        assert ctx.run is not None and ctx.run.encounter is not None
        self.run = ctx.run
        self.state = ctx.run.encounter
        self._result: FloorResult | None = None
        self._share: str | None = None

        self.btn_menu = Button(rect=pygame.Rect(ctx.screen.get_width() - 160, 20, 140, 40), text="Menu", on_click=self._on_menu)
        self.btn_continue = Button(rect=pygame.Rect(360, 440, 300, 56), text="Continue", on_click=self._on_continue)
        self._item_buttons: list[Button] = []
        self._rebuild_items()

    def _rebuild_items(self) -> None:
        self._item_buttons = []
        counts = Counter(self.state.inventory)
        for i, item_id in enumerate(sorted(counts)):
            item = self.state.items.get(item_id)
            if item is None:
                continue
            self._item_buttons.append(
                Button(
                    rect=pygame.Rect(520, 420 + i * 40, 220, 34),
                    text=f"{item.name} x{counts[item_id]}",
                    on_click=lambda iid=item_id: self._use_item(iid),
                )
            )

    def _card_rect(self, pos: int) -> pygame.Rect:
        row, col = divmod(pos, GRID)
        return pygame.Rect(BOARD_X + col * (CARD_W + CARD_GAP), BOARD_Y + row * (CARD_H + CARD_GAP), CARD_W, CARD_H)

    def _use_item(self, item_id: str) -> None:
        res = step(self.state, UseItemAction(item_id))
        self.message = "" if res.ok else (res.error or "Invalid action.")
        self._rebuild_items()

    def _on_menu(self) -> None:
        from .main_menu import MainMenuScene

        store = self.ctx.progress
        if store is not None and self._result is None:
            # abandoning keeps unused consumables
            store.finish_run(self.run.floor, self.state.inventory)
        self.ctx.run = None
        self.go(MainMenuScene(self.ctx))

    def _on_continue(self) -> None:
        from .main_menu import MainMenuScene
        from .shop import ShopScene

        run = self.run
        if run.phase == "encounter":
            self.go(EncounterScene(self.ctx))
        elif run.phase == "shop":
            self.go(ShopScene(self.ctx, merchant=True))
        else:
            self.ctx.run = None
            self.go(MainMenuScene(self.ctx))

    def handle_event(self, event: pygame.event.Event) -> None:
        if self._result is not None:
            self.btn_continue.handle_event(event)
            return
        if self.btn_menu.handle_event(event):
            return
        for b in self._item_buttons:
            if b.handle_event(event):
                return
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            for pos in range(len(self.state.board)):
                if self._card_rect(pos).collidepoint(event.pos):
                    res = step(self.state, SelectCardAction(pos))
                    self.message = "" if res.ok else (res.error or "")
                    return

    def update(self, dt: float) -> SceneTransition | None:
        advance(self.state, dt)
        if self.state.resolved and self._result is None:
            self._finish_floor()
        return self._next

    def _finish_floor(self) -> None:
        ctx = self.ctx
        result = conclude_floor(self.run)
        if result is None:
            return
        self._result = result
        ctx.telemetry.record_encounter(self.state)
        store = ctx.progress
        if store is not None:
            if result.outcome != "defeat":
                store.record_kill(result.opponent, ctx.seed)
            if result.gold_to_bank:
                store.add_gold(result.gold_to_bank)
            if self.run.phase in ("complete", "defeated"):
                cleared = len(self.run.kills)
                store.finish_run(cleared, self.run.inventory)
        if self.run.phase in ("complete", "defeated"):
            self._share = share_text(self.run, ctx.seed)

    def render(self, screen: pygame.Surface) -> None:
        screen.fill((8, 10, 14))
        fonts = self.ctx.fonts
        snap = snapshot(self.state)

        self.btn_menu.draw(screen, fonts.ui)
        draw_text(screen, fonts.big, f"Floor {self.state.floor + 1} of {self.run.config.floors}", (40, 20))
        self._draw_entity(screen, snap["opponent"], (40, 70), "Enemy")  # type: ignore[arg-type]
        self._draw_entity(screen, snap["player"], (520, 70), "You")  # type: ignore[arg-type]

        back = None
        if self.ctx.cosmetics is not None and self.ctx.progress is not None:
            back = self.ctx.cosmetics.card_backs.get(self.ctx.progress.profile.selected_cosmetic)
        for pos, card in enumerate(snap["board"]):  # type: ignore[arg-type]
            self._draw_card(screen, pos, card, back.color if back else (40, 40, 90))

        combo = snap["combo"]
        flags = snap["flags"]
        draw_text(screen, fonts.ui, f"Phase: {snap['phase']}", (520, 160))
        draw_text(screen, fonts.ui, f"Combo: {combo['streak']} ({combo['owner'] or '-'})", (520, 186))  # type: ignore[index]
        active = [k for k in ("mercy", "mirror", "opponent_skipped") if flags[k]]  # type: ignore[index]
        if flags["burn_stacks"]:  # type: ignore[index]
            active.append(f"burn x{flags['burn_stacks']}")  # type: ignore[index]
        draw_text(screen, fonts.small, "Effects: " + (", ".join(active) or "none"), (520, 212))

        self._draw_log(screen)
        for b in self._item_buttons:
            b.enabled = self.state.phase == "player_turn" and not self.state.scheduler.busy
            b.draw(screen, fonts.small)

        if self.message:
            draw_text(screen, fonts.ui, self.message, (40, 690), color=(240, 200, 120))
        if self._result is not None:
            self._draw_result(screen)

    def _draw_entity(self, screen: pygame.Surface, e: dict[str, object], pos: tuple[int, int], label: str) -> None:
        fonts = self.ctx.fonts
        x, y = pos
        draw_text(screen, fonts.ui, f"{label}: {e['name']}", (x, y))
        draw_health_bar(screen, pygame.Rect(x, y + 30, 220, 16), int(e["current_hp"]), int(e["max_hp"]), int(e["shield"]))  # type: ignore[arg-type]
        extra = f"HP {e['current_hp']}/{e['max_hp']}  Shield {e['shield']}"
        if label == "You":
            extra += f"  Gold {e['gold']}  Essence {e['essence']}"
        draw_text(screen, fonts.small, extra, (x + 230, y + 30))

    def _draw_card(self, screen: pygame.Surface, pos: int, card: dict[str, object], back: tuple[int, int, int]) -> None:
        rect = self._card_rect(pos)
        fonts = self.ctx.fonts
        if card["matched"]:
            pygame.draw.rect(screen, (20, 20, 24), rect, border_radius=8)
            return
        effect = card["effect"]
        if effect is None:
            pygame.draw.rect(screen, back, rect, border_radius=8)
            if card["disabled"]:
                pygame.draw.rect(screen, (60, 160, 60), rect, width=4, border_radius=8)
        else:
            spec = EFFECTS[effect]  # type: ignore[index]
            pygame.draw.rect(screen, CATEGORY_COLORS[spec.category], rect, border_radius=8)
            draw_centered(screen, fonts.small, spec.label, (rect.centerx, rect.centery - 10))
            draw_centered(screen, fonts.card, str(spec.value), (rect.centerx, rect.centery + 16))
            if card["wild"]:
                draw_centered(screen, fonts.small, "WILD", (rect.centerx, rect.y + 12), (250, 250, 120))
        pygame.draw.rect(screen, (0, 0, 0), rect, width=2, border_radius=8)

    def _draw_log(self, screen: pygame.Surface) -> None:
        y = 250
        for entry in self.state.log[-8:]:
            draw_text(screen, self.ctx.fonts.small, entry.message[:60], (520, y), color=LOG_COLORS.get(entry.kind, (220, 220, 220)))
            y += 20

    def _draw_result(self, screen: pygame.Surface) -> None:
        overlay = pygame.Surface(screen.get_size(), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 170))
        screen.blit(overlay, (0, 0))
        fonts = self.ctx.fonts
        titles = {"victory": "TOWER CONQUERED", "level_complete": "FLOOR CLEARED", "defeat": "YOU HAVE FALLEN"}
        draw_centered(screen, fonts.big, titles.get(self.state.phase, ""), (510, 320))
        if self._result is not None and self._result.gold_to_bank:
            draw_centered(screen, fonts.ui, f"+{self._result.gold_to_bank} gold banked", (510, 360))
        if self._share is not None:
            draw_centered(screen, fonts.small, " ".join(self._share.splitlines()[2:4]), (510, 395))
        self.btn_continue.draw(screen, fonts.ui)
