from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import pygame  # type: ignore[import-not-found]

Color = tuple[int, int, int]

CATEGORY_COLORS: dict[str, Color] = {
    "attack": (200, 70, 70),
    "heal": (70, 190, 120),
    "shield": (120, 140, 230),
    "gold": (220, 180, 60),
}

LOG_COLORS: dict[str, Color] = {
    "info": (200, 200, 210),
    "player": (140, 200, 250),
    "enemy": (240, 110, 110),
    "heal": (120, 220, 150),
    "burn": (250, 150, 60),
    "item": (210, 170, 250),
}


def draw_text(
    screen: pygame.Surface,
    font: pygame.font.Font,
    text: str,
    pos: tuple[int, int],
    color: Color = (240, 240, 240),
) -> None:
    img = font.render(text, True, color)
    screen.blit(img, pos)


def draw_centered(screen: pygame.Surface, font: pygame.font.Font, text: str, center: tuple[int, int], color: Color = (240, 240, 240)) -> None:
    img = font.render(text, True, color)
    screen.blit(img, img.get_rect(center=center).topleft)


def draw_health_bar(screen: pygame.Surface, rect: pygame.Rect, current: int, maximum: int, shield: int = 0) -> None:
    pygame.draw.rect(screen, (40, 20, 20), rect, border_radius=4)
    if maximum > 0 and current > 0:
        fill = rect.copy()
        fill.width = max(1, int(rect.width * min(current, maximum) / maximum))
        pygame.draw.rect(screen, (200, 50, 60), fill, border_radius=4)
    if shield > 0 and maximum > 0:
        over = pygame.Rect(rect.x, rect.y - 6, min(rect.width, int(rect.width * shield / maximum)), 4)
        pygame.draw.rect(screen, CATEGORY_COLORS["shield"], over)
    pygame.draw.rect(screen, (0, 0, 0), rect, width=2, border_radius=4)


@dataclass
class Button:
    rect: pygame.Rect
    text: str
    on_click: Callable[[], None]
    enabled: bool = True
    hovered: bool = False

    def handle_event(self, event: pygame.event.Event) -> bool:
        if event.type == pygame.MOUSEMOTION:
            self.hovered = self.rect.collidepoint(event.pos)
            return False
        if not self.enabled:
            return False
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if self.rect.collidepoint(event.pos):
                self.on_click()
                return True
        return False

    def draw(self, screen: pygame.Surface, font: pygame.font.Font) -> None:
        if not self.enabled:
            bg = (30, 30, 36)
        elif self.hovered:
            bg = (80, 80, 110)
        else:
            bg = (56, 56, 76)
        pygame.draw.rect(screen, bg, self.rect, border_radius=8)
        pygame.draw.rect(screen, (0, 0, 0), self.rect, width=2, border_radius=8)
        color = (240, 240, 240) if self.enabled else (120, 120, 130)
        draw_centered(screen, font, self.text, self.rect.center, color)
