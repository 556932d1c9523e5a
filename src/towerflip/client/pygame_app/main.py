from __future__ import annotations

import argparse
import logging
from datetime import date

import pygame  # type: ignore[import-not-found]

from towerflip.paths import get_paths
from towerflip.services.content import ContentService
from towerflip.services.entities import ProceduralEntityProvider
from towerflip.services.telemetry import TelemetryService

from .app import App, GameContext, load_fonts
from .scenes.boot import BootScene


def daily_seed(today: date | None = None) -> str:
    d = today or date.today()
    return f"{d.year}-{d.month}-{d.day}"


def main() -> int:
    parser = argparse.ArgumentParser(prog="towerflip")
    parser.add_argument("--width", type=int, default=1024)
    parser.add_argument("--height", type=int, default=768)
    parser.add_argument("--seed", default=None, help="run seed (defaults to today's date)")
    parser.add_argument("--offline", action="store_true", help="skip the entity provider, use the fallback roster")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    pygame.init()
    screen = pygame.display.set_mode((args.width, args.height))
    pygame.display.set_caption("Towerflip")

    clock = pygame.time.Clock()
    paths = get_paths()

    content = ContentService(data_dir=paths.data_dir, schema_dir=paths.schema_dir)
    telemetry = TelemetryService(paths.telemetry_file)

    ctx = GameContext(
        screen=screen,
        clock=clock,
        paths=paths,
        fonts=load_fonts(),
        content=content,
        telemetry=telemetry,
        seed=args.seed or daily_seed(),
        provider=None if args.offline else ProceduralEntityProvider(),
    )

    app = App(ctx, BootScene(ctx))
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
