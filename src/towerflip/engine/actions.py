from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SelectCardAction:
    position: int


@dataclass(frozen=True)
class UseItemAction:
    item_id: str


Action = SelectCardAction | UseItemAction
