from __future__ import annotations

from .actions import Action, SelectCardAction, UseItemAction
from .board import Card
from .state import EncounterState, Entity


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, SelectCardAction):
        return {"type": "select", "position": a.position}
    if isinstance(a, UseItemAction):
        return {"type": "use_item", "item_id": a.item_id}
    # should be unreachable
    return {"type": "unknown"}


def _card_to_dict(c: Card, reveal_all: bool) -> dict[str, object]:
    visible = reveal_all or c.face_up or c.matched or c.revealed
    return {
        "id": c.id,
        "effect": c.effect if visible else None,
        "face_up": c.face_up,
        "matched": c.matched,
        "disabled": c.disabled,
        "wild": c.wild if visible else False,
        "revealed": c.revealed,
    }


def _entity_to_dict(e: Entity) -> dict[str, object]:
    return {
        "name": e.name,
        "max_hp": e.max_hp,
        "current_hp": e.current_hp,
        "shield": e.shield,
        "gold": e.gold,
        "essence": e.essence,
        "difficulty": e.difficulty,
        "boss": e.boss,
        "class_id": e.class_id,
        "visual": e.visual,
    }


def snapshot(state: EncounterState, reveal_all: bool = False) -> dict[str, object]:
    """Return a JSON-serializable view of the encounter for a renderer.

    Face-down card identities are hidden unless `reveal_all` is set.
    """
    ctx = state.ctx
    return {
        "seed": state.seed,
        "floor": state.floor,
        "round": ctx.round,
        "phase": state.phase,
        "busy": state.scheduler.busy,
        "board": [_card_to_dict(c, reveal_all) for c in state.board],
        "player": _entity_to_dict(state.player),
        "opponent": _entity_to_dict(state.opponent),
        "combo": {"streak": ctx.combo.streak, "owner": ctx.combo.owner},
        "flags": {
            "mercy": ctx.mercy_active,
            "mirror": ctx.mirror_active,
            "opponent_skipped": ctx.opponent_skipped,
            "burn_stacks": ctx.burn_stacks,
        },
        "inventory": list(state.inventory),
        "log": [{"seq": e.seq, "kind": e.kind, "message": e.message} for e in state.log],
        "action_log": [action_to_dict(a) for a in state.action_log],
    }
