from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from towerflip.engine.state import EncounterState


@dataclass
class TelemetryService:
    path: Path
    enabled: bool = True

    def log(self, event_type: str, payload: Mapping[str, object]) -> None:
        if not self.enabled:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rec = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "type": event_type,
            "payload": dict(payload),
        }
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def record_encounter(self, state: EncounterState) -> None:
        self.log(
            "encounter_end",
            {
                "seed": state.seed,
                "floor": state.floor,
                "outcome": state.phase,
                "opponent": state.opponent.name,
                "boss": state.opponent.boss,
                "player_class": state.player.class_id,
                "player_hp": state.player.current_hp,
                "rounds": state.ctx.round + 1,
                "actions": len(state.action_log),
            },
        )
