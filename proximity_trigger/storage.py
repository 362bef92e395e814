"""JSON file storage for trigger configuration.

Only configuration is stored. Cooldowns and pending actions live in memory and
are gone after a restart.

Directory layout:

    {base}/
      entities.json       ← list of MonitoredEntity objects
      card-styles.json    ← list of CardStyle objects
      presets.json        ← list of Preset objects
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from proximity_trigger.models import CardStyle, MonitoredEntity, Preset


class Storage:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def config_path(self) -> Path:
        return self._base / "config.json"

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text())

    def _write_json(self, path: Path, data: Any) -> None:
        path.write_text(json.dumps(data, indent=2))

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def save_entities(self, entities: list[MonitoredEntity]) -> None:
        self._write_json(self._base / "entities.json", [e.model_dump() for e in entities])

    def get_entities(self) -> list[MonitoredEntity]:
        path = self._base / "entities.json"
        if not path.exists():
            return []
        return [MonitoredEntity.model_validate(e) for e in self._read_json(path)]

    def save_entity(self, entity: MonitoredEntity) -> None:
        """Upsert an entity by name."""
        entities = self.get_entities()
        for i, e in enumerate(entities):
            if e.key == entity.key:
                entities[i] = entity
                break
        else:
            entities.append(entity)
        self.save_entities(entities)

    # ------------------------------------------------------------------
    # Card styles
    # ------------------------------------------------------------------

    def save_styles(self, styles: list[CardStyle]) -> None:
        self._write_json(self._base / "card-styles.json", [s.model_dump() for s in styles])

    def get_styles(self) -> list[CardStyle]:
        path = self._base / "card-styles.json"
        if not path.exists():
            return []
        return [CardStyle.model_validate(s) for s in self._read_json(path)]

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    def save_presets(self, presets: list[Preset]) -> None:
        self._write_json(self._base / "presets.json", [p.model_dump() for p in presets])

    def get_presets(self) -> list[Preset]:
        path = self._base / "presets.json"
        if not path.exists():
            return []
        return [Preset.model_validate(p) for p in self._read_json(path)]
