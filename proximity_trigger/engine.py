"""TriggerEngine: the context object the host talks to.

It owns all mutable state (entities, card styles, presets, cooldowns, pending
follow-up actions) and wires the pipeline together:

    on_piece_moved ─> ProximityEvaluator ─> TriggerStateMachine.fire
                                               ├─ selection (weighted message)
                                               ├─ ContentProcessor (names, attributes, dice, actions)
                                               ├─ cards (render + emit)
                                               └─ CooldownTracker (pair cooldown)

Host collaborators are injected; nothing here is global.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from proximity_trigger.config import EngineConfig
from proximity_trigger.content import ContentProcessor
from proximity_trigger.cooldowns import CooldownTracker
from proximity_trigger.dice import DiceRoller
from proximity_trigger.host import Board, CharacterSource, Output
from proximity_trigger.models import (
    DEFAULT_STYLE_NAME,
    CardStyle,
    FireResult,
    Mode,
    MonitoredEntity,
    Preset,
    safe_name,
)
from proximity_trigger.proximity import ProximityEvaluator
from proximity_trigger.scheduling import Scheduler
from proximity_trigger.triggers import Registry, TriggerStateMachine

if TYPE_CHECKING:
    from proximity_trigger.storage import Storage

logger = logging.getLogger(__name__)


class EntityNotFoundError(LookupError):
    """Raised by administrative operations on an unknown entity name."""


class TriggerEngine:
    def __init__(
        self,
        *,
        board: Board,
        output: Output,
        scheduler: Scheduler,
        characters: CharacterSource | None = None,
        config: EngineConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self._board = board
        self._registry = Registry()
        self._cooldowns = CooldownTracker(scheduler, self.config.min_cooldown_ms)
        processor = ContentProcessor(DiceRoller(rng), characters, self.config)
        self._machine = TriggerStateMachine(
            self._registry, self._cooldowns, processor, characters, output, self.config, rng
        )
        self._proximity = ProximityEvaluator(self._registry, board, self._cooldowns, self._machine)

    @property
    def cooldowns(self) -> CooldownTracker:
        return self._cooldowns

    # ── Entities ─────────────────────────────────────────────

    def register_entity(self, entity: MonitoredEntity | Mapping[str, Any]) -> MonitoredEntity:
        """Add or replace an entity. Plain mappings get configured defaults for missing fields."""
        if not isinstance(entity, MonitoredEntity):
            defaults: dict[str, Any] = {
                "radius": self.config.default_radius,
                "cooldown_ms": self.config.default_cooldown_ms,
            }
            if self.config.default_image:
                defaults["image"] = self.config.default_image
            entity = MonitoredEntity.model_validate({**defaults, **entity})
        replaced = entity.key in self._registry.entities
        self._registry.put_entity(entity)
        logger.info("%s entity %s (%d pieces)", "Updated" if replaced else "Registered",
                    entity.name, len(entity.piece_ids))
        return entity

    def remove_entity(self, name: str) -> MonitoredEntity:
        entity = self._require(name)
        del self._registry.entities[entity.key]
        cleared = self._cooldowns.clear_entity(entity.name)
        logger.info("Removed entity %s, cleared %d cooldowns", entity.name, cleared)
        return entity

    def get_entity(self, name: str) -> MonitoredEntity | None:
        return self._registry.get_entity(name)

    def entities(self) -> list[MonitoredEntity]:
        return list(self._registry.entities.values())

    def set_mode(self, name: str, mode: Mode) -> MonitoredEntity:
        self._require(name)
        entity = self._registry.with_mode(name, mode)
        logger.info("%s is now %s", entity.name, mode)
        return entity

    def attach_piece(self, name: str, piece_id: str) -> MonitoredEntity:
        entity = self._require(name)
        if piece_id in entity.piece_ids:
            return entity
        updated = entity.model_copy(update={"piece_ids": entity.piece_ids + (piece_id,)})
        logger.info("Attached piece %s to %s", piece_id, entity.name)
        return self._registry.put_entity(updated)

    def detach_piece(self, name: str, piece_id: str) -> MonitoredEntity:
        entity = self._require(name)
        remaining = tuple(p for p in entity.piece_ids if p != piece_id)
        if remaining == entity.piece_ids:
            return entity
        logger.info("Detached piece %s from %s", piece_id, entity.name)
        return self._registry.put_entity(entity.model_copy(update={"piece_ids": remaining}))

    # ── Firing ───────────────────────────────────────────────

    def fire_manually(self, name: str, actor_piece_id: str | None = None) -> FireResult | None:
        """Fire regardless of distance. Starts no cooldown."""
        entity = self._require(name)
        return self._machine.fire(entity.name, actor_piece_id=actor_piece_id)

    def on_piece_moved(self, piece_id: str) -> list[FireResult]:
        return self._proximity.on_piece_moved(piece_id)

    def press_action(self, action_id: str) -> bool:
        return self._machine.press_action(action_id)

    def reset_cooldowns(self, name: str | None = None) -> int:
        """Clear cooldowns for one entity, or all of them. Returns entries cleared."""
        if name is None:
            return self._cooldowns.reset()
        return self._cooldowns.clear_entity(self._require(name).name)

    # ── Piece lifecycle ──────────────────────────────────────

    def on_piece_added(self, piece_id: str) -> MonitoredEntity | None:
        """Bind a new piece to the entity of the same name, or create one from a preset."""
        try:
            piece_name = self._board.piece_name(piece_id)
        except Exception as e:
            logger.warning("Name of piece %s unavailable: %s", piece_id, e)
            return None
        if not piece_name:
            return None

        if self._registry.get_entity(piece_name) is not None:
            return self.attach_piece(piece_name, piece_id)
        preset = self._registry.presets.get(safe_name(piece_name))
        if preset is None:
            return None
        logger.info("Creating %s from preset for piece %s", preset.name, piece_id)
        return self.register_entity(preset.to_entity((piece_id,)))

    def on_piece_removed(self, piece_id: str) -> None:
        for entity in self.entities():
            if piece_id in entity.piece_ids:
                self.detach_piece(entity.name, piece_id)
        self._cooldowns.clear_piece(piece_id)

    # ── Styles & presets ─────────────────────────────────────

    def add_style(self, style: CardStyle) -> CardStyle:
        self._registry.styles[style.name] = style
        return style

    def remove_style(self, name: str) -> bool:
        """Remove a style. Entities that name it fall back to the default."""
        if name == DEFAULT_STYLE_NAME:
            self._registry.styles[name] = CardStyle(name=DEFAULT_STYLE_NAME)
            return True
        return self._registry.styles.pop(name, None) is not None

    def get_style(self, name: str) -> CardStyle | None:
        return self._registry.styles.get(name)

    def styles(self) -> list[CardStyle]:
        return list(self._registry.styles.values())

    def register_preset(self, preset: Preset) -> Preset:
        self._registry.presets[preset.key] = preset
        return preset

    def presets(self) -> list[Preset]:
        return list(self._registry.presets.values())

    # ── Persistence ──────────────────────────────────────────

    def load_from(self, storage: Storage) -> None:
        """Replace configuration with what the storage holds. Cooldowns are not stored."""
        self._registry.entities = {e.key: e for e in storage.get_entities()}
        self._registry.styles = {DEFAULT_STYLE_NAME: CardStyle(name=DEFAULT_STYLE_NAME)}
        for style in storage.get_styles():
            self._registry.styles[style.name] = style
        self._registry.presets = {p.key: p for p in storage.get_presets()}
        logger.info(
            "Loaded %d entities, %d styles, %d presets",
            len(self._registry.entities), len(self._registry.styles), len(self._registry.presets),
        )

    def save_to(self, storage: Storage) -> None:
        storage.save_entities(self.entities())
        storage.save_styles(self.styles())
        storage.save_presets(self.presets())

    def _require(self, name: str) -> MonitoredEntity:
        entity = self._registry.get_entity(name)
        if entity is None:
            raise EntityNotFoundError(name)
        return entity
