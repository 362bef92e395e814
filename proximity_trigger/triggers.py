"""Trigger state machine: whether an entity fires, and what it says when it does.

Modes:
  active     fires whenever asked
  disabled   never fires
  fire-once  fires once, then switches itself to disabled

fire() reads the entity once at the start and works on that snapshot, so a
configuration change made while a fire is in progress cannot leak into it.
Order of a successful fire: select message → resolve style → expand content →
emit card (and follow-ups) → fire-once transition → pair cooldown.
"""

from __future__ import annotations

import itertools
import logging
import random

from proximity_trigger import cards
from proximity_trigger.attributes import AttributeStore, sheet_name
from proximity_trigger.config import EngineConfig
from proximity_trigger.content import ContentProcessor
from proximity_trigger.cooldowns import CooldownTracker
from proximity_trigger.host import CharacterSource, Output
from proximity_trigger.models import (
    DEFAULT_STYLE_NAME,
    CardStyle,
    FireResult,
    Message,
    Mode,
    MonitoredEntity,
    PendingAction,
    Preset,
    first_name,
    safe_name,
)
from proximity_trigger.selection import select_message

logger = logging.getLogger(__name__)


class Registry:
    """In-process state shared by the engine: entities, styles, presets, pending actions."""

    def __init__(self) -> None:
        self.entities: dict[str, MonitoredEntity] = {}
        self.styles: dict[str, CardStyle] = {DEFAULT_STYLE_NAME: CardStyle(name=DEFAULT_STYLE_NAME)}
        self.presets: dict[str, Preset] = {}
        self.pending_actions: dict[str, PendingAction] = {}

    def get_entity(self, name: str) -> MonitoredEntity | None:
        return self.entities.get(safe_name(name))

    def put_entity(self, entity: MonitoredEntity) -> MonitoredEntity:
        self.entities[entity.key] = entity
        return entity

    def with_mode(self, name: str, mode: Mode) -> MonitoredEntity | None:
        """Replace the stored entity with a copy in the given mode."""
        entity = self.get_entity(name)
        if entity is None:
            return None
        updated = MonitoredEntity.model_validate({**entity.model_dump(), "mode": mode})
        return self.put_entity(updated)

    def find_style(self, name: str | None) -> CardStyle | None:
        if not name:
            return None
        style = self.styles.get(name)
        if style is None:
            lowered = name.lower()
            style = next((s for s in self.styles.values() if s.name.lower() == lowered), None)
        if style is None:
            logger.warning("Unknown card style %r", name)
        return style

    def resolve_style(self, message: Message, entity: MonitoredEntity, default_name: str) -> CardStyle:
        """Message override, else entity style, else the configured default."""
        return (
            self.find_style(message.style)
            or self.find_style(entity.style)
            or self.find_style(default_name)
            or CardStyle(name=DEFAULT_STYLE_NAME)
        )


class TriggerStateMachine:
    def __init__(
        self,
        registry: Registry,
        cooldowns: CooldownTracker,
        processor: ContentProcessor,
        characters: CharacterSource | None,
        output: Output,
        config: EngineConfig,
        rng: random.Random | None = None,
    ) -> None:
        self._registry = registry
        self._cooldowns = cooldowns
        self._processor = processor
        self._characters = characters
        self._output = output
        self._config = config
        self._rng = rng
        self._action_seq = itertools.count(1)

    def fire(
        self,
        entity_name: str,
        *,
        actor_piece_id: str | None = None,
        entity_piece_id: str | None = None,
    ) -> FireResult | None:
        """Fire an entity's message. Returns None when nothing was fired.

        A pair cooldown starts only when both piece ids are known.
        """
        entity = self._registry.get_entity(entity_name)
        if entity is None:
            logger.warning("Fire requested for unknown entity %r", entity_name)
            return None
        if entity.mode == "disabled":
            return None

        message = select_message(entity.messages, self._config.fallback_message, self._rng)
        style = self._registry.resolve_style(message, entity, self._config.default_style)

        actor = self._sheet_for(actor_piece_id)
        if entity_piece_id is None and entity.piece_ids:
            entity_piece_id_for_sheet = entity.piece_ids[0]
        else:
            entity_piece_id_for_sheet = entity_piece_id
        entity_sheet = self._sheet_for(entity_piece_id_for_sheet)

        default_actor = self._config.default_actor_name
        actor_name = sheet_name(actor) or default_actor
        shown_name = first_name(actor_name, default_actor)

        processed = self._processor.process(
            message.content,
            display_name=shown_name,
            entity=entity,
            style=style,
            actor=actor,
            entity_sheet=entity_sheet,
        )
        logger.debug("fire entity=%s weight=%d actions=%d", entity.name, message.weight, len(processed.actions))

        whisper = cards.whisper_prefix(style, shown_name)
        self._emit(entity.name, whisper + self._card(entity, processed.text, style))

        action_ids: list[str] = []
        if processed.actions:
            buttons = []
            for action in processed.actions:
                action_id = f"{entity.key}_{next(self._action_seq)}"
                self._registry.pending_actions[action_id] = PendingAction(
                    sender=entity.name, whisper=whisper, action=action.action
                )
                action_ids.append(action_id)
                buttons.append((action.label, f"{self._config.action_command} {action_id}"))
            self._emit(entity.name, whisper + cards.render_actions(shown_name, buttons))

        if entity.mode == "fire-once":
            self._registry.with_mode(entity.name, "disabled")
            logger.info("%s fired once and is now disabled", entity.name)

        if actor_piece_id is not None and entity_piece_id is not None:
            self._cooldowns.start((actor_piece_id, entity_piece_id), entity.name, entity.cooldown_ms)

        return FireResult(
            entity_name=entity.name,
            message=message,
            style=style,
            text=processed.text,
            actions=processed.actions,
            action_ids=action_ids,
        )

    def press_action(self, action_id: str) -> bool:
        """Emit a pending follow-up once. Unknown or used ids return False."""
        pending = self._registry.pending_actions.pop(action_id, None)
        if pending is None:
            return False
        self._emit(pending.sender, pending.whisper + pending.action)
        return True

    def _card(self, entity: MonitoredEntity, text: str, style: CardStyle) -> str:
        try:
            return cards.render_card(entity.name, text, style, entity.image)
        except cards.RenderError as e:
            logger.warning("Card for %s could not be rendered, sending plain text: %s", entity.name, e)
            return text

    def _sheet_for(self, piece_id: str | None) -> AttributeStore | None:
        if piece_id is None or self._characters is None:
            return None
        try:
            return self._characters.attributes_of(piece_id)
        except Exception as e:
            logger.warning("Attribute store for piece %s unavailable: %s", piece_id, e)
            return None

    def _emit(self, speaker: str, text: str) -> None:
        try:
            self._output(speaker, text)
        except Exception as e:
            logger.warning("Output failed for %s: %s", speaker, e)

