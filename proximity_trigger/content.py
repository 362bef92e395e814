"""Dynamic content expansion for message templates.

Stages run in this order, each on the previous stage's output:
  1. {playerName}                 → the triggering actor's display name
  2. {monitoredName}              → the firing entity's name
  3. {subject.attribute}          → attribute lookup (actor, entity, or any
                                    character found by name)
  4. {2d6+3}, {1d8+2d6}, …        → dice roll rendered as a styled token
  5. [Label](action text)         → pulled out as a follow-up action

Name substitution runs before attribute lookup so subjects see the known
keywords, and action extraction runs last so link labels and bodies are never
mistaken for attribute or dice syntax.
"""

import logging
import re

from proximity_trigger import cards
from proximity_trigger.attributes import AttributeStore, resolve_attribute, sheet_name
from proximity_trigger.config import EngineConfig
from proximity_trigger.dice import DiceRoller, has_dice_term
from proximity_trigger.host import CharacterSource
from proximity_trigger.models import ActionLink, CardStyle, MonitoredEntity, ProcessedMessage

logger = logging.getLogger(__name__)

ACTOR_KEYWORD = "playerName"
ENTITY_KEYWORD = "monitoredName"

ATTRIBUTE_PATTERN = re.compile(r"\{([\w\s]+)\.([\w\-]+)\}")
ROLL_PATTERN = re.compile(r"\{([0-9dD+\-*/().\s]+)\}")
ACTION_PATTERN = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")


def extract_actions(text: str) -> tuple[str, list[ActionLink]]:
    """Remove ``[label](action)`` markup, returning the cleaned text and the links in order."""
    actions = [
        ActionLink(label=m.group(1).strip(), action=m.group(2).strip())
        for m in ACTION_PATTERN.finditer(text)
    ]
    return ACTION_PATTERN.sub("", text), actions


class ContentProcessor:
    """Expands one template at a time for a specific fire."""

    def __init__(
        self,
        roller: DiceRoller,
        characters: CharacterSource | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self._roller = roller
        self._characters = characters
        self._config = config or EngineConfig()

    def process(
        self,
        template: str,
        *,
        display_name: str,
        entity: MonitoredEntity,
        style: CardStyle,
        actor: AttributeStore | None = None,
        entity_sheet: AttributeStore | None = None,
    ) -> ProcessedMessage:
        text = template.replace("{" + ACTOR_KEYWORD + "}", display_name)
        text = text.replace("{" + ENTITY_KEYWORD + "}", entity.name)
        text = self._substitute_attributes(text, entity, actor, entity_sheet)
        text = self._substitute_rolls(text, style)
        text, actions = extract_actions(text)
        return ProcessedMessage(text=text, actions=actions)

    # ── Attributes ───────────────────────────────────────────

    def _substitute_attributes(
        self,
        text: str,
        entity: MonitoredEntity,
        actor: AttributeStore | None,
        entity_sheet: AttributeStore | None,
    ) -> str:
        actor_name = sheet_name(actor)
        depth = self._config.attribute_search_depth

        def replace(match: re.Match) -> str:
            subject, attribute = match.group(1), match.group(2)
            lowered = subject.lower()
            if lowered == ACTOR_KEYWORD.lower() or (actor_name and lowered == actor_name.lower()):
                return resolve_attribute(actor, attribute, depth)
            if lowered == ENTITY_KEYWORD.lower() or lowered == entity.name.lower():
                return resolve_attribute(entity_sheet, attribute, depth)
            other = self._find_character(subject)
            if other is not None:
                return resolve_attribute(other, attribute, depth)
            return f"[{subject}.{attribute}?]"

        return ATTRIBUTE_PATTERN.sub(replace, text)

    def _find_character(self, name: str) -> AttributeStore | None:
        if self._characters is None:
            return None
        try:
            return self._characters.find_character(name)
        except Exception as e:
            logger.warning("Character lookup for %r failed: %s", name, e)
            return None

    # ── Dice ─────────────────────────────────────────────────

    def _substitute_rolls(self, text: str, style: CardStyle) -> str:
        def replace(match: re.Match) -> str:
            expression = match.group(1)
            if not has_dice_term(expression):
                return match.group(0)
            return cards.render_roll(self._roller.roll(expression), style)

        return ROLL_PATTERN.sub(replace, text)

