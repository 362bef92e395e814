"""Tests for proximity_trigger.content: template expansion stages."""

import pytest

from proximity_trigger.attributes import DictAttributeStore
from proximity_trigger.content import ContentProcessor, extract_actions
from proximity_trigger.dice import DiceRoller
from proximity_trigger.models import ActionLink, CardStyle, MonitoredEntity

STYLE = CardStyle(name="Default")
TOM = MonitoredEntity(name="Old Tom", piece_ids=("tom",))


@pytest.fixture
def processor(rng, tabletop) -> ContentProcessor:
    return ContentProcessor(DiceRoller(rng), tabletop)


def _process(processor, template, **kwargs):
    kwargs.setdefault("display_name", "Aria")
    kwargs.setdefault("entity", TOM)
    kwargs.setdefault("style", STYLE)
    return processor.process(template, **kwargs)


# ── Names ────────────────────────────────────────────────────


def test_plain_text_unchanged(processor):
    result = _process(processor, "The fire crackles.")
    assert result.text == "The fire crackles."
    assert result.actions == []


def test_names_substituted(processor):
    result = _process(processor, "Welcome, {playerName}! I'm {monitoredName}.")
    assert result.text == "Welcome, Aria! I'm Old Tom."


def test_every_occurrence_replaced(processor):
    result = _process(processor, "{playerName}? {playerName}!")
    assert result.text == "Aria? Aria!"


# ── Attributes ───────────────────────────────────────────────


def test_actor_attribute(processor):
    actor = DictAttributeStore("Aria Brightblade", {"hp": 24})
    result = _process(processor, "You have {playerName.hp} HP.", actor=actor)
    assert result.text == "You have 24 HP."


def test_actor_by_full_name(processor):
    actor = DictAttributeStore("Aria Brightblade", {"gold": 7})
    result = _process(processor, "{aria brightblade.gold} coins", actor=actor)
    assert result.text == "7 coins"


def test_actor_attribute_without_actor(processor):
    result = _process(processor, "{playerName.hp}")
    assert result.text == "[No Character]"


def test_entity_attribute(processor):
    sheet = DictAttributeStore("Old Tom", {"level": 3})
    result = _process(processor, "{monitoredName.level} / {Old Tom.level}", entity_sheet=sheet)
    assert result.text == "3 / 3"


def test_other_character_by_name(processor, tabletop):
    tabletop.add_character("Borin", {"ac": 18})
    result = _process(processor, "Borin's AC is {Borin.ac}.")
    assert result.text == "Borin's AC is 18."


def test_unknown_subject(processor):
    result = _process(processor, "{Nobody.hp}")
    assert result.text == "[Nobody.hp?]"


def test_missing_attribute_placeholder(processor):
    actor = DictAttributeStore("Aria", {})
    result = _process(processor, "{playerName.luck}", actor=actor)
    assert result.text == "[luck?]"


# ── Dice ─────────────────────────────────────────────────────


def test_roll_rendered_as_token(processor, rng):
    rng.rolls = [4, 5]
    result = _process(processor, "You take {2d6+3} damage.")
    assert result.text.startswith("You take <span")
    assert ">12</span>" in result.text
    assert "title=" in result.text
    assert result.text.endswith(" damage.")


def test_invalid_roll_marker(processor):
    result = _process(processor, "Roll {0d6}!")
    assert "[Invalid Roll: 0d6]" in result.text


def test_braces_without_dice_untouched(processor):
    result = _process(processor, "Keep {5+3} as is")
    assert result.text == "Keep {5+3} as is"


def test_rolls_use_style_colours(processor, rng):
    rng.rolls = [1]
    style = CardStyle(name="Night", text_color="#000001", bubble_color="#fffffe")
    result = _process(processor, "{1d4}", style=style)
    assert "#000001" in result.text
    assert "#fffffe" in result.text


# ── Actions ──────────────────────────────────────────────────


def test_extract_actions():
    text, actions = extract_actions("Psst. [Ask about rumors](The barkeep leans in.) [Leave]( /em walks off )")
    assert text == "Psst.  "
    assert actions == [
        ActionLink(label="Ask about rumors", action="The barkeep leans in."),
        ActionLink(label="Leave", action="/em walks off"),
    ]


def test_names_substituted_inside_actions(processor):
    result = _process(processor, "Hey. [Buy a drink](Tom pours {playerName} an ale)")
    assert result.text == "Hey. "
    assert result.actions == [ActionLink(label="Buy a drink", action="Tom pours Aria an ale")]
