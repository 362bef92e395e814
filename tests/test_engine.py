"""Tests for TriggerEngine administration: entities, pieces, presets, styles, persistence."""

import pytest
from pydantic import ValidationError

from proximity_trigger.config import EngineConfig
from proximity_trigger.engine import EntityNotFoundError, TriggerEngine
from proximity_trigger.models import CardStyle, Message, MonitoredEntity, Preset
from proximity_trigger.storage import Storage


# ── Registration ─────────────────────────────────────────────


class TestRegister:
    def test_from_mapping_uses_config_defaults(self, tabletop, chat, scheduler) -> None:
        config = EngineConfig(default_radius=3, default_cooldown_ms=500, default_image="https://example.test/npc.png")
        engine = TriggerEngine(board=tabletop, output=chat, scheduler=scheduler, config=config)
        entity = engine.register_entity({"name": "Old Tom"})
        assert entity.radius == 3
        assert entity.cooldown_ms == 500
        assert entity.image == "https://example.test/npc.png"

    def test_explicit_fields_win(self, engine) -> None:
        entity = engine.register_entity({"name": "Old Tom", "radius": 1.5})
        assert entity.radius == 1.5

    def test_invalid_mapping_rejected(self, engine) -> None:
        with pytest.raises(ValidationError):
            engine.register_entity({"name": "Old Tom", "radius": -2})
        assert engine.entities() == []

    def test_reregistration_replaces(self, engine) -> None:
        engine.register_entity({"name": "Old Tom", "messages": [{"content": "a"}]})
        engine.register_entity(MonitoredEntity(name="Old Tom", messages=(Message(content="b"),)))
        assert len(engine.entities()) == 1
        assert engine.get_entity("Old Tom").messages[0].content == "b"

    def test_lookup_by_safe_name(self, engine) -> None:
        engine.register_entity({"name": "Old Tom"})
        assert engine.get_entity("Old_Tom").name == "Old Tom"
        assert engine.get_entity("Nobody") is None


class TestRemove:
    def test_remove(self, engine) -> None:
        engine.register_entity({"name": "Old Tom"})
        assert engine.remove_entity("Old Tom").name == "Old Tom"
        assert engine.get_entity("Old Tom") is None

    def test_remove_unknown(self, engine) -> None:
        with pytest.raises(EntityNotFoundError):
            engine.remove_entity("Nobody")

    def test_remove_clears_cooldowns(self, engine, tabletop, scheduler) -> None:
        tabletop.add_piece("tom", x=0, y=0)
        tabletop.add_piece("hero", x=70, y=0)
        engine.register_entity({"name": "Old Tom", "piece_ids": ["tom"]})
        engine.on_piece_moved("hero")
        assert engine.cooldowns.is_cooling(("hero", "tom"))

        engine.remove_entity("Old Tom")
        assert engine.cooldowns.entries() == []
        engine.register_entity({"name": "Old Tom", "piece_ids": ["tom"]})
        scheduler.advance(5000)
        assert len(engine.on_piece_moved("hero")) == 1


class TestSetMode:
    def test_set_mode(self, engine) -> None:
        engine.register_entity({"name": "Old Tom"})
        assert engine.set_mode("Old Tom", "fire-once").mode == "fire-once"

    def test_invalid_mode(self, engine) -> None:
        engine.register_entity({"name": "Old Tom"})
        with pytest.raises(ValidationError):
            engine.set_mode("Old Tom", "asleep")
        assert engine.get_entity("Old Tom").mode == "active"

    def test_unknown_entity(self, engine) -> None:
        with pytest.raises(EntityNotFoundError):
            engine.set_mode("Nobody", "disabled")

    def test_fire_unknown_entity(self, engine) -> None:
        with pytest.raises(EntityNotFoundError):
            engine.fire_manually("Nobody")


# ── Pieces ───────────────────────────────────────────────────


def test_attach_and_detach(engine):
    engine.register_entity({"name": "Goblins", "piece_ids": ["g1"]})
    engine.attach_piece("Goblins", "g2")
    engine.attach_piece("Goblins", "g2")
    assert engine.get_entity("Goblins").piece_ids == ("g1", "g2")
    engine.detach_piece("Goblins", "g1")
    assert engine.get_entity("Goblins").piece_ids == ("g2",)


def test_piece_added_attaches_to_same_name(engine, tabletop):
    engine.register_entity({"name": "Old Tom"})
    tabletop.add_piece("tom-2", x=0, y=0, name="Old Tom")
    assert engine.on_piece_added("tom-2").piece_ids == ("tom-2",)


def test_piece_added_instantiates_preset(engine, tabletop):
    engine.register_preset(Preset(name="Goblin", radius=1, messages=(Message(content="Grr"),)))
    tabletop.add_piece("g1", x=0, y=0, name="Goblin")
    entity = engine.on_piece_added("g1")
    assert entity.name == "Goblin"
    assert entity.piece_ids == ("g1",)
    assert entity.radius == 1

    tabletop.add_piece("g2", x=0, y=0, name="Goblin")
    assert engine.on_piece_added("g2").piece_ids == ("g1", "g2")


def test_piece_added_without_match(engine, tabletop):
    tabletop.add_piece("rock", x=0, y=0, name="Rock")
    tabletop.add_piece("blank", x=0, y=0)
    assert engine.on_piece_added("rock") is None
    assert engine.on_piece_added("blank") is None
    assert engine.entities() == []


def test_piece_removed_detaches_and_clears_cooldowns(engine, tabletop):
    tabletop.add_piece("tom", x=0, y=0)
    tabletop.add_piece("hero", x=70, y=0)
    engine.register_entity({"name": "Old Tom", "piece_ids": ["tom"]})
    engine.register_entity({"name": "Gate", "piece_ids": ["gate"]})
    engine.on_piece_moved("hero")
    engine.cooldowns.start(("hero", "gate"), "Gate", 0)

    tabletop.remove_piece("tom")
    engine.on_piece_removed("tom")
    assert engine.get_entity("Old Tom").piece_ids == ()
    assert [e.key for e in engine.cooldowns.entries()] == [("hero", "gate")]


# ── Cooldown reset ───────────────────────────────────────────


def test_reset_cooldowns(engine):
    engine.register_entity({"name": "Old Tom"})
    engine.cooldowns.start(("hero", "tom"), "Old Tom", 0)
    engine.cooldowns.start(("hero", "gate"), "Gate", 0)
    assert engine.reset_cooldowns("Old Tom") == 1
    assert engine.reset_cooldowns() == 1
    with pytest.raises(EntityNotFoundError):
        engine.reset_cooldowns("Nobody")


# ── Styles & presets ─────────────────────────────────────────


def test_styles(engine):
    assert engine.get_style("Default") is not None
    engine.add_style(CardStyle(name="Tavern"))
    assert {s.name for s in engine.styles()} == {"Default", "Tavern"}
    assert engine.remove_style("Tavern") is True
    assert engine.remove_style("Tavern") is False


def test_default_style_cannot_disappear(engine):
    engine.add_style(CardStyle(name="Default", border_color="#000000"))
    engine.remove_style("Default")
    assert engine.get_style("Default") == CardStyle(name="Default")


# ── Persistence ──────────────────────────────────────────────


def test_save_and_load(engine, tabletop, chat, scheduler, tmp_path):
    engine.register_entity({"name": "Old Tom", "piece_ids": ["tom"], "mode": "fire-once",
                            "messages": [{"content": "Hi", "weight": 2}]})
    engine.add_style(CardStyle(name="Tavern", whisper="gm"))
    engine.register_preset(Preset(name="Goblin"))
    engine.cooldowns.start(("hero", "tom"), "Old Tom", 0)
    storage = Storage(tmp_path)
    engine.save_to(storage)

    fresh = TriggerEngine(board=tabletop, output=chat, scheduler=scheduler)
    fresh.load_from(storage)
    assert fresh.entities() == engine.entities()
    assert fresh.get_style("Tavern").whisper == "gm"
    assert [p.name for p in fresh.presets()] == ["Goblin"]
    assert fresh.cooldowns.entries() == []
