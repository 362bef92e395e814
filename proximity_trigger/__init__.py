"""Proximity-triggered messages for a virtual tabletop.

Monitored entities (NPCs, traps, area effects) are bound to pieces on the
board. When another piece moves within an entity's trigger radius, the entity
picks a weighted message, expands it (actor/entity names, character
attributes, dice rolls, follow-up action links), renders it as a chat card and
sends it through the host's output. Each (moved piece, entity piece) pair then
cools down before it can fire again.

    engine = TriggerEngine(board=tabletop, characters=tabletop,
                           output=chat, scheduler=ManualScheduler())
    engine.register_entity({"name": "Old Tom", "piece_ids": ["tok-1"],
                            "messages": [{"content": "Welcome, {playerName}!"}]})
    engine.on_piece_moved("hero-1")
"""

# Re-export the public surface so `from proximity_trigger import TriggerEngine` works.

from .config import EngineConfig, get_config, load_config, update_config  # noqa: F401
from .engine import EntityNotFoundError, TriggerEngine  # noqa: F401
from .host import ChatLog, Tabletop  # noqa: F401
from .models import (  # noqa: F401
    PERMANENT_COOLDOWN,
    ActionLink,
    CardStyle,
    FireResult,
    Message,
    MonitoredEntity,
    Preset,
    RollResult,
)
from .scheduling import AsyncioScheduler, ManualScheduler  # noqa: F401
from .storage import Storage  # noqa: F401
