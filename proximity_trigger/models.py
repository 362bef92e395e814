"""Core domain models.

Every stage of the trigger engine operates on these types. Configuration
records are frozen; the engine replaces them with ``model_copy(update=...)``
instead of mutating them, so a fire in progress always works on a snapshot.
"""

from __future__ import annotations

import math
import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Mode = Literal["active", "disabled", "fire-once"]
Whisper = Literal["off", "character", "gm"]

# A cooldown of zero never expires on its own.
PERMANENT_COOLDOWN = 0

DEFAULT_STYLE_NAME = "Default"


def safe_name(name: str) -> str:
    """Convert a display name to a registry key.

    "Old Tom the Barkeep" → "Old_Tom_the_Barkeep"
    """
    return re.sub(r"\s+", "_", name.strip())


def display_name(key: str) -> str:
    """Inverse of safe_name: underscores back to spaces."""
    return key.replace("_", " ").strip()


def first_name(full_name: str | None, default: str) -> str:
    """First space-separated part of a name, or default when there is none."""
    if not full_name or not full_name.strip() or full_name == default:
        return default
    return full_name.strip().split(" ")[0]


class Message(BaseModel):
    """One candidate utterance of a monitored entity."""

    model_config = ConfigDict(frozen=True)

    content: str
    weight: int = Field(default=1, ge=0)  # 0 keeps the message but never picks it
    style: str | None = None


class CardStyle(BaseModel):
    """Visual style of a message card. Opaque to the trigger logic."""

    model_config = ConfigDict(frozen=True)

    name: str
    border_color: str = "#8b4513"
    background_color: str = "#f4e8d8"
    bubble_color: str = "#ffffff"
    text_color: str = "#2c1810"
    whisper: Whisper = "off"
    badge: str | None = None


def _dedupe(piece_ids: tuple[str, ...]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for piece_id in piece_ids:
        seen.setdefault(piece_id, None)
    return tuple(seen)


class MonitoredEntity(BaseModel):
    """A named trigger source (NPC, trap, area effect) backed by one or more pieces."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    piece_ids: tuple[str, ...] = ()
    radius: float = Field(default=2, gt=0)  # in multiples of the piece size
    cooldown_ms: int = Field(default=10000, ge=0)
    mode: Mode = "active"
    image: str | None = None
    style: str | None = None
    messages: tuple[Message, ...] = ()

    @field_validator("piece_ids")
    @classmethod
    def _unique_pieces(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return _dedupe(value)

    @field_validator("radius")
    @classmethod
    def _finite_radius(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("radius must be finite")
        return value

    @property
    def key(self) -> str:
        return safe_name(self.name)

    @property
    def permanent_cooldown(self) -> bool:
        return self.cooldown_ms == PERMANENT_COOLDOWN


class Preset(BaseModel):
    """Template used to create a MonitoredEntity when a matching piece appears."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    radius: float = Field(default=2, gt=0)
    cooldown_ms: int = Field(default=10000, ge=0)
    image: str | None = None
    style: str | None = None
    messages: tuple[Message, ...] = ()

    @property
    def key(self) -> str:
        return safe_name(self.name)

    def to_entity(self, piece_ids: tuple[str, ...] = ()) -> MonitoredEntity:
        return MonitoredEntity(
            name=self.name,
            piece_ids=piece_ids,
            radius=self.radius,
            cooldown_ms=self.cooldown_ms,
            image=self.image,
            style=self.style,
            messages=self.messages,
        )


class ActionLink(BaseModel):
    """A follow-up extracted from ``[label](action)`` markup."""

    model_config = ConfigDict(frozen=True)

    label: str
    action: str


class RollResult(BaseModel):
    """Outcome of evaluating a dice expression."""

    model_config = ConfigDict(frozen=True)

    total: int
    expression: str
    details: str
    success: bool


class ProcessedMessage(BaseModel):
    """Final display text of a template plus the follow-ups pulled out of it."""

    text: str
    actions: list[ActionLink] = Field(default_factory=list)


class PieceGeometry(BaseModel):
    """Position (top-left corner) and size of a piece on its page."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    size: float = Field(ge=0)

    @property
    def center(self) -> tuple[float, float]:
        half = self.size / 2
        return (self.x + half, self.y + half)


class CooldownEntry(BaseModel):
    """A recent fire for one (moved piece, entity piece) pair."""

    model_config = ConfigDict(frozen=True)

    key: tuple[str, str]
    entity_name: str
    token: int  # generation, lets stale expiry callbacks recognise themselves
    permanent: bool = False


class PendingAction(BaseModel):
    """A follow-up waiting for its button to be pressed."""

    model_config = ConfigDict(frozen=True)

    sender: str
    whisper: str
    action: str


class FireResult(BaseModel):
    """What a successful fire selected, rendered and emitted."""

    entity_name: str
    message: Message
    style: CardStyle
    text: str
    actions: list[ActionLink] = Field(default_factory=list)
    action_ids: list[str] = Field(default_factory=list)
