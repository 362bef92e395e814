"""Host collaborator interfaces.

The engine never touches the virtual tabletop directly. It reads piece
geometry and character sheets through these protocols and sends chat output
through a plain callable:

    Board            position / spatial context / name of a piece
    CharacterSource  attribute store bound to a piece, or found by name
    Output           ``(speaker, text) -> None``, fire-and-forget

Scheduling lives in ``proximity_trigger.scheduling``.

``Tabletop`` and ``ChatLog`` are in-memory implementations, used by tests and
by anything that wants to run the engine without a real host.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from proximity_trigger.attributes import AttributeStore, DictAttributeStore
from proximity_trigger.models import PieceGeometry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------

class Board(Protocol):
    def position(self, piece_id: str) -> PieceGeometry | None: ...

    def spatial_context(self, piece_id: str) -> str | None: ...

    def piece_name(self, piece_id: str) -> str | None: ...


class CharacterSource(Protocol):
    def attributes_of(self, piece_id: str) -> AttributeStore | None: ...

    def find_character(self, name: str) -> AttributeStore | None: ...


class Output(Protocol):
    def __call__(self, speaker: str, text: str) -> None: ...


# ---------------------------------------------------------------------------
# In-memory host
# ---------------------------------------------------------------------------

class _Piece:
    __slots__ = ("geometry", "page", "name", "character")

    def __init__(self, geometry: PieceGeometry, page: str, name: str, character: str | None) -> None:
        self.geometry = geometry
        self.page = page
        self.name = name
        self.character = character


class Tabletop:
    """Pieces on pages plus the character sheets they represent."""

    def __init__(self) -> None:
        self._pieces: dict[str, _Piece] = {}
        self._characters: dict[str, DictAttributeStore] = {}

    # -- setup ---------------------------------------------------------

    def add_character(self, name: str, attributes: Mapping[str, Any] | None = None) -> DictAttributeStore:
        sheet = DictAttributeStore(name, attributes)
        self._characters[name] = sheet
        return sheet

    def add_piece(
        self,
        piece_id: str,
        *,
        x: float,
        y: float,
        size: float = 70,
        page: str = "page-1",
        name: str = "",
        character: str | None = None,
    ) -> None:
        """Place a piece. A piece representing a character defaults to its name."""
        self._pieces[piece_id] = _Piece(
            PieceGeometry(x=x, y=y, size=size), page, name or character or "", character
        )

    def move_piece(self, piece_id: str, *, x: float, y: float, page: str | None = None) -> None:
        piece = self._pieces[piece_id]
        piece.geometry = piece.geometry.model_copy(update={"x": x, "y": y})
        if page is not None:
            piece.page = page

    def remove_piece(self, piece_id: str) -> None:
        self._pieces.pop(piece_id, None)

    # -- Board ---------------------------------------------------------

    def position(self, piece_id: str) -> PieceGeometry | None:
        piece = self._pieces.get(piece_id)
        return piece.geometry if piece else None

    def spatial_context(self, piece_id: str) -> str | None:
        piece = self._pieces.get(piece_id)
        return piece.page if piece else None

    def piece_name(self, piece_id: str) -> str | None:
        piece = self._pieces.get(piece_id)
        return piece.name if piece and piece.name else None

    # -- CharacterSource -----------------------------------------------

    def attributes_of(self, piece_id: str) -> AttributeStore | None:
        piece = self._pieces.get(piece_id)
        if piece is None or piece.character is None:
            return None
        return self._characters.get(piece.character)

    def find_character(self, name: str) -> AttributeStore | None:
        return self._characters.get(name)


class ChatLog:
    """Output that records every emitted message."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def __call__(self, speaker: str, text: str) -> None:
        logger.debug("emit speaker=%s len=%d", speaker, len(text))
        self.messages.append((speaker, text))

    def clear(self) -> None:
        self.messages.clear()
