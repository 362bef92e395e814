"""Proximity evaluation on piece movement.

For every monitored entity and every piece it is bound to:

  moved piece center ──distance──> entity piece center
  threshold = radius * entity piece size + entity piece size / 2

The pair fires when the distance is within the threshold, both pieces share a
spatial context (page) and the pair is not cooling down. An entity never
reacts to the movement of one of its own pieces.
"""

from __future__ import annotations

import logging

from proximity_trigger.cooldowns import CooldownTracker
from proximity_trigger.geometry import center_of, distance, trigger_threshold
from proximity_trigger.host import Board
from proximity_trigger.models import FireResult, MonitoredEntity, PieceGeometry
from proximity_trigger.triggers import Registry, TriggerStateMachine

logger = logging.getLogger(__name__)


class ProximityEvaluator:
    def __init__(
        self,
        registry: Registry,
        board: Board,
        cooldowns: CooldownTracker,
        machine: TriggerStateMachine,
    ) -> None:
        self._registry = registry
        self._board = board
        self._cooldowns = cooldowns
        self._machine = machine

    def on_piece_moved(self, piece_id: str) -> list[FireResult]:
        """Fire every entity the moved piece is now close enough to."""
        moved = self._geometry(piece_id)
        if moved is None:
            return []
        page = self._context(piece_id)
        center = center_of(moved)

        results: list[FireResult] = []
        for entity in list(self._registry.entities.values()):
            if entity.mode == "disabled" or piece_id in entity.piece_ids:
                continue
            for entity_piece_id in entity.piece_ids:
                try:
                    result = self._check_pair(piece_id, page, center, entity, entity_piece_id)
                except Exception:
                    logger.exception("Proximity check %s -> %s failed", piece_id, entity.name)
                    continue
                if result is not None:
                    results.append(result)
        return results

    def _check_pair(
        self,
        piece_id: str,
        page: str | None,
        center: tuple[float, float],
        entity: MonitoredEntity,
        entity_piece_id: str,
    ) -> FireResult | None:
        other = self._geometry(entity_piece_id)
        if other is None:
            return None
        if self._context(entity_piece_id) != page:
            return None

        dist = distance(center, center_of(other))
        threshold = trigger_threshold(entity.radius, other.size)
        logger.debug(
            "pair %s -> %s (%s): distance=%.1f threshold=%.1f",
            piece_id, entity_piece_id, entity.name, dist, threshold,
        )
        if dist > threshold:
            return None
        if self._cooldowns.is_cooling((piece_id, entity_piece_id)):
            return None
        return self._machine.fire(entity.name, actor_piece_id=piece_id, entity_piece_id=entity_piece_id)

    def _geometry(self, piece_id: str) -> PieceGeometry | None:
        try:
            return self._board.position(piece_id)
        except Exception as e:
            logger.warning("Position of piece %s unavailable: %s", piece_id, e)
            return None

    def _context(self, piece_id: str) -> str | None:
        try:
            return self._board.spatial_context(piece_id)
        except Exception as e:
            logger.warning("Spatial context of piece %s unavailable: %s", piece_id, e)
            return None
