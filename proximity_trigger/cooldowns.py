"""Per-pair cooldown bookkeeping.

Key: (moved piece id, entity piece id). An entry exists while that exact pair
must not fire again. Entries are removed by their own expiry callback or
explicitly when a piece or entity goes away.

Scheduled callbacks cannot be cancelled, so each entry carries a generation
token and its expiry callback only removes the entry it was scheduled for. A
callback that finds its entry gone, or replaced by a newer one, does nothing.
"""

import itertools
import logging

from proximity_trigger.models import PERMANENT_COOLDOWN, CooldownEntry
from proximity_trigger.scheduling import Scheduler

logger = logging.getLogger(__name__)

PairKey = tuple[str, str]


class CooldownTracker:
    def __init__(self, scheduler: Scheduler, min_cooldown_ms: int = 1) -> None:
        self._scheduler = scheduler
        self._min_cooldown_ms = min_cooldown_ms
        self._entries: dict[PairKey, CooldownEntry] = {}
        self._tokens = itertools.count(1)

    def is_cooling(self, key: PairKey) -> bool:
        return key in self._entries

    def get(self, key: PairKey) -> CooldownEntry | None:
        return self._entries.get(key)

    def entries(self) -> list[CooldownEntry]:
        return list(self._entries.values())

    def delay_for(self, duration_ms: int) -> int | None:
        """Milliseconds until expiry, or None for a permanent cooldown."""
        if duration_ms == PERMANENT_COOLDOWN:
            return None
        return max(duration_ms, self._min_cooldown_ms)

    def start(self, key: PairKey, entity_name: str, duration_ms: int) -> CooldownEntry:
        delay = self.delay_for(duration_ms)
        entry = CooldownEntry(
            key=key, entity_name=entity_name, token=next(self._tokens), permanent=delay is None
        )
        self._entries[key] = entry
        if delay is None:
            logger.debug("permanent cooldown %s for %s", key, entity_name)
            return entry

        try:
            self._scheduler.after(delay, lambda: self._expire(key, entry.token))
        except Exception as e:
            # without a timer the pair would stay silent forever
            logger.warning("Could not schedule cooldown expiry for %s: %s", key, e)
            del self._entries[key]
        return entry

    def _expire(self, key: PairKey, token: int) -> None:
        current = self._entries.get(key)
        if current is None or current.token != token:
            return
        del self._entries[key]
        logger.debug("cooldown expired %s", key)

    def clear_piece(self, piece_id: str) -> int:
        """Drop every entry involving piece_id on either side."""
        return self._drop(lambda e: piece_id in e.key)

    def clear_entity(self, entity_name: str) -> int:
        return self._drop(lambda e: e.entity_name == entity_name)

    def reset(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def _drop(self, predicate) -> int:
        doomed = [key for key, entry in self._entries.items() if predicate(entry)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)
