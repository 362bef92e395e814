"""Weighted random selection of candidate messages."""

import random
from collections.abc import Iterable, Sequence
from typing import TypeVar

from proximity_trigger.models import Message

T = TypeVar("T")


def weighted_choice(pairs: Iterable[tuple[T, int]], fallback: T, rng: random.Random | None = None) -> T:
    """Pick one item with probability proportional to its weight.

    Items with weight <= 0 are never picked. An empty pool, or one where every
    weight is <= 0, returns fallback.
    """
    candidates = [(item, weight) for item, weight in pairs if weight > 0]
    if not candidates:
        return fallback

    rng = rng or random
    total = sum(weight for _, weight in candidates)
    roll = rng.randrange(total)
    for item, weight in candidates:
        if roll < weight:
            return item
        roll -= weight
    return candidates[-1][0]


def select_message(
    messages: Sequence[Message], fallback_text: str, rng: random.Random | None = None
) -> Message:
    """Pick a message from an entity's pool, falling back to fallback_text."""
    fallback = Message(content=fallback_text, weight=1)
    return weighted_choice(((m, m.weight) for m in messages), fallback, rng)
