import pytest

from proximity_trigger.engine import TriggerEngine
from proximity_trigger.host import ChatLog, Tabletop
from proximity_trigger.scheduling import ManualScheduler


class ScriptedRng:
    """Random source that replays scripted draws.

    randint() pops from ``rolls`` and randrange() from ``picks``; once a
    script runs out it returns the lowest legal value.
    """

    def __init__(self, rolls=(), picks=()) -> None:
        self.rolls = list(rolls)
        self.picks = list(picks)
        self.randint_calls: list[tuple[int, int]] = []

    def randint(self, a: int, b: int) -> int:
        self.randint_calls.append((a, b))
        return self.rolls.pop(0) if self.rolls else a

    def randrange(self, stop: int) -> int:
        return self.picks.pop(0) if self.picks else 0


@pytest.fixture
def rng() -> ScriptedRng:
    return ScriptedRng()


@pytest.fixture
def tabletop() -> Tabletop:
    return Tabletop()


@pytest.fixture
def chat() -> ChatLog:
    return ChatLog()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def engine(tabletop, chat, scheduler, rng) -> TriggerEngine:
    return TriggerEngine(
        board=tabletop, characters=tabletop, output=chat, scheduler=scheduler, rng=rng
    )
