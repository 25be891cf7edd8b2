import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from menagerie.catalog import load_catalog  # noqa: E402
from menagerie.settings import Settings  # noqa: E402
from menagerie.state.models import Creature  # noqa: E402
from menagerie.state.reducer import Reducer  # noqa: E402
from menagerie.state.store import GameStore  # noqa: E402


class FakeClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def settings() -> Settings:
    s = Settings()
    s.persistence.autosave_delay = 0.01
    return s


@pytest.fixture()
def catalog():
    return load_catalog()


@pytest.fixture()
def reducer(settings, catalog) -> Reducer:
    return Reducer(settings, catalog)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(reducer, clock) -> GameStore:
    return GameStore(reducer, clock=clock)


@pytest.fixture()
def parents():
    return (
        Creature.wild("A", "slime", {"atk": 100, "def": 50}),
        Creature.wild("B", "slime", {"atk": 60, "def": 70}),
    )
