# trybud/conftest.py
import sys
from pathlib import Path

import pytest

# Add project root to PYTHONPATH
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from trybud.features.quests.ledger import InMemoryQuestLedger, SECONDS_PER_DAY  # noqa: E402
from trybud.features.quests.service import QuestLifecycleController  # noqa: E402
from trybud.features.session.service import SessionStore  # noqa: E402

START = 1_704_067_200  # 2024-01-01T00:00:00Z


class FakeClock:
    """Shared ledger/controller clock that only moves when told to."""

    def __init__(self, now: float = START):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, days: int = 0, seconds: int = 0) -> None:
        self.now += days * SECONDS_PER_DAY + seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(clock):
    return InMemoryQuestLedger(clock=clock)


@pytest.fixture
def controller(ledger, clock):
    return QuestLifecycleController(ledger, clock=clock, max_daily_target=10, max_grace_days=3)


@pytest.fixture
def sessions():
    return SessionStore(award_points=100)


@pytest.fixture
def client(controller, sessions):
    """
    TestClient wired to a fresh in-memory ledger and session store.

    The process-wide controller is swapped for the test and restored after.
    """
    from fastapi.testclient import TestClient

    from trybud.api import dependencies
    from trybud.main import app

    dependencies.set_controller(controller)
    app.dependency_overrides[dependencies.get_sessions] = lambda: sessions
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        dependencies.set_controller(None)
