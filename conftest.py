import importlib
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from circulation.library import Library
from circulation.utils.ui_helpers import OUTPUT_MODE_ENV


class FakeClock:
    """Callable date source the tests can move forward."""

    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int) -> None:
        self.today += timedelta(days=days)


@pytest.fixture(autouse=True)
def _plain_output(monkeypatch):
    # Output mode is process-wide; keep every test on the plain renderer
    monkeypatch.delenv(OUTPUT_MODE_ENV, raising=False)


@pytest.fixture
def clock():
    return FakeClock(date(2024, 3, 1))


@pytest.fixture
def lib(clock):
    return Library(clock=clock)


@pytest.fixture
def api_module(clock):
    # Reload so every test gets its own module-level Library
    import circulation.api as api_module
    importlib.reload(api_module)
    api_module.library.clock = clock
    return api_module


@pytest.fixture
def client(api_module):
    with TestClient(api_module.app) as test_client:
        yield test_client
