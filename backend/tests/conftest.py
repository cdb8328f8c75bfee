from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from providers.cache.memory_adapter import MemoryCacheStore


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MemoryCacheStore(clock=clock)


@pytest.fixture
def mock_vendor():
    vendor = MagicMock()
    vendor.fetch_menu_page = AsyncMock(return_value=None)
    vendor.fetch_label_page = AsyncMock(return_value=None)
    vendor.close = AsyncMock()
    return vendor


@pytest.fixture
def mock_llm():
    llm = MagicMock()
    llm.classify_spicy = AsyncMock(return_value='{"spicy": false}')
    return llm


@pytest.fixture
def today():
    return date(2026, 3, 10)
