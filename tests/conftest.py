"""Shared test fixtures."""

import asyncio
import sys
from pathlib import Path

import numpy as np
import pytest
import respx

# Add src/ to path so tests can import growcast
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from growcast.data.sources import SECONDS_PER_DAY, DailyBatch  # noqa: E402


@pytest.fixture
def mock_api():
    """Mock sensor API responses."""
    with respx.mock(base_url="http://localhost:55839") as mock:
        yield mock


@pytest.fixture
def rng():
    """Seeded random source so fits are reproducible."""
    return np.random.default_rng(42)


@pytest.fixture
def sample_trout_records():
    """Twenty daily trout records growing 0.5 cm/day from 10 cm."""
    return [
        {
            "tiempoDias": day,
            "longitudCm": 10.0 + 0.5 * day,
            "temperaturaC": 14.0,
            "conductividadUsCm": 500.0,
            "pH": 7.2,
        }
        for day in range(20)
    ]


@pytest.fixture
def sample_lettuce_records():
    """Twenty daily lettuce records with steady height and leaf-area growth."""
    return [
        {
            "tiempoDias": day,
            "alturaCm": 5.0 + 0.4 * day,
            "areaFoliarCm2": 40.0 + 6.0 * day,
            "temperaturaC": 23.0,
            "humedadPorcentaje": 60.0,
            "pH": 6.4,
        }
        for day in range(20)
    ]


@pytest.fixture
def sample_daily_response(sample_trout_records):
    """Sample diario-ultimo response wrapped with metadata."""
    return {"datos": sample_trout_records, "metadata": {"totalRegistros": len(sample_trout_records)}}


class FakeWindowSource:
    """In-memory window source keyed by day index.

    Days listed in ``failing`` raise, days in ``slow`` never answer in time,
    and days with no entry return an empty list.
    """

    def __init__(self, records_by_day=None, failing=(), slow=()):
        self.records_by_day = records_by_day or {}
        self.failing = set(failing)
        self.slow = set(slow)
        self.calls = []

    async def get_batch(self, start_seconds, end_seconds):
        day = start_seconds // SECONDS_PER_DAY
        self.calls.append((start_seconds, end_seconds))
        if day in self.failing:
            raise ConnectionError(f"window {day} unavailable")
        if day in self.slow:
            await asyncio.sleep(10)
        return list(self.records_by_day.get(day, []))


class FakeDailySource:
    """In-memory daily source returning a fixed batch (or raising)."""

    def __init__(self, records=None, metadata=None, error=None):
        self.records = records or []
        self.metadata = metadata
        self.error = error

    async def get_daily_batch(self):
        if self.error is not None:
            raise self.error
        return DailyBatch(records=list(self.records), metadata=self.metadata)


@pytest.fixture
def fake_window_source():
    return FakeWindowSource


@pytest.fixture
def fake_daily_source():
    return FakeDailySource
