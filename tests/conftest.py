import asyncio
import logging
import os
from collections import deque
from datetime import datetime, timezone
from typing import Optional

import pytest

# Set test environment variables
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from locationdata.core.exceptions import PersistenceFailure, ProviderUnavailable, SensorError
from locationdata.core.reporting import LoggingErrorReporter
from locationdata.models import MemoryKeyValueStore
from locationdata.schemas import (
    LocationRecord, LocationSource, PermissionState, PositionOptions, RawPosition
)
from locationdata.services import LocationDataCollector


def make_raw(latitude=37.7749, longitude=-122.4194, **kwargs) -> RawPosition:
    kwargs.setdefault("accuracy", 12.0)
    kwargs.setdefault("timestamp", datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))
    return RawPosition(latitude=latitude, longitude=longitude, **kwargs)


def make_record(latitude: Optional[float] = 37.775, longitude: Optional[float] = -122.419, **kwargs) -> LocationRecord:
    now = datetime.now(timezone.utc)
    kwargs.setdefault("timestamp", now)
    kwargs.setdefault("collected_at", now)
    kwargs.setdefault("source", LocationSource.GPS)
    kwargs.setdefault("accuracy", 25.0)
    if latitude is not None:
        kwargs["latitude"] = latitude
    if longitude is not None:
        kwargs["longitude"] = longitude
    return LocationRecord(**kwargs)


class ScriptedSensor:
    """
    Sensor double: answers one-shot reads from a script and records watches.
    A queued future holds the read open until the test resolves it.
    """

    def __init__(self, permission=PermissionState.GRANTED, available=True):
        self.available = available
        self.permission = permission
        self.script = deque()
        self.reads = []
        self.watches = {}
        self.cleared = []
        self._next = 1

    def queue(self, *results):
        self.script.extend(results)

    async def query_permission(self):
        if isinstance(self.permission, Exception):
            raise self.permission
        return self.permission

    async def get_current_position(self, options: PositionOptions):
        self.reads.append(options)
        result = self.script.popleft() if self.script else make_raw()
        if isinstance(result, asyncio.Future):
            result = await result
        if isinstance(result, SensorError):
            raise result
        return result

    def watch_position(self, on_success, on_error, options):
        handle = self._next
        self._next += 1
        self.watches[handle] = (on_success, on_error, options)
        return handle

    def clear_watch(self, handle):
        self.cleared.append(handle)
        self.watches.pop(handle, None)

    async def emit(self, raw):
        for on_success, _, _ in list(self.watches.values()):
            await on_success(raw)

    async def fail(self, error):
        for _, on_error, _ in list(self.watches.values()):
            await on_error(error)


class FakeIPProvider:
    def __init__(self, result=None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls = 0

    async def locate(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class FailingStore(MemoryKeyValueStore):
    async def set(self, key, value):
        raise PersistenceFailure(f"disk full writing {key}", key=key)


@pytest.fixture(autouse=True)
def _quiet_logs():
    logging.getLogger("locationdata").setLevel(logging.WARNING)
    yield


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def sensor():
    return ScriptedSensor()


@pytest.fixture
def ip_provider():
    return FakeIPProvider(
        result=make_raw(48.8566, 2.3522, accuracy=None, source=LocationSource.IP, country="France")
    )


@pytest.fixture
def unavailable_ip_provider():
    return FakeIPProvider(error=ProviderUnavailable("network down"))


@pytest.fixture
def reporter():
    return LoggingErrorReporter()


@pytest.fixture
async def collector(store, sensor, ip_provider, reporter):
    collector = LocationDataCollector(
        store=store,
        sensor=sensor,
        ip_provider=ip_provider,
        reporter=reporter,
        user_agent="pytest-agent"
    )
    yield collector
    await collector.close()


@pytest.fixture
def events(collector):
    """Collects every event the collector emits"""
    received = {"locationUpdate": [], "locationError": []}
    collector.subscribe("locationUpdate", received["locationUpdate"].append)
    collector.subscribe("locationError", received["locationError"].append)
    return received
