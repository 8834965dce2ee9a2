import asyncio

import pytest

from locationdata.core.exceptions import PositionTimeout, PositionUnavailable, SensorErrorKind
from locationdata.core.reporting import LoggingErrorReporter
from locationdata.schemas import (
    AccuracyLevel, CollectionMethod, LocationSettings, LocationSource, PermissionState,
    PositionOptions, PrivacyLevel, TrackingState
)
from locationdata.services.privacy_filter import PrivacyFilter
from locationdata.services.tracking import TrackingController, position_options

from tests.conftest import FakeIPProvider, ScriptedSensor, make_raw


class Harness:
    """Controller wired to recording callbacks and a swappable settings object"""

    def __init__(self, sensor=None, ip_provider=None, **settings):
        settings.setdefault("collection_enabled", True)
        settings.setdefault("privacy_level", PrivacyLevel.EXACT)
        self.settings = LocationSettings(**settings)
        self.sensor = sensor if sensor is not None else ScriptedSensor()
        self.records = []
        self.errors = []
        self.reporter = LoggingErrorReporter()
        self.controller = TrackingController(
            sensor=self.sensor,
            privacy_filter=PrivacyFilter(reporter=self.reporter),
            get_settings=lambda: self.settings,
            on_record=self._on_record,
            on_error=self._on_error,
            ip_provider=ip_provider,
            reporter=self.reporter
        )

    async def _on_record(self, record):
        self.records.append(record)

    async def _on_error(self, event):
        self.errors.append(event)


@pytest.mark.parametrize("level,expected", [
    (AccuracyLevel.HIGH, PositionOptions(enable_high_accuracy=True, timeout_ms=30000, maximum_age_ms=60000)),
    (AccuracyLevel.MEDIUM, PositionOptions(enable_high_accuracy=False, timeout_ms=15000, maximum_age_ms=300000)),
    (AccuracyLevel.LOW, PositionOptions(enable_high_accuracy=False, timeout_ms=10000, maximum_age_ms=600000)),
])
def test_position_options(level, expected):
    assert position_options(level) == expected


async def test_start_is_noop_when_collection_disabled():
    harness = Harness(collection_enabled=False)
    await harness.controller.start()

    assert harness.controller.state == TrackingState.IDLE
    assert harness.sensor.reads == []
    assert harness.records == []


async def test_start_is_noop_when_accuracy_disabled():
    harness = Harness(accuracy_level=AccuracyLevel.DISABLED)
    await harness.controller.start()

    assert harness.controller.state == TrackingState.IDLE
    assert harness.sensor.reads == []
    assert harness.errors == []


async def test_one_shot_reads_once_and_returns_to_idle():
    harness = Harness(accuracy_level=AccuracyLevel.HIGH)
    await harness.controller.start()
    await harness.controller.drain()

    assert len(harness.sensor.reads) == 1
    assert harness.sensor.reads[0].enable_high_accuracy is True
    assert len(harness.records) == 1
    assert harness.records[0].latitude == 37.7749
    assert harness.controller.state == TrackingState.IDLE
    assert harness.controller.is_tracking is False


async def test_start_returns_before_one_shot_read_completes():
    read = asyncio.get_running_loop().create_future()
    sensor = ScriptedSensor()
    sensor.queue(read)
    harness = Harness(sensor=sensor)

    await asyncio.wait_for(harness.controller.start(), timeout=1)
    await asyncio.sleep(0)

    assert harness.controller.state == TrackingState.ONE_SHOT
    assert len(sensor.reads) == 1
    assert harness.records == []

    read.set_result(make_raw(5.0, 6.0))
    await harness.controller.drain()

    assert [r.latitude for r in harness.records] == [5.0]
    assert harness.controller.state == TrackingState.IDLE


async def test_read_finished_after_stop_is_discarded():
    read = asyncio.get_running_loop().create_future()
    sensor = ScriptedSensor()
    sensor.queue(read)
    harness = Harness(sensor=sensor)
    await harness.controller.start()
    await asyncio.sleep(0)

    harness.controller.stop()
    read.set_result(make_raw())
    await harness.controller.drain()

    assert harness.records == []
    assert harness.controller.state == TrackingState.IDLE


async def test_error_after_stop_is_ignored():
    read = asyncio.get_running_loop().create_future()
    sensor = ScriptedSensor()
    sensor.queue(read)
    ip = FakeIPProvider(result=make_raw(10, 10))
    harness = Harness(sensor=sensor, ip_provider=ip)
    await harness.controller.start()
    await asyncio.sleep(0)

    harness.controller.stop()
    read.set_result(PositionTimeout("slow"))
    await harness.controller.drain()

    assert harness.errors == []
    assert ip.calls == 0
    assert harness.controller.state == TrackingState.IDLE


async def test_restart_keeps_only_the_new_read():
    stale = asyncio.get_running_loop().create_future()
    sensor = ScriptedSensor()
    sensor.queue(stale, make_raw(3.0, 4.0))
    harness = Harness(sensor=sensor)
    await harness.controller.start()
    await asyncio.sleep(0)

    harness.controller.stop()
    await harness.controller.start()
    stale.set_result(make_raw(1.0, 2.0))
    await harness.controller.drain()

    assert [r.latitude for r in harness.records] == [3.0]
    assert len(sensor.reads) == 2


async def test_cancel_pending_abandons_read():
    read = asyncio.get_running_loop().create_future()
    sensor = ScriptedSensor()
    sensor.queue(read)
    harness = Harness(sensor=sensor)
    await harness.controller.start()
    await asyncio.sleep(0)

    harness.controller.stop()
    await harness.controller.cancel_pending()

    assert read.cancelled()
    assert harness.records == []
    assert harness.reporter.snapshot() == {}


@pytest.mark.parametrize("settings", [
    {"collection_method": CollectionMethod.PERIODIC},
    {"collection_method": CollectionMethod.ON_REQUEST, "background_tracking": True},
])
async def test_watch_mode(settings):
    harness = Harness(accuracy_level=AccuracyLevel.LOW, **settings)
    await harness.controller.start()

    assert harness.controller.state == TrackingState.WATCHING
    assert harness.controller.is_tracking is True
    assert len(harness.sensor.watches) == 1
    (_, _, options), = harness.sensor.watches.values()
    assert options == position_options(AccuracyLevel.LOW)

    await harness.sensor.emit(make_raw(1.0, 2.0))
    await harness.sensor.emit(make_raw(1.5, 2.5))
    assert [r.latitude for r in harness.records] == [1.0, 1.5]


async def test_start_twice_keeps_single_watch():
    harness = Harness(collection_method=CollectionMethod.PERIODIC)
    await harness.controller.start()
    await harness.controller.start()

    assert len(harness.sensor.watches) == 1


async def test_stop_is_idempotent():
    harness = Harness(collection_method=CollectionMethod.PERIODIC)
    await harness.controller.start()

    harness.controller.stop()
    harness.controller.stop()

    assert harness.controller.state == TrackingState.IDLE
    assert harness.sensor.cleared == [1]
    assert harness.sensor.watches == {}


async def test_permission_denied_reports_and_falls_back_to_ip():
    ip = FakeIPProvider(result=make_raw(48.8566, 2.3522, accuracy=None, country="France"))
    harness = Harness(
        sensor=ScriptedSensor(permission=PermissionState.DENIED),
        ip_provider=ip
    )
    await harness.controller.start()

    assert len(harness.errors) == 1
    assert harness.errors[0].code == SensorErrorKind.PERMISSION_DENIED
    assert harness.errors[0].error == "Location access denied by user"

    assert len(harness.records) == 1
    record = harness.records[0]
    assert record.source == LocationSource.IP
    assert record.accuracy == 10000
    assert record.country == "France"
    assert harness.controller.state == TrackingState.IDLE
    assert harness.sensor.reads == []


async def test_permission_query_failure_counts_as_denied():
    harness = Harness(sensor=ScriptedSensor(permission=RuntimeError("no permissions API")))
    await harness.controller.start()

    assert [e.code for e in harness.errors] == [SensorErrorKind.PERMISSION_DENIED]


async def test_prompt_permission_proceeds():
    harness = Harness(sensor=ScriptedSensor(permission=PermissionState.PROMPT))
    await harness.controller.start()
    await harness.controller.drain()

    assert len(harness.records) == 1
    assert harness.errors == []


async def test_fallback_failure_emits_single_error():
    harness = Harness(
        sensor=ScriptedSensor(permission=PermissionState.DENIED),
        ip_provider=FakeIPProvider(error=RuntimeError("network down"))
    )
    await harness.controller.start()

    assert len(harness.errors) == 1
    assert harness.records == []
    assert harness.controller.state == TrackingState.IDLE
    assert harness.reporter.snapshot() == {"permission_denied": 1, "provider_unavailable": 1}


async def test_fallback_without_coordinates_adds_nothing():
    ip = FakeIPProvider(result=None)
    harness = Harness(sensor=ScriptedSensor(permission=PermissionState.DENIED), ip_provider=ip)
    await harness.controller.start()

    assert ip.calls == 1
    assert harness.records == []


async def test_sensor_timeout_in_one_shot():
    sensor = ScriptedSensor()
    sensor.queue(PositionTimeout("slow"))
    harness = Harness(sensor=sensor)
    await harness.controller.start()
    await harness.controller.drain()

    assert harness.errors[0].code == SensorErrorKind.TIMEOUT
    assert harness.errors[0].error == "Location request timed out"
    assert harness.controller.state == TrackingState.IDLE


async def test_missing_sensor_is_unknown_error():
    harness = Harness(sensor=ScriptedSensor(available=False))
    await harness.controller.start()

    assert harness.errors[0].code == SensorErrorKind.UNKNOWN
    assert harness.errors[0].error == "Geolocation is not supported on this host"
    assert harness.controller.state == TrackingState.IDLE


async def test_watch_error_keeps_watching():
    harness = Harness(
        collection_method=CollectionMethod.PERIODIC,
        ip_provider=FakeIPProvider(result=make_raw(10, 10))
    )
    await harness.controller.start()
    await harness.sensor.fail(PositionUnavailable("lost fix"))

    assert harness.controller.state == TrackingState.WATCHING
    assert harness.errors[0].code == SensorErrorKind.POSITION_UNAVAILABLE
    assert harness.records[0].source == LocationSource.IP


async def test_visibility_changes():
    harness = Harness(collection_method=CollectionMethod.PERIODIC)
    await harness.controller.start()

    await harness.controller.on_visibility_change(True)
    assert harness.controller.state == TrackingState.IDLE

    await harness.controller.on_visibility_change(False)
    assert harness.controller.state == TrackingState.WATCHING


async def test_hidden_with_background_tracking_keeps_watching():
    harness = Harness(background_tracking=True)
    await harness.controller.start()

    await harness.controller.on_visibility_change(True)
    assert harness.controller.state == TrackingState.WATCHING


async def test_read_once_outside_session():
    harness = Harness(privacy_level=PrivacyLevel.CITY_LEVEL)
    record = await harness.controller.read_once()

    assert record.latitude == 37.8
    assert harness.records == []
    assert harness.controller.state == TrackingState.IDLE


async def test_read_once_requires_collection():
    harness = Harness(collection_enabled=False)
    assert await harness.controller.read_once() is None
    assert harness.sensor.reads == []


async def test_read_once_error_has_no_fallback():
    ip = FakeIPProvider(result=make_raw(10, 10))
    sensor = ScriptedSensor()
    sensor.queue(PositionUnavailable("no fix"))
    harness = Harness(sensor=sensor, ip_provider=ip)

    assert await harness.controller.read_once() is None
    assert harness.errors[0].code == SensorErrorKind.POSITION_UNAVAILABLE
    assert ip.calls == 0
