"""
Sensor subscription lifecycle and routing of samples and failures
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from locationdata.core.exceptions import (
    ErrorKind, PermissionDenied, SensorError, SensorErrorKind
)
from locationdata.core.reporting import ErrorReporter, LoggingErrorReporter
from locationdata.schemas.enums import (
    AccuracyLevel, CollectionMethod, LocationSource, PermissionState, TrackingState
)
from locationdata.schemas.location import (
    LocationErrorEvent, LocationRecord, PositionOptions, RawPosition
)
from locationdata.schemas.settings import LocationSettings
from locationdata.services.privacy_filter import PrivacyFilter
from locationdata.services.providers import IPProvider
from locationdata.services.sensors import SensorAPI

logger = logging.getLogger(__name__)

ACCURACY_POLICY = {
    AccuracyLevel.HIGH: PositionOptions(enable_high_accuracy=True, timeout_ms=30000, maximum_age_ms=60000),
    AccuracyLevel.MEDIUM: PositionOptions(enable_high_accuracy=False, timeout_ms=15000, maximum_age_ms=300000),
    AccuracyLevel.LOW: PositionOptions(enable_high_accuracy=False, timeout_ms=10000, maximum_age_ms=600000),
}

ERROR_MESSAGES = {
    SensorErrorKind.PERMISSION_DENIED: "Location access denied by user",
    SensorErrorKind.POSITION_UNAVAILABLE: "Location information unavailable",
    SensorErrorKind.TIMEOUT: "Location request timed out",
}

IP_FALLBACK_ACCURACY_METERS = 10000

_ACTIVE_STATES = {TrackingState.STARTING, TrackingState.ONE_SHOT, TrackingState.WATCHING}


def position_options(accuracy_level: AccuracyLevel) -> PositionOptions:
    return ACCURACY_POLICY.get(accuracy_level, ACCURACY_POLICY[AccuracyLevel.MEDIUM])


def describe_error(error: SensorError) -> str:
    return ERROR_MESSAGES.get(error.kind) or error.message or "Location error occurred"


class TrackingController:
    """
    Owns the sensor subscription.

    States: idle -> starting -> (oneShot | watching) -> idle, with a
    transient error state while a failure and its fallback are handled.
    Sensor failures never propagate to callers; they are reported through
    ``on_error`` and followed by one IP-based fallback attempt.
    One-shot reads run as background tasks so ``start`` never waits on the
    sensor.
    """

    def __init__(
        self,
        sensor: Optional[SensorAPI],
        privacy_filter: PrivacyFilter,
        get_settings: Callable[[], LocationSettings],
        on_record: Callable[[LocationRecord], Awaitable[None]],
        on_error: Callable[[LocationErrorEvent], Awaitable[None]],
        ip_provider: Optional[IPProvider] = None,
        reporter: Optional[ErrorReporter] = None,
        fallback_accuracy: float = IP_FALLBACK_ACCURACY_METERS
    ):
        self.sensor = sensor
        self.privacy_filter = privacy_filter
        self.get_settings = get_settings
        self.on_record = on_record
        self.on_error = on_error
        self.ip_provider = ip_provider
        self.reporter = reporter or LoggingErrorReporter()
        self.fallback_accuracy = fallback_accuracy

        self.state = TrackingState.IDLE
        self.watch_id: Optional[int] = None
        self._lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()
        # Bumped by stop(); one-shot reads from an older session are dropped
        self._session = 0

    @property
    def is_tracking(self) -> bool:
        return self.state in _ACTIVE_STATES

    @property
    def sensor_available(self) -> bool:
        return self.sensor is not None and bool(getattr(self.sensor, "available", False))

    async def start(self):
        settings = self.get_settings()
        if not settings.collection_enabled or self.is_tracking:
            return
        if settings.accuracy_level == AccuracyLevel.DISABLED:
            logger.info("Location tracking not started: accuracy level is disabled")
            return

        self.state = TrackingState.STARTING
        session = self._session

        if not self.sensor_available:
            await self.handle_error(SensorError("Geolocation is not supported on this host"))
            return

        if await self._query_permission() == PermissionState.DENIED:
            await self.handle_error(PermissionDenied("Location permission denied"))
            return

        if self.state != TrackingState.STARTING or session != self._session:
            # Stopped while waiting for the permission answer
            return

        options = position_options(settings.accuracy_level)

        if settings.collection_method == CollectionMethod.PERIODIC or settings.background_tracking:
            self.watch_id = self.sensor.watch_position(self._on_watch_success, self._on_watch_error, options)
            self.state = TrackingState.WATCHING
            logger.info("Location tracking started (watching)")
            return

        self.state = TrackingState.ONE_SHOT
        logger.info("Location tracking started (one-shot)")
        self._spawn(self._read_one_shot(options, session))

    async def _read_one_shot(self, options: PositionOptions, session: int):
        try:
            raw = await self.sensor.get_current_position(options)
        except SensorError as e:
            if session != self._session:
                logger.info(f"Ignoring location error after tracking stopped: {e}")
                return
            await self.handle_error(e)
            return

        if session != self._session:
            logger.info("Discarding location read finished after tracking stopped")
            return

        await self.handle_success(raw)
        if self.state == TrackingState.ONE_SHOT:
            self.state = TrackingState.IDLE

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_read_done)
        return task

    def _on_read_done(self, task: asyncio.Task):
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.reporter.report(ErrorKind.UNKNOWN, "Background location read failed", exc=exc)

    async def drain(self):
        """Wait for one-shot reads started by ``start``"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def cancel_pending(self):
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def stop(self):
        self._session += 1
        if self.watch_id is not None:
            self.sensor.clear_watch(self.watch_id)
            self.watch_id = None
        if self.state != TrackingState.IDLE:
            logger.info("Location tracking stopped")
        self.state = TrackingState.IDLE

    async def on_visibility_change(self, hidden: bool):
        settings = self.get_settings()
        if hidden and not settings.background_tracking:
            self.stop()
        elif not hidden and settings.collection_enabled:
            await self.start()

    async def read_once(self) -> Optional[LocationRecord]:
        """One-time privacy-filtered reading outside the tracking session"""
        settings = self.get_settings()
        if not settings.collection_enabled:
            logger.info("One-time location request ignored: collection is disabled")
            return None
        if not self.sensor_available:
            await self._emit_error(SensorError("Geolocation is not supported on this host"))
            return None
        try:
            raw = await self.sensor.get_current_position(position_options(settings.accuracy_level))
        except SensorError as e:
            await self._emit_error(e)
            return None
        return await self.privacy_filter.process(raw, settings.privacy_level)

    async def handle_success(self, raw: RawPosition) -> LocationRecord:
        async with self._lock:
            record = await self.privacy_filter.process(raw, self.get_settings().privacy_level)
            await self.on_record(record)
        return record

    async def handle_error(self, error: SensorError):
        if self.state != TrackingState.WATCHING:
            self.state = TrackingState.ERROR

        await self._emit_error(error)
        await self.try_fallback()

        if self.state == TrackingState.ERROR:
            self.state = TrackingState.IDLE

    async def try_fallback(self):
        """One IP-based attempt; failures here are logged, never re-raised"""
        if self.ip_provider is None:
            return
        try:
            raw = await self.ip_provider.locate()
        except Exception as e:
            self.reporter.report(ErrorKind.PROVIDER_UNAVAILABLE, "Fallback location methods failed", exc=e)
            return
        if raw is None:
            logger.info("IP fallback returned no coordinates")
            return

        raw = raw.model_copy(update={"source": LocationSource.IP, "accuracy": self.fallback_accuracy})
        await self.handle_success(raw)

    async def _emit_error(self, error: SensorError):
        message = describe_error(error)
        self.reporter.report(error.kind.error_kind, message, exc=error)
        await self.on_error(LocationErrorEvent(error=message, code=error.kind))

    async def _query_permission(self) -> PermissionState:
        try:
            return await self.sensor.query_permission()
        except Exception as e:
            logger.error(f"Error requesting location permission: {e}")
            return PermissionState.DENIED

    async def _on_watch_success(self, raw: RawPosition):
        await self.handle_success(raw)

    async def _on_watch_error(self, error: SensorError):
        await self.handle_error(error)
