"""
Sensor adapters feeding raw positions into the tracking controller
"""
import asyncio
import itertools
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

from locationdata.core.exceptions import PermissionDenied, PositionTimeout, SensorError
from locationdata.schemas.enums import PermissionState
from locationdata.schemas.location import PositionOptions, RawPosition

logger = logging.getLogger(__name__)

PositionCallback = Callable[[RawPosition], Awaitable[None]]
ErrorCallback = Callable[[SensorError], Awaitable[None]]


class SensorAPI(Protocol):
    """
    Geolocation sensor contract.

    Implementations must raise SensorError (never a bare exception) from
    ``get_current_position`` and pass SensorError instances to watch error
    callbacks, so callers can switch on ``error.kind``.
    """
    available: bool

    async def query_permission(self) -> PermissionState:
        ...

    async def get_current_position(self, options: PositionOptions) -> RawPosition:
        ...

    def watch_position(
        self,
        on_success: PositionCallback,
        on_error: ErrorCallback,
        options: PositionOptions
    ) -> int:
        ...

    def clear_watch(self, handle: int) -> None:
        ...


class AgentSensor:
    """
    Push-driven sensor: a device agent reports positions (or failures) and
    this adapter hands them to one-shot readers and active watches.
    """

    def __init__(self, permission: PermissionState = PermissionState.PROMPT):
        self.available = True
        self.permission = permission
        self.last_position: Optional[RawPosition] = None
        self._last_received_at: Optional[float] = None
        self._watchers: Dict[int, Tuple[PositionCallback, ErrorCallback, PositionOptions]] = {}
        self._handles = itertools.count(1)
        self._waiters: List[asyncio.Future] = []

    @property
    def watch_count(self) -> int:
        return len(self._watchers)

    def set_permission(self, permission: PermissionState):
        logger.info(f"Agent location permission set to {permission.value}")
        self.permission = permission

    async def query_permission(self) -> PermissionState:
        return self.permission

    def _cached(self, maximum_age_ms: int) -> Optional[RawPosition]:
        if self.last_position is None or self._last_received_at is None:
            return None
        age_ms = (time.monotonic() - self._last_received_at) * 1000
        return self.last_position if age_ms <= maximum_age_ms else None

    async def get_current_position(self, options: PositionOptions) -> RawPosition:
        if self.permission == PermissionState.DENIED:
            raise PermissionDenied("Location permission denied")

        cached = self._cached(options.maximum_age_ms)
        if cached is not None:
            return cached

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            return await asyncio.wait_for(waiter, timeout=options.timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise PositionTimeout("Location request timed out")
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def watch_position(
        self,
        on_success: PositionCallback,
        on_error: ErrorCallback,
        options: PositionOptions
    ) -> int:
        handle = next(self._handles)
        self._watchers[handle] = (on_success, on_error, options)
        return handle

    def clear_watch(self, handle: int) -> None:
        self._watchers.pop(handle, None)

    async def push(self, position: RawPosition):
        """Deliver a new position to pending readers and every watch"""
        self.last_position = position
        self._last_received_at = time.monotonic()

        for waiter in list(self._waiters):
            if not waiter.done():
                waiter.set_result(position)

        for on_success, _, _ in list(self._watchers.values()):
            await on_success(position)

    async def push_error(self, error: SensorError):
        """Deliver a sensor failure to pending readers and every watch"""
        for waiter in list(self._waiters):
            if not waiter.done():
                waiter.set_exception(error)

        for _, on_error, _ in list(self._watchers.values()):
            await on_error(error)
