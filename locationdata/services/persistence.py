"""
Write-behind persistence of collector state to the key-value store
"""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Set

from locationdata.core.exceptions import ErrorKind, PersistenceFailure
from locationdata.core.reporting import ErrorReporter
from locationdata.models.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class PersistenceQueue:
    """
    Runs store writes as background tasks so the tracking path never waits
    on storage I/O. Writes are applied one at a time in submission order.
    """

    def __init__(self, store: KeyValueStore, reporter: ErrorReporter):
        self.store = store
        self.reporter = reporter
        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def write(self, key: str, value: Any):
        # Serialize now so later mutations don't leak into this write
        payload = json.dumps(value)
        self._spawn(key, "write", self.store.set, key, payload)

    def delete(self, key: str):
        self._spawn(key, "delete", self.store.delete, key)

    def _spawn(self, key: str, action: str, func: Callable[..., Awaitable[None]], *args):
        task = asyncio.get_running_loop().create_task(self._run(key, action, func, *args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, key: str, action: str, func: Callable[..., Awaitable[None]], *args):
        async with self._lock:
            try:
                await func(*args)
            except Exception as e:
                self.reporter.report(ErrorKind.PERSISTENCE_FAILURE, f"Failed to {action} {key}", exc=e, key=key)

    async def flush(self):
        """Wait for every queued write, including ones queued while waiting"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def read(self, key: str) -> Optional[Any]:
        """Read and decode a key; unreadable or malformed data counts as absent"""
        try:
            raw = await self.store.get(key)
        except PersistenceFailure as e:
            self.reporter.report(ErrorKind.PERSISTENCE_FAILURE, f"Failed to read {key}", exc=e, key=key)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            self.reporter.report(ErrorKind.PERSISTENCE_FAILURE, f"Malformed data stored under {key}", exc=e, key=key)
            return None
