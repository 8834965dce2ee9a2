"""
Persisted user location settings
"""
from datetime import datetime, timezone

from locationdata.models.kv_store import SETTINGS_KEY
from locationdata.schemas.settings import LocationSettings
from locationdata.services.persistence import PersistenceQueue


class SettingsStore:
    def __init__(self, queue: PersistenceQueue, key: str = SETTINGS_KEY):
        self.queue = queue
        self.key = key

    async def load(self) -> LocationSettings:
        """Persisted settings merged over the defaults"""
        return LocationSettings.from_storage(await self.queue.read(self.key))

    def save(self, settings: LocationSettings, stamp: bool = True) -> LocationSettings:
        """Stamp ``lastUpdated`` and queue the write; returns the saved settings"""
        if stamp:
            settings = settings.model_copy(update={"last_updated": datetime.now(timezone.utc)})
        self.queue.write(self.key, settings.to_storage())
        return settings

    def clear(self):
        self.queue.delete(self.key)
