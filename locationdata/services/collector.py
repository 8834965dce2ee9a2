"""
Location data collector: the object host applications talk to
"""
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from locationdata.core.exceptions import ErrorKind, ImportParseFailure
from locationdata.core.reporting import ErrorReporter, LoggingErrorReporter
from locationdata.models.kv_store import CONSENT_KEY, HISTORY_KEY, KeyValueStore
from locationdata.schemas.consent import ConsentRecord
from locationdata.schemas.enums import (
    AccuracyLevel, CollectionMethod, CollectorEvent, ExportFormat, PrivacyLevel, TrackingState
)
from locationdata.schemas.location import (
    AnalyticsAggregate, DataSummary, LocationErrorEvent, LocationRecord,
    PrivacyCompliance, RawPosition
)
from locationdata.schemas.settings import LocationSettings
from locationdata.services import export_codec
from locationdata.services.consent_log import ConsentLog, DEFAULT_IP_PLACEHOLDER
from locationdata.services.distance import accumulate
from locationdata.services.history import LocationHistory, MAX_HISTORY_ENTRIES
from locationdata.services.persistence import PersistenceQueue
from locationdata.services.privacy_filter import PrivacyFilter
from locationdata.services.providers import IPProvider, ReverseGeocoder
from locationdata.services.sensors import SensorAPI
from locationdata.services.settings_store import SettingsStore
from locationdata.services.tracking import IP_FALLBACK_ACCURACY_METERS, TrackingController

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]

MAX_COMPLIANT_RETENTION_DAYS = 365
_TRACKING_FIELDS = ("accuracy_level", "collection_method", "background_tracking")


class LocationDataCollector:
    """
    Composes the settings store, privacy filter, history, consent log,
    analytics and tracking controller behind one API.

    Persistence keys are global to the store, so a host should share one
    collector instance rather than create several over the same store.
    """

    def __init__(
        self,
        store: KeyValueStore,
        sensor: Optional[SensorAPI] = None,
        ip_provider: Optional[IPProvider] = None,
        reverse_geocoder: Optional[ReverseGeocoder] = None,
        reporter: Optional[ErrorReporter] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = DEFAULT_IP_PLACEHOLDER,
        history_limit: int = MAX_HISTORY_ENTRIES,
        fallback_accuracy: float = IP_FALLBACK_ACCURACY_METERS
    ):
        self.reporter = reporter or LoggingErrorReporter()
        self.persistence = PersistenceQueue(store, self.reporter)
        self.settings_store = SettingsStore(self.persistence)

        self.settings = LocationSettings()
        self.history = LocationHistory(history_limit)
        self.consent_log = ConsentLog(user_agent=user_agent, ip_address=ip_address)
        self.analytics = AnalyticsAggregate()
        self.current_location: Optional[LocationRecord] = None
        self.error: Optional[str] = None

        self._listeners: Dict[CollectorEvent, List[Listener]] = {event: [] for event in CollectorEvent}

        self.privacy_filter = PrivacyFilter(reverse_geocoder, self.reporter)
        self.tracker = TrackingController(
            sensor=sensor,
            privacy_filter=self.privacy_filter,
            get_settings=lambda: self.settings,
            on_record=self._on_record,
            on_error=self._on_error,
            ip_provider=ip_provider,
            reporter=self.reporter,
            fallback_accuracy=fallback_accuracy
        )

    @property
    def is_tracking(self) -> bool:
        return self.tracker.is_tracking

    @property
    def tracking_state(self) -> TrackingState:
        return self.tracker.state

    @property
    def consent_records(self) -> List[ConsentRecord]:
        return self.consent_log.all()

    def subscribe(self, event: Union[CollectorEvent, str], callback: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it"""
        event = CollectorEvent(event)
        self._listeners[event].append(callback)
        return lambda: self.unsubscribe(event, callback)

    def unsubscribe(self, event: Union[CollectorEvent, str], callback: Listener):
        listeners = self._listeners[CollectorEvent(event)]
        if callback in listeners:
            listeners.remove(callback)

    async def _emit(self, event: CollectorEvent, payload: Any):
        for callback in list(self._listeners[event]):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Listener for {event.value} failed")

    async def initialize(self):
        """Load persisted state, then auto-start when configured to"""
        self.settings = await self.settings_store.load()

        history = await self.persistence.read(HISTORY_KEY)
        if history is not None:
            self.history.replace(self._load_items(history, LocationRecord, HISTORY_KEY))
            await self.cleanup_expired_data()

        consent = await self.persistence.read(CONSENT_KEY)
        if consent is not None:
            self.consent_log.replace(self._load_items(consent, ConsentRecord, CONSENT_KEY))

        if self.settings.collection_enabled and self.settings.collection_method == CollectionMethod.AUTOMATIC:
            await self.start_tracking()

        logger.info("Location Data Collector initialized successfully")

    async def flush(self):
        """Wait for in-flight one-shot reads, then for every queued persistence write"""
        await self.tracker.drain()
        await self.persistence.flush()

    async def close(self):
        self.stop_tracking()
        await self.tracker.cancel_pending()
        await self.persistence.flush()

    def _load_items(self, data: Any, model, key: str) -> list:
        if not isinstance(data, list):
            self.reporter.report(ErrorKind.PERSISTENCE_FAILURE, f"Expected a list under {key}", key=key)
            return []
        items = []
        skipped = 0
        for item in data:
            try:
                items.append(model.model_validate(item))
            except ValidationError:
                skipped += 1
        if skipped:
            self.reporter.report(
                ErrorKind.PERSISTENCE_FAILURE, f"Skipped {skipped} unreadable entries under {key}", key=key
            )
        return items

    async def update_settings(self, delta: Mapping[str, Any]) -> LocationSettings:
        """
        Apply a partial settings change, record it in the consent log and
        start or stop tracking to match.
        """
        old = self.settings
        new = old.merged(delta)
        changed = set(LocationSettings.normalize(delta))

        if new.collection_enabled and not old.collection_enabled:
            new = new.model_copy(update={"consent_timestamp": datetime.now(timezone.utc)})

        self.settings = self.settings_store.save(new)

        accepted = LocationSettings.accepted_keys()
        snapshot = {
            key: value for key, value in self.settings.to_storage().items()
            if accepted.get(key) in changed
        }
        self.consent_log.record(snapshot, self.settings.collection_enabled)
        self._save_consent()

        if old.retention_period_days != self.settings.retention_period_days:
            await self.cleanup_expired_data()

        await self._apply_tracking_changes(old, self.settings)
        return self.settings

    async def _apply_tracking_changes(self, old: LocationSettings, new: LocationSettings):
        if old.collection_enabled != new.collection_enabled:
            if new.collection_enabled:
                await self.start_tracking()
            else:
                self.stop_tracking()
            return

        if not self.is_tracking:
            return
        if new.accuracy_level == AccuracyLevel.DISABLED:
            self.stop_tracking()
            return
        if any(getattr(old, name) != getattr(new, name) for name in _TRACKING_FIELDS):
            self.stop_tracking()
            await self.start_tracking()

    def _save_history(self):
        self.persistence.write(HISTORY_KEY, [record.to_dict() for record in self.history.all()])

    def _save_consent(self):
        self.persistence.write(CONSENT_KEY, [record.to_dict() for record in self.consent_log.all()])

    async def start_tracking(self):
        await self.tracker.start()

    def stop_tracking(self):
        self.tracker.stop()

    async def on_visibility_change(self, hidden: bool):
        await self.tracker.on_visibility_change(hidden)

    async def get_current_location(self) -> Optional[LocationRecord]:
        """One-time request; the record is not added to history"""
        record = await self.tracker.read_once()
        if record is not None:
            self.current_location = record
            self.error = None
        return record

    async def handle_position(self, raw: RawPosition) -> LocationRecord:
        """Feed a raw sample through the same path as sensor callbacks"""
        return await self.tracker.handle_success(raw)

    async def _on_record(self, record: LocationRecord):
        self.current_location = record
        self.error = None

        if self.settings.enable_location_history:
            self.history.append(record)
            self._save_history()

        if self.settings.enable_analytics:
            self._update_analytics(record)

        await self._emit(CollectorEvent.LOCATION_UPDATE, record)

    async def _on_error(self, event: LocationErrorEvent):
        self.error = event.error
        await self._emit(CollectorEvent.LOCATION_ERROR, event)

    def _update_analytics(self, record: LocationRecord):
        previous = self.analytics.last_location
        self.analytics.total_locations = (self.analytics.total_locations or 0) + 1
        self.analytics.total_distance_km = (self.analytics.total_distance_km or 0.0) + accumulate(previous, record)
        self.analytics.last_location = record
        self.analytics.last_updated = datetime.now(timezone.utc)

    async def cleanup_expired_data(self) -> int:
        """Apply the retention period to the history; returns records removed"""
        removed = self.history.prune(self.settings.retention_period_days)
        if removed:
            logger.info(f"Removed {removed} expired location records")
        self._save_history()
        return removed

    def export_data(self, format: Union[ExportFormat, str] = ExportFormat.JSON) -> str:
        fmt = ExportFormat(format)
        if fmt == ExportFormat.CSV:
            return export_codec.export_csv(self.history.all())
        if fmt == ExportFormat.GPX:
            return export_codec.export_gpx(self.history.all())
        return export_codec.export_json(
            settings=self.settings,
            history=self.history.all(),
            current_location=self.current_location,
            analytics=self.analytics,
            consent_records=self.consent_log.all()
        )

    async def import_data(self, data: Union[str, bytes, Mapping[str, Any]]) -> bool:
        """
        Replace settings, history and consent log from an export.
        Returns False, with nothing applied, when the payload is malformed.
        """
        try:
            payload = export_codec.parse_import(data)
        except ImportParseFailure as e:
            self.reporter.report(ErrorKind.IMPORT_PARSE_FAILURE, "Error importing location data", exc=e)
            return False

        if payload.settings is not None:
            self.settings = self.settings_store.save(payload.settings, stamp=False)
        if payload.location_history is not None:
            self.history.replace(payload.location_history)
            self._save_history()
        if payload.consent_records is not None:
            self.consent_log.replace(payload.consent_records)
            self._save_consent()

        if not self.settings.collection_enabled:
            self.stop_tracking()
        return True

    async def clear_all_data(self):
        """Stop tracking, reset everything to defaults and drop the persisted keys"""
        self.stop_tracking()

        self.history.clear()
        self.current_location = None
        self.analytics = AnalyticsAggregate()
        self.consent_log.clear()
        self.settings = LocationSettings()
        self.error = None

        self.persistence.delete(HISTORY_KEY)
        self.persistence.delete(CONSENT_KEY)
        self.settings_store.clear()
        logger.info("All location data cleared")

    def get_data_summary(self) -> DataSummary:
        return DataSummary(
            is_tracking_enabled=self.settings.collection_enabled,
            is_currently_tracking=self.is_tracking,
            total_locations=len(self.history),
            current_location=self.current_location.to_dict() if self.current_location else None,
            last_updated=self.settings.last_updated,
            privacy_level=self.settings.privacy_level,
            retention_period_days=self.settings.retention_period_days,
            analytics_enabled=self.settings.enable_analytics,
            total_distance_km=self.analytics.total_distance_km or 0
        )

    def get_privacy_compliance(self) -> PrivacyCompliance:
        retention = self.settings.retention_period_days
        return PrivacyCompliance(
            has_consent=len(self.consent_log) > 0,
            consent_timestamp=self.settings.consent_timestamp,
            data_minimization=self.settings.privacy_level != PrivacyLevel.EXACT,
            data_retention=bool(retention) and retention <= MAX_COMPLIANT_RETENTION_DAYS,
            third_party_sharing=not self.settings.share_with_third_parties,
            anonymization=self.settings.anonymize_data,
            user_control=True
        )
