"""
Pydantic schemas for location samples and processed records
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from locationdata.core.exceptions import SensorErrorKind
from locationdata.schemas.base import CamelModel
from locationdata.schemas.enums import LocationSource, PrivacyLevel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RawPosition(CamelModel):
    """Unfiltered sample as reported by a sensor or the IP fallback"""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0)  # meters
    altitude: Optional[float] = None  # meters
    heading: Optional[float] = None
    speed: Optional[float] = None
    timestamp: datetime = Field(default_factory=utc_now)
    source: LocationSource = LocationSource.GPS

    # Populated by the IP provider only
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None


class LocationRecord(CamelModel):
    """
    Privacy-filtered record, immutable once created.
    Only the fields the privacy filter sets are present in ``to_dict()``.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    timestamp: datetime
    collected_at: datetime
    source: LocationSource = LocationSource.GPS
    accuracy: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None
    country: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class AnalyticsAggregate(BaseModel):
    """Derived analytics, recomputed on every new record"""
    total_locations: Optional[int] = None
    total_distance_km: Optional[float] = None
    last_location: Optional[LocationRecord] = None
    last_updated: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = {}
        if self.total_locations is not None:
            data["totalLocations"] = self.total_locations
        if self.total_distance_km is not None:
            data["totalDistanceKm"] = self.total_distance_km
        if self.last_location is not None:
            data["lastLocation"] = self.last_location.to_dict()
        if self.last_updated is not None:
            data["lastUpdated"] = self.last_updated.isoformat()
        return data


class LocationErrorEvent(CamelModel):
    error: str
    code: SensorErrorKind


class PositionOptions(BaseModel):
    enable_high_accuracy: bool = False
    timeout_ms: int = 15000
    maximum_age_ms: int = 300000


class DataSummary(CamelModel):
    is_tracking_enabled: bool
    is_currently_tracking: bool
    total_locations: int
    current_location: Optional[dict] = None
    last_updated: Optional[datetime] = None
    privacy_level: PrivacyLevel
    retention_period_days: Optional[int] = None
    analytics_enabled: bool
    total_distance_km: float = 0


class PrivacyCompliance(CamelModel):
    has_consent: bool
    consent_timestamp: Optional[datetime] = None
    data_minimization: bool
    data_retention: bool
    third_party_sharing: bool
    anonymization: bool
    user_control: bool = True
