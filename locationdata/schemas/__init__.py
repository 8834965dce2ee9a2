"""
Pydantic schemas package
"""
from locationdata.schemas.enums import (
    AccuracyLevel, CollectionMethod, PrivacyLevel, LocationSource, ChangeType,
    PermissionState, TrackingState, ExportFormat, CollectorEvent
)
from locationdata.schemas.settings import LocationSettings, LocationSettingsUpdate
from locationdata.schemas.location import (
    RawPosition, LocationRecord, AnalyticsAggregate, LocationErrorEvent,
    PositionOptions, DataSummary, PrivacyCompliance
)
from locationdata.schemas.consent import ConsentRecord
from locationdata.schemas.agent import AgentPing, AgentConsent, VisibilityChange, TrackingStatus

__all__ = [
    # Enums
    "AccuracyLevel", "CollectionMethod", "PrivacyLevel", "LocationSource", "ChangeType",
    "PermissionState", "TrackingState", "ExportFormat", "CollectorEvent",
    # Settings
    "LocationSettings", "LocationSettingsUpdate",
    # Location
    "RawPosition", "LocationRecord", "AnalyticsAggregate", "LocationErrorEvent",
    "PositionOptions", "DataSummary", "PrivacyCompliance",
    # Consent
    "ConsentRecord",
    # Agent / host control
    "AgentPing", "AgentConsent", "VisibilityChange", "TrackingStatus",
]
