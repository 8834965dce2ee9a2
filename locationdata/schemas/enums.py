"""
Enumerations shared by the location data schemas
"""
from enum import Enum


class AccuracyLevel(str, Enum):
    HIGH = "high"  # GPS accuracy
    MEDIUM = "medium"  # Network accuracy
    LOW = "low"  # IP-based accuracy
    DISABLED = "disabled"  # No location tracking


class CollectionMethod(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    ON_REQUEST = "onRequest"
    PERIODIC = "periodic"


class PrivacyLevel(str, Enum):
    EXACT = "exact"
    APPROXIMATE = "approximate"  # ~111m
    CITY_LEVEL = "cityLevel"  # ~11km
    COUNTRY_LEVEL = "countryLevel"
    ANONYMOUS = "anonymous"  # No location data


class LocationSource(str, Enum):
    GPS = "gps"
    IP = "ip"


class ChangeType(str, Enum):
    GRANTED = "granted"
    REVOKED = "revoked"


class PermissionState(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


class TrackingState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    ONE_SHOT = "oneShot"
    WATCHING = "watching"
    ERROR = "error"


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    GPX = "gpx"


class CollectorEvent(str, Enum):
    LOCATION_UPDATE = "locationUpdate"
    LOCATION_ERROR = "locationError"
