"""
Error taxonomy for the location data collector
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"
    PERSISTENCE_FAILURE = "persistence_failure"
    IMPORT_PARSE_FAILURE = "import_parse_failure"
    PROVIDER_UNAVAILABLE = "provider_unavailable"


class SensorErrorKind(str, Enum):
    """Closed set of sensor failures, numbered like the W3C geolocation codes"""
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"

    @property
    def code(self) -> int:
        return _SENSOR_CODES[self]

    @property
    def error_kind(self) -> ErrorKind:
        return ErrorKind(self.value)


_SENSOR_CODES = {
    SensorErrorKind.UNKNOWN: 0,
    SensorErrorKind.PERMISSION_DENIED: 1,
    SensorErrorKind.POSITION_UNAVAILABLE: 2,
    SensorErrorKind.TIMEOUT: 3,
}


class LocationDataError(Exception):
    """Base class for all collector errors"""


class SensorError(LocationDataError):
    """Tagged failure produced by a sensor adapter"""

    default_kind = SensorErrorKind.UNKNOWN

    def __init__(self, message: str = "", kind: Optional[SensorErrorKind] = None):
        super().__init__(message)
        self.kind = kind or self.default_kind
        self.message = message

    @property
    def code(self) -> int:
        return self.kind.code


class PermissionDenied(SensorError):
    default_kind = SensorErrorKind.PERMISSION_DENIED


class PositionUnavailable(SensorError):
    default_kind = SensorErrorKind.POSITION_UNAVAILABLE


class PositionTimeout(SensorError):
    default_kind = SensorErrorKind.TIMEOUT


class PersistenceFailure(LocationDataError):
    """Key-value store read or write failed"""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ImportParseFailure(LocationDataError):
    """Import payload could not be parsed or validated"""


class ProviderUnavailable(LocationDataError):
    """IP geolocation or reverse geocoding collaborator failed"""


def sensor_error_for(kind: SensorErrorKind, message: str = "") -> SensorError:
    """Build the matching SensorError subclass for a tagged kind"""
    cls = {
        SensorErrorKind.PERMISSION_DENIED: PermissionDenied,
        SensorErrorKind.POSITION_UNAVAILABLE: PositionUnavailable,
        SensorErrorKind.TIMEOUT: PositionTimeout,
    }.get(kind, SensorError)
    return cls(message, kind)
