"""
Services package
"""
from locationdata.services.collector import LocationDataCollector
from locationdata.services.privacy_filter import PrivacyFilter, round_coordinate
from locationdata.services.history import LocationHistory
from locationdata.services.consent_log import ConsentLog
from locationdata.services.distance import accumulate, haversine_km
from locationdata.services.tracking import TrackingController
from locationdata.services.sensors import AgentSensor, SensorAPI
from locationdata.services.providers import IPGeolocationProvider, StubReverseGeocoder

__all__ = [
    "LocationDataCollector",
    "PrivacyFilter",
    "round_coordinate",
    "LocationHistory",
    "ConsentLog",
    "accumulate",
    "haversine_km",
    "TrackingController",
    "AgentSensor",
    "SensorAPI",
    "IPGeolocationProvider",
    "StubReverseGeocoder",
]
