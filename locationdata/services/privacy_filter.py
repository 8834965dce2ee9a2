"""
Privacy filtering of raw location samples
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from locationdata.core.exceptions import ErrorKind
from locationdata.core.reporting import ErrorReporter, LoggingErrorReporter
from locationdata.schemas.enums import PrivacyLevel
from locationdata.schemas.location import LocationRecord, RawPosition
from locationdata.services.providers import ReverseGeocoder, StubReverseGeocoder, UNKNOWN_COUNTRY

logger = logging.getLogger(__name__)

APPROXIMATE_DECIMALS = 3  # ~111m
CITY_LEVEL_DECIMALS = 1  # ~11km


def round_coordinate(value: float, decimals: int) -> float:
    """Round a coordinate to ``decimals`` places"""
    factor = 10 ** decimals
    return round(value * factor) / factor


class PrivacyFilter:
    """Turns raw sensor samples into privacy-bounded LocationRecords"""

    def __init__(
        self,
        reverse_geocoder: Optional[ReverseGeocoder] = None,
        reporter: Optional[ErrorReporter] = None
    ):
        self.reverse_geocoder = reverse_geocoder or StubReverseGeocoder()
        self.reporter = reporter or LoggingErrorReporter()

    async def process(
        self,
        raw: RawPosition,
        privacy_level: PrivacyLevel,
        collected_at: Optional[datetime] = None
    ) -> LocationRecord:
        collected_at = collected_at or datetime.now(timezone.utc)
        base = {
            "timestamp": raw.timestamp,
            "source": raw.source,
            "collected_at": collected_at,
        }

        if privacy_level == PrivacyLevel.ANONYMOUS:
            # No coordinate data, only metadata
            return LocationRecord(**base)

        base["accuracy"] = raw.accuracy
        # Every level above anonymous keeps the country
        base["country"] = await self.resolve_country(raw)

        if privacy_level == PrivacyLevel.EXACT:
            return LocationRecord(
                **base,
                latitude=raw.latitude,
                longitude=raw.longitude,
                altitude=raw.altitude,
                heading=raw.heading,
                speed=raw.speed
            )

        if privacy_level == PrivacyLevel.APPROXIMATE:
            return LocationRecord(
                **base,
                latitude=round_coordinate(raw.latitude, APPROXIMATE_DECIMALS),
                longitude=round_coordinate(raw.longitude, APPROXIMATE_DECIMALS),
                altitude=round(raw.altitude / 10) * 10 if raw.altitude is not None else None
            )

        if privacy_level == PrivacyLevel.CITY_LEVEL:
            return LocationRecord(
                **base,
                latitude=round_coordinate(raw.latitude, CITY_LEVEL_DECIMALS),
                longitude=round_coordinate(raw.longitude, CITY_LEVEL_DECIMALS)
            )

        # COUNTRY_LEVEL: only store country-level data
        return LocationRecord(**base)

    async def resolve_country(self, raw: RawPosition) -> str:
        # IP fallback samples already carry the provider's country
        if raw.country:
            return raw.country
        try:
            country = await self.reverse_geocoder.country_for(raw.latitude, raw.longitude)
        except Exception as e:
            self.reporter.report(ErrorKind.PROVIDER_UNAVAILABLE, "Reverse geocoding failed", exc=e)
            return UNKNOWN_COUNTRY
        return country or UNKNOWN_COUNTRY
