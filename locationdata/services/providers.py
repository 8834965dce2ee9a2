"""
External location providers: IP geolocation and reverse geocoding
"""
import logging
from typing import Optional, Protocol

import httpx

from locationdata.core.exceptions import ProviderUnavailable
from locationdata.schemas.enums import LocationSource
from locationdata.schemas.location import RawPosition

logger = logging.getLogger(__name__)

UNKNOWN_COUNTRY = "Unknown Country"


class ReverseGeocoder(Protocol):
    async def country_for(self, latitude: float, longitude: float) -> Optional[str]:
        ...


class StubReverseGeocoder:
    """Placeholder until the host injects a real geocoding service"""

    async def country_for(self, latitude: float, longitude: float) -> Optional[str]:
        return UNKNOWN_COUNTRY


class IPProvider(Protocol):
    async def locate(self) -> Optional[RawPosition]:
        ...


class IPGeolocationProvider:
    """Approximate location of the current network address"""

    def __init__(
        self,
        url: str = "https://ipapi.co/json/",
        timeout: float = 10.0,
        accuracy_meters: float = 10000,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url
        self.timeout = timeout
        self.accuracy_meters = accuracy_meters
        self.transport = transport

    async def locate(self) -> Optional[RawPosition]:
        """
        Returns a low-confidence sample, or None when the provider has no
        coordinates for this address. Raises ProviderUnavailable when the
        provider cannot be reached or answers garbage.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.url, headers={"Accept": "application/json"})
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderUnavailable(f"IP geolocation request failed: {e}") from e

        if not isinstance(data, dict):
            raise ProviderUnavailable("IP geolocation returned an unexpected payload")

        latitude = data.get("latitude")
        longitude = data.get("longitude")
        if latitude in (None, "") or longitude in (None, ""):
            logger.info("IP geolocation returned no coordinates")
            return None

        try:
            return RawPosition(
                latitude=float(latitude),
                longitude=float(longitude),
                accuracy=self.accuracy_meters,
                source=LocationSource.IP,
                city=data.get("city"),
                region=data.get("region"),
                country=data.get("country_name")
            )
        except ValueError as e:
            raise ProviderUnavailable(f"IP geolocation returned invalid coordinates: {e}") from e
