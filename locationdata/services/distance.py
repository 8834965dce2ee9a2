"""
Distance accumulation between consecutive location records
"""
import math
from typing import Optional

from locationdata.schemas.location import LocationRecord

# Earth's radius in kilometers
EARTH_RADIUS_KM = 6371


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points
    on the earth (specified in decimal degrees).
    Returns distance in kilometers.
    """
    # Convert to radians
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    # Haversine formula
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def accumulate(previous: Optional[LocationRecord], current: LocationRecord) -> float:
    """Distance in km from ``previous`` to ``current``; 0 unless both carry coordinates"""
    if previous is None or not previous.has_coordinates or not current.has_coordinates:
        return 0.0
    return haversine_km(
        previous.latitude, previous.longitude,
        current.latitude, current.longitude
    )

