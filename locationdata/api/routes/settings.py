"""
Location settings routes
"""
from fastapi import APIRouter, Depends

from locationdata.api.deps import get_collector
from locationdata.schemas import LocationSettings, LocationSettingsUpdate
from locationdata.services import LocationDataCollector

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=LocationSettings)
async def get_settings(collector: LocationDataCollector = Depends(get_collector)):
    """
    Get the current location collection settings.
    """
    return collector.settings


@router.patch("", response_model=LocationSettings)
async def update_settings(
    update: LocationSettingsUpdate,
    collector: LocationDataCollector = Depends(get_collector)
):
    """
    Apply a partial settings change.
    Every change is recorded in the consent log; enabling or disabling
    collection starts or stops tracking.
    """
    return await collector.update_settings(update.to_delta())
