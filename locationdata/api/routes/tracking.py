"""
Tracking control routes
"""
from fastapi import APIRouter, Depends

from locationdata.api.deps import get_collector
from locationdata.schemas import TrackingStatus, VisibilityChange
from locationdata.services import LocationDataCollector

router = APIRouter(prefix="/tracking", tags=["Tracking"])


def tracking_status(collector: LocationDataCollector) -> TrackingStatus:
    return TrackingStatus(
        is_tracking=collector.is_tracking,
        state=collector.tracking_state,
        error=collector.error,
        current_location=collector.current_location.to_dict() if collector.current_location else None
    )


@router.get("/status", response_model=TrackingStatus)
async def get_tracking_status(collector: LocationDataCollector = Depends(get_collector)):
    return tracking_status(collector)


@router.post("/start", response_model=TrackingStatus)
async def start_tracking(collector: LocationDataCollector = Depends(get_collector)):
    """
    Start tracking. A no-op when collection is disabled or already running;
    sensor failures are reported in the returned status, not as HTTP errors.
    """
    await collector.start_tracking()
    return tracking_status(collector)


@router.post("/stop", response_model=TrackingStatus)
async def stop_tracking(collector: LocationDataCollector = Depends(get_collector)):
    collector.stop_tracking()
    return tracking_status(collector)


@router.post("/visibility", response_model=TrackingStatus)
async def visibility_change(
    change: VisibilityChange,
    collector: LocationDataCollector = Depends(get_collector)
):
    """
    Notify the collector that the host went to the background or came back.
    """
    await collector.on_visibility_change(change.hidden)
    return tracking_status(collector)
