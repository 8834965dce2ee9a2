"""
Location routes
"""
from fastapi import APIRouter, Depends, Query

from locationdata.api.deps import get_collector
from locationdata.services import LocationDataCollector

router = APIRouter(prefix="/locations", tags=["Locations"])


@router.get("/current")
async def get_current_location(collector: LocationDataCollector = Depends(get_collector)):
    """
    Get the most recent privacy-filtered location.
    """
    location = collector.current_location
    return {"location": location.to_dict() if location else None}


@router.post("/current/refresh")
async def refresh_current_location(collector: LocationDataCollector = Depends(get_collector)):
    """
    Take a one-time reading. Not added to the location history.
    """
    location = await collector.get_current_location()
    return {
        "location": location.to_dict() if location else None,
        "error": collector.error if location is None else None
    }


@router.get("/history")
async def get_location_history(
    limit: int = Query(100, ge=1, le=1000),
    collector: LocationDataCollector = Depends(get_collector)
):
    """
    Get the most recent entries of the location history, oldest first.
    """
    records = collector.history.all()
    return {
        "locations": [record.to_dict() for record in records[-limit:]],
        "total": len(records)
    }


@router.post("/cleanup")
async def cleanup_expired_locations(collector: LocationDataCollector = Depends(get_collector)):
    """
    Apply the retention period now.
    """
    removed = await collector.cleanup_expired_data()
    return {"removed": removed, "total": len(collector.history)}
