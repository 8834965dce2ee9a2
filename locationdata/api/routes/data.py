"""
Data management routes: summaries, consent log, export/import, erasure
"""
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import Response

from locationdata.api.deps import get_collector
from locationdata.schemas import DataSummary, ExportFormat, PrivacyCompliance
from locationdata.services import LocationDataCollector

router = APIRouter(prefix="/data", tags=["Data Management"])

EXPORT_MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
    ExportFormat.GPX: "application/gpx+xml",
}


@router.get("/summary", response_model=DataSummary)
async def get_data_summary(collector: LocationDataCollector = Depends(get_collector)):
    return collector.get_data_summary()


@router.get("/compliance", response_model=PrivacyCompliance)
async def get_privacy_compliance(collector: LocationDataCollector = Depends(get_collector)):
    return collector.get_privacy_compliance()


@router.get("/consent")
async def get_consent_records(collector: LocationDataCollector = Depends(get_collector)):
    """
    Full consent audit log, oldest first.
    """
    records = collector.consent_records
    return {
        "records": [record.to_dict() for record in records],
        "total": len(records)
    }


@router.get("/export")
async def export_location_data(
    format: ExportFormat = Query(ExportFormat.JSON),
    collector: LocationDataCollector = Depends(get_collector)
):
    """
    Export collected data as JSON (full snapshot), CSV or GPX (history only).
    """
    content = collector.export_data(format)
    filename = f"location_data_{datetime.now(timezone.utc).date()}.{format.value}"
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@router.post("/import")
async def import_location_data(
    payload: Dict[str, Any] = Body(...),
    collector: LocationDataCollector = Depends(get_collector)
):
    """
    Replace settings, history and consent log from a JSON export.
    """
    if not await collector.import_data(payload):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Import data could not be parsed"
        )
    return {
        "imported": True,
        "total_locations": len(collector.history),
        "total_consent_records": len(collector.consent_records)
    }


@router.delete("")
async def clear_all_data(collector: LocationDataCollector = Depends(get_collector)):
    """
    Stop tracking and erase all collected data, consent log and settings.
    """
    await collector.clear_all_data()
    return {"cleared": True}
