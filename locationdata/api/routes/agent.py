"""
Device agent routes for location pings and permission reports
"""
from fastapi import APIRouter, Depends

from locationdata.api.deps import get_agent_sensor, get_collector
from locationdata.core.exceptions import sensor_error_for
from locationdata.schemas import AgentConsent, AgentPing, RawPosition
from locationdata.services import AgentSensor, LocationDataCollector

router = APIRouter(prefix="/agent", tags=["Device Agent"])


@router.post("/ping")
async def agent_ping(
    ping: AgentPing,
    sensor: AgentSensor = Depends(get_agent_sensor),
    collector: LocationDataCollector = Depends(get_collector)
):
    """
    Receive a location sample (or a sensor failure) from the device agent.
    The sample reaches the collector only through an active watch or a
    pending one-time request.
    """
    if ping.error is not None:
        await sensor.push_error(sensor_error_for(ping.error, ping.message or ""))
    else:
        position = RawPosition(
            latitude=ping.latitude,
            longitude=ping.longitude,
            accuracy=ping.accuracy,
            altitude=ping.altitude,
            heading=ping.heading,
            speed=ping.speed,
            **({"timestamp": ping.timestamp} if ping.timestamp else {})
        )
        await sensor.push(position)

    return {
        "accepted": True,
        "watching": sensor.watch_count > 0,
        "is_tracking": collector.is_tracking
    }


@router.post("/consent")
async def record_agent_consent(
    consent: AgentConsent,
    sensor: AgentSensor = Depends(get_agent_sensor)
):
    """
    Record the device-level location permission reported by the agent.
    """
    sensor.set_permission(consent.permission)
    return {"permission": sensor.permission.value}
