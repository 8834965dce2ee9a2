"""
Route dependencies resolving the host-owned collector
"""
from fastapi import HTTPException, Request, status

from locationdata.services import AgentSensor, LocationDataCollector


def get_collector(request: Request) -> LocationDataCollector:
    """Dependency for the collector created in the application lifespan"""
    return request.app.state.collector


def get_agent_sensor(request: Request) -> AgentSensor:
    sensor = request.app.state.collector.tracker.sensor
    if not isinstance(sensor, AgentSensor):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This host does not accept agent location pings"
        )
    return sensor
