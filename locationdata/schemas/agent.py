"""
Pydantic schemas for the device agent and host control routes
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator

from locationdata.core.exceptions import SensorErrorKind
from locationdata.schemas.enums import PermissionState, TrackingState


class AgentPing(BaseModel):
    """Sample (or sensor failure) pushed by a device agent"""
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0)
    altitude: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None
    timestamp: Optional[datetime] = None
    error: Optional[SensorErrorKind] = None
    message: Optional[str] = None

    @model_validator(mode='after')
    def check_sample_or_error(self):
        has_coords = self.latitude is not None and self.longitude is not None
        if not has_coords and self.error is None:
            raise ValueError("Either latitude/longitude or error must be provided")
        return self


class AgentConsent(BaseModel):
    permission: PermissionState


class VisibilityChange(BaseModel):
    hidden: bool


class TrackingStatus(BaseModel):
    is_tracking: bool
    state: TrackingState
    error: Optional[str] = None
    current_location: Optional[Dict[str, Any]] = None
