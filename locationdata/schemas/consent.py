"""
Pydantic schemas for the consent audit log
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field

from locationdata.schemas.base import CamelModel
from locationdata.schemas.enums import ChangeType


class ConsentRecord(CamelModel):
    timestamp: datetime
    settings_snapshot: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("settingsSnapshot", "settings", "settings_snapshot"),
        serialization_alias="settingsSnapshot"
    )
    change_type: ChangeType
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
