"""
Pydantic schemas for user location settings
"""
import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from pydantic import AliasChoices, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from locationdata.schemas.base import CamelModel
from locationdata.schemas.enums import AccuracyLevel, CollectionMethod, PrivacyLevel

logger = logging.getLogger(__name__)


class LocationSettings(CamelModel):
    """User consent and collection configuration"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    collection_enabled: bool = False
    accuracy_level: AccuracyLevel = AccuracyLevel.MEDIUM
    collection_method: CollectionMethod = CollectionMethod.ON_REQUEST
    privacy_level: PrivacyLevel = PrivacyLevel.CITY_LEVEL
    retention_period_days: Optional[int] = Field(
        30,
        ge=0,
        validation_alias=AliasChoices("retentionPeriodDays", "retentionPeriod", "retention_period_days"),
        serialization_alias="retentionPeriodDays"
    )
    share_with_third_parties: bool = False
    anonymize_data: bool = True
    enable_location_history: bool = False
    enable_analytics: bool = True
    background_tracking: bool = False
    frequency_minutes: int = 60
    radius_meters: int = 100
    consent_timestamp: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    @classmethod
    def accepted_keys(cls) -> Dict[str, str]:
        """Map every accepted input key (camelCase, snake_case, legacy) to its field name"""
        keys = {}
        for name, info in cls.model_fields.items():
            keys[name] = name
            keys[to_camel(name)] = name
            if info.serialization_alias:
                keys[info.serialization_alias] = name
            if isinstance(info.validation_alias, AliasChoices):
                for choice in info.validation_alias.choices:
                    if isinstance(choice, str):
                        keys[choice] = name
        return keys

    @classmethod
    def normalize(cls, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Re-key a partial settings mapping by field name, dropping unknown keys"""
        accepted = cls.accepted_keys()
        return {accepted[key]: value for key, value in data.items() if key in accepted}

    @classmethod
    def from_storage(cls, data: Any) -> "LocationSettings":
        """
        Merge persisted settings over the defaults.
        Unknown keys are ignored and fields that fail coercion fall back
        to their default instead of failing the whole load.
        """
        if not isinstance(data, Mapping):
            return cls()

        payload = cls.normalize(data)
        while True:
            try:
                return cls.model_validate(payload)
            except ValidationError as exc:
                bad_fields = {
                    cls.accepted_keys().get(str(err["loc"][0]))
                    for err in exc.errors()
                    if err.get("loc")
                }
                bad_fields.discard(None)
                if not bad_fields or not bad_fields & payload.keys():
                    logger.warning(f"Discarding unreadable location settings: {exc}")
                    return cls()
                logger.warning(f"Resetting invalid location settings fields to defaults: {sorted(bad_fields)}")
                for name in bad_fields:
                    payload.pop(name, None)

    def merged(self, delta: Mapping[str, Any]) -> "LocationSettings":
        """Return a validated copy with ``delta`` applied"""
        data = self.model_dump()
        data.update(self.normalize(delta))
        return type(self).model_validate(data)

    def to_storage(self) -> dict:
        return self.to_dict()


class LocationSettingsUpdate(CamelModel):
    """Partial settings update; only fields that were sent are applied"""
    collection_enabled: Optional[bool] = None
    accuracy_level: Optional[AccuracyLevel] = None
    collection_method: Optional[CollectionMethod] = None
    privacy_level: Optional[PrivacyLevel] = None
    retention_period_days: Optional[int] = Field(
        None,
        ge=0,
        validation_alias=AliasChoices("retentionPeriodDays", "retentionPeriod", "retention_period_days"),
        serialization_alias="retentionPeriodDays"
    )
    share_with_third_parties: Optional[bool] = None
    anonymize_data: Optional[bool] = None
    enable_location_history: Optional[bool] = None
    enable_analytics: Optional[bool] = None
    background_tracking: Optional[bool] = None
    frequency_minutes: Optional[int] = Field(None, ge=1)
    radius_meters: Optional[int] = Field(None, ge=0)

    def to_delta(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
