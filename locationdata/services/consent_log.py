"""
Consent audit logging for location settings changes
"""
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from locationdata.schemas.consent import ConsentRecord
from locationdata.schemas.enums import ChangeType

DEFAULT_IP_PLACEHOLDER = "xxx.xxx.xxx.xxx"


class ConsentLog:
    """Append-only record of every settings change, kept for compliance review"""

    def __init__(
        self,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = DEFAULT_IP_PLACEHOLDER
    ):
        self.user_agent = user_agent
        self.ip_address = ip_address
        self._records: List[ConsentRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def all(self) -> List[ConsentRecord]:
        return list(self._records)

    def record(self, settings_delta: Mapping[str, Any], collection_enabled: bool) -> ConsentRecord:
        """
        Append a consent record for a settings change.

        ``changeType`` follows the resulting value of ``collectionEnabled``
        only, whichever fields the change touched.
        """
        entry = ConsentRecord(
            timestamp=datetime.now(timezone.utc),
            settings_snapshot=dict(settings_delta),
            change_type=ChangeType.GRANTED if collection_enabled else ChangeType.REVOKED,
            user_agent=self.user_agent,
            ip_address=self.ip_address
        )
        self._records.append(entry)
        return entry

    def replace(self, records: Iterable[ConsentRecord]):
        self._records = list(records)

    def clear(self):
        self._records = []
