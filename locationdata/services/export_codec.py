"""
Export and import of collector state (JSON, CSV, GPX)
"""
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from locationdata.core.exceptions import ImportParseFailure
from locationdata.schemas.consent import ConsentRecord
from locationdata.schemas.location import AnalyticsAggregate, LocationRecord
from locationdata.schemas.settings import LocationSettings

EXPORT_VERSION = "1.0"
CSV_COLUMNS = ["timestamp", "latitude", "longitude", "accuracy", "source"]
GPX_CREATOR = "LocationDataCollector"


def export_json(
    settings: LocationSettings,
    history: Iterable[LocationRecord],
    current_location: Optional[LocationRecord],
    analytics: AnalyticsAggregate,
    consent_records: Iterable[ConsentRecord]
) -> str:
    """Full snapshot of the collector state, pretty-printed"""
    document = {
        "settings": settings.to_storage(),
        "locationHistory": [record.to_dict() for record in history],
        "currentLocation": current_location.to_dict() if current_location else None,
        "analyticsData": analytics.to_dict(),
        "consentRecords": [record.to_dict() for record in consent_records],
        "exportedAt": datetime.now(timezone.utc).isoformat(),
        "version": EXPORT_VERSION,
    }
    return json.dumps(document, indent=2)


def _csv_value(value: Any) -> str:
    return "" if value is None else str(value)


def export_csv(history: Iterable[LocationRecord]) -> str:
    """
    One row per record under a fixed header.
    Values are comma-joined without quoting, so a value containing a comma
    breaks the row.
    """
    lines = [",".join(CSV_COLUMNS)]
    for record in history:
        data = record.to_dict()
        lines.append(",".join(_csv_value(data.get(column)) for column in CSV_COLUMNS))
    return "\n".join(lines)


def export_gpx(history: Iterable[LocationRecord]) -> str:
    """GPX 1.1 track of every record that carries both coordinates"""
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<gpx version="1.1" creator="{GPX_CREATOR}" xmlns="http://www.topografix.com/GPX/1/1">',
        '  <trk>',
        '    <name>Location History</name>',
        '    <trkseg>',
    ]
    for record in history:
        if not record.has_coordinates:
            continue
        lines.append(f'      <trkpt lat="{record.latitude}" lon="{record.longitude}">')
        lines.append(f'        <time>{record.to_dict()["timestamp"]}</time>')
        lines.append('      </trkpt>')
    lines.append('    </trkseg>')
    lines.append('  </trk>')
    lines.append('</gpx>')
    return '\n'.join(lines) + '\n'


@dataclass
class ImportPayload:
    """Validated import; ``None`` means the key was absent and stays untouched"""
    settings: Optional[LocationSettings] = None
    location_history: Optional[List[LocationRecord]] = None
    consent_records: Optional[List[ConsentRecord]] = None


def _parse_list(document: Mapping[str, Any], key: str, model) -> Optional[list]:
    items = document.get(key)
    if items is None:
        return None
    if not isinstance(items, list):
        raise ImportParseFailure(f"'{key}' must be a list")
    try:
        return [model.model_validate(item) for item in items]
    except ValidationError as e:
        raise ImportParseFailure(f"Invalid entry in '{key}': {e}") from e


def parse_import(data: Any) -> ImportPayload:
    """
    Decode and validate an export document (JSON text or an already
    parsed mapping). Everything is validated before anything is returned.
    """
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8", errors="replace")
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise ImportParseFailure(f"Import data is not valid JSON: {e}") from e
    if not isinstance(data, Mapping):
        raise ImportParseFailure("Import data must be a JSON object")

    payload = ImportPayload()

    settings = data.get("settings")
    if settings is not None:
        if not isinstance(settings, Mapping):
            raise ImportParseFailure("'settings' must be an object")
        payload.settings = LocationSettings.from_storage(settings)

    payload.location_history = _parse_list(data, "locationHistory", LocationRecord)
    payload.consent_records = _parse_list(data, "consentRecords", ConsentRecord)
    return payload
