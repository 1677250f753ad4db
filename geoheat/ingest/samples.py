"""Convert raw location rows into LocationSample records."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

import pandas as pd

from geoheat.common.models import LocationSample

LATITUDE_KEYS = ("latitude", "lat")
LONGITUDE_KEYS = ("longitude", "lng", "lon")


def parse_timestamp(value: Any) -> datetime:
    """Convert ISO-8601 (or ``YYYY-MM-DD ...``) timestamps into naive datetime objects.

    Zone-aware inputs are shifted to UTC and stripped of their offset so that
    samples from mixed sources stay comparable.
    """

    if value is None or value is pd.NaT or _is_nan(value):
        return datetime.fromtimestamp(0)
    if isinstance(value, pd.Timestamp):
        return _naive_utc(value.to_pydatetime())
    if isinstance(value, datetime):
        return _naive_utc(value)
    text = str(value).strip()
    if not text:
        return datetime.fromtimestamp(0)
    try:
        return _naive_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        # Trailing zone names and the like; keep the calendar date.
        return datetime.strptime(text.split(" ")[0], "%Y-%m-%d")


def sample_from_record(record: Mapping[str, Any]) -> LocationSample:
    latitude = _first_present(record, LATITUDE_KEYS)
    longitude = _first_present(record, LONGITUDE_KEYS)
    if latitude is None or longitude is None:
        raise ValueError("Latitude and longitude must be provided for a location sample.")

    return LocationSample(
        latitude=float(latitude),
        longitude=float(longitude),
        timestamp=parse_timestamp(record.get("timestamp")),
        accuracy=_optional_float(record.get("accuracy")) or 0.0,
        altitude=_optional_float(record.get("altitude")),
        speed=_optional_float(record.get("speed")),
        heading=_optional_float(record.get("heading")),
    )


def samples_from_frame(frame: pd.DataFrame) -> List[LocationSample]:
    """Rows without coordinates are dropped."""

    lat_col = next((key for key in LATITUDE_KEYS if key in frame.columns), None)
    lng_col = next((key for key in LONGITUDE_KEYS if key in frame.columns), None)
    if lat_col is None or lng_col is None:
        raise ValueError("Frame must carry latitude and longitude columns.")

    cleaned = frame.dropna(subset=[lat_col, lng_col])
    return [sample_from_record(record) for record in cleaned.to_dict("records")]


def _first_present(record: Mapping[str, Any], keys) -> Optional[Any]:
    for key in keys:
        value = record.get(key)
        if value is not None and not _is_nan(value):
            return value
    return None


def _optional_float(value: Any) -> Optional[float]:
    if value is None or _is_nan(value):
        return None
    return float(value)


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
