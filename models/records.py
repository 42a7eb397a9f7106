"""Domain models derived from a single sensor poll."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Union

Number = Union[int, float]
Reading = Dict[str, Any]

PM25_CHANNEL_A = "pm2_5_cf_1"
PM25_CHANNEL_B = "pm2_5_cf_1_b"
TEMPERATURE_FIELD = "current_temp_f"
HUMIDITY_FIELD = "current_humidity"
AQI_FIELD = "pm2.5_aqi"
AQI_COLOR_FIELD = "p25aqic"


class ReadingError(ValueError):
    """Raised when a reading lacks a required field or carries a non-numeric value."""


@dataclass(frozen=True, slots=True)
class DerivedRecord:
    """Values computed from one reading, stamped with the poll time."""

    timestamp: int
    temperature: Number
    humidity: Number
    pm25: int
    pm25_raw_a: Number
    pm25_raw_b: Number


def average_pm25(channel_a: Number, channel_b: Number) -> int:
    """Mean of the two PM2.5 channels, rounded with ``round()`` (half to even)."""
    return round((channel_a + channel_b) / 2)


def _require_number(reading: Reading, field: str) -> Number:
    if field not in reading:
        raise ReadingError(f"reading is missing field {field!r}")
    value = reading[field]
    # bool is an int subclass but never a valid measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ReadingError(f"field {field!r} is not numeric: {value!r}")
    try:
        finite = math.isfinite(value)
    except OverflowError:
        finite = False
    if not finite:
        raise ReadingError(f"field {field!r} is out of range: {value!r}")
    return value


def derive_record(reading: Reading, timestamp: int) -> DerivedRecord:
    channel_a = _require_number(reading, PM25_CHANNEL_A)
    channel_b = _require_number(reading, PM25_CHANNEL_B)
    return DerivedRecord(
        timestamp=timestamp,
        temperature=_require_number(reading, TEMPERATURE_FIELD),
        humidity=_require_number(reading, HUMIDITY_FIELD),
        pm25=average_pm25(channel_a, channel_b),
        pm25_raw_a=channel_a,
        pm25_raw_b=channel_b,
    )
