"""Pydantic schema for the published state file."""

from __future__ import annotations

import json
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from models.records import AQI_COLOR_FIELD, AQI_FIELD, DerivedRecord, Reading


class PublishedState(BaseModel):
    """Snapshot of the latest derived record written for other systems."""

    last_updated: int = Field(..., description="Poll time in epoch seconds.")
    temperature: Union[int, float]
    humidity: Union[int, float]
    pm25: int
    pm25_raw_a: Union[int, float]
    pm25_raw_b: Union[int, float]
    pm25_aqi: Optional[Any] = None
    pm25_aqi_color: Optional[Any] = None

    @classmethod
    def from_record(cls, record: DerivedRecord, reading: Reading) -> "PublishedState":
        return cls(
            last_updated=record.timestamp,
            temperature=record.temperature,
            humidity=record.humidity,
            pm25=record.pm25,
            pm25_raw_a=record.pm25_raw_a,
            pm25_raw_b=record.pm25_raw_b,
            pm25_aqi=reading.get(AQI_FIELD),
            pm25_aqi_color=reading.get(AQI_COLOR_FIELD),
        )

    def to_json(self) -> str:
        """Pretty-printed JSON with a trailing newline; absent AQI fields are omitted."""
        payload = self.model_dump(mode="json", exclude_none=True)
        return json.dumps(payload, indent=2) + "\n"
