"""
weather.py — Read models for environmental readings (PM2.5, AQI, temperature).

Readings are written by external ingestion jobs; this API only queries them.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class WeatherReading(BaseModel):
    id: str
    latitude: float
    longitude: float
    pm25: Optional[float] = None
    aqi: Optional[float] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    air_quality_source: Optional[str] = None
    recorded_at: datetime


class WeatherRadiusQuery(BaseModel):
    """Filters accepted by GET /weather/radius."""
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    radius_km: float = Field(default=100.0, gt=0, le=2000)
    show_all: bool = False

    @model_validator(mode="after")
    def _require_center(self) -> "WeatherRadiusQuery":
        if not self.show_all and (self.lat is None or self.lng is None):
            raise ValueError("lat and lng are required unless show_all=true")
        return self


class WeatherRadiusResponse(BaseModel):
    data: list[WeatherReading]
    count: int
    radius_km: Optional[float] = None
    message: str
