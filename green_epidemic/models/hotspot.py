"""
hotspot.py — Read models for satellite fire hotspots (NASA FIRMS detections).

Hotspots are written by an external ingestion job; this API only queries them.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Hotspot(BaseModel):
    id: str
    latitude: float
    longitude: float
    brightness: Optional[float] = None
    scan: Optional[float] = None
    track: Optional[float] = None
    acquisition_date: datetime
    acquisition_time: Optional[str] = None   # "HHMM" UTC, zero-padded
    satellite: Optional[str] = None
    instrument: Optional[str] = None
    confidence: Optional[int] = None         # 0-100
    version: Optional[str] = None
    bright_t31: Optional[float] = None
    frp: Optional[float] = None              # fire radiative power, MW
    daynight: Optional[str] = None
    last_seen: Optional[datetime] = None
    is_active: bool = True


class HotspotQuery(BaseModel):
    """Filters accepted by GET /hotspots."""
    days: int = Field(default=1, ge=1, le=30)
    limit: int = Field(default=100, ge=1, le=1000)
    min_confidence: int = Field(default=50, ge=0, le=100)


class DateRange(BaseModel):
    start: datetime
    end: datetime


class HotspotList(BaseModel):
    hotspots: list[Hotspot]
    count: int
    date_range: DateRange
