"""
surveillance.py — Schemas for user-owned surveillance points (circular geofences).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_RADIUS_M = 500.0


class SurveillancePointCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: Optional[str] = Field(default=None, max_length=500)
    radius: float = Field(default=DEFAULT_RADIUS_M, gt=0, le=50_000)  # metres


class SurveillancePointUpdate(BaseModel):
    """Partial update — only provided fields are changed."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    address: Optional[str] = Field(default=None, max_length=500)
    radius: Optional[float] = Field(default=None, gt=0, le=50_000)
    active: Optional[bool] = None


class SurveillancePointOut(BaseModel):
    id: str
    user_id: str
    name: str
    latitude: float
    longitude: float
    address: Optional[str] = None
    radius: float = DEFAULT_RADIUS_M
    active: bool = True
    created_at: datetime
