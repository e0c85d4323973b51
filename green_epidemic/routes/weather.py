"""
weather.py — Environmental readings around a point.

Route:
  GET /weather/radius?lat=..&lng=..&radius_km=100
  GET /weather/radius?show_all=true

Returns the latest reading per station location. A bounding box narrows
the Mongo query; the exact haversine distance decides membership.
No authentication required.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query

from green_epidemic.core.database import DbDep
from green_epidemic.models.weather import WeatherRadiusQuery, WeatherRadiusResponse, WeatherReading
from green_epidemic.services.geo import haversine_m
from green_epidemic.services.queries import NEWEST_READINGS_FIRST, weather_box_filter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weather", tags=["weather"])

_SCAN_LIMIT = 5000


def _location_key(doc: dict) -> tuple[float, float]:
    return round(doc["latitude"], 4), round(doc["longitude"], 4)


@router.get("/radius", response_model=WeatherRadiusResponse)
async def weather_in_radius(q: Annotated[WeatherRadiusQuery, Query()], db: DbDep):
    cursor = db["weather_data"].find(weather_box_filter(q)).sort(NEWEST_READINGS_FIRST).limit(_SCAN_LIMIT)

    latest: dict[tuple[float, float], dict] = {}
    async for doc in cursor:
        key = _location_key(doc)
        if key in latest:
            continue
        if not q.show_all and haversine_m(q.lat, q.lng, doc["latitude"], doc["longitude"]) > q.radius_km * 1000:
            continue
        latest[key] = doc

    data = [
        WeatherReading(id=str(doc["_id"]), **{k: v for k, v in doc.items() if k != "_id"})
        for doc in latest.values()
    ]

    if q.show_all:
        message = f"Latest readings for all {len(data)} locations"
        radius = None
    else:
        message = f"Found {len(data)} locations within {q.radius_km:g}km"
        radius = q.radius_km
    return WeatherRadiusResponse(data=data, count=len(data), radius_km=radius, message=message)
