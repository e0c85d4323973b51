"""
hotspots.py — Active fire hotspots for the map layer.

Route:
  GET /hotspots?days=1&limit=100&min_confidence=50 — newest detection first
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import APIRouter, Query

from green_epidemic.core.database import DbDep
from green_epidemic.models.hotspot import DateRange, Hotspot, HotspotList, HotspotQuery
from green_epidemic.routes.auth import CurrentPrincipal
from green_epidemic.services.queries import NEWEST_ACQUISITIONS_FIRST, hotspot_filter

router = APIRouter(prefix="/hotspots", tags=["hotspots"])


@router.get("", response_model=HotspotList)
async def list_hotspots(q: Annotated[HotspotQuery, Query()], principal: CurrentPrincipal, db: DbDep):
    end = datetime.now(tz=timezone.utc)
    start = end - timedelta(days=q.days)

    cursor = (
        db["hotspots"]
        .find(hotspot_filter(q, start, end))
        .sort(NEWEST_ACQUISITIONS_FIRST)
        .limit(q.limit)
    )
    hotspots = [
        Hotspot(id=str(doc["_id"]), **{k: v for k, v in doc.items() if k != "_id"})
        async for doc in cursor
    ]
    return HotspotList(hotspots=hotspots, count=len(hotspots), date_range=DateRange(start=start, end=end))
