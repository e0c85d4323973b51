"""
notifications.py — The caller's proximity alerts.

Route:
  GET /notifications — newest first; ?unsent_only=true hides delivered ones
"""

from typing import Annotated

from fastapi import APIRouter, Query

from green_epidemic.core.database import DbDep
from green_epidemic.models.notification import NotificationOut, NotificationQuery
from green_epidemic.routes.auth import CurrentPrincipal
from green_epidemic.services.queries import NEWEST_CREATED_FIRST, notification_filter

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
async def list_notifications(
    q: Annotated[NotificationQuery, Query()],
    principal: CurrentPrincipal,
    db: DbDep,
):
    cursor = (
        db["notifications"]
        .find(notification_filter(principal.id, q))
        .sort(NEWEST_CREATED_FIRST)
        .limit(q.limit)
    )
    return [
        NotificationOut(id=str(doc["_id"]), **{k: v for k, v in doc.items() if k != "_id"})
        async for doc in cursor
    ]
