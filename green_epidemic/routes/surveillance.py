"""
surveillance.py — Owner-scoped CRUD for surveillance points.

Routes:
  GET    /user/surveillance-points        — caller's points, newest first
  POST   /user/surveillance-points        — create a point
  PATCH  /user/surveillance-points/{id}   — partial update
  DELETE /user/surveillance-points/{id}   — remove a point

A point that does not exist and a point owned by someone else both answer
404, so ids of other users' points are not disclosed.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Response, status

from green_epidemic.core.database import DbDep
from green_epidemic.models.surveillance import (
    SurveillancePointCreate,
    SurveillancePointOut,
    SurveillancePointUpdate,
)
from green_epidemic.routes.auth import CurrentPrincipal
from green_epidemic.services.queries import NEWEST_CREATED_FIRST, owned_by, parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user/surveillance-points", tags=["surveillance"])


def _doc_to_point(doc: dict) -> SurveillancePointOut:
    return SurveillancePointOut(id=str(doc["_id"]), **{k: v for k, v in doc.items() if k != "_id"})


async def _get_owned_point(db, point_id: str, user_id: str) -> dict:
    oid = parse_object_id(point_id)
    doc = await db["surveillance_points"].find_one({"_id": oid}) if oid else None
    if not doc or doc.get("user_id") != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Surveillance point not found")
    return doc


@router.get("", response_model=list[SurveillancePointOut])
async def list_points(principal: CurrentPrincipal, db: DbDep):
    cursor = db["surveillance_points"].find(owned_by(principal.id)).sort(NEWEST_CREATED_FIRST)
    return [_doc_to_point(doc) async for doc in cursor]


@router.post("", response_model=SurveillancePointOut, status_code=status.HTTP_201_CREATED)
async def create_point(payload: SurveillancePointCreate, principal: CurrentPrincipal, db: DbDep):
    doc = {
        **payload.model_dump(),
        "user_id": principal.id,
        "active": True,
        "created_at": datetime.now(tz=timezone.utc),
    }
    result = await db["surveillance_points"].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Surveillance point %s created by %s", result.inserted_id, principal.id)
    return _doc_to_point(doc)


@router.patch("/{point_id}", response_model=SurveillancePointOut)
async def update_point(
    point_id: str,
    payload: SurveillancePointUpdate,
    principal: CurrentPrincipal,
    db: DbDep,
):
    """Partially update a point — only provided, non-null fields are changed."""
    doc = await _get_owned_point(db, point_id, principal.id)
    updates = payload.model_dump(exclude_none=True)
    if updates:
        await db["surveillance_points"].update_one({"_id": doc["_id"]}, {"$set": updates})
    return _doc_to_point({**doc, **updates})


@router.delete("/{point_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_point(point_id: str, principal: CurrentPrincipal, db: DbDep):
    doc = await _get_owned_point(db, point_id, principal.id)
    await db["surveillance_points"].delete_one({"_id": doc["_id"]})
    logger.info("Surveillance point %s deleted by %s", point_id, principal.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
