"""
users.py — Profile and notification-preference routes.

Routes:
  GET   /users/profile                   — current user's profile
  PATCH /users/profile                   — partial update (name, home location, LINE id)
  GET   /users/notification-preferences  — fetch preferences
  PUT   /users/notification-preferences  — replace preferences (full update)

All routes require a valid Bearer token.
"""

from fastapi import APIRouter, HTTPException, status

from green_epidemic.core.database import DbDep
from green_epidemic.models.user import (
    NotificationPreference,
    NotificationPreferencesUpdate,
    ProfileUpdate,
    UserOut,
)
from green_epidemic.routes.auth import CurrentPrincipal, doc_to_user_out
from green_epidemic.services.queries import parse_object_id

router = APIRouter(prefix="/users", tags=["users"])


async def _load_user(db, user_id: str) -> dict:
    doc = await db["users"].find_one({"_id": parse_object_id(user_id)})
    if not doc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return doc


@router.get("/profile", response_model=UserOut)
async def get_profile(principal: CurrentPrincipal, db: DbDep):
    return doc_to_user_out(await _load_user(db, principal.id))


@router.patch("/profile", response_model=UserOut)
async def update_profile(payload: ProfileUpdate, principal: CurrentPrincipal, db: DbDep):
    """Only provided fields are changed; explicit nulls clear a field."""
    updates = payload.model_dump(exclude_unset=True)

    # Home coordinates only make sense as a pair.
    home_keys = {"home_latitude", "home_longitude"} & updates.keys()
    if home_keys:
        lat = updates.get("home_latitude")
        lon = updates.get("home_longitude")
        if len(home_keys) == 1 or (lat is None) != (lon is None):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="home_latitude and home_longitude must be set or cleared together",
            )

    if updates:
        await db["users"].update_one({"_id": parse_object_id(principal.id)}, {"$set": updates})
    return doc_to_user_out(await _load_user(db, principal.id))


@router.get("/notification-preferences", response_model=list[NotificationPreference])
async def get_notification_preferences(principal: CurrentPrincipal, db: DbDep):
    doc = await _load_user(db, principal.id)
    return [NotificationPreference(**p) for p in doc.get("notification_preferences") or []]


@router.put("/notification-preferences", response_model=list[NotificationPreference])
async def replace_notification_preferences(
    payload: NotificationPreferencesUpdate,
    principal: CurrentPrincipal,
    db: DbDep,
):
    """Replace preferences with a full new list."""
    new_prefs = [p.model_dump() for p in payload.preferences]
    await db["users"].update_one(
        {"_id": parse_object_id(principal.id)},
        {"$set": {"notification_preferences": new_prefs}},
    )
    return payload.preferences
