"""
auth.py — Authentication routes and caller dependencies.

Routes:
  POST /auth/register  — create new account
  POST /auth/login     — exchange credentials for JWT
  GET  /auth/me        — return current user (requires valid JWT)

Dependencies re-used by the other route modules:
  CurrentPrincipal — any authenticated, active user (401 otherwise)
  AdminPrincipal   — CurrentPrincipal with role ADMIN (403 otherwise)
  CronAuth         — "Authorization: Bearer <CRON_SECRET>" (401 otherwise)

All errors use HTTPException so FastAPI serialises them as:
  { "detail": "..." }
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from green_epidemic.core.database import DbDep
from green_epidemic.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_cron_secret,
    verify_password,
)
from green_epidemic.models.user import (
    LoginRequest,
    NotificationPreference,
    Principal,
    Token,
    UserCreate,
    UserOut,
)
from green_epidemic.services.queries import parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

# Reusable bearer extractor (does NOT auto-raise on missing token)
_bearer = HTTPBearer(auto_error=False)
CredDep = Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)]


# ── Helpers ───────────────────────────────────────────────────────────────────

def doc_to_user_out(doc: dict) -> UserOut:
    """Convert a raw MongoDB document to a UserOut Pydantic model."""
    return UserOut(
        id=str(doc["_id"]),
        email=doc["email"],
        display_name=doc.get("display_name"),
        role=doc.get("role", "USER"),
        is_active=doc.get("is_active", True),
        home_latitude=doc.get("home_latitude"),
        home_longitude=doc.get("home_longitude"),
        line_user_id=doc.get("line_user_id"),
        notification_preferences=[
            NotificationPreference(**p) for p in doc.get("notification_preferences") or []
        ],
        created_at=doc.get("created_at", datetime.now(tz=timezone.utc)),
    )


async def _get_principal(credentials: CredDep, db: DbDep) -> Principal:
    """
    FastAPI dependency — validates the Bearer token and loads the caller.

    Raises 401 if the token is missing, invalid, or the user no longer
    exists or has been deactivated.
    """
    cred_error = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not credentials:
        raise cred_error

    oid = parse_object_id(decode_access_token(credentials.credentials) or "")
    if oid is None:
        raise cred_error

    doc = await db["users"].find_one({"_id": oid, "is_active": True})
    if not doc:
        raise cred_error

    return Principal(
        id=str(doc["_id"]),
        email=doc["email"],
        role=doc.get("role", "USER"),
        display_name=doc.get("display_name"),
    )


CurrentPrincipal = Annotated[Principal, Depends(_get_principal)]


async def _require_admin(principal: CurrentPrincipal) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return principal


AdminPrincipal = Annotated[Principal, Depends(_require_admin)]


async def _require_cron(credentials: CredDep) -> None:
    if not credentials or not verify_cron_secret(credentials.credentials):
        logger.warning("Rejected cron request with missing or invalid secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


CronAuth = Depends(_require_cron)


# ── Routes ────────────────────────────────────────────────────────────────────

@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, db: DbDep):
    """Register a new user and return a JWT."""
    existing = await db["users"].find_one({"email": payload.email})
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )

    user_doc = {
        "email": payload.email,
        "display_name": payload.display_name,
        "hashed_password": hash_password(payload.password),
        "role": "USER",
        "is_active": True,
        "home_latitude": None,
        "home_longitude": None,
        "line_user_id": None,
        "notification_preferences": [],
        "created_at": datetime.now(tz=timezone.utc),
    }
    result = await db["users"].insert_one(user_doc)
    user_doc["_id"] = result.inserted_id
    logger.info("Registered user %s", result.inserted_id)

    token = create_access_token(str(result.inserted_id))
    return Token(access_token=token, user=doc_to_user_out(user_doc))


@router.post("/login", response_model=Token)
async def login(payload: LoginRequest, db: DbDep):
    """Authenticate with email + password and return a JWT."""
    _cred_err = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Incorrect email or password",
        headers={"WWW-Authenticate": "Bearer"},
    )

    doc = await db["users"].find_one({"email": payload.email, "is_active": True})
    if not doc:
        raise _cred_err

    if not verify_password(payload.password, doc["hashed_password"]):
        raise _cred_err

    token = create_access_token(str(doc["_id"]))
    return Token(access_token=token, user=doc_to_user_out(doc))


@router.get("/me", response_model=UserOut)
async def me(principal: CurrentPrincipal, db: DbDep):
    """Return the currently authenticated user's profile."""
    doc = await db["users"].find_one({"_id": parse_object_id(principal.id)})
    return doc_to_user_out(doc)
