"""
user.py — Pydantic schemas for user-related request / response bodies.

Separation of concerns:
  UserCreate   — what the client sends to register
  UserOut      — what the API returns (never includes hashed_password)
  Principal    — the authenticated caller of one request
  Token        — JWT response from /auth/login and /auth/register
  NotificationPreference — one delivery channel + the report types it covers
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["USER", "ADMIN"]
NotificationChannel = Literal["LINE"]

ADMIN_ROLE: Role = "ADMIN"


# ── Preferences ───────────────────────────────────────────────────────────────

class NotificationPreference(BaseModel):
    """Stored as a list on the user document."""
    channel: NotificationChannel = "LINE"
    enabled: bool = True
    report_types: list[str] = Field(default_factory=list)


class NotificationPreferencesUpdate(BaseModel):
    """Payload for PUT /users/notification-preferences (full replace)."""
    preferences: list[NotificationPreference]


# ── User ──────────────────────────────────────────────────────────────────────

class UserCreate(BaseModel):
    """Payload for POST /auth/register."""
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    display_name: Optional[str] = Field(default=None, max_length=64)


class UserOut(BaseModel):
    """Safe user representation — no secrets."""
    id: str
    email: EmailStr
    display_name: Optional[str] = None
    role: Role = "USER"
    is_active: bool = True
    home_latitude: Optional[float] = None
    home_longitude: Optional[float] = None
    line_user_id: Optional[str] = None
    notification_preferences: list[NotificationPreference] = Field(default_factory=list)
    created_at: datetime


class ProfileUpdate(BaseModel):
    """
    Partial update for PATCH /users/profile.

    Home coordinates are set or cleared together; sending both as null
    removes the home location.
    """
    display_name: Optional[str] = Field(default=None, max_length=64)
    home_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    home_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    line_user_id: Optional[str] = Field(default=None, max_length=64)


class AdminUserUpdate(BaseModel):
    """Payload for PATCH /admin/users/{id}."""
    role: Optional[Role] = None
    is_active: Optional[bool] = None


class Principal(BaseModel):
    """
    The authenticated caller, resolved once per request and passed by value.

    The role comes from the stored user record, not from the token, so a
    promotion or demotion applies on the caller's next request.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    email: EmailStr
    role: Role = "USER"
    display_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


# ── Auth tokens ───────────────────────────────────────────────────────────────

class Token(BaseModel):
    """Response body for successful login / register."""
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class LoginRequest(BaseModel):
    """Payload for POST /auth/login."""
    email: EmailStr
    password: str
