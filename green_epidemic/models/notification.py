"""
notification.py — Per-recipient notification records.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from green_epidemic.models.user import NotificationChannel


class NotificationOut(BaseModel):
    id: str
    user_id: str
    report_id: Optional[str] = None
    channel: NotificationChannel = "LINE"
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    sent: bool = False
    sent_at: Optional[datetime] = None
    error: Optional[str] = None
    created_at: datetime


class NotificationQuery(BaseModel):
    """Filters accepted by GET /notifications."""
    unsent_only: bool = False
    limit: int = Field(default=50, ge=1, le=200)


class DispatchResult(BaseModel):
    """Response body for POST /admin/notifications/dispatch."""
    attempted: int
    sent: int
    failed: int
