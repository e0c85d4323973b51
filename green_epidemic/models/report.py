"""
report.py — Pydantic schemas for incident reports and their moderation.

ReportCreate    — what the client sends to POST /reports
ReportOut       — stored report as returned by the API
ModerationRequest — admin approve / reject payload
ReportQuery     — typed filters for GET /reports
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

ReportStatus = Literal["PENDING", "APPROVED", "REJECTED"]
ModerationAction = Literal["approve", "reject"]


class ReportCreate(BaseModel):
    """Payload for POST /reports."""
    type: str = Field(min_length=1, max_length=50)        # e.g. DENGUE, PM25, FIRE
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    symptoms: list[str] = Field(default_factory=list)
    severity: int = Field(default=1, ge=1, le=5)
    address: Optional[str] = Field(default=None, max_length=500)


class ReportOut(BaseModel):
    id: str
    user_id: Optional[str] = None
    type: str
    latitude: float
    longitude: float
    address: Optional[str] = None
    title: str
    description: Optional[str] = None
    symptoms: list[str] = Field(default_factory=list)
    severity: int = 1
    status: ReportStatus = "PENDING"
    report_date: datetime
    moderated_by: Optional[str] = None
    moderated_at: Optional[datetime] = None


class ModerationRequest(BaseModel):
    """
    Payload for PATCH /admin/reports/{id}.

    Either `action` ("approve" / "reject") or an explicit `status` must be
    given; when both are present, `action` wins.
    """
    action: Optional[ModerationAction] = None
    status: Optional[ReportStatus] = None

    @model_validator(mode="after")
    def _require_action_or_status(self) -> "ModerationRequest":
        if self.action is None and self.status is None:
            raise ValueError("either 'action' or 'status' is required")
        return self

    @property
    def target_status(self) -> ReportStatus:
        if self.action == "approve":
            return "APPROVED"
        if self.action == "reject":
            return "REJECTED"
        return self.status


class ReportQuery(BaseModel):
    """Filters accepted by GET /reports."""
    status: Optional[ReportStatus] = None
    type: Optional[str] = None
    limit: int = Field(default=100, ge=1, le=500)


class ReportTypeCount(BaseModel):
    type: str
    count: int


class AdminStats(BaseModel):
    """Response body for GET /admin/stats."""
    total_users: int
    total_reports: int
    pending_reports: int
    approved_reports: int
    rejected_reports: int
    recent_reports: list[ReportOut]
    reports_by_type: list[ReportTypeCount]
