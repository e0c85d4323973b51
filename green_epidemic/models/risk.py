"""
risk.py — Schemas for patient risk assessments.

RiskLevel / Priority / Recommendation are the three outputs of
services/risk_scoring.assess_risk(); everything else is patient context
stored alongside them.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

RiskLevel = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
Priority = Literal["ROUTINE", "URGENT", "EMERGENCY"]
Recommendation = Literal["SELF_CARE", "TELEHEALTH", "CLINIC_VISIT", "EMERGENCY"]


class RiskAssessmentCreate(BaseModel):
    """Payload for POST /risk-assessment."""
    patient_name: str = Field(min_length=1, max_length=120)
    patient_age: int = Field(ge=0, le=130)
    patient_gender: str = Field(min_length=1, max_length=20)
    patient_phone: Optional[str] = Field(default=None, max_length=32)
    primary_symptoms: list[str] = Field(default_factory=list)
    severity: int = Field(ge=1, le=5)
    duration: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=500)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    notes: Optional[str] = Field(default=None, max_length=5000)


class RiskAssessmentOut(BaseModel):
    id: str
    patient_name: str
    patient_age: int
    patient_gender: str
    patient_phone: Optional[str] = None
    primary_symptoms: list[str] = Field(default_factory=list)
    severity: int
    duration: Optional[str] = None
    risk_level: RiskLevel
    priority: Priority
    recommendation: Recommendation
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    assessed_by: str
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: datetime


class RiskAnnotation(BaseModel):
    """Payload for PATCH /admin/risk-assessment/{id}."""
    admin_notes: str = Field(max_length=5000)


class RiskAssessmentQuery(BaseModel):
    """Filters accepted by GET /risk-assessment."""
    risk_level: Optional[RiskLevel] = None
    priority: Optional[Priority] = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class RiskAssessmentList(BaseModel):
    assessments: list[RiskAssessmentOut]
    pagination: Pagination
