"""
analysis.py — Schemas for AI situational analyses and the AI health chat.

AnalysisOut          — full stored AIAnalysis
AnalysisSummary      — list/history view (no long-form body)
AnalysisGenerateRequest / AnalysisGenerateResponse — POST /admin/ai-analysis
AutoAnalysisStatus   — GET /admin/ai-analysis/auto (cron monitoring)
ChatRequest / ChatResponse — POST /ai-health-chat
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

Severity = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]

# Originator tag for scheduler-triggered analyses.
AUTO_ORIGINATOR = "AUTO"


class AnalysisSummary(BaseModel):
    id: str
    title: str
    summary: str
    severity: Severity
    confidence: float = Field(ge=0.0, le=1.0)
    generated_by: str
    weather_data_count: int = 0
    reports_count: int = 0
    created_at: datetime


class AnalysisOut(AnalysisSummary):
    analysis: str = ""
    recommendations: str = ""
    timeframe_start: datetime
    timeframe_end: datetime
    model: str = ""
    version: str = ""


class AnalysisHistoryQuery(BaseModel):
    limit: int = Field(default=10, ge=1, le=100)


class AdminAnalysisQuery(AnalysisHistoryQuery):
    """GET /admin/ai-analysis — `id` selects one analysis, otherwise history."""
    id: Optional[str] = None


class AnalysisGenerateRequest(BaseModel):
    hours_back: int = Field(default=24, ge=1, le=168)
    force: bool = False


class AnalysisGenerateResponse(BaseModel):
    message: str
    analysis: Optional[AnalysisOut] = None
    generated: bool


class AutoAnalysisStatus(BaseModel):
    should_generate: bool
    latest_analysis: Optional[AnalysisSummary] = None
    timestamp: datetime


class UserAnalysisList(BaseModel):
    analyses: list[AnalysisSummary]
    has_data: bool
    timestamp: datetime


# ── AI health chat ────────────────────────────────────────────────────────────

class ChatRequest(BaseModel):
    message: str = Field(min_length=1, max_length=2000)
    session_id: Optional[str] = Field(default=None, max_length=64)


class ChatResponse(BaseModel):
    session_id: str
    response: str
    symptoms: list[str] = Field(default_factory=list)
    risk_level: Severity = "LOW"
    recommendation: str = ""
    should_consult_doctor: bool = False
    needs_more_info: bool = False
    missing_info: list[str] = Field(default_factory=list)


class ChatSessionOut(BaseModel):
    """Admin view of one stored chat session."""
    id: str
    user_id: str
    session_id: str
    message_count: int
    risk_level: Optional[Severity] = None
    recommendation: Optional[str] = None
    should_consult_doctor: bool = False
    updated_at: datetime
