"""
admin.py — Administrative and scheduler routes.

Admin routes (role ADMIN required, 403 otherwise):
  GET   /admin/reports                    — moderation queue, pending first
  PATCH /admin/reports/{id}               — approve / reject; approval fans out
  GET   /admin/stats                      — dashboard counters
  GET   /admin/users                      — all users
  PATCH /admin/users/{id}                 — change role / active flag
  PATCH /admin/risk-assessment/{id}       — set admin_notes
  GET   /admin/ai-analysis                — history, or one analysis by ?id=
  POST  /admin/ai-analysis                — gated generation, force=true bypasses
  GET   /admin/ai-chat-history            — recent health chat sessions
  POST  /admin/notifications/dispatch     — push undelivered notifications via LINE

Scheduler routes ("Authorization: Bearer <CRON_SECRET>", 401 otherwise):
  GET   /admin/ai-analysis/auto           — gate status + latest summary
  POST  /admin/ai-analysis/auto           — gated generation tagged AUTO
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Union

from fastapi import APIRouter, HTTPException, Query, status

from green_epidemic.core.database import DbDep
from green_epidemic.models.analysis import (
    AUTO_ORIGINATOR,
    AdminAnalysisQuery,
    AnalysisGenerateRequest,
    AnalysisGenerateResponse,
    AnalysisOut,
    AutoAnalysisStatus,
    ChatSessionOut,
)
from green_epidemic.models.notification import DispatchResult
from green_epidemic.models.report import (
    AdminStats,
    ModerationRequest,
    ReportOut,
    ReportQuery,
    ReportTypeCount,
)
from green_epidemic.models.risk import RiskAnnotation, RiskAssessmentOut
from green_epidemic.models.user import AdminUserUpdate, UserOut
from green_epidemic.routes.auth import AdminPrincipal, CronAuth, doc_to_user_out
from green_epidemic.routes.reports import doc_to_report
from green_epidemic.routes.risk import doc_to_assessment
from green_epidemic.services import analysis_service
from green_epidemic.services.health_chat import recent_sessions
from green_epidemic.services.line_client import dispatch_pending
from green_epidemic.services.notification_fanout import notify_nearby_best_effort
from green_epidemic.services.queries import (
    MODERATION_QUEUE_ORDER,
    NEWEST_CREATED_FIRST,
    NEWEST_REPORTS_FIRST,
    parse_object_id,
    report_filter,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

_RECENT_REPORTS = 5


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


# ── Reports ───────────────────────────────────────────────────────────────────

@router.get("/reports", response_model=list[ReportOut])
async def moderation_queue(q: Annotated[ReportQuery, Query()], admin: AdminPrincipal, db: DbDep):
    cursor = db["reports"].find(report_filter(q)).sort(NEWEST_REPORTS_FIRST).limit(q.limit)
    reports = [doc_to_report(doc) async for doc in cursor]
    # Stable sort keeps newest-first inside each status group.
    reports.sort(key=lambda r: MODERATION_QUEUE_ORDER.get(r.status, len(MODERATION_QUEUE_ORDER)))
    return reports


@router.patch("/reports/{report_id}", response_model=ReportOut)
async def moderate_report(report_id: str, payload: ModerationRequest, admin: AdminPrincipal, db: DbDep):
    """
    Set a report's status. Moving a report into APPROVED notifies nearby
    watchers with the "confirmed" message; the fan-out is best-effort.
    """
    oid = parse_object_id(report_id)
    doc = await db["reports"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise _not_found("Report")

    previous = doc.get("status", "PENDING")
    updates = {
        "status": payload.target_status,
        "moderated_by": admin.id,
        "moderated_at": datetime.now(tz=timezone.utc),
    }
    await db["reports"].update_one({"_id": oid}, {"$set": updates})
    report = doc_to_report({**doc, **updates})
    logger.info("Report %s moderated by %s: %s -> %s", report_id, admin.id, previous, report.status)

    if report.status == "APPROVED" and previous != "APPROVED":
        await notify_nearby_best_effort(db, report, confirmed=True)
    return report


@router.get("/stats", response_model=AdminStats)
async def stats(admin: AdminPrincipal, db: DbDep):
    by_status = {
        s: await db["reports"].count_documents({"status": s}) for s in MODERATION_QUEUE_ORDER
    }
    types = sorted(await db["reports"].distinct("type"))
    by_type = [
        ReportTypeCount(type=t, count=await db["reports"].count_documents({"type": t})) for t in types
    ]
    by_type.sort(key=lambda c: c.count, reverse=True)

    cursor = db["reports"].find({}).sort(NEWEST_REPORTS_FIRST).limit(_RECENT_REPORTS)
    return AdminStats(
        total_users=await db["users"].count_documents({}),
        total_reports=await db["reports"].count_documents({}),
        pending_reports=by_status["PENDING"],
        approved_reports=by_status["APPROVED"],
        rejected_reports=by_status["REJECTED"],
        recent_reports=[doc_to_report(doc) async for doc in cursor],
        reports_by_type=by_type,
    )


# ── Users ─────────────────────────────────────────────────────────────────────

@router.get("/users", response_model=list[UserOut])
async def list_users(admin: AdminPrincipal, db: DbDep):
    cursor = db["users"].find({}).sort(NEWEST_CREATED_FIRST)
    return [doc_to_user_out(doc) async for doc in cursor]


@router.patch("/users/{user_id}", response_model=UserOut)
async def update_user(user_id: str, payload: AdminUserUpdate, admin: AdminPrincipal, db: DbDep):
    oid = parse_object_id(user_id)
    doc = await db["users"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise _not_found("User")

    updates = payload.model_dump(exclude_none=True)
    if user_id == admin.id and (updates.get("role", "ADMIN") != "ADMIN" or updates.get("is_active") is False):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot demote or deactivate themselves",
        )

    if updates:
        await db["users"].update_one({"_id": oid}, {"$set": updates})
        logger.info("User %s updated by %s: %s", user_id, admin.id, updates)
    return doc_to_user_out({**doc, **updates})


# ── Risk assessments ──────────────────────────────────────────────────────────

@router.patch("/risk-assessment/{assessment_id}", response_model=RiskAssessmentOut)
async def annotate_assessment(assessment_id: str, payload: RiskAnnotation, admin: AdminPrincipal, db: DbDep):
    oid = parse_object_id(assessment_id)
    doc = await db["risk_assessments"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise _not_found("Risk assessment")

    await db["risk_assessments"].update_one({"_id": oid}, {"$set": {"admin_notes": payload.admin_notes}})
    return doc_to_assessment({**doc, "admin_notes": payload.admin_notes})


# ── AI analysis ───────────────────────────────────────────────────────────────

@router.get("/ai-analysis", response_model=Union[AnalysisOut, list[AnalysisOut]])
async def analysis_history(q: Annotated[AdminAnalysisQuery, Query()], admin: AdminPrincipal, db: DbDep):
    if q.id:
        doc = await analysis_service.get_analysis_by_id(db, q.id)
        if not doc:
            raise _not_found("Analysis")
        return analysis_service.doc_to_analysis(doc)

    docs = await analysis_service.get_analysis_history(db, q.limit)
    return [analysis_service.doc_to_analysis(d) for d in docs]


@router.post("/ai-analysis", response_model=AnalysisGenerateResponse)
async def admin_generate_analysis(payload: AnalysisGenerateRequest, admin: AdminPrincipal, db: DbDep):
    return await analysis_service.generate_if_due(
        db, originator=admin.id, hours_back=payload.hours_back, force=payload.force,
    )


@router.get("/ai-analysis/auto", response_model=AutoAnalysisStatus, dependencies=[CronAuth])
async def auto_analysis_status(db: DbDep):
    latest = await analysis_service.get_latest_analysis(db)
    return AutoAnalysisStatus(
        should_generate=await analysis_service.should_generate(db),
        latest_analysis=analysis_service.doc_to_summary(latest) if latest else None,
        timestamp=datetime.now(tz=timezone.utc),
    )


@router.post("/ai-analysis/auto", response_model=AnalysisGenerateResponse, dependencies=[CronAuth])
async def auto_generate_analysis(db: DbDep):
    logger.info("Cron-triggered analysis request")
    return await analysis_service.generate_if_due(db, originator=AUTO_ORIGINATOR)


# ── Chat & notifications ──────────────────────────────────────────────────────

@router.get("/ai-chat-history", response_model=list[ChatSessionOut])
async def chat_history(admin: AdminPrincipal, db: DbDep, limit: int = Query(default=50, ge=1, le=200)):
    return await recent_sessions(db, limit)


@router.post("/notifications/dispatch", response_model=DispatchResult)
async def dispatch_notifications(admin: AdminPrincipal, db: DbDep):
    return await dispatch_pending(db)
