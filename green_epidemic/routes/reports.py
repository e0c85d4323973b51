"""
reports.py — Incident report routes.

Routes:
  GET  /reports       — public list, newest first (ReportQuery filters)
  GET  /reports/{id}  — single report
  POST /reports       — submit a report (auth required, created PENDING)

Submitting a report triggers the proximity fan-out as a best-effort side
effect; the report is returned even if no notification could be created.
Moderation lives in routes/admin.py.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from green_epidemic.core.database import DbDep
from green_epidemic.models.report import ReportCreate, ReportOut, ReportQuery
from green_epidemic.routes.auth import CurrentPrincipal
from green_epidemic.services.notification_fanout import notify_nearby_best_effort
from green_epidemic.services.queries import NEWEST_REPORTS_FIRST, parse_object_id, report_filter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


def doc_to_report(doc: dict) -> ReportOut:
    return ReportOut(
        id=str(doc["_id"]),
        user_id=doc.get("user_id"),
        type=doc["type"],
        latitude=doc["latitude"],
        longitude=doc["longitude"],
        address=doc.get("address"),
        title=doc["title"],
        description=doc.get("description"),
        symptoms=doc.get("symptoms") or [],
        severity=doc.get("severity", 1),
        status=doc.get("status", "PENDING"),
        report_date=doc["report_date"],
        moderated_by=doc.get("moderated_by"),
        moderated_at=doc.get("moderated_at"),
    )


@router.get("", response_model=list[ReportOut])
async def list_reports(q: Annotated[ReportQuery, Query()], db: DbDep):
    cursor = db["reports"].find(report_filter(q)).sort(NEWEST_REPORTS_FIRST).limit(q.limit)
    return [doc_to_report(doc) async for doc in cursor]


@router.get("/{report_id}", response_model=ReportOut)
async def get_report(report_id: str, db: DbDep):
    oid = parse_object_id(report_id)
    doc = await db["reports"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    return doc_to_report(doc)


@router.post("", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
async def create_report(payload: ReportCreate, principal: CurrentPrincipal, db: DbDep):
    """Persist a PENDING report, then notify nearby watchers."""
    doc = {
        **payload.model_dump(),
        "user_id": principal.id,
        "status": "PENDING",
        "report_date": datetime.now(tz=timezone.utc),
        "moderated_by": None,
        "moderated_at": None,
    }
    result = await db["reports"].insert_one(doc)
    doc["_id"] = result.inserted_id
    report = doc_to_report(doc)
    logger.info("Report %s submitted by %s (type=%s)", report.id, principal.id, report.type)

    await notify_nearby_best_effort(db, report)
    return report
