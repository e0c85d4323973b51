"""
risk.py — Patient risk assessment routes.

Routes:
  POST /risk-assessment — score a patient case and store it
  GET  /risk-assessment — paginated list (admins see every case, other
                          users only the cases they assessed)

Scoring is done by services/risk_scoring.assess_risk(); the stored record
is immutable apart from admin_notes (PATCH /admin/risk-assessment/{id}).
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Query, status

from green_epidemic.core.database import DbDep
from green_epidemic.models.risk import (
    Pagination,
    RiskAssessmentCreate,
    RiskAssessmentList,
    RiskAssessmentOut,
    RiskAssessmentQuery,
)
from green_epidemic.routes.auth import CurrentPrincipal
from green_epidemic.services.queries import NEWEST_CREATED_FIRST, risk_assessment_filter
from green_epidemic.services.risk_scoring import assess_risk

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/risk-assessment", tags=["risk"])


def doc_to_assessment(doc: dict) -> RiskAssessmentOut:
    return RiskAssessmentOut(id=str(doc["_id"]), **{k: v for k, v in doc.items() if k != "_id"})


@router.post("", response_model=RiskAssessmentOut, status_code=status.HTTP_201_CREATED)
async def create_assessment(payload: RiskAssessmentCreate, principal: CurrentPrincipal, db: DbDep):
    result = assess_risk(payload.primary_symptoms, payload.severity, payload.patient_age)

    doc = {
        **payload.model_dump(),
        "risk_level": result.risk_level,
        "priority": result.priority,
        "recommendation": result.recommendation,
        "admin_notes": None,
        "assessed_by": principal.id,
        "created_at": datetime.now(tz=timezone.utc),
    }
    inserted = await db["risk_assessments"].insert_one(doc)
    doc["_id"] = inserted.inserted_id
    logger.info(
        "Risk assessment %s: %s/%s (score=%d)",
        inserted.inserted_id, result.risk_level, result.priority, result.score,
    )
    return doc_to_assessment(doc)


@router.get("", response_model=RiskAssessmentList)
async def list_assessments(q: Annotated[RiskAssessmentQuery, Query()], principal: CurrentPrincipal, db: DbDep):
    filt = risk_assessment_filter(q)
    if not principal.is_admin:
        filt["assessed_by"] = principal.id

    total = await db["risk_assessments"].count_documents(filt)
    cursor = db["risk_assessments"].find(filt).sort(NEWEST_CREATED_FIRST).skip(q.offset).limit(q.limit)
    assessments = [doc_to_assessment(doc) async for doc in cursor]

    return RiskAssessmentList(
        assessments=assessments,
        pagination=Pagination(
            total=total,
            limit=q.limit,
            offset=q.offset,
            has_more=q.offset + q.limit < total,
        ),
    )
