"""
analysis.py — User-facing AI situational analyses.

Routes:
  GET  /ai-analysis       — recent analyses (summaries)
  POST /ai-analysis       — generate one if the 24-hour gate is open,
                            otherwise return the cached latest
  GET  /ai-analysis/{id}  — one full analysis

Admin and cron variants live in routes/admin.py.
"""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from green_epidemic.core.database import DbDep
from green_epidemic.models.analysis import (
    AnalysisGenerateResponse,
    AnalysisHistoryQuery,
    AnalysisOut,
    UserAnalysisList,
)
from green_epidemic.routes.auth import CurrentPrincipal
from green_epidemic.services import analysis_service

router = APIRouter(prefix="/ai-analysis", tags=["analysis"])


@router.get("", response_model=UserAnalysisList)
async def list_analyses(q: Annotated[AnalysisHistoryQuery, Query()], principal: CurrentPrincipal, db: DbDep):
    docs = await analysis_service.get_analysis_history(db, q.limit)
    return UserAnalysisList(
        analyses=[analysis_service.doc_to_summary(d) for d in docs],
        has_data=bool(docs),
        timestamp=datetime.now(tz=timezone.utc),
    )


@router.post("", response_model=AnalysisGenerateResponse)
async def request_analysis(principal: CurrentPrincipal, db: DbDep):
    """Users can never force generation; the cadence gate always applies."""
    return await analysis_service.generate_if_due(db, originator=f"USER-{principal.id}")


@router.get("/{analysis_id}", response_model=AnalysisOut)
async def get_analysis(analysis_id: str, principal: CurrentPrincipal, db: DbDep):
    doc = await analysis_service.get_analysis_by_id(db, analysis_id)
    if not doc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found")
    return analysis_service.doc_to_analysis(doc)
