"""
health_stats.py — Bulk health statistics (admin only).

Routes:
  GET  /admin/bulk-health-stats         — filtered page + per-disease / per-province totals
  POST /admin/bulk-health-stats         — add one statistic
  POST /admin/bulk-health-stats/import  — import rows from inline CSV text
"""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from green_epidemic.core.database import DbDep
from green_epidemic.models.health_stats import (
    BulkHealthStatCreate,
    BulkHealthStatList,
    BulkHealthStatOut,
    BulkHealthStatQuery,
    CsvImportRequest,
    CsvImportResult,
)
from green_epidemic.routes.auth import AdminPrincipal
from green_epidemic.services import health_stats
from green_epidemic.services.health_stats import CsvImportError

router = APIRouter(prefix="/admin/bulk-health-stats", tags=["admin"])


@router.get("", response_model=BulkHealthStatList)
async def list_bulk_stats(q: Annotated[BulkHealthStatQuery, Query()], admin: AdminPrincipal, db: DbDep):
    return await health_stats.list_stats(db, q)


@router.post("", response_model=BulkHealthStatOut, status_code=status.HTTP_201_CREATED)
async def add_bulk_stat(payload: BulkHealthStatCreate, admin: AdminPrincipal, db: DbDep):
    return await health_stats.create_stat(db, payload, admin.id)


@router.post("/import", response_model=CsvImportResult)
async def import_bulk_stats(payload: CsvImportRequest, admin: AdminPrincipal, db: DbDep):
    try:
        return await health_stats.import_csv(db, payload, admin.id)
    except CsvImportError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": str(exc), "errors": exc.errors},
        ) from exc
