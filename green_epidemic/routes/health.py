"""
Health check endpoint.

Used by:
  - Docker HEALTHCHECK instruction
  - Load balancers / uptime monitors
  - The scheduler, before calling the cron endpoints

Returns status + DB connectivity so callers can distinguish between
"API down" and "API up but DB unreachable".
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from green_epidemic.core import database as db_module
from green_epidemic.core.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()

API_VERSION = "0.1.0"


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    database: str  # "connected" | "disconnected"
    environment: str


@router.get("/health", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """
    The API answers 200 even when the database is disconnected, so
    upstream systems can tell a total failure from a DB-only issue.
    """
    db_status = "disconnected"
    try:
        # Access via module reference so tests can patch db_module.db_client
        if db_module.db_client.client is not None:
            await db_module.db_client.client.admin.command("ping")
            db_status = "connected"
    except Exception as exc:
        logger.warning("DB ping failed: %s", exc)

    return HealthResponse(
        status="ok",
        version=API_VERSION,
        database=db_status,
        environment=settings.environment,
    )
