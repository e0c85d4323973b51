"""
MongoDB connection management using Motor (async driver).

A single DatabaseClient instance is shared across all requests via a
module-level singleton. FastAPI's dependency injection (get_db / DbDep)
gives routes access without importing the singleton directly.

The connection is opened in FastAPI's lifespan (startup) and closed
on shutdown.
"""

import logging
import re
from typing import Annotated

import certifi
from fastapi import Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from green_epidemic.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseClient:
    """
    Holds the Motor client and selected database.

    Tests replace .client and .db on the singleton rather than
    monkeypatching module-level variables.
    """

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None


# Module-level singleton — all app code references this object
db_client = DatabaseClient()


async def connect_to_mongo() -> None:
    """
    Create the MongoDB connection and validate it with a ping.

    Called once at app startup. If MongoDB is unavailable the API still
    starts; DB-dependent endpoints answer 503 and /health reports
    "disconnected".
    """
    logger.info("Connecting to MongoDB at %s", _redact_uri(settings.mongo_uri))
    try:
        db_client.client = AsyncIOMotorClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=5000,
            tlsCAFile=certifi.where(),
        )
        db_client.db = db_client.client[settings.mongo_db_name]
        await db_client.client.admin.command("ping")
        logger.info("MongoDB connection established (db: %s)", settings.mongo_db_name)
        await ensure_indexes(db_client.db)
    except Exception as exc:
        logger.warning(
            "MongoDB unavailable at startup: %s. "
            "API running in degraded mode — DB endpoints will fail.",
            exc,
        )
        db_client.client = None
        db_client.db = None


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the indexes the list and lookup queries rely on."""
    await db["users"].create_index("email", unique=True)
    await db["reports"].create_index([("status", 1), ("report_date", -1)])
    await db["surveillance_points"].create_index([("user_id", 1), ("created_at", -1)])
    await db["surveillance_points"].create_index("active")
    await db["notifications"].create_index([("user_id", 1), ("created_at", -1)])
    await db["risk_assessments"].create_index([("created_at", -1)])
    await db["ai_analyses"].create_index([("created_at", -1)])
    await db["weather_data"].create_index([("recorded_at", -1)])
    await db["hotspots"].create_index([("is_active", 1), ("acquisition_date", -1)])
    await db["bulk_health_stats"].create_index([("report_date", -1)])
    await db["ai_health_chats"].create_index([("user_id", 1), ("session_id", 1)], unique=True)


async def close_mongo_connection() -> None:
    """Close the MongoDB connection gracefully on app shutdown."""
    if db_client.client is not None:
        db_client.client.close()
        logger.info("MongoDB connection closed")


def get_db() -> AsyncIOMotorDatabase | None:
    """
    FastAPI dependency — inject the database into route handlers.

    Returns None when MongoDB is unavailable.
    """
    return db_client.db


def require_db(db=Depends(get_db)) -> AsyncIOMotorDatabase:
    """Like get_db, but answers 503 instead of handing the route a None."""
    if db is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        )
    return db


DbDep = Annotated[AsyncIOMotorDatabase, Depends(require_db)]


def _redact_uri(uri: str) -> str:
    """Strip credentials from URI before logging."""
    return re.sub(r"://[^:]+:[^@]+@", "://<redacted>@", uri)
