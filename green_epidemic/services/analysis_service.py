"""
analysis_service.py — AI situational analysis with a 24-hour cadence gate.

should_generate()   — True when no analysis exists or the newest one is
                      older than settings.analysis_cooldown_hours.
generate_analysis() — gather weather readings + approved reports, ask the
                      AI provider for a JSON summary, persist it, return its id.

The gate is a plain read-then-write: two concurrent requests can both see
an expired gate and both generate. There is no lock or unique index.

USAGE
─────
    if force or await should_generate(db):
        analysis_id = await generate_analysis(db, originator="AUTO", hours_back=24)
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from green_epidemic.ai.gemini_client import GeminiClient, GeminiModel, gemini_client
from green_epidemic.core.config import settings
from green_epidemic.models.analysis import AnalysisGenerateResponse, AnalysisOut, AnalysisSummary
from green_epidemic.services.queries import (
    NEWEST_CREATED_FIRST,
    NEWEST_READINGS_FIRST,
    NEWEST_REPORTS_FIRST,
    approved_reports_between,
    parse_object_id,
    weather_between,
)

logger = logging.getLogger(__name__)

COLLECTION = "ai_analyses"
MODEL_NAME = GeminiModel.PRO.value
ANALYSIS_VERSION = "1.0"

_MAX_WEATHER_POINTS = 100
_MAX_REPORTS = 50
_REPORT_LOOKBACK = timedelta(days=7)
_VALID_SEVERITIES = {"LOW", "MEDIUM", "HIGH", "CRITICAL"}
_DEFAULT_CONFIDENCE = 0.7


class AnalysisFormatError(ValueError):
    """The AI provider answered with something that contains no JSON object."""


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Motor returns naive UTC datetimes unless the client is tz_aware.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Cadence gate ──────────────────────────────────────────────────────────────

async def get_latest_analysis(db: AsyncIOMotorDatabase) -> Optional[dict]:
    return await db[COLLECTION].find_one({}, sort=NEWEST_CREATED_FIRST)


async def should_generate(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> bool:
    latest = await get_latest_analysis(db)
    if latest is None:
        return True
    now = now or _utcnow()
    cooldown = timedelta(hours=settings.analysis_cooldown_hours)
    return now - _as_utc(latest["created_at"]) > cooldown


# ── Input gathering ───────────────────────────────────────────────────────────

async def gather_inputs(
    db: AsyncIOMotorDatabase, hours_back: int, now: datetime
) -> tuple[list[dict], list[dict], datetime, datetime]:
    """Return (weather_rows, approved_reports, timeframe_start, timeframe_end)."""
    timeframe_end = now
    timeframe_start = now - timedelta(hours=hours_back)

    weather_cursor = (
        db["weather_data"]
        .find(weather_between(timeframe_start, timeframe_end))
        .sort(NEWEST_READINGS_FIRST)
        .limit(_MAX_WEATHER_POINTS)
    )
    weather = [doc async for doc in weather_cursor]

    report_cursor = (
        db["reports"]
        .find(approved_reports_between(now - _REPORT_LOOKBACK, timeframe_end))
        .sort(NEWEST_REPORTS_FIRST)
        .limit(_MAX_REPORTS)
    )
    reports = [doc async for doc in report_cursor]

    return weather, reports, timeframe_start, timeframe_end


def _mean(values: list[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def _fmt(value: Optional[float], digits: int) -> str:
    return "n/a" if value is None else f"{value:.{digits}f}"


def summarize_weather(rows: list[dict]) -> str:
    if not rows:
        return "No weather data available."

    pm25 = [r["pm25"] for r in rows if r.get("pm25") is not None]
    aqi = [r["aqi"] for r in rows if r.get("aqi") is not None]
    temps = [r["temperature"] for r in rows if r.get("temperature") is not None]
    sources = Counter(r["air_quality_source"] for r in rows if r.get("air_quality_source"))
    locations = {(round(r["latitude"], 2), round(r["longitude"], 2)) for r in rows}

    return "\n".join([
        f"Data Points: {len(rows)} measurements",
        f"PM2.5: Average {_fmt(_mean(pm25), 1)}μg/m³, Max {_fmt(max(pm25) if pm25 else None, 1)}μg/m³",
        f"AQI: Average {_fmt(_mean(aqi), 0)}",
        f"Temperature: Average {_fmt(_mean(temps), 1)}°C",
        f"Data Sources: {', '.join(f'{k}({v})' for k, v in sources.items()) or 'unknown'}",
        f"Geographic Coverage: {len(locations)} locations",
    ])


def _severity_band(severity: int) -> str:
    if severity <= 2:
        return "Low"
    if severity <= 3:
        return "Medium"
    return "High"


def summarize_reports(reports: list[dict]) -> str:
    if not reports:
        return "No health reports available."

    types = Counter(r.get("type", "UNKNOWN") for r in reports)
    bands = Counter(_severity_band(r.get("severity", 1)) for r in reports)
    avg_severity = sum(r.get("severity", 1) for r in reports) / len(reports)
    locations = {(round(r["latitude"], 2), round(r["longitude"], 2)) for r in reports}

    return "\n".join([
        f"Total Reports: {len(reports)}",
        f"Types: {', '.join(f'{k}({v})' for k, v in types.items())}",
        f"Severity Distribution: {', '.join(f'{k}({v})' for k, v in bands.items())}",
        f"Average Severity: {avg_severity:.1f}/5",
        f"Geographic Spread: {len(locations)} locations",
    ])


def build_prompt(weather: list[dict], reports: list[dict], start: datetime, end: datetime) -> str:
    return f"""You are an environmental health analyst for the Green Epidemic monitoring
system in Thailand. Analyse the environmental and health data below and give
public-health officials actionable, evidence-based guidance suited to Thai
climate and seasonal conditions.

Respond with ONE valid JSON object and nothing else:
{{
  "title": "short descriptive title (max 100 chars)",
  "summary": "executive summary (max 500 chars)",
  "analysis": "detailed analysis (max 2000 chars)",
  "recommendations": "specific actionable recommendations (max 1500 chars)",
  "severity": "LOW|MEDIUM|HIGH|CRITICAL",
  "confidence": 0.85
}}

ENVIRONMENTAL DATA ({start.isoformat()} to {end.isoformat()}):
{summarize_weather(weather)}

HEALTH REPORTS (last 7 days, approved only):
{summarize_reports(reports)}

Cover: air quality trends and health risks, geographic hotspots, correlation
between environmental factors and reports, immediate and long-term
recommendations, and the risk outlook for the coming days."""


# ── Response parsing ──────────────────────────────────────────────────────────

def parse_analysis_response(text: str) -> dict[str, Any]:
    """
    Parse the provider's answer into a dict.

    Tries the whole text first, then the first {...} block inside it
    (models sometimes wrap JSON in prose or code fences).
    """
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    match = re.search(r"\{[\s\S]*\}", text)
    if not match:
        logger.error("No JSON found in AI response: %.300s", text)
        raise AnalysisFormatError("Invalid AI response format - no JSON found")
    try:
        parsed = json.loads(match.group())
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse extracted JSON: %s", exc)
        raise AnalysisFormatError("Invalid AI response format - could not extract valid JSON") from exc
    if not isinstance(parsed, dict):
        raise AnalysisFormatError("Invalid AI response format - JSON is not an object")
    logger.info("Extracted JSON object from wrapped AI response")
    return parsed


def normalize_result(result: dict[str, Any], now: datetime) -> dict[str, Any]:
    """Fill missing fields, coerce severity and clamp confidence to [0, 1]."""
    if not result.get("title") or not result.get("summary"):
        logger.warning("AI response missing title/summary, using fallback text")

    severity = str(result.get("severity") or "MEDIUM").upper()
    if severity not in _VALID_SEVERITIES:
        logger.warning("Invalid severity %r, defaulting to MEDIUM", result.get("severity"))
        severity = "MEDIUM"

    confidence = result.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = _DEFAULT_CONFIDENCE

    return {
        "title": result.get("title") or f"Environmental analysis - {now.date().isoformat()}",
        "summary": result.get("summary") or "Analysis completed from current environmental and health data.",
        "analysis": result.get("analysis") or "",
        "recommendations": result.get("recommendations") or "",
        "severity": severity,
        "confidence": max(0.0, min(1.0, float(confidence))),
    }


# ── Generation ────────────────────────────────────────────────────────────────

async def generate_analysis(
    db: AsyncIOMotorDatabase,
    originator: str,
    hours_back: int = 24,
    *,
    client: GeminiClient = gemini_client,
    now: Optional[datetime] = None,
) -> str:
    """
    Produce and persist a new AIAnalysis tagged with *originator*.

    Provider and database errors propagate to the caller; nothing is
    retried and nothing is written on failure.
    """
    now = now or _utcnow()
    logger.info("Starting AI analysis generation (originator=%s, hours_back=%d)", originator, hours_back)

    weather, reports, start, end = await gather_inputs(db, hours_back, now)
    logger.info("Analysis inputs: %d weather points, %d approved reports", len(weather), len(reports))

    raw = await client.generate_with_pro(
        build_prompt(weather, reports, start, end), response_key="situational_analysis",
    )
    result = normalize_result(parse_analysis_response(raw), now)

    doc = {
        **result,
        "weather_data_count": len(weather),
        "reports_count": len(reports),
        "timeframe_start": start,
        "timeframe_end": end,
        "generated_by": originator,
        "model": MODEL_NAME,
        "version": ANALYSIS_VERSION,
        "created_at": now,
    }
    inserted = await db[COLLECTION].insert_one(doc)
    logger.info("AI analysis saved with id %s", inserted.inserted_id)
    return str(inserted.inserted_id)


async def generate_if_due(
    db: AsyncIOMotorDatabase,
    originator: str,
    hours_back: int = 24,
    force: bool = False,
    *,
    client: GeminiClient = gemini_client,
) -> AnalysisGenerateResponse:
    """
    Generate when forced or when the gate is open; otherwise return the
    cached latest analysis with generated=False.
    """
    if not force and not await should_generate(db):
        latest = await get_latest_analysis(db)
        logger.info("Analysis gate closed, returning cached analysis for %s", originator)
        return AnalysisGenerateResponse(
            message="Recent analysis available. Use force=true to generate a new one.",
            analysis=doc_to_analysis(latest) if latest else None,
            generated=False,
        )

    analysis_id = await generate_analysis(db, originator, hours_back, client=client)
    doc = await get_analysis_by_id(db, analysis_id)
    return AnalysisGenerateResponse(
        message="New analysis generated successfully",
        analysis=doc_to_analysis(doc) if doc else None,
        generated=True,
    )


# ── Read helpers ──────────────────────────────────────────────────────────────

def doc_to_analysis(doc: dict) -> AnalysisOut:
    return AnalysisOut(
        id=str(doc["_id"]),
        title=doc["title"],
        summary=doc.get("summary", ""),
        analysis=doc.get("analysis", ""),
        recommendations=doc.get("recommendations", ""),
        severity=doc.get("severity", "MEDIUM"),
        confidence=doc.get("confidence", _DEFAULT_CONFIDENCE),
        generated_by=doc.get("generated_by", ""),
        weather_data_count=doc.get("weather_data_count", 0),
        reports_count=doc.get("reports_count", 0),
        timeframe_start=doc["timeframe_start"],
        timeframe_end=doc["timeframe_end"],
        model=doc.get("model", ""),
        version=doc.get("version", ""),
        created_at=doc["created_at"],
    )


def doc_to_summary(doc: dict) -> AnalysisSummary:
    return AnalysisSummary(**doc_to_analysis(doc).model_dump(include=set(AnalysisSummary.model_fields)))


async def get_analysis_by_id(db: AsyncIOMotorDatabase, analysis_id: str) -> Optional[dict]:
    oid = parse_object_id(analysis_id)
    if oid is None:
        return None
    return await db[COLLECTION].find_one({"_id": oid})


async def get_analysis_history(db: AsyncIOMotorDatabase, limit: int = 10) -> list[dict]:
    cursor = db[COLLECTION].find({}).sort(NEWEST_CREATED_FIRST).limit(limit)
    return [doc async for doc in cursor]
