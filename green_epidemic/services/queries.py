"""
queries.py — Translate typed query structs into MongoDB filters.

Routes and services receive pydantic query models (ReportQuery,
RiskAssessmentQuery, ...) and call the builders here; nothing else in the
codebase assembles Mongo filter dicts from user input.

Sort specs are (field, direction) lists accepted by Motor's find(sort=...)
and cursor.sort(...).
"""

from __future__ import annotations

import re
from datetime import datetime

from bson import ObjectId

from green_epidemic.models.health_stats import BulkHealthStatQuery
from green_epidemic.models.hotspot import HotspotQuery
from green_epidemic.models.notification import NotificationQuery
from green_epidemic.models.report import ReportQuery
from green_epidemic.models.risk import RiskAssessmentQuery
from green_epidemic.models.weather import WeatherRadiusQuery
from green_epidemic.services.geo import bounding_box, longitude_ranges

NEWEST_REPORTS_FIRST = [("report_date", -1)]
NEWEST_CREATED_FIRST = [("created_at", -1)]
NEWEST_READINGS_FIRST = [("recorded_at", -1)]
NEWEST_UPDATED_FIRST = [("updated_at", -1)]
NEWEST_ACQUISITIONS_FIRST = [("acquisition_date", -1)]
# PENDING < APPROVED < REJECTED is not alphabetical, so the admin queue
# sorts pending reports first in Python after the query.
MODERATION_QUEUE_ORDER = {"PENDING": 0, "APPROVED": 1, "REJECTED": 2}


def parse_object_id(value: str) -> ObjectId | None:
    """Return an ObjectId, or None when *value* is not a valid 24-hex id."""
    if not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


# ── Reports ───────────────────────────────────────────────────────────────────

def report_filter(query: ReportQuery) -> dict:
    filt: dict = {}
    if query.status:
        filt["status"] = query.status
    if query.type:
        filt["type"] = query.type
    return filt


def approved_reports_between(start: datetime, end: datetime) -> dict:
    return {"status": "APPROVED", "report_date": {"$gte": start, "$lte": end}}


# ── Risk assessments ──────────────────────────────────────────────────────────

def risk_assessment_filter(query: RiskAssessmentQuery) -> dict:
    filt: dict = {}
    if query.risk_level:
        filt["risk_level"] = query.risk_level
    if query.priority:
        filt["priority"] = query.priority
    return filt


# ── Surveillance points / fan-out candidates ──────────────────────────────────

def owned_by(user_id: str) -> dict:
    return {"user_id": user_id}


def active_surveillance_points() -> dict:
    return {"active": True}


# Deactivated accounts receive no alerts. Documents without the flag count as active.
ACTIVE_USER = {"is_active": {"$ne": False}}


def users_with_home_location() -> dict:
    return {"home_latitude": {"$ne": None}, "home_longitude": {"$ne": None}, **ACTIVE_USER}


def users_by_ids(user_ids: list[str]) -> dict:
    oids = [oid for oid in (parse_object_id(u) for u in user_ids) if oid is not None]
    return {"_id": {"$in": oids}, **ACTIVE_USER}


# ── Notifications ─────────────────────────────────────────────────────────────

def notification_filter(user_id: str, query: NotificationQuery) -> dict:
    filt: dict = {"user_id": user_id}
    if query.unsent_only:
        filt["sent"] = False
    return filt


def undelivered_notifications(channel: str) -> dict:
    """Notifications that have never had a delivery attempt."""
    return {"channel": channel, "sent": False, "error": None}


# ── Weather ───────────────────────────────────────────────────────────────────

def weather_box_filter(query: WeatherRadiusQuery) -> dict:
    """Coarse bounding-box pre-filter; the caller still applies haversine."""
    if query.show_all:
        return {}
    min_lat, max_lat, min_lon, max_lon = bounding_box(query.lat, query.lng, query.radius_km)
    filt: dict = {"latitude": {"$gte": min_lat, "$lte": max_lat}}
    lon_conditions = [{"$gte": lo, "$lte": hi} for lo, hi in longitude_ranges(min_lon, max_lon)]
    if len(lon_conditions) == 1:
        filt["longitude"] = lon_conditions[0]
    else:
        filt["$or"] = [{"longitude": cond} for cond in lon_conditions]
    return filt


def weather_between(start: datetime, end: datetime) -> dict:
    return {"recorded_at": {"$gte": start, "$lte": end}}


# ── Fire hotspots ─────────────────────────────────────────────────────────────

def hotspot_filter(query: HotspotQuery, start: datetime, end: datetime) -> dict:
    return {
        "acquisition_date": {"$gte": start, "$lte": end},
        "confidence": {"$gte": query.min_confidence},
        "is_active": True,
    }


# ── Bulk health statistics ────────────────────────────────────────────────────

def _contains(text: str) -> dict:
    return {"$regex": re.escape(text), "$options": "i"}


def bulk_stat_filter(query: BulkHealthStatQuery) -> dict:
    filt: dict = {}
    if query.province:
        filt["province"] = _contains(query.province)
    if query.district:
        filt["district"] = _contains(query.district)
    if query.disease_type:
        filt["disease_type"] = _contains(query.disease_type)
    if query.start_date or query.end_date:
        date_range: dict = {}
        if query.start_date:
            date_range["$gte"] = query.start_date
        if query.end_date:
            date_range["$lte"] = query.end_date
        filt["report_date"] = date_range
    return filt


def totals_by(field: str, filt: dict) -> list[dict]:
    """Aggregation pipeline: case_count sum and row count per *field* value, largest first."""
    return [
        {"$match": filt},
        {"$group": {"_id": f"${field}", "case_count": {"$sum": "$case_count"}, "records": {"$sum": 1}}},
        {"$sort": {"case_count": -1, "_id": 1}},
    ]
