"""
notification_fanout.py — Proximity alerts for new and approved reports.

Given one report, linearly scans every active surveillance point and every
user with a home location, and bulk-inserts one Notification per match:

  - surveillance point: match when distance <= the point's own radius
  - home location:      match when distance <= settings.home_alert_radius_m

A match only produces a notification when the owner has an enabled LINE
preference that lists the report's type. There is no deduplication: a
user with two matching points receives two notifications.

Routes call notify_nearby_best_effort(), which never raises; tests and
scripts can call notify_nearby() directly to see failures.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorDatabase

from green_epidemic.core.config import settings
from green_epidemic.models.report import ReportOut
from green_epidemic.models.surveillance import DEFAULT_RADIUS_M
from green_epidemic.services.geo import haversine_m
from green_epidemic.services.queries import (
    active_surveillance_points,
    users_by_ids,
    users_with_home_location,
)

logger = logging.getLogger(__name__)

ALERT_CHANNEL = "LINE"


def wants_alert(user: dict, report_type: str) -> bool:
    """True when the user has the alert channel enabled for this report type."""
    for pref in user.get("notification_preferences") or []:
        if (
            pref.get("channel") == ALERT_CHANNEL
            and pref.get("enabled")
            and report_type in (pref.get("report_types") or [])
        ):
            return True
    return False


def _rounded_m(distance: float) -> int:
    # Half-up rounding for display; distances are never negative.
    return int(distance + 0.5)


def _point_message(report: ReportOut, point_name: str, distance: float, confirmed: bool) -> str:
    if confirmed:
        return (
            f"A confirmed {report.type} case has been reported within {_rounded_m(distance)} meters "
            f'of your surveillance point "{point_name}".'
        )
    return (
        f"A {report.type} case has been reported within {_rounded_m(distance)} meters "
        f'of your surveillance point "{point_name}". Title: {report.title}'
    )


def _home_message(report: ReportOut, distance: float, confirmed: bool) -> str:
    if confirmed:
        return (
            f"A confirmed {report.type} case has been reported within {_rounded_m(distance)} meters "
            "of your home location."
        )
    return (
        f"A {report.type} case has been reported within {_rounded_m(distance)} meters "
        f"of your home location. Title: {report.title}"
    )


def _notification_doc(user_id: str, report: ReportOut, title: str, message: str, data: dict, now: datetime) -> dict:
    return {
        "user_id": user_id,
        "report_id": report.id,
        "channel": ALERT_CHANNEL,
        "title": title,
        "message": message,
        "data": {"report_id": report.id, "report_type": report.type, **data},
        "sent": False,
        "sent_at": None,
        "error": None,
        "created_at": now,
    }


async def notify_nearby(db: AsyncIOMotorDatabase, report: ReportOut, *, confirmed: bool = False) -> int:
    """
    Create notifications for every watch-point within range of *report*.

    Returns the number of notifications inserted. Database errors propagate;
    when the bulk insert fails nothing is created.
    """
    now = datetime.now(tz=timezone.utc)
    to_create: list[dict] = []

    points = [doc async for doc in db["surveillance_points"].find(active_surveillance_points())]
    owners: dict[str, dict] = {}
    owner_ids = sorted({p["user_id"] for p in points if p.get("user_id")})
    if owner_ids:
        async for user in db["users"].find(users_by_ids(owner_ids)):
            owners[str(user["_id"])] = user

    for point in points:
        owner = owners.get(point.get("user_id"))
        if owner is None:
            continue
        distance = haversine_m(report.latitude, report.longitude, point["latitude"], point["longitude"])
        radius = point.get("radius") or DEFAULT_RADIUS_M
        if distance <= radius and wants_alert(owner, report.type):
            to_create.append(_notification_doc(
                point["user_id"],
                report,
                title=f"Health Alert Near {point['name']}",
                message=_point_message(report, point["name"], distance, confirmed),
                data={"distance": distance, "point_name": point["name"]},
                now=now,
            ))

    home_candidates = 0
    async for user in db["users"].find(users_with_home_location()):
        home_candidates += 1
        distance = haversine_m(
            report.latitude, report.longitude, user["home_latitude"], user["home_longitude"],
        )
        if distance <= settings.home_alert_radius_m and wants_alert(user, report.type):
            to_create.append(_notification_doc(
                str(user["_id"]),
                report,
                title="Health Alert Near Home",
                message=_home_message(report, distance, confirmed),
                data={"distance": distance},
                now=now,
            ))

    logger.info(
        "Fan-out for report %s: %d surveillance points, %d home locations scanned, %d matched",
        report.id, len(points), home_candidates, len(to_create),
    )

    if to_create:
        await db["notifications"].insert_many(to_create)
    return len(to_create)


async def notify_nearby_best_effort(db: AsyncIOMotorDatabase, report: ReportOut, *, confirmed: bool = False) -> None:
    """
    Run notify_nearby() as a non-fatal side effect.

    Failures are logged and swallowed so they never fail the report
    creation or approval request that triggered them.
    """
    try:
        await notify_nearby(db, report, confirmed=confirmed)
    except Exception:
        logger.exception("Notification fan-out failed for report %s", report.id)
