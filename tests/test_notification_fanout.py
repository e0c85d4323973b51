"""
test_notification_fanout.py — Proximity fan-out for new / approved reports.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId

from green_epidemic.core.config import settings
from green_epidemic.models.report import ReportOut
from green_epidemic.services.geo import haversine_m
from green_epidemic.services.notification_fanout import (
    notify_nearby,
    notify_nearby_best_effort,
    wants_alert,
)

BANGKOK = (13.7563, 100.5018)


def _prefs(*report_types, enabled=True):
    return [{"channel": "LINE", "enabled": enabled, "report_types": list(report_types)}]


def _report(lat=BANGKOK[0], lon=BANGKOK[1], type_="DENGUE", title="Dengue cluster"):
    return ReportOut(
        id=str(ObjectId()),
        type=type_,
        latitude=lat,
        longitude=lon,
        title=title,
        report_date=datetime.now(tz=timezone.utc),
    )


async def _add_point(fake_db, user, lat, lon, radius, name="Home block", active=True):
    doc = {
        "user_id": str(user["_id"]),
        "name": name,
        "latitude": lat,
        "longitude": lon,
        "radius": radius,
        "active": active,
        "created_at": datetime.now(tz=timezone.utc),
    }
    await fake_db["surveillance_points"].insert_one(doc)
    return doc


class TestWantsAlert:

    def test_enabled_line_preference_with_type(self):
        assert wants_alert({"notification_preferences": _prefs("DENGUE")}, "DENGUE")

    def test_type_not_listed(self):
        assert not wants_alert({"notification_preferences": _prefs("PM25")}, "DENGUE")

    def test_disabled_preference(self):
        assert not wants_alert({"notification_preferences": _prefs("DENGUE", enabled=False)}, "DENGUE")

    def test_no_preferences(self):
        assert not wants_alert({}, "DENGUE")


class TestNotifyNearby:

    async def test_point_exactly_at_radius_is_included(self, fake_db, make_user):
        user, _ = await make_user(notification_preferences=_prefs("DENGUE"))
        report = _report()
        lat, lon = BANGKOK[0] + 0.004, BANGKOK[1]
        radius = haversine_m(report.latitude, report.longitude, lat, lon)
        await _add_point(fake_db, user, lat, lon, radius)

        assert await notify_nearby(fake_db, report) == 1

    async def test_point_just_beyond_radius_is_excluded(self, fake_db, make_user):
        user, _ = await make_user(notification_preferences=_prefs("DENGUE"))
        report = _report()
        lat, lon = BANGKOK[0] + 0.004, BANGKOK[1]
        radius = haversine_m(report.latitude, report.longitude, lat, lon) - 1e-6
        await _add_point(fake_db, user, lat, lon, radius)

        assert await notify_nearby(fake_db, report) == 0
        assert fake_db["notifications"].docs == []

    async def test_two_matching_points_of_one_user_give_two_notifications(self, fake_db, make_user):
        user, _ = await make_user(notification_preferences=_prefs("DENGUE"))
        await _add_point(fake_db, user, BANGKOK[0] + 0.001, BANGKOK[1], 500, name="Office")
        await _add_point(fake_db, user, BANGKOK[0], BANGKOK[1] + 0.001, 500, name="School")

        created = await notify_nearby(fake_db, _report())

        docs = fake_db["notifications"].docs
        assert created == 2
        assert {d["user_id"] for d in docs} == {str(user["_id"])}
        assert {d["title"] for d in docs} == {"Health Alert Near Office", "Health Alert Near School"}

    async def test_inactive_points_and_unsubscribed_owners_are_skipped(self, fake_db, make_user):
        subscribed, _ = await make_user(notification_preferences=_prefs("DENGUE"))
        other_type, _ = await make_user(notification_preferences=_prefs("PM25"))
        await _add_point(fake_db, subscribed, *BANGKOK, 500, active=False)
        await _add_point(fake_db, other_type, *BANGKOK, 500)

        assert await notify_nearby(fake_db, _report()) == 0

    async def test_home_location_within_default_radius(self, fake_db, make_user):
        lat = BANGKOK[0] + 0.003  # ~334 m
        user, _ = await make_user(
            home_latitude=lat,
            home_longitude=BANGKOK[1],
            notification_preferences=_prefs("DENGUE"),
        )
        far, _ = await make_user(
            home_latitude=BANGKOK[0] + 0.01,  # ~1.1 km
            home_longitude=BANGKOK[1],
            notification_preferences=_prefs("DENGUE"),
        )

        assert await notify_nearby(fake_db, _report()) == 1
        (doc,) = fake_db["notifications"].docs
        assert doc["user_id"] == str(user["_id"])
        assert doc["title"] == "Health Alert Near Home"
        assert doc["data"]["distance"] <= settings.home_alert_radius_m

    async def test_deactivated_accounts_get_nothing(self, fake_db, make_user):
        home_owner, _ = await make_user(
            is_active=False,
            home_latitude=BANGKOK[0],
            home_longitude=BANGKOK[1],
            notification_preferences=_prefs("DENGUE"),
        )
        point_owner, _ = await make_user(is_active=False, notification_preferences=_prefs("DENGUE"))
        await _add_point(fake_db, point_owner, *BANGKOK, 500)

        assert await notify_nearby(fake_db, _report()) == 0
        assert fake_db["notifications"].docs == []

    async def test_users_without_active_flag_still_get_alerts(self, fake_db, make_user):
        user, _ = await make_user(notification_preferences=_prefs("DENGUE"))
        fake_db["users"].docs[-1].pop("is_active")
        await _add_point(fake_db, user, *BANGKOK, 500)

        assert await notify_nearby(fake_db, _report()) == 1

    async def test_notification_record_shape(self, fake_db, make_user):
        user, _ = await make_user(notification_preferences=_prefs("DENGUE"))
        await _add_point(fake_db, user, BANGKOK[0] + 0.002, BANGKOK[1], 500, name="Market")
        report = _report(title="Fever cases")

        await notify_nearby(fake_db, report)

        (doc,) = fake_db["notifications"].docs
        assert doc["report_id"] == report.id
        assert doc["channel"] == "LINE"
        assert doc["sent"] is False and doc["sent_at"] is None and doc["error"] is None
        assert doc["data"]["point_name"] == "Market"
        assert doc["data"]["report_type"] == "DENGUE"
        assert f"within {round(doc['data']['distance'])} meters" in doc["message"]
        assert "Title: Fever cases" in doc["message"]

    async def test_confirmed_variant_mentions_confirmation(self, fake_db, make_user):
        user, _ = await make_user(notification_preferences=_prefs("DENGUE"))
        await _add_point(fake_db, user, *BANGKOK, 500)

        await notify_nearby(fake_db, _report(), confirmed=True)

        (doc,) = fake_db["notifications"].docs
        assert "confirmed DENGUE case" in doc["message"]

    async def test_no_matches_skips_insert(self, fake_db):
        fake_db["notifications"].insert_many = AsyncMock()
        assert await notify_nearby(fake_db, _report()) == 0
        fake_db["notifications"].insert_many.assert_not_awaited()

    async def test_bulk_insert_failure_propagates(self, fake_db, make_user):
        user, _ = await make_user(notification_preferences=_prefs("DENGUE"))
        await _add_point(fake_db, user, *BANGKOK, 500)
        fake_db["notifications"].insert_many = AsyncMock(side_effect=RuntimeError("write failed"))

        with pytest.raises(RuntimeError):
            await notify_nearby(fake_db, _report())


class TestBestEffort:

    async def test_failures_are_swallowed_and_logged(self, fake_db, make_user, caplog):
        user, _ = await make_user(notification_preferences=_prefs("DENGUE"))
        await _add_point(fake_db, user, *BANGKOK, 500)
        fake_db["notifications"].insert_many = AsyncMock(side_effect=RuntimeError("write failed"))
        report = _report()

        assert await notify_nearby_best_effort(fake_db, report) is None
        assert f"Notification fan-out failed for report {report.id}" in caplog.text

    async def test_success_returns_none(self, fake_db, make_user):
        user, _ = await make_user(notification_preferences=_prefs("DENGUE"))
        await _add_point(fake_db, user, *BANGKOK, 500)

        assert await notify_nearby_best_effort(fake_db, _report()) is None
        assert len(fake_db["notifications"].docs) == 1
