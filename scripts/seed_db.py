#!/usr/bin/env python3
"""
seed_db.py — Populate MongoDB with sample data for local development.

Inserts:
  - Weather readings for a handful of Thai cities over the last 24 hours
  - Approved and pending health reports around Bangkok and Chiang Mai
  - Active fire hotspots in the northern provinces
  - Creates required indexes

Usage:
    python scripts/seed_db.py

Reads MONGO_URI / MONGO_DB_NAME from the environment or .env.

Safe to re-run: deletes seed data first, then re-inserts.
"""

import asyncio
import random
from datetime import datetime, timedelta, timezone

from motor.motor_asyncio import AsyncIOMotorClient

from green_epidemic.core.config import settings
from green_epidemic.core.database import ensure_indexes

STATIONS = [
    ("Bangkok", 13.7563, 100.5018),
    ("Nonthaburi", 13.8621, 100.5144),
    ("Chiang Mai", 18.7883, 98.9853),
    ("Chiang Rai", 19.9105, 99.8406),
    ("Khon Kaen", 16.4322, 102.8236),
    ("Hat Yai", 7.0086, 100.4747),
]

SAMPLE_REPORTS = [
    ("DENGUE", 13.7460, 100.5340, "Dengue cases near Lumphini market", ["high fever", "rash"], 3, "APPROVED"),
    ("PM25", 18.7953, 98.9620, "Heavy smoke over the old city", ["cough", "eye irritation"], 4, "APPROVED"),
    ("FIRE", 18.8200, 98.9100, "Burning fields at the foot of Doi Suthep", [], 4, "APPROVED"),
    ("COVID", 13.7280, 100.5240, "Office cluster in Silom", ["fever", "sore throat"], 2, "PENDING"),
    ("DENGUE", 16.4400, 102.8300, "Standing water and mosquito bites", ["high fever"], 2, "PENDING"),
]


def _weather_rows(now: datetime) -> list[dict]:
    rows = []
    for name, lat, lon in STATIONS:
        base_pm25 = 90.0 if "Chiang" in name else 35.0
        for hours_ago in range(0, 24, 3):
            pm25 = round(max(5.0, random.gauss(base_pm25, 12.0)), 1)
            rows.append({
                "latitude": lat,
                "longitude": lon,
                "pm25": pm25,
                "aqi": round(pm25 * 2.1),
                "temperature": round(random.uniform(26.0, 36.0), 1),
                "humidity": round(random.uniform(40.0, 85.0), 1),
                "air_quality_source": "SEED",
                "recorded_at": now - timedelta(hours=hours_ago),
                "seed": True,
            })
    return rows


def _hotspot_rows(now: datetime) -> list[dict]:
    rows = []
    for _ in range(12):
        detected = now - timedelta(hours=random.randint(1, 36))
        rows.append({
            "latitude": round(random.uniform(18.3, 20.2), 4),
            "longitude": round(random.uniform(98.3, 100.3), 4),
            "brightness": round(random.uniform(310.0, 360.0), 1),
            "frp": round(random.uniform(5.0, 60.0), 1),
            "acquisition_date": detected,
            "acquisition_time": detected.strftime("%H%M"),
            "satellite": random.choice(["Terra", "Aqua"]),
            "instrument": "MODIS",
            "confidence": random.randint(40, 100),
            "daynight": "D" if 6 <= detected.hour < 18 else "N",
            "last_seen": now,
            "is_active": True,
            "seed": True,
        })
    return rows


def _report_docs(now: datetime) -> list[dict]:
    return [
        {
            "user_id": None,
            "type": type_,
            "latitude": lat,
            "longitude": lon,
            "address": None,
            "title": title,
            "description": None,
            "symptoms": symptoms,
            "severity": severity,
            "status": status,
            "report_date": now - timedelta(days=i),
            "moderated_by": None,
            "moderated_at": None,
            "seed": True,
        }
        for i, (type_, lat, lon, title, symptoms, severity, status) in enumerate(SAMPLE_REPORTS)
    ]


async def seed() -> None:
    print("Connecting to MongoDB...")
    client = AsyncIOMotorClient(settings.mongo_uri)
    db = client[settings.mongo_db_name]

    try:
        await client.admin.command("ping")
        print("Connected.")

        # ─── Clean up previous seed data ──────────────────────────────────────
        for collection in ("weather_data", "reports", "hotspots"):
            deleted = await db[collection].delete_many({"seed": True})
            print(f"Removed {deleted.deleted_count} existing seed documents from {collection}.")

        # ─── Insert sample data ───────────────────────────────────────────────
        now = datetime.now(timezone.utc)
        result = await db["weather_data"].insert_many(_weather_rows(now))
        print(f"Inserted {len(result.inserted_ids)} weather readings.")
        result = await db["reports"].insert_many(_report_docs(now))
        print(f"Inserted {len(result.inserted_ids)} reports.")
        result = await db["hotspots"].insert_many(_hotspot_rows(now))
        print(f"Inserted {len(result.inserted_ids)} hotspots.")

        await ensure_indexes(db)
        print("Indexes ensured.")

        print("\nSeed complete! Reports by status:")
        pipeline = [{"$group": {"_id": "$status", "count": {"$sum": 1}}}]
        async for doc in db["reports"].aggregate(pipeline):
            print(f"  {doc['_id']}: {doc['count']} reports")

    finally:
        client.close()


if __name__ == "__main__":
    asyncio.run(seed())
