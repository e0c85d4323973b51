"""
test_weather.py — GET /weather/radius.
"""

from datetime import datetime, timedelta, timezone

BANGKOK = (13.7563, 100.5018)
NONTHABURI = (13.8621, 100.5144)   # ~12 km north
CHIANG_MAI = (18.7883, 98.9853)    # ~580 km north


async def _reading(fake_db, lat, lon, pm25, hours_ago=0):
    await fake_db["weather_data"].insert_one({
        "latitude": lat,
        "longitude": lon,
        "pm25": pm25,
        "aqi": pm25 * 2,
        "temperature": 32.0,
        "humidity": 60.0,
        "air_quality_source": "IQAIR",
        "recorded_at": datetime.now(tz=timezone.utc) - timedelta(hours=hours_ago),
    })


async def test_radius_filters_by_distance(api_client, fake_db):
    await _reading(fake_db, *BANGKOK, 40.0)
    await _reading(fake_db, *NONTHABURI, 55.0)
    await _reading(fake_db, *CHIANG_MAI, 90.0)

    body = (await api_client.get(
        "/weather/radius", params={"lat": BANGKOK[0], "lng": BANGKOK[1], "radius_km": 20}
    )).json()

    assert body["count"] == 2
    assert body["radius_km"] == 20
    assert {r["pm25"] for r in body["data"]} == {40.0, 55.0}


async def test_latest_reading_per_location(api_client, fake_db):
    await _reading(fake_db, *BANGKOK, 10.0, hours_ago=3)
    await _reading(fake_db, *BANGKOK, 70.0, hours_ago=1)

    body = (await api_client.get(
        "/weather/radius", params={"lat": BANGKOK[0], "lng": BANGKOK[1]}
    )).json()

    assert body["count"] == 1
    assert body["data"][0]["pm25"] == 70.0


async def test_show_all(api_client, fake_db):
    await _reading(fake_db, *BANGKOK, 40.0)
    await _reading(fake_db, *CHIANG_MAI, 90.0)

    body = (await api_client.get("/weather/radius", params={"show_all": True})).json()

    assert body["count"] == 2
    assert body["radius_km"] is None


async def test_missing_center_400(api_client):
    response = await api_client.get("/weather/radius", params={"lat": 13.7})
    assert response.status_code == 400

async def test_radius_reaches_across_the_antimeridian(api_client, fake_db):
    await _reading(fake_db, 0.0, -179.95, 12.0)   # ~11 km east of the query point
    await _reading(fake_db, 0.0, 179.0, 30.0)     # ~105 km west

    body = (await api_client.get(
        "/weather/radius", params={"lat": 0.0, "lng": 179.95, "radius_km": 50}
    )).json()

    assert body["count"] == 1
    assert body["data"][0]["longitude"] == -179.95
