"""
test_auth.py — Auth + user profile / preference routes against the in-memory FakeDB.
"""

import pytest


async def _register(api_client, email="alice@example.com", password="supersecret", **extra):
    return await api_client.post(
        "/auth/register", json={"email": email, "password": password, **extra}
    )


@pytest.fixture()
async def registered(api_client):
    response = await _register(api_client, display_name="Alice")
    body = response.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]


class TestRegister:
    async def test_register_success_201(self, api_client):
        response = await _register(api_client)
        assert response.status_code == 201

    async def test_register_returns_token_and_default_user(self, api_client):
        body = (await _register(api_client)).json()
        assert body["token_type"] == "bearer"
        assert body["access_token"]
        assert body["user"]["role"] == "USER"
        assert body["user"]["notification_preferences"] == []
        assert "hashed_password" not in body["user"]

    async def test_register_duplicate_email_409(self, api_client):
        await _register(api_client)
        response = await _register(api_client)
        assert response.status_code == 409

    async def test_register_short_password_400(self, api_client):
        response = await _register(api_client, password="short")
        assert response.status_code == 400


class TestLogin:
    async def test_login_success(self, api_client):
        await _register(api_client)
        response = await api_client.post(
            "/auth/login", json={"email": "alice@example.com", "password": "supersecret"}
        )
        assert response.status_code == 200
        assert response.json()["user"]["email"] == "alice@example.com"

    async def test_login_wrong_password_401(self, api_client):
        await _register(api_client)
        response = await api_client.post(
            "/auth/login", json={"email": "alice@example.com", "password": "wrong-password"}
        )
        assert response.status_code == 401

    async def test_login_deactivated_user_401(self, api_client, fake_db):
        await _register(api_client)
        fake_db["users"].docs[0]["is_active"] = False
        response = await api_client.post(
            "/auth/login", json={"email": "alice@example.com", "password": "supersecret"}
        )
        assert response.status_code == 401


class TestMe:
    async def test_me_requires_auth_401(self, api_client):
        response = await api_client.get("/auth/me")
        assert response.status_code == 401

    async def test_me_invalid_token_401(self, api_client):
        response = await api_client.get("/auth/me", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    async def test_me_returns_user(self, api_client, registered):
        headers, user = registered
        response = await api_client.get("/auth/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == user["id"]

    async def test_role_is_read_from_the_stored_user(self, api_client, fake_db, registered):
        headers, _ = registered
        fake_db["users"].docs[0]["role"] = "ADMIN"
        response = await api_client.get("/admin/users", headers=headers)
        assert response.status_code == 200


class TestProfile:
    async def test_set_home_location_and_line_id(self, api_client, registered):
        headers, _ = registered
        response = await api_client.patch(
            "/users/profile",
            json={"home_latitude": 13.75, "home_longitude": 100.5, "line_user_id": "U123"},
            headers=headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert (body["home_latitude"], body["home_longitude"]) == (13.75, 100.5)
        assert body["line_user_id"] == "U123"
        assert body["display_name"] == "Alice"

    async def test_clear_home_location_with_nulls(self, api_client, registered):
        headers, _ = registered
        await api_client.patch(
            "/users/profile", json={"home_latitude": 13.75, "home_longitude": 100.5}, headers=headers
        )
        response = await api_client.patch(
            "/users/profile", json={"home_latitude": None, "home_longitude": None}, headers=headers
        )
        assert response.json()["home_latitude"] is None

    async def test_half_a_home_location_is_rejected(self, api_client, registered):
        headers, _ = registered
        response = await api_client.patch("/users/profile", json={"home_latitude": 13.75}, headers=headers)
        assert response.status_code == 400

    async def test_out_of_range_latitude_400(self, api_client, registered):
        headers, _ = registered
        response = await api_client.patch(
            "/users/profile", json={"home_latitude": 123.0, "home_longitude": 100.5}, headers=headers
        )
        assert response.status_code == 400


class TestNotificationPreferences:
    async def test_default_is_empty(self, api_client, registered):
        headers, _ = registered
        response = await api_client.get("/users/notification-preferences", headers=headers)
        assert response.json() == []

    async def test_put_replaces(self, api_client, registered):
        headers, _ = registered
        prefs = {"preferences": [{"channel": "LINE", "enabled": True, "report_types": ["DENGUE", "PM25"]}]}
        response = await api_client.put("/users/notification-preferences", json=prefs, headers=headers)
        assert response.status_code == 200

        stored = (await api_client.get("/users/notification-preferences", headers=headers)).json()
        assert stored == prefs["preferences"]

    async def test_unknown_channel_400(self, api_client, registered):
        headers, _ = registered
        prefs = {"preferences": [{"channel": "SMS", "report_types": ["DENGUE"]}]}
        response = await api_client.put("/users/notification-preferences", json=prefs, headers=headers)
        assert response.status_code == 400

    async def test_requires_auth(self, api_client):
        response = await api_client.get("/users/notification-preferences")
        assert response.status_code == 401
