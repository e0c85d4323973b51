"""
pytest configuration and shared fixtures for the Green Epidemic API tests.

Key concern: tests must not require a live MongoDB, Gemini key or LINE
channel. We achieve this by:
  1. Patching connect_to_mongo / close_mongo_connection to no-ops so
     FastAPI's lifespan doesn't try to reach a real database.
  2. Injecting an in-memory FakeDB through app.dependency_overrides[get_db].
  3. Ensuring AI_MOCK_MODE=true so GeminiClient returns canned responses,
     and leaving LINE_CHANNEL_ACCESS_TOKEN empty so pushes are simulated.
"""

import os
import re
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("AI_MOCK_MODE", "true")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LINE_CHANNEL_ACCESS_TOKEN", "")
os.environ.setdefault("CRON_SECRET", "")


# ── In-memory stand-in for Motor collections ─────────────────────────────────

def _compare(value, op, expected, options=""):
    if op == "$options":
        return True
    if op == "$regex":
        flags = re.IGNORECASE if "i" in options else 0
        return isinstance(value, str) and re.search(expected, value, flags) is not None
    if op == "$in":
        return value in expected
    if op == "$ne":
        return value != expected
    if value is None:
        return False
    if op == "$gte":
        return value >= expected
    if op == "$lte":
        return value <= expected
    if op == "$gt":
        return value > expected
    if op == "$lt":
        return value < expected
    raise NotImplementedError(op)


def _matches(doc, query):
    for key, cond in query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in cond):
                return False
            continue
        value = doc.get(key)
        if isinstance(cond, dict) and any(k.startswith("$") for k in cond):
            if not all(_compare(value, op, expected, cond.get("$options", "")) for op, expected in cond.items()):
                return False
        elif value != cond:
            return False
    return True


def _sorted(docs, sort):
    for field, direction in reversed(sort or []):
        present = [d for d in docs if d.get(field) is not None]
        missing = [d for d in docs if d.get(field) is None]
        present.sort(key=lambda d: d[field], reverse=direction < 0)
        docs = present + missing
    return docs


def _group(docs, spec):
    key_field = spec["_id"].lstrip("$")
    groups: dict = {}
    for doc in docs:
        key = doc.get(key_field)
        row = groups.setdefault(key, {"_id": key, **{name: 0 for name in spec if name != "_id"}})
        for name, acc in spec.items():
            if name == "_id":
                continue
            operand = acc["$sum"]
            row[name] += (doc.get(operand.lstrip("$")) or 0) if isinstance(operand, str) else operand
    return list(groups.values())


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs
        self._sort = None
        self._skip = 0
        self._limit = 0

    def sort(self, spec, direction=None):
        self._sort = [(spec, direction)] if isinstance(spec, str) else list(spec)
        return self

    def skip(self, n):
        self._skip = n
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def __aiter__(self):
        docs = _sorted(list(self._docs), self._sort)[self._skip:]
        if self._limit:
            docs = docs[: self._limit]
        for doc in docs:
            yield doc


class FakeCollection:
    def __init__(self):
        self.docs: list[dict] = []

    def find(self, query=None):
        query = query or {}
        return FakeCursor([d for d in self.docs if _matches(d, query)])

    async def find_one(self, query=None, sort=None):
        docs = _sorted([d for d in self.docs if _matches(d, query or {})], sort)
        return docs[0] if docs else None

    async def insert_one(self, doc):
        doc.setdefault("_id", ObjectId())
        self.docs.append(dict(doc))
        result = MagicMock()
        result.inserted_id = doc["_id"]
        return result

    async def insert_many(self, docs):
        ids = []
        for doc in docs:
            doc.setdefault("_id", ObjectId())
            self.docs.append(dict(doc))
            ids.append(doc["_id"])
        result = MagicMock()
        result.inserted_ids = ids
        return result

    async def update_one(self, query, update):
        result = MagicMock()
        result.matched_count = 0
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                result.matched_count = 1
                break
        return result

    async def delete_one(self, query):
        result = MagicMock()
        result.deleted_count = 0
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                result.deleted_count = 1
                break
        return result

    async def count_documents(self, query):
        return sum(1 for d in self.docs if _matches(d, query))

    async def distinct(self, key, query=None):
        values = []
        for doc in self.docs:
            if _matches(doc, query or {}) and doc.get(key) not in values:
                values.append(doc.get(key))
        return values

    def aggregate(self, pipeline):
        """Supports $match, $group ($sum of a field or a constant) and $sort."""
        docs = list(self.docs)
        for stage in pipeline:
            if "$match" in stage:
                docs = [d for d in docs if _matches(d, stage["$match"])]
            elif "$group" in stage:
                docs = _group(docs, stage["$group"])
            elif "$sort" in stage:
                docs = _sorted(docs, list(stage["$sort"].items()))
            else:
                raise NotImplementedError(stage)
        return FakeCursor(docs)


class FakeDB:
    def __init__(self):
        self._collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name):
        return self._collections.setdefault(name, FakeCollection())


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
async def mock_db():
    """
    Patch the MongoDB lifecycle for every test and leave the shared
    db_client disconnected (health check reports "disconnected").
    """
    with (
        patch("green_epidemic.core.database.connect_to_mongo", new_callable=AsyncMock),
        patch("green_epidemic.core.database.close_mongo_connection", new_callable=AsyncMock),
    ):
        import green_epidemic.core.database as db_module

        original_client = db_module.db_client.client
        original_db = db_module.db_client.db

        db_module.db_client.client = None
        db_module.db_client.db = None

        yield

        db_module.db_client.client = original_client
        db_module.db_client.db = original_db


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from green_epidemic.core.rate_limit import limiter

    limiter.reset()
    yield


@pytest.fixture()
def fake_db():
    return FakeDB()


@pytest.fixture()
async def client(mock_db):  # noqa: ARG001 — mock_db must run first
    """HTTPX client with no database (DB-dependent routes answer 503)."""
    from green_epidemic.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def api_client(fake_db):
    """HTTPX client whose routes see *fake_db* through get_db."""
    from green_epidemic.core.database import get_db
    from green_epidemic.main import app

    app.dependency_overrides[get_db] = lambda: fake_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(fake_db):
    """
    Factory: insert a user straight into fake_db and return
    (user_doc, auth_headers).

        user, headers = await make_user(role="ADMIN")
    """
    from green_epidemic.core.security import create_access_token

    async def _make(email=None, role="USER", **fields):
        doc = {
            "email": email or f"user{len(fake_db['users'].docs)}@example.com",
            "display_name": "Test User",
            "hashed_password": "not-a-real-hash",
            "role": role,
            "is_active": True,
            "home_latitude": None,
            "home_longitude": None,
            "line_user_id": None,
            "notification_preferences": [],
            "created_at": datetime.now(tz=timezone.utc),
            **fields,
        }
        await fake_db["users"].insert_one(doc)
        token = create_access_token(str(doc["_id"]))
        return doc, {"Authorization": f"Bearer {token}"}

    return _make
