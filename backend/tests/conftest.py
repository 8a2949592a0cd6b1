"""Pytest configuration and fixtures.

The environment is configured before any application module is imported:
config.py reads it once at import time.
"""
import asyncio
import os
import tempfile
from pathlib import Path

import pytest

_DB_DIR = Path(tempfile.mkdtemp(prefix="blog-tests-"))
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR / 'blog-test.db'}"
os.environ["CLIENT_URL"] = "http://client.test"
os.environ["EXPOSE_RESET_TOKENS"] = "true"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GOOGLE_CLIENT_ID"] = ""
os.environ["GOOGLE_CLIENT_SECRET"] = ""

from fastapi.testclient import TestClient  # noqa: E402

import database  # noqa: E402
import rate_limit  # noqa: E402
from main import app  # noqa: E402


async def _recreate_tables():
    await database.drop_db_and_tables()
    await database.create_db_and_tables()


@pytest.fixture(autouse=True)
def fresh_state():
    """Empty tables and rate-limit windows for every test."""
    asyncio.run(_recreate_tables())
    rate_limit.reset_all()
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_client():
    """Factory for extra clients, each with its own cookie jar."""
    clients = []

    def _make():
        c = TestClient(app)
        clients.append(c)
        return c

    yield _make
    for c in clients:
        c.close()


def signup(client, email="a@x.com", password="pw123456", name="Ann"):
    """Sign up through the API; the client keeps the session cookie."""
    resp = client.post("/api/auth/signup", json={"email": email, "password": password, "name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]


def create_post(client, **fields):
    body = {"title": "T", "content": "C"}
    body.update(fields)
    resp = client.post("/api/posts", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["post"]


def run(coro):
    return asyncio.run(coro)
