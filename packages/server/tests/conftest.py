"""
Shared fixtures: a fresh app per test over file-backed SQLite, with Redis
replaced by an in-process dict behind an AsyncMock.
"""

from __future__ import annotations

from dataclasses import dataclass
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.main import create_app

PASSWORD = "correct-horse-battery"


@dataclass
class Actor:
    """A signed-in user and the HTTP client carrying their session cookies."""

    client: AsyncClient
    user_id: str
    email: str


def make_fake_redis() -> AsyncMock:
    """Just enough of redis.asyncio.Redis for SessionStore: get / set / delete."""
    data: dict[str, str] = {}
    client = AsyncMock()

    async def _get(key):
        return data.get(key)

    async def _set(key, value, ex=None, keepttl=False):
        data[key] = value
        return True

    async def _delete(*keys):
        return sum(1 for key in keys if data.pop(key, None) is not None)

    client.get.side_effect = _get
    client.set.side_effect = _set
    client.delete.side_effect = _delete
    client.ping.return_value = True
    client.data = data
    return client


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'zelus-test.db'}",
        secret_key="test-secret-key-with-enough-entropy",
        debug=True,  # non-secure cookies over http://test
        log_format="console",
        log_level="warning",
        app_url="http://app.test",
    )


@pytest.fixture
def fake_redis() -> AsyncMock:
    return make_fake_redis()


@pytest.fixture
async def app(settings, fake_redis):
    application = create_app(settings, redis_client=fake_redis)
    await application.state.db.init_db()
    yield application
    await application.state.audit.drain()
    await application.state.db.dispose()


@pytest.fixture
async def make_client(app):
    clients: list[AsyncClient] = []

    def _make() -> AsyncClient:
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()


@pytest.fixture
async def client(make_client) -> AsyncClient:
    """Anonymous client."""
    return make_client()


def _arm_csrf(client: AsyncClient, settings: Settings) -> None:
    client.headers["X-CSRF-Token"] = client.cookies[settings.csrf_cookie_name]


@pytest.fixture
def signup(make_client, settings):
    async def _signup(name: str, email: str, password: str = PASSWORD) -> Actor:
        client = make_client()
        resp = await client.post(
            "/auth/register", json={"name": name, "email": email, "password": password}
        )
        assert resp.status_code == 201, resp.text
        _arm_csrf(client, settings)
        return Actor(client=client, user_id=resp.json()["user_id"], email=email)

    return _signup


@pytest.fixture
def login(make_client, settings):
    async def _login(email: str, password: str = PASSWORD) -> Actor:
        client = make_client()
        resp = await client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        _arm_csrf(client, settings)
        return Actor(client=client, user_id=resp.json()["user_id"], email=email)

    return _login


async def create_org(actor: Actor, name: str = "Edifício Aurora", city: str = "Lisboa") -> dict:
    resp = await actor.client.post(
        "/api/v1/orgs", json={"name": name, "city": city, "total_fractions": 12}
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def enable_invite_code(admin: Actor) -> str:
    resp = await admin.client.post("/api/v1/org/invite-link", json={"action": "enable"})
    assert resp.status_code == 200, resp.text
    return resp.json()["invite_code"]


async def join(actor: Actor, code: str) -> dict:
    resp = await actor.client.post(f"/api/v1/join/{code}")
    assert resp.status_code == 200, resp.text
    return resp.json()


async def create_fraction(admin: Actor, label: str) -> dict:
    resp = await admin.client.post("/api/v1/fractions", json={"label": label})
    assert resp.status_code == 201, resp.text
    return resp.json()


async def link_fraction(member: Actor, admin: Actor, fraction_id: str, role: str) -> dict:
    """Member requests an association and the admin approves it."""
    resp = await member.client.post(
        f"/api/v1/fractions/{fraction_id}/associations", json={"role": role}
    )
    assert resp.status_code == 201, resp.text
    assoc_id = resp.json()["id"]
    resp = await admin.client.post(f"/api/v1/associations/{assoc_id}/approve")
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.fixture
async def owner(signup) -> Actor:
    """Org owner with an active org."""
    actor = await signup("Ana Owner", "ana@example.com")
    await create_org(actor)
    return actor


@pytest.fixture
async def org_id(owner) -> str:
    resp = await owner.client.get("/api/v1/org")
    return resp.json()["org"]["id"]


@pytest.fixture
async def member(owner, signup) -> Actor:
    """Plain member of the owner's org, joined through the invite code."""
    code = await enable_invite_code(owner)
    actor = await signup("Bruno Member", "bruno@example.com")
    await join(actor, code)
    return actor
