"""
Email invites: creation, acceptance, expiry and revocation.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from sqlmodel import select

from app.models.base import utcnow
from app.models.invite import Invite
from app.services.invites import invite_url
from conftest import create_fraction, link_fraction


def _token(created: dict) -> str:
    return created["invite_url"].rsplit("/", 1)[1]


async def _invite(admin, email: str, role: str = "fraction_member") -> dict:
    resp = await admin.client.post("/api/v1/invites", json={"email": email, "role": role})
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_invite_url_trims_trailing_slash():
    assert invite_url("https://zelus.example/", "abc") == "https://zelus.example/invite/abc"


class TestOrgInvites:
    @pytest.mark.asyncio
    async def test_create_and_accept(self, owner, signup):
        created = await _invite(owner, "Carla@Example.com", role="org_admin")
        assert created["email"] == "carla@example.com"
        assert created["status"] == "pending"
        assert created["type"] == "org"
        assert created["invite_url"].startswith("http://app.test/invite/")

        carla = await signup("Carla", "carla@example.com")
        resp = await carla.client.post(f"/api/v1/invites/{_token(created)}/accept")
        assert resp.status_code == 200
        assert resp.json()["type"] == "org"

        current = (await carla.client.get("/api/v1/org")).json()
        assert current["org"]["id"] == resp.json()["org_id"]
        assert current["org_role"] == "admin"

        invites = (await owner.client.get("/api/v1/invites")).json()
        assert [i["status"] for i in invites] == ["accepted"]

    @pytest.mark.asyncio
    async def test_token_is_single_use(self, owner, signup):
        created = await _invite(owner, "carla@example.com")
        carla = await signup("Carla", "carla@example.com")
        url = f"/api/v1/invites/{_token(created)}/accept"

        assert (await carla.client.post(url)).status_code == 200
        assert (await carla.client.post(url)).status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_token_is_404(self, signup):
        carla = await signup("Carla", "carla@example.com")
        assert (await carla.client.post("/api/v1/invites/nope/accept")).status_code == 404

    @pytest.mark.asyncio
    async def test_email_must_match(self, owner, signup):
        created = await _invite(owner, "carla@example.com")
        mallory = await signup("Mallory", "mallory@example.com")

        resp = await mallory.client.post(f"/api/v1/invites/{_token(created)}/accept")
        assert resp.status_code == 403

        orgs = (await mallory.client.get("/api/v1/orgs")).json()
        assert orgs == {"data": []}

    @pytest.mark.asyncio
    async def test_expired_invite_is_410_and_marked(self, app, owner, signup):
        created = await _invite(owner, "carla@example.com")
        async with app.state.db.session() as session:
            invite = await session.get(Invite, uuid.UUID(created["id"]))
            invite.expires_at = utcnow() - timedelta(days=1)
            session.add(invite)

        carla = await signup("Carla", "carla@example.com")
        resp = await carla.client.post(f"/api/v1/invites/{_token(created)}/accept")
        assert resp.status_code == 410

        async with app.state.db.session() as session:
            result = await session.execute(select(Invite.status).where(Invite.id == uuid.UUID(created["id"])))
            assert result.scalar_one() == "expired"

    @pytest.mark.asyncio
    async def test_owner_admin_role_not_valid_for_org_invite(self, owner):
        resp = await owner.client.post(
            "/api/v1/invites",
            json={"email": "x@example.com", "role": "fraction_owner_admin"},
        )
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_email_is_422(self, owner):
        resp = await owner.client.post("/api/v1/invites", json={"email": "not-an-email"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_revoke(self, owner, signup):
        created = await _invite(owner, "carla@example.com")

        resp = await owner.client.post(f"/api/v1/invites/{created['id']}/revoke")
        assert resp.status_code == 200
        assert resp.json()["status"] == "revoked"
        assert (await owner.client.post(f"/api/v1/invites/{created['id']}/revoke")).status_code == 409

        carla = await signup("Carla", "carla@example.com")
        resp = await carla.client.post(f"/api/v1/invites/{_token(created)}/accept")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_accept_requires_login(self, owner, client):
        created = await _invite(owner, "carla@example.com")
        resp = await client.post(f"/api/v1/invites/{_token(created)}/accept")
        assert resp.status_code == 303


class TestFractionInvites:
    @pytest.mark.asyncio
    async def test_owner_admin_invites_into_own_fraction(self, owner, member, signup):
        fraction = await create_fraction(owner, "1A")
        await link_fraction(member, owner, fraction["id"], "fraction_owner_admin")

        resp = await member.client.post(
            f"/api/v1/fractions/{fraction['id']}/invites",
            json={"email": "dina@example.com"},
        )
        assert resp.status_code == 201
        created = resp.json()
        assert created["type"] == "fraction"
        assert created["fraction_id"] == fraction["id"]

        dina = await signup("Dina", "dina@example.com")
        resp = await dina.client.post(f"/api/v1/invites/{_token(created)}/accept")
        assert resp.status_code == 200

        # acceptance links the fraction without a separate approval
        mine = (await dina.client.get("/api/v1/me/fractions")).json()
        assert [(a["fraction_label"], a["status"]) for a in mine] == [("1A", "approved")]
        current = (await dina.client.get("/api/v1/org")).json()
        assert current["org_role"] == "member"

    @pytest.mark.asyncio
    async def test_owner_admin_sees_only_own_invites(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        await link_fraction(member, owner, fraction["id"], "fraction_owner_admin")

        await _invite(owner, "zeca@example.com")
        await member.client.post(
            f"/api/v1/fractions/{fraction['id']}/invites", json={"email": "dina@example.com"}
        )

        mine = (await member.client.get("/api/v1/invites")).json()
        assert [i["email"] for i in mine] == ["dina@example.com"]

        everything = (await owner.client.get("/api/v1/invites")).json()
        assert {i["email"] for i in everything} == {"zeca@example.com", "dina@example.com"}

    @pytest.mark.asyncio
    async def test_member_cannot_invite(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        resp = await member.client.post(
            f"/api/v1/fractions/{fraction['id']}/invites", json={"email": "dina@example.com"}
        )
        assert resp.status_code == 403
        assert (await member.client.get("/api/v1/invites")).status_code == 403

    @pytest.mark.asyncio
    async def test_second_owner_admin_refused(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        await link_fraction(member, owner, fraction["id"], "fraction_owner_admin")

        resp = await owner.client.post(
            f"/api/v1/fractions/{fraction['id']}/invites",
            json={"email": "dina@example.com", "role": "fraction_owner_admin"},
        )
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_second_owner_admin_acceptance_refused(self, owner, signup):
        fraction = await create_fraction(owner, "1A")
        url = f"/api/v1/fractions/{fraction['id']}/invites"
        role = "fraction_owner_admin"
        first = (await owner.client.post(url, json={"email": "dina@example.com", "role": role})).json()
        second = (await owner.client.post(url, json={"email": "eva@example.com", "role": role})).json()

        dina = await signup("Dina", "dina@example.com")
        assert (await dina.client.post(f"/api/v1/invites/{_token(first)}/accept")).status_code == 200

        eva = await signup("Eva", "eva@example.com")
        resp = await eva.client.post(f"/api/v1/invites/{_token(second)}/accept")
        assert resp.status_code == 409

        links = (await owner.client.get(f"/api/v1/fractions/{fraction['id']}/associations")).json()
        assert [(a["user_name"], a["role"]) for a in links] == [("Dina", "fraction_owner_admin")]

        # the refused invite stays usable once the fraction frees up
        invites = {i["email"]: i["status"] for i in (await owner.client.get("/api/v1/invites")).json()}
        assert invites == {"dina@example.com": "accepted", "eva@example.com": "pending"}

    @pytest.mark.asyncio
    async def test_org_admin_role_not_valid_for_fraction_invite(self, owner):
        fraction = await create_fraction(owner, "1A")
        resp = await owner.client.post(
            f"/api/v1/fractions/{fraction['id']}/invites",
            json={"email": "dina@example.com", "role": "org_admin"},
        )
        assert resp.status_code == 400
