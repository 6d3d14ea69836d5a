"""
Integration tests for organization endpoints.

Tests cover:
- Onboarding (create, slug generation) and org listing
- Org profile updates
- Invite-code links and joining
- Member management
- Audit trail
"""

from __future__ import annotations

import json

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.organizations import generate_slug
from conftest import create_fraction, create_org, enable_invite_code, join


class TestSlug:
    def test_strips_accents_and_adds_suffix(self):
        slug = generate_slug("Edifício São João")
        base, suffix = slug.rsplit("-", 1)
        assert base == "edificio-sao-joao"
        assert len(suffix) == 8

    def test_unique_per_call(self):
        assert generate_slug("Aurora") != generate_slug("Aurora")

    def test_symbols_only_falls_back(self):
        assert generate_slug("!!!").startswith("org-")


class TestOnboarding:
    @pytest.mark.asyncio
    async def test_create_org_makes_creator_owner(self, signup):
        ana = await signup("Ana", "ana@example.com")
        org = await create_org(ana, name="Edifício Aurora", city="Porto")
        assert org["slug"].startswith("edificio-aurora-")
        assert org["city"] == "Porto"
        assert org["invite_enabled"] is False

        current = (await ana.client.get("/api/v1/org")).json()
        assert current["org"]["id"] == org["id"]
        assert current["org_role"] == "owner"
        assert current["effective_role"] == "org_admin"

        orgs = (await ana.client.get("/api/v1/orgs")).json()["data"]
        assert [(o["id"], o["role"], o["active"]) for o in orgs] == [(org["id"], "owner", True)]

    @pytest.mark.asyncio
    async def test_create_org_validation(self, signup):
        ana = await signup("Ana", "ana@example.com")
        resp = await ana.client.post("/api/v1/orgs", json={"name": "", "city": "Lisboa"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_failed_commit_keeps_session_without_org(self, signup, fake_redis, monkeypatch):
        ana = await signup("Ana", "ana@example.com")

        async def _broken_commit(self):
            raise RuntimeError("connection lost")

        monkeypatch.setattr(AsyncSession, "commit", _broken_commit)
        with pytest.raises(RuntimeError):
            await ana.client.post("/api/v1/orgs", json={"name": "Aurora", "city": "Lisboa"})
        monkeypatch.undo()

        records = [
            json.loads(raw) for key, raw in fake_redis.data.items() if key.startswith("session:")
        ]
        assert [r["active_org_id"] for r in records] == [None]
        assert (await ana.client.get("/api/v1/orgs")).json() == {"data": []}

    @pytest.mark.asyncio
    async def test_update_org(self, owner):
        resp = await owner.client.patch(
            "/api/v1/org", json={"name": "Aurora II", "language": "en-GB"}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "Aurora II"
        assert data["language"] == "en-GB"
        assert data["timezone"] == "Europe/Lisbon"

    @pytest.mark.asyncio
    async def test_update_org_clears_optional_fields(self, owner):
        resp = await owner.client.patch("/api/v1/org", json={"notes": "Portaria 9h-18h"})
        assert resp.json()["notes"] == "Portaria 9h-18h"
        assert resp.json()["total_fractions"] == 12

        resp = await owner.client.patch("/api/v1/org", json={"notes": None, "total_fractions": None})
        assert resp.status_code == 200
        assert resp.json()["notes"] is None
        assert resp.json()["total_fractions"] is None
        assert resp.json()["city"] == "Lisboa"

        assert (await owner.client.patch("/api/v1/org", json={"name": None})).status_code == 422


class TestInviteCode:
    @pytest.mark.asyncio
    async def test_enable_disable_regenerate(self, owner):
        code = await enable_invite_code(owner)
        link = (await owner.client.get("/api/v1/org/invite-link")).json()
        assert link["invite_url"] == f"http://app.test/join/{code}"

        resp = await owner.client.post("/api/v1/org/invite-link", json={"action": "regenerate"})
        assert resp.json()["invite_code"] != code

        resp = await owner.client.post("/api/v1/org/invite-link", json={"action": "disable"})
        assert resp.json() == {"invite_enabled": False, "invite_code": None, "invite_url": None}

    @pytest.mark.asyncio
    async def test_unknown_action_is_422(self, owner):
        resp = await owner.client.post("/api/v1/org/invite-link", json={"action": "explode"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_preview_and_join(self, owner, signup, client):
        code = await enable_invite_code(owner)

        anon = (await client.get(f"/api/v1/join/{code}")).json()
        assert anon["authenticated"] is False
        assert anon["name"] == "Edifício Aurora"

        bruno = await signup("Bruno", "bruno@example.com")
        preview = (await bruno.client.get(f"/api/v1/join/{code}")).json()
        assert preview == {**anon, "authenticated": True, "already_member": False}

        joined = await join(bruno, code)
        current = (await bruno.client.get("/api/v1/org")).json()
        assert current["org"]["id"] == joined["active_organization_id"]
        assert current["org_role"] == "member"
        assert current["effective_role"] == "fraction_member"

        again = await bruno.client.get(f"/api/v1/join/{code}")
        assert again.json()["already_member"] is True
        assert (await bruno.client.post(f"/api/v1/join/{code}")).status_code == 200

    @pytest.mark.asyncio
    async def test_disabled_or_unknown_code_is_404(self, owner, signup):
        code = await enable_invite_code(owner)
        await owner.client.post("/api/v1/org/invite-link", json={"action": "disable"})

        bruno = await signup("Bruno", "bruno@example.com")
        assert (await bruno.client.post(f"/api/v1/join/{code}")).status_code == 404
        assert (await bruno.client.get("/api/v1/join/nope")).status_code == 404


class TestMembers:
    @pytest.mark.asyncio
    async def test_list_members(self, owner, member):
        resp = await member.client.get("/api/v1/members")
        assert resp.status_code == 200
        roles = {m["email"]: m["role"] for m in resp.json()["data"]}
        assert roles == {"ana@example.com": "owner", "bruno@example.com": "member"}

    @pytest.mark.asyncio
    async def test_owner_role_is_fixed(self, owner, member):
        resp = await owner.client.patch(
            f"/api/v1/members/{member.user_id}", json={"role": "owner"}
        )
        assert resp.status_code == 400

        await owner.client.patch(f"/api/v1/members/{member.user_id}", json={"role": "admin"})
        resp = await member.client.patch(f"/api/v1/members/{owner.user_id}", json={"role": "member"})
        assert resp.status_code == 409
        resp = await member.client.delete(f"/api/v1/members/{owner.user_id}")
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_cannot_remove_self(self, owner):
        resp = await owner.client.delete(f"/api/v1/members/{owner.user_id}")
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_removal_drops_fraction_links(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        resp = await member.client.post(
            f"/api/v1/fractions/{fraction['id']}/associations", json={"role": "fraction_member"}
        )
        assert resp.status_code == 201

        await owner.client.delete(f"/api/v1/members/{member.user_id}")
        assert (await owner.client.get("/api/v1/associations")).json() == []

    @pytest.mark.asyncio
    async def test_unknown_member_is_404(self, owner, signup):
        stranger = await signup("Stranger", "stranger@example.com")
        resp = await owner.client.patch(
            f"/api/v1/members/{stranger.user_id}", json={"role": "admin"}
        )
        assert resp.status_code == 404


class TestAudit:
    @pytest.mark.asyncio
    async def test_audit_trail_newest_first(self, app, owner):
        await create_fraction(owner, "1A")
        await owner.client.patch("/api/v1/org", json={"notes": "Portaria 24h"})
        await app.state.audit.drain()

        resp = await owner.client.get("/api/v1/org/audit", params={"per_page": 2})
        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"] == {"page": 1, "per_page": 2, "total": 3, "total_pages": 2}
        assert [e["action"] for e in body["data"]] == ["org.updated", "fraction.created"]
        assert body["data"][0]["details"] == {"notes": "Portaria 24h"}

    @pytest.mark.asyncio
    async def test_failed_request_leaves_no_trail(self, app, owner):
        await create_fraction(owner, "1A")
        resp = await owner.client.post("/api/v1/fractions", json={"label": "1A"})
        assert resp.status_code == 409
        await app.state.audit.drain()

        actions = [e["action"] for e in (await owner.client.get("/api/v1/org/audit")).json()["data"]]
        assert actions.count("fraction.created") == 1

    @pytest.mark.asyncio
    async def test_audit_is_per_org(self, app, owner, signup):
        other = await signup("Duarte", "duarte@example.com")
        await create_org(other, name="Outro")
        await create_fraction(other, "Z9")
        await app.state.audit.drain()

        actions = [e["action"] for e in (await owner.client.get("/api/v1/org/audit")).json()["data"]]
        assert actions == ["org.created"]
