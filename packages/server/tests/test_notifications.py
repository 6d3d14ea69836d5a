"""
In-app notifications: who gets told what, and the read/unread inbox.
"""

from __future__ import annotations

import uuid

import pytest

from app.core.tenancy import TenantScope
from app.services.notifications import NotificationType, notify
from conftest import create_fraction, link_fraction


async def _inbox(actor) -> dict:
    resp = await actor.client.get("/api/v1/notifications")
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestTriggers:
    @pytest.mark.asyncio
    async def test_association_request_and_decision(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        await link_fraction(member, owner, fraction["id"], "fraction_member")

        admin_inbox = await _inbox(owner)
        assert [n["type"] for n in admin_inbox["data"]] == ["association_requested"]
        assert admin_inbox["data"][0]["data"]["fraction_id"] == fraction["id"]
        assert "Bruno Member" in admin_inbox["data"][0]["message"]

        member_inbox = await _inbox(member)
        assert [n["type"] for n in member_inbox["data"]] == ["association_approved"]
        assert member_inbox["data"][0]["title"] == "Association approved: 1A"

    @pytest.mark.asyncio
    async def test_rejection_and_removal(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        url = f"/api/v1/fractions/{fraction['id']}/associations"
        first = (await member.client.post(url, json={})).json()
        await owner.client.post(f"/api/v1/associations/{first['id']}/reject")
        second = await link_fraction(member, owner, fraction["id"], "fraction_member")
        await owner.client.delete(f"/api/v1/associations/{second['id']}")

        types = {n["type"] for n in (await _inbox(member))["data"]}
        assert types == {"association_rejected", "association_approved", "association_removed"}

    @pytest.mark.asyncio
    async def test_ticket_activity_reaches_creator_only(self, owner, member):
        resp = await member.client.post("/api/v1/tickets", json={"title": "Portão avariado"})
        base = f"/api/v1/tickets/{resp.json()['id']}"

        await member.client.post(f"{base}/comments", json={"content": "Não fecha"})
        assert (await _inbox(member))["data"] == []

        await owner.client.post(f"{base}/status", json={"status": "in_progress"})
        await owner.client.post(f"{base}/comments", json={"content": "Técnico amanhã"})

        inbox = await _inbox(member)
        assert [n["type"] for n in inbox["data"]] == ["ticket_update", "ticket_update"]
        assert {n["title"] for n in inbox["data"]} == {
            "Ticket updated: Portão avariado",
            "New comment: Portão avariado",
        }
        assert (await _inbox(owner))["data"] == []

    @pytest.mark.asyncio
    async def test_invite_acceptance_tells_inviter(self, owner, signup):
        resp = await owner.client.post("/api/v1/invites", json={"email": "carla@example.com"})
        token = resp.json()["invite_url"].rsplit("/", 1)[1]

        carla = await signup("Carla", "carla@example.com")
        assert (await carla.client.post(f"/api/v1/invites/{token}/accept")).status_code == 200

        inbox = await _inbox(owner)
        assert [n["type"] for n in inbox["data"]] == ["invite_accepted"]
        assert inbox["data"][0]["message"].startswith("Carla accepted")

    @pytest.mark.asyncio
    async def test_refused_approval_notifies_nobody(self, owner, member, signup):
        fraction = await create_fraction(owner, "1A")
        await link_fraction(member, owner, fraction["id"], "fraction_owner_admin")

        carla = await signup("Carla", "carla@example.com")
        code = (await owner.client.get("/api/v1/org/invite-link")).json()["invite_code"]
        await carla.client.post(f"/api/v1/join/{code}")
        resp = await carla.client.post(
            f"/api/v1/fractions/{fraction['id']}/associations",
            json={"role": "fraction_owner_admin"},
        )
        resp = await owner.client.post(f"/api/v1/associations/{resp.json()['id']}/approve")
        assert resp.status_code == 409

        assert (await _inbox(carla))["data"] == []


class TestInbox:
    @pytest.mark.asyncio
    async def test_mark_read_and_read_all(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        other = await create_fraction(owner, "1B")
        await link_fraction(member, owner, fraction["id"], "fraction_member")
        await link_fraction(member, owner, other["id"], "fraction_member")

        inbox = await _inbox(member)
        assert inbox["unread"] == 2
        first = inbox["data"][0]

        resp = await member.client.post(f"/api/v1/notifications/{first['id']}/read")
        assert resp.status_code == 200
        assert resp.json()["read_at"] is not None
        count = await member.client.get("/api/v1/notifications/unread-count")
        assert count.json() == {"unread": 1}

        resp = await member.client.post("/api/v1/notifications/read-all")
        assert resp.json() == {"updated": 1}
        assert (await _inbox(member))["unread"] == 0
        assert len((await _inbox(member))["data"]) == 2

    @pytest.mark.asyncio
    async def test_other_users_notifications_are_404(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        await link_fraction(member, owner, fraction["id"], "fraction_member")
        note = (await _inbox(member))["data"][0]

        resp = await owner.client.post(f"/api/v1/notifications/{note['id']}/read")
        assert resp.status_code == 404
        assert (await _inbox(member))["unread"] == 1

    @pytest.mark.asyncio
    async def test_inbox_shows_newest_fifty(self, app, org_id, member):
        async with app.state.db.session() as session:
            scope = TenantScope(session, uuid.UUID(org_id))
            for i in range(55):
                notify(
                    scope,
                    uuid.UUID(member.user_id),
                    NotificationType.TICKET_UPDATE,
                    f"Aviso {i}",
                    "Corte de água",
                )

        inbox = await _inbox(member)
        assert len(inbox["data"]) == 50
        assert inbox["unread"] == 55

    @pytest.mark.asyncio
    async def test_requires_active_org(self, signup):
        ana = await signup("Ana", "ana@example.com")
        resp = await ana.client.get("/api/v1/notifications")
        assert resp.status_code == 303
