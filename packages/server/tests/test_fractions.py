"""
Fraction CRUD and association workflow tests.
"""

from __future__ import annotations

import pytest

from conftest import create_fraction, link_fraction


class TestFractionCrud:
    @pytest.mark.asyncio
    async def test_create_list_get(self, owner, member):
        created = await create_fraction(owner, "  2B ")
        assert created["label"] == "2B"
        await create_fraction(owner, "1A")

        listing = (await member.client.get("/api/v1/fractions")).json()
        assert [f["label"] for f in listing] == ["1A", "2B"]
        assert all(f["member_count"] == 0 for f in listing)

        one = await member.client.get(f"/api/v1/fractions/{created['id']}")
        assert one.status_code == 200

    @pytest.mark.asyncio
    async def test_duplicate_label_conflicts(self, owner):
        first = await create_fraction(owner, "1A")
        second = await create_fraction(owner, "1B")

        assert (await owner.client.post("/api/v1/fractions", json={"label": "1A"})).status_code == 409
        resp = await owner.client.patch(
            f"/api/v1/fractions/{second['id']}", json={"label": "1A"}
        )
        assert resp.status_code == 409

        resp = await owner.client.patch(
            f"/api/v1/fractions/{first['id']}", json={"description": "T2, 3º andar"}
        )
        assert resp.status_code == 200
        assert resp.json()["label"] == "1A"
        assert resp.json()["description"] == "T2, 3º andar"

    @pytest.mark.asyncio
    async def test_blank_label_rejected(self, owner):
        resp = await owner.client.post("/api/v1/fractions", json={"label": "   "})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_bulk_create_skips_duplicates(self, owner):
        await create_fraction(owner, "1A")
        resp = await owner.client.post(
            "/api/v1/fractions/bulk", json={"labels": ["1A", "1B", "1B", " ", "1C"]}
        )
        assert resp.status_code == 201
        body = resp.json()
        assert [f["label"] for f in body["created"]] == ["1B", "1C"]
        assert body["skipped"] == ["1A", "1B", " "]

    @pytest.mark.asyncio
    async def test_delete_refused_with_members(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        await link_fraction(member, owner, fraction["id"], "fraction_member")

        resp = await owner.client.delete(f"/api/v1/fractions/{fraction['id']}")
        assert resp.status_code == 409

        listing = (await owner.client.get("/api/v1/fractions")).json()
        assert listing[0]["member_count"] == 1

    @pytest.mark.asyncio
    async def test_delete_with_only_pending_requests(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        await member.client.post(
            f"/api/v1/fractions/{fraction['id']}/associations", json={"role": "fraction_member"}
        )

        resp = await owner.client.delete(f"/api/v1/fractions/{fraction['id']}")
        assert resp.status_code == 204
        assert (await owner.client.get(f"/api/v1/fractions/{fraction['id']}")).status_code == 404
        assert (await owner.client.get("/api/v1/associations")).json() == []

    @pytest.mark.asyncio
    async def test_delete_keeps_tickets_and_drops_invites(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        resp = await member.client.post(
            "/api/v1/tickets", json={"title": "Fuga na cozinha", "fraction_id": fraction["id"]}
        )
        ticket = resp.json()
        resp = await owner.client.post(
            f"/api/v1/fractions/{fraction['id']}/invites", json={"email": "dina@example.com"}
        )
        assert resp.status_code == 201

        resp = await owner.client.delete(f"/api/v1/fractions/{fraction['id']}")
        assert resp.status_code == 204

        detail = (await owner.client.get(f"/api/v1/tickets/{ticket['id']}")).json()
        assert detail["fraction_id"] is None
        assert detail["title"] == "Fuga na cozinha"
        assert (await owner.client.get("/api/v1/invites")).json() == []


class TestAssociations:
    @pytest.mark.asyncio
    async def test_request_and_approve(self, owner, member):
        fraction = await create_fraction(owner, "1A")

        resp = await member.client.post(
            f"/api/v1/fractions/{fraction['id']}/associations", json={}
        )
        assert resp.status_code == 201
        assoc = resp.json()
        assert assoc["status"] == "pending"
        assert assoc["role"] == "fraction_member"
        assert assoc["fraction_label"] == "1A"
        assert assoc["user_name"] == "Bruno Member"

        pending = (await owner.client.get("/api/v1/associations?status=pending")).json()
        assert [a["id"] for a in pending] == [assoc["id"]]

        resp = await owner.client.post(f"/api/v1/associations/{assoc['id']}/approve")
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"

        mine = (await member.client.get("/api/v1/me/fractions")).json()
        assert [(a["fraction_label"], a["status"]) for a in mine] == [("1A", "approved")]

    @pytest.mark.asyncio
    async def test_duplicate_request_conflicts(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        url = f"/api/v1/fractions/{fraction['id']}/associations"
        assert (await member.client.post(url, json={})).status_code == 201
        assert (await member.client.post(url, json={})).status_code == 409

    @pytest.mark.asyncio
    async def test_rejected_request_can_be_retried(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        url = f"/api/v1/fractions/{fraction['id']}/associations"
        assoc = (await member.client.post(url, json={})).json()

        resp = await owner.client.post(f"/api/v1/associations/{assoc['id']}/reject")
        assert resp.json()["status"] == "rejected"

        # decisions are final
        resp = await owner.client.post(f"/api/v1/associations/{assoc['id']}/approve")
        assert resp.status_code == 409

        assert (await member.client.post(url, json={})).status_code == 201

    @pytest.mark.asyncio
    async def test_request_for_unknown_fraction(self, member):
        resp = await member.client.post(
            "/api/v1/fractions/00000000-0000-4000-8000-000000000000/associations", json={}
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_single_owner_admin_per_fraction(self, owner, member, signup):
        fraction = await create_fraction(owner, "1A")
        await link_fraction(member, owner, fraction["id"], "fraction_owner_admin")

        carla = await signup("Carla", "carla@example.com")
        await carla.client.post(f"/api/v1/join/{await _code(owner)}")
        resp = await carla.client.post(
            f"/api/v1/fractions/{fraction['id']}/associations",
            json={"role": "fraction_owner_admin"},
        )
        resp = await owner.client.post(f"/api/v1/associations/{resp.json()['id']}/approve")
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_owner_admin_effective_role(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        other = await create_fraction(owner, "1B")
        await link_fraction(member, owner, fraction["id"], "fraction_owner_admin")

        current = (await member.client.get("/api/v1/org")).json()
        assert current["effective_role"] == "fraction_owner_admin"

        # manages their own fraction only
        resp = await member.client.get(f"/api/v1/fractions/{fraction['id']}/associations")
        assert resp.status_code == 200
        assert [a["user_name"] for a in resp.json()] == ["Bruno Member"]

        resp = await member.client.get(f"/api/v1/fractions/{other['id']}/associations")
        assert resp.status_code == 403


async def _code(owner) -> str:
    resp = await owner.client.get("/api/v1/org/invite-link")
    return resp.json()["invite_code"]


class TestAssociationManagement:
    @pytest.mark.asyncio
    async def test_demote_and_promote(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        assoc = await link_fraction(member, owner, fraction["id"], "fraction_owner_admin")
        url = f"/api/v1/associations/{assoc['id']}"

        resp = await owner.client.patch(url, json={"role": "fraction_member"})
        assert resp.status_code == 200
        assert resp.json()["role"] == "fraction_member"
        current = (await member.client.get("/api/v1/org")).json()
        assert current["effective_role"] == "fraction_member"

        resp = await owner.client.patch(url, json={"role": "fraction_owner_admin"})
        assert resp.status_code == 200
        current = (await member.client.get("/api/v1/org")).json()
        assert current["effective_role"] == "fraction_owner_admin"

    @pytest.mark.asyncio
    async def test_promotion_keeps_single_owner_admin(self, owner, member, signup):
        fraction = await create_fraction(owner, "1A")
        await link_fraction(member, owner, fraction["id"], "fraction_owner_admin")

        carla = await signup("Carla", "carla@example.com")
        await carla.client.post(f"/api/v1/join/{await _code(owner)}")
        second = await link_fraction(carla, owner, fraction["id"], "fraction_member")

        resp = await owner.client.patch(
            f"/api/v1/associations/{second['id']}", json={"role": "fraction_owner_admin"}
        )
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_pending_role_cannot_change(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        resp = await member.client.post(
            f"/api/v1/fractions/{fraction['id']}/associations", json={}
        )
        resp = await owner.client.patch(
            f"/api/v1/associations/{resp.json()['id']}", json={"role": "fraction_owner_admin"}
        )
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_remove(self, owner, member):
        fraction = await create_fraction(owner, "1A")
        assoc = await link_fraction(member, owner, fraction["id"], "fraction_owner_admin")
        url = f"/api/v1/associations/{assoc['id']}"

        assert (await member.client.delete(url)).status_code == 403
        assert (await owner.client.delete(url)).status_code == 204
        assert (await owner.client.delete(url)).status_code == 404

        assert (await member.client.get("/api/v1/me/fractions")).json() == []
        current = (await member.client.get("/api/v1/org")).json()
        assert current["effective_role"] == "fraction_member"

        # the fraction is free to delete again
        resp = await owner.client.delete(f"/api/v1/fractions/{fraction['id']}")
        assert resp.status_code == 204

    @pytest.mark.asyncio
    async def test_bulk_assign_members_to_fraction(self, owner, member, signup):
        fraction = await create_fraction(owner, "1A")
        carla = await signup("Carla", "carla@example.com")
        await carla.client.post(f"/api/v1/join/{await _code(owner)}")
        outsider = await signup("Duarte", "duarte@example.com")

        resp = await owner.client.post(
            f"/api/v1/fractions/{fraction['id']}/associations/bulk",
            json={"user_ids": [member.user_id, carla.user_id, member.user_id, outsider.user_id]},
        )
        assert resp.status_code == 200
        assert resp.json() == {"created": 2, "skipped": 2}

        links = (await owner.client.get(f"/api/v1/fractions/{fraction['id']}/associations")).json()
        assert {(a["user_name"], a["status"], a["role"]) for a in links} == {
            ("Bruno Member", "approved", "fraction_member"),
            ("Carla", "approved", "fraction_member"),
        }

        resp = await member.client.post(
            f"/api/v1/fractions/{fraction['id']}/associations/bulk",
            json={"user_ids": [member.user_id]},
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_bulk_assign_fractions_to_member(self, owner, member):
        first = await create_fraction(owner, "1A")
        second = await create_fraction(owner, "1B")
        third = await create_fraction(owner, "1C")
        await member.client.post(f"/api/v1/fractions/{first['id']}/associations", json={})

        resp = await owner.client.post(
            f"/api/v1/members/{member.user_id}/fractions",
            json={
                "fraction_ids": [
                    first["id"],
                    second["id"],
                    third["id"],
                    "00000000-0000-4000-8000-000000000000",
                ]
            },
        )
        assert resp.status_code == 200
        assert resp.json() == {"created": 2, "skipped": 2}

        mine = (await member.client.get("/api/v1/me/fractions")).json()
        assert [(a["fraction_label"], a["status"]) for a in mine] == [
            ("1A", "pending"),
            ("1B", "approved"),
            ("1C", "approved"),
        ]

    @pytest.mark.asyncio
    async def test_bulk_assign_to_non_member_is_404(self, owner, signup):
        fraction = await create_fraction(owner, "1A")
        outsider = await signup("Duarte", "duarte@example.com")
        resp = await owner.client.post(
            f"/api/v1/members/{outsider.user_id}/fractions",
            json={"fraction_ids": [fraction["id"]]},
        )
        assert resp.status_code == 404
