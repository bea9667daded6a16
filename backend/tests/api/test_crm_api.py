# tests/api/test_crm_api.py
"""CRM: companies, contacts, deals with stage history, activities."""

import pytest


pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


async def _create_contact(client, headers, **fields):
    payload = {"first_name": "Dana", "last_name": "Whitfield", **fields}
    response = await client.post("/api/contacts", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["contact"]


async def _create_deal(client, headers, **fields):
    payload = {"deal_name": "Riverside Warehouse Sale", "deal_type": "sale", **fields}
    response = await client.post("/api/crm-deals", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["deal"]


class TestCompaniesAndContacts:

    async def test_company_with_contacts(self, client, broker_headers):
        company = await client.post(
            "/api/companies",
            json={"name": "Acme Holdings LLC", "company_type": "owner"},
            headers=broker_headers,
        )
        assert company.status_code == 201
        company_id = company.json()["company"]["id"]

        await _create_contact(client, broker_headers, company_id=company_id)

        response = await client.get(f"/api/companies/{company_id}", headers=broker_headers)
        body = response.json()
        assert body["company"]["company_type"] == "owner"
        assert [c["last_name"] for c in body["contacts"]] == ["Whitfield"]

    async def test_contact_fields_normalized(self, client, broker_headers):
        contact = await _create_contact(
            client, broker_headers,
            first_name="  Dana ", email="Dana.W@Example.COM", phone="512-474-2100",
        )

        assert contact["first_name"] == "Dana"
        assert contact["email"] == "dana.w@example.com"
        assert contact["phone"] == "+15124742100"

    async def test_contact_links_property(self, client, broker_headers, sample_properties):
        contact = await _create_contact(client, broker_headers, contact_type="owner")
        prop_id = str(sample_properties["warehouse"].id)

        link = await client.post(
            f"/api/contacts/{contact['id']}/properties",
            json={"master_property_id": prop_id, "relationship": "owner"},
            headers=broker_headers,
        )
        assert link.status_code == 201

        detail = (await client.get(f"/api/contacts/{contact['id']}", headers=broker_headers)).json()
        assert detail["properties"][0]["relationship"] == "owner"
        assert detail["properties"][0]["property"]["id"] == prop_id

    async def test_deleted_contact_is_hidden(self, client, broker_headers):
        contact = await _create_contact(client, broker_headers)

        await client.delete(f"/api/contacts/{contact['id']}", headers=broker_headers)

        response = await client.get(f"/api/contacts/{contact['id']}", headers=broker_headers)
        assert response.status_code == 404

    async def test_member_can_edit_crm(self, client, member_headers):
        await _create_contact(client, member_headers)

    async def test_owner_cannot_edit_crm(self, client, owner_headers):
        response = await client.post(
            "/api/contacts", json={"first_name": "A", "last_name": "B"}, headers=owner_headers
        )
        assert response.status_code == 403

        listing = await client.get("/api/contacts", headers=owner_headers)
        assert listing.status_code == 200


class TestDeals:

    async def test_create_records_initial_stage(self, client, broker_headers, broker_user):
        deal = await _create_deal(client, broker_headers, stage="qualification", deal_value=1200000)

        assert deal["stage"] == "qualification"
        assert deal["assigned_to"] == str(broker_user.id)

        detail = (await client.get(f"/api/crm-deals/{deal['id']}", headers=broker_headers)).json()
        assert len(detail["stage_history"]) == 1
        history = detail["stage_history"][0]
        assert history["from_stage"] is None
        assert history["to_stage"] == "qualification"

    async def test_stage_change_appends_history(self, client, broker_headers, broker_user):
        deal = await _create_deal(client, broker_headers)

        response = await client.patch(
            f"/api/crm-deals/{deal['id']}/stage",
            json={"stage": "negotiation", "notes": "Counter at 4.1M"},
            headers=broker_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["deal"]["stage"] == "negotiation"
        assert body["history"]["from_stage"] == "prospecting"
        assert body["history"]["changed_by"] == str(broker_user.id)
        assert body["history"]["notes"] == "Counter at 4.1M"

        detail = (await client.get(f"/api/crm-deals/{deal['id']}", headers=broker_headers)).json()
        assert {h["to_stage"] for h in detail["stage_history"]} == {"prospecting", "negotiation"}

    async def test_stage_can_move_backwards(self, client, broker_headers):
        deal = await _create_deal(client, broker_headers, stage="closing")

        response = await client.patch(
            f"/api/crm-deals/{deal['id']}/stage", json={"stage": "proposal"}, headers=broker_headers
        )
        assert response.json()["deal"]["stage"] == "proposal"

    async def test_unknown_stage_rejected(self, client, broker_headers):
        deal = await _create_deal(client, broker_headers)

        response = await client.patch(
            f"/api/crm-deals/{deal['id']}/stage", json={"stage": "won_big"}, headers=broker_headers
        )
        assert response.status_code == 422

    async def test_patch_without_stage_change_keeps_history(self, client, broker_headers):
        deal = await _create_deal(client, broker_headers)

        await client.patch(
            f"/api/crm-deals/{deal['id']}",
            json={"stage": "prospecting", "deal_value": 900000},
            headers=broker_headers,
        )

        detail = (await client.get(f"/api/crm-deals/{deal['id']}", headers=broker_headers)).json()
        assert detail["deal"]["deal_value"] == 900000.0
        assert len(detail["stage_history"]) == 1

    async def test_pipeline_and_analytics(self, client, broker_headers):
        await _create_deal(client, broker_headers, stage="proposal", deal_value=1000000, probability_percent=40)
        await _create_deal(client, broker_headers, stage="closed_won", deal_value=2000000,
                           commission_total=60000)
        await _create_deal(client, broker_headers, stage="closed_lost", deal_value=500000)

        pipeline = (await client.get("/api/crm-deals/pipeline", headers=broker_headers)).json()["pipeline"]
        proposal = next(c for c in pipeline if c["stage"] == "proposal")
        assert proposal["count"] == 1
        assert "closed_won" not in {c["stage"] for c in pipeline}

        stats = (await client.get("/api/crm-deals/analytics", headers=broker_headers)).json()["analytics"]
        assert stats["total_deals"] == 3
        assert stats["win_rate"] == 50.0
        assert stats["total_commission_earned"] == 60000.0
        assert stats["weighted_pipeline_value"] == 400000.0

    async def test_deleted_deal_excluded(self, client, broker_headers):
        deal = await _create_deal(client, broker_headers)

        await client.delete(f"/api/crm-deals/{deal['id']}", headers=broker_headers)

        listing = (await client.get("/api/crm-deals", headers=broker_headers)).json()
        assert listing["pagination"]["total"] == 0

    async def test_deal_contacts(self, client, broker_headers):
        deal = await _create_deal(client, broker_headers)
        contact = await _create_contact(client, broker_headers)
        url = f"/api/crm-deals/{deal['id']}/contacts"

        first = await client.post(url, json={"contact_id": contact["id"], "role": "buyer"}, headers=broker_headers)
        assert first.status_code == 201

        dup = await client.post(url, json={"contact_id": contact["id"], "role": "buyer"}, headers=broker_headers)
        assert dup.status_code == 409

        other_role = await client.post(
            url, json={"contact_id": contact["id"], "role": "lender"}, headers=broker_headers
        )
        assert other_role.status_code == 201

        detail = (await client.get(f"/api/crm-deals/{deal['id']}", headers=broker_headers)).json()
        assert {c["role"] for c in detail["contacts"]} == {"buyer", "lender"}

        removed = await client.delete(f"{url}/{contact['id']}", headers=broker_headers)
        assert removed.status_code == 200


class TestActivities:

    async def test_call_stamps_last_contacted(self, client, broker_headers):
        contact = await _create_contact(client, broker_headers)
        assert contact["last_contacted_at"] is None

        response = await client.post(
            "/api/activities",
            json={"activity_type": "call", "subject": "Intro call", "contact_id": contact["id"]},
            headers=broker_headers,
        )
        assert response.status_code == 201

        detail = (await client.get(f"/api/contacts/{contact['id']}", headers=broker_headers)).json()
        assert detail["contact"]["last_contacted_at"] is not None
        assert detail["activities"][0]["subject"] == "Intro call"

    async def test_note_does_not_stamp(self, client, broker_headers):
        contact = await _create_contact(client, broker_headers)

        await client.post(
            "/api/activities",
            json={"activity_type": "note", "subject": "Prefers email", "contact_id": contact["id"]},
            headers=broker_headers,
        )

        detail = (await client.get(f"/api/contacts/{contact['id']}", headers=broker_headers)).json()
        assert detail["contact"]["last_contacted_at"] is None

    async def test_upcoming_tasks_and_complete(self, client, broker_headers):
        later = await client.post(
            "/api/activities",
            json={"activity_type": "task", "subject": "Send BOV", "due_date": "2030-02-01T09:00:00"},
            headers=broker_headers,
        )
        sooner = await client.post(
            "/api/activities",
            json={"activity_type": "task", "subject": "Tour site", "due_date": "2030-01-15T09:00:00"},
            headers=broker_headers,
        )

        tasks = (await client.get("/api/activities/upcoming", headers=broker_headers)).json()["tasks"]
        assert [t["subject"] for t in tasks] == ["Tour site", "Send BOV"]

        done = await client.post(
            f"/api/activities/{sooner.json()['activity']['id']}/complete", headers=broker_headers
        )
        assert done.json()["activity"]["is_completed"] is True

        tasks = (await client.get("/api/activities/upcoming", headers=broker_headers)).json()["tasks"]
        assert [t["id"] for t in tasks] == [later.json()["activity"]["id"]]
