# tests/api/test_assets_api.py
"""
Asset management endpoints: vendors, budgets, operating expenses,
capital projects, lease tenants / rent roll and rent payments.
"""

import pytest
from datetime import date, timedelta

from cre_api.models import LeaseTenant
from cre_api.routers.lease_tenants import build_rent_roll


pytestmark = pytest.mark.asyncio


async def _create_tenant(client, headers, prop, **fields):
    payload = {"master_property_id": str(prop.id), "tenant_name": "Lone Star Logistics", **fields}
    response = await client.post("/api/lease-tenants", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["tenant"]


@pytest.mark.integration
class TestVendors:

    async def test_create_and_search(self, client, broker_headers):
        created = await client.post(
            "/api/vendors",
            json={
                "name": "Hill Country Roofing",
                "trade": "roofing",
                "email": "Office@HCRoofing.example.com",
                "phone": "(512) 474-2100",
                "is_preferred": True,
            },
            headers=broker_headers,
        )
        assert created.status_code == 201
        vendor = created.json()["vendor"]
        assert vendor["email"] == "office@hcroofing.example.com"
        assert vendor["phone"] == "+15124742100"

        await client.post(
            "/api/vendors", json={"name": "Capitol HVAC", "trade": "hvac"}, headers=broker_headers
        )

        response = await client.get("/api/vendors", params={"search": "roof"}, headers=broker_headers)
        assert [v["name"] for v in response.json()["vendors"]] == ["Hill Country Roofing"]

        response = await client.get(
            "/api/vendors", params={"is_preferred": "true"}, headers=broker_headers
        )
        assert response.json()["pagination"]["total"] == 1

    async def test_blank_name_rejected(self, client, broker_headers):
        response = await client.post("/api/vendors", json={"name": "  "}, headers=broker_headers)
        assert response.status_code == 400

    async def test_soft_delete(self, client, broker_headers):
        created = await client.post("/api/vendors", json={"name": "Ace Plumbing"}, headers=broker_headers)
        vendor_id = created.json()["vendor"]["id"]

        await client.delete(f"/api/vendors/{vendor_id}", headers=broker_headers)

        assert (await client.get(f"/api/vendors/{vendor_id}", headers=broker_headers)).status_code == 404
        listing = await client.get("/api/vendors", headers=broker_headers)
        assert listing.json()["pagination"]["total"] == 0


@pytest.mark.integration
class TestBudgets:

    async def test_total_defaults_to_line_items(self, client, broker_headers, sample_properties):
        response = await client.post(
            "/api/budgets",
            json={
                "master_property_id": str(sample_properties["office"].id),
                "fiscal_year": 2025,
                "line_items": [
                    {"category": "Utilities", "budgeted_amount": 120000},
                    {"category": "Janitorial", "budgeted_amount": 45000},
                ],
            },
            headers=broker_headers,
        )

        assert response.status_code == 201
        budget = response.json()["budget"]
        assert budget["total_budget"] == 165000.0
        assert len(budget["line_items"]) == 2

    async def test_patch_replaces_line_items(self, client, broker_headers, sample_properties):
        created = await client.post(
            "/api/budgets",
            json={
                "master_property_id": str(sample_properties["office"].id),
                "fiscal_year": 2025,
                "line_items": [{"category": "Utilities", "budgeted_amount": 120000}],
            },
            headers=broker_headers,
        )
        budget_id = created.json()["budget"]["id"]

        response = await client.patch(
            f"/api/budgets/{budget_id}",
            json={
                "is_approved": True,
                "line_items": [
                    {"category": "Insurance", "budgeted_amount": 30000},
                    {"category": "Taxes", "budgeted_amount": 90000},
                ],
            },
            headers=broker_headers,
        )

        budget = response.json()["budget"]
        assert budget["is_approved"] is True
        assert budget["total_budget"] == 120000.0
        assert {i["category"] for i in budget["line_items"]} == {"Insurance", "Taxes"}

    async def test_list_newest_year_first(self, client, broker_headers, sample_properties):
        prop_id = str(sample_properties["office"].id)
        for year in (2023, 2025, 2024):
            await client.post(
                "/api/budgets", json={"master_property_id": prop_id, "fiscal_year": year},
                headers=broker_headers,
            )

        response = await client.get("/api/budgets", params={"property_id": prop_id}, headers=broker_headers)
        assert [b["fiscal_year"] for b in response.json()["budgets"]] == [2025, 2024, 2023]

    async def test_unknown_property_is_404(self, client, broker_headers):
        response = await client.post(
            "/api/budgets",
            json={"master_property_id": "00000000-0000-0000-0000-000000000001", "fiscal_year": 2025},
            headers=broker_headers,
        )
        assert response.status_code == 404

    async def test_delete_removes_budget(self, client, broker_headers, sample_properties):
        created = await client.post(
            "/api/budgets",
            json={
                "master_property_id": str(sample_properties["office"].id),
                "fiscal_year": 2025,
                "line_items": [{"category": "Utilities", "budgeted_amount": 1000}],
            },
            headers=broker_headers,
        )
        budget_id = created.json()["budget"]["id"]

        response = await client.delete(f"/api/budgets/{budget_id}", headers=broker_headers)

        assert response.status_code == 200
        assert (await client.get(f"/api/budgets/{budget_id}", headers=broker_headers)).status_code == 404


@pytest.mark.integration
class TestExpenses:

    async def test_bulk_and_totals(self, client, broker_headers, sample_properties):
        prop_id = str(sample_properties["warehouse"].id)

        response = await client.post(
            "/api/expenses/bulk",
            json={
                "master_property_id": prop_id,
                "expenses": [
                    {"category": "utilities", "amount": 1200.50, "expense_date": "2024-01-31"},
                    {"category": "repairs", "amount": 800, "expense_date": "2024-02-15"},
                    {"category": "utilities", "amount": 1100, "expense_date": "2024-02-29"},
                ],
            },
            headers=broker_headers,
        )
        assert response.status_code == 201
        assert response.json()["created"] == 3

        listing = await client.get(
            "/api/expenses", params={"property_id": prop_id}, headers=broker_headers
        )
        assert listing.json()["total_amount"] == 3100.5

        feb_utilities = await client.get(
            "/api/expenses",
            params={"property_id": prop_id, "category": "utilities", "start_date": "2024-02-01"},
            headers=broker_headers,
        )
        body = feb_utilities.json()
        assert body["pagination"]["total"] == 1
        assert body["total_amount"] == 1100.0

    async def test_totals_respect_filters(self, client, broker_headers, sample_properties):
        for key, amount in (("warehouse", 100), ("office", 5000)):
            await client.post(
                "/api/expenses/bulk",
                json={
                    "master_property_id": str(sample_properties[key].id),
                    "expenses": [
                        {"category": "utilities", "amount": amount, "expense_date": "2024-03-01"},
                        {"category": "repairs", "amount": 10, "expense_date": "2024-03-02"},
                    ],
                },
                headers=broker_headers,
            )

        response = await client.get(
            "/api/expenses",
            params={"property_id": str(sample_properties["warehouse"].id), "category": "repairs"},
            headers=broker_headers,
        )

        body = response.json()
        assert body["pagination"]["total"] == 1
        assert body["total_amount"] == 10.0
        assert len(body["expenses"]) == 1

    async def test_create_requires_existing_property(self, client, broker_headers):
        response = await client.post(
            "/api/expenses",
            json={"master_property_id": "00000000-0000-0000-0000-000000000001", "amount": 10},
            headers=broker_headers,
        )
        assert response.status_code == 404


@pytest.mark.integration
class TestCapitalProjects:

    async def test_completion_is_stamped(self, client, broker_headers, sample_properties):
        created = await client.post(
            "/api/capital-projects",
            json={
                "master_property_id": str(sample_properties["warehouse"].id),
                "title": "Roof replacement",
                "estimated_cost": 250000,
            },
            headers=broker_headers,
        )
        assert created.status_code == 201
        project = created.json()["project"]
        assert project["status"] == "proposed"
        assert project["actual_completion"] is None

        response = await client.patch(
            f"/api/capital-projects/{project['id']}",
            json={"status": "completed", "actual_cost": 262500},
            headers=broker_headers,
        )

        updated = response.json()["project"]
        assert updated["actual_completion"] == date.today().isoformat()

    async def test_explicit_completion_date_kept(self, client, broker_headers, sample_properties):
        created = await client.post(
            "/api/capital-projects",
            json={
                "master_property_id": str(sample_properties["warehouse"].id),
                "title": "Parking lot reseal",
                "status": "completed",
                "actual_completion": "2023-08-01",
            },
            headers=broker_headers,
        )
        assert created.json()["project"]["actual_completion"] == "2023-08-01"

    async def test_status_filter_and_totals(self, client, broker_headers, sample_properties):
        prop_id = str(sample_properties["warehouse"].id)
        for title, status_value, cost in (
            ("LED retrofit", "approved", 40000),
            ("Dock levelers", "approved", 60000),
            ("Solar", "proposed", 500000),
        ):
            await client.post(
                "/api/capital-projects",
                json={"master_property_id": prop_id, "title": title,
                      "status": status_value, "estimated_cost": cost},
                headers=broker_headers,
            )

        response = await client.get(
            "/api/capital-projects", params={"status": "approved"}, headers=broker_headers
        )

        body = response.json()
        assert body["total"] == 2
        assert body["total_estimated_cost"] == 100000.0


@pytest.mark.integration
class TestTenantsAndRent:

    async def test_rent_roll(self, client, broker_headers, sample_properties):
        warehouse = sample_properties["warehouse"]
        soon = (date.today() + timedelta(days=90)).isoformat()
        await _create_tenant(
            client, broker_headers, warehouse, unit_number="A",
            monthly_base_rent=15000, leased_sf=20000, lease_start="2020-01-01", lease_end=soon,
        )
        await _create_tenant(
            client, broker_headers, warehouse, tenant_name="Bluebonnet Supply", unit_number="B",
            monthly_base_rent=10000, leased_sf=15000, lease_start="2022-01-01", lease_end="2032-12-31",
        )
        gone = await _create_tenant(
            client, broker_headers, warehouse, tenant_name="Gone Co", unit_number="C",
            monthly_base_rent=5000, leased_sf=5000,
        )
        await client.delete(f"/api/lease-tenants/{gone['id']}", headers=broker_headers)

        response = await client.get(f"/api/lease-tenants/rent-roll/{warehouse.id}", headers=broker_headers)

        roll = response.json()
        assert roll["active_tenants"] == 2
        assert roll["monthly_rent"] == 25000.0
        assert roll["annual_rent"] == 300000.0
        assert roll["leased_sf"] == 35000.0
        assert roll["occupancy_percent"] == 70.0
        assert roll["expiring_within_year"] == 1

        listing = await client.get(
            "/api/lease-tenants",
            params={"property_id": str(warehouse.id), "include_inactive": "true"},
            headers=broker_headers,
        )
        assert [t["unit_number"] for t in listing.json()["tenants"]] == ["A", "B", "C"]

    async def test_lease_dates_validated(self, client, broker_headers, sample_properties):
        response = await client.post(
            "/api/lease-tenants",
            json={
                "master_property_id": str(sample_properties["warehouse"].id),
                "tenant_name": "Backwards LLC",
                "lease_start": "2025-01-01",
                "lease_end": "2024-01-01",
            },
            headers=broker_headers,
        )
        assert response.status_code == 400

    async def test_bulk_rent_generation(self, client, broker_headers, sample_properties):
        warehouse = sample_properties["warehouse"]
        await _create_tenant(client, broker_headers, warehouse, unit_number="A", monthly_base_rent=15000)
        await _create_tenant(
            client, broker_headers, warehouse, tenant_name="Bluebonnet Supply",
            unit_number="B", monthly_base_rent=10000,
        )
        period = {"period_start": "2025-03-01", "period_end": "2025-03-31"}

        response = await client.post(
            "/api/rent-payments/bulk",
            json={"master_property_id": str(warehouse.id), **period},
            headers=broker_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["created"] == 2
        assert {p["payment_status"] for p in body["payments"]} == {"expected"}

        payment = body["payments"][0]
        await client.patch(
            f"/api/rent-payments/{payment['id']}",
            json={"amount_paid": payment["amount_due"], "payment_status": "received",
                  "payment_date": "2025-03-02"},
            headers=broker_headers,
        )

        listing = await client.get(
            "/api/rent-payments", params={"property_id": str(warehouse.id)}, headers=broker_headers
        )
        summary = listing.json()
        assert summary["total_due"] == 25000.0
        assert summary["total_paid"] == payment["amount_due"]
        assert summary["outstanding"] == 25000.0 - payment["amount_due"]

        received = await client.get(
            "/api/rent-payments", params={"status": "received"}, headers=broker_headers
        )
        assert received.json()["total"] == 1

    async def test_bulk_without_tenants_is_400(self, client, broker_headers, sample_properties):
        response = await client.post(
            "/api/rent-payments/bulk",
            json={
                "master_property_id": str(sample_properties["office"].id),
                "period_start": "2025-03-01",
                "period_end": "2025-03-31",
            },
            headers=broker_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "No active tenants for this property"

    async def test_single_payment_defaults_to_base_rent(self, client, broker_headers, sample_properties):
        tenant = await _create_tenant(
            client, broker_headers, sample_properties["warehouse"], monthly_base_rent=8750
        )

        response = await client.post(
            "/api/rent-payments",
            json={"tenant_id": tenant["id"], "period_start": "2025-04-01", "period_end": "2025-04-30"},
            headers=broker_headers,
        )

        assert response.status_code == 201
        assert response.json()["payment"]["amount_due"] == 8750.0


@pytest.mark.integration
class TestAssetAccess:

    async def test_owner_manages_assets(self, client, owner_headers, sample_properties):
        response = await client.post(
            "/api/capital-projects",
            json={"master_property_id": str(sample_properties["office"].id), "title": "Lobby refresh"},
            headers=owner_headers,
        )
        assert response.status_code == 201

    async def test_tenant_cannot_view_assets(self, client, tenant_headers):
        response = await client.get("/api/budgets", headers=tenant_headers)
        assert response.status_code == 403


@pytest.mark.unit
class TestRentRollSummary:

    def _tenant(self, rent, sf, lease_end=None, is_active=True):
        return LeaseTenant(
            tenant_name="T", monthly_base_rent=rent, leased_sf=sf,
            lease_end=lease_end, is_active=is_active,
        )

    async def test_occupancy_capped_and_optional(self):
        tenants = [self._tenant(1000, 12000), self._tenant(500, 3000)]

        assert build_rent_roll(tenants, building_size=10000)["occupancy_percent"] == 100.0
        assert build_rent_roll(tenants)["occupancy_percent"] is None

    async def test_expired_leases_not_counted_as_expiring(self):
        today = date(2025, 6, 1)
        tenants = [
            self._tenant(1000, 1000, lease_end=date(2025, 5, 31)),
            self._tenant(1000, 1000, lease_end=date(2026, 6, 1)),
            self._tenant(1000, 1000, lease_end=date(2026, 6, 2)),
            self._tenant(1000, 1000, is_active=False, lease_end=date(2025, 7, 1)),
        ]

        roll = build_rent_roll(tenants, today=today)
        assert roll["active_tenants"] == 3
        assert roll["expiring_within_year"] == 1
