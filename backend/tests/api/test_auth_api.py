# tests/api/test_auth_api.py
"""Bearer token verification and role checks, end to end."""

import pytest
from datetime import timedelta
from uuid import uuid4

from jose import jwt

from cre_api.config import settings
from cre_api.auth import create_access_token, decode_access_token
from cre_api.rbac import Permission, has_permission
from cre_api.models import User
from tests.conftest import auth_headers_for


pytestmark = pytest.mark.asyncio


class TestTokens:

    async def test_token_round_trip(self):
        token = create_access_token({"sub": "abc"})
        payload = decode_access_token(token)

        assert payload["sub"] == "abc"
        assert payload["type"] == "access"
        assert payload["exp"] > payload["iat"]

    async def test_missing_token(self, client):
        response = await client.get("/api/master-properties")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_garbage_token(self, client):
        response = await client.get(
            "/api/master-properties", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    async def test_expired_token(self, client, broker_user):
        headers = auth_headers_for(broker_user, expires_delta=timedelta(minutes=-5))

        response = await client.get("/api/master-properties", headers=headers)

        assert response.status_code == 401
        assert response.json()["detail"] == "Token has expired"

    async def test_wrong_secret(self, client, broker_user):
        token = jwt.encode({"sub": str(broker_user.id)}, "other-secret", algorithm=settings.ALGORITHM)

        response = await client.get(
            "/api/master-properties", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    async def test_unknown_user(self, client):
        token = create_access_token({"sub": str(uuid4())})

        response = await client.get(
            "/api/master-properties", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401

    async def test_deactivated_account(self, client, inactive_user):
        response = await client.get("/api/master-properties", headers=auth_headers_for(inactive_user))

        assert response.status_code == 403
        assert "deactivated" in response.json()["detail"]


class TestRoles:

    async def test_role_permission_table(self):
        tenant = User(role="tenant")
        member = User(role="member")
        owner = User(role="owner")
        unknown = User(role="janitor")

        assert has_permission(tenant, Permission.VIEW_PROPERTIES)
        assert not has_permission(tenant, Permission.VIEW_CRM)
        assert has_permission(member, Permission.MANAGE_PROSPECT_LISTS)
        assert not has_permission(member, Permission.IMPORT_PROPERTIES)
        assert has_permission(owner, Permission.MANAGE_ASSETS)
        assert not has_permission(unknown, Permission.VIEW_PROPERTIES)

    async def test_tenant_can_view_properties(self, client, tenant_headers):
        response = await client.get("/api/master-properties", headers=tenant_headers)
        assert response.status_code == 200

    async def test_tenant_cannot_read_crm(self, client, tenant_headers):
        response = await client.get("/api/crm-deals", headers=tenant_headers)

        assert response.status_code == 403
        assert "view_crm" in response.json()["detail"]

    async def test_member_cannot_import(self, client, member_headers):
        response = await client.post(
            "/api/master-properties/import",
            json={"source": "manual", "columnMapping": {"A": "address"}, "rows": [{"A": "1 Main"}]},
            headers=member_headers,
        )
        assert response.status_code == 403

    async def test_member_cannot_manage_assets(self, client, member_headers):
        response = await client.get("/api/vendors", headers=member_headers)
        assert response.status_code == 403


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert "master_properties" in body["tables"]
        assert "rent_payments" in body["tables"]

    async def test_root(self, client):
        response = await client.get("/")
        assert response.json()["health"] == "/health"
