"""
Tests de super administración
"""
import pytest


@pytest.fixture
def superuser_headers(make_user, headers_for):
    admin = make_user(email="root@tallerapp.com", first_name="Super", last_name="Admin", is_superuser=True)
    return headers_for(admin)


class TestAdminAccess:

    def test_regular_user_is_rejected(self, client, owner, headers_for):
        response = client.get("/admin/stats", headers=headers_for(owner))
        assert response.status_code == 403

    def test_tenant_owner_is_rejected(self, client, owner_headers):
        assert client.get("/admin/tenants", headers=owner_headers).status_code == 403

    def test_requires_authentication(self, client):
        assert client.get("/admin/stats").status_code in (401, 403)


class TestAdminEndpoints:

    def test_stats(self, client, db_session, tenant, make_user, make_tenant, superuser_headers):
        inactive = make_tenant(make_user(), name="Gomería Sur")
        inactive.active = False
        db_session.commit()

        response = client.get("/admin/stats", headers=superuser_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_users"] == 3
        assert data["superusers"] == 1
        assert data["total_tenants"] == 2
        assert data["inactive_tenants"] == 1

    def test_list_users_with_tenants(self, client, owner, tenant, superuser_headers):
        response = client.get("/admin/users", params={"search": "dueno"}, headers=superuser_headers)
        data = response.json()
        assert data["total"] == 1
        user = data["users"][0]
        assert user["full_name"] == "Carlos Gómez"
        assert user["tenants"][0]["tenant_name"] == "Taller Central"
        assert user["tenants"][0]["role"] == "owner"

    def test_list_tenants(self, client, tenant, add_member, superuser_headers):
        add_member(tenant, "user")
        response = client.get("/admin/tenants", params={"search": "central"}, headers=superuser_headers)
        data = response.json()
        assert data["total"] == 1
        assert data["tenants"][0]["members_count"] == 2
        assert data["tenants"][0]["owner_email"] == "dueno@taller.com"

    def test_deactivate_blocks_members(self, client, tenant, owner_headers, superuser_headers):
        response = client.post(f"/admin/tenants/{tenant.id}/deactivate", headers=superuser_headers)
        assert response.status_code == 200
        assert response.json()["active"] is False
        assert client.get("/clients/", headers=owner_headers).status_code == 403

        response = client.get("/admin/tenants", params={"active": False}, headers=superuser_headers)
        assert response.json()["total"] == 1

        client.post(f"/admin/tenants/{tenant.id}/activate", headers=superuser_headers)
        assert client.get("/clients/", headers=owner_headers).status_code == 200

    def test_set_plan(self, client, tenant, owner_headers, superuser_headers):
        response = client.put(f"/admin/tenants/{tenant.id}/plan", json={"plan": "basic"}, headers=superuser_headers)
        assert response.status_code == 200
        assert response.json()["plan"] == "basic"
        assert client.get("/products/", headers=owner_headers).status_code == 403

    def test_invalid_plan(self, client, tenant, superuser_headers):
        response = client.put(f"/admin/tenants/{tenant.id}/plan", json={"plan": "gold"}, headers=superuser_headers)
        assert response.status_code == 422

    def test_unknown_tenant(self, client, superuser_headers):
        response = client.post(
            "/admin/tenants/00000000-0000-0000-0000-000000000001/activate",
            headers=superuser_headers
        )
        assert response.status_code == 404


class TestSetSuperadminScript:

    def test_grant_and_revoke(self, db_session, owner):
        from scripts.set_superadmin import set_superuser

        assert set_superuser(db_session, " DUENO@taller.com ", True).is_superuser is True
        assert set_superuser(db_session, "dueno@taller.com", False).is_superuser is False

    def test_unknown_email(self, db_session):
        from scripts.set_superadmin import set_superuser

        with pytest.raises(SystemExit):
            set_superuser(db_session, "nadie@taller.com", True)
