"""
Tests para talleres, equipo y numeración por taller.
"""
import pytest
from datetime import datetime, timezone

from app.modules.tenants.counters import CounterService, format_number, parse_sequence
from app.modules.clients.models import Client
from app.modules.quotes.models import Quote
from app.modules.tenants.models import Tenant, TenantMembership, TenantCounter
from app.modules.vehicles.models import Vehicle
from app.modules.work_orders.models import WorkOrder


# ===== NUMERACIÓN =====

class TestNumberFormat:

    def test_format_number(self):
        issued_at = datetime(2024, 3, 5, tzinfo=timezone.utc)
        assert format_number("OT", 7, issued_at) == "OT-202403-0007"
        assert format_number("PRE", 12345, issued_at) == "PRE-202403-12345"

    def test_parse_sequence(self):
        assert parse_sequence("OT-202403-0007", "OT") == 7
        assert parse_sequence("PRE-202403-0007", "OT") is None
        assert parse_sequence("OT-2024-0007", "OT") is None
        assert parse_sequence(None, "OT") is None


class TestCounterService:

    def test_sequence_is_per_tenant(self, db_session, make_user, make_tenant, tenant):
        other = make_tenant(make_user(), name="Otro Taller")
        counters = CounterService(db_session)

        first = counters.next_work_order_number(tenant.id)
        second = counters.next_work_order_number(tenant.id)
        other_first = counters.next_work_order_number(other.id)
        db_session.commit()

        assert first.endswith("-0001")
        assert second.endswith("-0002")
        assert other_first.endswith("-0001")

    def test_work_orders_and_quotes_are_independent(self, db_session, tenant):
        counters = CounterService(db_session)
        counters.next_work_order_number(tenant.id)
        quote_number = counters.next_quote_number(tenant.id)
        db_session.commit()

        assert quote_number.startswith("PRE-")
        assert quote_number.endswith("-0001")
        assert counters.current_counter(tenant.id) == 1
        assert counters.current_counter(tenant.id, "quotes_counter") == 1

    def test_peek_does_not_reserve(self, db_session, tenant):
        counters = CounterService(db_session)
        peeked = counters.peek_next_work_order_number(tenant.id)
        assert peeked.endswith("-0001")
        assert counters.peek_next_work_order_number(tenant.id) == peeked

    def test_missing_counter_is_created_on_demand(self, db_session, owner):
        tenant = Tenant(name="Sin contador", owner_id=owner.id, plan="premium")
        db_session.add(tenant)
        db_session.flush()

        number = CounterService(db_session).next_work_order_number(tenant.id)
        db_session.commit()

        assert number.endswith("-0001")
        assert db_session.query(TenantCounter).filter(TenantCounter.tenant_id == tenant.id).count() == 1

    def test_counter_resumes_after_existing_numbers(self, db_session, owner):
        tenant = Tenant(name="Con historial", owner_id=owner.id, plan="premium")
        db_session.add(tenant)
        db_session.flush()
        customer = Client(tenant_id=tenant.id, first_name="Raúl", last_name="Medina", phone="1140001000")
        db_session.add(customer)
        db_session.flush()
        vehicle = Vehicle(tenant_id=tenant.id, plate="AF321KL", client_id=customer.id)
        db_session.add(vehicle)
        db_session.flush()
        for number in ("OT-202401-0007", "OT-202402-0012", "OT-202402-0003"):
            db_session.add(WorkOrder(
                tenant_id=tenant.id, number=number, client_id=customer.id,
                vehicle_id=vehicle.id, general_description="Service"
            ))
        db_session.add(Quote(tenant_id=tenant.id, number="PRE-202312-0004", client_id=customer.id, vehicle_id=vehicle.id))
        db_session.commit()

        counters = CounterService(db_session)
        counter = counters.initialize_counter(tenant.id)
        assert counter.work_orders_counter == 12
        assert counter.quotes_counter == 4

        assert counters.next_work_order_number(tenant.id).endswith("-0013")
        assert counters.next_quote_number(tenant.id).endswith("-0005")
        db_session.commit()


# ===== TALLERES =====

class TestTenantEndpoints:

    def test_create_tenant_makes_creator_owner(self, client, db_session, make_user, headers_for):
        user = make_user()
        response = client.post(
            "/tenants/",
            json={"name": "  Taller Norte  ", "tax_id": "20123456786", "phone": "+54 11 4444-5555"},
            headers=headers_for(user)
        )
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Taller Norte"
        assert data["tax_id"] == "20-12345678-6"
        assert data["plan"] == "trial"
        assert data["currency"] == "ARS"

        membership = db_session.query(TenantMembership).filter(TenantMembership.user_id == user.id).one()
        assert membership.role == "owner"
        assert db_session.query(TenantCounter).count() == 1

    def test_create_tenant_invalid_cuit(self, client, make_user, headers_for):
        response = client.post(
            "/tenants/",
            json={"name": "Taller Norte", "tax_id": "20-12345678-5"},
            headers=headers_for(make_user())
        )
        assert response.status_code == 422

    def test_list_my_tenants(self, client, owner, tenant, headers_for):
        response = client.get("/tenants/", headers=headers_for(owner))
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["id"] == str(tenant.id)
        assert data[0]["role"] == "owner"

    def test_current_tenant_requires_selection(self, client, owner, tenant, headers_for):
        response = client.get("/tenants/current", headers=headers_for(owner))
        assert response.status_code == 400

    def test_current_tenant_with_header(self, client, owner, tenant, headers_for):
        headers = {**headers_for(owner), "X-Tenant-ID": str(tenant.id)}
        response = client.get("/tenants/current", headers=headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Taller Central"

    def test_foreign_tenant_is_forbidden(self, client, make_user, make_tenant, headers_for, owner):
        foreign = make_tenant(make_user(), name="Ajeno")
        headers = {**headers_for(owner), "X-Tenant-ID": str(foreign.id)}
        response = client.get("/tenants/current", headers=headers)
        assert response.status_code == 403

    def test_invalid_tenant_header(self, client, owner, headers_for):
        headers = {**headers_for(owner), "X-Tenant-ID": "no-es-uuid"}
        response = client.get("/tenants/current", headers=headers)
        assert response.status_code == 400

    def test_update_tenant(self, client, owner_headers):
        response = client.patch(
            "/tenants/current",
            json={"name": "Taller Central SRL", "primary_color": "#1A2B3C"},
            headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Taller Central SRL"
        assert response.json()["primary_color"] == "#1A2B3C"

    @pytest.mark.parametrize("field", ["name", "timezone"])
    def test_update_tenant_rejects_null_required_field(self, client, owner_headers, field):
        response = client.patch("/tenants/current", json={field: None}, headers=owner_headers)
        assert response.status_code == 400
        assert field in response.json()["detail"]

        response = client.get("/tenants/current", headers=owner_headers)
        assert response.json()["name"] == "Taller Central"
        assert response.json()["timezone"]

    def test_update_tenant_forbidden_for_manager(self, client, role_headers):
        response = client.patch("/tenants/current", json={"name": "Otro"}, headers=role_headers("manager"))
        assert response.status_code == 403

    def test_change_plan_owner_only(self, client, owner_headers, role_headers):
        response = client.put("/tenants/current/plan", json={"plan": "basic"}, headers=role_headers("admin"))
        assert response.status_code == 403

        response = client.put("/tenants/current/plan", json={"plan": "basic"}, headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["plan"] == "basic"

    def test_deactivate_tenant_blocks_access(self, client, owner_headers):
        response = client.delete("/tenants/current", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["active"] is False

        response = client.get("/tenants/current", headers=owner_headers)
        assert response.status_code == 403


# ===== EQUIPO =====

class TestTeamManagement:

    def test_list_members(self, client, owner_headers, add_member, tenant):
        add_member(tenant, "user")
        response = client.get("/tenants/current/members", headers=owner_headers)
        assert response.status_code == 200
        roles = sorted(m["role"] for m in response.json())
        assert roles == ["owner", "user"]

    def test_change_member_role(self, client, owner_headers, add_member, tenant):
        member = add_member(tenant, "user")
        response = client.patch(
            f"/tenants/current/members/{member.id}",
            json={"role": "manager"},
            headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["role"] == "manager"

    def test_admin_cannot_promote_to_owner(self, client, add_member, headers_for, tenant):
        admin = add_member(tenant, "admin")
        member = add_member(tenant, "user")
        response = client.patch(
            f"/tenants/current/members/{member.id}",
            json={"role": "owner"},
            headers=headers_for(admin, tenant)
        )
        assert response.status_code == 403

    def test_admin_cannot_touch_owner(self, client, add_member, headers_for, tenant, owner):
        admin = add_member(tenant, "admin")
        response = client.delete(f"/tenants/current/members/{owner.id}", headers=headers_for(admin, tenant))
        assert response.status_code == 403

    def test_cannot_modify_self(self, client, owner_headers, owner):
        response = client.patch(
            f"/tenants/current/members/{owner.id}",
            json={"role": "admin"},
            headers=owner_headers
        )
        assert response.status_code == 400

    def test_remove_member_revokes_access(self, client, owner_headers, add_member, headers_for, tenant):
        member = add_member(tenant, "user")
        member_headers = headers_for(member, tenant)
        assert client.get("/tenants/current", headers=member_headers).status_code == 200

        response = client.delete(f"/tenants/current/members/{member.id}", headers=owner_headers)
        assert response.status_code == 204

        assert client.get("/tenants/current", headers=member_headers).status_code == 403

    def test_demoting_co_owner_keeps_one_owner(self, client, owner_headers, add_member, tenant):
        co_owner = add_member(tenant, "owner")
        response = client.patch(
            f"/tenants/current/members/{co_owner.id}",
            json={"role": "admin"},
            headers=owner_headers
        )
        assert response.status_code == 200

    def test_unknown_member(self, client, owner_headers, make_user):
        stranger = make_user()
        response = client.delete(f"/tenants/current/members/{stranger.id}", headers=owner_headers)
        assert response.status_code == 404
