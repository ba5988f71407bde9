"""
Tests de planes: límites de recursos y módulos habilitados.
"""
import pytest
from fastapi import HTTPException

from app.modules.clients.models import Client
from app.modules.plans.constants import (
    PlanCode, PlanResource, TenantModule, UNLIMITED, get_plan, plan_has_module, required_plan_for
)
from app.modules.plans.service import PlanService, build_usage


class TestPlanConstants:

    def test_unknown_plan_falls_back_to_trial(self):
        assert get_plan("gold") == get_plan(PlanCode.TRIAL.value)

    def test_modules_by_plan(self):
        assert plan_has_module("trial", TenantModule.JOBS)
        assert not plan_has_module("trial", TenantModule.SCHEDULE)
        assert plan_has_module("basic", TenantModule.QUOTES)
        assert not plan_has_module("basic", TenantModule.INVENTORY)
        assert plan_has_module("premium", TenantModule.REPORTS)

    def test_required_plan(self):
        assert required_plan_for(TenantModule.CLIENTS) == PlanCode.TRIAL
        assert required_plan_for(TenantModule.SCHEDULE) == PlanCode.BASIC
        assert required_plan_for(TenantModule.INVENTORY) == PlanCode.PREMIUM


class TestResourceUsage:

    def test_unlimited(self):
        usage = build_usage(PlanResource.CLIENTS, 1000, UNLIMITED)
        assert usage.is_unlimited
        assert not usage.is_at_limit
        assert usage.percentage == 0.0

    def test_near_limit(self):
        usage = build_usage(PlanResource.CLIENTS, 40, 50)
        assert usage.percentage == 80.0
        assert usage.is_near_limit
        assert not usage.is_at_limit

    def test_at_limit(self):
        usage = build_usage(PlanResource.USERS, 2, 2)
        assert usage.is_at_limit


class TestPlanService:

    def test_client_limit_on_trial(self, db_session, make_tenant, make_user):
        tenant = make_tenant(make_user(), plan="trial")
        for i in range(50):
            db_session.add(Client(tenant_id=tenant.id, first_name="Cliente", last_name=str(i), phone="1144445555"))
        db_session.commit()

        with pytest.raises(HTTPException) as exc:
            PlanService(db_session).ensure_within_limit(tenant.id, PlanResource.CLIENTS)
        assert exc.value.status_code == 409

    def test_users_count_members(self, db_session, tenant, add_member):
        add_member(tenant, "user")
        assert PlanService(db_session).count_resource(tenant.id, PlanResource.USERS) == 2

    def test_ensure_module(self, db_session, make_tenant, make_user):
        tenant = make_tenant(make_user(), plan="basic")
        service = PlanService(db_session)
        service.ensure_module(tenant.id, TenantModule.SCHEDULE)

        with pytest.raises(HTTPException) as exc:
            service.ensure_module(tenant.id, TenantModule.INVENTORY)
        assert exc.value.status_code == 403
        assert "Premium" in exc.value.detail


class TestPlanEndpoints:

    def test_list_plans_is_public(self, client):
        response = client.get("/plans/")
        assert response.status_code == 200
        codes = [p["code"] for p in response.json()]
        assert codes == ["trial", "basic", "premium", "enterprise"]

    def test_current_plan_usage(self, client, owner_headers):
        response = client.get("/plans/current", headers=owner_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["plan"]["code"] == "premium"
        usage = {u["resource"]: u for u in data["usage"]}
        assert usage["users"]["current"] == 1
        assert usage["clients"]["is_unlimited"] is True

    def test_module_gate_blocks_endpoint(self, client, make_user, make_tenant, headers_for):
        owner = make_user()
        tenant = make_tenant(owner, plan="trial")
        response = client.get("/products/", headers=headers_for(owner, tenant))
        assert response.status_code == 403
