"""
Límites de recursos y acceso a módulos según el plan del taller.
"""
import logging
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.modules.plans.constants import (
    PLANS, PLAN_ORDER, UNLIMITED, NEAR_LIMIT_PERCENTAGE, RESOURCE_LABELS, MODULE_LABELS,
    PlanResource, TenantModule, get_plan, plan_has_module, required_plan_for
)
from app.modules.plans.schemas import PlanOut, ResourceUsage, TenantPlanStatus
from app.modules.tenants.models import Tenant, TenantMembership
from app.modules.invitations.models import TenantInvitation, InvitationStatus
from app.modules.clients.models import Client
from app.modules.vehicles.models import Vehicle
from app.modules.work_orders.models import WorkOrder

logger = logging.getLogger(__name__)


def plan_out(code: str) -> PlanOut:
    plan = get_plan(code)
    return PlanOut(
        code=code,
        name=plan["name"],
        limits={resource.value: value for resource, value in plan["limits"].items()},
        modules=[m.value for m in plan["modules"]],
        features=list(plan["features"]),
    )


def build_usage(resource: PlanResource, current: int, maximum: int) -> ResourceUsage:
    if maximum == UNLIMITED:
        return ResourceUsage(
            resource=resource.value,
            current=current,
            max=UNLIMITED,
            percentage=0.0,
            is_near_limit=False,
            is_at_limit=False,
            is_unlimited=True,
        )

    percentage = round(current * 100 / maximum, 2) if maximum > 0 else 100.0
    return ResourceUsage(
        resource=resource.value,
        current=current,
        max=maximum,
        percentage=percentage,
        is_near_limit=percentage >= NEAR_LIMIT_PERCENTAGE,
        is_at_limit=current >= maximum,
        is_unlimited=False,
    )


class PlanService:
    """Servicio de planes: uso de recursos, límites y módulos habilitados."""

    def __init__(self, db: Session):
        self.db = db

    def list_plans(self) -> List[PlanOut]:
        return [plan_out(code.value) for code in PLAN_ORDER if code in PLANS]

    def _get_tenant(self, tenant_id: UUID) -> Tenant:
        tenant = self.db.query(Tenant).filter(Tenant.id == tenant_id).first()
        if not tenant:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Taller no encontrado"
            )
        return tenant

    def count_resource(self, tenant_id: UUID, resource: PlanResource) -> int:
        if resource == PlanResource.USERS:
            members = self.db.query(TenantMembership).filter(
                TenantMembership.tenant_id == tenant_id,
                TenantMembership.is_active == True
            ).count()
            pending = self.db.query(TenantInvitation).filter(
                TenantInvitation.tenant_id == tenant_id,
                TenantInvitation.status == InvitationStatus.PENDING.value,
                TenantInvitation.expires_at > datetime.now(timezone.utc)
            ).count()
            return members + pending

        if resource == PlanResource.CLIENTS:
            return self.db.query(Client).filter(Client.tenant_id == tenant_id).count()

        if resource == PlanResource.VEHICLES:
            return self.db.query(Vehicle).filter(Vehicle.tenant_id == tenant_id).count()

        if resource == PlanResource.MONTHLY_JOBS:
            now = datetime.now(timezone.utc)
            month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
            return self.db.query(WorkOrder).filter(
                WorkOrder.tenant_id == tenant_id,
                WorkOrder.created_at >= month_start
            ).count()

        raise ValueError(f"Unknown resource: {resource}")

    def resource_usage(self, tenant_id: UUID, resource: PlanResource) -> ResourceUsage:
        tenant = self._get_tenant(tenant_id)
        maximum = get_plan(tenant.plan)["limits"][resource]
        return build_usage(resource, self.count_resource(tenant_id, resource), maximum)

    def tenant_status(self, tenant_id: UUID) -> TenantPlanStatus:
        tenant = self._get_tenant(tenant_id)
        limits = get_plan(tenant.plan)["limits"]
        usage = [
            build_usage(resource, self.count_resource(tenant_id, resource), limits[resource])
            for resource in PlanResource
        ]
        return TenantPlanStatus(plan=plan_out(tenant.plan), usage=usage)

    def ensure_within_limit(self, tenant_id: UUID, resource: PlanResource) -> None:
        """Lanza 409 si crear un recurso más superaría el límite del plan."""
        usage = self.resource_usage(tenant_id, resource)
        if usage.is_at_limit:
            logger.info(f"Tenant {tenant_id} reached {resource.value} limit ({usage.current}/{usage.max})")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=(
                    f"Has alcanzado el límite de {RESOURCE_LABELS[resource]} de tu plan "
                    f"({usage.current}/{usage.max}). Actualiza tu plan para continuar."
                )
            )

    def has_module(self, tenant_id: UUID, module: TenantModule) -> bool:
        return plan_has_module(self._get_tenant(tenant_id).plan, module)

    def ensure_module(self, tenant_id: UUID, module: TenantModule) -> None:
        if not self.has_module(tenant_id, module):
            required = required_plan_for(module)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"El módulo {MODULE_LABELS[module]} no está incluido en tu plan"
                    + (f". Disponible desde el plan {PLANS[required]['name']}" if required else "")
                )
            )
