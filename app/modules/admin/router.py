from fastapi import APIRouter, Depends, Query
from typing import Optional
from uuid import UUID

from app.dependencies.dbDependecies import db_dependency
from app.modules.auth.dependencies import require_superuser
from app.modules.auth.models import User
from app.modules.plans.schemas import PlanChangeRequest
from app.modules.admin.schemas import AdminStats, AdminUserList, AdminTenantList, AdminTenantOut
from app.modules.admin.service import AdminService

admin_router = APIRouter(prefix="/admin", tags=["Super Admin"])


@admin_router.get("/stats", response_model=AdminStats)
async def get_platform_stats(
    db: db_dependency,
    current_user: User = Depends(require_superuser())
):
    return AdminService(db).stats()


@admin_router.get("/users", response_model=AdminUserList)
async def list_users(
    db: db_dependency,
    search: Optional[str] = Query(None, description="Búsqueda por email"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_superuser())
):
    """Usuarios de la plataforma con los talleres a los que pertenecen."""
    return AdminService(db).list_users(search=search, limit=limit, offset=offset)


@admin_router.get("/tenants", response_model=AdminTenantList)
async def list_tenants(
    db: db_dependency,
    search: Optional[str] = Query(None, description="Búsqueda por nombre o CUIT"),
    active: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_superuser())
):
    return AdminService(db).list_tenants(search=search, active=active, limit=limit, offset=offset)


@admin_router.post("/tenants/{tenant_id}/activate", response_model=AdminTenantOut)
async def activate_tenant(
    tenant_id: UUID,
    db: db_dependency,
    current_user: User = Depends(require_superuser())
):
    return AdminService(db).set_tenant_active(tenant_id, True)


@admin_router.post("/tenants/{tenant_id}/deactivate", response_model=AdminTenantOut)
async def deactivate_tenant(
    tenant_id: UUID,
    db: db_dependency,
    current_user: User = Depends(require_superuser())
):
    """Desactivar un taller. Sus miembros pierden el acceso hasta reactivarlo."""
    return AdminService(db).set_tenant_active(tenant_id, False)


@admin_router.put("/tenants/{tenant_id}/plan", response_model=AdminTenantOut)
async def set_tenant_plan(
    tenant_id: UUID,
    plan_data: PlanChangeRequest,
    db: db_dependency,
    current_user: User = Depends(require_superuser())
):
    return AdminService(db).set_tenant_plan(tenant_id, plan_data.plan.value)
