from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.dependencies.dbDependecies import get_db
from app.common.permissions import Permission
from app.modules.auth.dependencies import get_current_user, require_tenant, require_permission
from app.modules.auth.models import User
from app.modules.auth.schemas import AuthContext
from app.modules.plans.schemas import PlanChangeRequest
from app.modules.tenants.schemas import (
    TenantCreate, TenantUpdate, TenantOut, TenantWithRoleOut, MemberOut, MemberRoleUpdate
)
from app.modules.tenants.service import TenantService

tenants_router = APIRouter(prefix="/tenants", tags=["Tenants"])


@tenants_router.post("/", response_model=TenantOut, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    tenant_data: TenantCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Crear un taller (onboarding). El usuario autenticado queda como dueño.
    """
    return TenantService(db).create_tenant(tenant_data, current_user)


@tenants_router.get("/", response_model=List[TenantWithRoleOut])
async def get_my_tenants(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Talleres a los que pertenece el usuario, con su rol."""
    tenants = TenantService(db).get_user_tenants(current_user.id)
    return [
        TenantWithRoleOut(**TenantOut.model_validate(tenant).model_dump(), role=role)
        for tenant, role in tenants
    ]


@tenants_router.get("/current", response_model=TenantOut)
async def get_current_tenant(
    auth_context: AuthContext = Depends(require_tenant()),
    db: Session = Depends(get_db)
):
    return TenantService(db).get_tenant(auth_context.tenant_id)


@tenants_router.patch("/current", response_model=TenantOut)
async def update_current_tenant(
    tenant_data: TenantUpdate,
    auth_context: AuthContext = Depends(require_permission(Permission.MANAGE_ORGANIZATION)),
    db: Session = Depends(get_db)
):
    """Actualizar datos del taller (nombre, CUIT, dirección, branding)."""
    return TenantService(db).update_tenant(auth_context.tenant_id, tenant_data)


@tenants_router.delete("/current", response_model=TenantOut)
async def deactivate_current_tenant(
    auth_context: AuthContext = Depends(require_permission(Permission.DELETE_ORGANIZATION)),
    db: Session = Depends(get_db)
):
    """
    Dar de baja el taller (baja lógica). Solo el dueño.
    """
    return TenantService(db).deactivate_tenant(auth_context.tenant_id, auth_context.user_id)


@tenants_router.put("/current/plan", response_model=TenantOut)
async def change_current_plan(
    plan_data: PlanChangeRequest,
    auth_context: AuthContext = Depends(require_permission(Permission.CHANGE_PLAN)),
    db: Session = Depends(get_db)
):
    return TenantService(db).change_plan(auth_context.tenant_id, plan_data.plan.value)


# ===== EQUIPO =====

@tenants_router.get("/current/members", response_model=List[MemberOut])
async def list_members(
    auth_context: AuthContext = Depends(require_tenant()),
    db: Session = Depends(get_db)
):
    """Miembros activos del taller."""
    return TenantService(db).list_members(auth_context.tenant_id)


@tenants_router.patch("/current/members/{user_id}", response_model=MemberOut)
async def update_member_role(
    user_id: UUID,
    role_data: MemberRoleUpdate,
    auth_context: AuthContext = Depends(require_permission(Permission.CHANGE_USER_ROLES)),
    db: Session = Depends(get_db)
):
    """
    Cambiar el rol de un miembro.

    - Solo un dueño puede asignar el rol owner o modificar a otro dueño
    - El último dueño no puede ser degradado
    """
    return TenantService(db).update_member_role(
        tenant_id=auth_context.tenant_id,
        actor_id=auth_context.user_id,
        actor_role=auth_context.user_role,
        target_user_id=user_id,
        new_role=role_data.role
    )


@tenants_router.delete("/current/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    user_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.REMOVE_USERS)),
    db: Session = Depends(get_db)
):
    TenantService(db).remove_member(
        tenant_id=auth_context.tenant_id,
        actor_id=auth_context.user_id,
        actor_role=auth_context.user_role,
        target_user_id=user_id
    )
