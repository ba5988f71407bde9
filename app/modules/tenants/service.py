"""
Servicio de talleres y gestión del equipo.

Reglas del equipo:
- Nadie cambia su propio rol ni se da de baja a sí mismo por estos endpoints
- Solo un dueño asigna el rol owner o modifica/da de baja a otro dueño
- El último dueño activo nunca puede ser degradado ni dado de baja
"""
import logging
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from app.common.mixins import utcnow
from app.common.permissions import TenantRole
from app.core.config import settings
from app.modules.auth.models import User
from app.modules.tenants.models import Tenant, TenantMembership
from app.modules.tenants.schemas import TenantCreate, TenantUpdate, MemberOut
from app.modules.tenants.counters import CounterService

logger = logging.getLogger(__name__)


class TenantService:
    """Servicio de talleres (tenants) y sus membresías."""

    def __init__(self, db: Session):
        self.db = db

    def create_tenant(self, tenant_data: TenantCreate, user: User) -> Tenant:
        """
        Crear taller (onboarding). El creador queda como owner y se
        inicializa el contador de numeración.
        """
        data = tenant_data.model_dump(exclude_unset=True)
        address = data.pop("address", None)
        timezone_name = data.pop("timezone", None) or settings.DEFAULT_TIMEZONE

        tenant = Tenant(
            **data,
            address=address,
            timezone=timezone_name,
            owner_id=user.id,
            plan=settings.DEFAULT_TENANT_PLAN,
            active=True
        )
        self.db.add(tenant)
        self.db.flush()

        self.db.add(TenantMembership(
            user_id=user.id,
            tenant_id=tenant.id,
            role=TenantRole.OWNER.value,
            is_active=True
        ))
        CounterService(self.db).initialize_counter(tenant.id)

        self.db.commit()
        self.db.refresh(tenant)
        logger.info(f"Tenant {tenant.id} ({tenant.name}) created by user {user.id}")
        return tenant

    def get_user_tenants(self, user_id: UUID) -> List[Tuple[Tenant, str]]:
        """Talleres activos del usuario con su rol en cada uno."""
        memberships = self.db.query(TenantMembership).options(
            selectinload(TenantMembership.tenant)
        ).join(Tenant, Tenant.id == TenantMembership.tenant_id).filter(
            TenantMembership.user_id == user_id,
            TenantMembership.is_active == True,
            Tenant.active == True
        ).order_by(TenantMembership.joined_at).all()
        return [(m.tenant, m.role) for m in memberships]

    def get_tenant(self, tenant_id: UUID) -> Tenant:
        tenant = self.db.query(Tenant).filter(Tenant.id == tenant_id).first()
        if not tenant:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Taller no encontrado"
            )
        return tenant

    def update_tenant(self, tenant_id: UUID, tenant_data: TenantUpdate) -> Tenant:
        tenant = self.get_tenant(tenant_id)

        update_data = tenant_data.model_dump(exclude_unset=True)
        for field in ("name", "timezone"):
            if field in update_data and update_data[field] is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"El campo {field} es obligatorio"
                )

        for field, value in update_data.items():
            setattr(tenant, field, value)

        self.db.commit()
        self.db.refresh(tenant)
        return tenant

    def deactivate_tenant(self, tenant_id: UUID, user_id: UUID) -> Tenant:
        """Baja lógica: el taller deja de ser accesible pero sus datos se conservan."""
        tenant = self.get_tenant(tenant_id)
        tenant.active = False
        self.db.commit()
        self.db.refresh(tenant)
        logger.warning(f"Tenant {tenant_id} deactivated by user {user_id}")
        return tenant

    def set_active(self, tenant_id: UUID, active: bool) -> Tenant:
        tenant = self.get_tenant(tenant_id)
        tenant.active = active
        self.db.commit()
        self.db.refresh(tenant)
        return tenant

    def change_plan(self, tenant_id: UUID, plan: str) -> Tenant:
        tenant = self.get_tenant(tenant_id)
        previous = tenant.plan
        tenant.plan = plan
        self.db.commit()
        self.db.refresh(tenant)
        logger.info(f"Tenant {tenant_id} plan changed: {previous} -> {plan}")
        return tenant

    # ===== EQUIPO =====

    def _get_membership(self, tenant_id: UUID, user_id: UUID, active_only: bool = True) -> Optional[TenantMembership]:
        query = self.db.query(TenantMembership).filter(
            TenantMembership.tenant_id == tenant_id,
            TenantMembership.user_id == user_id
        )
        if active_only:
            query = query.filter(TenantMembership.is_active == True)
        return query.first()

    def _active_owner_count(self, tenant_id: UUID) -> int:
        return self.db.query(TenantMembership).filter(
            TenantMembership.tenant_id == tenant_id,
            TenantMembership.role == TenantRole.OWNER.value,
            TenantMembership.is_active == True
        ).count()

    def list_members(self, tenant_id: UUID) -> List[MemberOut]:
        memberships = self.db.query(TenantMembership).options(
            selectinload(TenantMembership.user).selectinload(User.profile)
        ).filter(
            TenantMembership.tenant_id == tenant_id,
            TenantMembership.is_active == True
        ).order_by(TenantMembership.joined_at).all()

        return [
            MemberOut(
                user_id=m.user_id,
                email=m.user.email,
                full_name=m.user.full_name,
                role=m.role,
                is_active=m.is_active,
                joined_at=m.joined_at
            )
            for m in memberships
        ]

    def add_member(
        self,
        tenant_id: UUID,
        user_id: UUID,
        role: str,
        invited_by: Optional[UUID] = None
    ) -> TenantMembership:
        """Agregar usuario al taller. Reactiva la membresía si el usuario había sido dado de baja."""
        membership = self._get_membership(tenant_id, user_id, active_only=False)

        if membership and membership.is_active:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="El usuario ya pertenece a este taller"
            )

        if membership:
            membership.is_active = True
            membership.role = role
            membership.joined_at = utcnow()
            membership.invited_by = invited_by
        else:
            membership = TenantMembership(
                tenant_id=tenant_id,
                user_id=user_id,
                role=role,
                is_active=True,
                invited_by=invited_by
            )
            self.db.add(membership)

        self.db.flush()
        logger.info(f"User {user_id} joined tenant {tenant_id} as {role}")
        return membership

    def _check_can_manage(self, tenant_id: UUID, actor_id: UUID, actor_role: str, target_user_id: UUID) -> TenantMembership:
        if target_user_id == actor_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No puedes modificar tu propia membresía"
            )

        membership = self._get_membership(tenant_id, target_user_id)
        if not membership:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Miembro no encontrado"
            )

        if membership.role == TenantRole.OWNER.value and actor_role != TenantRole.OWNER.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Solo un dueño puede modificar a otro dueño"
            )
        return membership

    def update_member_role(
        self,
        tenant_id: UUID,
        actor_id: UUID,
        actor_role: str,
        target_user_id: UUID,
        new_role: TenantRole
    ) -> MemberOut:
        membership = self._check_can_manage(tenant_id, actor_id, actor_role, target_user_id)

        if new_role == TenantRole.OWNER and actor_role != TenantRole.OWNER.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Solo un dueño puede asignar el rol de dueño"
            )

        if (
            membership.role == TenantRole.OWNER.value
            and new_role != TenantRole.OWNER
            and self._active_owner_count(tenant_id) <= 1
        ):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="El taller debe tener al menos un dueño"
            )

        previous = membership.role
        membership.role = new_role.value
        self.db.commit()
        logger.info(f"User {target_user_id} role changed in tenant {tenant_id}: {previous} -> {new_role.value}")

        user = membership.user
        return MemberOut(
            user_id=membership.user_id,
            email=user.email,
            full_name=user.full_name,
            role=membership.role,
            is_active=membership.is_active,
            joined_at=membership.joined_at
        )

    def remove_member(self, tenant_id: UUID, actor_id: UUID, actor_role: str, target_user_id: UUID) -> None:
        membership = self._check_can_manage(tenant_id, actor_id, actor_role, target_user_id)

        if membership.role == TenantRole.OWNER.value and self._active_owner_count(tenant_id) <= 1:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="El taller debe tener al menos un dueño"
            )

        membership.is_active = False
        self.db.commit()
        logger.info(f"User {target_user_id} removed from tenant {tenant_id} by {actor_id}")
