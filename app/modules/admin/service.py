"""
Super administración de la plataforma: usuarios y talleres de todos los tenants.
"""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from app.modules.auth.models import User
from app.modules.tenants.models import Tenant, TenantMembership
from app.modules.tenants.service import TenantService
from app.modules.admin.schemas import (
    AdminStats, AdminUserOut, AdminUserTenant, AdminUserList, AdminTenantOut, AdminTenantList
)

logger = logging.getLogger(__name__)


class AdminService:

    def __init__(self, db: Session):
        self.db = db

    def stats(self) -> AdminStats:
        total_users = self.db.query(func.count(User.id)).scalar() or 0
        active_users = self.db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0
        superusers = self.db.query(func.count(User.id)).filter(User.is_superuser.is_(True)).scalar() or 0
        total_tenants = self.db.query(func.count(Tenant.id)).scalar() or 0
        active_tenants = self.db.query(func.count(Tenant.id)).filter(Tenant.active.is_(True)).scalar() or 0

        return AdminStats(
            total_users=total_users,
            active_users=active_users,
            superusers=superusers,
            total_tenants=total_tenants,
            active_tenants=active_tenants,
            inactive_tenants=total_tenants - active_tenants
        )

    def list_users(self, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> AdminUserList:
        query = self.db.query(User).options(
            selectinload(User.profile),
            selectinload(User.memberships).selectinload(TenantMembership.tenant)
        )
        if search:
            query = query.filter(User.email.ilike(f"%{search.strip()}%"))

        total = query.count()
        users = query.order_by(User.created_at.desc()).offset(offset).limit(limit).all()

        return AdminUserList(
            users=[
                AdminUserOut(
                    id=user.id,
                    email=user.email,
                    full_name=user.full_name,
                    is_active=user.is_active,
                    is_superuser=user.is_superuser,
                    email_verified=user.email_verified,
                    last_login=user.last_login,
                    created_at=user.created_at,
                    tenants=[
                        AdminUserTenant(
                            tenant_id=m.tenant_id,
                            tenant_name=m.tenant.name,
                            role=m.role,
                            is_active=m.is_active
                        )
                        for m in user.memberships
                    ]
                )
                for user in users
            ],
            total=total,
            limit=limit,
            offset=offset
        )

    def _tenant_out(self, tenant: Tenant, members_count: int) -> AdminTenantOut:
        owner = tenant.owner
        return AdminTenantOut(
            id=tenant.id,
            name=tenant.name,
            plan=tenant.plan,
            active=tenant.active,
            owner_id=tenant.owner_id,
            owner_email=owner.email if owner else None,
            owner_name=owner.full_name if owner else None,
            members_count=members_count,
            created_at=tenant.created_at
        )

    def _members_count(self, tenant_id: UUID) -> int:
        return self.db.query(func.count(TenantMembership.id)).filter(
            TenantMembership.tenant_id == tenant_id,
            TenantMembership.is_active.is_(True)
        ).scalar() or 0

    def list_tenants(
        self,
        search: Optional[str] = None,
        active: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0
    ) -> AdminTenantList:
        query = self.db.query(Tenant).options(selectinload(Tenant.owner).selectinload(User.profile))
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(Tenant.name.ilike(term), Tenant.tax_id.ilike(term)))
        if active is not None:
            query = query.filter(Tenant.active == active)

        total = query.count()
        tenants = query.order_by(Tenant.created_at.desc()).offset(offset).limit(limit).all()

        return AdminTenantList(
            tenants=[self._tenant_out(t, self._members_count(t.id)) for t in tenants],
            total=total,
            limit=limit,
            offset=offset
        )

    def set_tenant_active(self, tenant_id: UUID, active: bool) -> AdminTenantOut:
        tenant = TenantService(self.db).set_active(tenant_id, active)
        logger.info(f"Tenant {tenant_id} {'activated' if active else 'deactivated'} by superuser")
        return self._tenant_out(tenant, self._members_count(tenant.id))

    def set_tenant_plan(self, tenant_id: UUID, plan: str) -> AdminTenantOut:
        tenant = TenantService(self.db).change_plan(tenant_id, plan)
        return self._tenant_out(tenant, self._members_count(tenant.id))
