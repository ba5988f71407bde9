from pydantic import BaseModel
from typing import Optional, List
from uuid import UUID
from datetime import datetime


class AdminStats(BaseModel):
    total_users: int
    active_users: int
    superusers: int
    total_tenants: int
    active_tenants: int
    inactive_tenants: int


class AdminUserTenant(BaseModel):
    tenant_id: UUID
    tenant_name: str
    role: str
    is_active: bool


class AdminUserOut(BaseModel):
    id: UUID
    email: str
    full_name: str
    is_active: bool
    is_superuser: bool
    email_verified: bool
    last_login: Optional[datetime]
    created_at: datetime
    tenants: List[AdminUserTenant]


class AdminUserList(BaseModel):
    users: List[AdminUserOut]
    total: int
    limit: int
    offset: int


class AdminTenantOut(BaseModel):
    id: UUID
    name: str
    plan: str
    active: bool
    owner_id: UUID
    owner_email: Optional[str]
    owner_name: Optional[str]
    members_count: int
    created_at: datetime


class AdminTenantList(BaseModel):
    tenants: List[AdminTenantOut]
    total: int
    limit: int
    offset: int
