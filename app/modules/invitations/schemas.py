from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.common.permissions import TenantRole
from app.modules.invitations.models import InvitationStatus


class InvitationCreate(BaseModel):
    email: EmailStr
    role: TenantRole = Field(TenantRole.USER, description="Rol a asignar: owner, admin, manager, user, viewer")

    @field_validator('email')
    @classmethod
    def lower_email(cls, v):
        return v.lower()


class InvitationOut(BaseModel):
    id: UUID
    tenant_id: UUID
    tenant_name: str
    email: str
    role: str
    invited_by: UUID
    invited_by_name: str
    status: InvitationStatus
    expires_at: datetime
    created_at: datetime


class InvitationList(BaseModel):
    invitations: List[InvitationOut]
    total: int


class PendingCount(BaseModel):
    pending: int


class InvitationAcceptResponse(BaseModel):
    message: str
    tenant_id: UUID
    tenant_name: str
    role: str
