from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.common.permissions import TenantRole
from app.common.validators import validate_cuit, format_cuit, validate_phone, empty_to_none


class TenantAddress(BaseModel):
    street: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field("Argentina", max_length=100)


class TenantBase(BaseModel):
    legal_name: Optional[str] = Field(None, max_length=200)
    tax_id: Optional[str] = Field(None, max_length=20, description="CUIT del taller")
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    website: Optional[str] = Field(None, max_length=200)
    address: Optional[TenantAddress] = None
    primary_color: Optional[str] = Field(None, pattern=r'^#[0-9A-Fa-f]{6}$')
    timezone: Optional[str] = Field(None, max_length=64)

    @field_validator('email', 'legal_name', 'website', mode='before')
    @classmethod
    def blank_strings(cls, v):
        if isinstance(v, str):
            return empty_to_none(v)
        return v

    @field_validator('tax_id')
    @classmethod
    def validate_tax_id(cls, v):
        v = empty_to_none(v)
        if v is None:
            return v
        if not validate_cuit(v):
            raise ValueError('CUIT inválido. Verifica el número y el dígito verificador')
        return format_cuit(v)

    @field_validator('phone')
    @classmethod
    def validate_phone_number(cls, v):
        v = empty_to_none(v)
        if v is not None and not validate_phone(v):
            raise ValueError('Teléfono inválido. Solo se permiten números, +, -, espacios y paréntesis')
        return v


class TenantCreate(TenantBase):
    name: str = Field(..., min_length=2, max_length=100)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError('El nombre del taller debe tener al menos 2 caracteres')
        return v


class TenantUpdate(TenantBase):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    logo: Optional[str] = Field(None, max_length=500)


class TenantOut(BaseModel):
    id: UUID
    name: str
    legal_name: Optional[str]
    tax_id: Optional[str]
    email: Optional[str]
    phone: Optional[str]
    website: Optional[str]
    address: Optional[TenantAddress]
    active: bool
    logo: Optional[str]
    primary_color: Optional[str]
    timezone: str
    locale: str
    currency: str
    owner_id: UUID
    plan: str
    created_at: datetime

    class Config:
        from_attributes = True


class TenantWithRoleOut(TenantOut):
    role: str


class MemberOut(BaseModel):
    user_id: UUID
    email: str
    full_name: str
    role: str
    is_active: bool
    joined_at: Optional[datetime]


class MemberRoleUpdate(BaseModel):
    role: TenantRole
