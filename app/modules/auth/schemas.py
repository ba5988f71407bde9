from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from app.common.validators import validate_phone, empty_to_none

# Base schemas
class ProfileCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone_number: Optional[str] = Field(None, max_length=30)

    @field_validator('first_name', 'last_name')
    @classmethod
    def strip_names(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('El nombre no puede estar vacío')
        return v

    @field_validator('phone_number')
    @classmethod
    def validate_phone_number(cls, v):
        v = empty_to_none(v)
        if v is not None and not validate_phone(v):
            raise ValueError('Teléfono inválido. Solo se permiten números, +, -, espacios y paréntesis')
        return v

class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone_number: Optional[str] = Field(None, max_length=30)

    @field_validator('phone_number')
    @classmethod
    def validate_phone_number(cls, v):
        v = empty_to_none(v)
        if v is not None and not validate_phone(v):
            raise ValueError('Teléfono inválido. Solo se permiten números, +, -, espacios y paréntesis')
        return v

class UserUpdate(BaseModel):
    """Email and password changes require separate endpoints."""
    profile: Optional[ProfileUpdate] = None

class ProfileOut(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    phone_number: Optional[str]
    full_name: str

    class Config:
        from_attributes = True

# User schemas
class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    confirm_password: str
    profile: ProfileCreate

    @field_validator('email')
    @classmethod
    def lower_email(cls, v):
        return v.lower()

    @field_validator('confirm_password')
    @classmethod
    def validate_passwords_match(cls, v, info):
        if 'password' in info.data and v != info.data['password']:
            raise ValueError('Las contraseñas no coinciden')
        return v

class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    is_active: bool
    is_superuser: bool = False
    email_verified: bool
    profile: Optional[ProfileOut] = None

    class Config:
        from_attributes = True

class TenantMembershipOut(BaseModel):
    id: UUID
    tenant_id: UUID
    tenant_name: str
    role: str
    is_active: bool
    joined_at: datetime

# Token schemas
class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut
    tenants: List[TenantMembershipOut] = []
    refresh_token: Optional[str] = None

class ContextTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    tenant_id: UUID
    tenant_name: str
    user_role: str
    permissions: List[str] = []

class RefreshTokenRequest(BaseModel):
    refresh_token: str

# Email verification schemas
class EmailVerificationRequest(BaseModel):
    email: EmailStr

class EmailVerificationWithAutoLogin(BaseModel):
    token: str
    auto_login: bool = False

class EmailVerificationResponse(BaseModel):
    message: str
    user_id: str
    is_active: bool
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None

# Password schemas
class PasswordResetRequest(BaseModel):
    email: EmailStr

class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(..., min_length=6)

class PasswordChangeRequest(BaseModel):
    """Cambio de contraseña dentro de una sesión autenticada"""
    current_password: str = Field(..., description="Contraseña actual")
    new_password: str = Field(..., min_length=6, description="Nueva contraseña")
    confirm_password: str = Field(..., min_length=6, description="Confirmación de nueva contraseña")

    @field_validator('confirm_password')
    @classmethod
    def validate_passwords_match(cls, v, info):
        if 'new_password' in info.data and v != info.data['new_password']:
            raise ValueError('Las contraseñas no coinciden')
        return v

# Tenant selection schemas
class TenantSelectionRequest(BaseModel):
    tenant_id: UUID

# Auth context schemas
class AuthContext(BaseModel):
    user_id: UUID
    email: Optional[str] = None
    is_superuser: bool = False
    tenant_id: Optional[UUID] = None
    user_role: Optional[str] = None
    tenants: List[TenantMembershipOut] = []

class AuthContextOut(AuthContext):
    permissions: List[str] = []
