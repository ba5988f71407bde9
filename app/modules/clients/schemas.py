from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.common.validators import validate_phone, validate_cuit_format, empty_to_none


class ClientBase(BaseModel):
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=200)
    cuit: Optional[str] = Field(None, max_length=20)
    profession: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)
    observations: Optional[str] = Field(None, max_length=500)

    @field_validator('email', 'address', 'profession', 'city', 'notes', 'observations', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            return empty_to_none(v)
        return v

    @field_validator('email')
    @classmethod
    def lower_email(cls, v):
        return v.lower() if v else v

    @field_validator('cuit')
    @classmethod
    def validate_cuit(cls, v):
        v = empty_to_none(v)
        if v is not None and not validate_cuit_format(v):
            raise ValueError('CUIT inválido. Solo se permiten números y guiones')
        return v


def _clean_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError('El nombre no puede estar vacío')
    return v


def _clean_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v or not validate_phone(v):
        raise ValueError('Teléfono inválido. Solo se permiten números, +, -, espacios y paréntesis')
    return v


class ClientCreate(ClientBase):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: str = Field(..., min_length=1, max_length=30)

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_names(cls, v):
        return _clean_name(v)

    @field_validator('phone')
    @classmethod
    def validate_phone_number(cls, v):
        return _clean_phone(v)


class ClientUpdate(ClientBase):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    phone: Optional[str] = Field(None, min_length=1, max_length=30)

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_names(cls, v):
        return _clean_name(v)

    @field_validator('phone')
    @classmethod
    def validate_phone_number(cls, v):
        return _clean_phone(v)


class ClientOut(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    full_name: str
    email: Optional[str]
    phone: str
    address: Optional[str]
    cuit: Optional[str]
    profession: Optional[str]
    city: Optional[str]
    notes: Optional[str]
    observations: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClientList(BaseModel):
    clients: List[ClientOut]
    total: int
    limit: int
    offset: int


class ClientBrief(BaseModel):
    """Datos mínimos del cliente para listados de turnos, órdenes y presupuestos"""
    id: UUID
    full_name: str
    phone: str

    class Config:
        from_attributes = True
