from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime, date

from app.common.validators import validate_plate, normalize_plate, empty_to_none


MIN_YEAR = 1900
MAX_MILEAGE = 9_999_999


def _validate_plate(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = normalize_plate(v)
    if not v or not validate_plate(v):
        raise ValueError('Patente inválida. Solo se permiten letras, números, espacios y guiones')
    return v


def _validate_year(v: Optional[int]) -> Optional[int]:
    if v is None:
        return v
    max_year = date.today().year + 1
    if v < MIN_YEAR or v > max_year:
        raise ValueError(f'El año debe estar entre {MIN_YEAR} y {max_year}')
    return v


class VehicleBase(BaseModel):
    chassis_number: Optional[str] = Field(None, max_length=50)
    make_model: Optional[str] = Field(None, max_length=100, description="Marca y modelo")
    fuel: Optional[str] = Field(None, max_length=30, description="Combustible")
    color: Optional[str] = Field(None, max_length=30)
    year: Optional[int] = None
    mileage: Optional[int] = Field(None, ge=0, le=MAX_MILEAGE, description="Kilometraje")
    additional_data: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=500)
    client_id: Optional[UUID] = None
    owner_name: Optional[str] = Field(None, max_length=100, description="Nombre del dueño si no es cliente")

    @field_validator('chassis_number', 'make_model', 'fuel', 'color', 'additional_data', 'notes', 'owner_name',
                     mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            return empty_to_none(v)
        return v

    @field_validator('year')
    @classmethod
    def validate_year(cls, v):
        return _validate_year(v)


class VehicleCreate(VehicleBase):
    plate: str = Field(..., min_length=1, max_length=20, description="Patente")

    @field_validator('plate')
    @classmethod
    def validate_plate(cls, v):
        return _validate_plate(v)


class VehicleUpdate(VehicleBase):
    plate: Optional[str] = Field(None, min_length=1, max_length=20)

    @field_validator('plate')
    @classmethod
    def validate_plate(cls, v):
        return _validate_plate(v)


class VehicleInline(BaseModel):
    """Vehículo nuevo creado junto con un turno u orden de trabajo"""
    plate: str = Field(..., min_length=1, max_length=20)
    make_model: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = None
    color: Optional[str] = Field(None, max_length=30)

    @field_validator('plate')
    @classmethod
    def validate_plate(cls, v):
        return _validate_plate(v)

    @field_validator('year')
    @classmethod
    def validate_year(cls, v):
        return _validate_year(v)


class VehicleOut(BaseModel):
    id: UUID
    plate: str
    chassis_number: Optional[str]
    make_model: Optional[str]
    fuel: Optional[str]
    color: Optional[str]
    year: Optional[int]
    mileage: Optional[int]
    additional_data: Optional[str]
    notes: Optional[str]
    client_id: Optional[UUID]
    owner_name: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VehicleList(BaseModel):
    vehicles: List[VehicleOut]
    total: int
    limit: int
    offset: int


class VehicleBrief(BaseModel):
    id: UUID
    plate: str
    make_model: Optional[str]

    class Config:
        from_attributes = True
