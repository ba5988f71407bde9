from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from uuid import UUID
from datetime import date as date_type, datetime

from app.common.validators import validate_time, empty_to_none
from app.modules.appointments.models import AppointmentStatus
from app.modules.clients.schemas import ClientCreate, ClientBrief
from app.modules.vehicles.schemas import VehicleInline, VehicleBrief


def _check_time(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not validate_time(v):
        raise ValueError('Horario inválido. Usa el formato HH:MM')
    return v


def _check_description(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError('La descripción es obligatoria')
    return v


class AppointmentCreate(BaseModel):
    client_id: Optional[UUID] = None
    new_client: Optional[ClientCreate] = Field(None, description="Cliente nuevo a crear junto con el turno")
    vehicle_id: Optional[UUID] = None
    new_vehicle: Optional[VehicleInline] = Field(None, description="Vehículo nuevo a crear junto con el turno")
    date: date_type
    start_time: str = Field(..., description="HH:MM")
    end_time: str = Field(..., description="HH:MM")
    status: AppointmentStatus = AppointmentStatus.PENDING
    description: str = Field(..., min_length=1, max_length=200)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, v):
        return _check_time(v)

    @field_validator('description')
    @classmethod
    def strip_description(cls, v):
        return _check_description(v)

    @field_validator('notes', mode='before')
    @classmethod
    def blank_notes(cls, v):
        return empty_to_none(v) if isinstance(v, str) else v

    @model_validator(mode='after')
    def check_references(self):
        if self.client_id is None and self.new_client is None:
            raise ValueError('Debes indicar client_id o new_client')
        if self.vehicle_id is None and self.new_vehicle is None:
            raise ValueError('Debes indicar vehicle_id o new_vehicle')
        if self.end_time <= self.start_time:
            raise ValueError('El horario de fin debe ser posterior al de inicio')
        return self


class AppointmentUpdate(BaseModel):
    client_id: Optional[UUID] = None
    new_client: Optional[ClientCreate] = None
    vehicle_id: Optional[UUID] = None
    new_vehicle: Optional[VehicleInline] = None
    date: Optional[date_type] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    description: Optional[str] = Field(None, min_length=1, max_length=200)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, v):
        return _check_time(v)

    @field_validator('description')
    @classmethod
    def strip_description(cls, v):
        return _check_description(v)

    @field_validator('notes', mode='before')
    @classmethod
    def blank_notes(cls, v):
        return empty_to_none(v) if isinstance(v, str) else v


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentOut(BaseModel):
    id: UUID
    client_id: UUID
    vehicle_id: UUID
    client: Optional[ClientBrief] = None
    vehicle: Optional[VehicleBrief] = None
    date: date_type
    start_time: str
    end_time: str
    status: AppointmentStatus
    description: str
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AppointmentList(BaseModel):
    appointments: List[AppointmentOut]
    total: int
    limit: int
    offset: int
