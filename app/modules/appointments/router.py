from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
from datetime import date

from app.dependencies.dbDependecies import get_db
from app.common.permissions import Permission
from app.modules.auth.dependencies import require_permission
from app.modules.auth.schemas import AuthContext
from app.modules.plans.constants import TenantModule
from app.modules.plans.dependencies import require_module
from app.modules.appointments.models import AppointmentStatus
from app.modules.appointments.schemas import (
    AppointmentCreate, AppointmentUpdate, AppointmentStatusUpdate, AppointmentOut, AppointmentList
)
from app.modules.appointments.service import AppointmentService

appointments_router = APIRouter(
    prefix="/appointments",
    tags=["Appointments"],
    dependencies=[Depends(require_module(TenantModule.SCHEDULE))]
)


@appointments_router.post("/", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment_data: AppointmentCreate,
    auth_context: AuthContext = Depends(require_permission(Permission.CREATE_APPOINTMENTS)),
    db: Session = Depends(get_db)
):
    """
    Agendar un turno.

    - Usa **client_id** / **vehicle_id** existentes o envía **new_client** / **new_vehicle**
    - Horarios en formato HH:MM, el fin debe ser posterior al inicio
    """
    return AppointmentService(db).create_appointment(appointment_data, auth_context.tenant_id, auth_context.user_id)


@appointments_router.get("/", response_model=AppointmentList)
async def get_appointments(
    on_date: Optional[date] = Query(None, alias="date", description="Turnos de un día"),
    start_date: Optional[date] = Query(None, description="Desde (inclusive)"),
    end_date: Optional[date] = Query(None, description="Hasta (inclusive)"),
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_SCHEDULE)),
    db: Session = Depends(get_db)
):
    """Listar turnos ordenados por fecha y horario de inicio."""
    return AppointmentService(db).get_appointments(
        auth_context.tenant_id,
        on_date=on_date,
        start_date=start_date,
        end_date=end_date,
        status_filter=status_filter,
        limit=limit,
        offset=offset
    )


@appointments_router.get("/{appointment_id}", response_model=AppointmentOut)
async def get_appointment(
    appointment_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_SCHEDULE)),
    db: Session = Depends(get_db)
):
    return AppointmentService(db).get_appointment(appointment_id, auth_context.tenant_id)


@appointments_router.patch("/{appointment_id}", response_model=AppointmentOut)
async def update_appointment(
    appointment_id: UUID,
    appointment_data: AppointmentUpdate,
    auth_context: AuthContext = Depends(require_permission(Permission.EDIT_APPOINTMENTS)),
    db: Session = Depends(get_db)
):
    return AppointmentService(db).update_appointment(
        appointment_id, appointment_data, auth_context.tenant_id, auth_context.user_id
    )


@appointments_router.patch("/{appointment_id}/status", response_model=AppointmentOut)
async def change_appointment_status(
    appointment_id: UUID,
    status_data: AppointmentStatusUpdate,
    auth_context: AuthContext = Depends(require_permission(Permission.EDIT_APPOINTMENTS)),
    db: Session = Depends(get_db)
):
    return AppointmentService(db).change_status(appointment_id, status_data.status, auth_context.tenant_id)


@appointments_router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    appointment_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.DELETE_APPOINTMENTS)),
    db: Session = Depends(get_db)
):
    AppointmentService(db).delete_appointment(appointment_id, auth_context.tenant_id)
