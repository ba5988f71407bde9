import logging
from datetime import date
from typing import Optional, Dict, Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from app.database.database import get_tenant_query
from app.modules.appointments.models import Appointment, AppointmentStatus
from app.modules.appointments.schemas import AppointmentCreate, AppointmentUpdate
from app.modules.clients.resolver import resolve_client_and_vehicle

logger = logging.getLogger(__name__)


class AppointmentService:
    """Servicio para la agenda de turnos"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self, tenant_id: UUID):
        return get_tenant_query(self.db, Appointment, tenant_id).options(
            selectinload(Appointment.client),
            selectinload(Appointment.vehicle)
        )

    def create_appointment(self, data: AppointmentCreate, tenant_id: UUID, user_id: UUID) -> Appointment:
        """
        Crear un turno.

        El cliente y el vehículo pueden existir o crearse en la misma transacción;
        si falla cualquier validación no queda nada guardado.
        """
        try:
            client, vehicle = resolve_client_and_vehicle(
                self.db, tenant_id, user_id,
                client_id=data.client_id, new_client=data.new_client,
                vehicle_id=data.vehicle_id, new_vehicle=data.new_vehicle
            )

            appointment = Appointment(
                tenant_id=tenant_id,
                client_id=client.id,
                vehicle_id=vehicle.id,
                date=data.date,
                start_time=data.start_time,
                end_time=data.end_time,
                status=data.status.value,
                description=data.description,
                notes=data.notes,
                created_by=user_id
            )
            self.db.add(appointment)
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        logger.info(f"Appointment {appointment.id} created for {appointment.date} in tenant {tenant_id}")
        return self.get_appointment(appointment.id, tenant_id)

    def get_appointment(self, appointment_id: UUID, tenant_id: UUID) -> Appointment:
        appointment = self._query(tenant_id).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Turno no encontrado"
            )
        return appointment

    def get_appointments(
        self,
        tenant_id: UUID,
        on_date: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status_filter: Optional[AppointmentStatus] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Dict[str, Any]:
        if start_date and end_date and start_date > end_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="La fecha de inicio no puede ser posterior a la fecha de fin"
            )

        query = self._query(tenant_id)
        if on_date:
            query = query.filter(Appointment.date == on_date)
        if start_date:
            query = query.filter(Appointment.date >= start_date)
        if end_date:
            query = query.filter(Appointment.date <= end_date)
        if status_filter:
            query = query.filter(Appointment.status == status_filter.value)

        total = query.count()
        appointments = query.order_by(
            Appointment.date.asc(), Appointment.start_time.asc()
        ).offset(offset).limit(limit).all()

        return {
            "appointments": appointments,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def update_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
        tenant_id: UUID,
        user_id: UUID
    ) -> Appointment:
        appointment = self.get_appointment(appointment_id, tenant_id)
        update_data = data.model_dump(exclude_unset=True, exclude={"new_client", "new_vehicle"})

        for field in ("date", "start_time", "end_time", "description", "status"):
            if field in update_data and update_data[field] is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"El campo {field} es obligatorio"
                )

        start_time = update_data.get("start_time", appointment.start_time)
        end_time = update_data.get("end_time", appointment.end_time)
        if end_time <= start_time:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El horario de fin debe ser posterior al de inicio"
            )

        try:
            references_changed = any(
                key in data.model_fields_set for key in ("client_id", "new_client", "vehicle_id", "new_vehicle")
            )
            if references_changed:
                client, vehicle = resolve_client_and_vehicle(
                    self.db, tenant_id, user_id,
                    client_id=update_data.get("client_id") or appointment.client_id,
                    new_client=data.new_client,
                    vehicle_id=update_data.get("vehicle_id") or appointment.vehicle_id,
                    new_vehicle=data.new_vehicle
                )
                appointment.client_id = client.id
                appointment.vehicle_id = vehicle.id

            for field in ("date", "start_time", "end_time", "description", "notes"):
                if field in update_data:
                    setattr(appointment, field, update_data[field])
            if update_data.get("status"):
                appointment.status = update_data["status"].value

            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        return self.get_appointment(appointment.id, tenant_id)

    def change_status(self, appointment_id: UUID, new_status: AppointmentStatus, tenant_id: UUID) -> Appointment:
        appointment = self.get_appointment(appointment_id, tenant_id)
        appointment.status = new_status.value
        self.db.commit()
        logger.info(f"Appointment {appointment_id} moved to {new_status.value}")
        return self.get_appointment(appointment_id, tenant_id)

    def delete_appointment(self, appointment_id: UUID, tenant_id: UUID) -> None:
        appointment = self.get_appointment(appointment_id, tenant_id)
        self.db.delete(appointment)
        self.db.commit()
