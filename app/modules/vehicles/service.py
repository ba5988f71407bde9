import logging
from typing import Optional, Dict, Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.database.database import get_tenant_query
from app.modules.clients.models import Client
from app.modules.vehicles.models import Vehicle
from app.modules.vehicles.schemas import VehicleCreate, VehicleUpdate
from app.modules.plans.constants import PlanResource
from app.modules.plans.service import PlanService
from app.modules.work_orders.models import WorkOrder
from app.modules.quotes.models import Quote
from app.modules.appointments.models import Appointment

logger = logging.getLogger(__name__)


class VehicleService:
    """Servicio para gestión de vehículos"""

    def __init__(self, db: Session):
        self.db = db

    def _ensure_client(self, client_id: Optional[UUID], tenant_id: UUID) -> None:
        if client_id is None:
            return
        exists = get_tenant_query(self.db, Client, tenant_id).filter(Client.id == client_id).first()
        if not exists:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cliente no encontrado"
            )

    def _ensure_unique_plate(self, plate: str, tenant_id: UUID, exclude_id: Optional[UUID] = None) -> None:
        query = get_tenant_query(self.db, Vehicle, tenant_id).filter(Vehicle.plate == plate)
        if exclude_id:
            query = query.filter(Vehicle.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Ya existe un vehículo con la patente {plate}"
            )

    def build_vehicle(self, vehicle_data: VehicleCreate, tenant_id: UUID, user_id: Optional[UUID]) -> Vehicle:
        """Agrega el vehículo a la sesión sin confirmar la transacción."""
        PlanService(self.db).ensure_within_limit(tenant_id, PlanResource.VEHICLES)
        self._ensure_client(vehicle_data.client_id, tenant_id)
        self._ensure_unique_plate(vehicle_data.plate, tenant_id)

        vehicle = Vehicle(
            tenant_id=tenant_id,
            created_by=user_id,
            **vehicle_data.model_dump()
        )
        self.db.add(vehicle)
        self.db.flush()
        return vehicle

    def create_vehicle(self, vehicle_data: VehicleCreate, tenant_id: UUID, user_id: UUID) -> Vehicle:
        vehicle = self.build_vehicle(vehicle_data, tenant_id, user_id)
        self.db.commit()
        self.db.refresh(vehicle)
        logger.info(f"Vehicle {vehicle.plate} created in tenant {tenant_id}")
        return vehicle

    def get_vehicle(self, vehicle_id: UUID, tenant_id: UUID) -> Vehicle:
        vehicle = get_tenant_query(self.db, Vehicle, tenant_id).filter(Vehicle.id == vehicle_id).first()
        if not vehicle:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Vehículo no encontrado"
            )
        return vehicle

    def get_vehicles(
        self,
        tenant_id: UUID,
        client_id: Optional[UUID] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Dict[str, Any]:
        query = get_tenant_query(self.db, Vehicle, tenant_id)

        if client_id:
            query = query.filter(Vehicle.client_id == client_id)

        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                Vehicle.plate.ilike(term),
                Vehicle.make_model.ilike(term),
                Vehicle.owner_name.ilike(term)
            ))

        total = query.count()
        vehicles = query.order_by(Vehicle.created_at.desc()).offset(offset).limit(limit).all()

        return {
            "vehicles": vehicles,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def update_vehicle(self, vehicle_id: UUID, vehicle_data: VehicleUpdate, tenant_id: UUID) -> Vehicle:
        vehicle = self.get_vehicle(vehicle_id, tenant_id)
        update_data = vehicle_data.model_dump(exclude_unset=True)

        if "plate" in update_data:
            if update_data["plate"] is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="La patente es obligatoria"
                )
            self._ensure_unique_plate(update_data["plate"], tenant_id, exclude_id=vehicle.id)

        if update_data.get("client_id"):
            self._ensure_client(update_data["client_id"], tenant_id)

        for field, value in update_data.items():
            setattr(vehicle, field, value)

        self.db.commit()
        self.db.refresh(vehicle)
        return vehicle

    def delete_vehicle(self, vehicle_id: UUID, tenant_id: UUID) -> None:
        """No se permite eliminar vehículos con órdenes, presupuestos o turnos."""
        vehicle = self.get_vehicle(vehicle_id, tenant_id)

        for model, label in (
            (WorkOrder, "órdenes de trabajo"),
            (Quote, "presupuestos"),
            (Appointment, "turnos"),
        ):
            in_use = get_tenant_query(self.db, model, tenant_id).filter(model.vehicle_id == vehicle_id).count()
            if in_use:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"No se puede eliminar el vehículo: tiene {in_use} {label} asociados"
                )

        self.db.delete(vehicle)
        self.db.commit()
        logger.info(f"Vehicle {vehicle_id} deleted from tenant {tenant_id}")
