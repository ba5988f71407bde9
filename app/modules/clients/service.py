"""
Servicio de clientes.

Todas las consultas se filtran por tenant_id; un cliente de otro taller se
comporta como inexistente.
"""
import logging
from typing import Optional, List, Dict, Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.database.database import get_tenant_query
from app.modules.clients.models import Client
from app.modules.clients.schemas import ClientCreate, ClientUpdate
from app.modules.plans.constants import PlanResource
from app.modules.plans.service import PlanService
from app.modules.vehicles.models import Vehicle
from app.modules.work_orders.models import WorkOrder
from app.modules.quotes.models import Quote
from app.modules.appointments.models import Appointment

logger = logging.getLogger(__name__)


class ClientService:
    """Servicio para gestión de clientes"""

    def __init__(self, db: Session):
        self.db = db

    def build_client(self, client_data: ClientCreate, tenant_id: UUID, user_id: Optional[UUID]) -> Client:
        """
        Agrega el cliente a la sesión sin confirmar la transacción.
        Lo usan también turnos y órdenes que crean clientes en línea.
        """
        PlanService(self.db).ensure_within_limit(tenant_id, PlanResource.CLIENTS)

        client = Client(
            tenant_id=tenant_id,
            created_by=user_id,
            **client_data.model_dump()
        )
        self.db.add(client)
        self.db.flush()
        return client

    def create_client(self, client_data: ClientCreate, tenant_id: UUID, user_id: UUID) -> Client:
        client = self.build_client(client_data, tenant_id, user_id)
        self.db.commit()
        self.db.refresh(client)
        logger.info(f"Client {client.id} created in tenant {tenant_id}")
        return client

    def get_client(self, client_id: UUID, tenant_id: UUID) -> Client:
        client = get_tenant_query(self.db, Client, tenant_id).filter(Client.id == client_id).first()
        if not client:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cliente no encontrado"
            )
        return client

    def get_clients(
        self,
        tenant_id: UUID,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Dict[str, Any]:
        query = get_tenant_query(self.db, Client, tenant_id)

        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                Client.first_name.ilike(term),
                Client.last_name.ilike(term),
                Client.email.ilike(term),
                Client.phone.ilike(term),
                Client.cuit.ilike(term)
            ))

        total = query.count()
        clients = query.order_by(Client.created_at.desc()).offset(offset).limit(limit).all()

        return {
            "clients": clients,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def update_client(self, client_id: UUID, client_data: ClientUpdate, tenant_id: UUID) -> Client:
        client = self.get_client(client_id, tenant_id)

        update_data = client_data.model_dump(exclude_unset=True)
        for field in ("first_name", "last_name", "phone"):
            if field in update_data and update_data[field] is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"El campo {field} es obligatorio"
                )

        for field, value in update_data.items():
            setattr(client, field, value)

        self.db.commit()
        self.db.refresh(client)
        return client

    def delete_client(self, client_id: UUID, tenant_id: UUID) -> None:
        """
        Eliminar cliente.

        No se permite si tiene órdenes, presupuestos o turnos asociados.
        Sus vehículos quedan sin cliente (se conserva el nombre del dueño).
        """
        client = self.get_client(client_id, tenant_id)

        for model, label in (
            (WorkOrder, "órdenes de trabajo"),
            (Quote, "presupuestos"),
            (Appointment, "turnos"),
        ):
            in_use = get_tenant_query(self.db, model, tenant_id).filter(model.client_id == client_id).count()
            if in_use:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"No se puede eliminar el cliente: tiene {in_use} {label} asociados"
                )

        vehicles = get_tenant_query(self.db, Vehicle, tenant_id).filter(Vehicle.client_id == client_id).all()
        for vehicle in vehicles:
            vehicle.owner_name = vehicle.owner_name or client.full_name
            vehicle.client_id = None

        self.db.delete(client)
        self.db.commit()
        logger.info(f"Client {client_id} deleted from tenant {tenant_id} ({len(vehicles)} vehicle(s) detached)")

    def get_client_vehicles(self, client_id: UUID, tenant_id: UUID) -> List[Vehicle]:
        self.get_client(client_id, tenant_id)
        return get_tenant_query(self.db, Vehicle, tenant_id).filter(
            Vehicle.client_id == client_id
        ).order_by(Vehicle.created_at.desc()).all()

    def get_client_work_orders(self, client_id: UUID, tenant_id: UUID) -> List[WorkOrder]:
        self.get_client(client_id, tenant_id)
        return get_tenant_query(self.db, WorkOrder, tenant_id).filter(
            WorkOrder.client_id == client_id
        ).order_by(WorkOrder.created_at.desc()).all()
