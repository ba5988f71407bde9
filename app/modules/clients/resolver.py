"""
Resolución de cliente y vehículo para turnos, órdenes y presupuestos.

Cada uno puede referenciar registros existentes por id o traer los datos de un
cliente/vehículo nuevo, que se crea en la misma transacción.
"""
from typing import Optional, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.modules.clients.models import Client
from app.modules.clients.schemas import ClientCreate
from app.modules.clients.service import ClientService
from app.modules.vehicles.models import Vehicle
from app.modules.vehicles.schemas import VehicleCreate, VehicleInline
from app.modules.vehicles.service import VehicleService


def resolve_client_and_vehicle(
    db: Session,
    tenant_id: UUID,
    user_id: Optional[UUID],
    client_id: Optional[UUID] = None,
    new_client: Optional[ClientCreate] = None,
    vehicle_id: Optional[UUID] = None,
    new_vehicle: Optional[VehicleInline] = None,
) -> Tuple[Client, Vehicle]:
    if new_client is not None:
        client = ClientService(db).build_client(new_client, tenant_id, user_id)
    elif client_id is not None:
        client = ClientService(db).get_client(client_id, tenant_id)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Debes indicar un cliente existente o los datos de un cliente nuevo"
        )

    if new_vehicle is not None:
        vehicle = VehicleService(db).build_vehicle(
            VehicleCreate(**new_vehicle.model_dump(), client_id=client.id),
            tenant_id,
            user_id
        )
    elif vehicle_id is not None:
        vehicle = VehicleService(db).get_vehicle(vehicle_id, tenant_id)
        if vehicle.client_id is not None and vehicle.client_id != client.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El vehículo no pertenece al cliente indicado"
            )
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Debes indicar un vehículo existente o los datos de un vehículo nuevo"
        )

    return client, vehicle
