from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.dependencies.dbDependecies import get_db
from app.common.permissions import Permission
from app.modules.auth.dependencies import require_permission
from app.modules.auth.schemas import AuthContext
from app.modules.vehicles.schemas import VehicleCreate, VehicleUpdate, VehicleOut, VehicleList
from app.modules.vehicles.service import VehicleService

vehicles_router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@vehicles_router.post("/", response_model=VehicleOut, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    auth_context: AuthContext = Depends(require_permission(Permission.CREATE_VEHICLES)),
    db: Session = Depends(get_db)
):
    """
    Registrar un vehículo.

    La patente se guarda en mayúsculas y debe ser única dentro del taller.
    """
    return VehicleService(db).create_vehicle(vehicle_data, auth_context.tenant_id, auth_context.user_id)


@vehicles_router.get("/", response_model=VehicleList)
async def get_vehicles(
    client_id: Optional[UUID] = Query(None, description="Filtrar por cliente"),
    search: Optional[str] = Query(None, description="Búsqueda por patente, modelo o dueño"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_VEHICLES)),
    db: Session = Depends(get_db)
):
    return VehicleService(db).get_vehicles(
        auth_context.tenant_id, client_id=client_id, search=search, limit=limit, offset=offset
    )


@vehicles_router.get("/{vehicle_id}", response_model=VehicleOut)
async def get_vehicle(
    vehicle_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_VEHICLES)),
    db: Session = Depends(get_db)
):
    return VehicleService(db).get_vehicle(vehicle_id, auth_context.tenant_id)


@vehicles_router.patch("/{vehicle_id}", response_model=VehicleOut)
async def update_vehicle(
    vehicle_id: UUID,
    vehicle_data: VehicleUpdate,
    auth_context: AuthContext = Depends(require_permission(Permission.EDIT_VEHICLES)),
    db: Session = Depends(get_db)
):
    return VehicleService(db).update_vehicle(vehicle_id, vehicle_data, auth_context.tenant_id)


@vehicles_router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(
    vehicle_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.DELETE_VEHICLES)),
    db: Session = Depends(get_db)
):
    VehicleService(db).delete_vehicle(vehicle_id, auth_context.tenant_id)
