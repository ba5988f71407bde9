"""
Router para el módulo de Clientes

Todos los endpoints requieren un taller seleccionado y filtran por tenant_id.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.dependencies.dbDependecies import get_db
from app.common.permissions import Permission
from app.modules.auth.dependencies import require_permission
from app.modules.auth.schemas import AuthContext
from app.modules.clients.schemas import ClientCreate, ClientUpdate, ClientOut, ClientList
from app.modules.clients.service import ClientService
from app.modules.vehicles.schemas import VehicleOut
from app.modules.work_orders.schemas import WorkOrderSummary

clients_router = APIRouter(prefix="/clients", tags=["Clients"])


@clients_router.post("/", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_data: ClientCreate,
    auth_context: AuthContext = Depends(require_permission(Permission.CREATE_CLIENTS)),
    db: Session = Depends(get_db)
):
    """
    Crear un cliente.

    - **first_name**, **last_name**, **phone**: obligatorios
    - **cuit**: opcional, solo números y guiones
    - Respeta el límite de clientes del plan
    """
    return ClientService(db).create_client(client_data, auth_context.tenant_id, auth_context.user_id)


@clients_router.get("/", response_model=ClientList)
async def get_clients(
    search: Optional[str] = Query(None, description="Búsqueda por nombre, email, teléfono o CUIT"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_CLIENTS)),
    db: Session = Depends(get_db)
):
    return ClientService(db).get_clients(auth_context.tenant_id, search=search, limit=limit, offset=offset)


@clients_router.get("/{client_id}", response_model=ClientOut)
async def get_client(
    client_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_CLIENTS)),
    db: Session = Depends(get_db)
):
    return ClientService(db).get_client(client_id, auth_context.tenant_id)


@clients_router.patch("/{client_id}", response_model=ClientOut)
async def update_client(
    client_id: UUID,
    client_data: ClientUpdate,
    auth_context: AuthContext = Depends(require_permission(Permission.EDIT_CLIENTS)),
    db: Session = Depends(get_db)
):
    return ClientService(db).update_client(client_id, client_data, auth_context.tenant_id)


@clients_router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.DELETE_CLIENTS)),
    db: Session = Depends(get_db)
):
    """Eliminar un cliente sin órdenes, presupuestos ni turnos asociados."""
    ClientService(db).delete_client(client_id, auth_context.tenant_id)


@clients_router.get("/{client_id}/vehicles", response_model=List[VehicleOut])
async def get_client_vehicles(
    client_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_VEHICLES)),
    db: Session = Depends(get_db)
):
    return ClientService(db).get_client_vehicles(client_id, auth_context.tenant_id)


@clients_router.get("/{client_id}/work-orders", response_model=List[WorkOrderSummary])
async def get_client_work_orders(
    client_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_JOBS)),
    db: Session = Depends(get_db)
):
    """Historial de órdenes de trabajo del cliente."""
    return ClientService(db).get_client_work_orders(client_id, auth_context.tenant_id)
