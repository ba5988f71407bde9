from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.dependencies.dbDependecies import get_db
from app.common.permissions import Permission
from app.modules.auth.dependencies import require_permission, require_tenant, check_permission
from app.modules.auth.schemas import AuthContext
from app.modules.plans.constants import TenantModule
from app.modules.plans.dependencies import require_module
from app.modules.work_orders.models import WorkOrderStatus
from app.modules.work_orders.schemas import (
    WorkOrderCreate, WorkOrderUpdate, WorkOrderStatusChange, WorkOrderOut, WorkOrderList, NextNumberOut
)
from app.modules.work_orders.service import WorkOrderService

work_orders_router = APIRouter(
    prefix="/work-orders",
    tags=["Work Orders"],
    dependencies=[Depends(require_module(TenantModule.JOBS))]
)


@work_orders_router.post("/", response_model=WorkOrderOut, status_code=status.HTTP_201_CREATED)
async def create_work_order(
    work_order_data: WorkOrderCreate,
    auth_context: AuthContext = Depends(require_permission(Permission.CREATE_JOBS)),
    db: Session = Depends(get_db)
):
    """
    Crear una orden de trabajo.

    - Numeración automática OT-YYYYMM-XXXX
    - Cliente y vehículo existentes o nuevos (**new_client** / **new_vehicle**)
    - Totales calculados en el servidor
    - Respeta el límite mensual de trabajos del plan
    """
    return WorkOrderService(db).create_work_order(work_order_data, auth_context.tenant_id, auth_context.user_id)


@work_orders_router.get("/", response_model=WorkOrderList)
async def get_work_orders(
    status_filter: Optional[WorkOrderStatus] = Query(None, alias="status"),
    client_id: Optional[UUID] = Query(None),
    vehicle_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None, description="Búsqueda por número"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_JOBS)),
    db: Session = Depends(get_db)
):
    return WorkOrderService(db).get_work_orders(
        auth_context.tenant_id,
        status_filter=status_filter,
        client_id=client_id,
        vehicle_id=vehicle_id,
        search=search,
        limit=limit,
        offset=offset
    )


@work_orders_router.get("/next-number", response_model=NextNumberOut)
async def get_next_work_order_number(
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_JOBS)),
    db: Session = Depends(get_db)
):
    """Número que recibiría la próxima orden. No lo reserva."""
    return NextNumberOut(next_number=WorkOrderService(db).peek_next_number(auth_context.tenant_id))


@work_orders_router.get("/{work_order_id}", response_model=WorkOrderOut)
async def get_work_order(
    work_order_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_JOBS)),
    db: Session = Depends(get_db)
):
    return WorkOrderService(db).get_work_order(work_order_id, auth_context.tenant_id)


@work_orders_router.patch("/{work_order_id}", response_model=WorkOrderOut)
async def update_work_order(
    work_order_id: UUID,
    work_order_data: WorkOrderUpdate,
    auth_context: AuthContext = Depends(require_permission(Permission.EDIT_JOBS)),
    db: Session = Depends(get_db)
):
    """Editar una orden pendiente o en progreso. Los totales se recalculan."""
    return WorkOrderService(db).update_work_order(
        work_order_id, work_order_data, auth_context.tenant_id, auth_context.user_id
    )


@work_orders_router.patch("/{work_order_id}/status", response_model=WorkOrderOut)
async def change_work_order_status(
    work_order_id: UUID,
    status_data: WorkOrderStatusChange,
    auth_context: AuthContext = Depends(require_tenant()),
    db: Session = Depends(get_db)
):
    """
    Cambiar el estado de una orden.

    - Completar requiere **complete_jobs**; el resto de cambios **edit_jobs**
    - Al completar se descuenta el stock de los productos usados
    - **payment_method** registra el cobro en caja (requiere **create_transactions**)
    """
    if status_data.status == WorkOrderStatus.COMPLETED:
        check_permission(auth_context, Permission.COMPLETE_JOBS)
    else:
        check_permission(auth_context, Permission.EDIT_JOBS)
    if status_data.payment_method is not None:
        check_permission(auth_context, Permission.CREATE_TRANSACTIONS)

    return WorkOrderService(db).change_status(
        work_order_id,
        status_data.status,
        auth_context.tenant_id,
        auth_context.user_id,
        payment_method=status_data.payment_method
    )


@work_orders_router.delete("/{work_order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_work_order(
    work_order_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.DELETE_JOBS)),
    db: Session = Depends(get_db)
):
    WorkOrderService(db).delete_work_order(work_order_id, auth_context.tenant_id)
