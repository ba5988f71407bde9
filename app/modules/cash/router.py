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
from app.modules.cash.models import MovementKind
from app.modules.cash.schemas import (
    CashMovementCreate, CashMovementUpdate, CashMovementOut, CashMovementList, CashBalance
)
from app.modules.cash.service import CashMovementService

cash_router = APIRouter(
    prefix="/cash",
    tags=["Cash"],
    dependencies=[Depends(require_module(TenantModule.INVOICING))]
)


@cash_router.post("/movements", response_model=CashMovementOut, status_code=status.HTTP_201_CREATED)
async def create_cash_movement(
    movement_data: CashMovementCreate,
    auth_context: AuthContext = Depends(require_permission(Permission.CREATE_TRANSACTIONS)),
    db: Session = Depends(get_db)
):
    """
    Registrar un movimiento de caja.

    - **type**: ingreso o egreso
    - **amount**: siempre positivo
    - **work_order_id**: orden asociada (opcional)
    """
    return CashMovementService(db).create_movement(movement_data, auth_context.tenant_id, auth_context.user_id)


@cash_router.get("/movements", response_model=CashMovementList)
async def get_cash_movements(
    start_date: Optional[date] = Query(None, description="Desde (inclusive)"),
    end_date: Optional[date] = Query(None, description="Hasta (inclusive)"),
    movement_type: Optional[MovementKind] = Query(None, alias="type"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_CASH)),
    db: Session = Depends(get_db)
):
    return CashMovementService(db).get_movements(
        auth_context.tenant_id,
        start_date=start_date,
        end_date=end_date,
        movement_type=movement_type,
        limit=limit,
        offset=offset
    )


@cash_router.get("/balance", response_model=CashBalance)
async def get_cash_balance(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_CASH)),
    db: Session = Depends(get_db)
):
    """Ingresos, egresos y balance del período."""
    return CashMovementService(db).get_balance(auth_context.tenant_id, start_date=start_date, end_date=end_date)


@cash_router.get("/movements/{movement_id}", response_model=CashMovementOut)
async def get_cash_movement(
    movement_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_CASH)),
    db: Session = Depends(get_db)
):
    return CashMovementService(db).get_movement(movement_id, auth_context.tenant_id)


@cash_router.patch("/movements/{movement_id}", response_model=CashMovementOut)
async def update_cash_movement(
    movement_id: UUID,
    movement_data: CashMovementUpdate,
    auth_context: AuthContext = Depends(require_permission(Permission.EDIT_TRANSACTIONS)),
    db: Session = Depends(get_db)
):
    return CashMovementService(db).update_movement(movement_id, movement_data, auth_context.tenant_id)


@cash_router.delete("/movements/{movement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cash_movement(
    movement_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.DELETE_TRANSACTIONS)),
    db: Session = Depends(get_db)
):
    CashMovementService(db).delete_movement(movement_id, auth_context.tenant_id)
