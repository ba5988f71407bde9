import logging
from datetime import date
from typing import Optional, Dict, Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.common.mixins import utcnow
from app.database.database import get_tenant_query
from app.modules.cash.models import CashMovement, MovementKind
from app.modules.cash.schemas import CashMovementCreate, CashMovementUpdate, CashBalance
from app.modules.work_orders.calculator import to_money
from app.modules.work_orders.models import WorkOrder

logger = logging.getLogger(__name__)


def _check_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="La fecha de inicio no puede ser posterior a la fecha de fin"
        )


class CashMovementService:
    """Servicio para gestión de movimientos de caja"""

    def __init__(self, db: Session):
        self.db = db

    def _ensure_work_order(self, work_order_id: Optional[UUID], tenant_id: UUID) -> None:
        if work_order_id is None:
            return
        exists = get_tenant_query(self.db, WorkOrder, tenant_id).filter(WorkOrder.id == work_order_id).first()
        if not exists:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Orden de trabajo no encontrada"
            )

    def filtered_query(
        self,
        tenant_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        movement_type: Optional[MovementKind] = None
    ):
        _check_range(start_date, end_date)
        query = get_tenant_query(self.db, CashMovement, tenant_id)
        # Las fechas son días completos: ambos extremos se incluyen
        if start_date:
            query = query.filter(CashMovement.date >= start_date)
        if end_date:
            query = query.filter(CashMovement.date <= end_date)
        if movement_type:
            query = query.filter(CashMovement.type == movement_type.value)
        return query

    def create_movement(self, movement_data: CashMovementCreate, tenant_id: UUID, user_id: UUID) -> CashMovement:
        """Registrar un ingreso o egreso de caja"""
        self._ensure_work_order(movement_data.work_order_id, tenant_id)

        try:
            movement = CashMovement(
                tenant_id=tenant_id,
                type=movement_data.type.value,
                amount=to_money(movement_data.amount),
                concept=movement_data.concept,
                payment_method=movement_data.payment_method.value,
                work_order_id=movement_data.work_order_id,
                date=movement_data.date or utcnow().date(),
                notes=movement_data.notes,
                created_by=user_id
            )
            self.db.add(movement)
            self.db.commit()
            self.db.refresh(movement)
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Error de integridad al crear el movimiento"
            )

        logger.info(f"Cash movement {movement.type} {movement.amount} registered in tenant {tenant_id}")
        return movement

    def get_movement(self, movement_id: UUID, tenant_id: UUID) -> CashMovement:
        movement = get_tenant_query(self.db, CashMovement, tenant_id).filter(CashMovement.id == movement_id).first()
        if not movement:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Movimiento de caja no encontrado"
            )
        return movement

    def get_movements(
        self,
        tenant_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        movement_type: Optional[MovementKind] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Dict[str, Any]:
        query = self.filtered_query(tenant_id, start_date, end_date, movement_type)
        total = query.count()
        movements = query.order_by(
            CashMovement.date.desc(), CashMovement.created_at.desc()
        ).offset(offset).limit(limit).all()

        return {
            "movements": movements,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def update_movement(self, movement_id: UUID, movement_data: CashMovementUpdate, tenant_id: UUID) -> CashMovement:
        movement = self.get_movement(movement_id, tenant_id)
        update_data = movement_data.model_dump(exclude_unset=True)

        for field in ("type", "amount", "concept", "payment_method", "date"):
            if field in update_data and update_data[field] is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"El campo {field} es obligatorio"
                )

        if update_data.get("work_order_id"):
            self._ensure_work_order(update_data["work_order_id"], tenant_id)

        for field, value in update_data.items():
            if field in ("type", "payment_method"):
                value = value.value
            elif field == "amount":
                value = to_money(value)
            setattr(movement, field, value)

        self.db.commit()
        self.db.refresh(movement)
        return movement

    def delete_movement(self, movement_id: UUID, tenant_id: UUID) -> None:
        movement = self.get_movement(movement_id, tenant_id)
        self.db.delete(movement)
        self.db.commit()
        logger.info(f"Cash movement {movement_id} deleted from tenant {tenant_id}")

    def get_balance(
        self,
        tenant_id: UUID,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> CashBalance:
        """Totales de ingresos y egresos del período y su diferencia"""
        rows = self.filtered_query(tenant_id, start_date, end_date).with_entities(
            CashMovement.type,
            func.coalesce(func.sum(CashMovement.amount), 0),
            func.count(CashMovement.id)
        ).group_by(CashMovement.type).all()

        sums = {MovementKind.INCOME.value: to_money(0), MovementKind.EXPENSE.value: to_money(0)}
        count = 0
        for movement_type, amount, movement_count in rows:
            sums[movement_type] = to_money(amount)
            count += movement_count

        ingresos = sums[MovementKind.INCOME.value]
        egresos = sums[MovementKind.EXPENSE.value]
        return CashBalance(
            start_date=start_date,
            end_date=end_date,
            ingresos=ingresos,
            egresos=egresos,
            balance=ingresos - egresos,
            movements_count=count
        )
