"""
Servicio de órdenes de trabajo.

Flujo de estados:
    pendiente   -> en_progreso | cancelado
    en_progreso -> completado  | cancelado
completado y cancelado son finales.

Al completar una orden se descuenta el stock de los ítems vinculados a productos
y, si se indica un medio de pago, se registra el ingreso en caja. Todo ocurre en
una sola transacción.
"""
import logging
from typing import Optional, List, Dict, Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.common.mixins import utcnow
from app.database.database import get_tenant_query
from app.modules.cash.models import CashMovement, MovementKind, PaymentMethod
from app.modules.clients.resolver import resolve_client_and_vehicle
from app.modules.plans.constants import PlanResource
from app.modules.plans.service import PlanService
from app.modules.products.models import Product
from app.modules.products.service import ProductService
from app.modules.quotes.models import Quote
from app.modules.tenants.counters import CounterService
from app.modules.work_orders.calculator import calculate_totals, line_subtotal
from app.modules.work_orders.models import WorkOrder, WorkOrderItem, WorkOrderStatus
from app.modules.work_orders.schemas import WorkOrderCreate, WorkOrderUpdate, WorkOrderItemIn

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS = {
    WorkOrderStatus.PENDING: {WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.CANCELLED},
    WorkOrderStatus.IN_PROGRESS: {WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED},
    WorkOrderStatus.COMPLETED: set(),
    WorkOrderStatus.CANCELLED: set(),
}

EDITABLE_STATUSES = {WorkOrderStatus.PENDING, WorkOrderStatus.IN_PROGRESS}


def can_transition(current: WorkOrderStatus, target: WorkOrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


class WorkOrderService:
    """Servicio para gestión de órdenes de trabajo"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self, tenant_id: UUID):
        return get_tenant_query(self.db, WorkOrder, tenant_id).options(
            selectinload(WorkOrder.items),
            selectinload(WorkOrder.client),
            selectinload(WorkOrder.vehicle)
        )

    def _ensure_products(self, items: List[WorkOrderItemIn], tenant_id: UUID) -> None:
        product_ids = {item.product_id for item in items if item.product_id}
        if not product_ids:
            return
        found = get_tenant_query(self.db, Product, tenant_id).filter(Product.id.in_(product_ids)).count()
        if found != len(product_ids):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Uno o más productos no existen o no pertenecen a este taller"
            )

    def _set_items(self, order: WorkOrder, items: List[WorkOrderItemIn], tenant_id: UUID) -> None:
        self._ensure_products(items, tenant_id)
        order.items.clear()
        for position, item in enumerate(items):
            order.items.append(WorkOrderItem(
                tenant_id=tenant_id,
                position=position,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=line_subtotal(item.quantity, item.unit_price),
                product_id=item.product_id
            ))

    def _apply_totals(self, order: WorkOrder) -> None:
        totals = calculate_totals(
            [(item.quantity, item.unit_price) for item in order.items],
            labor_cost=order.labor_cost or 0,
            discount=order.discount or 0,
            apply_vat=order.apply_vat
        )
        order.subtotal = totals.subtotal
        order.discount_amount = totals.discount_amount
        order.taxes = totals.taxes
        order.total = totals.total

    def build_work_order(
        self,
        tenant_id: UUID,
        user_id: Optional[UUID],
        client_id: UUID,
        vehicle_id: UUID,
        general_description: str,
        items: List[WorkOrderItemIn],
        **fields
    ) -> WorkOrder:
        """
        Agrega una orden a la sesión con su número y totales, sin confirmar.
        La usan la creación directa y la conversión de presupuestos.
        """
        PlanService(self.db).ensure_within_limit(tenant_id, PlanResource.MONTHLY_JOBS)

        order = WorkOrder(
            tenant_id=tenant_id,
            number=CounterService(self.db).next_work_order_number(tenant_id),
            client_id=client_id,
            vehicle_id=vehicle_id,
            general_description=general_description,
            status=WorkOrderStatus.PENDING.value,
            created_by=user_id,
            **fields
        )
        self._set_items(order, items, tenant_id)
        self._apply_totals(order)
        self.db.add(order)
        self.db.flush()
        return order

    def create_work_order(self, data: WorkOrderCreate, tenant_id: UUID, user_id: UUID) -> WorkOrder:
        try:
            client, vehicle = resolve_client_and_vehicle(
                self.db, tenant_id, user_id,
                client_id=data.client_id, new_client=data.new_client,
                vehicle_id=data.vehicle_id, new_vehicle=data.new_vehicle
            )
            order = self.build_work_order(
                tenant_id,
                user_id,
                client_id=client.id,
                vehicle_id=vehicle.id,
                general_description=data.general_description,
                items=data.items,
                labor_cost=data.labor_cost,
                discount=data.discount,
                apply_vat=data.apply_vat,
                priority=data.priority.value,
                assigned_technician=data.assigned_technician,
                observations=data.observations
            )
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Integrity error creating work order in tenant {tenant_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="No se pudo generar el número de orden, intenta nuevamente"
            )

        logger.info(f"Work order {order.number} created in tenant {tenant_id}, total {order.total}")
        return self.get_work_order(order.id, tenant_id)

    def get_work_order(self, work_order_id: UUID, tenant_id: UUID) -> WorkOrder:
        order = self._query(tenant_id).filter(WorkOrder.id == work_order_id).first()
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Orden de trabajo no encontrada"
            )
        return order

    def _locked_query(self, work_order_id: UUID, tenant_id: UUID):
        return self._query(tenant_id).filter(
            WorkOrder.id == work_order_id
        ).populate_existing().with_for_update(of=WorkOrder)

    def get_work_order_for_update(self, work_order_id: UUID, tenant_id: UUID) -> WorkOrder:
        """Obtener la orden bloqueando su fila hasta el fin de la transacción."""
        order = self._locked_query(work_order_id, tenant_id).first()
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Orden de trabajo no encontrada"
            )
        return order

    def get_work_orders(
        self,
        tenant_id: UUID,
        status_filter: Optional[WorkOrderStatus] = None,
        client_id: Optional[UUID] = None,
        vehicle_id: Optional[UUID] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Dict[str, Any]:
        query = get_tenant_query(self.db, WorkOrder, tenant_id)

        if status_filter:
            query = query.filter(WorkOrder.status == status_filter.value)
        if client_id:
            query = query.filter(WorkOrder.client_id == client_id)
        if vehicle_id:
            query = query.filter(WorkOrder.vehicle_id == vehicle_id)
        if search:
            query = query.filter(WorkOrder.number.ilike(f"%{search.strip()}%"))

        total = query.count()
        orders = query.order_by(WorkOrder.created_at.desc()).offset(offset).limit(limit).all()

        return {
            "work_orders": orders,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def update_work_order(
        self,
        work_order_id: UUID,
        data: WorkOrderUpdate,
        tenant_id: UUID,
        user_id: UUID
    ) -> WorkOrder:
        order = self.get_work_order(work_order_id, tenant_id)
        if WorkOrderStatus(order.status) not in EDITABLE_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Solo se pueden editar órdenes pendientes o en progreso"
            )

        update_data = data.model_dump(exclude_unset=True, exclude={"items"})
        for field in ("general_description", "labor_cost", "discount", "apply_vat", "priority"):
            if field in update_data and update_data[field] is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"El campo {field} es obligatorio"
                )

        try:
            if update_data.get("client_id") or update_data.get("vehicle_id"):
                client, vehicle = resolve_client_and_vehicle(
                    self.db, tenant_id, user_id,
                    client_id=update_data.get("client_id") or order.client_id,
                    vehicle_id=update_data.get("vehicle_id") or order.vehicle_id
                )
                order.client_id = client.id
                order.vehicle_id = vehicle.id

            for field in ("general_description", "labor_cost", "discount", "apply_vat",
                          "assigned_technician", "observations"):
                if field in update_data:
                    setattr(order, field, update_data[field])
            if update_data.get("priority"):
                order.priority = update_data["priority"].value

            if data.items is not None:
                self._set_items(order, data.items, tenant_id)

            self._apply_totals(order)
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        return self.get_work_order(order.id, tenant_id)

    def change_status(
        self,
        work_order_id: UUID,
        new_status: WorkOrderStatus,
        tenant_id: UUID,
        user_id: UUID,
        payment_method: Optional[PaymentMethod] = None
    ) -> WorkOrder:
        order = self.get_work_order_for_update(work_order_id, tenant_id)
        current = WorkOrderStatus(order.status)

        if not can_transition(current, new_status):
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"No se puede pasar una orden de '{current.value}' a '{new_status.value}'"
            )

        if payment_method is not None and new_status != WorkOrderStatus.COMPLETED:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El medio de pago solo se indica al completar la orden"
            )

        now = utcnow()
        try:
            if new_status == WorkOrderStatus.IN_PROGRESS:
                order.started_at = now
            elif new_status == WorkOrderStatus.COMPLETED:
                order.started_at = order.started_at or now
                order.finished_at = now
                ProductService(self.db).deduct_for_work_order(
                    [(item.product_id, int(item.quantity)) for item in order.items if item.product_id],
                    tenant_id=tenant_id,
                    work_order_id=order.id,
                    reference=order.number,
                    user_id=user_id
                )
                if payment_method is not None and order.total > 0:
                    self.db.add(CashMovement(
                        tenant_id=tenant_id,
                        type=MovementKind.INCOME.value,
                        amount=order.total,
                        concept=f"Cobro orden {order.number}",
                        payment_method=payment_method.value,
                        work_order_id=order.id,
                        date=now.date(),
                        created_by=user_id
                    ))

            order.status = new_status.value
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        logger.info(f"Work order {order.number} moved from {current.value} to {new_status.value}")
        return self.get_work_order(order.id, tenant_id)

    def delete_work_order(self, work_order_id: UUID, tenant_id: UUID) -> None:
        """
        Eliminar una orden.

        Las órdenes completadas no se eliminan porque ya movieron stock.
        Los movimientos de caja y presupuestos vinculados quedan sin referencia.
        """
        order = self.get_work_order(work_order_id, tenant_id)
        if order.status == WorkOrderStatus.COMPLETED.value:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="No se puede eliminar una orden completada"
            )

        get_tenant_query(self.db, CashMovement, tenant_id).filter(
            CashMovement.work_order_id == work_order_id
        ).update({CashMovement.work_order_id: None}, synchronize_session=False)
        get_tenant_query(self.db, Quote, tenant_id).filter(
            Quote.work_order_id == work_order_id
        ).update({Quote.work_order_id: None}, synchronize_session=False)

        self.db.delete(order)
        self.db.commit()
        logger.info(f"Work order {order.number} deleted from tenant {tenant_id}")

    def peek_next_number(self, tenant_id: UUID) -> str:
        return CounterService(self.db).peek_next_work_order_number(tenant_id)
