import logging
from typing import Optional, Dict, Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.database.database import get_tenant_query
from app.modules.clients.resolver import resolve_client_and_vehicle
from app.modules.products.models import Product
from app.modules.quotes.models import Quote, QuoteItem, QuoteStatus
from app.modules.quotes.schemas import QuoteCreate, QuoteUpdate, QuoteConvert
from app.modules.tenants.counters import CounterService
from app.modules.work_orders.calculator import calculate_totals, line_subtotal
from app.modules.work_orders.models import WorkOrder
from app.modules.work_orders.schemas import WorkOrderItemIn
from app.modules.work_orders.service import WorkOrderService

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS = {
    QuoteStatus.DRAFT: {QuoteStatus.SENT, QuoteStatus.APPROVED, QuoteStatus.REJECTED},
    QuoteStatus.SENT: {QuoteStatus.APPROVED, QuoteStatus.REJECTED},
    QuoteStatus.APPROVED: set(),
    QuoteStatus.REJECTED: set(),
}

EDITABLE_STATUSES = {QuoteStatus.DRAFT, QuoteStatus.SENT}


class QuoteService:
    """Servicio para gestión de presupuestos"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self, tenant_id: UUID):
        return get_tenant_query(self.db, Quote, tenant_id).options(
            selectinload(Quote.items),
            selectinload(Quote.client),
            selectinload(Quote.vehicle)
        )

    def _set_items(self, quote: Quote, items, tenant_id: UUID) -> None:
        product_ids = {item.product_id for item in items if item.product_id}
        if product_ids:
            found = get_tenant_query(self.db, Product, tenant_id).filter(Product.id.in_(product_ids)).count()
            if found != len(product_ids):
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Uno o más productos no existen o no pertenecen a este taller"
                )

        quote.items.clear()
        for position, item in enumerate(items):
            quote.items.append(QuoteItem(
                tenant_id=tenant_id,
                position=position,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=line_subtotal(item.quantity, item.unit_price),
                product_id=item.product_id
            ))

    def _apply_totals(self, quote: Quote) -> None:
        totals = calculate_totals(
            [(item.quantity, item.unit_price) for item in quote.items],
            apply_vat=quote.apply_vat
        )
        quote.subtotal = totals.subtotal
        quote.vat = totals.taxes
        quote.total = totals.total

    def create_quote(self, data: QuoteCreate, tenant_id: UUID, user_id: UUID) -> Quote:
        try:
            client, vehicle = resolve_client_and_vehicle(
                self.db, tenant_id, user_id,
                client_id=data.client_id, new_client=data.new_client,
                vehicle_id=data.vehicle_id, new_vehicle=data.new_vehicle
            )
            quote = Quote(
                tenant_id=tenant_id,
                number=CounterService(self.db).next_quote_number(tenant_id),
                client_id=client.id,
                vehicle_id=vehicle.id,
                apply_vat=data.apply_vat,
                status=QuoteStatus.DRAFT.value,
                valid_until=data.valid_until,
                notes=data.notes,
                created_by=user_id
            )
            self._set_items(quote, data.items, tenant_id)
            self._apply_totals(quote)
            self.db.add(quote)
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Integrity error creating quote in tenant {tenant_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="No se pudo generar el número de presupuesto, intenta nuevamente"
            )

        logger.info(f"Quote {quote.number} created in tenant {tenant_id}")
        return self.get_quote(quote.id, tenant_id)

    def get_quote(self, quote_id: UUID, tenant_id: UUID) -> Quote:
        quote = self._query(tenant_id).filter(Quote.id == quote_id).first()
        if not quote:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Presupuesto no encontrado"
            )
        return quote

    def get_quotes(
        self,
        tenant_id: UUID,
        status_filter: Optional[QuoteStatus] = None,
        client_id: Optional[UUID] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Dict[str, Any]:
        query = get_tenant_query(self.db, Quote, tenant_id)
        if status_filter:
            query = query.filter(Quote.status == status_filter.value)
        if client_id:
            query = query.filter(Quote.client_id == client_id)

        total = query.count()
        quotes = query.order_by(Quote.created_at.desc()).offset(offset).limit(limit).all()
        return {
            "quotes": quotes,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def update_quote(self, quote_id: UUID, data: QuoteUpdate, tenant_id: UUID, user_id: UUID) -> Quote:
        quote = self.get_quote(quote_id, tenant_id)
        if QuoteStatus(quote.status) not in EDITABLE_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Solo se pueden editar presupuestos en borrador o enviados"
            )

        update_data = data.model_dump(exclude_unset=True, exclude={"items"})
        if "apply_vat" in update_data and update_data["apply_vat"] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El campo apply_vat es obligatorio"
            )

        try:
            if update_data.get("client_id") or update_data.get("vehicle_id"):
                client, vehicle = resolve_client_and_vehicle(
                    self.db, tenant_id, user_id,
                    client_id=update_data.get("client_id") or quote.client_id,
                    vehicle_id=update_data.get("vehicle_id") or quote.vehicle_id
                )
                quote.client_id = client.id
                quote.vehicle_id = vehicle.id

            for field in ("apply_vat", "valid_until", "notes"):
                if field in update_data:
                    setattr(quote, field, update_data[field])

            if data.items is not None:
                self._set_items(quote, data.items, tenant_id)

            self._apply_totals(quote)
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        return self.get_quote(quote.id, tenant_id)

    def change_status(self, quote_id: UUID, new_status: QuoteStatus, tenant_id: UUID) -> Quote:
        quote = self.get_quote(quote_id, tenant_id)
        current = QuoteStatus(quote.status)

        if new_status not in ALLOWED_TRANSITIONS[current]:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"No se puede pasar un presupuesto de '{current.value}' a '{new_status.value}'"
            )

        quote.status = new_status.value
        self.db.commit()
        logger.info(f"Quote {quote.number} moved from {current.value} to {new_status.value}")
        return self.get_quote(quote.id, tenant_id)

    def convert_to_work_order(
        self,
        quote_id: UUID,
        data: QuoteConvert,
        tenant_id: UUID,
        user_id: UUID
    ) -> WorkOrder:
        """
        Generar una orden de trabajo a partir de un presupuesto aprobado.
        Cada presupuesto se convierte una sola vez.
        """
        quote = self.get_quote(quote_id, tenant_id)

        if quote.status != QuoteStatus.APPROVED.value:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Solo se pueden convertir presupuestos aprobados"
            )
        if quote.work_order_id is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="El presupuesto ya fue convertido en orden de trabajo"
            )

        items = [
            WorkOrderItemIn(
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                product_id=item.product_id
            )
            for item in quote.items
        ]

        work_order_service = WorkOrderService(self.db)
        try:
            order = work_order_service.build_work_order(
                tenant_id,
                user_id,
                client_id=quote.client_id,
                vehicle_id=quote.vehicle_id,
                general_description=data.general_description or f"Trabajo según presupuesto {quote.number}",
                items=items,
                labor_cost=data.labor_cost,
                discount=0,
                apply_vat=quote.apply_vat,
                priority=data.priority.value,
                assigned_technician=data.assigned_technician,
                observations=quote.notes
            )
            quote.work_order_id = order.id
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise

        logger.info(f"Quote {quote.number} converted into work order {order.number}")
        return work_order_service.get_work_order(order.id, tenant_id)

    def delete_quote(self, quote_id: UUID, tenant_id: UUID) -> None:
        quote = self.get_quote(quote_id, tenant_id)
        self.db.delete(quote)
        self.db.commit()
        logger.info(f"Quote {quote.number} deleted from tenant {tenant_id}")
