"""
Reportes del taller.

No crea tablas propias: consulta clientes, órdenes, agenda, inventario y caja
siempre filtrando por el taller.
"""
import logging
from datetime import date, datetime, time, timezone
from typing import Optional, List, Dict, Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.common.mixins import utcnow
from app.modules.appointments.models import Appointment, AppointmentStatus
from app.modules.cash.service import CashMovementService
from app.modules.cash.models import CashMovement
from app.modules.clients.models import Client
from app.modules.products.models import Product
from app.modules.vehicles.models import Vehicle
from app.modules.work_orders.calculator import to_money
from app.modules.work_orders.models import WorkOrder, WorkOrderStatus
from app.modules.reports.schemas import DashboardOut, CashSummary

logger = logging.getLogger(__name__)


CASH_CSV_HEADERS = {
    "date": "Fecha",
    "type": "Tipo",
    "concept": "Concepto",
    "payment_method": "Medio de pago",
    "amount": "Importe",
    "work_order": "Orden",
    "notes": "Notas",
}

WORK_ORDERS_CSV_HEADERS = {
    "number": "Número",
    "created_at": "Fecha",
    "client": "Cliente",
    "plate": "Patente",
    "status": "Estado",
    "subtotal": "Subtotal",
    "discount_amount": "Descuento",
    "taxes": "IVA",
    "total": "Total",
}


def month_start(today: date) -> date:
    return today.replace(day=1)


class ReportService:
    """Servicio de reportes para un taller"""

    def __init__(self, db: Session, tenant_id: UUID):
        self.db = db
        self.tenant_id = tenant_id

    def _count(self, model, *criteria) -> int:
        return self.db.query(func.count(model.id)).filter(model.tenant_id == self.tenant_id, *criteria).scalar() or 0

    def dashboard(self, today: Optional[date] = None) -> DashboardOut:
        today = today or utcnow().date()
        first_day = month_start(today)
        first_moment = datetime.combine(first_day, time.min, tzinfo=timezone.utc)

        by_status = {s.value: 0 for s in WorkOrderStatus}
        rows = self.db.query(WorkOrder.status, func.count(WorkOrder.id)).filter(
            WorkOrder.tenant_id == self.tenant_id
        ).group_by(WorkOrder.status).all()
        for order_status, count in rows:
            by_status[order_status] = count

        revenue, completed = self.db.query(
            func.coalesce(func.sum(WorkOrder.total), 0),
            func.count(WorkOrder.id)
        ).filter(
            WorkOrder.tenant_id == self.tenant_id,
            WorkOrder.status == WorkOrderStatus.COMPLETED.value,
            WorkOrder.finished_at >= first_moment
        ).one()

        balance = CashMovementService(self.db).get_balance(self.tenant_id, start_date=first_day, end_date=today)

        return DashboardOut(
            generated_on=today,
            clients_count=self._count(Client),
            vehicles_count=self._count(Vehicle),
            work_orders_by_status=by_status,
            open_work_orders=by_status[WorkOrderStatus.PENDING.value] + by_status[WorkOrderStatus.IN_PROGRESS.value],
            today_appointments=self._count(
                Appointment,
                Appointment.date == today,
                Appointment.status != AppointmentStatus.CANCELLED.value
            ),
            low_stock_products=self._count(Product, Product.active.is_(True), Product.stock <= Product.min_stock),
            month_cash=CashSummary(ingresos=balance.ingresos, egresos=balance.egresos, balance=balance.balance),
            month_revenue=to_money(revenue),
            month_completed_orders=completed
        )

    def cash_movements_rows(self, start_date: Optional[date], end_date: Optional[date]) -> List[Dict[str, Any]]:
        movements = CashMovementService(self.db).filtered_query(self.tenant_id, start_date, end_date).options(
            selectinload(CashMovement.work_order)
        ).order_by(CashMovement.date.asc(), CashMovement.created_at.asc()).all()

        logger.info(f"Exporting {len(movements)} cash movements for tenant {self.tenant_id}")
        return [
            {
                "date": m.date,
                "type": m.type,
                "concept": m.concept,
                "payment_method": m.payment_method,
                "amount": m.amount,
                "work_order": m.work_order.number if m.work_order else None,
                "notes": m.notes,
            }
            for m in movements
        ]

    def work_orders_rows(self, start_date: Optional[date], end_date: Optional[date]) -> List[Dict[str, Any]]:
        query = self.db.query(WorkOrder).options(
            selectinload(WorkOrder.client),
            selectinload(WorkOrder.vehicle)
        ).filter(WorkOrder.tenant_id == self.tenant_id)
        if start_date:
            query = query.filter(WorkOrder.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
        if end_date:
            query = query.filter(WorkOrder.created_at <= datetime.combine(end_date, time.max, tzinfo=timezone.utc))

        return [
            {
                "number": o.number,
                "created_at": o.created_at.date() if o.created_at else None,
                "client": o.client.full_name if o.client else None,
                "plate": o.vehicle.plate if o.vehicle else None,
                "status": o.status,
                "subtotal": o.subtotal,
                "discount_amount": o.discount_amount,
                "taxes": o.taxes,
                "total": o.total,
            }
            for o in query.order_by(WorkOrder.created_at.asc()).all()
        ]
