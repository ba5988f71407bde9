from pydantic import BaseModel
from typing import Dict
from decimal import Decimal
from datetime import date


class CashSummary(BaseModel):
    ingresos: Decimal
    egresos: Decimal
    balance: Decimal


class DashboardOut(BaseModel):
    """Resumen del taller para la pantalla principal"""
    generated_on: date
    clients_count: int
    vehicles_count: int
    work_orders_by_status: Dict[str, int]
    open_work_orders: int
    today_appointments: int
    low_stock_products: int
    month_cash: CashSummary
    month_revenue: Decimal
    month_completed_orders: int
