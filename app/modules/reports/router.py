from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from app.dependencies.dbDependecies import get_db
from app.common.permissions import Permission
from app.modules.auth.dependencies import require_permission
from app.modules.auth.schemas import AuthContext
from app.modules.plans.constants import TenantModule
from app.modules.plans.dependencies import require_module
from app.modules.reports.schemas import DashboardOut
from app.modules.reports.service import ReportService, CASH_CSV_HEADERS, WORK_ORDERS_CSV_HEADERS
from app.modules.reports.utils import create_csv_response

reports_router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
    dependencies=[Depends(require_module(TenantModule.REPORTS))]
)


def _suffix(start_date: Optional[date], end_date: Optional[date]) -> str:
    if start_date and end_date:
        return f"_{start_date.isoformat()}_{end_date.isoformat()}"
    return ""


@reports_router.get("/dashboard", response_model=DashboardOut)
async def get_dashboard(
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_REPORTS)),
    db: Session = Depends(get_db)
):
    """Indicadores del taller: clientes, órdenes por estado, agenda del día, stock bajo y caja del mes."""
    return ReportService(db, auth_context.tenant_id).dashboard()


@reports_router.get("/cash/export")
async def export_cash_movements(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    auth_context: AuthContext = Depends(require_permission(Permission.EXPORT_REPORTS)),
    db: Session = Depends(get_db)
):
    """Exportar movimientos de caja a CSV."""
    rows = ReportService(db, auth_context.tenant_id).cash_movements_rows(start_date, end_date)
    return create_csv_response(rows, f"caja{_suffix(start_date, end_date)}.csv", CASH_CSV_HEADERS)


@reports_router.get("/work-orders/export")
async def export_work_orders(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    auth_context: AuthContext = Depends(require_permission(Permission.EXPORT_REPORTS)),
    db: Session = Depends(get_db)
):
    """Exportar órdenes de trabajo a CSV."""
    rows = ReportService(db, auth_context.tenant_id).work_orders_rows(start_date, end_date)
    return create_csv_response(rows, f"ordenes{_suffix(start_date, end_date)}.csv", WORK_ORDERS_CSV_HEADERS)
