"""
Tests para reportes: dashboard y exportaciones CSV
"""
import csv
import io
import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from app.modules.appointments.models import Appointment, AppointmentStatus
from app.modules.cash.models import CashMovement
from app.modules.clients.models import Client
from app.modules.products.models import Product
from app.modules.reports.service import ReportService, month_start
from app.modules.reports.utils import format_csv_value
from app.modules.vehicles.models import Vehicle
from app.modules.work_orders.models import WorkOrder, WorkOrderStatus


@pytest.fixture
def workshop_data(db_session, tenant):
    today = date.today()
    customer = Client(tenant_id=tenant.id, first_name="Elena", last_name="Castro", phone="1170007000")
    db_session.add(customer)
    db_session.flush()
    vehicle = Vehicle(tenant_id=tenant.id, plate="AC700DE", client_id=customer.id)
    db_session.add(vehicle)
    db_session.flush()

    db_session.add_all([
        WorkOrder(tenant_id=tenant.id, number="OT-202401-0001", client_id=customer.id, vehicle_id=vehicle.id,
                  general_description="Service", status=WorkOrderStatus.PENDING.value, total=Decimal("1000")),
        WorkOrder(tenant_id=tenant.id, number="OT-202401-0002", client_id=customer.id, vehicle_id=vehicle.id,
                  general_description="Frenos", status=WorkOrderStatus.COMPLETED.value, total=Decimal("25000.50"),
                  finished_at=datetime.now(timezone.utc)),
        Appointment(tenant_id=tenant.id, client_id=customer.id, vehicle_id=vehicle.id, date=today,
                    start_time="09:00", end_time="10:00", description="Revisión",
                    status=AppointmentStatus.PENDING.value),
        Appointment(tenant_id=tenant.id, client_id=customer.id, vehicle_id=vehicle.id, date=today,
                    start_time="11:00", end_time="12:00", description="Cancelado",
                    status=AppointmentStatus.CANCELLED.value),
        Product(tenant_id=tenant.id, name="Correa", stock=1, min_stock=2),
        Product(tenant_id=tenant.id, name="Filtro", stock=10, min_stock=2),
        CashMovement(tenant_id=tenant.id, type="ingreso", amount=Decimal("25000.50"), concept="Cobro OT",
                     payment_method="efectivo", date=today),
        CashMovement(tenant_id=tenant.id, type="egreso", amount=Decimal("5000"), concept="Compra de repuestos",
                     payment_method="transferencia", date=today),
        CashMovement(tenant_id=tenant.id, type="ingreso", amount=Decimal("700"), concept="Mes anterior",
                     payment_method="efectivo", date=month_start(today) - timedelta(days=1)),
    ])
    db_session.commit()
    return customer


def parse_csv(response):
    return list(csv.reader(io.StringIO(response.text)))


class TestHelpers:

    def test_month_start(self):
        assert month_start(date(2024, 2, 29)) == date(2024, 2, 1)

    def test_format_csv_value(self):
        assert format_csv_value(None) == ""
        assert format_csv_value(Decimal("10.50")) == "10.50"
        assert format_csv_value(date(2024, 1, 5)) == "2024-01-05"
        assert format_csv_value(WorkOrderStatus.COMPLETED) == "completado"
        assert format_csv_value(True) == "Sí"


class TestDashboard:

    def test_dashboard_service(self, db_session, tenant, workshop_data):
        dashboard = ReportService(db_session, tenant.id).dashboard()

        assert dashboard.clients_count == 1
        assert dashboard.vehicles_count == 1
        assert dashboard.work_orders_by_status["pendiente"] == 1
        assert dashboard.work_orders_by_status["cancelado"] == 0
        assert dashboard.open_work_orders == 1
        assert dashboard.today_appointments == 1
        assert dashboard.low_stock_products == 1
        assert dashboard.month_cash.ingresos == Decimal("25000.50")
        assert dashboard.month_cash.balance == Decimal("20000.50")
        assert dashboard.month_revenue == Decimal("25000.50")
        assert dashboard.month_completed_orders == 1

    def test_dashboard_endpoint(self, client, owner_headers, workshop_data):
        response = client.get("/reports/dashboard", headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["clients_count"] == 1

    def test_empty_dashboard_other_tenant(self, client, make_user, make_tenant, headers_for, workshop_data):
        owner = make_user()
        other = make_tenant(owner, name="Otro")
        data = client.get("/reports/dashboard", headers=headers_for(owner, other)).json()
        assert data["clients_count"] == 0
        assert Decimal(data["month_cash"]["balance"]) == Decimal("0")

    def test_reports_need_premium(self, client, make_user, make_tenant, headers_for):
        owner = make_user()
        basic = make_tenant(owner, plan="basic")
        assert client.get("/reports/dashboard", headers=headers_for(owner, basic)).status_code == 403


class TestExports:

    def test_cash_export(self, client, owner_headers, workshop_data):
        today = date.today().isoformat()
        response = client.get(
            "/reports/cash/export",
            params={"start_date": today, "end_date": today},
            headers=owner_headers
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert f"filename=caja_{today}_{today}.csv" in response.headers["content-disposition"]

        rows = parse_csv(response)
        assert rows[0] == ["Fecha", "Tipo", "Concepto", "Medio de pago", "Importe", "Orden", "Notas"]
        assert len(rows) == 3
        assert {row[4] for row in rows[1:]} == {"25000.50", "5000.00"}

    def test_work_orders_export(self, client, owner_headers, workshop_data):
        response = client.get("/reports/work-orders/export", headers=owner_headers)
        assert response.status_code == 200
        assert "filename=ordenes.csv" in response.headers["content-disposition"]

        rows = parse_csv(response)
        assert rows[0][0] == "Número"
        assert sorted(row[0] for row in rows[1:]) == ["OT-202401-0001", "OT-202401-0002"]
        assert rows[1][2] == "Elena Castro"

    def test_export_invalid_range(self, client, owner_headers):
        response = client.get(
            "/reports/cash/export",
            params={"start_date": "2024-02-01", "end_date": "2024-01-01"},
            headers=owner_headers
        )
        assert response.status_code == 400

    def test_user_cannot_export(self, client, role_headers):
        assert client.get("/reports/cash/export", headers=role_headers("user")).status_code == 403
