"""
Tests para órdenes de trabajo

Cubren el cálculo de totales, la numeración por taller, el flujo de estados y
los efectos de completar una orden (stock y caja).
"""
import pytest
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.dialects import postgresql

from app.modules.cash.models import CashMovement
from app.modules.clients.models import Client
from app.modules.products.models import Product, StockMovement
from app.modules.vehicles.models import Vehicle
from app.modules.work_orders.calculator import calculate_totals, line_subtotal, to_money
from app.modules.work_orders.models import WorkOrder, WorkOrderStatus
from app.modules.work_orders.schemas import WorkOrderItemIn
from app.modules.work_orders.service import WorkOrderService, can_transition


@pytest.fixture
def customer(db_session, tenant):
    client = Client(tenant_id=tenant.id, first_name="Raúl", last_name="Medina", phone="1140001000")
    db_session.add(client)
    db_session.flush()
    vehicle = Vehicle(tenant_id=tenant.id, plate="AF321KL", make_model="Chevrolet Onix", client_id=client.id)
    db_session.add(vehicle)
    db_session.commit()
    return client, vehicle


@pytest.fixture
def oil_filter(db_session, tenant):
    product = Product(tenant_id=tenant.id, name="Filtro de aceite", price=Decimal("1500.00"), stock=5, min_stock=1)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture
def order_payload(customer):
    client, vehicle = customer
    return {
        "client_id": str(client.id),
        "vehicle_id": str(vehicle.id),
        "general_description": "Service de 10.000 km",
        "items": [
            {"description": "Aceite 10W40", "quantity": "2", "unit_price": "1500.00"},
            {"description": "Revisión de frenos", "quantity": "1", "unit_price": "3000"}
        ],
        "labor_cost": "5000",
        "discount": "10",
        "apply_vat": True
    }


def create_order(client, headers, payload):
    response = client.post("/work-orders/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def move_to(client, headers, order_id, new_status, **extra):
    return client.patch(
        f"/work-orders/{order_id}/status",
        json={"status": new_status, **extra},
        headers=headers
    )


# ===== CÁLCULO =====

class TestCalculator:

    def test_totals_with_discount_and_vat(self):
        totals = calculate_totals(
            [(Decimal("2"), Decimal("1500.00")), (Decimal("1"), Decimal("3000"))],
            labor_cost=Decimal("5000"),
            discount=Decimal("10"),
            apply_vat=True,
            vat_rate=21
        )
        assert totals.subtotal == Decimal("11000.00")
        assert totals.discount_amount == Decimal("1100.00")
        assert totals.taxes == Decimal("2079.00")
        assert totals.total == Decimal("11979.00")

    def test_without_vat(self):
        totals = calculate_totals([(1, "100")], apply_vat=False)
        assert totals.taxes == Decimal("0.00")
        assert totals.total == Decimal("100.00")

    def test_empty_order(self):
        totals = calculate_totals([])
        assert totals.subtotal == Decimal("0.00")
        assert totals.total == Decimal("0.00")

    def test_half_up_rounding(self):
        assert to_money("0.125") == Decimal("0.13")
        assert line_subtotal("3", "0.335") == Decimal("1.01")
        totals = calculate_totals([(1, "10.05")], discount=5)
        assert totals.discount_amount == Decimal("0.50")
        assert totals.total == Decimal("9.55")


class TestTransitions:

    def test_allowed(self):
        assert can_transition(WorkOrderStatus.PENDING, WorkOrderStatus.IN_PROGRESS)
        assert can_transition(WorkOrderStatus.PENDING, WorkOrderStatus.CANCELLED)
        assert can_transition(WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.COMPLETED)
        assert can_transition(WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.CANCELLED)

    def test_not_allowed(self):
        assert not can_transition(WorkOrderStatus.PENDING, WorkOrderStatus.COMPLETED)
        assert not can_transition(WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.PENDING)
        for final in (WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED):
            for target in WorkOrderStatus:
                assert not can_transition(final, target)


class TestItemSchema:

    def test_product_quantity_must_be_whole(self):
        with pytest.raises(ValueError):
            WorkOrderItemIn(description="Filtro", quantity="1.5", unit_price="10", product_id=uuid4())
        assert WorkOrderItemIn(description="Aceite suelto", quantity="1.5", unit_price="10").quantity == Decimal("1.5")

    def test_quantity_positive(self):
        with pytest.raises(ValueError):
            WorkOrderItemIn(description="Nada", quantity="0", unit_price="10")


# ===== ENDPOINTS =====

class TestWorkOrderEndpoints:

    def test_create_computes_totals_and_number(self, client, owner_headers, order_payload):
        data = create_order(client, owner_headers, order_payload)

        assert data["number"] == f"OT-{datetime.utcnow():%Y%m}-0001"
        assert data["status"] == "pendiente"
        assert Decimal(data["subtotal"]) == Decimal("11000.00")
        assert Decimal(data["total"]) == Decimal("11979.00")
        assert [Decimal(i["subtotal"]) for i in data["items"]] == [Decimal("3000.00"), Decimal("3000.00")]
        assert data["client"]["full_name"] == "Raúl Medina"

    def test_numbers_are_sequential(self, client, owner_headers, order_payload):
        first = create_order(client, owner_headers, order_payload)
        second = create_order(client, owner_headers, order_payload)
        assert first["number"].endswith("-0001")
        assert second["number"].endswith("-0002")

        response = client.get("/work-orders/next-number", headers=owner_headers)
        assert response.json()["next_number"].endswith("-0003")

    def test_next_number_does_not_reserve(self, client, owner_headers, order_payload):
        client.get("/work-orders/next-number", headers=owner_headers)
        client.get("/work-orders/next-number", headers=owner_headers)
        assert create_order(client, owner_headers, order_payload)["number"].endswith("-0001")

    def test_create_with_new_client(self, client, db_session, owner_headers):
        data = create_order(client, owner_headers, {
            "new_client": {"first_name": "Lucía", "last_name": "Ortiz", "phone": "1150505050"},
            "new_vehicle": {"plate": "AG111BB", "make_model": "Renault Kangoo"},
            "general_description": "Ruido en tren delantero"
        })
        assert Decimal(data["total"]) == Decimal("0")
        assert db_session.query(Client).filter(Client.last_name == "Ortiz").count() == 1

    def test_unknown_product(self, client, owner_headers, order_payload):
        payload = {**order_payload, "items": [
            {"description": "X", "quantity": "1", "unit_price": "1", "product_id": "00000000-0000-0000-0000-000000000001"}
        ]}
        response = client.post("/work-orders/", json=payload, headers=owner_headers)
        assert response.status_code == 404

    def test_list_filters(self, client, owner_headers, order_payload):
        first = create_order(client, owner_headers, order_payload)
        create_order(client, owner_headers, order_payload)
        move_to(client, owner_headers, first["id"], "en_progreso")

        response = client.get("/work-orders/", params={"status": "en_progreso"}, headers=owner_headers)
        data = response.json()
        assert data["total"] == 1
        assert data["work_orders"][0]["id"] == first["id"]

        response = client.get("/work-orders/", params={"search": "-0002"}, headers=owner_headers)
        assert response.json()["total"] == 1

    def test_update_recalculates(self, client, owner_headers, order_payload):
        order = create_order(client, owner_headers, order_payload)
        response = client.patch(
            f"/work-orders/{order['id']}",
            json={"items": [{"description": "Solo mano de obra extra", "quantity": "1", "unit_price": "1000"}],
                  "apply_vat": False, "discount": "0"},
            headers=owner_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert len(data["items"]) == 1
        assert Decimal(data["total"]) == Decimal("6000.00")

    def test_update_required_field_to_null(self, client, owner_headers, order_payload):
        order = create_order(client, owner_headers, order_payload)
        response = client.patch(f"/work-orders/{order['id']}", json={"labor_cost": None}, headers=owner_headers)
        assert response.status_code == 400

    def test_order_from_other_tenant(self, client, make_user, make_tenant, headers_for, owner_headers, order_payload):
        order = create_order(client, owner_headers, order_payload)
        stranger = make_user()
        other_tenant = make_tenant(stranger, name="Otro")
        response = client.get(f"/work-orders/{order['id']}", headers=headers_for(stranger, other_tenant))
        assert response.status_code == 404


# ===== ESTADOS =====

class TestStatusFlow:

    def test_full_flow_sets_timestamps(self, client, owner_headers, order_payload):
        order = create_order(client, owner_headers, order_payload)

        response = move_to(client, owner_headers, order["id"], "en_progreso")
        assert response.status_code == 200
        assert response.json()["started_at"] is not None

        response = move_to(client, owner_headers, order["id"], "completado")
        assert response.status_code == 200
        assert response.json()["status"] == "completado"
        assert response.json()["finished_at"] is not None

    def test_cannot_skip_in_progress(self, client, owner_headers, order_payload):
        order = create_order(client, owner_headers, order_payload)
        response = move_to(client, owner_headers, order["id"], "completado")
        assert response.status_code == 409

    def test_cancelled_is_final(self, client, owner_headers, order_payload):
        order = create_order(client, owner_headers, order_payload)
        move_to(client, owner_headers, order["id"], "cancelado")
        assert move_to(client, owner_headers, order["id"], "en_progreso").status_code == 409

    def test_completed_is_not_editable(self, client, owner_headers, order_payload):
        order = create_order(client, owner_headers, order_payload)
        move_to(client, owner_headers, order["id"], "en_progreso")
        move_to(client, owner_headers, order["id"], "completado")

        response = client.patch(f"/work-orders/{order['id']}", json={"observations": "x"}, headers=owner_headers)
        assert response.status_code == 409
        assert client.delete(f"/work-orders/{order['id']}", headers=owner_headers).status_code == 409

    def test_payment_method_only_when_completing(self, client, owner_headers, order_payload):
        order = create_order(client, owner_headers, order_payload)
        response = move_to(client, owner_headers, order["id"], "en_progreso", payment_method="efectivo")
        assert response.status_code == 400

    def test_viewer_cannot_change_status(self, client, owner_headers, role_headers, order_payload):
        order = create_order(client, owner_headers, order_payload)
        response = move_to(client, role_headers("viewer"), order["id"], "en_progreso")
        assert response.status_code == 403


class TestCompletion:

    def _in_progress_with_filter(self, client, headers, order_payload, oil_filter, quantity):
        payload = {**order_payload, "items": [
            {"description": "Filtro de aceite", "quantity": str(quantity), "unit_price": "1500",
             "product_id": str(oil_filter.id)}
        ]}
        order = create_order(client, headers, payload)
        move_to(client, headers, order["id"], "en_progreso")
        return order

    def test_completion_deducts_stock(self, client, db_session, owner_headers, order_payload, oil_filter):
        order = self._in_progress_with_filter(client, owner_headers, order_payload, oil_filter, 3)

        response = move_to(client, owner_headers, order["id"], "completado")
        assert response.status_code == 200

        db_session.refresh(oil_filter)
        assert oil_filter.stock == 2
        movement = db_session.query(StockMovement).one()
        assert movement.quantity == -3
        assert movement.reference == order["number"]
        assert str(movement.work_order_id) == order["id"]

    def test_insufficient_stock_keeps_order_open(self, client, db_session, owner_headers, order_payload, oil_filter):
        order = self._in_progress_with_filter(client, owner_headers, order_payload, oil_filter, 6)

        response = move_to(client, owner_headers, order["id"], "completado", payment_method="efectivo")
        assert response.status_code == 409
        assert "Stock insuficiente" in response.json()["detail"]

        db_session.expire_all()
        assert db_session.get(Product, oil_filter.id).stock == 5
        assert db_session.get(WorkOrder, UUID(order["id"])).status == "en_progreso"
        assert db_session.query(CashMovement).count() == 0

    def test_payment_registers_income(self, client, db_session, owner_headers, order_payload):
        order = create_order(client, owner_headers, order_payload)
        move_to(client, owner_headers, order["id"], "en_progreso")

        response = move_to(client, owner_headers, order["id"], "completado", payment_method="transferencia")
        assert response.status_code == 200

        movement = db_session.query(CashMovement).one()
        assert movement.type == "ingreso"
        assert movement.amount == Decimal("11979.00")
        assert movement.payment_method == "transferencia"
        assert order["number"] in movement.concept

    def test_user_cannot_register_payment(self, client, owner_headers, role_headers, order_payload):
        order = create_order(client, owner_headers, order_payload)
        move_to(client, owner_headers, order["id"], "en_progreso")

        headers = role_headers("user")
        assert move_to(client, headers, order["id"], "completado", payment_method="efectivo").status_code == 403
        assert move_to(client, headers, order["id"], "completado").status_code == 200

    def test_delete_pending_detaches_cash(self, client, db_session, owner_headers, order_payload, tenant):
        order = create_order(client, owner_headers, order_payload)
        db_session.add(CashMovement(
            tenant_id=tenant.id, type="ingreso", amount=Decimal("500"), concept="Seña",
            work_order_id=UUID(order["id"]), date=datetime.utcnow().date()
        ))
        db_session.commit()

        assert client.delete(f"/work-orders/{order['id']}", headers=owner_headers).status_code == 204
        db_session.expire_all()
        assert db_session.query(CashMovement).one().work_order_id is None

    def test_status_change_locks_order_row(self, db_session, tenant):
        query = WorkOrderService(db_session)._locked_query(uuid4(), tenant.id)
        sql = str(query.statement.compile(dialect=postgresql.dialect()))
        assert "FOR UPDATE OF work_orders" in sql

    def test_second_completion_is_rejected(self, client, db_session, owner_headers, order_payload, oil_filter):
        order = self._in_progress_with_filter(client, owner_headers, order_payload, oil_filter, 2)
        assert move_to(client, owner_headers, order["id"], "completado", payment_method="efectivo").status_code == 200

        response = move_to(client, owner_headers, order["id"], "completado", payment_method="efectivo")
        assert response.status_code == 409

        db_session.expire_all()
        assert db_session.get(Product, oil_filter.id).stock == 3
        assert db_session.query(StockMovement).count() == 1
        assert db_session.query(CashMovement).count() == 1


class TestMonthlyLimit:

    def test_trial_monthly_work_orders_limit(self, client, db_session, make_user, make_tenant, headers_for):
        owner = make_user()
        trial = make_tenant(owner, plan="trial")
        customer = Client(tenant_id=trial.id, first_name="Raúl", last_name="Medina", phone="1140001000")
        db_session.add(customer)
        db_session.flush()
        vehicle = Vehicle(tenant_id=trial.id, plate="AF321KL", client_id=customer.id)
        db_session.add(vehicle)
        db_session.flush()
        for i in range(20):
            db_session.add(WorkOrder(
                tenant_id=trial.id, number=f"OT-202401-{i + 1:04d}", client_id=customer.id,
                vehicle_id=vehicle.id, general_description="Service"
            ))
        db_session.commit()

        response = client.post(
            "/work-orders/",
            json={"client_id": str(customer.id), "vehicle_id": str(vehicle.id), "general_description": "Frenos"},
            headers=headers_for(owner, trial)
        )
        assert response.status_code == 409
        assert "límite" in response.json()["detail"]
        assert db_session.query(WorkOrder).filter(WorkOrder.tenant_id == trial.id).count() == 20
