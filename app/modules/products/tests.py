"""
Tests para inventario: productos, ajustes de stock y movimientos
"""
import pytest
from decimal import Decimal
from fastapi import HTTPException

from app.modules.products.models import Product, StockMovement, MovementType
from app.modules.products.schemas import StockAdjustment
from app.modules.products.service import ProductService


@pytest.fixture
def product(db_session, tenant):
    item = Product(
        tenant_id=tenant.id,
        code="FIL-001",
        name="Filtro de aceite",
        category="Filtros",
        price=Decimal("8500.00"),
        stock=10,
        min_stock=3
    )
    db_session.add(item)
    db_session.commit()
    return item


class TestStockAdjustmentSchema:

    def test_exactly_one_mode(self):
        with pytest.raises(ValueError):
            StockAdjustment()
        with pytest.raises(ValueError):
            StockAdjustment(new_stock=5, quantity=2)

    def test_zero_quantity(self):
        with pytest.raises(ValueError):
            StockAdjustment(quantity=0)

    def test_negative_new_stock(self):
        with pytest.raises(ValueError):
            StockAdjustment(new_stock=-1)


class TestProductEndpoints:

    def test_create_product_with_initial_stock(self, client, db_session, owner_headers):
        response = client.post(
            "/products/",
            json={"name": "Pastillas de freno", "code": "FRE-010", "price": "25000.50", "stock": 4, "min_stock": 2},
            headers=owner_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["price"]) == Decimal("25000.50")
        assert data["is_low_stock"] is False

        movement = db_session.query(StockMovement).one()
        assert movement.quantity == 4
        assert movement.movement_type == MovementType.IN.value

    def test_create_without_stock_has_no_movements(self, client, db_session, owner_headers):
        client.post("/products/", json={"name": "Lámpara H4"}, headers=owner_headers)
        assert db_session.query(StockMovement).count() == 0

    def test_duplicate_code(self, client, owner_headers, product):
        response = client.post("/products/", json={"name": "Otro filtro", "code": "FIL-001"}, headers=owner_headers)
        assert response.status_code == 409

    def test_negative_price(self, client, owner_headers):
        response = client.post("/products/", json={"name": "Bujía", "price": -10}, headers=owner_headers)
        assert response.status_code == 422

    def test_list_filters(self, client, owner_headers, product):
        client.post("/products/", json={"name": "Aceite 10W40", "category": "Lubricantes"}, headers=owner_headers)

        response = client.get("/products/", params={"category": "Filtros"}, headers=owner_headers)
        assert response.json()["total"] == 1

        response = client.get("/products/", params={"search": "fil-"}, headers=owner_headers)
        assert response.json()["products"][0]["name"] == "Filtro de aceite"

        response = client.get("/products/categories", headers=owner_headers)
        assert response.json() == ["Filtros", "Lubricantes"]

    def test_low_stock(self, client, owner_headers, product):
        client.post("/products/", json={"name": "Correa", "stock": 1, "min_stock": 2}, headers=owner_headers)
        client.post("/products/", json={"name": "Inactivo", "stock": 0, "min_stock": 2, "active": False},
                    headers=owner_headers)

        response = client.get("/products/low-stock", headers=owner_headers)
        names = [p["name"] for p in response.json()]
        assert names == ["Correa"]

    def test_update_does_not_touch_stock(self, client, owner_headers, product):
        response = client.patch(
            f"/products/{product.id}",
            json={"price": "9000", "stock": 999},
            headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["stock"] == 10
        assert Decimal(response.json()["price"]) == Decimal("9000")

    def test_adjust_stock_by_quantity(self, client, owner_headers, product):
        response = client.post(
            f"/products/{product.id}/stock",
            json={"quantity": -4, "notes": "Rotura"},
            headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["stock"] == 6

        response = client.get(f"/products/{product.id}/movements", headers=owner_headers)
        movement = response.json()["movements"][0]
        assert movement["quantity"] == -4
        assert movement["movement_type"] == "adjustment"

    def test_adjust_stock_to_value(self, client, owner_headers, product):
        response = client.post(f"/products/{product.id}/stock", json={"new_stock": 2}, headers=owner_headers)
        assert response.json()["stock"] == 2
        assert response.json()["is_low_stock"] is True

    def test_adjust_below_zero(self, client, db_session, owner_headers, product):
        response = client.post(f"/products/{product.id}/stock", json={"quantity": -11}, headers=owner_headers)
        assert response.status_code == 409
        db_session.refresh(product)
        assert product.stock == 10
        assert db_session.query(StockMovement).count() == 0

    def test_delete_product(self, client, owner_headers, product):
        client.post(f"/products/{product.id}/stock", json={"quantity": 1}, headers=owner_headers)
        assert client.delete(f"/products/{product.id}", headers=owner_headers).status_code == 204
        assert client.get(f"/products/{product.id}", headers=owner_headers).status_code == 404

    def test_user_can_view_but_not_adjust(self, client, role_headers, product):
        headers = role_headers("user")
        assert client.get("/products/", headers=headers).status_code == 200
        response = client.post(f"/products/{product.id}/stock", json={"quantity": 1}, headers=headers)
        assert response.status_code == 403


class TestDeductForWorkOrder:

    def test_aggregates_and_deducts(self, db_session, tenant, product):
        movements = ProductService(db_session).deduct_for_work_order(
            [(product.id, 3), (product.id, 2)],
            tenant.id,
            work_order_id=None,
            reference="OT-202401-0001",
            user_id=None
        )
        db_session.commit()

        assert len(movements) == 1
        assert movements[0].quantity == -5
        db_session.refresh(product)
        assert product.stock == 5

    def test_insufficient_stock_changes_nothing(self, db_session, tenant, product):
        other = Product(tenant_id=tenant.id, name="Aceite", stock=50)
        db_session.add(other)
        db_session.commit()

        with pytest.raises(HTTPException) as exc:
            ProductService(db_session).deduct_for_work_order(
                [(other.id, 5), (product.id, 11)],
                tenant.id,
                work_order_id=None,
                reference="OT-202401-0002",
                user_id=None
            )
        assert exc.value.status_code == 409
        assert "Filtro de aceite" in exc.value.detail

        db_session.rollback()
        assert db_session.get(Product, other.id).stock == 50
        assert db_session.query(StockMovement).count() == 0

    def test_product_from_other_tenant(self, db_session, make_user, make_tenant, product):
        other_tenant = make_tenant(make_user(), name="Otro")
        with pytest.raises(HTTPException) as exc:
            ProductService(db_session).deduct_for_work_order(
                [(product.id, 1)], other_tenant.id, work_order_id=None, reference="X", user_id=None
            )
        assert exc.value.status_code == 404
