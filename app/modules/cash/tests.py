"""
Tests para caja: movimientos y balance
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal

from app.modules.cash.schemas import CashMovementCreate


def register(client, headers, **fields):
    payload = {"type": "ingreso", "amount": "1000", "concept": "Cobro mostrador", **fields}
    response = client.post("/cash/movements", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestCashSchemas:

    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError):
            CashMovementCreate(type="egreso", amount="0", concept="Compra de insumos")
        with pytest.raises(ValueError):
            CashMovementCreate(type="egreso", amount="-10", concept="Compra de insumos")

    def test_concept_is_stripped(self):
        movement = CashMovementCreate(type="egreso", amount="10", concept="   Luz   ")
        assert movement.concept == "Luz"
        with pytest.raises(ValueError):
            CashMovementCreate(type="egreso", amount="10", concept="  ab  ")


class TestCashEndpoints:

    def test_create_defaults(self, client, owner_headers):
        data = register(client, owner_headers)
        assert data["date"] == date.today().isoformat()
        assert data["payment_method"] == "efectivo"
        assert Decimal(data["amount"]) == Decimal("1000.00")

    def test_unknown_work_order(self, client, owner_headers):
        response = client.post(
            "/cash/movements",
            json={"type": "ingreso", "amount": "10", "concept": "Seña",
                  "work_order_id": "00000000-0000-0000-0000-000000000001"},
            headers=owner_headers
        )
        assert response.status_code == 404

    def test_filters_by_date_and_type(self, client, owner_headers):
        register(client, owner_headers, date="2024-03-01")
        register(client, owner_headers, date="2024-03-15", type="egreso", concept="Repuestos")
        register(client, owner_headers, date="2024-04-01")

        response = client.get(
            "/cash/movements",
            params={"start_date": "2024-03-01", "end_date": "2024-03-15"},
            headers=owner_headers
        )
        data = response.json()
        assert data["total"] == 2
        assert data["movements"][0]["date"] == "2024-03-15"

        response = client.get("/cash/movements", params={"type": "egreso"}, headers=owner_headers)
        assert response.json()["total"] == 1

    def test_invalid_range(self, client, owner_headers):
        response = client.get(
            "/cash/balance",
            params={"start_date": "2024-03-15", "end_date": "2024-03-01"},
            headers=owner_headers
        )
        assert response.status_code == 400

    def test_balance(self, client, owner_headers):
        register(client, owner_headers, amount="15000.50")
        register(client, owner_headers, amount="4500")
        register(client, owner_headers, type="egreso", amount="3200.25", concept="Compra de aceite")
        register(client, owner_headers, amount="999", date=(date.today() - timedelta(days=40)).isoformat())

        response = client.get("/cash/balance", params={"start_date": date.today().isoformat()}, headers=owner_headers)
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["ingresos"]) == Decimal("19500.50")
        assert Decimal(data["egresos"]) == Decimal("3200.25")
        assert Decimal(data["balance"]) == Decimal("16300.25")
        assert data["movements_count"] == 3

    def test_empty_balance(self, client, owner_headers):
        data = client.get("/cash/balance", headers=owner_headers).json()
        assert Decimal(data["balance"]) == Decimal("0")
        assert data["movements_count"] == 0

    def test_update_and_delete(self, client, owner_headers):
        movement = register(client, owner_headers)

        response = client.patch(
            f"/cash/movements/{movement['id']}",
            json={"amount": "1200", "payment_method": "tarjeta"},
            headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["payment_method"] == "tarjeta"

        response = client.patch(f"/cash/movements/{movement['id']}", json={"amount": None}, headers=owner_headers)
        assert response.status_code == 400

        assert client.delete(f"/cash/movements/{movement['id']}", headers=owner_headers).status_code == 204
        assert client.get(f"/cash/movements/{movement['id']}", headers=owner_headers).status_code == 404

    def test_permissions(self, client, owner_headers, role_headers):
        movement = register(client, owner_headers)

        user_headers = role_headers("user")
        assert client.get("/cash/balance", headers=user_headers).status_code == 200
        assert client.post("/cash/movements", json={"type": "ingreso", "amount": "1", "concept": "Prueba"},
                           headers=user_headers).status_code == 403

        manager_headers = role_headers("manager")
        assert client.delete(f"/cash/movements/{movement['id']}", headers=manager_headers).status_code == 403
