"""
Tests para presupuestos y su conversión en órdenes de trabajo
"""
import pytest
from datetime import datetime
from decimal import Decimal

from app.modules.clients.models import Client
from app.modules.products.models import Product
from app.modules.quotes.schemas import QuoteCreate
from app.modules.vehicles.models import Vehicle
from app.modules.work_orders.models import WorkOrder


@pytest.fixture
def quote_payload(db_session, tenant):
    customer = Client(tenant_id=tenant.id, first_name="Marta", last_name="Benítez", phone="1160006000")
    db_session.add(customer)
    db_session.flush()
    vehicle = Vehicle(tenant_id=tenant.id, plate="AB500CD", make_model="Fiat Palio", client_id=customer.id)
    db_session.add(vehicle)
    db_session.commit()
    return {
        "client_id": str(customer.id),
        "vehicle_id": str(vehicle.id),
        "items": [
            {"description": "Juego de pastillas", "quantity": "1", "unit_price": "20000"},
            {"description": "Rectificado de discos", "quantity": "2", "unit_price": "7500"}
        ],
        "apply_vat": True,
        "valid_until": "2030-12-31"
    }


def create_quote(client, headers, payload):
    response = client.post("/quotes/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def set_status(client, headers, quote_id, new_status):
    return client.patch(f"/quotes/{quote_id}/status", json={"status": new_status}, headers=headers)


class TestQuoteSchemas:

    def test_requires_items(self, quote_payload):
        with pytest.raises(ValueError):
            QuoteCreate(**{**quote_payload, "items": []})

    def test_requires_vehicle_reference(self, quote_payload):
        payload = {k: v for k, v in quote_payload.items() if k != "vehicle_id"}
        with pytest.raises(ValueError):
            QuoteCreate(**payload)


class TestQuoteEndpoints:

    def test_create_quote(self, client, owner_headers, quote_payload):
        data = create_quote(client, owner_headers, quote_payload)
        assert data["number"] == f"PRE-{datetime.utcnow():%Y%m}-0001"
        assert data["status"] == "borrador"
        assert Decimal(data["subtotal"]) == Decimal("35000.00")
        assert Decimal(data["vat"]) == Decimal("7350.00")
        assert Decimal(data["total"]) == Decimal("42350.00")
        assert data["work_order_id"] is None

    def test_quote_and_order_sequences_are_independent(self, client, owner_headers, quote_payload):
        create_quote(client, owner_headers, quote_payload)
        second = create_quote(client, owner_headers, quote_payload)
        assert second["number"].endswith("-0002")

        response = client.get("/work-orders/next-number", headers=owner_headers)
        assert response.json()["next_number"].endswith("-0001")

    def test_update_items(self, client, owner_headers, quote_payload):
        quote = create_quote(client, owner_headers, quote_payload)
        response = client.patch(
            f"/quotes/{quote['id']}",
            json={"items": [{"description": "Solo pastillas", "quantity": "1", "unit_price": "20000"}],
                  "apply_vat": False},
            headers=owner_headers
        )
        assert response.status_code == 200
        assert Decimal(response.json()["total"]) == Decimal("20000.00")

    def test_list_by_status(self, client, owner_headers, quote_payload):
        first = create_quote(client, owner_headers, quote_payload)
        create_quote(client, owner_headers, quote_payload)
        set_status(client, owner_headers, first["id"], "enviado")

        response = client.get("/quotes/", params={"status": "enviado"}, headers=owner_headers)
        assert response.json()["total"] == 1

    def test_rejected_is_final(self, client, owner_headers, quote_payload):
        quote = create_quote(client, owner_headers, quote_payload)
        assert set_status(client, owner_headers, quote["id"], "rechazado").status_code == 200
        assert set_status(client, owner_headers, quote["id"], "aprobado").status_code == 409

        response = client.patch(f"/quotes/{quote['id']}", json={"notes": "x"}, headers=owner_headers)
        assert response.status_code == 409

    def test_user_cannot_approve(self, client, owner_headers, role_headers, quote_payload):
        quote = create_quote(client, owner_headers, quote_payload)
        assert set_status(client, role_headers("user"), quote["id"], "aprobado").status_code == 403
        assert set_status(client, role_headers("manager"), quote["id"], "aprobado").status_code == 200

    def test_delete_quote(self, client, owner_headers, quote_payload):
        quote = create_quote(client, owner_headers, quote_payload)
        assert client.delete(f"/quotes/{quote['id']}", headers=owner_headers).status_code == 204
        assert client.get(f"/quotes/{quote['id']}", headers=owner_headers).status_code == 404


class TestQuoteConversion:

    def test_only_approved_quotes(self, client, owner_headers, quote_payload):
        quote = create_quote(client, owner_headers, quote_payload)
        response = client.post(f"/quotes/{quote['id']}/convert", headers=owner_headers)
        assert response.status_code == 409

    def test_convert_creates_work_order(self, client, db_session, owner_headers, quote_payload):
        quote = create_quote(client, owner_headers, quote_payload)
        set_status(client, owner_headers, quote["id"], "aprobado")

        response = client.post(
            f"/quotes/{quote['id']}/convert",
            json={"labor_cost": "10000", "assigned_technician": "Nico"},
            headers=owner_headers
        )
        assert response.status_code == 201
        order = response.json()
        assert order["number"].startswith("OT-")
        assert order["status"] == "pendiente"
        assert len(order["items"]) == 2
        assert quote["number"] in order["general_description"]
        # (35000 + 10000) * 1.21
        assert Decimal(order["total"]) == Decimal("54450.00")

        response = client.get(f"/quotes/{quote['id']}", headers=owner_headers)
        assert response.json()["work_order_id"] == order["id"]

    def test_convert_only_once(self, client, db_session, owner_headers, quote_payload):
        quote = create_quote(client, owner_headers, quote_payload)
        set_status(client, owner_headers, quote["id"], "aprobado")
        client.post(f"/quotes/{quote['id']}/convert", headers=owner_headers)

        response = client.post(f"/quotes/{quote['id']}/convert", headers=owner_headers)
        assert response.status_code == 409
        assert db_session.query(WorkOrder).count() == 1

    def test_product_links_are_kept(self, client, db_session, owner_headers, quote_payload, tenant):
        product = Product(tenant_id=tenant.id, name="Pastillas Ferodo", price=Decimal("20000"), stock=4)
        db_session.add(product)
        db_session.commit()

        payload = {**quote_payload, "items": [
            {"description": "Pastillas Ferodo", "quantity": "1", "unit_price": "20000", "product_id": str(product.id)}
        ]}
        quote = create_quote(client, owner_headers, payload)
        set_status(client, owner_headers, quote["id"], "aprobado")
        order = client.post(f"/quotes/{quote['id']}/convert", headers=owner_headers).json()

        assert order["items"][0]["product_id"] == str(product.id)
        db_session.refresh(product)
        assert product.stock == 4
