"""
Tests para el módulo de Clientes

Cubren CRUD, búsqueda, aislamiento por taller, permisos por rol y la
resolución de cliente/vehículo que usan turnos, órdenes y presupuestos.
"""
import pytest
from fastapi import HTTPException
from uuid import uuid4

from app.modules.clients.models import Client
from app.modules.clients.resolver import resolve_client_and_vehicle
from app.modules.clients.schemas import ClientCreate
from app.modules.vehicles.models import Vehicle
from app.modules.vehicles.schemas import VehicleInline
from app.modules.work_orders.models import WorkOrder


@pytest.fixture
def sample_client_data():
    return {
        "first_name": "María",
        "last_name": "González",
        "phone": "+54 11 5555-1234",
        "email": "Maria.Gonzalez@Email.com",
        "cuit": "27-28033514-8",
        "city": "Rosario"
    }


@pytest.fixture
def existing_client(db_session, tenant, owner):
    client = Client(
        tenant_id=tenant.id,
        first_name="Jorge",
        last_name="Luna",
        phone="3415550000",
        created_by=owner.id
    )
    db_session.add(client)
    db_session.commit()
    return client


class TestClientSchemas:

    def test_names_are_stripped(self, sample_client_data):
        data = ClientCreate(**{**sample_client_data, "first_name": "  María  "})
        assert data.first_name == "María"
        assert data.email == "maria.gonzalez@email.com"

    def test_blank_name_rejected(self, sample_client_data):
        with pytest.raises(ValueError):
            ClientCreate(**{**sample_client_data, "last_name": "   "})

    def test_invalid_phone(self, sample_client_data):
        with pytest.raises(ValueError):
            ClientCreate(**{**sample_client_data, "phone": "llamar a la tarde"})

    def test_cuit_only_checks_format(self, sample_client_data):
        data = ClientCreate(**{**sample_client_data, "cuit": "20-12345678-5"})
        assert data.cuit == "20-12345678-5"
        with pytest.raises(ValueError):
            ClientCreate(**{**sample_client_data, "cuit": "20/12345678/5"})

    def test_empty_optional_fields(self, sample_client_data):
        data = ClientCreate(**{**sample_client_data, "email": "", "city": "  "})
        assert data.email is None
        assert data.city is None


class TestClientEndpoints:

    def test_create_client(self, client, owner_headers, sample_client_data):
        response = client.post("/clients/", json=sample_client_data, headers=owner_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["full_name"] == "María González"
        assert data["email"] == "maria.gonzalez@email.com"

    def test_list_and_search(self, client, owner_headers, sample_client_data, existing_client):
        client.post("/clients/", json=sample_client_data, headers=owner_headers)

        response = client.get("/clients/", headers=owner_headers)
        assert response.json()["total"] == 2

        response = client.get("/clients/", params={"search": "gonz"}, headers=owner_headers)
        data = response.json()
        assert data["total"] == 1
        assert data["clients"][0]["last_name"] == "González"

    def test_pagination(self, client, owner_headers, sample_client_data):
        for i in range(3):
            client.post("/clients/", json={**sample_client_data, "last_name": f"Apellido{i}"}, headers=owner_headers)
        response = client.get("/clients/", params={"limit": 2, "offset": 0}, headers=owner_headers)
        data = response.json()
        assert data["total"] == 3
        assert len(data["clients"]) == 2

    def test_update_client(self, client, owner_headers, existing_client):
        response = client.patch(
            f"/clients/{existing_client.id}",
            json={"city": "Córdoba", "notes": "Prefiere WhatsApp"},
            headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["city"] == "Córdoba"
        assert response.json()["first_name"] == "Jorge"

    def test_update_required_field_to_null(self, client, owner_headers, existing_client):
        response = client.patch(f"/clients/{existing_client.id}", json={"phone": None}, headers=owner_headers)
        assert response.status_code == 400

    def test_client_from_other_tenant_not_found(self, client, make_user, make_tenant, headers_for, existing_client):
        stranger = make_user()
        other_tenant = make_tenant(stranger, name="Otro")
        response = client.get(f"/clients/{existing_client.id}", headers=headers_for(stranger, other_tenant))
        assert response.status_code == 404

    def test_delete_client_detaches_vehicles(self, client, db_session, owner_headers, existing_client, tenant):
        vehicle = Vehicle(tenant_id=tenant.id, plate="AB123CD", client_id=existing_client.id)
        db_session.add(vehicle)
        db_session.commit()
        vehicle_id = vehicle.id

        response = client.delete(f"/clients/{existing_client.id}", headers=owner_headers)
        assert response.status_code == 204

        vehicle = db_session.query(Vehicle).filter(Vehicle.id == vehicle_id).one()
        assert vehicle.client_id is None
        assert vehicle.owner_name == "Jorge Luna"

    def test_delete_client_with_work_orders(self, client, db_session, owner_headers, existing_client, tenant):
        vehicle = Vehicle(tenant_id=tenant.id, plate="AB123CD", client_id=existing_client.id)
        db_session.add(vehicle)
        db_session.flush()
        db_session.add(WorkOrder(
            tenant_id=tenant.id,
            number="OT-202401-0001",
            client_id=existing_client.id,
            vehicle_id=vehicle.id,
            general_description="Service"
        ))
        db_session.commit()

        response = client.delete(f"/clients/{existing_client.id}", headers=owner_headers)
        assert response.status_code == 409

    def test_client_vehicles_and_work_orders(self, client, db_session, owner_headers, existing_client, tenant):
        db_session.add(Vehicle(tenant_id=tenant.id, plate="AB123CD", client_id=existing_client.id))
        db_session.commit()

        response = client.get(f"/clients/{existing_client.id}/vehicles", headers=owner_headers)
        assert response.status_code == 200
        assert [v["plate"] for v in response.json()] == ["AB123CD"]

        response = client.get(f"/clients/{existing_client.id}/work-orders", headers=owner_headers)
        assert response.status_code == 200
        assert response.json() == []


class TestClientPermissions:

    def test_viewer_can_list_but_not_create(self, client, role_headers, sample_client_data):
        headers = role_headers("viewer")
        assert client.get("/clients/", headers=headers).status_code == 200
        assert client.post("/clients/", json=sample_client_data, headers=headers).status_code == 403

    def test_user_cannot_delete(self, client, role_headers, existing_client):
        response = client.delete(f"/clients/{existing_client.id}", headers=role_headers("user"))
        assert response.status_code == 403

    def test_requires_authentication(self, client):
        response = client.get("/clients/")
        assert response.status_code in (401, 403)


class TestResolver:

    def test_creates_client_and_vehicle_inline(self, db_session, tenant, owner):
        client, vehicle = resolve_client_and_vehicle(
            db_session,
            tenant.id,
            owner.id,
            new_client=ClientCreate(first_name="Ana", last_name="Paz", phone="1122223333"),
            new_vehicle=VehicleInline(plate="ac 001 zz", make_model="Fiat Cronos")
        )
        assert client.id is not None
        assert vehicle.plate == "AC 001 ZZ"
        assert vehicle.client_id == client.id
        assert db_session.query(Vehicle).count() == 1

    def test_vehicle_must_belong_to_client(self, db_session, tenant, owner, existing_client):
        other = Client(tenant_id=tenant.id, first_name="Otro", last_name="Dueño", phone="1100000000")
        db_session.add(other)
        db_session.flush()
        vehicle = Vehicle(tenant_id=tenant.id, plate="ZZ999ZZ", client_id=other.id)
        db_session.add(vehicle)
        db_session.commit()

        with pytest.raises(HTTPException) as exc:
            resolve_client_and_vehicle(
                db_session, tenant.id, owner.id,
                client_id=existing_client.id,
                vehicle_id=vehicle.id
            )
        assert exc.value.status_code == 400

    def test_unknown_client(self, db_session, tenant, owner):
        with pytest.raises(HTTPException) as exc:
            resolve_client_and_vehicle(
                db_session, tenant.id, owner.id,
                client_id=uuid4(),
                new_vehicle=VehicleInline(plate="AB123CD")
            )
        assert exc.value.status_code == 404
