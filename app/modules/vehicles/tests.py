"""
Tests para el módulo de Vehículos
"""
import pytest
from datetime import date

from app.modules.clients.models import Client
from app.modules.vehicles.models import Vehicle
from app.modules.vehicles.schemas import VehicleCreate


@pytest.fixture
def vehicle_owner(db_session, tenant):
    client = Client(tenant_id=tenant.id, first_name="Laura", last_name="Ríos", phone="1166667777")
    db_session.add(client)
    db_session.commit()
    return client


@pytest.fixture
def existing_vehicle(db_session, tenant, vehicle_owner):
    vehicle = Vehicle(
        tenant_id=tenant.id,
        plate="AA111AA",
        make_model="Ford Ka",
        client_id=vehicle_owner.id
    )
    db_session.add(vehicle)
    db_session.commit()
    return vehicle


class TestVehicleSchemas:

    def test_plate_is_normalized(self):
        assert VehicleCreate(plate="  ab 123 cd ").plate == "AB 123 CD"

    def test_invalid_plate(self):
        with pytest.raises(ValueError):
            VehicleCreate(plate="AB#123")

    def test_year_range(self):
        VehicleCreate(plate="AB123CD", year=date.today().year + 1)
        with pytest.raises(ValueError):
            VehicleCreate(plate="AB123CD", year=1899)
        with pytest.raises(ValueError):
            VehicleCreate(plate="AB123CD", year=date.today().year + 2)

    def test_negative_mileage(self):
        with pytest.raises(ValueError):
            VehicleCreate(plate="AB123CD", mileage=-1)


class TestVehicleEndpoints:

    def test_create_vehicle(self, client, owner_headers, vehicle_owner):
        response = client.post(
            "/vehicles/",
            json={"plate": "ab123cd", "make_model": "VW Gol", "year": 2015, "client_id": str(vehicle_owner.id)},
            headers=owner_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["plate"] == "AB123CD"
        assert data["client_id"] == str(vehicle_owner.id)

    def test_vehicle_without_client(self, client, owner_headers):
        response = client.post(
            "/vehicles/",
            json={"plate": "XY987ZW", "owner_name": "Dueño ocasional"},
            headers=owner_headers
        )
        assert response.status_code == 201
        assert response.json()["client_id"] is None

    def test_duplicate_plate(self, client, owner_headers, existing_vehicle):
        response = client.post("/vehicles/", json={"plate": "aa111aa"}, headers=owner_headers)
        assert response.status_code == 409

    def test_same_plate_in_other_tenant(self, client, make_user, make_tenant, headers_for, existing_vehicle):
        other_owner = make_user()
        other_tenant = make_tenant(other_owner, name="Otro")
        response = client.post("/vehicles/", json={"plate": "AA111AA"}, headers=headers_for(other_owner, other_tenant))
        assert response.status_code == 201

    def test_unknown_client(self, client, owner_headers, make_user, make_tenant, db_session):
        foreign_tenant = make_tenant(make_user(), name="Ajeno")
        foreign_client = Client(tenant_id=foreign_tenant.id, first_name="X", last_name="Y", phone="1100000000")
        db_session.add(foreign_client)
        db_session.commit()

        response = client.post(
            "/vehicles/",
            json={"plate": "AB123CD", "client_id": str(foreign_client.id)},
            headers=owner_headers
        )
        assert response.status_code == 404

    def test_filter_by_client_and_search(self, client, owner_headers, existing_vehicle, vehicle_owner):
        client.post("/vehicles/", json={"plate": "ZZ000ZZ", "make_model": "Renault Clio"}, headers=owner_headers)

        response = client.get("/vehicles/", params={"client_id": str(vehicle_owner.id)}, headers=owner_headers)
        assert response.json()["total"] == 1

        response = client.get("/vehicles/", params={"search": "clio"}, headers=owner_headers)
        data = response.json()
        assert data["total"] == 1
        assert data["vehicles"][0]["plate"] == "ZZ000ZZ"

    def test_update_vehicle(self, client, owner_headers, existing_vehicle):
        response = client.patch(
            f"/vehicles/{existing_vehicle.id}",
            json={"mileage": 120000, "color": "Rojo"},
            headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["mileage"] == 120000

    def test_update_plate_to_existing(self, client, owner_headers, existing_vehicle, db_session, tenant):
        db_session.add(Vehicle(tenant_id=tenant.id, plate="BB222BB"))
        db_session.commit()
        response = client.patch(f"/vehicles/{existing_vehicle.id}", json={"plate": "bb222bb"}, headers=owner_headers)
        assert response.status_code == 409

    def test_delete_vehicle(self, client, owner_headers, existing_vehicle):
        response = client.delete(f"/vehicles/{existing_vehicle.id}", headers=owner_headers)
        assert response.status_code == 204
        assert client.get(f"/vehicles/{existing_vehicle.id}", headers=owner_headers).status_code == 404

    def test_viewer_cannot_edit(self, client, role_headers, existing_vehicle):
        response = client.patch(f"/vehicles/{existing_vehicle.id}", json={"color": "Azul"}, headers=role_headers("viewer"))
        assert response.status_code == 403


class TestVehicleLimit:
    """El límite de vehículos del plan también aplica a los creados junto con una orden o un turno."""

    @pytest.fixture
    def full_workshop(self, db_session, make_user, make_tenant):
        def _full_workshop(plan, vehicles):
            owner = make_user()
            tenant = make_tenant(owner, plan=plan)
            db_session.add_all([Vehicle(tenant_id=tenant.id, plate=f"AA{i:03d}ZZ") for i in range(vehicles)])
            db_session.commit()
            return owner, tenant
        return _full_workshop

    def test_create_vehicle_over_limit(self, client, full_workshop, headers_for):
        owner, tenant = full_workshop("trial", 50)
        response = client.post("/vehicles/", json={"plate": "AB123CD"}, headers=headers_for(owner, tenant))
        assert response.status_code == 409
        assert "límite" in response.json()["detail"]

    def test_inline_vehicle_from_work_order(self, client, db_session, full_workshop, headers_for):
        owner, tenant = full_workshop("trial", 50)
        response = client.post(
            "/work-orders/",
            json={
                "new_client": {"first_name": "Lucía", "last_name": "Ortiz", "phone": "1150505050"},
                "new_vehicle": {"plate": "AG111BB"},
                "general_description": "Service"
            },
            headers=headers_for(owner, tenant)
        )
        assert response.status_code == 409

        # El cliente creado en la misma operación no queda guardado
        assert db_session.query(Client).filter(Client.tenant_id == tenant.id).count() == 0
        assert db_session.query(Vehicle).filter(Vehicle.tenant_id == tenant.id).count() == 50

    def test_inline_vehicle_from_appointment(self, client, db_session, full_workshop, headers_for):
        owner, tenant = full_workshop("basic", 500)
        response = client.post(
            "/appointments/",
            json={
                "new_client": {"first_name": "Sofía", "last_name": "Vera", "phone": "1177778888"},
                "new_vehicle": {"plate": "AD789HJ"},
                "date": date.today().isoformat(),
                "start_time": "14:00",
                "end_time": "15:00",
                "description": "Revisión de frenos"
            },
            headers=headers_for(owner, tenant)
        )
        assert response.status_code == 409
        assert db_session.query(Client).filter(Client.tenant_id == tenant.id).count() == 0
