"""
Tests para la agenda de turnos
"""
import pytest
from datetime import date, timedelta

from app.modules.appointments.models import Appointment, AppointmentStatus
from app.modules.appointments.schemas import AppointmentCreate, AppointmentUpdate
from app.modules.clients.models import Client
from app.modules.vehicles.models import Vehicle


@pytest.fixture
def client_with_vehicle(db_session, tenant):
    customer = Client(tenant_id=tenant.id, first_name="Pedro", last_name="Suárez", phone="1133334444")
    db_session.add(customer)
    db_session.flush()
    vehicle = Vehicle(tenant_id=tenant.id, plate="AE456FG", make_model="Toyota Etios", client_id=customer.id)
    db_session.add(vehicle)
    db_session.commit()
    return customer, vehicle


@pytest.fixture
def appointment_payload(client_with_vehicle):
    customer, vehicle = client_with_vehicle
    return {
        "client_id": str(customer.id),
        "vehicle_id": str(vehicle.id),
        "date": date.today().isoformat(),
        "start_time": "09:00",
        "end_time": "10:30",
        "description": "Cambio de aceite"
    }


class TestAppointmentSchemas:

    def test_end_after_start(self, appointment_payload):
        with pytest.raises(ValueError):
            AppointmentCreate(**{**appointment_payload, "start_time": "11:00", "end_time": "10:00"})

    def test_invalid_time_format(self, appointment_payload):
        with pytest.raises(ValueError):
            AppointmentCreate(**{**appointment_payload, "start_time": "9:00"})

    def test_requires_client_reference(self, appointment_payload):
        payload = {k: v for k, v in appointment_payload.items() if k != "client_id"}
        with pytest.raises(ValueError):
            AppointmentCreate(**payload)

    def test_default_status(self, appointment_payload):
        assert AppointmentCreate(**appointment_payload).status == AppointmentStatus.PENDING

    def test_update_description_is_stripped(self):
        assert AppointmentUpdate(description="  Alineación  ").description == "Alineación"
        with pytest.raises(ValueError):
            AppointmentUpdate(description="   ")


class TestAppointmentEndpoints:

    def test_create_appointment(self, client, owner_headers, appointment_payload):
        response = client.post("/appointments/", json=appointment_payload, headers=owner_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pendiente"
        assert data["client"]["full_name"] == "Pedro Suárez"
        assert data["vehicle"]["plate"] == "AE456FG"

    def test_create_with_new_client_and_vehicle(self, client, db_session, owner_headers):
        response = client.post(
            "/appointments/",
            json={
                "new_client": {"first_name": "Sofía", "last_name": "Vera", "phone": "1177778888"},
                "new_vehicle": {"plate": "ad 789 hj", "make_model": "Peugeot 208"},
                "date": date.today().isoformat(),
                "start_time": "14:00",
                "end_time": "15:00",
                "description": "Revisión de frenos"
            },
            headers=owner_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["vehicle"]["plate"] == "AD 789 HJ"
        vehicle = db_session.query(Vehicle).filter(Vehicle.plate == "AD 789 HJ").one()
        assert str(vehicle.client_id) == data["client_id"]

    def test_failed_creation_leaves_nothing(self, client, db_session, owner_headers, client_with_vehicle):
        _, vehicle = client_with_vehicle
        response = client.post(
            "/appointments/",
            json={
                "new_client": {"first_name": "Sofía", "last_name": "Vera", "phone": "1177778888"},
                "vehicle_id": str(vehicle.id),
                "date": date.today().isoformat(),
                "start_time": "14:00",
                "end_time": "15:00",
                "description": "Revisión"
            },
            headers=owner_headers
        )
        # El vehículo pertenece a otro cliente
        assert response.status_code == 400
        assert db_session.query(Client).count() == 1
        assert db_session.query(Appointment).count() == 0

    def test_list_by_date_ordered(self, client, owner_headers, appointment_payload):
        tomorrow = (date.today() + timedelta(days=1)).isoformat()
        client.post("/appointments/", json={**appointment_payload, "start_time": "11:00", "end_time": "12:00"},
                    headers=owner_headers)
        client.post("/appointments/", json=appointment_payload, headers=owner_headers)
        client.post("/appointments/", json={**appointment_payload, "date": tomorrow}, headers=owner_headers)

        response = client.get("/appointments/", params={"date": date.today().isoformat()}, headers=owner_headers)
        data = response.json()
        assert data["total"] == 2
        assert [a["start_time"] for a in data["appointments"]] == ["09:00", "11:00"]

        response = client.get(
            "/appointments/",
            params={"start_date": date.today().isoformat(), "end_date": tomorrow},
            headers=owner_headers
        )
        assert response.json()["total"] == 3

    def test_invalid_range(self, client, owner_headers):
        response = client.get(
            "/appointments/",
            params={"start_date": "2024-05-10", "end_date": "2024-05-01"},
            headers=owner_headers
        )
        assert response.status_code == 400

    def test_change_status_any_direction(self, client, owner_headers, appointment_payload):
        appointment_id = client.post("/appointments/", json=appointment_payload, headers=owner_headers).json()["id"]

        response = client.patch(f"/appointments/{appointment_id}/status", json={"status": "completado"},
                                headers=owner_headers)
        assert response.json()["status"] == "completado"

        response = client.patch(f"/appointments/{appointment_id}/status", json={"status": "pendiente"},
                                headers=owner_headers)
        assert response.json()["status"] == "pendiente"

        response = client.get("/appointments/", params={"status": "pendiente"}, headers=owner_headers)
        assert response.json()["total"] == 1

    def test_update_times(self, client, owner_headers, appointment_payload):
        appointment_id = client.post("/appointments/", json=appointment_payload, headers=owner_headers).json()["id"]

        response = client.patch(f"/appointments/{appointment_id}", json={"end_time": "08:00"}, headers=owner_headers)
        assert response.status_code == 400

        response = client.patch(f"/appointments/{appointment_id}", json={"end_time": "12:00", "notes": "Traer llave"},
                                headers=owner_headers)
        assert response.status_code == 200
        assert response.json()["end_time"] == "12:00"
        assert response.json()["notes"] == "Traer llave"

    def test_update_blank_description(self, client, owner_headers, appointment_payload):
        appointment_id = client.post("/appointments/", json=appointment_payload, headers=owner_headers).json()["id"]

        response = client.patch(f"/appointments/{appointment_id}", json={"description": "   "}, headers=owner_headers)
        assert response.status_code == 422

        response = client.get(f"/appointments/{appointment_id}", headers=owner_headers)
        assert response.json()["description"] == "Cambio de aceite"

    def test_delete_appointment(self, client, owner_headers, appointment_payload):
        appointment_id = client.post("/appointments/", json=appointment_payload, headers=owner_headers).json()["id"]
        assert client.delete(f"/appointments/{appointment_id}", headers=owner_headers).status_code == 204
        assert client.get(f"/appointments/{appointment_id}", headers=owner_headers).status_code == 404

    def test_user_cannot_delete(self, client, owner_headers, role_headers, appointment_payload):
        appointment_id = client.post("/appointments/", json=appointment_payload, headers=owner_headers).json()["id"]
        response = client.delete(f"/appointments/{appointment_id}", headers=role_headers("user"))
        assert response.status_code == 403

    def test_schedule_not_in_trial(self, client, make_user, make_tenant, headers_for):
        owner = make_user()
        trial_tenant = make_tenant(owner, plan="trial")
        response = client.get("/appointments/", headers=headers_for(owner, trial_tenant))
        assert response.status_code == 403
