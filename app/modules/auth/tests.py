"""
Tests de autenticación: registro, verificación, login, selección de taller y contraseñas
"""
import pytest
from datetime import datetime, timedelta, timezone

from app.modules.auth.models import User, EmailVerificationToken, PasswordResetToken
from app.modules.auth.schemas import UserCreate
from app.modules.auth.utils import hash_password, verify_password


REGISTER_PAYLOAD = {
    "email": "Nuevo@Taller.com",
    "password": "secreto123",
    "confirm_password": "secreto123",
    "profile": {"first_name": "Ana", "last_name": "Molina", "phone_number": "+54 11 4444-5555"}
}


def login(client, email, password):
    return client.post("/auth/login", data={"username": email, "password": password})


def latest_token(db_session, model, user_id):
    return db_session.query(model).filter(
        model.user_id == user_id,
        model.is_used.is_(False)
    ).one().token


class TestUtils:

    def test_password_hashing(self):
        hashed = hash_password("clave-segura")
        assert hashed != "clave-segura"
        assert verify_password("clave-segura", hashed)
        assert not verify_password("otra", hashed)

    def test_register_schema(self):
        data = UserCreate(**REGISTER_PAYLOAD)
        assert data.email == "nuevo@taller.com"
        with pytest.raises(ValueError):
            UserCreate(**{**REGISTER_PAYLOAD, "confirm_password": "distinta"})


class TestRegistration:

    def test_register_and_verify(self, client, db_session):
        response = client.post("/auth/register", json=REGISTER_PAYLOAD)
        assert response.status_code == 201
        data = response.json()
        assert data["verification_required"] is True

        user = db_session.query(User).filter(User.email == "nuevo@taller.com").one()
        assert user.is_active is False

        # Sin verificar no puede iniciar sesión
        assert login(client, "nuevo@taller.com", "secreto123").status_code == 403

        token = latest_token(db_session, EmailVerificationToken, user.id)
        response = client.get("/auth/verify-email", params={"token": token})
        assert response.status_code == 200
        assert response.json()["is_active"] is True

        # El token es de un solo uso
        assert client.post("/auth/verify-email", json={"token": token}).status_code == 400

        response = login(client, "nuevo@taller.com", "secreto123")
        assert response.status_code == 200
        assert response.json()["tenants"] == []

    def test_verify_with_auto_login(self, client, db_session):
        client.post("/auth/register", json=REGISTER_PAYLOAD)
        user = db_session.query(User).filter(User.email == "nuevo@taller.com").one()
        token = latest_token(db_session, EmailVerificationToken, user.id)

        response = client.post("/auth/verify-email", json={"token": token, "auto_login": True})
        data = response.json()
        assert data["access_token"]
        assert data["refresh_token"]

    def test_expired_verification_token(self, client, db_session):
        client.post("/auth/register", json=REGISTER_PAYLOAD)
        token = db_session.query(EmailVerificationToken).one()
        token.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db_session.commit()

        assert client.post("/auth/verify-email", json={"token": token.token}).status_code == 400

    def test_resend_invalidates_previous_token(self, client, db_session):
        client.post("/auth/register", json=REGISTER_PAYLOAD)
        first = db_session.query(EmailVerificationToken).one().token

        response = client.post("/auth/resend-verification", json={"email": "nuevo@taller.com"})
        assert response.status_code == 200

        db_session.expire_all()
        assert db_session.query(EmailVerificationToken).count() == 2
        assert client.post("/auth/verify-email", json={"token": first}).status_code == 400

    def test_resend_unknown_email_does_not_leak(self, client):
        response = client.post("/auth/resend-verification", json={"email": "nadie@taller.com"})
        assert response.status_code == 200

    def test_duplicate_email(self, client, owner):
        response = client.post("/auth/register", json={**REGISTER_PAYLOAD, "email": "DUENO@taller.com"})
        assert response.status_code == 400


class TestLogin:

    def test_login_lists_tenants(self, client, owner, tenant):
        response = login(client, "dueno@taller.com", "Password123")
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "dueno@taller.com"
        assert [t["tenant_name"] for t in data["tenants"]] == ["Taller Central"]
        assert data["tenants"][0]["role"] == "owner"

    def test_wrong_password(self, client, owner):
        assert login(client, "dueno@taller.com", "incorrecta").status_code == 401

    def test_unknown_user(self, client):
        assert login(client, "fantasma@taller.com", "Password123").status_code == 401

    def test_refresh(self, client, owner):
        tokens = login(client, "dueno@taller.com", "Password123").json()

        response = client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200
        assert response.json()["access_token"]

        response = client.post("/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert response.status_code == 400

    def test_select_tenant_and_context(self, client, owner, tenant):
        access = login(client, "dueno@taller.com", "Password123").json()["access_token"]
        headers = {"Authorization": f"Bearer {access}"}

        # Sin taller seleccionado los endpoints del taller responden 400
        assert client.get("/clients/", headers=headers).status_code == 400

        response = client.post("/auth/select-tenant", json={"tenant_id": str(tenant.id)}, headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["user_role"] == "owner"
        assert "change_plan" in data["permissions"]

        context_headers = {"Authorization": f"Bearer {data['access_token']}"}
        response = client.get("/auth/context", headers=context_headers)
        context = response.json()
        assert context["tenant_id"] == str(tenant.id)
        assert context["user_role"] == "owner"
        assert client.get("/clients/", headers=context_headers).status_code == 200

    def test_select_foreign_tenant(self, client, make_user, make_tenant, headers_for, owner):
        other = make_tenant(make_user(), name="Ajeno")
        response = client.post("/auth/select-tenant", json={"tenant_id": str(other.id)}, headers=headers_for(owner))
        assert response.status_code == 403

    def test_invalid_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer no-es-un-token"})
        assert response.status_code == 401


class TestProfile:

    def test_me(self, client, owner, headers_for):
        response = client.get("/auth/me", headers=headers_for(owner))
        assert response.status_code == 200
        assert response.json()["profile"]["full_name"] == "Carlos Gómez"

    def test_update_profile(self, client, owner, headers_for):
        response = client.patch(
            "/auth/me",
            json={"profile": {"phone_number": "+54 341 555-0000", "first_name": None}},
            headers=headers_for(owner)
        )
        assert response.status_code == 200
        profile = response.json()["profile"]
        assert profile["phone_number"] == "+54 341 555-0000"
        assert profile["first_name"] == "Carlos"


class TestPasswords:

    def test_change_password(self, client, owner, headers_for):
        headers = headers_for(owner)
        payload = {"current_password": "Password123", "new_password": "NuevaClave1", "confirm_password": "NuevaClave1"}

        response = client.post("/auth/change-password", json={**payload, "current_password": "mala"}, headers=headers)
        assert response.status_code == 400

        response = client.post("/auth/change-password", json=payload, headers=headers)
        assert response.status_code == 200
        assert login(client, "dueno@taller.com", "NuevaClave1").status_code == 200

    def test_change_password_must_differ(self, client, owner, headers_for):
        payload = {"current_password": "Password123", "new_password": "Password123", "confirm_password": "Password123"}
        response = client.post("/auth/change-password", json=payload, headers=headers_for(owner))
        assert response.status_code == 400

    def test_reset_password_flow(self, client, db_session, owner):
        response = client.post("/auth/request-password-reset", json={"email": "dueno@taller.com"})
        assert response.status_code == 200

        token = latest_token(db_session, PasswordResetToken, owner.id)
        response = client.post("/auth/reset-password", json={"token": token, "new_password": "Restablecida9"})
        assert response.status_code == 200

        assert login(client, "dueno@taller.com", "Restablecida9").status_code == 200
        response = client.post("/auth/reset-password", json={"token": token, "new_password": "OtraVez99"})
        assert response.status_code == 400

    def test_reset_unknown_email(self, client, db_session):
        response = client.post("/auth/request-password-reset", json={"email": "nadie@taller.com"})
        assert response.status_code == 200
        assert db_session.query(PasswordResetToken).count() == 0
