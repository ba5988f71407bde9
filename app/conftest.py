"""
Fixtures compartidas por los tests de todos los módulos.

La base de datos es SQLite en memoria: se crean las tablas antes de cada test
y se eliminan al terminar. Los correos no se envían y las tareas de Celery
corren en el mismo proceso.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient
from uuid import uuid4

from app.main import app
from app.database.database import Base, SessionLocal, sync_engine, get_db
from app.common.permissions import TenantRole
from app.modules.auth.models import User, Profile
from app.modules.auth.utils import hash_password, create_access_token, create_context_token
from app.modules.plans.constants import PlanCode
from app.modules.tenants.counters import CounterService
from app.modules.tenants.models import Tenant, TenantMembership

DEFAULT_PASSWORD = "Password123"


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=sync_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=sync_engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Crea usuarios verificados y activos."""
    def _make_user(
        email=None,
        password=DEFAULT_PASSWORD,
        first_name="Juan",
        last_name="Pérez",
        verified=True,
        is_superuser=False
    ):
        profile = Profile(first_name=first_name, last_name=last_name)
        db_session.add(profile)
        db_session.flush()

        user = User(
            email=email or f"user-{uuid4().hex[:8]}@taller.com",
            password=hash_password(password),
            profile_id=profile.id,
            is_active=verified,
            email_verified=verified,
            is_superuser=is_superuser
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_tenant(db_session):
    """Crea un taller con su dueño como miembro y su contador inicializado."""
    def _make_tenant(owner, name="Taller Central", plan=PlanCode.PREMIUM.value):
        tenant = Tenant(name=name, owner_id=owner.id, plan=plan, active=True)
        db_session.add(tenant)
        db_session.flush()

        db_session.add(TenantMembership(
            user_id=owner.id,
            tenant_id=tenant.id,
            role=TenantRole.OWNER.value,
            is_active=True
        ))
        db_session.flush()
        CounterService(db_session).initialize_counter(tenant.id)
        db_session.commit()
        db_session.refresh(tenant)
        return tenant
    return _make_tenant


@pytest.fixture
def owner(make_user):
    return make_user(email="dueno@taller.com", first_name="Carlos", last_name="Gómez")


@pytest.fixture
def tenant(make_tenant, owner):
    return make_tenant(owner)


@pytest.fixture
def add_member(db_session, make_user):
    """Agrega un usuario al taller con el rol indicado."""
    def _add_member(tenant, role, email=None):
        user = make_user(email=email)
        db_session.add(TenantMembership(
            user_id=user.id,
            tenant_id=tenant.id,
            role=TenantRole(role).value,
            is_active=True
        ))
        db_session.commit()
        return user
    return _add_member


@pytest.fixture
def headers_for():
    """Headers con token de contexto (usuario + taller)."""
    def _headers_for(user, tenant=None):
        if tenant is None:
            token = create_access_token({"sub": str(user.id), "email": user.email})
        else:
            token = create_context_token({
                "sub": str(user.id),
                "email": user.email,
                "tenant_id": str(tenant.id)
            })
        return {"Authorization": f"Bearer {token}"}
    return _headers_for


@pytest.fixture
def owner_headers(headers_for, owner, tenant):
    return headers_for(owner, tenant)


@pytest.fixture
def role_headers(add_member, headers_for, tenant):
    """Headers para un miembro nuevo del taller con el rol indicado."""
    def _role_headers(role):
        return headers_for(add_member(tenant, role), tenant)
    return _role_headers
