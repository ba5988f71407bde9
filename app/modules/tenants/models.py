"""
Modelos de talleres (tenants), membresías y contadores por taller.
"""
from sqlalchemy import Column, String, Boolean, ForeignKey, DateTime, Integer, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from uuid import uuid4

from app.database.database import Base
from app.common.mixins import TimestampMixin, utcnow
from app.core.config import settings


class Tenant(Base, TimestampMixin):
    """Taller: unidad de aislamiento de datos."""
    __tablename__ = "tenants"

    id = Column(Uuid, primary_key=True, default=uuid4, index=True)
    name = Column(String(100), nullable=False)
    legal_name = Column(String(200), nullable=True)
    tax_id = Column(String(20), nullable=True)  # CUIT
    email = Column(String, nullable=True)
    phone = Column(String(30), nullable=True)
    website = Column(String, nullable=True)
    address = Column(JSON, nullable=True)  # {street, city, state, zip_code, country}

    active = Column(Boolean, default=True, nullable=False)

    # Branding y localización
    logo = Column(String, nullable=True)
    primary_color = Column(String(7), nullable=True)
    timezone = Column(String(64), default=settings.DEFAULT_TIMEZONE, nullable=False)
    locale = Column(String(10), default=settings.DEFAULT_LOCALE, nullable=False)
    currency = Column(String(3), default=settings.DEFAULT_CURRENCY, nullable=False)

    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    plan = Column(String(20), default=settings.DEFAULT_TENANT_PLAN, nullable=False)

    # Relationships
    owner = relationship("User", foreign_keys=[owner_id])
    memberships = relationship("TenantMembership", back_populates="tenant", cascade="all, delete-orphan")
    counter = relationship("TenantCounter", back_populates="tenant", uselist=False, cascade="all, delete-orphan")


class TenantMembership(Base, TimestampMixin):
    __tablename__ = "tenant_memberships"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="user")  # owner, admin, manager, user, viewer
    is_active = Column(Boolean, default=True, nullable=False)
    joined_at = Column(DateTime(timezone=True), default=utcnow)
    invited_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Relationships
    user = relationship("User", back_populates="memberships", foreign_keys=[user_id])
    tenant = relationship("Tenant", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("user_id", "tenant_id", name="uq_user_tenant"),
    )


class TenantCounter(Base):
    """Secuencias de numeración por taller (órdenes de trabajo y presupuestos)."""
    __tablename__ = "tenant_counters"

    tenant_id = Column(Uuid, ForeignKey("tenants.id"), primary_key=True)
    work_orders_counter = Column(Integer, nullable=False, default=0)
    quotes_counter = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    tenant = relationship("Tenant", back_populates="counter")
