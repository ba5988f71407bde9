from sqlalchemy import Column, String, Text, Boolean, Numeric, Integer, DateTime, ForeignKey, Uuid, UniqueConstraint, Index
from sqlalchemy.orm import relationship
import enum

from app.database.database import Base
from app.common.mixins import BaseMixin


class WorkOrderStatus(str, enum.Enum):
    PENDING = "pendiente"
    IN_PROGRESS = "en_progreso"
    COMPLETED = "completado"
    CANCELLED = "cancelado"


class WorkOrderPriority(str, enum.Enum):
    LOW = "baja"
    MEDIUM = "media"
    HIGH = "alta"
    URGENT = "urgente"


class WorkOrder(Base, BaseMixin):
    """
    Orden de trabajo. El número (OT-YYYYMM-XXXX) es único por taller y los
    totales se calculan en el servidor.
    """
    __tablename__ = "work_orders"

    number = Column(String(30), nullable=False, index=True)
    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=False, index=True)
    vehicle_id = Column(Uuid, ForeignKey("vehicles.id"), nullable=False, index=True)
    general_description = Column(Text, nullable=False)

    # Totales
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    discount = Column(Numeric(5, 2), nullable=False, default=0)  # porcentaje
    discount_amount = Column(Numeric(15, 2), nullable=False, default=0)
    labor_cost = Column(Numeric(15, 2), nullable=False, default=0)
    taxes = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)
    apply_vat = Column(Boolean, nullable=False, default=False)

    status = Column(String(20), nullable=False, default=WorkOrderStatus.PENDING.value, index=True)
    priority = Column(String(20), nullable=False, default=WorkOrderPriority.MEDIUM.value)
    assigned_technician = Column(String(100), nullable=True)
    observations = Column(Text, nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Relationships
    client = relationship("Client")
    vehicle = relationship("Vehicle")
    items = relationship(
        "WorkOrderItem",
        back_populates="work_order",
        cascade="all, delete-orphan",
        order_by="WorkOrderItem.position"
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_work_order_tenant_number"),
        Index("idx_work_orders_tenant_status", "tenant_id", "status"),
    )


class WorkOrderItem(Base, BaseMixin):
    __tablename__ = "work_order_items"

    work_order_id = Column(Uuid, ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(10, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    subtotal = Column(Numeric(15, 2), nullable=False)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=True, index=True)

    # Relationships
    work_order = relationship("WorkOrder", back_populates="items")
    product = relationship("Product")
