from sqlalchemy import Column, String, Text, Boolean, Numeric, Integer, Date, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
import enum

from app.database.database import Base
from app.common.mixins import BaseMixin


class QuoteStatus(str, enum.Enum):
    DRAFT = "borrador"
    SENT = "enviado"
    APPROVED = "aprobado"
    REJECTED = "rechazado"


class Quote(Base, BaseMixin):
    """Presupuesto. Numeración PRE-YYYYMM-XXXX por taller."""
    __tablename__ = "quotes"

    number = Column(String(30), nullable=False, index=True)
    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=False, index=True)
    vehicle_id = Column(Uuid, ForeignKey("vehicles.id"), nullable=False, index=True)

    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    vat = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)
    apply_vat = Column(Boolean, nullable=False, default=False)

    status = Column(String(20), nullable=False, default=QuoteStatus.DRAFT.value, index=True)
    valid_until = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    # Orden generada al convertir el presupuesto
    work_order_id = Column(Uuid, ForeignKey("work_orders.id"), nullable=True)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Relationships
    client = relationship("Client")
    vehicle = relationship("Vehicle")
    items = relationship(
        "QuoteItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteItem.position"
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_quote_tenant_number"),
    )


class QuoteItem(Base, BaseMixin):
    __tablename__ = "quote_items"

    quote_id = Column(Uuid, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(255), nullable=False)
    quantity = Column(Numeric(10, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    subtotal = Column(Numeric(15, 2), nullable=False)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=True)

    # Relationships
    quote = relationship("Quote", back_populates="items")
