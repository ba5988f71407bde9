from sqlalchemy import Column, String, Text, Integer, Boolean, Numeric, ForeignKey, Uuid, Index
from sqlalchemy.orm import relationship
import enum

from app.database.database import Base
from app.common.mixins import BaseMixin


class MovementType(str, enum.Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


class Product(Base, BaseMixin):
    """Repuesto o insumo del taller. El stock es un entero que nunca queda negativo."""
    __tablename__ = "products"

    code = Column(String(50), nullable=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    price = Column(Numeric(15, 2), nullable=False, default=0)  # Precio de venta
    purchase_price = Column(Numeric(15, 2), nullable=False, default=0)  # Costo
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)
    unit = Column(String(20), nullable=True)
    brand = Column(String(100), nullable=True)
    supplier = Column(String(100), nullable=True)
    location = Column(String(100), nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Relationships
    movements = relationship("StockMovement", back_populates="product", cascade="all, delete-orphan")

    @property
    def is_low_stock(self) -> bool:
        return (self.stock or 0) <= (self.min_stock or 0)


class StockMovement(Base, BaseMixin):
    __tablename__ = "stock_movements"

    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)  # positivo o negativo
    movement_type = Column(String(20), nullable=False)
    reference = Column(String(100), nullable=True)  # número de orden, ajuste, etc.
    notes = Column(String(255), nullable=True)
    work_order_id = Column(Uuid, ForeignKey("work_orders.id"), nullable=True, index=True)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Relationships
    product = relationship("Product", back_populates="movements")

    __table_args__ = (
        Index("idx_stock_movements_tenant_product", "tenant_id", "product_id"),
    )
