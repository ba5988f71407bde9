from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Uuid, Index
from sqlalchemy.orm import relationship
import enum

from app.database.database import Base
from app.common.mixins import BaseMixin


class MovementKind(str, enum.Enum):
    INCOME = "ingreso"
    EXPENSE = "egreso"


class PaymentMethod(str, enum.Enum):
    CASH = "efectivo"
    CARD = "tarjeta"
    TRANSFER = "transferencia"
    OTHER = "otro"


class CashMovement(Base, BaseMixin):
    """Movimiento de caja. El importe es siempre positivo; el tipo indica el signo."""
    __tablename__ = "cash_movements"

    type = Column(String(20), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    concept = Column(String(200), nullable=False)
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.CASH.value)
    work_order_id = Column(Uuid, ForeignKey("work_orders.id"), nullable=True, index=True)
    date = Column(Date, nullable=False)
    notes = Column(String(500), nullable=True)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Relationships
    work_order = relationship("WorkOrder")

    __table_args__ = (
        Index("idx_cash_movements_tenant_date", "tenant_id", "date"),
    )
