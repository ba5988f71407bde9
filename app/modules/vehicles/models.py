from sqlalchemy import Column, String, Text, Integer, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from app.database.database import Base
from app.common.mixins import BaseMixin


class Vehicle(Base, BaseMixin):
    """Vehículo. La patente es única por taller y se guarda en mayúsculas."""
    __tablename__ = "vehicles"

    plate = Column(String(20), nullable=False, index=True)
    chassis_number = Column(String(50), nullable=True)
    make_model = Column(String(100), nullable=True)
    fuel = Column(String(30), nullable=True)
    color = Column(String(30), nullable=True)
    year = Column(Integer, nullable=True)
    mileage = Column(Integer, nullable=True)
    additional_data = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=True, index=True)
    owner_name = Column(String(100), nullable=True)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Relationships
    client = relationship("Client", back_populates="vehicles")

    __table_args__ = (
        UniqueConstraint("tenant_id", "plate", name="uq_vehicle_tenant_plate"),
    )
