from sqlalchemy import Column, String, Date, ForeignKey, Uuid, Index
from sqlalchemy.orm import relationship
import enum

from app.database.database import Base
from app.common.mixins import BaseMixin


class AppointmentStatus(str, enum.Enum):
    PENDING = "pendiente"
    IN_PROGRESS = "en_progreso"
    COMPLETED = "completado"
    CANCELLED = "cancelado"


class Appointment(Base, BaseMixin):
    """Turno de la agenda. Los horarios se guardan como texto HH:MM."""
    __tablename__ = "appointments"

    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=False, index=True)
    vehicle_id = Column(Uuid, ForeignKey("vehicles.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    status = Column(String(20), nullable=False, default=AppointmentStatus.PENDING.value)
    description = Column(String(200), nullable=False)
    notes = Column(String(500), nullable=True)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Relationships
    client = relationship("Client")
    vehicle = relationship("Vehicle")

    __table_args__ = (
        Index("idx_appointments_tenant_date", "tenant_id", "date"),
    )
