from sqlalchemy import Column, String, Text, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from app.database.database import Base
from app.common.mixins import BaseMixin


class Client(Base, BaseMixin):
    """Cliente del taller."""
    __tablename__ = "clients"

    first_name = Column(String(50), nullable=False, index=True)
    last_name = Column(String(50), nullable=False, index=True)
    email = Column(String, nullable=True, index=True)
    phone = Column(String(30), nullable=False)
    address = Column(String(200), nullable=True)
    cuit = Column(String(20), nullable=True)
    profession = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    observations = Column(Text, nullable=True)

    created_by = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Relationships
    vehicles = relationship("Vehicle", back_populates="client")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
