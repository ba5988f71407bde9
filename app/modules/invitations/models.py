from sqlalchemy import Column, String, ForeignKey, DateTime, Uuid, Index
from sqlalchemy.orm import relationship
from uuid import uuid4
import enum

from app.database.database import Base
from app.common.mixins import TimestampMixin


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class TenantInvitation(Base, TimestampMixin):
    """Invitación a un taller. Vence a los 7 días; el vencimiento se aplica al leerla."""
    __tablename__ = "tenant_invitations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    email = Column(String, nullable=False, index=True)  # siempre en minúsculas
    role = Column(String(20), nullable=False, default="user")
    invited_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    status = Column(String(20), nullable=False, default=InvitationStatus.PENDING.value)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    tenant = relationship("Tenant")
    inviter = relationship("User", foreign_keys=[invited_by])

    __table_args__ = (
        Index("idx_invitations_tenant_email_status", "tenant_id", "email", "status"),
    )
