"""
Servicio de invitaciones a talleres.

Flujo:
1. Un miembro con permiso invite_users invita un email con un rol
2. Se envía el email de invitación (Celery)
3. El invitado (autenticado con ese email) acepta o rechaza
4. Al aceptar se crea su membresía con el rol de la invitación

Las invitaciones vencidas se marcan como expired al leerlas.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from app.common.permissions import TenantRole
from app.core.config import settings
from app.modules.auth.models import User
from app.modules.email.tasks import send_invitation_email_task
from app.modules.invitations.models import TenantInvitation, InvitationStatus
from app.modules.invitations.schemas import InvitationCreate, InvitationOut
from app.modules.plans.constants import PlanResource
from app.modules.plans.service import PlanService
from app.modules.tenants.models import Tenant, TenantMembership
from app.modules.tenants.service import TenantService

logger = logging.getLogger(__name__)


def _as_aware(value: datetime) -> datetime:
    """Algunos motores (SQLite) devuelven datetimes sin zona; se asumen UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_invitation_out(invitation: TenantInvitation) -> InvitationOut:
    return InvitationOut(
        id=invitation.id,
        tenant_id=invitation.tenant_id,
        tenant_name=invitation.tenant.name if invitation.tenant else "",
        email=invitation.email,
        role=invitation.role,
        invited_by=invitation.invited_by,
        invited_by_name=invitation.inviter.full_name if invitation.inviter else "",
        status=invitation.status,
        expires_at=invitation.expires_at,
        created_at=invitation.created_at
    )


class InvitationService:
    """Servicio de invitaciones."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(TenantInvitation).options(
            selectinload(TenantInvitation.tenant),
            selectinload(TenantInvitation.inviter).selectinload(User.profile)
        )

    def _expire_if_needed(self, invitation: TenantInvitation) -> bool:
        if (
            invitation.status == InvitationStatus.PENDING.value
            and _as_aware(invitation.expires_at) <= datetime.now(timezone.utc)
        ):
            invitation.status = InvitationStatus.EXPIRED.value
            return True
        return False

    def _expire_all(self, invitations: List[TenantInvitation]) -> None:
        changed = [inv for inv in invitations if self._expire_if_needed(inv)]
        if changed:
            self.db.commit()
            logger.info(f"Marked {len(changed)} invitation(s) as expired")

    def create_invitation(
        self,
        tenant_id: UUID,
        inviter_id: UUID,
        inviter_role: str,
        invitation_data: InvitationCreate
    ) -> InvitationOut:
        """Invitar un email al taller."""
        email = invitation_data.email.lower()

        if invitation_data.role == TenantRole.OWNER and inviter_role != TenantRole.OWNER.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Solo un dueño puede invitar con el rol de dueño"
            )

        # Verificar si ya es miembro
        existing_member = self.db.query(TenantMembership).join(
            User, User.id == TenantMembership.user_id
        ).filter(
            TenantMembership.tenant_id == tenant_id,
            TenantMembership.is_active == True,
            User.email == email
        ).first()
        if existing_member:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Este usuario ya pertenece al taller"
            )

        # Verificar si ya existe invitación pendiente
        pending = self._query().filter(
            TenantInvitation.tenant_id == tenant_id,
            TenantInvitation.email == email,
            TenantInvitation.status == InvitationStatus.PENDING.value
        ).all()
        self._expire_all(pending)
        if any(inv.status == InvitationStatus.PENDING.value for inv in pending):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Ya existe una invitación pendiente para este email"
            )

        PlanService(self.db).ensure_within_limit(tenant_id, PlanResource.USERS)

        invitation = TenantInvitation(
            tenant_id=tenant_id,
            email=email,
            role=invitation_data.role.value,
            invited_by=inviter_id,
            status=InvitationStatus.PENDING.value,
            expires_at=datetime.now(timezone.utc) + timedelta(days=settings.INVITATION_EXPIRE_DAYS)
        )
        self.db.add(invitation)
        self.db.commit()

        invitation = self._query().filter(TenantInvitation.id == invitation.id).first()
        logger.info(f"Invitation {invitation.id} created for {email} in tenant {tenant_id} as {invitation.role}")

        # Enviar email (asíncrono)
        send_invitation_email_task.delay(
            invitee_email=email,
            inviter_name=invitation.inviter.full_name,
            tenant_name=invitation.tenant.name,
            invitation_id=str(invitation.id),
            role=invitation.role
        )

        return to_invitation_out(invitation)

    def list_tenant_invitations(
        self,
        tenant_id: UUID,
        status_filter: Optional[InvitationStatus] = None
    ) -> List[InvitationOut]:
        invitations = self._query().filter(
            TenantInvitation.tenant_id == tenant_id
        ).order_by(TenantInvitation.created_at.desc()).all()
        self._expire_all(invitations)

        if status_filter:
            invitations = [inv for inv in invitations if inv.status == status_filter.value]
        return [to_invitation_out(inv) for inv in invitations]

    def count_pending(self, tenant_id: UUID) -> int:
        return self.db.query(TenantInvitation).filter(
            TenantInvitation.tenant_id == tenant_id,
            TenantInvitation.status == InvitationStatus.PENDING.value,
            TenantInvitation.expires_at > datetime.now(timezone.utc)
        ).count()

    def list_user_pending(self, email: str) -> List[InvitationOut]:
        """Invitaciones pendientes para el email del usuario (de talleres activos)."""
        invitations = self._query().join(Tenant, Tenant.id == TenantInvitation.tenant_id).filter(
            TenantInvitation.email == email.lower(),
            TenantInvitation.status == InvitationStatus.PENDING.value,
            Tenant.active == True
        ).order_by(TenantInvitation.created_at.desc()).all()
        self._expire_all(invitations)
        return [
            to_invitation_out(inv) for inv in invitations
            if inv.status == InvitationStatus.PENDING.value
        ]

    def _get(self, invitation_id: UUID) -> TenantInvitation:
        invitation = self._query().filter(TenantInvitation.id == invitation_id).first()
        if not invitation:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invitación no encontrada"
            )
        self._expire_all([invitation])
        return invitation

    def get_invitation(self, invitation_id: UUID, user: User, tenant_id: Optional[UUID] = None) -> InvitationOut:
        """Visible para el invitado o para miembros del taller que invita."""
        invitation = self._get(invitation_id)
        if invitation.email != user.email.lower() and invitation.tenant_id != tenant_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invitación no encontrada"
            )
        return to_invitation_out(invitation)

    def _get_for_invitee(self, invitation_id: UUID, user: User) -> TenantInvitation:
        invitation = self._get(invitation_id)

        if invitation.email != user.email.lower():
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Esta invitación no corresponde a tu cuenta"
            )

        if invitation.status == InvitationStatus.EXPIRED.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="La invitación ha expirado"
            )

        if invitation.status != InvitationStatus.PENDING.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="La invitación ya fue respondida"
            )

        if not invitation.tenant or not invitation.tenant.active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El taller ya no está activo"
            )
        return invitation

    def accept_invitation(self, invitation_id: UUID, user: User) -> TenantInvitation:
        invitation = self._get_for_invitee(invitation_id, user)

        TenantService(self.db).add_member(
            tenant_id=invitation.tenant_id,
            user_id=user.id,
            role=invitation.role,
            invited_by=invitation.invited_by
        )

        invitation.status = InvitationStatus.ACCEPTED.value
        invitation.responded_at = datetime.now(timezone.utc)
        self.db.commit()
        logger.info(f"Invitation {invitation_id} accepted by user {user.id}")
        return invitation

    def reject_invitation(self, invitation_id: UUID, user: User) -> TenantInvitation:
        invitation = self._get_for_invitee(invitation_id, user)
        invitation.status = InvitationStatus.REJECTED.value
        invitation.responded_at = datetime.now(timezone.utc)
        self.db.commit()
        logger.info(f"Invitation {invitation_id} rejected by user {user.id}")
        return invitation

    def cancel_invitation(self, invitation_id: UUID, tenant_id: UUID) -> None:
        """Eliminar una invitación del taller actual."""
        invitation = self.db.query(TenantInvitation).filter(
            TenantInvitation.id == invitation_id,
            TenantInvitation.tenant_id == tenant_id
        ).first()
        if not invitation:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invitación no encontrada"
            )
        self.db.delete(invitation)
        self.db.commit()
        logger.info(f"Invitation {invitation_id} cancelled in tenant {tenant_id}")
