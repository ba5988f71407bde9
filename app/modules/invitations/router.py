from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.dependencies.dbDependecies import get_db
from app.common.permissions import Permission
from app.modules.auth.dependencies import get_current_user, get_auth_context, require_permission
from app.modules.auth.models import User
from app.modules.auth.schemas import AuthContext
from app.modules.invitations.models import InvitationStatus
from app.modules.invitations.schemas import (
    InvitationCreate, InvitationOut, InvitationList, PendingCount, InvitationAcceptResponse
)
from app.modules.invitations.service import InvitationService, to_invitation_out

invitations_router = APIRouter(prefix="/invitations", tags=["Invitations"])


@invitations_router.post("/", response_model=InvitationOut, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    invitation_data: InvitationCreate,
    auth_context: AuthContext = Depends(require_permission(Permission.INVITE_USERS)),
    db: Session = Depends(get_db)
):
    """
    Invitar un usuario al taller actual.

    Validaciones:
    - No puede existir otra invitación pendiente para el mismo email
    - El email no puede pertenecer ya a un miembro
    - Solo un dueño invita con rol owner
    - Respeta el límite de usuarios del plan
    """
    return InvitationService(db).create_invitation(
        tenant_id=auth_context.tenant_id,
        inviter_id=auth_context.user_id,
        inviter_role=auth_context.user_role,
        invitation_data=invitation_data
    )


@invitations_router.get("/", response_model=InvitationList)
async def list_invitations(
    status_filter: Optional[InvitationStatus] = Query(None, alias="status", description="Filtrar por estado"),
    auth_context: AuthContext = Depends(require_permission(Permission.INVITE_USERS)),
    db: Session = Depends(get_db)
):
    invitations = InvitationService(db).list_tenant_invitations(auth_context.tenant_id, status_filter)
    return InvitationList(invitations=invitations, total=len(invitations))


@invitations_router.get("/pending-count", response_model=PendingCount)
async def count_pending_invitations(
    auth_context: AuthContext = Depends(require_permission(Permission.INVITE_USERS)),
    db: Session = Depends(get_db)
):
    return PendingCount(pending=InvitationService(db).count_pending(auth_context.tenant_id))


@invitations_router.get("/mine", response_model=List[InvitationOut])
async def list_my_invitations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Invitaciones pendientes dirigidas al email del usuario autenticado."""
    return InvitationService(db).list_user_pending(current_user.email)


@invitations_router.get("/{invitation_id}", response_model=InvitationOut)
async def get_invitation(
    invitation_id: UUID,
    current_user: User = Depends(get_current_user),
    auth_context: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db)
):
    return InvitationService(db).get_invitation(invitation_id, current_user, auth_context.tenant_id)


@invitations_router.post("/{invitation_id}/accept", response_model=InvitationAcceptResponse)
async def accept_invitation(
    invitation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Aceptar una invitación. El usuario pasa a ser miembro del taller con el
    rol indicado en la invitación.
    """
    invitation = InvitationService(db).accept_invitation(invitation_id, current_user)
    return InvitationAcceptResponse(
        message="Invitación aceptada exitosamente",
        tenant_id=invitation.tenant_id,
        tenant_name=invitation.tenant.name,
        role=invitation.role
    )


@invitations_router.post("/{invitation_id}/reject", response_model=InvitationOut)
async def reject_invitation(
    invitation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    invitation = InvitationService(db).reject_invitation(invitation_id, current_user)
    return to_invitation_out(invitation)


@invitations_router.delete("/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_invitation(
    invitation_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.INVITE_USERS)),
    db: Session = Depends(get_db)
):
    InvitationService(db).cancel_invitation(invitation_id, auth_context.tenant_id)
