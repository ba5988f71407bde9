import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import List
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from app.common.permissions import sorted_permissions
from app.modules.auth.models import User, Profile, EmailVerificationToken, PasswordResetToken
from app.modules.auth.schemas import (
    UserCreate, UserOut, UserUpdate, TokenResponse, ContextTokenResponse,
    TenantMembershipOut, PasswordChangeRequest, AuthContext, AuthContextOut
)
from app.modules.auth.utils import (
    hash_password, verify_password, create_access_token,
    create_context_token, create_refresh_token, verify_token
)
from app.modules.email.tasks import send_verification_email_task, send_password_reset_email_task
from app.modules.tenants.models import TenantMembership
from app.core.config import settings

logger = logging.getLogger(__name__)


def _as_aware(value: datetime) -> datetime:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuthService:
    """
    Servicio de autenticación multi-tenant.
    """

    def __init__(self, db: Session):
        self.db = db

    def generate_secure_token(self, length: int = 32) -> str:
        """Token aleatorio alfanumérico generado con secrets."""
        alphabet = string.ascii_letters + string.digits
        return ''.join(secrets.choice(alphabet) for _ in range(length))

    def _get_user_by_email(self, email: str):
        return self.db.query(User).options(
            selectinload(User.profile),
            selectinload(User.memberships).selectinload(TenantMembership.tenant)
        ).filter(User.email == email.lower()).first()

    def _memberships_out(self, user: User) -> List[TenantMembershipOut]:
        return [
            TenantMembershipOut(
                id=m.id,
                tenant_id=m.tenant_id,
                tenant_name=m.tenant.name,
                role=m.role,
                is_active=m.is_active,
                joined_at=m.joined_at
            )
            for m in user.memberships
            if m.is_active and m.tenant is not None and m.tenant.active
        ]

    def _token_response(self, user: User, include_refresh: bool = True) -> TokenResponse:
        token_data = {
            "sub": str(user.id),
            "email": user.email,
            "user_name": user.full_name
        }
        return TokenResponse(
            access_token=create_access_token(token_data),
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserOut.model_validate(user),
            tenants=self._memberships_out(user),
            refresh_token=create_refresh_token(str(user.id)) if include_refresh else None
        )

    def _new_verification_token(self, user: User) -> str:
        # Invalidar tokens anteriores no usados
        self.db.query(EmailVerificationToken).filter(
            EmailVerificationToken.user_id == user.id,
            EmailVerificationToken.is_used.is_(False)
        ).update({"is_used": True}, synchronize_session=False)

        token = self.generate_secure_token()
        self.db.add(EmailVerificationToken(
            user_id=user.id,
            token=token,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS)
        ))
        return token

    def create_user(self, user_data: UserCreate) -> User:
        """
        Registrar un usuario inactivo y enviar el email de verificación.
        """
        if self.db.query(User).filter(User.email == user_data.email).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Este email ya está registrado"
            )

        profile = Profile(
            first_name=user_data.profile.first_name,
            last_name=user_data.profile.last_name,
            phone_number=user_data.profile.phone_number
        )
        self.db.add(profile)
        self.db.flush()

        user = User(
            email=user_data.email,
            password=hash_password(user_data.password),
            profile_id=profile.id,
            is_active=False,
            email_verified=False
        )
        self.db.add(user)
        self.db.flush()

        verification_token = self._new_verification_token(user)
        self.db.commit()
        self.db.refresh(user)

        send_verification_email_task.delay(
            user_email=user.email,
            user_name=profile.first_name,
            verification_token=verification_token
        )
        logger.info(f"User registered: {user.email}")
        return user

    def verify_email(self, token: str) -> User:
        email_token = self.db.query(EmailVerificationToken).filter(
            EmailVerificationToken.token == token,
            EmailVerificationToken.is_used.is_(False)
        ).first()

        if not email_token or _as_aware(email_token.expires_at) <= datetime.now(timezone.utc):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Token de verificación inválido o expirado"
            )

        now = datetime.now(timezone.utc)
        email_token.is_used = True
        email_token.used_at = now

        user = email_token.user
        user.is_active = True
        user.email_verified = True
        user.email_verified_at = now

        self.db.commit()
        logger.info(f"Email verified for user {user.email}")
        return user

    def verify_email_with_auto_login(self, token: str, auto_login: bool = False) -> dict:
        """
        Verificar email; con auto_login también devuelve tokens de sesión.
        """
        user = self.verify_email(token)

        response = {
            "message": "Email verificado exitosamente",
            "user_id": str(user.id),
            "is_active": user.is_active
        }

        if auto_login:
            tokens = self._token_response(user)
            response.update({
                "access_token": tokens.access_token,
                "refresh_token": tokens.refresh_token,
                "token_type": tokens.token_type,
                "expires_in": tokens.expires_in,
                "message": "Email verificado y sesión iniciada automáticamente"
            })

        return response

    def resend_verification(self, email: str) -> bool:
        """Reenviar verificación. Nunca revela si el email existe."""
        user = self._get_user_by_email(email)
        if not user or user.email_verified:
            return True

        verification_token = self._new_verification_token(user)
        self.db.commit()

        send_verification_email_task.delay(
            user_email=user.email,
            user_name=user.profile.first_name if user.profile else user.email,
            verification_token=verification_token
        )
        return True

    def login(self, email: str, password: str) -> TokenResponse:
        """
        Login de usuario con listado de talleres.
        """
        user = self._get_user_by_email(email)

        if not user or not verify_password(password, user.password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Credenciales incorrectas"
            )

        if not user.email_verified:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Email no verificado. Revisa tu bandeja de entrada."
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Cuenta inactiva"
            )

        user.last_login = datetime.now(timezone.utc)
        self.db.commit()
        logger.info(f"User logged in: {user.email}")

        return self._token_response(user)

    def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Nuevo access token a partir de un refresh token válido."""
        payload = verify_token(refresh_token)
        if payload.get("type") != "refresh":
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token no es de tipo refresh")

        try:
            user_id = UUID(str(payload.get("sub")))
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Refresh token inválido")

        user = self.db.query(User).options(
            selectinload(User.profile),
            selectinload(User.memberships).selectinload(TenantMembership.tenant)
        ).filter(User.id == user_id).first()

        if not user or not user.is_active:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Usuario inválido")

        return self._token_response(user, include_refresh=False)

    def select_tenant(self, user_id: UUID, tenant_id: UUID) -> ContextTokenResponse:
        """
        Seleccionar taller y generar token de contexto.
        """
        membership = self.db.query(TenantMembership).options(
            selectinload(TenantMembership.tenant),
            selectinload(TenantMembership.user).selectinload(User.profile)
        ).filter(
            TenantMembership.user_id == user_id,
            TenantMembership.tenant_id == tenant_id,
            TenantMembership.is_active.is_(True)
        ).first()

        if not membership or not membership.tenant.active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No tienes acceso a este taller"
            )

        token_data = {
            "sub": str(user_id),
            "email": membership.user.email,
            "user_name": membership.user.full_name,
            "tenant_id": str(tenant_id),
            "user_role": membership.role
        }

        return ContextTokenResponse(
            access_token=create_context_token(token_data),
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            tenant_id=tenant_id,
            tenant_name=membership.tenant.name,
            user_role=membership.role,
            permissions=sorted_permissions(membership.role)
        )

    def update_user_profile(self, user: User, user_update: UserUpdate) -> User:
        if user_update.profile:
            profile = user.profile
            if not profile:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Perfil no encontrado"
                )
            for field, value in user_update.profile.model_dump(exclude_unset=True).items():
                if value is None and field in ("first_name", "last_name"):
                    continue
                setattr(profile, field, value)

        self.db.commit()
        self.db.refresh(user)
        return user

    def change_password(self, user: User, data: PasswordChangeRequest) -> None:
        if not verify_password(data.current_password, user.password):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="La contraseña actual es incorrecta"
            )
        if data.current_password == data.new_password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="La nueva contraseña debe ser distinta de la actual"
            )

        user.password = hash_password(data.new_password)
        self.db.commit()
        logger.info(f"Password changed for user {user.email}")

    def request_password_reset(self, email: str) -> bool:
        """Solicitar restablecimiento de contraseña. Nunca revela si el email existe."""
        user = self._get_user_by_email(email)
        if not user:
            return True

        self.db.query(PasswordResetToken).filter(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.is_used.is_(False)
        ).update({"is_used": True}, synchronize_session=False)

        reset_token = self.generate_secure_token()
        self.db.add(PasswordResetToken(
            user_id=user.id,
            token=reset_token,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.PASSWORD_RESET_EXPIRE_HOURS)
        ))
        self.db.commit()

        send_password_reset_email_task.delay(
            user_email=user.email,
            user_name=user.profile.first_name if user.profile else user.email,
            reset_token=reset_token
        )
        return True

    def reset_password(self, token: str, new_password: str) -> User:
        reset_token = self.db.query(PasswordResetToken).filter(
            PasswordResetToken.token == token,
            PasswordResetToken.is_used.is_(False)
        ).first()

        if not reset_token or _as_aware(reset_token.expires_at) <= datetime.now(timezone.utc):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Token de restablecimiento inválido o expirado"
            )

        user = reset_token.user
        user.password = hash_password(new_password)
        reset_token.is_used = True
        reset_token.used_at = datetime.now(timezone.utc)

        self.db.commit()
        logger.info(f"Password reset for user {user.email}")
        return user

    def context_out(self, auth_context: AuthContext) -> AuthContextOut:
        return AuthContextOut(
            **auth_context.model_dump(),
            permissions=sorted_permissions(auth_context.user_role) if auth_context.tenant_id else []
        )
