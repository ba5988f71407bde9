"""
Dependencias de autenticación para FastAPI.

El contexto de tenant se resuelve desde un token de contexto (select-tenant)
o desde el header X-Tenant-ID. En ambos casos el rol se vuelve a leer de la
membresía en base de datos: un cambio de rol o una baja aplican de inmediato.
"""
from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session, selectinload
import jwt

from app.dependencies.dbDependecies import get_db
from app.common.middleware import TENANT_HEADER
from app.common.permissions import Permission, can_all
from app.modules.auth.models import User
from app.modules.auth.schemas import AuthContext, TenantMembershipOut
from app.modules.tenants.models import TenantMembership
from app.core.config import settings

# Security scheme
security = HTTPBearer()


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudieron validar las credenciales",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode_token(credentials: HTTPAuthorizationCredentials) -> dict:
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.APP_SECRET_STRING,
            algorithms=[settings.ALGORITHM]
        )
    except jwt.PyJWTError:
        raise _credentials_exception()

    if payload.get("sub") is None or payload.get("type") == "refresh":
        raise _credentials_exception()
    return payload


def _load_user(db: Session, user_id: str) -> User:
    try:
        user_uuid = UUID(str(user_id))
    except ValueError:
        raise _credentials_exception()

    user = db.query(User).options(
        selectinload(User.profile),
        selectinload(User.memberships).selectinload(TenantMembership.tenant)
    ).filter(User.id == user_uuid).first()

    if user is None or not user.is_active:
        raise _credentials_exception()
    return user


class AuthDependencies:
    """Dependencias de autenticación reutilizables."""

    @staticmethod
    def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: Session = Depends(get_db)
    ) -> User:
        """
        Obtener usuario actual desde token JWT.
        No requiere tenant (para endpoints generales).
        """
        payload = _decode_token(credentials)
        return _load_user(db, payload["sub"])

    @staticmethod
    def get_auth_context(
        request: Request,
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: Session = Depends(get_db)
    ) -> AuthContext:
        """
        Obtener contexto de autenticación completo con tenant.
        Usa el tenant del token de contexto o el header X-Tenant-ID.
        """
        payload = _decode_token(credentials)
        user = _load_user(db, payload["sub"])

        if payload.get("type") == "context":
            raw_tenant_id = payload.get("tenant_id")
        else:
            raw_tenant_id = getattr(request.state, "tenant_id", None) or request.headers.get(TENANT_HEADER)

        active_memberships = [
            m for m in user.memberships
            if m.is_active and m.tenant is not None and m.tenant.active
        ]

        tenant_id: Optional[UUID] = None
        user_role: Optional[str] = None

        if raw_tenant_id:
            try:
                tenant_id = UUID(str(raw_tenant_id))
            except ValueError:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="ID de taller inválido"
                )

            membership = next((m for m in active_memberships if m.tenant_id == tenant_id), None)
            if membership is None:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="No tienes acceso a este taller"
                )
            user_role = membership.role

        tenants = [
            TenantMembershipOut(
                id=m.id,
                tenant_id=m.tenant_id,
                tenant_name=m.tenant.name,
                role=m.role,
                is_active=m.is_active,
                joined_at=m.joined_at
            )
            for m in active_memberships
        ]

        return AuthContext(
            user_id=user.id,
            email=user.email,
            is_superuser=bool(user.is_superuser),
            tenant_id=tenant_id,
            user_role=user_role,
            tenants=tenants
        )

    @staticmethod
    def require_tenant():
        """Dependencia que requiere un taller seleccionado (cualquier rol)."""
        def tenant_checker(auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)):
            if not auth_context.tenant_id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Se requiere seleccionar un taller"
                )
            return auth_context
        return tenant_checker

    @staticmethod
    def check_permission(auth_context: AuthContext, *permissions: Permission) -> None:
        """Verificación dentro de un endpoint, cuando el permiso depende del cuerpo de la petición."""
        if not can_all(auth_context.user_role, permissions):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="No tienes permiso para realizar esta acción"
            )

    @staticmethod
    def require_permission(*permissions: Permission):
        """
        Dependencia para requerir permisos específicos dentro del taller actual.
        """
        def permission_checker(auth_context: AuthContext = Depends(AuthDependencies.require_tenant())):
            AuthDependencies.check_permission(auth_context, *permissions)
            return auth_context
        return permission_checker

    @staticmethod
    def require_superuser():
        """Dependencia para endpoints de super administración."""
        def superuser_checker(current_user: User = Depends(AuthDependencies.get_current_user)):
            if not current_user.is_superuser:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Se requieren permisos de super administrador"
                )
            return current_user
        return superuser_checker

# Instancias de dependencias
get_current_user = AuthDependencies.get_current_user
get_auth_context = AuthDependencies.get_auth_context
require_tenant = AuthDependencies.require_tenant
require_permission = AuthDependencies.require_permission
check_permission = AuthDependencies.check_permission
require_superuser = AuthDependencies.require_superuser
