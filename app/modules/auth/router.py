from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from app.dependencies.dbDependecies import get_db
from app.modules.auth.service import AuthService
from app.modules.auth.dependencies import get_current_user, get_auth_context
from app.modules.auth.models import User
from app.modules.auth.schemas import (
    UserCreate, UserOut, UserUpdate, TokenResponse, ContextTokenResponse,
    EmailVerificationRequest, EmailVerificationWithAutoLogin, EmailVerificationResponse,
    PasswordResetRequest, PasswordResetConfirm, PasswordChangeRequest,
    TenantSelectionRequest, AuthContext, AuthContextOut, RefreshTokenRequest
)

auth_router = APIRouter()


@auth_router.post("/register", response_model=dict, status_code=201)
async def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    Registrar nuevo usuario con verificación de email.
    """
    user = AuthService(db).create_user(user_data)
    return {
        "message": "Usuario registrado exitosamente",
        "email": user.email,
        "verification_required": True,
        "user_id": str(user.id)
    }


@auth_router.post("/verify-email", response_model=EmailVerificationResponse)
async def verify_email(verification_data: EmailVerificationWithAutoLogin, db: Session = Depends(get_db)):
    """
    Verificar email con token.
    Si auto_login=true, devuelve también los tokens de sesión.
    """
    result = AuthService(db).verify_email_with_auto_login(
        token=verification_data.token,
        auto_login=verification_data.auto_login
    )
    return EmailVerificationResponse(**result)


@auth_router.get("/verify-email", response_model=EmailVerificationResponse)
async def verify_email_get(
    token: str,
    auto_login: bool = False,
    db: Session = Depends(get_db)
):
    """Verificar email via GET (links de los correos)."""
    result = AuthService(db).verify_email_with_auto_login(token=token, auto_login=auto_login)
    return EmailVerificationResponse(**result)


@auth_router.post("/resend-verification", response_model=dict)
async def resend_verification_email(request_data: EmailVerificationRequest, db: Session = Depends(get_db)):
    AuthService(db).resend_verification(request_data.email)
    return {"message": "Si el email está registrado y sin verificar, te enviamos un nuevo enlace"}


@auth_router.post("/login", response_model=TokenResponse)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """
    Login con email y contraseña.
    Devuelve los talleres del usuario para seleccionar uno con /select-tenant.
    """
    return AuthService(db).login(form_data.username, form_data.password)


@auth_router.post("/refresh", response_model=TokenResponse)
async def refresh_token(body: RefreshTokenRequest, db: Session = Depends(get_db)):
    return AuthService(db).refresh_access_token(body.refresh_token)


@auth_router.post("/select-tenant", response_model=ContextTokenResponse)
async def select_tenant(
    selection: TenantSelectionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Seleccionar el taller de trabajo.
    El token de contexto incluye tenant_id y rol.
    """
    return AuthService(db).select_tenant(current_user.id, selection.tenant_id)


@auth_router.get("/me", response_model=UserOut)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    return current_user


@auth_router.patch("/me", response_model=UserOut)
async def update_user_profile(
    user_update: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Actualizar el perfil. El email no se puede cambiar."""
    return AuthService(db).update_user_profile(current_user, user_update)


@auth_router.post("/change-password", response_model=dict)
async def change_password(
    data: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    AuthService(db).change_password(current_user, data)
    return {"message": "Contraseña actualizada exitosamente"}


@auth_router.get("/context", response_model=AuthContextOut)
async def get_auth_context_info(
    auth_context: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db)
):
    """Usuario, taller actual, rol y permisos efectivos."""
    return AuthService(db).context_out(auth_context)


@auth_router.post("/request-password-reset", response_model=dict)
async def request_password_reset(request_data: PasswordResetRequest, db: Session = Depends(get_db)):
    AuthService(db).request_password_reset(request_data.email)
    return {"message": "Si el email está registrado, recibirás instrucciones para restablecer tu contraseña"}


@auth_router.post("/reset-password", response_model=dict)
async def reset_password(reset_data: PasswordResetConfirm, db: Session = Depends(get_db)):
    AuthService(db).reset_password(reset_data.token, reset_data.new_password)
    return {"message": "Contraseña restablecida exitosamente"}
