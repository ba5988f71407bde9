"""
Tareas asíncronas de Celery para el envío de correos electrónicos.
"""
import logging
from typing import Dict, Any, List, Optional
from app.common.permissions import ROLE_LABELS, TenantRole
from app.core.celery import celery_app
from app.modules.email.service import email_service

logger = logging.getLogger(__name__)


def _role_label(role: str) -> str:
    try:
        return ROLE_LABELS[TenantRole(role)]
    except ValueError:
        return role


def _retry_or_fail(task, exc: Exception, result: Dict[str, Any]) -> Dict[str, Any]:
    # Reintento con backoff exponencial
    if task.request.retries < task.max_retries:
        raise task.retry(exc=exc, countdown=30 * (2 ** task.request.retries))
    return {"status": "failed", "error": str(exc), **result}


@celery_app.task(bind=True, max_retries=3)
def send_email_task(
    self,
    to_emails: List[str],
    subject: str,
    html_content: Optional[str] = None,
    text_content: Optional[str] = None
):
    """
    Tarea asíncrona para envío de correos electrónicos.
    """
    try:
        if not email_service.send_email(
            to_emails=to_emails,
            subject=subject,
            html_content=html_content,
            text_content=text_content
        ):
            raise RuntimeError("Failed to send email")

        return {"status": "success", "recipients": to_emails}

    except Exception as exc:
        logger.error(f"Email sending failed: {str(exc)}")
        return _retry_or_fail(self, exc, {"recipients": to_emails})


@celery_app.task(bind=True, max_retries=3)
def send_template_email_task(
    self,
    to_emails: List[str],
    subject: str,
    template_name: str,
    context: Dict[str, Any]
):
    try:
        if not email_service.send_template_email(
            to_emails=to_emails,
            subject=subject,
            template_name=template_name,
            context=context
        ):
            raise RuntimeError("Failed to send template email")

        logger.info(f"Template email '{template_name}' sent to {', '.join(to_emails)}")
        return {"status": "success", "template": template_name, "recipients": to_emails}

    except Exception as exc:
        logger.error(f"Template email sending failed: {str(exc)}")
        return _retry_or_fail(self, exc, {"template": template_name, "recipients": to_emails})


# Tareas específicas para eventos de autenticación
@celery_app.task(bind=True, max_retries=3)
def send_verification_email_task(
    self,
    user_email: str,
    user_name: str,
    verification_token: str
):
    """
    Enviar correo de verificación de cuenta.
    """
    try:
        context = {
            "user_name": user_name,
            "verification_url": f"{email_service.frontend_url}/verify-email?token={verification_token}",
            "support_email": email_service.from_email
        }

        if not email_service.send_template_email(
            to_emails=[user_email],
            subject="Verifica tu cuenta en TallerApp",
            template_name="verification_email.html",
            context=context
        ):
            raise RuntimeError("Failed to send verification email")

        return {"status": "success", "email": user_email}

    except Exception as exc:
        logger.error(f"Verification email failed: {str(exc)}")
        return _retry_or_fail(self, exc, {"email": user_email})


@celery_app.task(bind=True, max_retries=3)
def send_invitation_email_task(
    self,
    invitee_email: str,
    inviter_name: str,
    tenant_name: str,
    invitation_id: str,
    role: str
):
    """
    Enviar correo de invitación a un taller.
    """
    try:
        context = {
            "invitee_email": invitee_email,
            "inviter_name": inviter_name,
            "tenant_name": tenant_name,
            "invitation_url": f"{email_service.frontend_url}/invitations/{invitation_id}",
            "role": _role_label(role),
            "support_email": email_service.from_email
        }

        if not email_service.send_template_email(
            to_emails=[invitee_email],
            subject=f"Te invitaron a {tenant_name} en TallerApp",
            template_name="invitation_email.html",
            context=context
        ):
            raise RuntimeError("Failed to send invitation email")

        return {"status": "success", "email": invitee_email}

    except Exception as exc:
        logger.error(f"Invitation email failed: {str(exc)}")
        return _retry_or_fail(self, exc, {"email": invitee_email})


@celery_app.task(bind=True, max_retries=3)
def send_password_reset_email_task(
    self,
    user_email: str,
    user_name: str,
    reset_token: str
):
    """
    Enviar correo de restablecimiento de contraseña.
    """
    try:
        context = {
            "user_name": user_name,
            "reset_url": f"{email_service.frontend_url}/reset-password?token={reset_token}",
            "support_email": email_service.from_email
        }

        if not email_service.send_template_email(
            to_emails=[user_email],
            subject="Restablece tu contraseña en TallerApp",
            template_name="password_reset_email.html",
            context=context
        ):
            raise RuntimeError("Failed to send password reset email")

        return {"status": "success", "email": user_email}

    except Exception as exc:
        logger.error(f"Password reset email failed: {str(exc)}")
        return _retry_or_fail(self, exc, {"email": user_email})
