"""
Tests del servicio de correo y sus tareas
"""
from app.modules.email.service import EmailService
from app.modules.email.tasks import (
    _role_label, send_invitation_email_task, send_verification_email_task, send_password_reset_email_task
)


class TestEmailService:

    def test_render_invitation(self):
        html = EmailService().render_template("invitation_email.html", {
            "inviter_name": "Carlos Gómez",
            "tenant_name": "Taller <Central>",
            "role": "Encargado",
            "invitation_url": "http://localhost:3000/invitations/123",
            "invitee_email": "mecanico@taller.com"
        })
        assert "Carlos Gómez" in html
        assert "Taller &lt;Central&gt;" in html
        assert "http://localhost:3000/invitations/123" in html

    def test_render_all_templates(self):
        service = EmailService()
        context = {"user_name": "Ana", "verification_url": "http://x/v", "reset_url": "http://x/r"}
        assert "http://x/v" in service.render_template("verification_email.html", context)
        assert "http://x/r" in service.render_template("password_reset_email.html", context)

    def test_build_message(self):
        msg = EmailService().build_message(["a@taller.com", "b@taller.com"], "Asunto", html_content="<p>Hola</p>")
        assert msg["To"] == "a@taller.com, b@taller.com"
        assert msg["Subject"] == "Asunto"

    def test_disabled_service_skips_sending(self):
        service = EmailService()
        service.enabled = False
        assert service.send_email(["a@taller.com"], "Prueba", html_content="<p>x</p>") is True

    def test_missing_template(self):
        service = EmailService()
        service.enabled = False
        assert service.send_template_email(["a@taller.com"], "Prueba", "no_existe.html", {}) is False


class TestEmailTasks:

    def test_role_label(self):
        assert _role_label("manager") == "Encargado"
        assert _role_label("desconocido") == "desconocido"

    def test_tasks_run_in_process(self):
        result = send_verification_email_task.delay(
            user_email="ana@taller.com", user_name="Ana", verification_token="abc"
        )
        assert result.get() == {"status": "success", "email": "ana@taller.com"}

        result = send_invitation_email_task.delay(
            invitee_email="ana@taller.com",
            inviter_name="Carlos",
            tenant_name="Taller Central",
            invitation_id="123",
            role="user"
        )
        assert result.get()["status"] == "success"

        result = send_password_reset_email_task.delay(user_email="ana@taller.com", user_name="Ana", reset_token="t")
        assert result.get()["status"] == "success"
