"""
Tests para invitaciones a talleres
"""
import pytest
from datetime import datetime, timedelta, timezone
from uuid import UUID

from app.modules.invitations.models import TenantInvitation, InvitationStatus
from app.modules.tenants.models import TenantMembership


@pytest.fixture
def invitee(make_user):
    return make_user(email="mecanico@taller.com", first_name="Diego", last_name="Sosa")


def invite(client, headers, email="mecanico@taller.com", role="user"):
    return client.post("/invitations/", json={"email": email, "role": role}, headers=headers)


class TestCreateInvitation:

    def test_create_invitation(self, client, owner_headers):
        response = invite(client, owner_headers, email="Mecanico@Taller.com", role="manager")
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "mecanico@taller.com"
        assert data["role"] == "manager"
        assert data["status"] == "pending"
        assert data["tenant_name"] == "Taller Central"
        assert data["invited_by_name"] == "Carlos Gómez"

    def test_duplicate_pending(self, client, owner_headers):
        invite(client, owner_headers)
        assert invite(client, owner_headers).status_code == 409

    def test_expired_invitation_allows_new_one(self, client, db_session, owner_headers):
        invitation_id = invite(client, owner_headers).json()["id"]
        invitation = db_session.get(TenantInvitation, UUID(invitation_id))
        invitation.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db_session.commit()

        assert invite(client, owner_headers).status_code == 201
        db_session.refresh(invitation)
        assert invitation.status == InvitationStatus.EXPIRED.value

    def test_existing_member(self, client, owner_headers):
        assert invite(client, owner_headers, email="dueno@taller.com").status_code == 409

    def test_only_owner_invites_owner(self, client, owner_headers, role_headers):
        assert invite(client, role_headers("admin"), role="owner").status_code == 403
        assert invite(client, owner_headers, role="owner").status_code == 201

    def test_manager_cannot_invite(self, client, role_headers):
        assert invite(client, role_headers("manager")).status_code == 403

    def test_user_limit_counts_pending(self, client, make_user, make_tenant, headers_for):
        owner = make_user()
        trial = make_tenant(owner, plan="trial")
        headers = headers_for(owner, trial)

        assert invite(client, headers, email="uno@taller.com").status_code == 201
        response = invite(client, headers, email="dos@taller.com")
        assert response.status_code == 409
        assert "usuarios" in response.json()["detail"]


class TestTenantInvitations:

    def test_list_and_pending_count(self, client, owner_headers):
        invite(client, owner_headers, email="a@taller.com")
        invite(client, owner_headers, email="b@taller.com")

        response = client.get("/invitations/", headers=owner_headers)
        assert response.json()["total"] == 2

        response = client.get("/invitations/pending-count", headers=owner_headers)
        assert response.json() == {"pending": 2}

    def test_cancel(self, client, owner_headers):
        invitation_id = invite(client, owner_headers).json()["id"]
        assert client.delete(f"/invitations/{invitation_id}", headers=owner_headers).status_code == 204
        assert client.get("/invitations/", headers=owner_headers).json()["total"] == 0

    def test_cancel_from_other_tenant(self, client, owner_headers, make_user, make_tenant, headers_for):
        invitation_id = invite(client, owner_headers).json()["id"]
        stranger = make_user()
        other = make_tenant(stranger, name="Otro")
        response = client.delete(f"/invitations/{invitation_id}", headers=headers_for(stranger, other))
        assert response.status_code == 404


class TestRespondInvitation:

    def test_invitee_sees_pending(self, client, owner_headers, headers_for, invitee):
        invite(client, owner_headers)
        response = client.get("/invitations/mine", headers=headers_for(invitee))
        assert [i["tenant_name"] for i in response.json()] == ["Taller Central"]

    def test_accept_creates_membership(self, client, db_session, owner_headers, headers_for, invitee, tenant):
        invitation_id = invite(client, owner_headers, role="manager").json()["id"]

        response = client.post(f"/invitations/{invitation_id}/accept", headers=headers_for(invitee))
        assert response.status_code == 200
        assert response.json()["role"] == "manager"

        membership = db_session.query(TenantMembership).filter(TenantMembership.user_id == invitee.id).one()
        assert membership.role == "manager"
        assert client.get("/clients/", headers=headers_for(invitee, tenant)).status_code == 200

        response = client.post(f"/invitations/{invitation_id}/accept", headers=headers_for(invitee))
        assert response.status_code == 400

    def test_other_user_cannot_accept(self, client, owner_headers, make_user, headers_for, invitee):
        invitation_id = invite(client, owner_headers).json()["id"]
        response = client.post(f"/invitations/{invitation_id}/accept", headers=headers_for(make_user()))
        assert response.status_code == 403

    def test_reject(self, client, owner_headers, headers_for, invitee):
        invitation_id = invite(client, owner_headers).json()["id"]
        response = client.post(f"/invitations/{invitation_id}/reject", headers=headers_for(invitee))
        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert client.get("/invitations/mine", headers=headers_for(invitee)).json() == []

    def test_expired_cannot_be_accepted(self, client, db_session, owner_headers, headers_for, invitee):
        invitation_id = invite(client, owner_headers).json()["id"]
        invitation = db_session.get(TenantInvitation, UUID(invitation_id))
        invitation.expires_at = datetime.now(timezone.utc) - timedelta(days=1)
        db_session.commit()

        response = client.post(f"/invitations/{invitation_id}/accept", headers=headers_for(invitee))
        assert response.status_code == 400
        assert "expirado" in response.json()["detail"]

    def test_removed_member_can_rejoin(self, client, db_session, owner_headers, headers_for, invitee, tenant):
        db_session.add(TenantMembership(user_id=invitee.id, tenant_id=tenant.id, role="viewer", is_active=False))
        db_session.commit()

        invitation_id = invite(client, owner_headers, role="user").json()["id"]
        client.post(f"/invitations/{invitation_id}/accept", headers=headers_for(invitee))

        memberships = db_session.query(TenantMembership).filter(TenantMembership.user_id == invitee.id).all()
        assert len(memberships) == 1
        assert memberships[0].is_active is True
        assert memberships[0].role == "user"
