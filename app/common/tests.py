"""
Tests de validadores y de la matriz de roles y permisos.
"""
from app.common.validators import (
    calculate_cuit_dv, validate_cuit, validate_cuit_format, format_cuit,
    validate_phone, validate_plate, normalize_plate, validate_time, empty_to_none
)
from app.common.permissions import (
    Permission, TenantRole, ROLE_PERMISSIONS, permissions_for, can, can_any, can_all, sorted_permissions
)


class TestCuitValidation:
    """Tests para el CUIT argentino (módulo 11)"""

    def test_calculate_dv(self):
        assert calculate_cuit_dv("2012345678") == 6
        assert calculate_cuit_dv("3050001091") == 2

    def test_calculate_dv_invalid_input(self):
        assert calculate_cuit_dv("") is None
        assert calculate_cuit_dv("123") is None

    def test_validate_cuit(self):
        assert validate_cuit("20-12345678-6") is True
        assert validate_cuit("20123456786") is True
        assert validate_cuit("30-50001091-2") is True

    def test_validate_cuit_wrong_dv(self):
        assert validate_cuit("20-12345678-5") is False
        assert validate_cuit("2012345678") is False
        assert validate_cuit("20-1234A678-6") is False

    def test_format_only(self):
        """Los CUIT de clientes solo validan formato"""
        assert validate_cuit_format("20-12345678-5") is True
        assert validate_cuit_format("20.12345678.5") is False

    def test_format_cuit(self):
        assert format_cuit("20123456786") == "20-12345678-6"
        assert format_cuit("123") == "123"


class TestFieldValidators:

    def test_phone(self):
        assert validate_phone("+54 (11) 4444-5555")
        assert not validate_phone("11-4444-CASA")

    def test_plate(self):
        assert validate_plate("AB 123 CD")
        assert validate_plate("abc-123")
        assert not validate_plate("AB*123")
        assert normalize_plate("  ab123cd ") == "AB123CD"

    def test_time(self):
        assert validate_time("09:30")
        assert validate_time("23:59")
        assert not validate_time("24:00")
        assert not validate_time("9:30")

    def test_empty_to_none(self):
        assert empty_to_none("   ") is None
        assert empty_to_none(None) is None
        assert empty_to_none("  hola ") == "hola"


class TestRolePermissions:

    def test_owner_has_everything(self):
        assert permissions_for(TenantRole.OWNER) == frozenset(Permission)

    def test_admin_cannot_delete_organization_or_change_plan(self):
        assert not can("admin", Permission.DELETE_ORGANIZATION)
        assert not can("admin", Permission.CHANGE_PLAN)
        assert can("admin", Permission.MANAGE_TEAM)

    def test_manager_has_no_team_management(self):
        assert not can("manager", Permission.INVITE_USERS)
        assert can("manager", Permission.COMPLETE_JOBS)
        assert can("manager", Permission.APPROVE_QUOTES)

    def test_user_cannot_delete(self):
        granted = permissions_for("user")
        assert not any(p.value.startswith("delete_") for p in granted)
        assert can("user", Permission.COMPLETE_JOBS)

    def test_viewer_is_read_only(self):
        for permission in permissions_for("viewer"):
            assert permission.value.startswith("view_")

    def test_every_role_has_permissions(self):
        assert set(ROLE_PERMISSIONS) == set(TenantRole)

    def test_unknown_role_has_nothing(self):
        assert permissions_for("mecanico") == frozenset()
        assert permissions_for(None) == frozenset()
        assert not can(None, Permission.VIEW_CLIENTS)

    def test_any_and_all(self):
        assert can_any("viewer", [Permission.CREATE_CLIENTS, Permission.VIEW_CLIENTS])
        assert not can_all("viewer", [Permission.CREATE_CLIENTS, Permission.VIEW_CLIENTS])

    def test_sorted_permissions(self):
        values = sorted_permissions("viewer")
        assert values == sorted(values)
        assert "view_clients" in values
