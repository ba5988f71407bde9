"""
Matriz de roles y permisos por tenant.

Cada miembro de un taller tiene un único rol dentro de ese taller. Los roles
se traducen a un conjunto fijo de permisos; los endpoints nunca consultan el
rol directamente, solo los permisos.

Roles:
- owner: dueño del taller, acceso total
- admin: administrador, todo excepto eliminar la organización o cambiar de plan
- manager: encargado, gestión operativa sin equipo ni configuración
- user: empleado, operación diaria sin eliminar registros
- viewer: solo lectura
"""
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Union


class TenantRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"
    VIEWER = "viewer"


class Permission(str, Enum):
    # Organización
    MANAGE_ORGANIZATION = "manage_organization"
    DELETE_ORGANIZATION = "delete_organization"
    CHANGE_PLAN = "change_plan"

    # Equipo
    MANAGE_TEAM = "manage_team"
    INVITE_USERS = "invite_users"
    REMOVE_USERS = "remove_users"
    CHANGE_USER_ROLES = "change_user_roles"

    # Clientes
    VIEW_CLIENTS = "view_clients"
    CREATE_CLIENTS = "create_clients"
    EDIT_CLIENTS = "edit_clients"
    DELETE_CLIENTS = "delete_clients"

    # Vehículos
    VIEW_VEHICLES = "view_vehicles"
    CREATE_VEHICLES = "create_vehicles"
    EDIT_VEHICLES = "edit_vehicles"
    DELETE_VEHICLES = "delete_vehicles"

    # Trabajos
    VIEW_JOBS = "view_jobs"
    CREATE_JOBS = "create_jobs"
    EDIT_JOBS = "edit_jobs"
    DELETE_JOBS = "delete_jobs"
    COMPLETE_JOBS = "complete_jobs"

    # Inventario
    VIEW_PRODUCTS = "view_products"
    CREATE_PRODUCTS = "create_products"
    EDIT_PRODUCTS = "edit_products"
    DELETE_PRODUCTS = "delete_products"

    # Presupuestos
    VIEW_QUOTES = "view_quotes"
    CREATE_QUOTES = "create_quotes"
    EDIT_QUOTES = "edit_quotes"
    DELETE_QUOTES = "delete_quotes"
    APPROVE_QUOTES = "approve_quotes"

    # Agenda
    VIEW_SCHEDULE = "view_schedule"
    CREATE_APPOINTMENTS = "create_appointments"
    EDIT_APPOINTMENTS = "edit_appointments"
    DELETE_APPOINTMENTS = "delete_appointments"

    # Caja
    VIEW_CASH = "view_cash"
    CREATE_TRANSACTIONS = "create_transactions"
    EDIT_TRANSACTIONS = "edit_transactions"
    DELETE_TRANSACTIONS = "delete_transactions"

    # Reportes
    VIEW_REPORTS = "view_reports"
    EXPORT_REPORTS = "export_reports"


_ALL = frozenset(Permission)

_VIEW_ONLY = frozenset({
    Permission.VIEW_CLIENTS,
    Permission.VIEW_VEHICLES,
    Permission.VIEW_JOBS,
    Permission.VIEW_PRODUCTS,
    Permission.VIEW_QUOTES,
    Permission.VIEW_SCHEDULE,
    Permission.VIEW_CASH,
    Permission.VIEW_REPORTS,
})

ROLE_PERMISSIONS: Dict[TenantRole, FrozenSet[Permission]] = {
    TenantRole.OWNER: _ALL,
    TenantRole.ADMIN: _ALL - {Permission.DELETE_ORGANIZATION, Permission.CHANGE_PLAN},
    TenantRole.MANAGER: frozenset({
        Permission.VIEW_CLIENTS, Permission.CREATE_CLIENTS, Permission.EDIT_CLIENTS, Permission.DELETE_CLIENTS,
        Permission.VIEW_VEHICLES, Permission.CREATE_VEHICLES, Permission.EDIT_VEHICLES, Permission.DELETE_VEHICLES,
        Permission.VIEW_JOBS, Permission.CREATE_JOBS, Permission.EDIT_JOBS, Permission.DELETE_JOBS,
        Permission.COMPLETE_JOBS,
        Permission.VIEW_PRODUCTS, Permission.CREATE_PRODUCTS, Permission.EDIT_PRODUCTS,
        Permission.VIEW_QUOTES, Permission.CREATE_QUOTES, Permission.EDIT_QUOTES, Permission.APPROVE_QUOTES,
        Permission.VIEW_SCHEDULE, Permission.CREATE_APPOINTMENTS, Permission.EDIT_APPOINTMENTS,
        Permission.DELETE_APPOINTMENTS,
        Permission.VIEW_CASH, Permission.CREATE_TRANSACTIONS,
        Permission.VIEW_REPORTS, Permission.EXPORT_REPORTS,
    }),
    TenantRole.USER: frozenset({
        Permission.VIEW_CLIENTS, Permission.CREATE_CLIENTS, Permission.EDIT_CLIENTS,
        Permission.VIEW_VEHICLES, Permission.CREATE_VEHICLES, Permission.EDIT_VEHICLES,
        Permission.VIEW_JOBS, Permission.CREATE_JOBS, Permission.EDIT_JOBS, Permission.COMPLETE_JOBS,
        Permission.VIEW_PRODUCTS,
        Permission.VIEW_QUOTES, Permission.CREATE_QUOTES,
        Permission.VIEW_SCHEDULE, Permission.CREATE_APPOINTMENTS, Permission.EDIT_APPOINTMENTS,
        Permission.VIEW_CASH,
        Permission.VIEW_REPORTS,
    }),
    TenantRole.VIEWER: _VIEW_ONLY,
}

ROLE_LABELS: Dict[TenantRole, str] = {
    TenantRole.OWNER: "Dueño",
    TenantRole.ADMIN: "Administrador",
    TenantRole.MANAGER: "Encargado",
    TenantRole.USER: "Empleado",
    TenantRole.VIEWER: "Solo lectura",
}

RoleLike = Union[TenantRole, str, None]


def _as_role(role: RoleLike) -> Optional[TenantRole]:
    if role is None:
        return None
    try:
        return TenantRole(role)
    except ValueError:
        return None


def permissions_for(role: RoleLike) -> FrozenSet[Permission]:
    """Permisos efectivos de un rol. Un rol desconocido no tiene permisos."""
    resolved = _as_role(role)
    if resolved is None:
        return frozenset()
    return ROLE_PERMISSIONS[resolved]


def can(role: RoleLike, permission: Permission) -> bool:
    return permission in permissions_for(role)


def can_any(role: RoleLike, permissions: Iterable[Permission]) -> bool:
    granted = permissions_for(role)
    return any(p in granted for p in permissions)


def can_all(role: RoleLike, permissions: Iterable[Permission]) -> bool:
    granted = permissions_for(role)
    return all(p in granted for p in permissions)


def sorted_permissions(role: RoleLike) -> List[str]:
    """Lista ordenada de permisos (para respuestas de API)."""
    return sorted(p.value for p in permissions_for(role))
