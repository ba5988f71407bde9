"""
Planes de suscripción predefinidos.

Los límites usan -1 como "ilimitado". Los planes son estáticos (no hay tabla):
el taller guarda solo el código del plan.
"""
from enum import Enum
from typing import Dict, List, Optional


class PlanCode(str, Enum):
    TRIAL = "trial"
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class TenantModule(str, Enum):
    CLIENTS = "clients"
    VEHICLES = "vehicles"
    JOBS = "jobs"
    SCHEDULE = "schedule"
    QUOTES = "quotes"
    INVENTORY = "inventory"
    INVOICING = "invoicing"
    REPORTS = "reports"


class PlanResource(str, Enum):
    USERS = "users"
    CLIENTS = "clients"
    VEHICLES = "vehicles"
    MONTHLY_JOBS = "monthly_jobs"


UNLIMITED = -1
NEAR_LIMIT_PERCENTAGE = 80

ALL_MODULES: List[TenantModule] = list(TenantModule)

PLANS: Dict[PlanCode, dict] = {
    PlanCode.TRIAL: {
        "name": "Prueba",
        "limits": {
            PlanResource.USERS: 2,
            PlanResource.CLIENTS: 50,
            PlanResource.VEHICLES: 50,
            PlanResource.MONTHLY_JOBS: 20,
        },
        "modules": [TenantModule.CLIENTS, TenantModule.VEHICLES, TenantModule.JOBS],
        "features": [],
    },
    PlanCode.BASIC: {
        "name": "Básico",
        "limits": {
            PlanResource.USERS: 5,
            PlanResource.CLIENTS: 500,
            PlanResource.VEHICLES: 500,
            PlanResource.MONTHLY_JOBS: 100,
        },
        "modules": [
            TenantModule.CLIENTS, TenantModule.VEHICLES, TenantModule.JOBS,
            TenantModule.SCHEDULE, TenantModule.QUOTES,
        ],
        "features": ["email_notifications"],
    },
    PlanCode.PREMIUM: {
        "name": "Premium",
        "limits": {
            PlanResource.USERS: 15,
            PlanResource.CLIENTS: UNLIMITED,
            PlanResource.VEHICLES: UNLIMITED,
            PlanResource.MONTHLY_JOBS: UNLIMITED,
        },
        "modules": ALL_MODULES,
        "features": ["email_notifications", "sms_notifications", "advanced_reports", "custom_branding"],
    },
    PlanCode.ENTERPRISE: {
        "name": "Empresa",
        "limits": {
            PlanResource.USERS: UNLIMITED,
            PlanResource.CLIENTS: UNLIMITED,
            PlanResource.VEHICLES: UNLIMITED,
            PlanResource.MONTHLY_JOBS: UNLIMITED,
        },
        "modules": ALL_MODULES,
        "features": [
            "email_notifications", "sms_notifications", "advanced_reports",
            "custom_branding", "api_access", "priority_support",
        ],
    },
}

RESOURCE_LABELS = {
    PlanResource.USERS: "usuarios",
    PlanResource.CLIENTS: "clientes",
    PlanResource.VEHICLES: "vehículos",
    PlanResource.MONTHLY_JOBS: "trabajos mensuales",
}

MODULE_LABELS = {
    TenantModule.CLIENTS: "Clientes",
    TenantModule.VEHICLES: "Vehículos",
    TenantModule.JOBS: "Trabajos",
    TenantModule.SCHEDULE: "Agenda",
    TenantModule.QUOTES: "Presupuestos",
    TenantModule.INVENTORY: "Inventario",
    TenantModule.INVOICING: "Caja y facturación",
    TenantModule.REPORTS: "Reportes",
}

PLAN_ORDER = [PlanCode.TRIAL, PlanCode.BASIC, PlanCode.PREMIUM, PlanCode.ENTERPRISE]


def get_plan(code: str) -> dict:
    """Configuración de un plan; un código desconocido se trata como trial."""
    try:
        return PLANS[PlanCode(code)]
    except ValueError:
        return PLANS[PlanCode.TRIAL]


def plan_has_module(code: str, module: TenantModule) -> bool:
    return module in get_plan(code)["modules"]


def required_plan_for(module: TenantModule) -> Optional[PlanCode]:
    """Plan más bajo que incluye el módulo."""
    for code in PLAN_ORDER:
        if module in PLANS[code]["modules"]:
            return code
    return None
