from pydantic import BaseModel, Field
from typing import List, Dict

from app.modules.plans.constants import PlanCode


class PlanOut(BaseModel):
    code: str
    name: str
    limits: Dict[str, int]
    modules: List[str]
    features: List[str]


class ResourceUsage(BaseModel):
    """Uso de un recurso frente al límite del plan (-1 = ilimitado)"""
    resource: str
    current: int
    max: int
    percentage: float
    is_near_limit: bool
    is_at_limit: bool
    is_unlimited: bool


class TenantPlanStatus(BaseModel):
    plan: PlanOut
    usage: List[ResourceUsage]


class PlanChangeRequest(BaseModel):
    plan: PlanCode = Field(..., description="Código del nuevo plan")
