from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app.dependencies.dbDependecies import get_db
from app.modules.auth.dependencies import require_tenant
from app.modules.auth.schemas import AuthContext
from app.modules.plans.schemas import PlanOut, TenantPlanStatus
from app.modules.plans.service import PlanService

plans_router = APIRouter(prefix="/plans", tags=["Plans"])


@plans_router.get("/", response_model=List[PlanOut])
async def list_plans(db: Session = Depends(get_db)):
    """Planes disponibles con sus límites y módulos (público)."""
    return PlanService(db).list_plans()


@plans_router.get("/current", response_model=TenantPlanStatus)
async def get_current_plan(
    auth_context: AuthContext = Depends(require_tenant()),
    db: Session = Depends(get_db)
):
    """
    Plan del taller actual y uso de cada recurso.

    Cada recurso indica current, max (-1 = ilimitado), percentage,
    is_near_limit (>= 80%) e is_at_limit.
    """
    return PlanService(db).tenant_status(auth_context.tenant_id)
