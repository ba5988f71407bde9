from fastapi import Depends
from sqlalchemy.orm import Session

from app.dependencies.dbDependecies import get_db
from app.modules.auth.dependencies import require_tenant
from app.modules.auth.schemas import AuthContext
from app.modules.plans.constants import TenantModule
from app.modules.plans.service import PlanService


def require_module(module: TenantModule):
    """Dependencia que exige que el plan del taller incluya el módulo."""
    def module_checker(
        auth_context: AuthContext = Depends(require_tenant()),
        db: Session = Depends(get_db)
    ):
        PlanService(db).ensure_module(auth_context.tenant_id, module)
        return auth_context
    return module_checker
