from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.dependencies.dbDependecies import get_db
from app.common.permissions import Permission
from app.modules.auth.dependencies import require_permission, require_tenant, check_permission
from app.modules.auth.schemas import AuthContext
from app.modules.plans.constants import TenantModule
from app.modules.plans.dependencies import require_module
from app.modules.quotes.models import QuoteStatus
from app.modules.quotes.schemas import (
    QuoteCreate, QuoteUpdate, QuoteStatusChange, QuoteConvert, QuoteOut, QuoteList
)
from app.modules.quotes.service import QuoteService
from app.modules.work_orders.schemas import WorkOrderOut

quotes_router = APIRouter(
    prefix="/quotes",
    tags=["Quotes"],
    dependencies=[Depends(require_module(TenantModule.QUOTES))]
)


@quotes_router.post("/", response_model=QuoteOut, status_code=status.HTTP_201_CREATED)
async def create_quote(
    quote_data: QuoteCreate,
    auth_context: AuthContext = Depends(require_permission(Permission.CREATE_QUOTES)),
    db: Session = Depends(get_db)
):
    """Crear un presupuesto en borrador con numeración PRE-YYYYMM-XXXX."""
    return QuoteService(db).create_quote(quote_data, auth_context.tenant_id, auth_context.user_id)


@quotes_router.get("/", response_model=QuoteList)
async def get_quotes(
    status_filter: Optional[QuoteStatus] = Query(None, alias="status"),
    client_id: Optional[UUID] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_QUOTES)),
    db: Session = Depends(get_db)
):
    return QuoteService(db).get_quotes(
        auth_context.tenant_id, status_filter=status_filter, client_id=client_id, limit=limit, offset=offset
    )


@quotes_router.get("/{quote_id}", response_model=QuoteOut)
async def get_quote(
    quote_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_QUOTES)),
    db: Session = Depends(get_db)
):
    return QuoteService(db).get_quote(quote_id, auth_context.tenant_id)


@quotes_router.patch("/{quote_id}", response_model=QuoteOut)
async def update_quote(
    quote_id: UUID,
    quote_data: QuoteUpdate,
    auth_context: AuthContext = Depends(require_permission(Permission.EDIT_QUOTES)),
    db: Session = Depends(get_db)
):
    return QuoteService(db).update_quote(quote_id, quote_data, auth_context.tenant_id, auth_context.user_id)


@quotes_router.patch("/{quote_id}/status", response_model=QuoteOut)
async def change_quote_status(
    quote_id: UUID,
    status_data: QuoteStatusChange,
    auth_context: AuthContext = Depends(require_tenant()),
    db: Session = Depends(get_db)
):
    """
    Cambiar el estado del presupuesto.

    Aprobar requiere **approve_quotes**; enviar o rechazar, **edit_quotes**.
    """
    if status_data.status == QuoteStatus.APPROVED:
        check_permission(auth_context, Permission.APPROVE_QUOTES)
    else:
        check_permission(auth_context, Permission.EDIT_QUOTES)
    return QuoteService(db).change_status(quote_id, status_data.status, auth_context.tenant_id)


@quotes_router.post("/{quote_id}/convert", response_model=WorkOrderOut, status_code=status.HTTP_201_CREATED)
async def convert_quote(
    quote_id: UUID,
    convert_data: Optional[QuoteConvert] = None,
    auth_context: AuthContext = Depends(require_permission(Permission.CREATE_JOBS)),
    db: Session = Depends(get_db)
):
    """Convertir un presupuesto aprobado en orden de trabajo."""
    return QuoteService(db).convert_to_work_order(
        quote_id, convert_data or QuoteConvert(), auth_context.tenant_id, auth_context.user_id
    )


@quotes_router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote(
    quote_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.DELETE_QUOTES)),
    db: Session = Depends(get_db)
):
    QuoteService(db).delete_quote(quote_id, auth_context.tenant_id)
