from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.dependencies.dbDependecies import get_db
from app.common.permissions import Permission
from app.modules.auth.dependencies import require_permission
from app.modules.auth.schemas import AuthContext
from app.modules.plans.constants import TenantModule
from app.modules.plans.dependencies import require_module
from app.modules.products.schemas import (
    ProductCreate, ProductUpdate, ProductOut, ProductList, StockAdjustment, StockMovementList
)
from app.modules.products.service import ProductService

products_router = APIRouter(
    prefix="/products",
    tags=["Products"],
    dependencies=[Depends(require_module(TenantModule.INVENTORY))]
)


@products_router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    auth_context: AuthContext = Depends(require_permission(Permission.CREATE_PRODUCTS)),
    db: Session = Depends(get_db)
):
    """
    Crear un producto.

    Si se indica stock inicial se registra un movimiento de entrada.
    """
    return ProductService(db).create_product(product_data, auth_context.tenant_id, auth_context.user_id)


@products_router.get("/", response_model=ProductList)
async def get_products(
    search: Optional[str] = Query(None, description="Búsqueda por nombre, código o marca"),
    category: Optional[str] = Query(None),
    active: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: Session = Depends(get_db)
):
    return ProductService(db).get_products(
        auth_context.tenant_id, search=search, category=category, active=active, limit=limit, offset=offset
    )


@products_router.get("/low-stock", response_model=List[ProductOut])
async def get_low_stock_products(
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: Session = Depends(get_db)
):
    """Productos activos con stock menor o igual al mínimo."""
    return ProductService(db).get_low_stock(auth_context.tenant_id)


@products_router.get("/categories", response_model=List[str])
async def get_product_categories(
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: Session = Depends(get_db)
):
    return ProductService(db).get_categories(auth_context.tenant_id)


@products_router.get("/{product_id}", response_model=ProductOut)
async def get_product(
    product_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: Session = Depends(get_db)
):
    return ProductService(db).get_product(product_id, auth_context.tenant_id)


@products_router.patch("/{product_id}", response_model=ProductOut)
async def update_product(
    product_id: UUID,
    product_data: ProductUpdate,
    auth_context: AuthContext = Depends(require_permission(Permission.EDIT_PRODUCTS)),
    db: Session = Depends(get_db)
):
    return ProductService(db).update_product(product_id, product_data, auth_context.tenant_id)


@products_router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: UUID,
    auth_context: AuthContext = Depends(require_permission(Permission.DELETE_PRODUCTS)),
    db: Session = Depends(get_db)
):
    ProductService(db).delete_product(product_id, auth_context.tenant_id)


@products_router.post("/{product_id}/stock", response_model=ProductOut)
async def adjust_product_stock(
    product_id: UUID,
    adjustment: StockAdjustment,
    auth_context: AuthContext = Depends(require_permission(Permission.EDIT_PRODUCTS)),
    db: Session = Depends(get_db)
):
    """
    Ajustar stock.

    - **new_stock**: fija la cantidad
    - **quantity**: suma o resta unidades
    El stock nunca queda negativo.
    """
    return ProductService(db).adjust_stock(product_id, adjustment, auth_context.tenant_id, auth_context.user_id)


@products_router.get("/{product_id}/movements", response_model=StockMovementList)
async def get_product_movements(
    product_id: UUID,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    auth_context: AuthContext = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: Session = Depends(get_db)
):
    return ProductService(db).get_movements(product_id, auth_context.tenant_id, limit=limit, offset=offset)
