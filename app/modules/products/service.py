"""
Servicio de inventario.

El stock se modifica solo desde aquí (ajustes manuales y descuento al completar
órdenes de trabajo) y cada cambio deja un StockMovement.
"""
import logging
from collections import OrderedDict
from typing import Optional, List, Dict, Any, Iterable, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import or_, distinct
from sqlalchemy.orm import Session

from app.database.database import get_tenant_query
from app.modules.products.models import Product, StockMovement, MovementType
from app.modules.products.schemas import ProductCreate, ProductUpdate, StockAdjustment

logger = logging.getLogger(__name__)


class ProductService:
    """Servicio para gestión de productos y stock"""

    def __init__(self, db: Session):
        self.db = db

    def _ensure_unique_code(self, code: Optional[str], tenant_id: UUID, exclude_id: Optional[UUID] = None) -> None:
        if not code:
            return
        query = get_tenant_query(self.db, Product, tenant_id).filter(Product.code == code)
        if exclude_id:
            query = query.filter(Product.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Ya existe un producto con el código '{code}' en este taller"
            )

    def _record_movement(
        self,
        product: Product,
        quantity: int,
        movement_type: MovementType,
        user_id: Optional[UUID],
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        work_order_id: Optional[UUID] = None
    ) -> StockMovement:
        movement = StockMovement(
            tenant_id=product.tenant_id,
            product_id=product.id,
            quantity=quantity,
            movement_type=movement_type.value,
            reference=reference,
            notes=notes,
            work_order_id=work_order_id,
            created_by=user_id
        )
        self.db.add(movement)
        return movement

    def create_product(self, product_data: ProductCreate, tenant_id: UUID, user_id: UUID) -> Product:
        self._ensure_unique_code(product_data.code, tenant_id)

        product = Product(
            tenant_id=tenant_id,
            created_by=user_id,
            **product_data.model_dump()
        )
        self.db.add(product)
        self.db.flush()

        if product.stock > 0:
            self._record_movement(product, product.stock, MovementType.IN, user_id, notes="Stock inicial")

        self.db.commit()
        self.db.refresh(product)
        logger.info(f"Product {product.name} created in tenant {tenant_id} with stock {product.stock}")
        return product

    def get_product(self, product_id: UUID, tenant_id: UUID) -> Product:
        product = get_tenant_query(self.db, Product, tenant_id).filter(Product.id == product_id).first()
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Producto no encontrado"
            )
        return product

    def get_products(
        self,
        tenant_id: UUID,
        search: Optional[str] = None,
        category: Optional[str] = None,
        active: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Dict[str, Any]:
        query = get_tenant_query(self.db, Product, tenant_id)

        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                Product.name.ilike(term),
                Product.code.ilike(term),
                Product.brand.ilike(term)
            ))
        if category:
            query = query.filter(Product.category == category)
        if active is not None:
            query = query.filter(Product.active == active)

        total = query.count()
        products = query.order_by(Product.name.asc()).offset(offset).limit(limit).all()

        return {
            "products": products,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def get_categories(self, tenant_id: UUID) -> List[str]:
        rows = self.db.query(distinct(Product.category)).filter(
            Product.tenant_id == tenant_id,
            Product.category.isnot(None)
        ).order_by(Product.category.asc()).all()
        return [row[0] for row in rows]

    def get_low_stock(self, tenant_id: UUID) -> List[Product]:
        """Productos activos con stock igual o por debajo del mínimo"""
        return get_tenant_query(self.db, Product, tenant_id).filter(
            Product.active.is_(True),
            Product.stock <= Product.min_stock
        ).order_by(Product.stock.asc(), Product.name.asc()).all()

    def update_product(self, product_id: UUID, product_data: ProductUpdate, tenant_id: UUID) -> Product:
        product = self.get_product(product_id, tenant_id)
        update_data = product_data.model_dump(exclude_unset=True)

        for field in ("name", "price", "purchase_price", "min_stock", "active"):
            if field in update_data and update_data[field] is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"El campo {field} es obligatorio"
                )

        if "code" in update_data:
            self._ensure_unique_code(update_data["code"], tenant_id, exclude_id=product.id)

        for field, value in update_data.items():
            setattr(product, field, value)

        self.db.commit()
        self.db.refresh(product)
        return product

    def delete_product(self, product_id: UUID, tenant_id: UUID) -> None:
        """
        Eliminar producto junto con su historial de movimientos.

        Si alguna orden o presupuesto lo usa, no se elimina: hay que desactivarlo.
        """
        from app.modules.work_orders.models import WorkOrderItem
        from app.modules.quotes.models import QuoteItem

        product = self.get_product(product_id, tenant_id)

        for model in (WorkOrderItem, QuoteItem):
            if self.db.query(model).filter(model.product_id == product_id).first():
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="El producto está usado en órdenes o presupuestos. Desactívalo en lugar de eliminarlo"
                )

        self.db.delete(product)
        self.db.commit()
        logger.info(f"Product {product_id} deleted from tenant {tenant_id}")

    def adjust_stock(
        self,
        product_id: UUID,
        adjustment: StockAdjustment,
        tenant_id: UUID,
        user_id: UUID
    ) -> Product:
        product = get_tenant_query(self.db, Product, tenant_id).filter(
            Product.id == product_id
        ).with_for_update().first()
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Producto no encontrado"
            )

        if adjustment.new_stock is not None:
            delta = adjustment.new_stock - product.stock
        else:
            delta = adjustment.quantity

        new_stock = product.stock + delta
        if new_stock < 0:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Stock insuficiente: disponible {product.stock}, se intenta restar {abs(delta)}"
            )

        if delta == 0:
            self.db.rollback()
            return product

        product.stock = new_stock
        self._record_movement(
            product, delta, MovementType.ADJUSTMENT, user_id,
            reference="Ajuste manual", notes=adjustment.notes
        )
        self.db.commit()
        self.db.refresh(product)
        logger.info(f"Stock of product {product_id} adjusted by {delta} (now {new_stock})")
        return product

    def get_movements(
        self,
        product_id: UUID,
        tenant_id: UUID,
        limit: int = 100,
        offset: int = 0
    ) -> Dict[str, Any]:
        self.get_product(product_id, tenant_id)
        query = get_tenant_query(self.db, StockMovement, tenant_id).filter(
            StockMovement.product_id == product_id
        )
        total = query.count()
        movements = query.order_by(StockMovement.created_at.desc()).offset(offset).limit(limit).all()
        return {
            "movements": movements,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def deduct_for_work_order(
        self,
        lines: Iterable[Tuple[UUID, int]],
        tenant_id: UUID,
        work_order_id: UUID,
        reference: str,
        user_id: Optional[UUID]
    ) -> List[StockMovement]:
        """
        Descontar stock de los productos de una orden completada.

        Recibe pares (product_id, cantidad). Bloquea los productos, valida todo el
        stock antes de modificar nada y no confirma la transacción.
        """
        required: "OrderedDict[UUID, int]" = OrderedDict()
        for product_id, quantity in lines:
            required[product_id] = required.get(product_id, 0) + quantity

        if not required:
            return []

        products = {
            p.id: p for p in get_tenant_query(self.db, Product, tenant_id).filter(
                Product.id.in_(list(required.keys()))
            ).with_for_update().all()
        }

        for product_id, quantity in required.items():
            product = products.get(product_id)
            if product is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Producto no encontrado"
                )
            if product.stock < quantity:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Stock insuficiente para {product.name}: disponible {product.stock}, requerido {quantity}"
                )

        movements = []
        for product_id, quantity in required.items():
            product = products[product_id]
            product.stock -= quantity
            movements.append(self._record_movement(
                product, -quantity, MovementType.OUT, user_id,
                reference=reference, work_order_id=work_order_id
            ))

        logger.info(f"Stock deducted for work order {reference}: {len(movements)} product(s)")
        return movements
