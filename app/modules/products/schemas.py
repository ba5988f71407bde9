from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from uuid import UUID
from decimal import Decimal
from datetime import datetime

from app.common.validators import empty_to_none
from app.modules.products.models import MovementType


class ProductBase(BaseModel):
    code: Optional[str] = Field(None, max_length=50, description="Código interno o del fabricante")
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=100)
    unit: Optional[str] = Field(None, max_length=20, description="Unidad: unidad, litro, kit...")
    brand: Optional[str] = Field(None, max_length=100)
    supplier: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=100, description="Ubicación en el depósito")

    @field_validator('code', 'description', 'category', 'unit', 'brand', 'supplier', 'location', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            return empty_to_none(v)
        return v


class ProductCreate(ProductBase):
    name: str = Field(..., min_length=2, max_length=100)
    price: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    purchase_price: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    stock: int = Field(0, ge=0)
    min_stock: int = Field(0, ge=0)
    active: bool = True

    @field_validator('name')
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError('El nombre debe tener al menos 2 caracteres')
        return v


class ProductUpdate(ProductBase):
    """El stock no se edita aquí: se usa el ajuste de stock para dejar registro."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    purchase_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    min_stock: Optional[int] = Field(None, ge=0)
    active: Optional[bool] = None


class ProductOut(BaseModel):
    id: UUID
    code: Optional[str]
    name: str
    description: Optional[str]
    category: Optional[str]
    price: Decimal
    purchase_price: Decimal
    stock: int
    min_stock: int
    unit: Optional[str]
    brand: Optional[str]
    supplier: Optional[str]
    location: Optional[str]
    active: bool
    is_low_stock: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductList(BaseModel):
    products: List[ProductOut]
    total: int
    limit: int
    offset: int


class StockAdjustment(BaseModel):
    """
    Ajuste de stock. Enviar **new_stock** para fijar la cantidad o **quantity**
    para sumar/restar unidades (negativo resta).
    """
    new_stock: Optional[int] = Field(None, ge=0)
    quantity: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=255)

    @model_validator(mode='after')
    def check_mode(self):
        if (self.new_stock is None) == (self.quantity is None):
            raise ValueError('Debes indicar new_stock o quantity, no ambos')
        if self.quantity == 0:
            raise ValueError('La cantidad del ajuste no puede ser cero')
        return self


class StockMovementOut(BaseModel):
    id: UUID
    product_id: UUID
    quantity: int
    movement_type: MovementType
    reference: Optional[str]
    notes: Optional[str]
    work_order_id: Optional[UUID]
    created_by: Optional[UUID]
    created_at: datetime

    class Config:
        from_attributes = True


class StockMovementList(BaseModel):
    movements: List[StockMovementOut]
    total: int
    limit: int
    offset: int
