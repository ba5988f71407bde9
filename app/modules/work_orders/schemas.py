from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from uuid import UUID
from decimal import Decimal
from datetime import datetime

from app.common.validators import empty_to_none
from app.modules.cash.models import PaymentMethod
from app.modules.clients.schemas import ClientCreate, ClientBrief
from app.modules.vehicles.schemas import VehicleInline, VehicleBrief
from app.modules.work_orders.models import WorkOrderStatus, WorkOrderPriority


class WorkOrderItemIn(BaseModel):
    description: str = Field(..., min_length=1, max_length=255)
    quantity: Decimal = Field(..., gt=0, decimal_places=3)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)
    product_id: Optional[UUID] = Field(None, description="Producto del inventario; descuenta stock al completar")

    @field_validator('description')
    @classmethod
    def strip_description(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('La descripción del ítem es obligatoria')
        return v

    @model_validator(mode='after')
    def check_whole_quantity(self):
        if self.product_id is not None and self.quantity != self.quantity.to_integral_value():
            raise ValueError('La cantidad de un producto del inventario debe ser un número entero')
        return self


class WorkOrderItemOut(BaseModel):
    id: UUID
    description: str
    quantity: Decimal
    unit_price: Decimal
    subtotal: Decimal
    product_id: Optional[UUID]

    class Config:
        from_attributes = True


class WorkOrderCreate(BaseModel):
    client_id: Optional[UUID] = None
    new_client: Optional[ClientCreate] = None
    vehicle_id: Optional[UUID] = None
    new_vehicle: Optional[VehicleInline] = None
    general_description: str = Field(..., min_length=1, max_length=2000)
    items: List[WorkOrderItemIn] = Field(default_factory=list)
    labor_cost: Decimal = Field(Decimal("0"), ge=0, decimal_places=2, description="Mano de obra")
    discount: Decimal = Field(Decimal("0"), ge=0, le=100, description="Descuento en porcentaje")
    apply_vat: bool = False
    priority: WorkOrderPriority = WorkOrderPriority.MEDIUM
    assigned_technician: Optional[str] = Field(None, max_length=100)
    observations: Optional[str] = Field(None, max_length=2000)

    @field_validator('general_description')
    @classmethod
    def strip_description(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('La descripción general es obligatoria')
        return v

    @field_validator('assigned_technician', 'observations', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        return empty_to_none(v) if isinstance(v, str) else v

    @model_validator(mode='after')
    def check_references(self):
        if self.client_id is None and self.new_client is None:
            raise ValueError('Debes indicar client_id o new_client')
        if self.vehicle_id is None and self.new_vehicle is None:
            raise ValueError('Debes indicar vehicle_id o new_vehicle')
        return self


class WorkOrderUpdate(BaseModel):
    """Si se envía **items** reemplaza la lista completa."""
    client_id: Optional[UUID] = None
    vehicle_id: Optional[UUID] = None
    general_description: Optional[str] = Field(None, min_length=1, max_length=2000)
    items: Optional[List[WorkOrderItemIn]] = None
    labor_cost: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    discount: Optional[Decimal] = Field(None, ge=0, le=100)
    apply_vat: Optional[bool] = None
    priority: Optional[WorkOrderPriority] = None
    assigned_technician: Optional[str] = Field(None, max_length=100)
    observations: Optional[str] = Field(None, max_length=2000)


class WorkOrderStatusChange(BaseModel):
    status: WorkOrderStatus
    payment_method: Optional[PaymentMethod] = Field(
        None, description="Al completar, registra un ingreso en caja por el total"
    )


class WorkOrderSummary(BaseModel):
    id: UUID
    number: str
    client_id: UUID
    vehicle_id: UUID
    general_description: str
    total: Decimal
    status: WorkOrderStatus
    priority: WorkOrderPriority
    created_at: datetime
    finished_at: Optional[datetime]

    class Config:
        from_attributes = True


class WorkOrderOut(BaseModel):
    id: UUID
    number: str
    client_id: UUID
    vehicle_id: UUID
    client: Optional[ClientBrief] = None
    vehicle: Optional[VehicleBrief] = None
    general_description: str
    items: List[WorkOrderItemOut]
    subtotal: Decimal
    discount: Decimal
    discount_amount: Decimal
    labor_cost: Decimal
    taxes: Decimal
    total: Decimal
    apply_vat: bool
    status: WorkOrderStatus
    priority: WorkOrderPriority
    assigned_technician: Optional[str]
    observations: Optional[str]
    started_at: Optional[datetime]
    finished_at: Optional[datetime]
    created_by: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class WorkOrderList(BaseModel):
    work_orders: List[WorkOrderSummary]
    total: int
    limit: int
    offset: int


class NextNumberOut(BaseModel):
    next_number: str
