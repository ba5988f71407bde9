from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from uuid import UUID
from decimal import Decimal
from datetime import date, datetime

from app.modules.clients.schemas import ClientCreate, ClientBrief
from app.modules.vehicles.schemas import VehicleInline, VehicleBrief
from app.modules.quotes.models import QuoteStatus
from app.modules.work_orders.models import WorkOrderPriority
from app.modules.work_orders.schemas import WorkOrderItemIn, WorkOrderItemOut


# Los ítems de presupuesto tienen la misma forma que los de una orden
QuoteItemIn = WorkOrderItemIn
QuoteItemOut = WorkOrderItemOut


class QuoteCreate(BaseModel):
    client_id: Optional[UUID] = None
    new_client: Optional[ClientCreate] = None
    vehicle_id: Optional[UUID] = None
    new_vehicle: Optional[VehicleInline] = None
    items: List[QuoteItemIn] = Field(..., min_length=1)
    apply_vat: bool = False
    valid_until: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode='after')
    def check_references(self):
        if self.client_id is None and self.new_client is None:
            raise ValueError('Debes indicar client_id o new_client')
        if self.vehicle_id is None and self.new_vehicle is None:
            raise ValueError('Debes indicar vehicle_id o new_vehicle')
        return self


class QuoteUpdate(BaseModel):
    client_id: Optional[UUID] = None
    vehicle_id: Optional[UUID] = None
    items: Optional[List[QuoteItemIn]] = Field(None, min_length=1)
    apply_vat: Optional[bool] = None
    valid_until: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class QuoteStatusChange(BaseModel):
    status: QuoteStatus


class QuoteConvert(BaseModel):
    """Datos opcionales para la orden que se genera a partir del presupuesto"""
    general_description: Optional[str] = Field(None, max_length=2000)
    labor_cost: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    priority: WorkOrderPriority = WorkOrderPriority.MEDIUM
    assigned_technician: Optional[str] = Field(None, max_length=100)


class QuoteSummary(BaseModel):
    id: UUID
    number: str
    client_id: UUID
    vehicle_id: UUID
    total: Decimal
    status: QuoteStatus
    valid_until: Optional[date]
    work_order_id: Optional[UUID]
    created_at: datetime

    class Config:
        from_attributes = True


class QuoteOut(BaseModel):
    id: UUID
    number: str
    client_id: UUID
    vehicle_id: UUID
    client: Optional[ClientBrief] = None
    vehicle: Optional[VehicleBrief] = None
    items: List[QuoteItemOut]
    subtotal: Decimal
    vat: Decimal
    total: Decimal
    apply_vat: bool
    status: QuoteStatus
    valid_until: Optional[date]
    notes: Optional[str]
    work_order_id: Optional[UUID]
    created_by: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuoteList(BaseModel):
    quotes: List[QuoteSummary]
    total: int
    limit: int
    offset: int
