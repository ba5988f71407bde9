from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from uuid import UUID
from decimal import Decimal
from datetime import date as date_type, datetime

from app.common.validators import empty_to_none
from app.modules.cash.models import MovementKind, PaymentMethod


def _clean_concept(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if len(v) < 3:
        raise ValueError('El concepto debe tener al menos 3 caracteres')
    return v


class CashMovementCreate(BaseModel):
    type: MovementKind
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    concept: str = Field(..., min_length=3, max_length=200)
    payment_method: PaymentMethod = PaymentMethod.CASH
    work_order_id: Optional[UUID] = None
    date: Optional[date_type] = Field(None, description="Por defecto, hoy")
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('concept')
    @classmethod
    def validate_concept(cls, v):
        return _clean_concept(v)

    @field_validator('notes', mode='before')
    @classmethod
    def blank_notes(cls, v):
        return empty_to_none(v) if isinstance(v, str) else v


class CashMovementUpdate(BaseModel):
    type: Optional[MovementKind] = None
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    concept: Optional[str] = Field(None, min_length=3, max_length=200)
    payment_method: Optional[PaymentMethod] = None
    work_order_id: Optional[UUID] = None
    date: Optional[date_type] = None
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('concept')
    @classmethod
    def validate_concept(cls, v):
        return _clean_concept(v)


class CashMovementOut(BaseModel):
    id: UUID
    type: MovementKind
    amount: Decimal
    concept: str
    payment_method: PaymentMethod
    work_order_id: Optional[UUID]
    date: date_type
    notes: Optional[str]
    created_by: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CashMovementList(BaseModel):
    movements: List[CashMovementOut]
    total: int
    limit: int
    offset: int


class CashBalance(BaseModel):
    start_date: Optional[date_type]
    end_date: Optional[date_type]
    ingresos: Decimal
    egresos: Decimal
    balance: Decimal
    movements_count: int
