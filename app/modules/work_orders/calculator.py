"""
Cálculo de totales para órdenes de trabajo y presupuestos.

Todos los importes se redondean a 2 decimales (ROUND_HALF_UP).
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple, Union

from app.core.config import settings

Number = Union[Decimal, int, float, str]

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_money(value: Number) -> Decimal:
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def line_subtotal(quantity: Number, unit_price: Number) -> Decimal:
    return to_money(Decimal(str(quantity)) * Decimal(str(unit_price)))


@dataclass
class Totals:
    subtotal: Decimal
    discount_amount: Decimal
    taxes: Decimal
    total: Decimal


def calculate_totals(
    lines: Iterable[Tuple[Number, Number]],
    labor_cost: Number = 0,
    discount: Number = 0,
    apply_vat: bool = False,
    vat_rate: Number = None
) -> Totals:
    """
    Calcular totales a partir de pares (cantidad, precio unitario).

    subtotal = suma de líneas + mano de obra
    descuento = subtotal * discount / 100
    IVA = (subtotal - descuento) * tasa / 100, solo si apply_vat
    total = subtotal - descuento + IVA
    """
    rate = Decimal(str(settings.VAT_RATE if vat_rate is None else vat_rate))

    subtotal = sum((line_subtotal(q, p) for q, p in lines), ZERO) + to_money(labor_cost)
    subtotal = to_money(subtotal)
    discount_amount = to_money(subtotal * Decimal(str(discount)) / HUNDRED)
    taxable = subtotal - discount_amount
    taxes = to_money(taxable * rate / HUNDRED) if apply_vat else ZERO
    total = to_money(taxable + taxes)

    return Totals(subtotal=subtotal, discount_amount=discount_amount, taxes=taxes, total=total)
