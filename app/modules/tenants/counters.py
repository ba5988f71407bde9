"""
Numeración atómica por taller.

Cada taller tiene una fila en tenant_counters. Para obtener el siguiente número
se bloquea la fila (SELECT ... FOR UPDATE) dentro de la transacción del
llamador, se incrementa y se formatea como PREFIJO-YYYYMM-XXXX. La secuencia no
se reinicia por mes: el YYYYMM solo refleja la fecha de emisión.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.modules.tenants.models import TenantCounter
from app.modules.work_orders.models import WorkOrder
from app.modules.quotes.models import Quote

logger = logging.getLogger(__name__)


def format_number(prefix: str, sequence: int, issued_at: Optional[datetime] = None) -> str:
    """OT-202401-0001"""
    issued_at = issued_at or datetime.now(timezone.utc)
    return f"{prefix}-{issued_at:%Y%m}-{sequence:04d}"


def parse_sequence(number: str, prefix: str) -> Optional[int]:
    """Extrae la secuencia de un número PREFIJO-YYYYMM-XXXX; None si no tiene ese formato."""
    match = re.match(rf"^{re.escape(prefix)}-\d{{6}}-(\d+)$", number or "")
    if not match:
        return None
    return int(match.group(1))


class CounterService:
    """Servicio de contadores por taller."""

    def __init__(self, db: Session):
        self.db = db

    def _max_existing(self, tenant_id: UUID, model, prefix: str) -> int:
        rows = self.db.query(model.number).filter(
            model.tenant_id == tenant_id,
            model.number.like(f"{prefix}-%")
        ).all()

        highest = 0
        for (number,) in rows:
            sequence = parse_sequence(number, prefix)
            if sequence is not None and sequence > highest:
                highest = sequence
        return highest

    def _get_locked(self, tenant_id: UUID) -> Optional[TenantCounter]:
        return self.db.query(TenantCounter).filter(
            TenantCounter.tenant_id == tenant_id
        ).with_for_update().first()

    def initialize_counter(self, tenant_id: UUID) -> TenantCounter:
        """
        Crear el contador del taller si no existe.

        El valor inicial es la secuencia más alta entre los números ya emitidos,
        de modo que un taller con datos previos nunca repite números.
        """
        counter = self._get_locked(tenant_id)
        if counter:
            return counter

        counter = TenantCounter(
            tenant_id=tenant_id,
            work_orders_counter=self._max_existing(tenant_id, WorkOrder, settings.WORK_ORDER_PREFIX),
            quotes_counter=self._max_existing(tenant_id, Quote, settings.QUOTE_PREFIX),
        )
        try:
            with self.db.begin_nested():
                self.db.add(counter)
        except IntegrityError:
            # Otro proceso lo creó en paralelo
            counter = self._get_locked(tenant_id)

        logger.info(
            f"Counter initialized for tenant {tenant_id}: "
            f"work_orders={counter.work_orders_counter}, quotes={counter.quotes_counter}"
        )
        return counter

    def _next(self, tenant_id: UUID, field: str, prefix: str) -> str:
        counter = self._get_locked(tenant_id) or self.initialize_counter(tenant_id)
        sequence = getattr(counter, field) + 1
        setattr(counter, field, sequence)
        self.db.flush()

        number = format_number(prefix, sequence)
        logger.info(f"Generated number {number} for tenant {tenant_id}")
        return number

    def next_work_order_number(self, tenant_id: UUID) -> str:
        """Siguiente número de orden de trabajo. Debe llamarse dentro de la transacción que crea la orden."""
        return self._next(tenant_id, "work_orders_counter", settings.WORK_ORDER_PREFIX)

    def next_quote_number(self, tenant_id: UUID) -> str:
        return self._next(tenant_id, "quotes_counter", settings.QUOTE_PREFIX)

    def current_counter(self, tenant_id: UUID, field: str = "work_orders_counter") -> int:
        """Valor actual sin modificarlo; 0 si el taller aún no tiene contador."""
        counter = self.db.query(TenantCounter).filter(TenantCounter.tenant_id == tenant_id).first()
        if not counter:
            return 0
        return getattr(counter, field)

    def peek_next_work_order_number(self, tenant_id: UUID) -> str:
        """Número que recibiría la próxima orden (informativo, no reserva)."""
        return format_number(settings.WORK_ORDER_PREFIX, self.current_counter(tenant_id) + 1)
