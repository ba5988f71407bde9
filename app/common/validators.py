"""
Validadores específicos para Argentina y para los datos del taller
"""
import re
from typing import Optional


PHONE_PATTERN = re.compile(r'^[0-9+\-\s()]+$')
CUIT_PATTERN = re.compile(r'^[0-9\-]+$')
PLATE_PATTERN = re.compile(r'^[A-Z0-9\s-]+$', re.IGNORECASE)
TIME_PATTERN = re.compile(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')

CUIT_WEIGHTS = (5, 4, 3, 2, 7, 6, 5, 4, 3, 2)


def empty_to_none(value: Optional[str]) -> Optional[str]:
    """Normaliza strings vacíos (o solo espacios) a None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_phone(phone: str) -> bool:
    """Teléfono: dígitos, +, -, espacios y paréntesis."""
    return bool(PHONE_PATTERN.match(phone))


def validate_cuit_format(cuit: str) -> bool:
    """CUIT/CUIL: solo dígitos y guiones."""
    return bool(CUIT_PATTERN.match(cuit))


def calculate_cuit_dv(cuit_base: str) -> Optional[int]:
    """
    Calcula el dígito verificador de un CUIT a partir de sus primeros 10 dígitos.

    Algoritmo módulo 11 de AFIP: resultado 11 -> 0, resultado 10 -> 9.
    """
    digits = re.sub(r'\D', '', cuit_base or '')
    if len(digits) != 10:
        return None

    total = sum(int(d) * w for d, w in zip(digits, CUIT_WEIGHTS))
    dv = 11 - (total % 11)
    if dv == 11:
        return 0
    if dv == 10:
        return 9
    return dv


def validate_cuit(cuit: str) -> bool:
    """
    Valida un CUIT completo (formato y dígito verificador).
    Formatos válidos: XX-XXXXXXXX-X o XXXXXXXXXXX
    """
    if not cuit or not validate_cuit_format(cuit):
        return False

    digits = cuit.replace('-', '')
    if len(digits) != 11:
        return False

    return calculate_cuit_dv(digits[:10]) == int(digits[10])


def format_cuit(cuit: str) -> str:
    """Formatea un CUIT de 11 dígitos como XX-XXXXXXXX-X."""
    digits = re.sub(r'\D', '', cuit)
    if len(digits) != 11:
        return cuit
    return f"{digits[:2]}-{digits[2:10]}-{digits[10]}"


def validate_plate(plate: str) -> bool:
    """Patente: letras, números, espacios y guiones (AB123CD, ABC 123, etc.)."""
    return bool(PLATE_PATTERN.match(plate))


def normalize_plate(plate: str) -> str:
    """Las patentes se guardan en mayúsculas y sin espacios extremos."""
    return plate.strip().upper()


def validate_time(value: str) -> bool:
    """Hora en formato HH:MM (24 horas)."""
    return bool(TIME_PATTERN.match(value))
