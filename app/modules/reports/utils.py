"""
Utilidades de exportación CSV para reportes.
"""
import csv
import io
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import Response


def format_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, bool):
        return "Sí" if value else "No"
    return str(value)


def create_csv_response(
    data: List[Dict[str, Any]],
    filename: str,
    headers: Optional[Dict[str, str]] = None
) -> Response:
    """
    Respuesta CSV a partir de una lista de diccionarios.

    headers mapea el nombre de cada campo al título de la columna; si no se
    indica se usan las claves de la primera fila.
    """
    output = io.StringIO()

    fieldnames = list(headers.keys()) if headers else (list(data[0].keys()) if data else [])
    titles = list(headers.values()) if headers else fieldnames

    if fieldnames:
        writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction="ignore")
        writer.writerow(dict(zip(fieldnames, titles)))
        for row in data:
            writer.writerow({key: format_csv_value(row.get(key)) for key in fieldnames})

    content = output.getvalue()
    output.close()

    return Response(
        content=content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Content-Type": "text/csv; charset=utf-8"
        }
    )
