# gym_manager/domain/services/invoice_response.py
"""Interpretación de las respuestas de FacturaLive."""
import json
import math
import re
from typing import Any, Dict, List, Optional, Sequence

from gym_manager.domain.services.billing_credentials import format_number

SUCCESS_KEYWORDS = ["procesado", "aceptado", "aprobado", "ok", "success", "emitido"]
DEFAULT_STATUS = "procesado"

STATUS_KEYS = ["status", "resultado"]
INVOICE_NUMBER_KEYS = ["numeroCFE", "invoice_number"]
INVOICE_SERIES_KEYS = ["serieCFE", "invoice_series"]
EXTERNAL_ID_KEYS = ["idCFE", "external_invoice_id"]

MESSAGE_KEYS = {
    "mensaje",
    "mensajes",
    "message",
    "messages",
    "error",
    "errors",
    "detalle",
    "detalle_error",
    "descripcion",
    "descripcion_error",
    "observaciones",
    "observacion",
    "causas",
    "causa",
}

FACTURA_ID_KEYS = ["facturaid", "facturaId", "FacturaId", "FacturaID", "FACTURAID"]
FACTURA_ID_NESTED_KEYS = ["data", "result", "response", "parsed", "raw"]
FACTURA_ID_MAX_DEPTH = 6

_NUMERIC = re.compile(r"^\d{1,20}$")
_NON_DIGITS = re.compile(r"\D+")


def parse_provider_response(raw: str) -> Any:
    """JSON de la respuesta, o None si no es JSON válido."""
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None


def build_response_payload(raw: str, parsed: Any, endpoint: str) -> Dict[str, Any]:
    if isinstance(parsed, (dict, list)):
        return {"raw": raw, "parsed": parsed, "endpoint": endpoint}
    return {"raw": raw, "endpoint": endpoint}


def to_trimmed_string(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return format_number(value)
    return None


def first_text(parsed: Any, keys: Sequence[str]) -> Optional[str]:
    """Primer valor no vacío entre las variantes de nombre de campo del proveedor."""
    if not isinstance(parsed, dict):
        return None
    for key in keys:
        value = to_trimmed_string(parsed.get(key))
        if value:
            return value
    return None


def extract_status(parsed: Any) -> str:
    return first_text(parsed, STATUS_KEYS) or DEFAULT_STATUS


def is_successful_status(status: str) -> bool:
    normalized = status.strip().lower()
    return not normalized or any(keyword in normalized for keyword in SUCCESS_KEYWORDS)


def _collect_string_values(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        trimmed = value.strip()
        return [trimmed] if trimmed else []
    if isinstance(value, bool):
        return ["true" if value else "false"]
    if isinstance(value, (int, float)):
        return [str(value)]
    if isinstance(value, list):
        return [item for element in value for item in _collect_string_values(element)]
    if isinstance(value, dict):
        return [item for element in value.values() for item in _collect_string_values(element)]
    return []


def extract_provider_messages(parsed: Any) -> List[str]:
    """Mensajes de error que devuelve el proveedor, sin duplicados."""
    if not isinstance(parsed, dict):
        return []

    messages: List[str] = []
    for key, value in parsed.items():
        if key.lower() not in MESSAGE_KEYS:
            continue
        for message in _collect_string_values(value):
            if message not in messages:
                messages.append(message)
    if messages:
        return messages

    status = parsed.get("status")
    if isinstance(status, str) and status.strip():
        return [f"Estado devuelto por FacturaLive: {status.strip()}"]

    code = parsed.get("codigo")
    if isinstance(code, str) and code.strip():
        return [f"Código devuelto por FacturaLive: {code.strip()}"]

    return []


def extract_factura_id(payload: Any, depth: int = 0) -> Optional[str]:
    """
    Busca el `facturaId` numérico de FacturaLive dentro de la respuesta
    guardada, que puede venir anidada o como JSON serializado en texto.
    """
    if depth > FACTURA_ID_MAX_DEPTH or payload is None:
        return None

    if isinstance(payload, str):
        trimmed = payload.strip()
        if _NUMERIC.match(trimmed):
            return _NON_DIGITS.sub("", trimmed)
        parsed = parse_provider_response(trimmed)
        if isinstance(parsed, (dict, list)):
            return extract_factura_id(parsed, depth + 1)
        return None

    if not isinstance(payload, dict):
        return None

    for key in FACTURA_ID_KEYS:
        candidate = to_trimmed_string(payload.get(key))
        if not candidate:
            continue
        digits = _NON_DIGITS.sub("", candidate)
        if _NUMERIC.match(digits):
            return digits

    for key in FACTURA_ID_NESTED_KEYS:
        resolved = extract_factura_id(payload.get(key), depth + 1)
        if resolved:
            return resolved

    return None


def resolve_invoice_number(invoice_number: Any, response_payload: Any, external_invoice_id: Any) -> Optional[str]:
    return (
        to_trimmed_string(invoice_number)
        or extract_factura_id(response_payload)
        or to_trimmed_string(external_invoice_id)
    )
