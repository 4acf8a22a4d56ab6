# gym_manager/domain/services/invoice_payload.py
"""
Armado del formulario que se envía a FacturaLive.

El payload final se construye en dos capas: primero los campos que envía el
panel (convertidos a texto) y después los valores por defecto calculados a
partir de las credenciales del gimnasio. La segunda capa siempre se vuelve a
aplicar, así que un valor del panel solo sobrevive en un campo con default si
ya pasó la validación de tipo usada al calcular ese default.
"""
import math
import re
from datetime import date
from typing import Any, Dict, Mapping, Optional

from gym_manager.domain.errors import ErrorCode, ValidationError
from gym_manager.domain.services.billing_credentials import (
    ResolvedCredentials,
    format_number,
    normalize_environment,
    parse_optional_string,
)

FACTURA_FIELD_ORDER = [
    "userid",
    "customerid",
    "empresaid",
    "codsucursal",
    "sucursal",
    "facturareferencia",
    "contnumero",
    "contserie",
    "seriereferencia",
    "fechavencimiento",
    "fechafacturacion",
    "moneda",
    "additionalinfo",
    "terms_conditions",
    "payment_type",
    "cotizacion",
    "typecfe",
    "ordencompra",
    "lugarentrega",
    "periododesde",
    "periodohasta",
    "clicountry",
    "nomneg",
    "rutneg",
    "dirneg",
    "cityneg",
    "stateneg",
    "addinfoneg",
    "lineas",
    "indicadorfacturacion",
    "password",
    "typedoc",
    "environment",
    "facturaext",
    "TipoTraslado",
]

# Campos que FacturaLive acepta vacíos
ALLOW_EMPTY = {
    "customerid",
    "contnumero",
    "contserie",
    "fechavencimiento",
    "additionalinfo",
    "terms_conditions",
    "ordencompra",
    "lugarentrega",
    "periododesde",
    "periodohasta",
    "indicadorfacturacion",
}

DEFAULT_SERIES = "A-A-A"
DEFAULT_CURRENCY = "UYU"
DEFAULT_PAYMENT_TYPE = 1
DEFAULT_COTIZACION = 1
DEFAULT_TYPECFE = 111
DEFAULT_COUNTRY = "UY"
DEFAULT_CUSTOMER_NAME = "Cliente"

E_TICKET = "111"
E_FACTURA = "101"

_COL_TAG = re.compile(r"<\s*col\s*/>", re.IGNORECASE)
_TRAILING_COMMAS = re.compile(r",+$")
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def is_filled_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def sanitize_invoice_lines(value: Any) -> str:
    """Normaliza los separadores de columna y quita comas sobrantes al final."""
    lines = "" if value is None else str(value)
    lines = _COL_TAG.sub("</col/>", lines)
    lines = _TRAILING_COMMAS.sub("", lines.strip())
    return lines.strip()


def sanitize_date_string(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _is_iso_date(value: str) -> bool:
    if not _ISO_DATE.fullmatch(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def validate_invoice_date(field: str, value: Any) -> Optional[str]:
    """
    Fecha opcional del panel. FacturaLive y la tabla de facturas solo
    aceptan YYYY-MM-DD, así que otro formato se rechaza antes de emitir.
    """
    cleaned = sanitize_date_string(value)
    if cleaned is None or _is_iso_date(cleaned):
        return cleaned
    raise ValidationError(
        ErrorCode.INVALID_INVOICE_DATE,
        f"La fecha {field} debe tener el formato AAAA-MM-DD.",
        {"field": field, "value": cleaned},
    )


def should_include_field(field: str, value: Any) -> bool:
    if value is None:
        return False
    # customerid se envía siempre, aunque sea 0
    if field == "customerid":
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str):
        if not value.strip():
            return field in ALLOW_EMPTY
        return True
    return False


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return str(value)


def _coalesce(value: Any, fallback: Any) -> Any:
    return fallback if value is None else value


def _number_or(value: Any, fallback: Any) -> Any:
    return value if is_finite_number(value) else fallback


def _string_or(value: Any, fallback: Any) -> Any:
    return value if is_filled_string(value) else fallback


def resolve_issue_date(requested: Any, today: str) -> str:
    """La fecha de facturación no puede ser posterior a hoy."""
    requested_date = sanitize_date_string(requested)
    if requested_date and requested_date <= today:
        return requested_date
    return today


def resolve_environment(invoice: Mapping[str, Any], credentials: ResolvedCredentials, default_environment: str) -> str:
    override = normalize_environment(parse_optional_string(invoice.get("environment")))
    return override or credentials.environment or default_environment


def _resolve_facturaext(invoice: Mapping[str, Any], credentials: ResolvedCredentials, payment_id: str) -> str:
    requested = invoice.get("facturaext")
    if is_filled_string(requested):
        return requested
    if is_finite_number(requested):
        return format_number(requested)
    # Si la columna del gimnasio contiene líneas de factura es un dato mal cargado
    if credentials.facturaext and "</col/>" in credentials.facturaext:
        return payment_id
    return credentials.facturaext or payment_id


def _resolve_tipo_traslado(invoice: Mapping[str, Any], credentials: ResolvedCredentials) -> Optional[float]:
    requested = invoice.get("TipoTraslado")
    if is_finite_number(requested) and requested > 0:
        return requested
    if credentials.tipo_traslado and credentials.tipo_traslado > 0:
        return credentials.tipo_traslado
    return None


def build_default_fields(
    invoice: Mapping[str, Any],
    credentials: ResolvedCredentials,
    payment_id: str,
    member_name: Optional[str],
    lines: str,
    issue_date: str,
    due_date: Optional[str],
    environment: str,
) -> Dict[str, Any]:
    """Capa de valores por defecto. Cada campo prefiere el valor del panel si es válido."""
    return {
        "userid": credentials.user_id,
        "customerid": _number_or(invoice.get("customerid"), _coalesce(credentials.customer_id, 0)),
        "empresaid": credentials.company_id,
        "codsucursal": credentials.branch_code,
        "sucursal": credentials.branch_id,
        "password": credentials.password,
        "facturareferencia": _string_or(invoice.get("facturareferencia"), payment_id),
        "contnumero": _coalesce(invoice.get("contnumero"), ""),
        "contserie": _coalesce(invoice.get("contserie"), ""),
        "seriereferencia": _string_or(invoice.get("seriereferencia"), credentials.series or DEFAULT_SERIES),
        "fechavencimiento": due_date or "",
        "fechafacturacion": issue_date,
        "moneda": _string_or(invoice.get("moneda"), credentials.currency or DEFAULT_CURRENCY),
        "additionalinfo": _coalesce(invoice.get("additionalinfo"), ""),
        "terms_conditions": _coalesce(invoice.get("terms_conditions"), ""),
        "payment_type": _number_or(invoice.get("payment_type"), _coalesce(credentials.payment_type, DEFAULT_PAYMENT_TYPE)),
        "cotizacion": _number_or(invoice.get("cotizacion"), _coalesce(credentials.cotizacion, DEFAULT_COTIZACION)),
        "typecfe": _number_or(invoice.get("typecfe"), _coalesce(credentials.typecfe, DEFAULT_TYPECFE)),
        "ordencompra": _coalesce(invoice.get("ordencompra"), ""),
        "lugarentrega": _coalesce(invoice.get("lugarentrega"), ""),
        "periododesde": _coalesce(invoice.get("periododesde"), ""),
        "periodohasta": _coalesce(invoice.get("periodohasta"), ""),
        "clicountry": _string_or(invoice.get("clicountry"), DEFAULT_COUNTRY),
        "nomneg": _string_or(invoice.get("nomneg"), _string_or(member_name, DEFAULT_CUSTOMER_NAME)),
        "rutneg": _string_or(invoice.get("rutneg"), credentials.rutneg or ""),
        "dirneg": _string_or(invoice.get("dirneg"), credentials.dirneg or ""),
        "cityneg": _string_or(invoice.get("cityneg"), credentials.cityneg or ""),
        "stateneg": _string_or(invoice.get("stateneg"), credentials.stateneg or ""),
        "addinfoneg": _string_or(invoice.get("addinfoneg"), credentials.addinfoneg or ""),
        "lineas": lines,
        "indicadorfacturacion": _coalesce(invoice.get("indicadorfacturacion"), ""),
        "environment": environment,
        "facturaext": _resolve_facturaext(invoice, credentials, payment_id),
        "TipoTraslado": _resolve_tipo_traslado(invoice, credentials),
    }


def build_factura_payload(invoice: Mapping[str, Any], defaults: Mapping[str, Any]) -> Dict[str, str]:
    """
    Combina los campos del panel con la capa de defaults (que se aplica
    última) y devuelve solo los campos conocidos, en el orden de FacturaLive.
    """
    merged: Dict[str, Any] = {}
    for layer in (invoice, defaults):
        for key, value in layer.items():
            if should_include_field(key, value):
                merged[key] = value
    # Un default calculado como None descarta el campo (ej. TipoTraslado <= 0)
    for key, value in defaults.items():
        if value is None:
            merged.pop(key, None)

    return {field: _to_text(merged[field]) for field in FACTURA_FIELD_ORDER if field in merged}


def enforce_cfe_consistency(payload: Dict[str, str]) -> None:
    """
    e-Ticket (consumidor final) no lleva RUT ni typedoc; e-Factura exige
    rutneg y typedoc=2. Modifica el payload en el lugar.
    """
    cfe_type = payload.get("typecfe")
    if cfe_type == E_TICKET:
        payload.pop("rutneg", None)
        payload.pop("typedoc", None)
    elif cfe_type == E_FACTURA:
        if not payload.get("rutneg", "").strip():
            raise ValidationError(
                ErrorCode.CFE_INCONSISTENCY,
                "Para e-Factura (typecfe=101) es obligatorio enviar rutneg.",
                {"hint": "Si usás e-Ticket (111) no mandes RUT/typedoc. Si usás e-Factura (101) mandá rutneg y typedoc=2."},
            )
        payload["typedoc"] = "2"


def payload_for_storage(payload: Mapping[str, str], endpoint: str) -> Dict[str, str]:
    """Copia auditable del payload: sin la contraseña y con el endpoint usado."""
    stored = dict(payload)
    if "password" in stored:
        stored["password"] = "<hidden>"
    stored["endpoint"] = endpoint
    return stored
