# gym_manager/domain/services/billing_credentials.py
"""
Resolución de credenciales de FacturaLive por gimnasio.

Cada campo se resuelve con una cadena de fuentes ordenada (fila del gimnasio,
luego los valores por defecto del proceso): gana el primer valor presente y
válido según el tipo del campo.
"""
import math
from typing import Any, Callable, List, Optional, Sequence

from pydantic import BaseModel

import config
from gym_manager.domain.models.invoice import GymBillingConfig

_PROD_ALIASES = {"PROD", "PRODUCCION", "PRODUCCIÓN", "PRODUCTION"}
_TEST_ALIASES = {"TEST", "HOMOLOGACION", "HOMOLOGACIÓN", "HOMOLOGA", "HOMO"}


def parse_optional_string(value: Any) -> Optional[str]:
    """Texto no vacío (recortado) o número finito como texto."""
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value) if math.isfinite(value) else None
    return None


def parse_optional_number(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            parsed = float(trimmed)
        except ValueError:
            return None
        if not math.isfinite(parsed):
            return None
        return int(parsed) if parsed.is_integer() else parsed
    return None


def format_number(value: float) -> str:
    """Los números enteros se envían sin decimales ("1", no "1.0")."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_environment(value: Any) -> Optional[str]:
    """Normaliza a exactamente "TEST" o "PROD"; cualquier otro valor es None."""
    if not isinstance(value, str) or not value.strip():
        return None
    normalized = value.strip().upper()
    if normalized in _PROD_ALIASES:
        return "PROD"
    if normalized in _TEST_ALIASES:
        return "TEST"
    return None


class BillingDefaults(BaseModel):
    """Valores de respaldo a nivel proceso, usados cuando el gimnasio no tiene los propios."""
    user_id: Optional[str] = None
    company_id: Optional[str] = None
    branch_code: Optional[str] = None
    branch_id: Optional[str] = None
    password: Optional[str] = None
    environment: str = "TEST"
    customer_id: Optional[float] = None
    series: Optional[str] = None
    currency: Optional[str] = None
    cotizacion: Optional[float] = None
    typecfe: Optional[float] = None
    tipo_traslado: Optional[float] = None
    payment_type: Optional[float] = None
    rutneg: Optional[str] = None
    dirneg: Optional[str] = None
    cityneg: Optional[str] = None
    stateneg: Optional[str] = None
    addinfoneg: Optional[str] = None
    facturaext: Optional[str] = None

    @classmethod
    def from_config(cls) -> "BillingDefaults":
        return cls(
            user_id=config.FACTURA_LIVE_USER_ID or None,
            company_id=config.FACTURA_LIVE_COMPANY_ID or None,
            branch_code=config.FACTURA_LIVE_BRANCH_CODE or None,
            branch_id=config.FACTURA_LIVE_BRANCH_ID or None,
            password=config.FACTURA_LIVE_PASSWORD or None,
            environment=normalize_environment(config.FACTURA_LIVE_ENVIRONMENT) or "TEST",
        )


class ResolvedCredentials(BaseModel):
    user_id: Optional[str] = None
    company_id: Optional[str] = None
    branch_code: Optional[str] = None
    branch_id: Optional[str] = None
    password: Optional[str] = None
    environment: Optional[str] = None
    customer_id: Optional[float] = None
    series: Optional[str] = None
    currency: Optional[str] = None
    cotizacion: Optional[float] = None
    typecfe: Optional[float] = None
    tipo_traslado: Optional[float] = None
    payment_type: Optional[float] = None
    rutneg: Optional[str] = None
    dirneg: Optional[str] = None
    cityneg: Optional[str] = None
    stateneg: Optional[str] = None
    addinfoneg: Optional[str] = None
    facturaext: Optional[str] = None


# (campo resuelto, columna del gimnasio, validador)
_CREDENTIAL_FIELDS = [
    ("user_id", "invoice_user_id", parse_optional_string),
    ("company_id", "invoice_company_id", parse_optional_string),
    ("branch_code", "invoice_branch_code", parse_optional_string),
    ("branch_id", "invoice_branch_id", parse_optional_string),
    ("password", "invoice_password", parse_optional_string),
    ("customer_id", "invoice_customer_id", parse_optional_number),
    ("series", "invoice_series", parse_optional_string),
    ("currency", "invoice_currency", parse_optional_string),
    ("cotizacion", "invoice_cotizacion", parse_optional_number),
    ("typecfe", "invoice_typecfe", parse_optional_number),
    ("tipo_traslado", "invoice_tipo_traslado", parse_optional_number),
    ("payment_type", "invoice_payment_type", parse_optional_number),
    ("rutneg", "invoice_rutneg", parse_optional_string),
    ("dirneg", "invoice_dirneg", parse_optional_string),
    ("cityneg", "invoice_cityneg", parse_optional_string),
    ("stateneg", "invoice_stateneg", parse_optional_string),
    ("addinfoneg", "invoice_addinfoneg", parse_optional_string),
    ("facturaext", "invoice_facturaext", parse_optional_string),
]

REQUIRED_CREDENTIALS = [
    ("user_id", "userid"),
    ("company_id", "empresaid"),
    ("branch_code", "codsucursal"),
    ("branch_id", "sucursal"),
    ("password", "password"),
]


def first_valid(candidates: Sequence[Any], parser: Callable[[Any], Any]) -> Any:
    """Primer candidato que el validador acepta, en orden de prioridad."""
    for candidate in candidates:
        parsed = parser(candidate)
        if parsed is not None:
            return parsed
    return None


def resolve_credentials(gym_config: Optional[GymBillingConfig], defaults: BillingDefaults) -> ResolvedCredentials:
    gym_config = gym_config or GymBillingConfig()
    resolved = {
        field: first_valid([getattr(gym_config, column), getattr(defaults, field)], parser)
        for field, column, parser in _CREDENTIAL_FIELDS
    }
    # El ambiente del gimnasio solo cuenta si es reconocible; el default del
    # proceso se aplica más adelante, después del override de la factura.
    resolved["environment"] = normalize_environment(parse_optional_string(gym_config.invoice_environment))
    return ResolvedCredentials(**resolved)


def missing_credentials(credentials: ResolvedCredentials) -> List[str]:
    """Etiquetas de las credenciales obligatorias que quedaron vacías."""
    return [label for field, label in REQUIRED_CREDENTIALS if not getattr(credentials, field)]
