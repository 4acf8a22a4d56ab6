# gym_manager/domain/services/invoice_pdf.py
"""
Localización del PDF de una factura dentro de la respuesta de FacturaLive.

La forma de la respuesta la controla el proveedor y no está documentada: el
PDF puede venir como data URL, como base64 suelto o como enlace, en cualquier
nivel de anidamiento. La búsqueda es heurística y recorre primero las claves
cuyo nombre sugiere un documento; ese orden desempata respuestas ambiguas.
"""
import base64
import binascii
import json
import logging
import re
from typing import Any, Callable, Dict, Optional, Sequence
from urllib.parse import parse_qsl, unquote

logger = logging.getLogger(__name__)

PDF_KEY_HINTS = [
    "pdf",
    "archivo",
    "document",
    "comprobante",
    "enlace",
    "link",
    "url",
    "base64",
]

MIN_BASE64_LENGTH = 50
DEFAULT_FILE_NAME = "factura"

_DATA_URL = re.compile(r"^data:application/pdf;base64,", re.IGNORECASE)
_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)
_EMBEDDED_PDF_URL = re.compile(r"https?://[^\s\"']+\.pdf\b", re.IGNORECASE)
_BASE64_ALPHABET = re.compile(r"^[A-Za-z0-9+/=]+$")
_PERCENT_ESCAPE = re.compile(r"%[0-9A-Fa-f]{2}")
_WHITESPACE = re.compile(r"\s+")
_UNSAFE_FILE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def is_likely_pdf_string(value: str) -> bool:
    trimmed = value.strip()
    if not trimmed:
        return False
    if _DATA_URL.match(trimmed):
        return True
    if _HTTP_URL.match(trimmed):
        return True
    if " " not in trimmed and "http" not in trimmed:
        candidate = _WHITESPACE.sub("", trimmed)
        return bool(_BASE64_ALPHABET.match(candidate)) and len(candidate) > MIN_BASE64_LENGTH
    return False


def extract_embedded_pdf_url(value: str) -> Optional[str]:
    match = _EMBEDDED_PDF_URL.search(value)
    return match.group(0) if match else None


def parse_structured_string(value: str) -> Any:
    """
    Interpreta textos que en realidad son JSON (posiblemente %-codificado) o
    una query string. Retorna None si no es ninguno de los dos.
    """
    trimmed = value.strip()
    if not trimmed:
        return None

    attempts = [trimmed]
    if _PERCENT_ESCAPE.search(trimmed):
        decoded = unquote(trimmed).strip()
        if decoded and decoded != trimmed:
            attempts.append(decoded)

    for candidate in attempts:
        if (candidate.startswith("{") and candidate.endswith("}")) or (
            candidate.startswith("[") and candidate.endswith("]")
        ):
            try:
                return json.loads(candidate)
            except ValueError:
                logger.debug("Texto con forma de JSON que no se pudo interpretar al buscar el PDF")

    if "=" in trimmed and ("&" in trimmed or "\n" in trimmed):
        normalized = re.sub(r"\n+", "&", trimmed)
        entries = parse_qsl(normalized, keep_blank_values=True)
        if entries:
            return dict(entries)

    return None


def find_first_string(
    payload: Any,
    is_candidate: Callable[[str], bool],
    key_hints: Sequence[str],
    extract: Optional[Callable[[str], Optional[str]]] = None,
    expand: Optional[Callable[[str], Any]] = None,
) -> Optional[str]:
    """
    Recorrido en profundidad de una estructura JSON arbitraria.

    En cada objeto se visitan primero los hijos con clave "sugerida" y después
    todos los hijos en su orden natural. Un texto se acepta si cumple
    `is_candidate`; si no, `extract` puede recortar un candidato del texto y
    `expand` convertirlo en estructura para seguir buscando. Como último
    recurso se acepta cualquier texto colgado de una clave sugerida.
    Los objetos ya visitados se saltean por identidad (las listas no).
    """
    # id -> objeto; mantener la referencia evita que se reutilice el id
    seen: Dict[int, Any] = {}

    def is_hinted(key: Optional[str]) -> bool:
        if key is None:
            return False
        normalized = key.lower()
        return any(hint in normalized for hint in key_hints)

    def visit(value: Any, current_key: Optional[str]) -> Optional[str]:
        if isinstance(value, str):
            trimmed = value.strip()
            if not trimmed:
                return None
            if is_candidate(trimmed):
                return trimmed
            if extract is not None:
                found = extract(trimmed)
                if found:
                    return found
            if expand is not None:
                structured = expand(trimmed)
                if structured is not None:
                    return visit(structured, current_key)
            if is_hinted(current_key):
                return trimmed
            return None

        if isinstance(value, list):
            for item in value:
                found = visit(item, current_key)
                if found:
                    return found
            return None

        if isinstance(value, dict):
            if id(value) in seen:
                return None
            seen[id(value)] = value

            entries = list(value.items())
            for key, child in entries:
                if is_hinted(str(key)):
                    found = visit(child, str(key).lower())
                    if found:
                        return found
            for key, child in entries:
                found = visit(child, str(key))
                if found:
                    return found

        return None

    if payload is None:
        return None
    return visit(payload, None)


def find_invoice_pdf_source(payload: Any) -> Optional[str]:
    """Data URL, base64 o enlace del PDF dentro de la respuesta guardada, o None."""
    return find_first_string(
        payload,
        is_candidate=is_likely_pdf_string,
        key_hints=PDF_KEY_HINTS,
        extract=extract_embedded_pdf_url,
        expand=parse_structured_string,
    )


def is_inline_pdf_source(source: str) -> bool:
    """True si el PDF viene embebido (data URL o base64) y no como enlace."""
    trimmed = source.strip()
    if _DATA_URL.match(trimmed):
        return True
    return "http" not in trimmed and bool(_BASE64_ALPHABET.match(_WHITESPACE.sub("", trimmed)))


def _b64decode(value: str) -> Optional[bytes]:
    cleaned = _WHITESPACE.sub("", value).rstrip("=")
    # Un carácter suelto al final no completa un byte; se descarta
    if len(cleaned) % 4 == 1:
        cleaned = cleaned[:-1]
    try:
        return base64.b64decode(cleaned + "=" * (-len(cleaned) % 4))
    except (binascii.Error, ValueError):
        logger.error("Error decodificando el PDF en base64", exc_info=True)
        return None


def decode_base64_pdf(source: str) -> Optional[bytes]:
    """Decodifica un data URL o un base64 suelto. None si no es ninguno o no decodifica."""
    trimmed = source.strip()
    if not trimmed:
        return None

    if _DATA_URL.match(trimmed):
        _, _, encoded = trimmed.partition(",")
        if not encoded.strip():
            return None
        return _b64decode(encoded)

    if "http" not in trimmed:
        sanitized = _WHITESPACE.sub("", trimmed)
        if _BASE64_ALPHABET.match(sanitized):
            return _b64decode(sanitized)

    return None


def _sanitize_segment(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    return _UNSAFE_FILE_CHARS.sub("_", trimmed)


def build_invoice_pdf_file_name(
    invoice_number: Optional[str] = None,
    invoice_series: Optional[str] = None,
    invoice_id: Optional[str] = None,
) -> str:
    """Serie, número e id de la factura unidos por guiones: `A_B-123_456.pdf`."""
    parts = [
        segment
        for segment in (
            _sanitize_segment(invoice_series),
            _sanitize_segment(invoice_number),
            _sanitize_segment(invoice_id),
        )
        if segment
    ]
    base = "-".join(parts) if parts else DEFAULT_FILE_NAME
    return f"{base}.pdf"
