# gym_manager/domain/errors.py
"""Errores de dominio.

Cada error lleva un código específico, un mensaje apto para el usuario y el
status HTTP con el que la capa de API lo devuelve.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_REGISTRATION_DATA = "MISSING_REGISTRATION_DATA"
    INVALID_RECEIPT = "INVALID_RECEIPT"
    CLASS_NOT_FOUND = "CLASS_NOT_FOUND"
    CLASS_ALREADY_STARTED = "CLASS_ALREADY_STARTED"
    CLASS_FULL = "CLASS_FULL"
    MISSING_INVOICE_DATA = "MISSING_INVOICE_DATA"
    MISSING_INVOICE_LINES = "MISSING_INVOICE_LINES"
    MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
    CFE_INCONSISTENCY = "CFE_INCONSISTENCY"
    INVALID_INVOICE_DATE = "INVALID_INVOICE_DATE"
    INVOICE_NOT_FOUND = "INVOICE_NOT_FOUND"
    PDF_NOT_AVAILABLE = "PDF_NOT_AVAILABLE"
    GYM_NOT_FOUND = "GYM_NOT_FOUND"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    PDF_DOWNLOAD_FAILED = "PDF_DOWNLOAD_FAILED"
    INVOICE_NOT_SAVED = "INVOICE_NOT_SAVED"


class DomainError(Exception):
    """Error base con código y mensaje seguro para el usuario."""

    status_code = 500

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    """Datos de entrada incompletos o mal formados."""

    status_code = 400


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """Regla de negocio violada (clase iniciada, cupo completo)."""

    status_code = 409


class DependencyError(DomainError):
    """Falla de la base de datos o del almacenamiento."""

    status_code = 500


class UpstreamError(DomainError):
    """Falla del proveedor externo o de la red."""

    status_code = 502


class PartialSuccessError(DomainError):
    """
    El efecto externo ocurrió (la factura fue emitida) pero no se pudo
    registrar localmente. `details` incluye la respuesta del proveedor para
    poder conciliar a mano.
    """

    status_code = 500


class RepositoryError(Exception):
    """Falla de un adaptador de persistencia. Nunca llega al usuario tal cual."""


class DuplicateInvoiceError(RepositoryError):
    """Ya existe una factura para el mismo (gimnasio, pago)."""


class StorageError(Exception):
    """Falla del almacenamiento de comprobantes."""
