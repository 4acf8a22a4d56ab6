# gym_manager/infrastructure/api/dependencies.py
"""Proveedores de dependencias de FastAPI: sesión de base de datos, adaptadores y lectura del formulario."""
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from gym_manager.domain.errors import ErrorCode, ValidationError
from gym_manager.domain.models.class_registration import ReceiptUpload, RegistrationRequest
from gym_manager.domain.ports.billing_provider import BillingProvider
from gym_manager.domain.ports.document_fetcher import DocumentFetcher
from gym_manager.domain.ports.receipt_storage import ReceiptStorage
from gym_manager.domain.services.billing_credentials import BillingDefaults
from gym_manager.infrastructure.external.factura_live_adapter import FacturaLiveAdapter
from gym_manager.infrastructure.external.local_receipt_storage import LocalReceiptStorage
from gym_manager.infrastructure.external.remote_pdf_adapter import RemotePdfAdapter
from gym_manager.infrastructure.persistence.class_registration_repository_adapter import (
    SQLAlchemyClassRegistrationRepository,
)
from gym_manager.infrastructure.persistence.database import get_db
from gym_manager.infrastructure.persistence.gym_repository_adapter import SQLAlchemyGymRepository
from gym_manager.infrastructure.persistence.invoice_repository_adapter import SQLAlchemyInvoiceRepository

REGISTRATION_FIELDS = ("sessionId", "gymId", "fullName", "email", "phone")
RECEIPT_FIELD = "receipt"


def get_registration_repository(db: Session = Depends(get_db)) -> SQLAlchemyClassRegistrationRepository:
    return SQLAlchemyClassRegistrationRepository(db)


def get_invoice_repository(db: Session = Depends(get_db)) -> SQLAlchemyInvoiceRepository:
    return SQLAlchemyInvoiceRepository(db)


def get_gym_repository(db: Session = Depends(get_db)) -> SQLAlchemyGymRepository:
    return SQLAlchemyGymRepository(db)


def get_billing_provider() -> BillingProvider:
    return FacturaLiveAdapter()


def get_document_fetcher() -> DocumentFetcher:
    return RemotePdfAdapter()


def get_receipt_storage() -> ReceiptStorage:
    return LocalReceiptStorage()


def get_billing_defaults() -> BillingDefaults:
    return BillingDefaults.from_config()


def _text_fields(values: Dict[str, Any]) -> Dict[str, str]:
    # Los valores que no son texto se ignoran, igual que un campo ausente
    return {field: values[field] for field in REGISTRATION_FIELDS if isinstance(values.get(field), str)}


async def read_registration_form(request: Request) -> Tuple[RegistrationRequest, Optional[ReceiptUpload]]:
    """
    El formulario público llega como JSON o como multipart (cuando adjunta
    comprobante). Retorna los datos de la inscripción y el comprobante, si hay.
    """
    content_type = request.headers.get("content-type", "")

    if "multipart/form-data" in content_type or "application/x-www-form-urlencoded" in content_type:
        form = await request.form()
        registration = RegistrationRequest(**_text_fields(dict(form)))
        receipt = None
        upload = form.get(RECEIPT_FIELD)
        if isinstance(upload, UploadFile):
            receipt = ReceiptUpload(
                filename=upload.filename,
                content_type=upload.content_type,
                content=await upload.read(),
            )
        return registration, receipt

    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError(ErrorCode.INVALID_REQUEST, "El cuerpo de la solicitud no es un JSON válido.") from e
    if not isinstance(body, dict):
        raise ValidationError(ErrorCode.INVALID_REQUEST, "El cuerpo de la solicitud debe ser un objeto JSON.")
    return RegistrationRequest(**_text_fields(body)), None
