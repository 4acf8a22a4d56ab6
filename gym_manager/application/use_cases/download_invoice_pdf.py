# gym_manager/application/use_cases/download_invoice_pdf.py
import logging

from pydantic import BaseModel

from gym_manager.domain.errors import (
    DependencyError,
    ErrorCode,
    NotFoundError,
    RepositoryError,
    UpstreamError,
    ValidationError,
)
from gym_manager.domain.ports.document_fetcher import DocumentFetcher
from gym_manager.domain.ports.invoice_repository import InvoiceRepository
from gym_manager.domain.services.invoice_pdf import (
    build_invoice_pdf_file_name,
    decode_base64_pdf,
    find_invoice_pdf_source,
    is_inline_pdf_source,
)

logger = logging.getLogger(__name__)


class InvoicePdf(BaseModel):
    content: bytes
    file_name: str


class DownloadInvoicePdfUseCase:
    """
    Obtiene el PDF de una factura a partir de la respuesta de FacturaLive que
    quedó guardada: lo decodifica si vino embebido o lo descarga si es un enlace.
    """
    def __init__(self, invoice_repo: InvoiceRepository, document_fetcher: DocumentFetcher):
        self.invoice_repo = invoice_repo
        self.document_fetcher = document_fetcher

    def execute(self, invoice_id: str) -> InvoicePdf:
        invoice_id = (invoice_id or "").strip()
        if not invoice_id:
            raise ValidationError(ErrorCode.INVALID_REQUEST, "Debes indicar la factura a descargar.")

        log_prefix = f"[invoice={invoice_id}]"

        try:
            invoice = self.invoice_repo.find_by_id(invoice_id)
        except RepositoryError as e:
            logger.error(f"{log_prefix} Error obteniendo la factura: {e}", exc_info=True)
            raise DependencyError(
                ErrorCode.STORE_UNAVAILABLE,
                "No pudimos obtener la factura. Intenta nuevamente en unos segundos.",
            ) from e

        if invoice is None:
            raise NotFoundError(ErrorCode.INVOICE_NOT_FOUND, "No encontramos la factura solicitada.")

        source = find_invoice_pdf_source(invoice.response_payload)
        if not source:
            logger.info(f"{log_prefix} La respuesta guardada no contiene un PDF.")
            raise NotFoundError(
                ErrorCode.PDF_NOT_AVAILABLE,
                "FacturaLive no devolvió un PDF para esta factura.",
            )

        if is_inline_pdf_source(source):
            content = decode_base64_pdf(source)
        else:
            logger.info(f"{log_prefix} Descargando el PDF desde {source}")
            content = self.document_fetcher.fetch(source)

        if not content:
            logger.error(f"{log_prefix} No se pudo obtener el contenido del PDF.")
            raise UpstreamError(
                ErrorCode.PDF_DOWNLOAD_FAILED,
                "No pudimos descargar el PDF de la factura. Intenta nuevamente más tarde.",
            )

        file_name = build_invoice_pdf_file_name(
            invoice_number=invoice.invoice_number,
            invoice_series=invoice.invoice_series,
            invoice_id=invoice.id,
        )
        return InvoicePdf(content=content, file_name=file_name)
