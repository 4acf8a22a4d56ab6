# gym_manager/infrastructure/api/routers/invoices_router.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from gym_manager.application.use_cases.download_invoice_pdf import DownloadInvoicePdfUseCase
from gym_manager.application.use_cases.issue_invoice import IssueInvoiceUseCase
from gym_manager.application.use_cases.list_gym_invoices import ListGymInvoicesUseCase
from gym_manager.domain.models.invoice import InvoiceIssueRequest
from gym_manager.domain.ports.billing_provider import BillingProvider
from gym_manager.domain.ports.document_fetcher import DocumentFetcher
from gym_manager.domain.ports.gym_repository import GymRepository
from gym_manager.domain.ports.invoice_repository import InvoiceRepository
from gym_manager.domain.services.billing_credentials import BillingDefaults
from gym_manager.infrastructure.api.dependencies import (
    get_billing_defaults,
    get_billing_provider,
    get_document_fetcher,
    get_gym_repository,
    get_invoice_repository,
)

router = APIRouter(prefix="/api/v1/invoices", tags=["Facturas"])


@router.post("", summary="Emitir una factura electrónica con FacturaLive")
def issue_invoice(
    request: InvoiceIssueRequest,
    invoice_repo: InvoiceRepository = Depends(get_invoice_repository),
    gym_repo: GymRepository = Depends(get_gym_repository),
    billing_provider: BillingProvider = Depends(get_billing_provider),
    defaults: BillingDefaults = Depends(get_billing_defaults),
):
    """
    Emite la factura de un pago en un único intento. Si FacturaLive la emite
    pero no se puede guardar, responde 500 con la respuesta del proveedor
    para conciliar a mano.
    """
    use_case = IssueInvoiceUseCase(invoice_repo, gym_repo, billing_provider, defaults)
    issued = use_case.execute(request)
    return {
        "invoice": issued.invoice.model_dump(mode="json"),
        "externalResponse": issued.external_response,
        "rawResponse": issued.raw_response,
        "endpoint": issued.endpoint,
        "reusedExistingInvoice": issued.reused_existing_invoice,
    }


@router.get("", summary="Listar las facturas de un gimnasio")
def list_invoices(
    gym_id: Optional[str] = Query(default=None),
    invoice_repo: InvoiceRepository = Depends(get_invoice_repository),
):
    invoices = ListGymInvoicesUseCase(invoice_repo).execute(gym_id)
    return {"invoices": [invoice.model_dump(mode="json") for invoice in invoices]}


@router.get("/{invoice_id}/pdf", summary="Descargar el PDF de una factura")
def download_invoice_pdf(
    invoice_id: str,
    invoice_repo: InvoiceRepository = Depends(get_invoice_repository),
    document_fetcher: DocumentFetcher = Depends(get_document_fetcher),
):
    pdf = DownloadInvoicePdfUseCase(invoice_repo, document_fetcher).execute(invoice_id)
    return Response(
        content=pdf.content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{pdf.file_name}"',
            "X-Invoice-Filename": pdf.file_name,
            "Cache-Control": "no-store",
        },
    )
